# Graph construction
# Turns a node instance from the registry into a ShadingGraph

import logging
from typing import Dict, List, Tuple

from ..document.registry import (
    NodeDef,
    NodeDefinitionRegistry,
    NodeGraphDef,
    NodeInstance,
)
from ..errors import GraphError
from .graph import ShaderNode, ShadingGraph

logger = logging.getLogger(__name__)


class GraphBuilder:
    """
    Builds the ShadingGraph for one node instance.

    The graph interface mirrors the instance's definition: one input socket
    per definition input and one output socket per definition output.
    Upstream nodes of the instance are never pulled in.

    A definition implemented by a node graph is expanded into the graph's
    inner nodes; anything else becomes a single node named after the
    instance.
    """

    def __init__(self, registry: NodeDefinitionRegistry):
        self.registry = registry

    def build(self, instance: NodeInstance, target: str) -> ShadingGraph:
        nodedef = self._nodedef_for(instance)
        graph = ShadingGraph(instance.name)

        for port in nodedef.inputs:
            graph.add_input_socket(port.name, port.type)

        node_graph = None
        if self.registry.resolve(nodedef, target) is None:
            node_graph = self.registry.get_node_graph(nodedef)

        if node_graph is not None:
            self._expand_node_graph(graph, instance, nodedef, node_graph)
        else:
            self._add_single_node(graph, instance, nodedef)

        logger.debug(f"Built {graph!r} for {instance.name}")
        return graph

    def _nodedef_for(self, instance: NodeInstance) -> NodeDef:
        nodedef = self.registry.find_nodedef(instance.category, instance.type, instance.nodedef)
        if nodedef is None:
            raise GraphError(f"No node definition found for node '{instance.name}' "
                             f"({instance.category}, {instance.type or 'any type'})",
                             node_name=instance.name)
        return nodedef

    def _add_single_node(self, graph: ShadingGraph, instance: NodeInstance, nodedef: NodeDef):
        node = graph.add_node(instance.name, nodedef.name)

        for port in nodedef.inputs:
            binding = instance.get_input(port.name)
            explicit = binding is not None and binding.value is not None
            value = binding.value if explicit else port.value
            inp = node.add_input(port.name, port.type, value, is_default=not explicit)
            inp.make_connection(graph.get_input_socket(port.name))

        for port in nodedef.outputs:
            out = node.add_output(port.name, port.type)
            graph.add_output_socket(port.name, port.type).make_connection(out)

    def _expand_node_graph(self, graph: ShadingGraph, instance: NodeInstance,
                           nodedef: NodeDef, node_graph: NodeGraphDef):
        # Interface values seen by the inner nodes
        interface: Dict[str, str] = {}
        for port in nodedef.inputs:
            binding = instance.get_input(port.name)
            if binding is not None and binding.value is not None:
                interface[port.name] = binding.value
            elif port.value is not None:
                interface[port.name] = port.value

        # Declare all nodes first so connections can point in any direction.
        declared: List[Tuple[NodeInstance, ShaderNode, NodeDef]] = []
        for inner in node_graph.nodes:
            inner_def = self.registry.find_nodedef(inner.category, inner.type, inner.nodedef)
            if inner_def is None:
                raise GraphError(f"No node definition found for node '{inner.name}' "
                                 f"in node graph {node_graph.name}", node_name=inner.name)
            try:
                node = graph.add_node(inner.name, inner_def.name)
            except ValueError as err:
                raise GraphError(str(err), node_name=inner.name) from err
            for port in inner_def.outputs:
                node.add_output(port.name, port.type)
            declared.append((inner, node, inner_def))

        for inner, node, inner_def in declared:
            for binding in inner.inputs:
                if inner_def.get_input(binding.name) is None:
                    raise GraphError(f"Input '{binding.name}' is not declared on {inner_def.name}",
                                     node_name=inner.name)

            for port in inner_def.inputs:
                binding = inner.get_input(port.name)
                if binding is None:
                    node.add_input(port.name, port.type, port.value, is_default=True)
                elif binding.interfacename:
                    socket = graph.get_input_socket(binding.interfacename)
                    if socket is None:
                        raise GraphError(f"Unknown interface input '{binding.interfacename}' "
                                         f"on {inner.name}.{port.name}", node_name=inner.name)
                    value = interface.get(binding.interfacename)
                    inp = node.add_input(port.name, port.type, value,
                                         is_default=value == port.value)
                    inp.make_connection(socket)
                elif binding.nodename:
                    upstream = graph.get_node(binding.nodename)
                    if upstream is None:
                        raise GraphError(f"Unknown node '{binding.nodename}' connected to "
                                         f"{inner.name}.{port.name}", node_name=inner.name)
                    output = (upstream.get_output(binding.output) if binding.output
                              else upstream.primary_output)
                    if output is None:
                        raise GraphError(f"Node '{upstream.name}' has no output "
                                         f"'{binding.output or 'out'}'", node_name=inner.name)
                    inp = node.add_input(port.name, port.type)
                    inp.make_connection(output)
                else:
                    node.add_input(port.name, port.type, binding.value, is_default=False)

        for go in node_graph.outputs:
            upstream = graph.get_node(go.nodename)
            if upstream is None:
                raise GraphError(f"Graph output '{go.name}' references unknown node '{go.nodename}'",
                                 node_name=instance.name)
            output = upstream.get_output(go.output) if go.output else upstream.primary_output
            if output is None:
                raise GraphError(f"Graph output '{go.name}' references a missing output on "
                                 f"'{go.nodename}'", node_name=instance.name)
            graph.add_output_socket(go.name, go.type).make_connection(output)
