"""
In-memory node definition document.

Holds node definitions, their per-target implementations, node graphs that
implement definitions, target definitions, and the node instances created
while a library is being generated. Everything is kept in insertion order so
iterating the registry follows the order the libraries were loaded in.
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Union

from ..errors import DocumentError
from .search_path import FileSearchPath

logger = logging.getLogger(__name__)

NODEDEF_PREFIX = "ND_"


def strip_nodedef_prefix(name: str) -> str:
    """Removes a leading 'ND_' from a definition name that has more after it."""
    if len(name) > len(NODEDEF_PREFIX) and name.startswith(NODEDEF_PREFIX):
        return name[len(NODEDEF_PREFIX):]
    return name


@dataclass
class PortDef:
    """An input or output declared on a node definition."""
    name: str
    type: str
    value: Optional[str] = None


@dataclass
class NodeDef:
    name: str
    node: str
    inputs: List[PortDef] = field(default_factory=list)
    outputs: List[PortDef] = field(default_factory=list)
    nodegroup: str = ""
    source: str = ""

    @property
    def type(self) -> str:
        """Type of the primary output, as MaterialX reports it."""
        return self.outputs[0].type if self.outputs else ""

    def get_input(self, name: str) -> Optional[PortDef]:
        for port in self.inputs:
            if port.name == name:
                return port
        return None

    def get_output(self, name: str) -> Optional[PortDef]:
        for port in self.outputs:
            if port.name == name:
                return port
        return None


@dataclass
class Implementation:
    """
    Binding of a node definition to compiled OSL code for one target.

    An empty target applies to every target.
    """
    name: str
    nodedef: str
    target: str = ""
    file: str = ""
    function: str = ""
    source_dir: Optional[Path] = None

    def entry_point(self) -> str:
        return self.function or strip_nodedef_prefix(self.nodedef)


@dataclass
class InputBinding:
    """
    An input set on a node instance.

    Exactly one of value, nodename or interfacename is normally set.
    """
    name: str
    type: str = ""
    value: Optional[str] = None
    nodename: Optional[str] = None
    output: Optional[str] = None
    interfacename: Optional[str] = None


@dataclass
class NodeInstance:
    name: str
    category: str
    type: str
    nodedef: Optional[str] = None
    inputs: List[InputBinding] = field(default_factory=list)

    def get_input(self, name: str) -> Optional[InputBinding]:
        for binding in self.inputs:
            if binding.name == name:
                return binding
        return None

    def set_input_value(self, name: str, type: str, value: str) -> InputBinding:
        binding = self.get_input(name)
        if binding is None:
            binding = InputBinding(name, type)
            self.inputs.append(binding)
        binding.value = value
        return binding


@dataclass
class GraphOutput:
    name: str
    type: str
    nodename: str
    output: Optional[str] = None


@dataclass
class NodeGraphDef:
    """A node graph implementing a node definition for every target."""
    name: str
    nodedef: str
    nodes: List[NodeInstance] = field(default_factory=list)
    outputs: List[GraphOutput] = field(default_factory=list)


@dataclass
class TargetDef:
    name: str
    inherit: str = ""


AnyImplementation = Union[Implementation, NodeGraphDef]


class NodeDefinitionRegistry:
    """
    Shared document for one batch.

    Implementation lookup is a plain keyed mapping:
    (nodedef name, target name) -> Implementation.
    """

    def __init__(self, search_path: FileSearchPath = None):
        self.search_path = search_path or FileSearchPath()
        self._nodedefs: Dict[str, NodeDef] = {}
        self._implementations: Dict[tuple, Implementation] = {}
        self._node_graphs: Dict[str, NodeGraphDef] = {}
        self._targetdefs: Dict[str, TargetDef] = {}
        self._instances: Dict[str, NodeInstance] = {}

    # -------------------------------------------------------------------------
    # Population
    # -------------------------------------------------------------------------

    def add_targetdef(self, targetdef: TargetDef) -> TargetDef:
        self._targetdefs[targetdef.name] = targetdef
        return targetdef

    # The first element loaded under a name wins; later duplicates (the same
    # library found under another search root) are skipped.

    def add_nodedef(self, nodedef: NodeDef) -> NodeDef:
        existing = self._nodedefs.get(nodedef.name)
        if existing is not None:
            logger.debug(f"Skipping duplicate node definition {nodedef.name} from {nodedef.source}")
            return existing
        self._nodedefs[nodedef.name] = nodedef
        return nodedef

    def add_implementation(self, impl: Implementation) -> Implementation:
        key = (impl.nodedef, impl.target)
        existing = self._implementations.get(key)
        if existing is not None:
            logger.debug(f"Skipping duplicate implementation of {impl.nodedef} "
                         f"for target '{impl.target}': {impl.name}")
            return existing
        self._implementations[key] = impl
        return impl

    def add_node_graph(self, graph: NodeGraphDef) -> NodeGraphDef:
        existing = self._node_graphs.get(graph.nodedef)
        if existing is not None:
            logger.debug(f"Skipping duplicate node graph implementation of {graph.nodedef}: {graph.name}")
            return existing
        self._node_graphs[graph.nodedef] = graph
        return graph

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def get_nodedefs(self) -> List[NodeDef]:
        """All node definitions, in load order."""
        return list(self._nodedefs.values())

    def get_nodedef(self, name: str) -> Optional[NodeDef]:
        return self._nodedefs.get(name)

    def find_nodedef(self, category: str, type: str = "", nodedef: str = None) -> Optional[NodeDef]:
        """Finds the definition for a node by explicit name, else by category and type."""
        if nodedef:
            return self._nodedefs.get(nodedef)
        for candidate in self._nodedefs.values():
            if candidate.node == category and (not type or candidate.type == type):
                return candidate
        return None

    def get_targetdefs(self) -> List[TargetDef]:
        return list(self._targetdefs.values())

    def target_chain(self, target: str) -> List[str]:
        """The target followed by the targets it inherits from."""
        chain = []
        current = target
        while current and current not in chain:
            chain.append(current)
            targetdef = self._targetdefs.get(current)
            current = targetdef.inherit if targetdef else ""
        return chain

    def resolve(self, nodedef: Union[NodeDef, str], target: str) -> Optional[Implementation]:
        """Returns the Implementation of a definition for a target, or None."""
        name = nodedef if isinstance(nodedef, str) else nodedef.name
        for candidate in self.target_chain(target):
            impl = self._implementations.get((name, candidate))
            if impl is not None:
                return impl
        return self._implementations.get((name, ""))

    def get_node_graph(self, nodedef: Union[NodeDef, str]) -> Optional[NodeGraphDef]:
        name = nodedef if isinstance(nodedef, str) else nodedef.name
        return self._node_graphs.get(name)

    def get_implementation(self, nodedef: Union[NodeDef, str], target: str) -> Optional[AnyImplementation]:
        """Implementation for the target, falling back to a node graph."""
        impl = self.resolve(nodedef, target)
        if impl is not None:
            return impl
        return self.get_node_graph(nodedef)

    def resolve_file(self, impl: Implementation) -> Optional[Path]:
        """Filesystem location of an implementation's source file."""
        if not impl.file:
            return None
        path = Path(impl.file)
        if path.is_absolute():
            return path
        if impl.source_dir is not None and (impl.source_dir / path).exists():
            return impl.source_dir / path
        found = self.search_path.find(path)
        if found == path and impl.source_dir is not None:
            return impl.source_dir / path
        return found

    # -------------------------------------------------------------------------
    # Node instances
    # -------------------------------------------------------------------------

    @property
    def node_instances(self) -> List[NodeInstance]:
        return list(self._instances.values())

    def get_node_instance(self, name: str) -> Optional[NodeInstance]:
        return self._instances.get(name)

    def add_node_instance(self, nodedef: NodeDef, name: str) -> NodeInstance:
        if name in self._instances:
            raise DocumentError(f"Node instance already exists: {name}", element_name=name)
        instance = NodeInstance(name=name, category=nodedef.node, type=nodedef.type,
                                nodedef=nodedef.name)
        self._instances[name] = instance
        return instance

    def remove_node_instance(self, name: str) -> bool:
        return self._instances.pop(name, None) is not None

    @contextmanager
    def transient_instance(self, nodedef: NodeDef, name: str) -> Iterator[NodeInstance]:
        """
        Adds a node instance for the duration of the block.

        The instance is removed on every exit path, including exceptions.
        """
        instance = self.add_node_instance(nodedef, name)
        try:
            yield instance
        finally:
            self.remove_node_instance(name)

    def __len__(self):
        return len(self._nodedefs)

    def __repr__(self):
        return (f"NodeDefinitionRegistry({len(self._nodedefs)} nodedefs, "
                f"{len(self._implementations)} implementations, "
                f"{len(self._node_graphs)} node graphs)")
