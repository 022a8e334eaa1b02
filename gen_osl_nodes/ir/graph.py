from typing import List, Optional, Union


class ShaderOutput:
    """
    A named, typed output socket.

    The owner is either a ShaderNode or, for the published inputs of a graph,
    the ShadingGraph itself.
    """
    def __init__(self, name: str, type: str, node: Union['ShaderNode', 'ShadingGraph']):
        self.name = name
        self.type = type
        self.node = node

    def is_boundary(self) -> bool:
        """True when the socket belongs to the graph interface, not a node."""
        return isinstance(self.node, ShadingGraph)

    def __repr__(self):
        return f"ShaderOutput({self.node.name}.{self.name})"


class ShaderInput:
    """
    A named, typed input socket carrying a literal value or one connection.
    """
    def __init__(self, name: str, type: str, node: Union['ShaderNode', 'ShadingGraph'],
                 value: Optional[str] = None, is_default: bool = False):
        self.name = name
        self.type = type
        self.node = node
        # MaterialX value string, e.g. "0.5, 0.5, 0.5"
        self.value = value
        # True when the value comes from the node definition, not the instance
        self.is_default = is_default
        self.connection: Optional[ShaderOutput] = None

    def make_connection(self, output: ShaderOutput):
        # An input has at most one upstream connection; reconnecting replaces it.
        self.connection = output

    def break_connection(self):
        self.connection = None

    def __repr__(self):
        return f"ShaderInput({self.node.name}.{self.name})"


class ShaderNode:
    """
    One instance of a node definition inside a shading graph.
    """
    def __init__(self, name: str, nodedef_name: str):
        self.name = name
        self.nodedef_name = nodedef_name
        self.inputs: List[ShaderInput] = []
        self.outputs: List[ShaderOutput] = []

    def add_input(self, name: str, type: str, value: Optional[str] = None,
                  is_default: bool = False) -> ShaderInput:
        inp = ShaderInput(name, type, self, value, is_default)
        self.inputs.append(inp)
        return inp

    def add_output(self, name: str, type: str) -> ShaderOutput:
        out = ShaderOutput(name, type, self)
        self.outputs.append(out)
        return out

    def get_input(self, name: str) -> Optional[ShaderInput]:
        for inp in self.inputs:
            if inp.name == name:
                return inp
        return None

    def get_output(self, name: str) -> Optional[ShaderOutput]:
        for out in self.outputs:
            if out.name == name:
                return out
        return None

    @property
    def primary_output(self) -> Optional[ShaderOutput]:
        return self.outputs[0] if self.outputs else None

    def __repr__(self):
        return f"ShaderNode({self.name})"


class ShadingGraph:
    """
    An unordered-by-dependency collection of ShaderNodes plus the graph
    interface.

    Published inputs are stored as ShaderOutputs owned by the graph so they
    can feed node inputs; graph outputs are ShaderInputs owned by the graph.
    Nodes keep insertion order, which is the emission order.
    """
    def __init__(self, name: str):
        self.name = name
        self.nodes: List[ShaderNode] = []
        self._node_map = {}
        self.input_sockets: List[ShaderOutput] = []
        self.output_sockets: List[ShaderInput] = []

    def add_node(self, name: str, nodedef_name: str) -> ShaderNode:
        if name in self._node_map:
            raise ValueError(f"Node '{name}' already exists in graph '{self.name}'")
        node = ShaderNode(name, nodedef_name)
        self.nodes.append(node)
        self._node_map[name] = node
        return node

    def get_node(self, name: str) -> Optional[ShaderNode]:
        return self._node_map.get(name)

    def add_input_socket(self, name: str, type: str) -> ShaderOutput:
        socket = ShaderOutput(name, type, self)
        self.input_sockets.append(socket)
        return socket

    def add_output_socket(self, name: str, type: str) -> ShaderInput:
        socket = ShaderInput(name, type, self)
        self.output_sockets.append(socket)
        return socket

    def get_input_socket(self, name: str) -> Optional[ShaderOutput]:
        for socket in self.input_sockets:
            if socket.name == name:
                return socket
        return None

    def get_output_socket(self, name: str) -> Optional[ShaderInput]:
        for socket in self.output_sockets:
            if socket.name == name:
                return socket
        return None

    def __repr__(self):
        return f"ShadingGraph({self.name}, {len(self.nodes)} nodes)"
