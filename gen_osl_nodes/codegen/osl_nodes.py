"""
OSL node network generator.

Translates a ShadingGraph into the declarative shader group language read by
the OSL compiler tools:

    param <type> <name> <value> ;
    shader <entryPoint> <instanceName> ;
    connect <srcNode>.<srcOutput> <dstNode>.<dstInput> ;

Nodes are visited in graph order without any dependency sorting. Literal
parameters are emitted right before the declaration of the node they belong
to; connections are held back until every node has been declared, which is
the only ordering the format requires.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import FrozenSet, List, Optional, Set, Tuple

from ..document.registry import NodeDefinitionRegistry
from ..errors import GenerationError
from ..ir.graph import ShaderInput, ShaderNode, ShaderOutput, ShadingGraph
from . import syntax

logger = logging.getLogger(__name__)

# Inputs never emitted as parameters. Their defaults are not pruned upstream.
EXCLUDED_INPUTS = frozenset({"backsurfaceshader", "displacementshader"})

# Synthetic sink appended in wrapper mode
WRAPPER_SHADER = "setCi"
WRAPPER_NODE = "root"

PATH_SEPARATOR = ","


@dataclass
class CodegenOptions:
    target: str = "genosl"
    # Append a setCi sink so test harnesses can observe the unit's output
    wrapper: bool = False


@dataclass
class ShaderUnit:
    """Result of one generation: the text plus compiled-object path metadata."""
    name: str
    lines: List[str]
    paths: FrozenSet[Path]
    search_path: str

    @property
    def source_code(self) -> str:
        return "\n".join(self.lines) + "\n"

    @property
    def include_paths(self) -> List[str]:
        return self.search_path.split(PATH_SEPARATOR) if self.search_path else []


@dataclass
class CompilationUnit:
    """Working state of the generator for one graph."""
    name: str
    statements: List[str] = field(default_factory=list)
    connections: List[str] = field(default_factory=list)
    paths: Set[Path] = field(default_factory=set)
    last_declared: Optional[Tuple[ShaderNode, Optional[ShaderOutput]]] = None

    def emit_line(self, line: str):
        self.statements.append(line)

    def defer_connection(self, line: str):
        self.connections.append(line)

    def flush_connections(self):
        self.statements.extend(self.connections)
        self.connections = []


def join_paths(paths) -> str:
    """De-duplicated, resolved, sorted, comma-joined form of a set of paths."""
    resolved = sorted({str(Path(p).resolve()) for p in paths})
    return PATH_SEPARATOR.join(resolved)


class OslNodesShaderGenerator:
    """
    Generates OSL shader group text from a ShadingGraph.
    """
    TARGET = "genosl"

    def __init__(self, registry: NodeDefinitionRegistry, options: CodegenOptions = None):
        self.registry = registry
        self.options = options or CodegenOptions()

    def generate(self, graph: ShadingGraph, target: str = None,
                 options: CodegenOptions = None) -> ShaderUnit:
        """
        Generate the shader group text for a graph.

        Args:
            graph: The graph to translate
            target: Compilation target used to resolve implementations
            options: Overrides the generator's options for this call

        Returns:
            ShaderUnit with the text and the comma-joined path metadata

        Raises:
            GenerationError: if any node has no implementation for the target
                or a parameter value cannot be formatted. No text is returned.
        """
        options = options or self.options
        target = target or options.target
        unit = CompilationUnit(graph.name)

        for node in graph.nodes:
            for inp in node.inputs:
                self._emit_input(unit, node, inp)
            self._emit_declaration(unit, node, target)

        unit.flush_connections()

        if options.wrapper:
            self._emit_wrapper(unit)

        result = ShaderUnit(
            name=graph.name,
            lines=list(unit.statements),
            paths=frozenset(unit.paths),
            search_path=join_paths(unit.paths),
        )
        logger.debug(f"Generated {len(result.lines)} statements for {graph.name}")
        return result

    def _emit_input(self, unit: CompilationUnit, node: ShaderNode, inp: ShaderInput):
        if inp.is_default:
            return

        input_name = syntax.sanitize_name(inp.name)
        connection = inp.connection

        if connection is None or connection.is_boundary():
            if inp.name in EXCLUDED_INPUTS:
                return
            try:
                value = syntax.format_value(inp.value, inp.type)
            except ValueError as err:
                raise GenerationError(f"Invalid value for {node.name}.{inp.name}: {err}",
                                      node_name=node.name) from err
            if value is None or value == syntax.NULL_VALUE:
                return
            unit.emit_line(f"param {syntax.type_name(inp.type)} {input_name} {value} ;")
        else:
            source_name = syntax.sanitize_name(connection.name)
            unit.defer_connection(
                f"connect {syntax.sanitize_name(connection.node.name)}.{source_name} "
                f"{syntax.sanitize_name(node.name)}.{input_name} ;")

    def _emit_declaration(self, unit: CompilationUnit, node: ShaderNode, target: str):
        impl = self.registry.resolve(node.nodedef_name, target)
        if impl is None:
            raise GenerationError(
                f"No implementation of {node.nodedef_name} for target '{target}' "
                f"(node '{node.name}')", node_name=node.name)

        unit.emit_line(f"shader {impl.entry_point()} {syntax.sanitize_name(node.name)} ;")
        unit.last_declared = (node, node.primary_output)

        path = self.registry.resolve_file(impl)
        if path is not None:
            unit.paths.add(path)

    def _emit_wrapper(self, unit: CompilationUnit):
        if unit.last_declared is None or unit.last_declared[1] is None:
            raise GenerationError(f"Cannot wrap {unit.name}: no declared node with an output",
                                  node_name=unit.name)
        node, output = unit.last_declared
        unit.emit_line(f"shader {WRAPPER_SHADER} {WRAPPER_NODE} ;")
        unit.emit_line(
            f"connect {syntax.sanitize_name(node.name)}.{syntax.sanitize_name(output.name)} "
            f"{WRAPPER_NODE}.{syntax.sanitize_name(output.type)}_input ;")
