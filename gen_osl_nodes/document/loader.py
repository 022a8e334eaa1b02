"""
Loads MaterialX `.mtlx` library files into a NodeDefinitionRegistry.

Only the elements the generator needs are read: targetdef, nodedef,
implementation and nodegraph (when it implements a nodedef). Everything else
is ignored. Files are loaded in sorted path order within each library folder
and folders in the order given, so the registry order is stable.
"""

import logging
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Iterable, List, Optional, Set

from ..errors import DocumentError
from .registry import (
    GraphOutput,
    Implementation,
    InputBinding,
    NodeDef,
    NodeDefinitionRegistry,
    NodeGraphDef,
    NodeInstance,
    PortDef,
    TargetDef,
)
from .search_path import FileSearchPath

logger = logging.getLogger(__name__)

LIBRARIES_FOLDER = "libraries"
TARGETS_FOLDER = "libraries/targets"
XINCLUDE_TAG = "{http://www.w3.org/2001/XInclude}include"

# Child tags of a nodegraph that are not node instances
_NODEGRAPH_NON_NODE_TAGS = {"input", "output", "token", "backdrop", "parameter"}


def _required(elem: ET.Element, attr: str, source: str) -> str:
    value = elem.get(attr)
    if not value:
        raise DocumentError(f"<{elem.tag}> is missing required attribute '{attr}'",
                            element_name=elem.get("name"), source=source)
    return value


def parse_port(elem: ET.Element, source: str) -> PortDef:
    return PortDef(
        name=_required(elem, "name", source),
        type=_required(elem, "type", source),
        value=elem.get("value"),
    )


def parse_nodedef(elem: ET.Element, source: str) -> NodeDef:
    nodedef = NodeDef(
        name=_required(elem, "name", source),
        node=_required(elem, "node", source),
        nodegroup=elem.get("nodegroup", ""),
        source=source,
    )
    for child in elem:
        if child.tag == "input":
            nodedef.inputs.append(parse_port(child, source))
        elif child.tag == "output":
            nodedef.outputs.append(parse_port(child, source))

    # Single-output definitions may declare the type on the nodedef itself.
    if not nodedef.outputs and elem.get("type"):
        nodedef.outputs.append(PortDef("out", elem.get("type")))
    return nodedef


def parse_implementation(elem: ET.Element, source: str) -> Implementation:
    return Implementation(
        name=_required(elem, "name", source),
        nodedef=_required(elem, "nodedef", source),
        target=elem.get("target", ""),
        file=elem.get("file", ""),
        function=elem.get("function", ""),
        source_dir=Path(source).parent if source else None,
    )


def parse_node_instance(elem: ET.Element, source: str) -> NodeInstance:
    instance = NodeInstance(
        name=_required(elem, "name", source),
        category=elem.tag,
        type=elem.get("type", ""),
        nodedef=elem.get("nodedef"),
    )
    for child in elem.findall("input"):
        instance.inputs.append(InputBinding(
            name=_required(child, "name", source),
            type=child.get("type", ""),
            value=child.get("value"),
            nodename=child.get("nodename"),
            output=child.get("output"),
            interfacename=child.get("interfacename"),
        ))
    return instance


def parse_node_graph(elem: ET.Element, source: str) -> NodeGraphDef:
    graph = NodeGraphDef(
        name=_required(elem, "name", source),
        nodedef=_required(elem, "nodedef", source),
    )
    for child in elem:
        if not isinstance(child.tag, str):
            # Comments and processing instructions
            continue
        if child.tag == "output":
            graph.outputs.append(GraphOutput(
                name=_required(child, "name", source),
                type=_required(child, "type", source),
                nodename=_required(child, "nodename", source),
                output=child.get("output"),
            ))
        elif child.tag not in _NODEGRAPH_NON_NODE_TAGS:
            graph.nodes.append(parse_node_instance(child, source))
    return graph


def load_document(path: Path, registry: NodeDefinitionRegistry,
                  _visited: Optional[Set[Path]] = None) -> NodeDefinitionRegistry:
    """
    Parse one .mtlx file into the registry.

    XInclude references are followed relative to the including file.

    Raises:
        DocumentError: if the file is not well-formed or misses attributes
    """
    path = Path(path)
    visited = _visited if _visited is not None else set()
    key = path.resolve()
    if key in visited:
        return registry
    visited.add(key)

    source = str(path)
    try:
        root = ET.parse(path).getroot()
    except (OSError, ET.ParseError) as err:
        raise DocumentError(f"Failed to read library document {path}: {err}", source=source) from err

    if root.tag != "materialx":
        raise DocumentError(f"Not a MaterialX document (root is <{root.tag}>): {path}", source=source)

    for elem in root:
        tag = elem.tag
        if tag == XINCLUDE_TAG:
            href = _required(elem, "href", source)
            load_document(path.parent / href, registry, visited)
        elif tag == "targetdef":
            registry.add_targetdef(TargetDef(_required(elem, "name", source), elem.get("inherit", "")))
        elif tag == "nodedef":
            registry.add_nodedef(parse_nodedef(elem, source))
        elif tag == "implementation":
            registry.add_implementation(parse_implementation(elem, source))
        elif tag == "nodegraph":
            if elem.get("nodedef"):
                registry.add_node_graph(parse_node_graph(elem, source))
            else:
                logger.debug(f"Ignoring nodegraph without nodedef: {elem.get('name')}")

    return registry


def find_library_files(folder: Path) -> List[Path]:
    """All .mtlx files below a folder, in sorted order."""
    return sorted(p for p in folder.rglob("*.mtlx") if p.is_file())


def library_folders(libraries: Iterable[str] = ()) -> List[str]:
    """
    Folders to load for a list of library names.

    An empty list selects the whole 'libraries' folder. A subset always
    includes 'libraries/targets' so target definitions are known.
    """
    names = [name.strip() for name in libraries if name and name.strip()]
    if not names:
        return [LIBRARIES_FOLDER]
    return [TARGETS_FOLDER] + [f"{LIBRARIES_FOLDER}/{name}" for name in names]


def load_libraries(folders: Iterable[str], search_path: FileSearchPath,
                   registry: NodeDefinitionRegistry = None) -> NodeDefinitionRegistry:
    """
    Load every .mtlx file found in the given folders under each search root.

    Args:
        folders: Library folders relative to the search roots
        search_path: Roots to search, in priority order
        registry: Registry to populate; a new one is created when omitted

    Returns:
        The populated registry
    """
    if registry is None:
        registry = NodeDefinitionRegistry(search_path)

    visited: Set[Path] = set()
    for folder in folders:
        roots = search_path.find_all(folder)
        if not roots:
            logger.warning(f"Library folder not found in search path: {folder}")
            continue
        for root in roots:
            if not root.is_dir():
                continue
            files = find_library_files(root)
            logger.debug(f"Loading {len(files)} documents from {root}")
            for path in files:
                load_document(path, registry, visited)

    logger.info(f"Loaded {len(registry)} node definitions")
    return registry
