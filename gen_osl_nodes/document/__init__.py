from .loader import library_folders, load_document, load_libraries
from .registry import (
    Implementation,
    NodeDef,
    NodeDefinitionRegistry,
    NodeGraphDef,
    NodeInstance,
    PortDef,
    TargetDef,
)
from .search_path import FileSearchPath

__all__ = [
    'FileSearchPath',
    'Implementation',
    'NodeDef',
    'NodeDefinitionRegistry',
    'NodeGraphDef',
    'NodeInstance',
    'PortDef',
    'TargetDef',
    'library_folders',
    'load_document',
    'load_libraries',
]
