"""Batch generation of OSL shader groups from MaterialX node definition libraries."""

__version__ = "0.1.0"

from .codegen.osl_nodes import CodegenOptions, OslNodesShaderGenerator, ShaderUnit
from .document.registry import NodeDefinitionRegistry
from .driver import BatchReport, LibraryCodegenDriver, instance_name, run_library_batch
from .runtime.oslc import OslCompiler

__all__ = [
    'BatchReport',
    'CodegenOptions',
    'LibraryCodegenDriver',
    'NodeDefinitionRegistry',
    'OslCompiler',
    'OslNodesShaderGenerator',
    'ShaderUnit',
    'instance_name',
    'run_library_batch',
]
