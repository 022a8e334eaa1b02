# OSL shader group generation

from .osl_nodes import CodegenOptions, OslNodesShaderGenerator, ShaderUnit

__all__ = ['CodegenOptions', 'OslNodesShaderGenerator', 'ShaderUnit']
