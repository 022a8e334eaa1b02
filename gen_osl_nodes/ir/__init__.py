from .builder import GraphBuilder
from .graph import ShaderInput, ShaderNode, ShaderOutput, ShadingGraph
from .types import DataType

__all__ = ['DataType', 'GraphBuilder', 'ShaderInput', 'ShaderNode', 'ShaderOutput', 'ShadingGraph']
