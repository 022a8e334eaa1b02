from .oslc import OslCompiler

__all__ = ['OslCompiler']
