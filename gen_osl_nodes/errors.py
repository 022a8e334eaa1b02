"""
Custom exceptions for the OSL node library generator.

This module provides a hierarchy of exceptions for better error handling
and debugging. Use specific exceptions for clearer error messages.

Exception Hierarchy:
    GenOslNodesError (base)
    ├── ConfigurationError
    ├── DocumentError
    ├── GraphError
    └── CodegenError
        ├── GenerationError
        └── CompilerDiagnosticError
"""

from typing import List, Optional


class GenOslNodesError(Exception):
    """Base exception for all generator errors."""
    pass


# =============================================================================
# Configuration Errors
# =============================================================================

class ConfigurationError(GenOslNodesError):
    """
    Raised when a command-line setting is missing or invalid.

    These are fatal: the batch is aborted before any node is generated.

    Attributes:
        option: The offending command-line option (e.g. '--outputPath')
        path: The path that failed validation, if any
    """

    def __init__(self, message: str, option: str = None, path: str = None):
        super().__init__(message)
        self.option = option
        self.path = path


# =============================================================================
# Document Errors
# =============================================================================

class DocumentError(GenOslNodesError):
    """Raised when a library document is malformed or inconsistent."""

    def __init__(self, message: str, element_name: str = None, source: str = None):
        super().__init__(message)
        self.element_name = element_name
        self.source = source


class GraphError(GenOslNodesError):
    """Raised when a shading graph cannot be built from a node instance."""

    def __init__(self, message: str, node_name: str = None):
        super().__init__(message)
        self.node_name = node_name


# =============================================================================
# Codegen Errors
# =============================================================================

class CodegenError(GenOslNodesError):
    """Base exception for code generation and compilation errors of a node."""

    def __init__(self, message: str, node_name: str = None):
        super().__init__(message)
        self.node_name = node_name

    @property
    def error_log(self) -> List[str]:
        return []


class GenerationError(CodegenError):
    """
    Raised when a shading graph cannot be turned into OSL text.

    The unit is discarded as a whole; no partial text is ever returned.
    """
    pass


class CompilerDiagnosticError(CodegenError):
    """
    Raised when the external OSL compiler rejects a generated file.

    Attributes:
        source_path: The .osl file handed to the compiler
        error_log: Diagnostic lines reported by the compiler
    """

    def __init__(self, message: str, node_name: str = None,
                 source_path: str = None, error_log: Optional[List[str]] = None):
        super().__init__(message, node_name)
        self.source_path = source_path
        self._error_log = list(error_log or [])

    @property
    def error_log(self) -> List[str]:
        return self._error_log

    def format_with_log(self) -> str:
        """Format error with its diagnostic lines."""
        if not self._error_log:
            return str(self)

        lines = [f"CompilerDiagnosticError: {self}"]
        if self.source_path:
            lines.append(f"Source: {self.source_path}")
        lines.append("--- COMPILER OUTPUT ---")
        lines.extend(self._error_log)
        lines.append("-----------------------")
        return '\n'.join(lines)
