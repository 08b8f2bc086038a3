"""pipewright: compiler core for a typed workflow language.

This package provides:
- Compiler: Source files -> workflow YAML plus diagnostics
- AST schemas: Pydantic models for source files, workflows and types
- Diagnostics: Coded, span-anchored problem reports
- Import resolution, type registries, validators and code generation
"""

from __future__ import annotations

__version__ = "0.1.0"

# Compiler and output models
from pipewright.compiler import CompileResult, Compiler, ProjectResult

# Configuration
from pipewright.config import CompilerConfig

# Diagnostics
from pipewright.diagnostics import (
    Diagnostic,
    DiagnosticCategory,
    DiagnosticCode,
    Severity,
    format_diagnostic,
    format_diagnostics,
)

# Error types
from pipewright.errors import (
    CompilationError,
    ConfigurationError,
    ExpressionSyntaxError,
    PipewrightError,
    StructuralError,
)

# File access
from pipewright.imports import FileResolver, InMemoryFileResolver, LocalFileResolver

# Logging
from pipewright.observability import configure_logging

# Schema models
from pipewright.schemas import SourceFileNode, WorkflowNode, load_source_file

__all__ = [
    "__version__",
    # Compiler
    "Compiler",
    "CompileResult",
    "ProjectResult",
    # Configuration
    "CompilerConfig",
    # Diagnostics
    "Diagnostic",
    "DiagnosticCategory",
    "DiagnosticCode",
    "Severity",
    "format_diagnostic",
    "format_diagnostics",
    # Errors
    "PipewrightError",
    "StructuralError",
    "CompilationError",
    "ExpressionSyntaxError",
    "ConfigurationError",
    # File access
    "FileResolver",
    "InMemoryFileResolver",
    "LocalFileResolver",
    # Logging
    "configure_logging",
    # Schemas
    "SourceFileNode",
    "WorkflowNode",
    "load_source_file",
]
