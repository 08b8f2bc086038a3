"""Compiler module for pipewright.

Exports the Compiler class and its output models:
- Compiler: Project and single-file compilation
- CompileResult: Generated text and diagnostics of one file
- ProjectResult: Per-file results of a project compile
"""

from __future__ import annotations

from pipewright.compiler.compiler import Compiler
from pipewright.compiler.models import CompileResult, ProjectResult

__all__: list[str] = [
    "CompileResult",
    "Compiler",
    "ProjectResult",
]
