"""Compiler output models.

This module defines the results produced by the Compiler:
- CompileResult: generated text and diagnostics for one file
- ProjectResult: per-file results of a project compile, in compile order
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from pipewright.diagnostics import Diagnostic, Severity


class CompileResult(BaseModel):
    """Outcome of compiling one source file.

    Attributes:
        path: Normalized path of the source file.
        text: Generated workflow YAML, or None when the file could not be
            loaded or declares no workflow.
        diagnostics: Every diagnostic for the file, in reporting order.
        success: False when any diagnostic has error severity.
        source_hash: SHA-256 of the source text, when read from a resolver.

    Example:
        >>> result = compiler.compile_file("ci.pipe")
        >>> if not result.success:
        ...     print(format_diagnostics(result.diagnostics))
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    path: str = Field(default="", description="Normalized source path")
    text: str | None = Field(default=None, description="Generated workflow YAML")
    diagnostics: list[Diagnostic] = Field(default_factory=list)
    success: bool = Field(..., description="True when no error diagnostics were reported")
    source_hash: str | None = Field(default=None, description="SHA-256 of the source text")

    @property
    def errors(self) -> list[Diagnostic]:
        return [d for d in self.diagnostics if d.severity == Severity.ERROR]

    @property
    def warnings(self) -> list[Diagnostic]:
        return [d for d in self.diagnostics if d.severity == Severity.WARNING]


class ProjectResult(BaseModel):
    """Outcome of compiling a set of entry files and everything they import.

    Attributes:
        results: Normalized path -> CompileResult, in compile order.
        order: Compile order. Imports precede importers; files in import
            cycles come last, in lexical order.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    results: dict[str, CompileResult] = Field(default_factory=dict)
    order: list[str] = Field(default_factory=list)

    @property
    def success(self) -> bool:
        return all(result.success for result in self.results.values())

    def diagnostics(self) -> list[Diagnostic]:
        """Diagnostics of every file, in compile order."""
        return [d for path in self.order for d in self.results[path].diagnostics]
