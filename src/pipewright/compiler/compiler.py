"""Compiler class for pipewright.

The Compiler turns source files into workflow YAML plus diagnostics:

1. Discover files breadth-first from the entry paths through the resolver
2. Build the complete import graph and report import cycles
3. Build type registries in dependency order, imports before importers
4. Expand fragments, then validate, transform and emit each file

Problems in the sources never raise; they are reported as diagnostics on
the per-file CompileResult. Generation still runs when errors exist.
"""

from __future__ import annotations

import hashlib
from collections import deque
from collections.abc import Iterable
from dataclasses import dataclass, field

from pipewright.codegen import emit, transform
from pipewright.compiler.models import CompileResult, ProjectResult
from pipewright.config import CompilerConfig
from pipewright.diagnostics import Diagnostic, DiagnosticCode, has_errors, make_diagnostic
from pipewright.errors import StructuralError
from pipewright.fragments import build_fragment_registry, expand_fragments
from pipewright.imports import (
    FileResolver,
    ImportEdge,
    ImportGraph,
    PathResolver,
    normalize_path,
)
from pipewright.observability import get_logger
from pipewright.schemas.document import FrontEnd, load_source_file
from pipewright.schemas.source_file import ImportDeclarationNode, SourceFileNode
from pipewright.schemas.span import Span
from pipewright.typesystem import TypeRegistry, build_registry, check_type_references
from pipewright.validators import run_workflow_validators, validate_type_declarations


@dataclass
class _SourceUnit:
    """A discovered file and what is known about it before compiling."""

    path: str
    source: SourceFileNode | None = None
    source_hash: str | None = None
    imports: list[tuple[ImportDeclarationNode, str | None]] = field(default_factory=list)
    diagnostics: list[Diagnostic] = field(default_factory=list)


class Compiler:
    """Compile source files to workflow YAML.

    Args:
        resolver: Reads source files by normalized path.
        front_end: Turns file content into a SourceFileNode.
        config: Compiler configuration. Defaults to CompilerConfig().

    Example:
        >>> resolver = InMemoryFileResolver({"ci.pipe": source_text})
        >>> result = Compiler(resolver).compile_file("ci.pipe")
        >>> result.success
        True
    """

    def __init__(
        self,
        resolver: FileResolver,
        front_end: FrontEnd = load_source_file,
        config: CompilerConfig | None = None,
    ) -> None:
        self.resolver = resolver
        self.front_end = front_end
        self.config = config or CompilerConfig()
        self.paths = PathResolver(
            project_root=self.config.project_root,
            source_extension=self.config.source_extension,
        )
        self._log = get_logger().bind(component="compiler")

    def compile_project(self, entry_paths: Iterable[str]) -> ProjectResult:
        """Compile the entry files and every file they import.

        Args:
            entry_paths: Paths of the files to start discovery from.

        Returns:
            ProjectResult with one CompileResult per discovered file.
        """
        entries = list(dict.fromkeys(normalize_path(p) for p in entry_paths))
        self._log.info("compile_started", entries=entries)

        units = self._discover(entries)
        graph = ImportGraph()
        for unit in units.values():
            graph.add_file(unit.path, self._edges(unit))

        cyclic = self._report_cycles(graph, units)
        acyclic = ImportGraph()
        for unit in units.values():
            if unit.path not in cyclic:
                edges = [e for e in self._edges(unit) if e.target not in cyclic]
                acyclic.add_file(unit.path, edges)
        order = acyclic.get_topological_order() + sorted(cyclic)

        snapshots: dict[str, TypeRegistry] = {}
        results: dict[str, CompileResult] = {}
        for path in order:
            unit = units[path]
            imports: list[tuple[ImportDeclarationNode, TypeRegistry | None]] = []
            for declaration, target in unit.imports:
                if target in cyclic:
                    # Members of a cycle were reported with the cycle itself
                    if path not in cyclic:
                        unit.diagnostics.append(
                            make_diagnostic(
                                DiagnosticCode.IMPORT_FROM_CYCLE,
                                f"'{declaration.path}' is part of an import cycle "
                                "and cannot be imported",
                                declaration.span,
                            )
                        )
                    imports.append((declaration, None))
                    continue
                imports.append((declaration, snapshots.get(target) if target else None))

            result, registry = self._compile_unit(unit, imports)
            if registry is not None:
                snapshots[path] = registry
            results[path] = result

        project = ProjectResult(results=results, order=order)
        self._log.info(
            "compile_completed",
            files=len(order),
            failed=sum(1 for r in results.values() if not r.success),
        )
        return project

    def compile_file(self, path: str) -> CompileResult:
        """Compile one file and its imports, returning the file's result."""
        return self.compile_project([path]).results[normalize_path(path)]

    def compile_node(self, source: SourceFileNode) -> CompileResult:
        """Compile an already parsed file without resolving its imports.

        Imported names stay unbound, so references to them are reported
        as undefined types.
        """
        unit = _SourceUnit(path=normalize_path(source.path), source=source)
        imports = [(declaration, None) for declaration in source.imports]
        result, _ = self._compile_unit(unit, imports)
        return result

    def _discover(self, entries: list[str]) -> dict[str, _SourceUnit]:
        units: dict[str, _SourceUnit] = {}
        queue = deque(entries)
        seen = set(entries)
        while queue:
            path = queue.popleft()
            unit = self._load(path)
            units[path] = unit
            self._log.debug("file_discovered", path=path, imports=len(unit.imports))
            for _, target in unit.imports:
                if target is not None and target not in seen:
                    seen.add(target)
                    queue.append(target)
        return units

    def _load(self, path: str) -> _SourceUnit:
        unit = _SourceUnit(path=path)
        content = self.resolver.resolve(path)
        if content is None:
            unit.diagnostics.append(
                make_diagnostic(
                    DiagnosticCode.UNRESOLVABLE_IMPORT,
                    f"Cannot read file '{path}'",
                    Span(file=path),
                )
            )
            return unit

        unit.source_hash = hashlib.sha256(content.encode()).hexdigest()
        try:
            source = self.front_end(content, path)
        except StructuralError as e:
            unit.diagnostics.append(
                make_diagnostic(
                    DiagnosticCode.STRUCTURAL_INVALID,
                    e.user_message,
                    Span(file=path),
                    hint="; ".join(e.problems[1:]) or None,
                )
            )
            return unit

        if normalize_path(source.path) != path:
            source = source.model_copy(update={"path": path})
        unit.source = source

        for declaration in source.imports:
            resolution = self.paths.resolve(declaration.path, path, declaration.span)
            unit.diagnostics.extend(resolution.diagnostics)
            target = resolution.path
            if target is not None and not self.resolver.exists(target):
                unit.diagnostics.append(
                    make_diagnostic(
                        DiagnosticCode.UNRESOLVABLE_IMPORT,
                        f"Cannot resolve import '{declaration.path}'",
                        declaration.span,
                        hint=f"No file at '{target}'",
                    )
                )
                target = None
            unit.imports.append((declaration, target))
        return unit

    @staticmethod
    def _edges(unit: _SourceUnit) -> list[ImportEdge]:
        return [
            ImportEdge(target, tuple(item.name for item in declaration.items))
            for declaration, target in unit.imports
            if target is not None
        ]

    def _report_cycles(self, graph: ImportGraph, units: dict[str, _SourceUnit]) -> set[str]:
        cyclic: set[str] = set()
        for component in graph.cyclic_components():
            members = set(component)
            cycle = graph.cycle_through(component)
            chain = " -> ".join(cycle)
            self._log.warning("import_cycle_detected", cycle=cycle)
            for path in component:
                unit = units[path]
                span = next(
                    (d.span for d, target in unit.imports if target in members),
                    Span(file=path),
                )
                unit.diagnostics.append(
                    make_diagnostic(
                        DiagnosticCode.CIRCULAR_IMPORT,
                        f"Circular import: {chain}",
                        span,
                        hint="Move the shared types into a file both can import",
                    )
                )
            cyclic |= members
        return cyclic

    def _compile_unit(
        self,
        unit: _SourceUnit,
        imports: list[tuple[ImportDeclarationNode, TypeRegistry | None]],
    ) -> tuple[CompileResult, TypeRegistry | None]:
        diagnostics = list(unit.diagnostics)
        source = unit.source
        if source is None:
            result = CompileResult(
                path=unit.path,
                diagnostics=diagnostics,
                success=False,
                source_hash=unit.source_hash,
            )
            self._log_result(result)
            return result, None

        max_distance = self.config.suggestion_max_distance
        fragments = build_fragment_registry(source)
        diagnostics.extend(fragments.diagnostics)
        if source.workflow is not None:
            expansion = expand_fragments(
                source.workflow, fragments.registry, max_distance=max_distance
            )
            diagnostics.extend(expansion.diagnostics)
            source = source.model_copy(update={"workflow": expansion.workflow})

        build = build_registry(source, imports, max_distance=max_distance)
        registry = build.registry
        diagnostics.extend(build.diagnostics)
        diagnostics.extend(check_type_references(source, registry, max_distance=max_distance))
        diagnostics.extend(validate_type_declarations(source, self.config))

        text = None
        if source.workflow is not None:
            diagnostics.extend(run_workflow_validators(source.workflow, registry, self.config))
            text = emit(
                transform(source.workflow, registry, self.config, fragments.registry)
            )

        result = CompileResult(
            path=unit.path,
            text=text,
            diagnostics=diagnostics,
            success=not has_errors(diagnostics),
            source_hash=unit.source_hash,
        )
        self._log_result(result)
        return result, registry

    def _log_result(self, result: CompileResult) -> None:
        self._log.info(
            "file_compiled",
            path=result.path,
            success=result.success,
            errors=len(result.errors),
            warnings=len(result.warnings),
        )
