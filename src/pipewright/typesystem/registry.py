"""Per-file type registry snapshots.

Files are registered in import-graph topological order. Each file's
registry is a pure function of its own declarations plus the already
merged snapshots of the files it imports:

1. Local declarations go into the file's scope (duplicates are errors).
2. Each import item pulls one named type out of the imported file's
   snapshot and binds it under its alias or its own name.
3. The scope is frozen into an immutable TypeRegistry.

An alias only renames the local binding. The canonical identity of a type
is the (origin file, declared name) pair, and references inside an
imported type resolve against the scope of the file that declared it.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from types import MappingProxyType

import structlog

from pipewright.diagnostics import Diagnostic, DiagnosticCode, did_you_mean, make_diagnostic
from pipewright.diagnostics.suggest import DEFAULT_MAX_DISTANCE
from pipewright.imports.paths import normalize_path
from pipewright.schemas.source_file import ImportDeclarationNode, SourceFileNode
from pipewright.schemas.types import TypeDeclarationNode

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class RegisteredType:
    """A type declaration together with where it was declared.

    Attributes:
        origin: Normalized path of the declaring file.
        name: Name used in the declaration.
        declaration: The declaration node.
    """

    origin: str
    name: str
    declaration: TypeDeclarationNode

    @property
    def canonical_id(self) -> tuple[str, str]:
        return (self.origin, self.name)


_EMPTY: Mapping[str, RegisteredType] = MappingProxyType({})


class TypeRegistry:
    """Immutable snapshot of the type names visible in one file.

    Args:
        file: Normalized path of the file this snapshot belongs to.
        bindings: Local name -> registered type.
        origin_scopes: Declaring file -> that file's own bindings, for
            every file contributing a type to this snapshot.

    Example:
        >>> registry = TypeRegistry.empty("ci.pipe")
        >>> registry.has("Result")
        False
    """

    def __init__(
        self,
        file: str,
        bindings: Mapping[str, RegisteredType],
        origin_scopes: Mapping[str, Mapping[str, RegisteredType]] | None = None,
    ) -> None:
        self._file = file
        self._bindings: Mapping[str, RegisteredType] = MappingProxyType(dict(bindings))
        scopes = dict(origin_scopes or {})
        scopes[file] = self._bindings
        self._origin_scopes: Mapping[str, Mapping[str, RegisteredType]] = MappingProxyType(scopes)

    @classmethod
    def empty(cls, file: str = "") -> TypeRegistry:
        return cls(file, {})

    @property
    def file(self) -> str:
        return self._file

    @property
    def bindings(self) -> Mapping[str, RegisteredType]:
        """Read-only view of local name -> registered type."""
        return self._bindings

    @property
    def origin_scopes(self) -> Mapping[str, Mapping[str, RegisteredType]]:
        return self._origin_scopes

    def resolve(self, name: str) -> RegisteredType | None:
        return self._bindings.get(name)

    def has(self, name: str) -> bool:
        return name in self._bindings

    def names(self) -> list[str]:
        """Locally visible type names in lexical order."""
        return sorted(self._bindings)

    def canonical(self, name: str) -> tuple[str, str] | None:
        """Canonical (origin, declared name) identity bound to ``name``."""
        registered = self._bindings.get(name)
        return registered.canonical_id if registered else None

    def scope_of(self, origin: str) -> TypeRegistry:
        """Registry view of the file that declared a type.

        Used to resolve references nested inside an imported type.
        """
        if origin == self._file:
            return self
        scope = self._origin_scopes.get(origin, _EMPTY)
        return TypeRegistry(origin, scope, self._origin_scopes)

    def __len__(self) -> int:
        return len(self._bindings)

    def __repr__(self) -> str:
        return f"TypeRegistry(file={self._file!r}, names={self.names()!r})"


@dataclass(frozen=True)
class RegistryBuild:
    """Result of registering one file.

    Attributes:
        registry: Frozen snapshot for the file.
        diagnostics: Duplicate declarations and import binding problems.
    """

    registry: TypeRegistry
    diagnostics: tuple[Diagnostic, ...] = field(default_factory=tuple)


def build_registry(
    source: SourceFileNode,
    imports: Sequence[tuple[ImportDeclarationNode, TypeRegistry | None]] = (),
    *,
    max_distance: int = DEFAULT_MAX_DISTANCE,
) -> RegistryBuild:
    """Build the type registry snapshot of one file.

    Args:
        source: The file's AST.
        imports: Each import declaration paired with the merged snapshot of
            the file it names, or None when that file is unavailable (the
            problem has already been reported and its names stay unbound).
        max_distance: Edit distance limit for suggestions.

    Returns:
        RegistryBuild with the snapshot and its diagnostics.
    """
    origin = normalize_path(source.path)
    diagnostics: list[Diagnostic] = []
    local: dict[str, RegisteredType] = {}
    bindings: dict[str, RegisteredType] = {}
    origin_scopes: dict[str, Mapping[str, RegisteredType]] = {}

    for declaration in source.types:
        existing = local.get(declaration.name)
        if existing is not None:
            first = existing.declaration.span
            diagnostics.append(
                make_diagnostic(
                    DiagnosticCode.DUPLICATE_TYPE,
                    f"Type '{declaration.name}' is already defined",
                    declaration.span,
                    hint=f"First defined at line {first.start_line}",
                )
            )
            continue
        local[declaration.name] = RegisteredType(origin, declaration.name, declaration)
    bindings.update(local)

    seen_items: set[tuple[str, str]] = set()

    for declaration, snapshot in imports:
        if snapshot is None:
            continue
        target = snapshot.file
        for scope_origin, scope in snapshot.origin_scopes.items():
            origin_scopes.setdefault(scope_origin, scope)

        for item in declaration.items:
            if (target, item.name) in seen_items:
                diagnostics.append(
                    make_diagnostic(
                        DiagnosticCode.DUPLICATE_IMPORT,
                        f"'{item.name}' is already imported from '{declaration.path}'",
                        item.span,
                    )
                )
                continue
            seen_items.add((target, item.name))

            registered = snapshot.resolve(item.name)
            if registered is None:
                available = snapshot.names()
                hint = did_you_mean(item.name, available, max_distance=max_distance)
                if hint is None:
                    hint = (
                        f"Available types: {', '.join(available)}"
                        if available
                        else f"'{declaration.path}' declares no types"
                    )
                diagnostics.append(
                    make_diagnostic(
                        DiagnosticCode.NAME_NOT_EXPORTED,
                        f"'{declaration.path}' has no type named '{item.name}'",
                        item.span,
                        hint=hint,
                    )
                )
                continue

            local_name = item.local_name
            if local_name in bindings:
                diagnostics.append(
                    make_diagnostic(
                        DiagnosticCode.IMPORT_NAME_COLLISION,
                        f"Imported name '{local_name}' collides with an existing type",
                        item.span,
                        hint=f"Use an alias: import {{ {item.name} as <name> }}",
                    )
                )
                continue
            bindings[local_name] = registered

    registry = TypeRegistry(origin, bindings, origin_scopes)
    logger.debug(
        "type_registry_built",
        file=origin,
        local_types=len(local),
        visible_types=len(bindings),
    )
    return RegistryBuild(registry=registry, diagnostics=tuple(diagnostics))
