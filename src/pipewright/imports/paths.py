"""Import path resolution.

This module handles turning the path written in an import statement into
the normalized path of the imported file:
- Backslashes become forward slashes, duplicate separators collapse
- Relative paths resolve against the importing file's directory
- ``..`` segments collapse and redundant ``.`` segments disappear
- The source extension is mandatory; nothing is inferred
- Absolute paths and paths escaping the project root draw warnings
"""

from __future__ import annotations

import posixpath
import re
from dataclasses import dataclass, field

from pipewright.config import DEFAULT_SOURCE_EXTENSION
from pipewright.diagnostics import Diagnostic, DiagnosticCode, make_diagnostic
from pipewright.schemas.span import Span

_DRIVE_PATTERN = re.compile(r"^[A-Za-z]:/")
_DUPLICATE_SLASHES = re.compile(r"/{2,}")


def normalize_path(path: str) -> str:
    """Normalize a path to its canonical forward-slash form.

    Example:
        >>> normalize_path("src\\\\lib/./../types.pipe")
        'src/types.pipe'
    """
    normalized = _DUPLICATE_SLASHES.sub("/", path.replace("\\", "/"))
    return posixpath.normpath(normalized) if normalized else "."


def is_absolute_path(path: str) -> bool:
    """Check for a POSIX root or a Windows drive prefix."""
    normalized = path.replace("\\", "/")
    return normalized.startswith("/") or bool(_DRIVE_PATTERN.match(normalized))


def is_within_root(path: str, root: str) -> bool:
    """Check whether a normalized path stays inside ``root``.

    An empty root means the directory relative paths are anchored at.
    Absolute and relative paths cannot be compared and are accepted.
    """
    root_n = normalize_path(root) if root else "."
    if is_absolute_path(path) != is_absolute_path(root_n):
        return True
    if root_n == ".":
        return path != ".." and not path.startswith("../")
    if root_n == "/":
        return True
    return path == root_n or path.startswith(root_n.rstrip("/") + "/")


@dataclass(frozen=True)
class PathResolution:
    """Outcome of resolving one import path.

    Attributes:
        path: Normalized path of the imported file, or None if unusable.
        diagnostics: Warnings or errors raised while resolving.
    """

    path: str | None
    diagnostics: tuple[Diagnostic, ...] = field(default_factory=tuple)


class PathResolver:
    """Resolves import paths relative to the importing file.

    Args:
        project_root: Directory imports should stay within.
        source_extension: Mandatory extension of source files.

    Example:
        >>> resolver = PathResolver()
        >>> resolver.resolve("../shared/types.pipe", "workflows/ci.pipe").path
        'shared/types.pipe'
    """

    def __init__(
        self,
        project_root: str = "",
        source_extension: str = DEFAULT_SOURCE_EXTENSION,
    ) -> None:
        self.project_root = project_root
        self.source_extension = source_extension

    def resolve(
        self,
        import_path: str,
        from_file: str,
        span: Span | None = None,
    ) -> PathResolution:
        """Resolve ``import_path`` written in ``from_file``.

        Args:
            import_path: Path as written in the import statement.
            from_file: Path of the importing file.
            span: Location of the import, for diagnostics.

        Returns:
            PathResolution with the normalized path (None when the
            extension is missing) and any diagnostics.
        """
        span = span or Span(file=from_file)
        diagnostics: list[Diagnostic] = []

        if not self._has_extension(import_path):
            diagnostics.append(
                make_diagnostic(
                    DiagnosticCode.MISSING_EXTENSION,
                    f"Import path '{import_path}' must end with '{self.source_extension}'",
                    span,
                    hint=f"Use '{import_path}{self.source_extension}'",
                )
            )
            return PathResolution(path=None, diagnostics=tuple(diagnostics))

        if is_absolute_path(import_path):
            resolved = normalize_path(import_path)
            diagnostics.append(
                make_diagnostic(
                    DiagnosticCode.ABSOLUTE_PATH,
                    f"Absolute import path '{import_path}' is not portable",
                    span,
                    hint="Use a path relative to the importing file",
                )
            )
        else:
            from_dir = posixpath.dirname(normalize_path(from_file))
            resolved = normalize_path(posixpath.join(from_dir, import_path))

        if not is_within_root(resolved, self.project_root):
            diagnostics.append(
                make_diagnostic(
                    DiagnosticCode.PATH_ESCAPES_ROOT,
                    f"Import path '{import_path}' resolves outside the project root",
                    span,
                    hint=f"Resolved to '{resolved}'",
                )
            )

        return PathResolution(path=resolved, diagnostics=tuple(diagnostics))

    def _has_extension(self, import_path: str) -> bool:
        basename = posixpath.basename(import_path.replace("\\", "/"))
        return basename.endswith(self.source_extension) and len(basename) > len(
            self.source_extension
        )
