"""File access used by the compiler.

The compiler never touches the file system directly. A host injects a
FileResolver; two implementations ship here:
- InMemoryFileResolver: path -> content mapping (tests, editors)
- LocalFileResolver: files under a root directory on disk
"""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Protocol, runtime_checkable

import structlog

from pipewright.imports.paths import normalize_path

logger = structlog.get_logger(__name__)


@runtime_checkable
class FileResolver(Protocol):
    """Source of file contents keyed by normalized path."""

    def resolve(self, path: str) -> str | None:
        """Return the content of ``path``, or None if it cannot be read."""
        ...

    def exists(self, path: str) -> bool:
        """Check whether ``path`` can be read."""
        ...


class InMemoryFileResolver:
    """FileResolver backed by a mapping.

    Keys are normalized, so ``./a/../b.pipe`` and ``b.pipe`` name the same
    file.

    Example:
        >>> resolver = InMemoryFileResolver({"ci.pipe": "path: ci.pipe"})
        >>> resolver.exists("./ci.pipe")
        True
    """

    def __init__(self, files: Mapping[str, str] | None = None) -> None:
        self._files: dict[str, str] = {}
        for path, content in (files or {}).items():
            self.add(path, content)

    def add(self, path: str, content: str) -> None:
        """Add or replace a file."""
        self._files[normalize_path(path)] = content

    def resolve(self, path: str) -> str | None:
        return self._files.get(normalize_path(path))

    def exists(self, path: str) -> bool:
        return normalize_path(path) in self._files


class LocalFileResolver:
    """FileResolver reading UTF-8 files below a root directory.

    Args:
        root: Directory relative paths are anchored at.
    """

    def __init__(self, root: str | Path = ".") -> None:
        self.root = Path(root)

    def _locate(self, path: str) -> Path:
        return self.root / normalize_path(path)

    def resolve(self, path: str) -> str | None:
        file_path = self._locate(path)
        try:
            return file_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            logger.debug("file_unreadable", path=str(file_path), error=str(e))
            return None

    def exists(self, path: str) -> bool:
        return self._locate(path).is_file()
