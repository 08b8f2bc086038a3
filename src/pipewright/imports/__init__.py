"""Cross-file imports: path resolution, file access and the import graph."""

from __future__ import annotations

from pipewright.imports.dependency_graph import ImportEdge, ImportGraph
from pipewright.imports.file_resolver import FileResolver, InMemoryFileResolver, LocalFileResolver
from pipewright.imports.paths import (
    PathResolution,
    PathResolver,
    is_absolute_path,
    is_within_root,
    normalize_path,
)

__all__ = [
    "FileResolver",
    "ImportEdge",
    "ImportGraph",
    "InMemoryFileResolver",
    "LocalFileResolver",
    "PathResolution",
    "PathResolver",
    "is_absolute_path",
    "is_within_root",
    "normalize_path",
]
