"""Graph analysis shared by the import graph and job dependency checks."""

from __future__ import annotations

from pipewright.analysis.graph import DirectedGraph

__all__ = ["DirectedGraph"]
