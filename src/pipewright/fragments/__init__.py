"""Reusable job and steps fragments.

This module exports:
- FragmentRegistry / build_fragment_registry: per-file fragment lookup
- expand_fragments: instantiation of fragment jobs and steps spreads
"""

from __future__ import annotations

from pipewright.fragments.expand import (
    PARAM_PATTERN,
    FragmentExpansion,
    expand_fragments,
    format_param,
    substitute_params,
)
from pipewright.fragments.registry import (
    FragmentRegistry,
    FragmentRegistryBuild,
    build_fragment_registry,
)

__all__ = [
    "PARAM_PATTERN",
    "FragmentExpansion",
    "FragmentRegistry",
    "FragmentRegistryBuild",
    "build_fragment_registry",
    "expand_fragments",
    "format_param",
    "substitute_params",
]
