"""Structural type system: registry snapshots and reference checks."""

from __future__ import annotations

from pipewright.typesystem.references import (
    PropertyResolution,
    ResolvedType,
    check_property_access,
    check_type_references,
    describe_type,
    iter_references,
    resolve_type,
    unwrap_nullable,
)
from pipewright.typesystem.registry import (
    RegisteredType,
    RegistryBuild,
    TypeRegistry,
    build_registry,
)

__all__ = [
    "PropertyResolution",
    "RegisteredType",
    "RegistryBuild",
    "ResolvedType",
    "TypeRegistry",
    "build_registry",
    "check_property_access",
    "check_type_references",
    "describe_type",
    "iter_references",
    "resolve_type",
    "unwrap_nullable",
]
