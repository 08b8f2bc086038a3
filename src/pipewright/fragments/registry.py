"""Per-file registry of fragment definitions.

Job fragments and steps fragments share one namespace: a name may be
declared once across both kinds.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

import structlog

from pipewright.diagnostics import Diagnostic, DiagnosticCode, make_diagnostic
from pipewright.schemas.fragments import JobFragmentNode, StepsFragmentNode
from pipewright.schemas.source_file import SourceFileNode

logger = structlog.get_logger(__name__)


class FragmentRegistry:
    """Immutable lookup of the fragments declared in one file.

    Example:
        >>> registry = FragmentRegistry.empty()
        >>> registry.job_fragment("lint") is None
        True
    """

    def __init__(
        self,
        job_fragments: Mapping[str, JobFragmentNode],
        steps_fragments: Mapping[str, StepsFragmentNode],
    ) -> None:
        self._jobs: Mapping[str, JobFragmentNode] = MappingProxyType(dict(job_fragments))
        self._steps: Mapping[str, StepsFragmentNode] = MappingProxyType(dict(steps_fragments))

    @classmethod
    def empty(cls) -> FragmentRegistry:
        return cls({}, {})

    def job_fragment(self, name: str) -> JobFragmentNode | None:
        return self._jobs.get(name)

    def steps_fragment(self, name: str) -> StepsFragmentNode | None:
        return self._steps.get(name)

    def job_fragment_names(self) -> list[str]:
        """Job fragment names in declaration order."""
        return list(self._jobs)

    def steps_fragment_names(self) -> list[str]:
        """Steps fragment names in declaration order."""
        return list(self._steps)


@dataclass(frozen=True)
class FragmentRegistryBuild:
    """Result of registering the fragments of one file.

    Attributes:
        registry: Registry holding the first definition of every name.
        diagnostics: Duplicate and conflicting definitions.
    """

    registry: FragmentRegistry
    diagnostics: tuple[Diagnostic, ...] = field(default_factory=tuple)


def _duplicate(
    kind: str,
    fragment: JobFragmentNode | StepsFragmentNode,
    existing: JobFragmentNode | StepsFragmentNode,
    existing_kind: str,
) -> Diagnostic:
    if kind == existing_kind:
        message = f"Duplicate {kind} fragment name '{fragment.name}'"
    else:
        message = (
            f"Fragment name '{fragment.name}' conflicts with an existing "
            f"{existing_kind} fragment"
        )
    return make_diagnostic(
        DiagnosticCode.DUPLICATE_FRAGMENT,
        message,
        fragment.span,
        hint=f"Rename this fragment; the name is already defined at line "
        f"{existing.span.start_line}",
    )


def build_fragment_registry(source: SourceFileNode) -> FragmentRegistryBuild:
    """Register every job and steps fragment of a file.

    Job fragments are registered before steps fragments, so on a name
    conflict between the two kinds the job fragment wins.

    Args:
        source: The file's AST.

    Returns:
        FragmentRegistryBuild with the registry and its diagnostics.
    """
    diagnostics: list[Diagnostic] = []
    jobs: dict[str, JobFragmentNode] = {}
    steps: dict[str, StepsFragmentNode] = {}

    for job_fragment in source.job_fragments:
        existing = jobs.get(job_fragment.name)
        if existing is not None:
            diagnostics.append(_duplicate("job", job_fragment, existing, "job"))
            continue
        jobs[job_fragment.name] = job_fragment

    for steps_fragment in source.steps_fragments:
        if steps_fragment.name in steps:
            diagnostics.append(
                _duplicate("steps", steps_fragment, steps[steps_fragment.name], "steps")
            )
            continue
        if steps_fragment.name in jobs:
            diagnostics.append(
                _duplicate("steps", steps_fragment, jobs[steps_fragment.name], "job")
            )
            continue
        steps[steps_fragment.name] = steps_fragment

    registry = FragmentRegistry(jobs, steps)
    logger.debug(
        "fragment_registry_built",
        file=source.path,
        job_fragments=len(jobs),
        steps_fragments=len(steps),
    )
    return FragmentRegistryBuild(registry=registry, diagnostics=tuple(diagnostics))
