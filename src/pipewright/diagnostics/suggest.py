"""Nearest-name suggestions for "did you mean" hints."""

from __future__ import annotations

from collections.abc import Iterable

DEFAULT_MAX_DISTANCE = 3


def edit_distance(a: str, b: str) -> int:
    """Levenshtein distance between two strings.

    Example:
        >>> edit_distance("Reslt", "Result")
        1
    """
    if a == b:
        return 0
    if not a:
        return len(b)
    if not b:
        return len(a)

    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        current = [i]
        for j, cb in enumerate(b, start=1):
            current.append(
                min(
                    previous[j] + 1,
                    current[j - 1] + 1,
                    previous[j - 1] + (ca != cb),
                )
            )
        previous = current
    return previous[-1]


def suggest_name(
    name: str,
    candidates: Iterable[str],
    *,
    max_distance: int = DEFAULT_MAX_DISTANCE,
) -> str | None:
    """Find the candidate closest to ``name``.

    Comparison is case-insensitive. Ties go to the lexically smallest
    candidate so suggestions are deterministic.

    Args:
        name: The unknown name.
        candidates: Known names.
        max_distance: Largest edit distance still worth suggesting.

    Returns:
        Closest candidate, or None if nothing is close enough.
    """
    best: tuple[int, str] | None = None
    lowered = name.lower()
    for candidate in sorted(set(candidates)):
        if candidate == name:
            continue
        distance = edit_distance(lowered, candidate.lower())
        if distance > max_distance:
            continue
        if best is None or distance < best[0]:
            best = (distance, candidate)
    return best[1] if best else None


def did_you_mean(
    name: str,
    candidates: Iterable[str],
    *,
    max_distance: int = DEFAULT_MAX_DISTANCE,
) -> str | None:
    """Return a "Did you mean 'X'?" hint, or None."""
    suggestion = suggest_name(name, candidates, max_distance=max_distance)
    if suggestion is None:
        return None
    return f"Did you mean '{suggestion}'?"
