"""Matrix job accounting.

A matrix job runs once per point of the Cartesian product of its axes,
adjusted by ``include`` and ``exclude`` entries:

- base = product of axis lengths (0 when there are no axes)
- an include entry adds one point unless it lands on an existing point
  (base or an earlier include). It lands when it names at least one axis
  key and some existing point agrees with every axis value it names;
  extra non-axis keys then only attach properties.
- an exclude entry removes every distinct point agreeing with all of its
  keys; a point matched by several excludes is removed once.

Counting over the base product is exact and never enumerates it: only
values named by some exclude entry are distinguished, every other value
of an axis is folded into one weighted bucket.
"""

from __future__ import annotations

import itertools
import math
from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass

from pipewright.schemas.workflow import MatrixCombination, MatrixValue

ValueKey = tuple[str, object]

_OTHER: ValueKey = ("other", None)


def value_key(value: MatrixValue) -> ValueKey:
    """Comparison key keeping booleans apart from numbers (True != 1)."""
    if isinstance(value, bool):
        return ("bool", value)
    if isinstance(value, (int, float)):
        return ("number", float(value))
    return ("string", value)


def _matches(entry: Mapping[str, MatrixValue], point: Mapping[str, MatrixValue]) -> bool:
    return all(k in point and value_key(point[k]) == value_key(v) for k, v in entry.items())


@dataclass(frozen=True)
class MatrixCount:
    """Exact job count of one matrix.

    Attributes:
        axis_lengths: (axis key, number of values) in declaration order.
        base: Size of the Cartesian product.
        include_additions: Points added by include entries.
        exclude_removals: Points removed by exclude entries.
        total: Final number of jobs.
    """

    axis_lengths: tuple[tuple[str, int], ...]
    base: int
    include_additions: int
    exclude_removals: int
    total: int

    def describe(self) -> str:
        """Arithmetic behind the count.

        Example:
            >>> count_matrix_jobs({"os": ["a", "b", "c"], "node": [1, 2, 3, 4]}).describe()
            'os(3) × node(4) = 12; +0 include, -0 exclude → 12'
        """
        if self.axis_lengths:
            product = " × ".join(f"{key}({length})" for key, length in self.axis_lengths)
        else:
            product = "no axes"
        return (
            f"{product} = {self.base}; +{self.include_additions} include, "
            f"-{self.exclude_removals} exclude → {self.total}"
        )


def _axis_buckets(
    values: Sequence[MatrixValue], named: set[ValueKey]
) -> list[tuple[ValueKey, int]]:
    """Group axis values into named values and one bucket for the rest."""
    weights: dict[ValueKey, int] = {}
    for value in values:
        key = value_key(value)
        bucket = key if key in named else _OTHER
        weights[bucket] = weights.get(bucket, 0) + 1
    return list(weights.items())


def _count_excluded_base(
    axes: Mapping[str, Sequence[MatrixValue]],
    excludes: Sequence[MatrixCombination],
) -> int:
    """Number of base points matched by at least one exclude entry."""
    applicable = [e for e in excludes if e and all(k in axes for k in e)]
    if not applicable:
        return 0

    constrained = [k for k in axes if any(k in e for e in applicable)]
    free_product = math.prod(len(v) for k, v in axes.items() if k not in constrained)

    bucket_lists = []
    for key in constrained:
        named = {value_key(e[key]) for e in applicable if key in e}
        bucket_lists.append(_axis_buckets(axes[key], named))

    matched = 0
    for combo in itertools.product(*bucket_lists):
        point = dict(zip(constrained, (bucket for bucket, _ in combo), strict=True))
        if any(all(point[k] == value_key(v) for k, v in e.items()) for e in applicable):
            matched += math.prod(weight for _, weight in combo)
    return matched * free_product


def _lands_on_base(entry: MatrixCombination, axes: Mapping[str, Sequence[MatrixValue]]) -> bool:
    return all(
        value_key(v) in {value_key(a) for a in axes[k]} for k, v in entry.items() if k in axes
    )


def count_matrix_jobs(
    axes: Mapping[str, Sequence[MatrixValue]],
    include: Sequence[MatrixCombination] | None = None,
    exclude: Sequence[MatrixCombination] | None = None,
) -> MatrixCount:
    """Count the jobs a matrix expands to.

    Args:
        axes: Ordered axis key -> ordered values.
        include: Include entries.
        exclude: Exclude entries.

    Returns:
        MatrixCount with the full arithmetic.

    Example:
        >>> count_matrix_jobs({"a": list(range(16)), "b": list(range(16))}).total
        256
    """
    axis_lengths = tuple((key, len(values)) for key, values in axes.items())
    base = math.prod(length for _, length in axis_lengths) if axis_lengths else 0

    added: list[MatrixCombination] = []
    for entry in include or ():
        named_axes = {k: v for k, v in entry.items() if k in axes}
        lands = bool(named_axes) and (
            (base > 0 and _lands_on_base(entry, axes))
            or any(_matches(named_axes, point) for point in added)
        )
        if not lands:
            added.append(dict(entry))

    excludes = list(exclude or ())
    removed = _count_excluded_base(axes, excludes) if base else 0
    removed += sum(1 for point in added if any(e and _matches(e, point) for e in excludes))

    total = max(0, base + len(added) - removed)
    return MatrixCount(
        axis_lengths=axis_lengths,
        base=base,
        include_additions=len(added),
        exclude_removals=removed,
        total=total,
    )


def expand_matrix(
    axes: Mapping[str, Sequence[MatrixValue]],
    include: Sequence[MatrixCombination] | None = None,
    exclude: Sequence[MatrixCombination] | None = None,
) -> Iterator[MatrixCombination]:
    """Enumerate the combinations of a matrix in product order.

    Base points come first (with properties of landing includes merged
    in), then added include points. Excluded points are skipped. Meant for
    inspection of small matrices; code generation never expands matrices.
    """
    keys = list(axes)
    base_points: list[dict[str, MatrixValue]] = []
    if keys:
        for values in itertools.product(*(axes[k] for k in keys)):
            base_points.append(dict(zip(keys, values, strict=True)))

    added: list[dict[str, MatrixValue]] = []
    for entry in include or ():
        named_axes = {k: v for k, v in entry.items() if k in axes}
        targets = [p for p in (*base_points, *added) if named_axes and _matches(named_axes, p)]
        if targets:
            extras = {k: v for k, v in entry.items() if k not in axes}
            for point in targets:
                point.update(extras)
        else:
            added.append(dict(entry))

    excludes = [e for e in exclude or () if e]
    for point in (*base_points, *added):
        if not any(_matches(e, point) for e in excludes):
            yield point
