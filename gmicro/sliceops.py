"""Operations on sequences of unsigned 64-bit integers.

Arithmetic that would overflow a uint64 wraps modulo 2**64.
"""

from __future__ import annotations

import math
from collections import Counter
from collections.abc import Callable, Iterable, Sequence
from typing import TypeVar

T = TypeVar("T")

UINT64_MASK = (1 << 64) - 1


def wrap_uint64(value: int) -> int:
    """Reduce an integer to the range of an unsigned 64-bit integer."""
    return value & UINT64_MASK


def _round_half_away(x: float) -> float:
    truncated = math.trunc(x)
    if abs(x - truncated) >= 0.5:
        return truncated + math.copysign(1, x)
    return float(truncated)


def diff(values: Sequence[T], against: Sequence[T]) -> tuple[list[T], list[T]]:
    """Return ``(added, removed)`` to turn ``values`` into ``against``.

    Order is ignored; both sequences are treated as multisets.
    """

    def one_way(source: Iterable[T], target: Sequence[T]) -> list[T]:
        remaining = list(target)
        missing = []
        for item in source:
            try:
                remaining.remove(item)
            except ValueError:
                missing.append(item)
        return missing

    return one_way(against, values), one_way(values, against)


def intersect(values: Sequence[T], *others: Sequence[T]) -> list[T]:
    """Return the distinct items of ``values`` found in every other sequence.

    With no other sequences the result is empty.
    """
    if not others:
        return []
    sets = [set(other) for other in others]
    return [item for item in dict.fromkeys(values) if all(item in s for s in sets)]


def median(values: Sequence[int]) -> int:
    """Return the median; for an even count, the wrapped integer mean of the middle two."""
    n = len(values)
    if n == 0:
        return 0
    if n == 1:
        return values[0]
    ordered = sorted(values)
    middle = n // 2
    if n % 2 == 1:
        return ordered[middle]
    return wrap_uint64(ordered[middle - 1] + ordered[middle]) // 2


def mode(values: Sequence[T]) -> list[T]:
    """Return the most frequent values, in order of first appearance."""
    if not values:
        return []
    counts = Counter(values)
    highest = max(counts.values())
    return [value for value, count in counts.items() if count == highest]


def average(values: Sequence[int]) -> float:
    """Return the mean of the wrapped sum, or 0.0 for an empty sequence."""
    if not values:
        return 0.0
    return float(wrap_uint64(sum(values))) / len(values)


def stddev(values: Sequence[int]) -> float:
    """Return the population standard deviation, or 0.0 when empty."""
    if not values:
        return 0.0
    avg = average(values)
    total = sum((float(v) - avg) ** 2 for v in values)
    return math.sqrt(total / len(values))


def sequence(creator: Callable[[int], T], *params: int) -> list[T]:
    """Generate ``creator(i)`` over a range.

    One parameter gives ``[0, n)``, two give ``[min, max)``, three or more give
    ``[min, max)`` with a step; further parameters are ignored.
    """
    if not params:
        return []
    if len(params) == 1:
        start, stop, step = 0, params[0], 1
    elif len(params) == 2:
        start, stop, step = params[0], params[1], 1
    else:
        start, stop, step = params[0], params[1], params[2]
    if step == 0:
        return []
    length = int(_round_half_away((stop - start) / step))
    if length < 1:
        return []
    return [creator(start + i * step) for i in range(length)]


def sub_slice(values: Sequence[int], start: int, end: int) -> list[int]:
    """Return items from ``start`` up to ``end``, padding with zeros past the end."""
    if start < 0 or end < 0 or start >= end:
        return []
    length = len(values)
    if start >= length:
        return [0] * (end - start)
    if end <= length:
        return list(values[start:end])
    return list(values[start:]) + [0] * (end - length)


def drop_while(values: Sequence[T], predicate: Callable[[T], bool]) -> list[T]:
    """Drop leading items while ``predicate`` holds and return the rest."""
    for index, value in enumerate(values):
        if not predicate(value):
            return list(values[index:])
    return []