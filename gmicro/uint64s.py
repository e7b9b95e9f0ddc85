"""An immutable sequence of unsigned 64-bit integers with list utilities.

Every operation returns a new value; the original is never modified.
Arithmetic that would overflow wraps modulo 2**64.
"""

from __future__ import annotations

import functools
import json
import operator
import random as _random
from collections import Counter
from collections.abc import Callable, Iterable, Iterator, Sequence
from typing import overload

from gmicro import sliceops
from gmicro.sliceops import wrap_uint64


class Uint64s(Sequence):
    """An immutable sequence of unsigned 64-bit integers."""

    __slots__ = ("_items",)

    def __init__(self, values: Iterable[int] = ()) -> None:
        self._items: tuple[int, ...] = tuple(
            wrap_uint64(operator.index(v)) for v in values
        )

    # Sequence protocol ---------------------------------------------------

    def __len__(self) -> int:
        return len(self._items)

    @overload
    def __getitem__(self, index: int) -> int: ...

    @overload
    def __getitem__(self, index: slice) -> Uint64s: ...

    def __getitem__(self, index):
        if isinstance(index, slice):
            return Uint64s(self._items[index])
        return self._items[index]

    def __iter__(self) -> Iterator[int]:
        return iter(self._items)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Uint64s):
            return self._items == other._items
        if isinstance(other, (list, tuple)):
            return list(self._items) == list(other)
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._items)

    def __repr__(self) -> str:
        return f"Uint64s({list(self._items)!r})"

    # Predicates ----------------------------------------------------------

    def all(self, fn: Callable[[int], bool]) -> bool:
        """True if ``fn`` holds for every element (True when empty)."""
        return all(fn(v) for v in self._items)

    def any(self, fn: Callable[[int], bool]) -> bool:
        """True if ``fn`` holds for some element (False when empty)."""
        return any(fn(v) for v in self._items)

    def are_sorted(self) -> bool:
        """True if the elements are in non-decreasing order."""
        return all(a <= b for a, b in zip(self._items, self._items[1:]))

    def are_unique(self) -> bool:
        """True if no element appears twice."""
        return len(set(self._items)) == len(self._items)

    def contains(self, looking_for: int) -> bool:
        return looking_for in self._items

    def equals(self, other: Iterable[int]) -> bool:
        """Compare element by element."""
        return list(self._items) == list(other)

    def find_first_using(self, fn: Callable[[int], bool]) -> int:
        """Index of the first element satisfying ``fn``, or -1."""
        return next((i for i, v in enumerate(self._items) if fn(v)), -1)

    # Building new sequences ---------------------------------------------

    def abs(self) -> Uint64s:
        """Unsigned values are their own absolute value; returns a copy."""
        return Uint64s(self._items)

    def append(self, *values: int) -> Uint64s:
        return Uint64s(self._items + tuple(values))

    def extend(self, *slices: Iterable[int]) -> Uint64s:
        result = list(self._items)
        for part in slices:
            result.extend(part)
        return Uint64s(result)

    def insert(self, index: int, *values: int) -> Uint64s:
        """Insert ``values`` before ``index``; past the end they are appended."""
        if index < 0:
            raise IndexError(f"insert index out of range: {index}")
        items = self._items
        return Uint64s(items[:index] + tuple(values) + items[index:])

    def unshift(self, *values: int) -> Uint64s:
        """Prepend ``values``."""
        return Uint64s(tuple(values) + self._items)

    def bottom(self, n: int) -> Uint64s:
        """Up to ``n`` elements taken from the end, last first."""
        if n <= 0:
            return Uint64s()
        return Uint64s(self._items[::-1][:n])

    def top(self, n: int) -> Uint64s:
        """Up to ``n`` elements from the start."""
        if n <= 0:
            return Uint64s()
        return Uint64s(self._items[:n])

    def drop_top(self, n: int) -> Uint64s:
        """Everything after the first ``n``; empty if ``n`` is negative or too large."""
        if n < 0 or n >= len(self._items):
            return Uint64s()
        return Uint64s(self._items[n:])

    def drop_while(self, fn: Callable[[int], bool]) -> Uint64s:
        return Uint64s(sliceops.drop_while(self._items, fn))

    def diff(self, against: Iterable[int]) -> tuple[Uint64s, Uint64s]:
        """Return ``(added, removed)`` needed to turn self into ``against``."""
        added, removed = sliceops.diff(self._items, list(against))
        return Uint64s(added), Uint64s(removed)

    def filter(self, condition: Callable[[int], bool]) -> Uint64s:
        return Uint64s(v for v in self._items if condition(v))

    def filter_not(self, condition: Callable[[int], bool]) -> Uint64s:
        return Uint64s(v for v in self._items if not condition(v))

    def intersect(self, *slices: Iterable[int]) -> Uint64s:
        """Distinct elements present in every given sequence; empty with none."""
        return Uint64s(sliceops.intersect(self._items, *(list(s) for s in slices)))

    def map(self, fn: Callable[[int], int]) -> Uint64s:
        return Uint64s(fn(v) for v in self._items)

    def reverse(self) -> Uint64s:
        return Uint64s(self._items[::-1])

    def sort(self) -> Uint64s:
        return Uint64s(sorted(self._items))

    def unique(self) -> Uint64s:
        """Distinct elements in order of first appearance."""
        return Uint64s(dict.fromkeys(self._items))

    def sub_slice(self, start: int, end: int) -> Uint64s:
        """Elements in ``[start, end)``, padded with zeros past the end."""
        return Uint64s(sliceops.sub_slice(self._items, start, end))

    def shuffle(self, rng: _random.Random) -> Uint64s:
        """A shuffled copy using the given random generator."""
        if len(self._items) < 2:
            return self
        items = list(self._items)
        rng.shuffle(items)
        return Uint64s(items)

    def sequence(self, *params: int) -> Uint64s:
        """Generate integers over ``[0, n)``, ``[min, max)`` or ``[min, max)`` by step."""
        return self.sequence_using(lambda i: i, *params)

    def sequence_using(self, creator: Callable[[int], int], *params: int) -> Uint64s:
        return Uint64s(sliceops.sequence(creator, *params))

    def shift(self) -> tuple[int, Uint64s]:
        """The first element (or 0) and the rest."""
        return self.first(), self.drop_top(1)

    def each(self, fn: Callable[[int], object]) -> Uint64s:
        """Call ``fn`` on each element and return self."""
        for v in self._items:
            fn(v)
        return self

    def send(self, put: Callable[[int], object], cancelled: Callable[[], bool]) -> Uint64s:
        """Pass elements to ``put`` until ``cancelled()`` is true.

        Returns the elements that were sent.
        """
        for index, value in enumerate(self._items):
            if cancelled():
                return Uint64s(self._items[:index])
            put(value)
        return self

    # Single values -------------------------------------------------------

    def first(self) -> int:
        return self.first_or(0)

    def first_or(self, default: int) -> int:
        return self._items[0] if self._items else default

    def last(self) -> int:
        return self.last_or(0)

    def last_or(self, default: int) -> int:
        return self._items[-1] if self._items else default

    def max(self) -> int:
        return max(self._items, default=0)

    def min(self) -> int:
        return min(self._items, default=0)

    def sum(self) -> int:
        return wrap_uint64(sum(self._items))

    def product(self) -> int:
        if not self._items:
            return 0
        return functools.reduce(lambda a, b: wrap_uint64(a * b), self._items)

    def average(self) -> float:
        return sliceops.average(self._items)

    def median(self) -> int:
        return sliceops.median(self._items)

    def mode(self) -> Uint64s:
        return Uint64s(sliceops.mode(self._items))

    def stddev(self) -> float:
        return sliceops.stddev(self._items)

    def reduce(self, reducer: Callable[[int, int], int]) -> int:
        """Fold left to right; 0 when empty."""
        if not self._items:
            return 0
        return functools.reduce(
            lambda a, b: wrap_uint64(reducer(a, b)), self._items
        )

    def random(self, rng: _random.Random) -> int:
        """A random element chosen with ``rng``, or 0 when empty."""
        if not self._items:
            return 0
        if len(self._items) == 1:
            return self._items[0]
        return self._items[rng.randrange(len(self._items))]

    def group(self) -> dict[int, int]:
        """Map each value to its number of occurrences."""
        return dict(Counter(self._items))

    # Conversions ---------------------------------------------------------

    def float64s(self) -> list[float]:
        return [float(v) for v in self._items]

    def ints(self) -> list[int]:
        return [int(float(v)) for v in self._items]

    def strings(self) -> list[str]:
        return [str(v) for v in self._items]

    def strings_using(self, transform: Callable[[int], str]) -> list[str]:
        return [transform(v) for v in self._items]

    def join(self, glue: str) -> str:
        return glue.join(str(v) for v in self._items)

    def json_string(self) -> str:
        return json.dumps(list(self._items), separators=(",", ":"))

    def json_bytes(self) -> bytes:
        return self.json_string().encode()

    def json_string_indent(self, prefix: str, indent: str) -> str:
        """JSON with each element on its own line, every line after the first prefixed."""
        if not self._items:
            return "[]"
        body = ",\n".join(f"{prefix}{indent}{v}" for v in self._items)
        return f"[\n{body}\n{prefix}]"

    def json_bytes_indent(self, prefix: str, indent: str) -> bytes:
        return self.json_string_indent(prefix, indent).encode()