from __future__ import annotations

from typing import Any, Iterable, Iterator, List

from .errors import RingInvariantError


class CandidateRing:
    """Fixed-capacity circular sequence of candidates with a movable cursor.

    Offsets passed to `get` and `advance` are relative to the cursor and wrap
    modulo the number of inserted candidates, so `get(-1)` is the candidate
    before the cursor and `get(len(ring))` is the current one.
    """

    def __init__(self, capacity: int) -> None:
        cap = int(capacity)
        if cap <= 0:
            raise ValueError(f"ring capacity must be positive: {capacity}")
        self._capacity = cap
        self._items: List[Any] = []
        self._cursor = 0

    @classmethod
    def from_items(cls, items: Iterable[Any], *, cursor: int = 0) -> "CandidateRing":
        values = list(items)
        ring = cls(max(len(values), 1))
        for item in values:
            ring.insert(item)
        if values:
            ring._cursor = int(cursor) % len(values)
        return ring

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def cursor(self) -> int:
        return self._cursor

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, item: Any) -> bool:
        return any(x is item or x == item for x in self._items)

    def __iter__(self) -> Iterator[Any]:
        return iter(list(self._items))

    def __repr__(self) -> str:
        return f"CandidateRing({self._items!r}, cursor={self._cursor})"

    def insert(self, item: Any) -> None:
        if len(self._items) >= self._capacity:
            raise ValueError(f"ring is full (capacity {self._capacity})")
        self._items.append(item)

    def _require_items(self) -> int:
        n = len(self._items)
        if n == 0:
            raise RingInvariantError("candidate ring is empty")
        return n

    def get(self, offset: int = 0) -> Any:
        n = self._require_items()
        return self._items[(self._cursor + int(offset)) % n]

    def advance(self, offset: int = 1) -> Any:
        n = self._require_items()
        self._cursor = (self._cursor + int(offset)) % n
        return self._items[self._cursor]

    def index_of(self, item: Any) -> int:
        for i, x in enumerate(self._items):
            if x is item:
                return i
        for i, x in enumerate(self._items):
            if x == item:
                return i
        return -1

    def to_list(self) -> List[Any]:
        return list(self._items)
