from __future__ import annotations

from typing import Any, Iterable, List, Tuple


class MruHistory:
    """Most-recently-used ordering of visited candidates (most recent first).

    Entries are compared by identity so two distinct handles that happen to
    compare equal are still tracked separately.
    """

    def __init__(self, items: Iterable[Any] = ()) -> None:
        self._items: List[Any] = []
        for item in items:
            if not self._contains(item):
                self._items.append(item)

    def _contains(self, item: Any) -> bool:
        return any(x is item for x in self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, item: Any) -> bool:
        return self._contains(item)

    def visit(self, item: Any) -> None:
        self._items = [x for x in self._items if x is not item]
        self._items.insert(0, item)

    def forget(self, item: Any) -> None:
        self._items = [x for x in self._items if x is not item]

    def items(self) -> List[Any]:
        return list(self._items)

    def snapshot(self) -> Tuple[Any, ...]:
        return tuple(self._items)

    def restore(self, snapshot: Iterable[Any]) -> None:
        self._items = list(snapshot)
