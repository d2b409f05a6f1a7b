from __future__ import annotations

from typing import Any, Callable, List, Optional, Sequence

from .ring import CandidateRing


def view_history_ring(
    current: Any,
    ahead: Sequence[Any],
    behind: Sequence[Any] = (),
    *,
    is_live: Optional[Callable[[Any], bool]] = None,
) -> Optional[CandidateRing]:
    """Ring over one view's own history, starting at `current`.

    `ahead` lists the resources further in the direction of travel, nearest
    first; `behind` lists those the view came from, nearest first. Moving
    forward continues the travel; moving backward from `current` returns to
    the nearest resource behind.
    """
    live = is_live or (lambda _r: True)
    items: List[Any] = [current]
    for r in list(ahead) + list(reversed(list(behind))):
        if r is None or not live(r):
            continue
        if any(x is r for x in items):
            continue
        items.append(r)
    if len(items) < 2:
        return None
    return CandidateRing.from_items(items)
