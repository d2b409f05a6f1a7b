"""Grouping of related resources into a candidate ring.

A resource's siblings are its clone family (resources whose names differ only
by a trailing "<N>" suffix) followed by every other live resource of the
family's inferred type.
"""
from __future__ import annotations

import logging
import re
import weakref
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Iterable, List, Optional, Sequence, Tuple

from ..contracts.v1 import TypeOverride
from .ring import CandidateRing

logger = logging.getLogger("cyclekit.siblings")

_SUFFIX_RE = re.compile(r"<\d+>$")


@dataclass(eq=False)
class Resource:
    name: str
    type: str
    path: Optional[Path] = None
    live: bool = True

    @property
    def has_storage(self) -> bool:
        return self.path is not None


class ResourcePool:
    """Live resources, most recently used first."""

    def __init__(self, resources: Iterable[Resource] = ()) -> None:
        self._items: List[Resource] = [r for r in resources if r.live]

    def live(self) -> List[Resource]:
        return list(self._items)

    def is_live(self, resource: Resource) -> bool:
        return resource.live and any(r is resource for r in self._items)

    def find(self, name: str) -> Optional[Resource]:
        for r in self._items:
            if r.name == name:
                return r
        return None

    def unique_name(self, name: str) -> str:
        if self.find(name) is None:
            return name
        n = 2
        while self.find(f"{name}<{n}>") is not None:
            n += 1
        return f"{name}<{n}>"

    def add(self, name: str, type: str, path: Optional[Path] = None) -> Resource:
        r = Resource(name=self.unique_name(name), type=type, path=path)
        self._items.insert(0, r)
        return r

    def touch(self, resource: Resource) -> None:
        if not self.is_live(resource):
            return
        self._items = [r for r in self._items if r is not resource]
        self._items.insert(0, resource)

    def kill(self, resource: Resource) -> None:
        resource.live = False
        self._items = [r for r in self._items if r is not resource]


def root_name(name: str) -> str:
    return _SUFFIX_RE.sub("", name)


def family_pattern(root: str) -> "re.Pattern[str]":
    return re.compile(r"\A" + re.escape(root) + r"(?:<\d+>)?\Z")


def clone_family(seed: Resource, resources: Iterable[Resource]) -> List[Resource]:
    pat = family_pattern(root_name(seed.name))
    return [r for r in resources if r.live and pat.match(r.name)]


Override = Tuple[str, str]


def _normalize_overrides(overrides: Iterable[Any]) -> List[Override]:
    out: List[Override] = []
    for o in overrides or ():
        if isinstance(o, TypeOverride):
            out.append((o.pattern, o.type))
        elif isinstance(o, (tuple, list)) and len(o) == 2:
            out.append((str(o[0]), str(o[1])))
        else:
            raise TypeError(f"invalid type override: {o!r}")
    return out


# Each guard gets (root, clones, seed, overrides) and may name the type.
# Order matters: later guards are weaker fallbacks.
TypeGuard = Callable[[str, List[Resource], Resource, List[Override]], Optional[str]]


def _type_from_overrides(root: str, clones: List[Resource], seed: Resource, overrides: List[Override]) -> Optional[str]:
    for pattern, type_ in overrides:
        if re.search(pattern, root):
            return type_
    return None


def _type_from_single_clone(root: str, clones: List[Resource], seed: Resource, overrides: List[Override]) -> Optional[str]:
    if len(clones) == 1 and clones[0].has_storage:
        return clones[0].type
    return None


def _type_from_root_clone(root: str, clones: List[Resource], seed: Resource, overrides: List[Override]) -> Optional[str]:
    for c in clones:
        if c.name == root and c.has_storage:
            return c.type
    return None


def _type_from_name_match(root: str, clones: List[Resource], seed: Resource, overrides: List[Override]) -> Optional[str]:
    trimmed = root.strip("*").lower()
    if not trimmed:
        return None
    for c in clones:
        if trimmed in c.type.lower():
            return c.type
    return None


def _type_from_seed(root: str, clones: List[Resource], seed: Resource, overrides: List[Override]) -> Optional[str]:
    return seed.type


TYPE_GUARDS: Tuple[TypeGuard, ...] = (
    _type_from_overrides,
    _type_from_single_clone,
    _type_from_root_clone,
    _type_from_name_match,
    _type_from_seed,
)


def infer_family_type(seed: Resource, clones: List[Resource], overrides: Iterable[Any] = ()) -> str:
    root = root_name(seed.name)
    table = _normalize_overrides(overrides)
    for guard in TYPE_GUARDS:
        found = guard(root, clones, seed, table)
        if found:
            return found
    return seed.type


def sibling_candidates(seed: Resource, resources: Sequence[Resource], overrides: Iterable[Any] = ()) -> List[Resource]:
    """The clone family of `seed`, then other live resources of the family type."""
    live = [r for r in resources if r.live]
    clones = clone_family(seed, live)
    family_type = infer_family_type(seed, clones, overrides)
    others = [r for r in live if r.type == family_type and not any(r is c for c in clones)]
    return clones + others


def _without(items: Iterable[Resource], exclude: Iterable[Resource]) -> List[Resource]:
    ex = [x for x in exclude]
    return [r for r in items if not any(r is x for x in ex)]


def sibling_ring(
    seed: Resource,
    resources: Sequence[Resource],
    *,
    overrides: Iterable[Any] = (),
    previous: Optional[Sequence[Resource]] = None,
    previous_index: Optional[int] = None,
) -> CandidateRing:
    """Build the ring of `seed`'s siblings with `seed` first.

    With `previous`/`previous_index`, the ring continues an earlier cycle
    that ended on `seed`: the earlier ring from its cursor onward, then newly
    found siblings, then the part of the earlier ring before the cursor.
    Killed resources from the earlier ring are dropped.
    """
    live_ids = {id(r) for r in resources if r.live}
    candidates = sibling_candidates(seed, resources, overrides)

    head: List[Resource] = [seed]
    tail: List[Resource] = []
    if previous and previous_index is not None and 0 <= previous_index < len(previous):
        prev_head = [r for r in previous[previous_index:] if r.live and id(r) in live_ids]
        prev_tail = [r for r in previous[:previous_index] if r.live and id(r) in live_ids]
        if prev_head and prev_head[0] is seed:
            head = prev_head
            tail = _without(prev_tail, head)
        else:
            logger.debug("previous ring does not continue from %s; starting fresh", seed.name)

    middle = _without(candidates, head + tail)
    items = head + middle + tail
    ring = CandidateRing(len(items))
    for r in items:
        ring.insert(r)
    return ring


class SiblingRingBuilder:
    """Sibling rings over a pool, with per-resource cycle memory.

    When a cycle ends on a resource, the ring and its cursor are remembered on
    that resource; building from it again continues the old cycle.
    """

    def __init__(self, pool: ResourcePool, overrides: Iterable[Any] = ()) -> None:
        self.pool = pool
        self.overrides = list(overrides or ())
        self._memory: "weakref.WeakKeyDictionary[Resource, Tuple[List[Resource], int]]" = weakref.WeakKeyDictionary()

    def build(self, seed: Resource, *, fresh: bool = False) -> Optional[CandidateRing]:
        if not isinstance(seed, Resource) or not self.pool.is_live(seed):
            return None
        previous: Optional[List[Resource]] = None
        index: Optional[int] = None
        if not fresh:
            remembered = self._memory.get(seed)
            if remembered is not None:
                previous, index = remembered
        ring = sibling_ring(
            seed,
            self.pool.live(),
            overrides=self.overrides,
            previous=previous,
            previous_index=index,
        )
        if len(ring) < 2:
            return None
        return ring

    def remember(self, resource: Resource, ring: CandidateRing) -> None:
        self._memory[resource] = (ring.to_list(), ring.cursor)

    def memory(self, resource: Resource) -> Optional[Tuple[List[Resource], int]]:
        return self._memory.get(resource)

    def forget(self, resource: Resource) -> None:
        self._memory.pop(resource, None)
