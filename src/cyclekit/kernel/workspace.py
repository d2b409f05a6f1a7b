"""In-process host: documents shown in named views, with an MRU history.

Used by the presets' tests and as a reference for embedding hosts. Every
ordered history (the global MRU list, each view's previous/next lists and the
pool order) is part of the snapshot, so a cycling session leaves no trace of
the documents it only passed through.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from .errors import UserError
from .history import MruHistory
from .host import ApplyContext, SelectionHost
from .siblings import Resource, ResourcePool


@dataclass
class View:
    name: str
    current: Optional[Resource] = None
    previous: List[Resource] = field(default_factory=list)
    following: List[Resource] = field(default_factory=list)

    def show(self, resource: Resource) -> None:
        if self.current is resource:
            return
        self.previous = [r for r in self.previous if r is not resource]
        self.following = [r for r in self.following if r is not resource]
        if self.current is not None:
            self.previous.insert(0, self.current)
        self.current = resource


class Workspace(SelectionHost):
    def __init__(self, pool: Optional[ResourcePool] = None, views: Iterable[str] = ("main", "other")) -> None:
        self.pool = pool or ResourcePool()
        self.views: Dict[str, View] = {name: View(name) for name in views}
        if not self.views:
            raise ValueError("a workspace needs at least one view")
        self.selected_view = next(iter(self.views))
        self.history = MruHistory()
        self.messages: List[str] = []

    def view(self, name: Optional[str] = None) -> View:
        key = name or self.selected_view
        v = self.views.get(key)
        if v is None:
            raise UserError(f"no such view: {key}")
        return v

    def _other_view_name(self) -> str:
        for name in self.views:
            if name != self.selected_view:
                return name
        return self.selected_view

    def _lookup(self, args: Sequence[Any]) -> Resource:
        if not args:
            raise UserError("no document name given")
        target = args[0]
        if isinstance(target, Resource):
            if not self.pool.is_live(target):
                raise UserError(f"document was killed: {target.name}")
            return target
        found = self.pool.find(str(target))
        if found is None:
            raise UserError(f"no such document: {target}")
        return found

    def invoke_selection(self, command: str, args: Sequence[Any]) -> Any:
        if command == "switch-to-document":
            r = self._lookup(args)
            self.apply_candidate(r, ApplyContext())
            return r
        if command == "switch-to-document-other-view":
            r = self._lookup(args)
            self.apply_candidate(r, ApplyContext(view=self._other_view_name()))
            return r
        if command == "previous-document":
            return self._step(self.view(), "previous")
        if command == "next-document":
            return self._step(self.view(), "next")
        raise UserError(f"unknown command: {command}")

    def _step(self, view: View, direction: str) -> Resource:
        source = view.previous if direction == "previous" else view.following
        live = [r for r in source if self.pool.is_live(r)]
        if not live:
            raise UserError(f"no {direction} document in view {view.name}")
        target = live[0]
        source[:] = [r for r in source if r is not target]
        if view.current is not None:
            other = view.following if direction == "previous" else view.previous
            other.insert(0, view.current)
        view.current = target
        self.history.visit(target)
        self.pool.touch(target)
        return target

    def history_of(self, resource: Any, direction: str) -> Tuple[List[Resource], List[Resource]]:
        view = self.view()
        if direction == "next":
            return list(view.following), list(view.previous)
        return list(view.previous), list(view.following)

    def apply_candidate(self, candidate: Any, context: ApplyContext) -> None:
        if not isinstance(candidate, Resource) or not self.pool.is_live(candidate):
            raise UserError(f"cannot select {candidate!r}")
        name = context.view
        if name is not None and name not in self.views and name == "other":
            name = self._other_view_name()
        view = self.view(name)
        self.selected_view = view.name
        view.show(candidate)
        if context.record:
            self.history.visit(candidate)
            self.pool.touch(candidate)

    def snapshot_history(self, scope: str) -> Any:
        views = {
            name: (v.current, tuple(v.previous), tuple(v.following)) for name, v in self.views.items()
        }
        return (self.history.snapshot(), views, self.selected_view, tuple(self.pool.live()))

    def commit_history(self, scope: str, state: Any) -> None:
        if state is None:
            return
        mru, views, selected, order = state
        self.history.restore(r for r in mru if self.pool.is_live(r))
        for name, (current, previous, following) in views.items():
            v = self.views.get(name)
            if v is None:
                continue
            v.current = current if current is None or self.pool.is_live(current) else None
            v.previous = [r for r in previous if self.pool.is_live(r)]
            v.following = [r for r in following if self.pool.is_live(r)]
        if selected in self.views:
            self.selected_view = selected
        for r in reversed([r for r in order if self.pool.is_live(r)]):
            self.pool.touch(r)

    def notify(self, message: str) -> None:
        self.messages.append(message)
        super().notify(message)

    def current_view(self) -> Optional[str]:
        return self.selected_view
