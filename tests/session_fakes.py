from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from cyclekit.kernel.errors import UserError
from cyclekit.kernel.history import MruHistory
from cyclekit.kernel.host import ApplyContext, SessionJumpHost


@dataclass(eq=False)
class FakeSession:
    name: str
    directory: Path
    running: bool = False
    narrowed: bool = False
    pending: str = ""
    alive: bool = True


class FakeSessionHost(SessionJumpHost):
    """Sessions kept in a list, most recently used first."""

    def __init__(self, sessions: Sequence[FakeSession] = (), projects: Optional[Dict[Path, Path]] = None) -> None:
        self.items: List[FakeSession] = list(sessions)
        self.projects = dict(projects or {})
        self.history = MruHistory(self.items)
        self.applied: List[tuple] = []
        self.created: List[FakeSession] = []
        self.cd_calls: List[tuple] = []
        self.messages: List[str] = []

    # SessionHost

    def sessions(self, kind: str) -> List[Any]:
        return [s for s in self.items if s.alive]

    def session_name(self, session: Any) -> str:
        return session.name

    def session_directory(self, session: Any) -> Optional[Path]:
        return session.directory

    def has_foreign_process(self, session: Any) -> bool:
        return session.running

    def is_narrowed(self, session: Any) -> bool:
        return session.narrowed

    def pending_input(self, session: Any) -> str:
        return session.pending

    def create_session(self, kind: str, name: str, directory: Optional[Path]) -> Any:
        s = FakeSession(name=name, directory=directory or Path("/"))
        self.items.insert(0, s)
        self.created.append(s)
        return s

    def rename_session(self, session: Any, name: str) -> None:
        session.name = name

    def change_directory(self, session: Any, directory: Path) -> None:
        if not session.alive:
            raise UserError(f"{session.name} has no live process")
        self.cd_calls.append((session, directory))
        session.directory = directory

    def project_root(self, directory: Path) -> Optional[Path]:
        for root in self.projects.values():
            try:
                Path(directory).relative_to(root)
            except ValueError:
                continue
            return root
        return None

    # SelectionHost

    def invoke_selection(self, command: str, args: Sequence[Any]) -> Any:
        raise UserError(f"unknown command: {command}")

    def apply_candidate(self, candidate: Any, context: ApplyContext) -> None:
        self.applied.append((candidate, context))
        if context.record:
            self.history.visit(candidate)

    def snapshot_history(self, scope: str) -> Any:
        return self.history.snapshot()

    def commit_history(self, scope: str, state: Any) -> None:
        self.history.restore(state)

    def notify(self, message: str) -> None:
        self.messages.append(message)
