"""Interfaces the cycling engine consumes from its host environment."""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, List, Optional, Sequence

logger = logging.getLogger("cyclekit.host")


@dataclass(frozen=True)
class ApplyContext:
    """How a candidate is made active.

    view: None selects into the current view; otherwise the named view
        displays the candidate.
    record: False while cycling, so intermediate candidates leave no trace
        in the host's ordered histories.
    scope: history scope snapshotted and committed around the session.
    """

    view: Optional[str] = None
    record: bool = True
    scope: str = "global"

    def with_record(self, record: bool) -> "ApplyContext":
        return replace(self, record=bool(record))


class SelectionHost(ABC):
    """Runs selection commands and owns the durable selection history."""

    @abstractmethod
    def invoke_selection(self, command: str, args: Sequence[Any]) -> Any:
        """Run a named selection command and return its result."""

    @abstractmethod
    def apply_candidate(self, candidate: Any, context: ApplyContext) -> None:
        """Make `candidate` the active selection, as a direct selection would."""

    @abstractmethod
    def snapshot_history(self, scope: str) -> Any:
        """Return an opaque copy of the history for `scope`."""

    @abstractmethod
    def commit_history(self, scope: str, state: Any) -> None:
        """Replace the history for `scope` with a previous snapshot."""

    def current_view(self) -> Optional[str]:
        """Name of the view that now has focus, if the host has named views."""
        return None

    def notify(self, message: str) -> None:
        logger.info(message)


class SessionHost(ABC):
    """Live worker sessions of some kind (shells, consoles, REPLs)."""

    @abstractmethod
    def sessions(self, kind: str) -> List[Any]:
        """Live sessions of `kind`, most recently used first."""

    @abstractmethod
    def session_name(self, session: Any) -> str:
        pass

    @abstractmethod
    def session_directory(self, session: Any) -> Optional[Path]:
        pass

    @abstractmethod
    def has_foreign_process(self, session: Any) -> bool:
        """True while a command other than the session's own shell is running."""

    @abstractmethod
    def is_narrowed(self, session: Any) -> bool:
        """True when the session only shows a sub-view of its content."""

    @abstractmethod
    def pending_input(self, session: Any) -> str:
        """Input typed at the prompt but not yet sent."""

    @abstractmethod
    def create_session(self, kind: str, name: str, directory: Optional[Path]) -> Any:
        pass

    @abstractmethod
    def rename_session(self, session: Any, name: str) -> None:
        pass

    @abstractmethod
    def change_directory(self, session: Any, directory: Path) -> None:
        """Make the session's working directory `directory`.

        Raises UserError when the session has no live process.
        """

    def project_root(self, directory: Path) -> Optional[Path]:
        from .git import git_root

        return git_root(directory)

    def canonical_name(self, kind: str) -> str:
        return kind


class SessionJumpHost(SelectionHost, SessionHost):
    """A host that both applies selections and manages worker sessions."""
