"""Choosing a worker session to jump to.

A session is reused only when it is not busy, i.e. nothing would be disturbed
by typing into it. Repeating the same jump immediately relaxes what counts as
busy, and a third press always starts a fresh session.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, FrozenSet, List, Optional, Sequence, Tuple

from ..contracts.v1 import BusyTolerance, SelectionOptions
from .errors import UserError
from .git import same_directory
from .host import SessionHost
from .ring import CandidateRing

logger = logging.getLogger("cyclekit.sessions")

ESCALATION_FACTOR = 4

_ALL_REUSING: FrozenSet[str] = frozenset({"strict", "interactive", "tolerant"})

# (reason, probe, tolerances the probe applies under); first match wins.
BusyGuard = Tuple[str, Callable[[SessionHost, Any], bool], FrozenSet[str]]

BUSY_GUARDS: Tuple[BusyGuard, ...] = (
    ("foreign-process", lambda host, s: bool(host.has_foreign_process(s)), _ALL_REUSING),
    ("narrowed", lambda host, s: bool(host.is_narrowed(s)), frozenset({"strict", "interactive"})),
    ("pending-input", lambda host, s: bool((host.pending_input(s) or "").strip()), frozenset({"interactive"})),
)


def busy_reason(host: SessionHost, session: Any, tolerance: BusyTolerance) -> Optional[str]:
    """Why `session` cannot be reused under `tolerance`, or None.

    "fresh" never reuses a session, so busyness does not apply to it.
    """
    if tolerance == "fresh":
        return None
    for reason, probe, applies in BUSY_GUARDS:
        if tolerance in applies and probe(host, session):
            return reason
    return None


def is_busy(host: SessionHost, session: Any, tolerance: BusyTolerance = "strict") -> bool:
    return busy_reason(host, session, tolerance) is not None


def tolerance_for_count(base: BusyTolerance, count: int) -> BusyTolerance:
    n = abs(int(count or 1))
    if base == "fresh" or n >= ESCALATION_FACTOR * ESCALATION_FACTOR:
        return "fresh"
    if n >= ESCALATION_FACTOR:
        return "tolerant"
    return base


class EscalationTracker:
    """Repeat-count accumulator for one jump command.

    Invoking the same command again right away, without an explicit count,
    multiplies the accumulator by four. An explicit count replaces the
    accumulator and never escalates.
    """

    def __init__(self) -> None:
        self._command: Optional[str] = None
        self._count = 1

    @property
    def count(self) -> int:
        return self._count

    def resolve(self, command: str, last_command: Optional[str], explicit_count: Optional[int]) -> Tuple[int, bool]:
        escalated = False
        if explicit_count is not None:
            self._count = abs(int(explicit_count)) or 1
        elif last_command == command and self._command == command:
            self._count *= ESCALATION_FACTOR
            escalated = True
        else:
            self._count = 1
        self._command = command
        return self._count, escalated

    def reset(self) -> None:
        self._command = None
        self._count = 1


@dataclass
class SessionSelection:
    selected: Any
    ring: CandidateRing
    created: bool = False
    changed_directory: bool = False
    same_view: bool = False
    tolerance: BusyTolerance = "strict"


def _numbered_name(base: str, taken: Sequence[str]) -> str:
    n = 2
    while f"{base}<{n}>" in taken:
        n += 1
    return f"{base}<{n}>"


def _create_session(host: SessionHost, kind: str, sessions: List[Any], directory: Optional[Path]) -> Any:
    canonical = host.canonical_name(kind)
    names = [host.session_name(s) for s in sessions]
    for s in sessions:
        if host.session_name(s) == canonical:
            new_name = _numbered_name(canonical, names)
            logger.info("renaming %s to %s", canonical, new_name, extra={"kind": kind, "session": new_name})
            host.rename_session(s, new_name)
            names.append(new_name)
            break
    created = host.create_session(kind, canonical, directory)
    logger.info("created session %s", canonical, extra={"kind": kind, "session": canonical})
    return created


def select_session(host: SessionHost, options: SelectionOptions, *, same_view: bool = False) -> SessionSelection:
    kind = options.kind
    affinity = options.affinity
    tolerance = options.tolerance
    target = Path(options.directory).expanduser() if options.directory is not None else None

    if affinity != "none":
        if target is None:
            target = Path.cwd()
        if not target.is_dir():
            raise UserError(f"no such directory: {target}")
        target = target.resolve()

    sessions = list(host.sessions(kind))
    selected: Any = None
    created = False
    changed = False

    if tolerance != "fresh":
        target_root = host.project_root(target) if (affinity != "none" and target is not None) else None
        exact: Any = None
        project: Any = None
        recent: Any = None
        for s in sessions:
            reason = busy_reason(host, s, tolerance)
            if reason:
                logger.debug(
                    "skipping busy session %s (%s)",
                    host.session_name(s),
                    reason,
                    extra={"session": host.session_name(s), "tolerance": tolerance},
                )
                continue
            if recent is None:
                recent = s
            if affinity == "none":
                break
            d = host.session_directory(s)
            if exact is None and same_directory(d, target):
                exact = s
            elif project is None and target_root is not None and d is not None:
                if same_directory(host.project_root(d), target_root):
                    project = s

        if affinity != "none" and exact is not None:
            selected = exact
        elif affinity != "none" and project is not None:
            selected = project
            host.change_directory(project, target)
            changed = True
        elif affinity == "none" and recent is not None:
            selected = recent

    if selected is None:
        selected = _create_session(host, kind, sessions, target)
        created = True

    others = [s for s in sessions if s is not selected]
    ring = CandidateRing.from_items(others + [selected], cursor=len(others))
    logger.debug(
        "selected session %s",
        host.session_name(selected),
        extra={"session": host.session_name(selected), "tolerance": tolerance, "ring_size": len(ring)},
    )
    return SessionSelection(
        selected=selected,
        ring=ring,
        created=created,
        changed_directory=changed,
        same_view=same_view,
        tolerance=tolerance,
    )


def jump_to_session(
    host: SessionHost,
    options: SelectionOptions,
    tracker: EscalationTracker,
    *,
    command: str,
    last_command: Optional[str],
    explicit_count: Optional[int] = None,
) -> SessionSelection:
    """Select a session, escalating busy tolerance on immediate repeats."""
    count, escalated = tracker.resolve(command, last_command, explicit_count)
    tolerance = tolerance_for_count(options.tolerance, count)
    if escalated:
        logger.info(
            "escalated %s to %s",
            command,
            tolerance,
            extra={"command": command, "tolerance": tolerance},
        )
    effective = options.model_copy(update={"tolerance": tolerance})
    return select_session(host, effective, same_view=escalated)
