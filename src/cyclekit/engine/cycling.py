"""The temporary cycling mode started by a wrapped selection command.

While a session is open the forward and backward keys move through its ring;
any other key ends it. Intermediate candidates are applied without being
recorded, and ending the session puts the history back to how it was before
the wrapped command ran, then records only the final candidate.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

from ..contracts.v1 import split_key_expression
from ..kernel.errors import UserError
from ..kernel.host import ApplyContext, SelectionHost
from ..kernel.ring import CandidateRing

logger = logging.getLogger("cyclekit.cycling")

ApplyFn = Callable[[Any, ApplyContext], None]


@dataclass
class CyclingSession:
    command: str
    ring: CandidateRing
    host: SelectionHost
    forward_key: str
    backward_key: str
    context: ApplyContext = field(default_factory=ApplyContext)
    history: Any = None
    state: Dict[str, Any] = field(default_factory=dict)
    apply: Optional[ApplyFn] = None
    on_exit: Optional[Callable[["CyclingSession"], None]] = None
    moves: int = 0
    finished: bool = False

    @property
    def current(self) -> Any:
        return self.ring.get()

    def _apply(self, candidate: Any, *, record: bool) -> None:
        fn = self.apply or self.host.apply_candidate
        fn(candidate, self.context.with_record(record))

    def _move(self, offset: int) -> Any:
        if self.finished:
            raise RuntimeError(f"cycling session for {self.command} already ended")
        candidate = self.ring.advance(offset)
        try:
            self._apply(candidate, record=False)
        except UserError:
            # A rejected step leaves the cursor on the candidate last shown.
            self.ring.advance(-offset)
            raise
        self.moves += 1
        logger.debug(
            "cycle %+d -> %r",
            offset,
            candidate,
            extra={"command": self.command, "candidate": repr(candidate), "ring_size": len(self.ring)},
        )
        return candidate

    def forward(self, count: int = 1) -> Any:
        return self._move(int(count))

    def backward(self, count: int = 1) -> Any:
        return self._move(-int(count))

    def _commit_final(self) -> Any:
        # The current candidate may have died since it was shown; fall back to
        # the nearest earlier one that can still be selected.
        last_error: Optional[UserError] = None
        for offset in range(0, -len(self.ring), -1):
            candidate = self.ring.get(offset)
            try:
                self._apply(candidate, record=True)
            except UserError as e:
                logger.warning(
                    "cannot commit %r: %s",
                    candidate,
                    e.message,
                    extra={"command": self.command, "candidate": repr(candidate)},
                )
                last_error = e
                continue
            return candidate
        if last_error is not None:
            self.host.notify(last_error.message)
        return None

    def finish(self) -> None:
        """Commit the final candidate as if it had been selected directly."""
        if self.finished:
            return
        self.finished = True
        final = None
        try:
            self.host.commit_history(self.context.scope, self.history)
            final = self._commit_final()
        finally:
            if self.on_exit is not None:
                self.on_exit(self)
        logger.info(
            "cycling ended on %r after %d move(s)",
            final,
            self.moves,
            extra={"command": self.command, "candidate": repr(final), "ring_size": len(self.ring)},
        )


class CycleController:
    """Owns the (at most one) open cycling session and routes keys to it."""

    def __init__(self) -> None:
        self.active: Optional[CyclingSession] = None
        self._pending: List[str] = []
        self.unconsumed: Tuple[str, ...] = ()

    @property
    def is_active(self) -> bool:
        return self.active is not None

    @property
    def pending(self) -> Tuple[str, ...]:
        return tuple(self._pending)

    def start(self, session: CyclingSession) -> None:
        if self.active is not None:
            self.exit()
        self.active = session
        self._pending = []
        logger.info(
            "cycling started",
            extra={"command": session.command, "ring_size": len(session.ring)},
        )

    def exit(self) -> None:
        session = self.active
        self.active = None
        self._pending = []
        if session is not None:
            session.finish()

    def handle_key(self, key: str, count: Optional[int] = None) -> bool:
        """Feed one key to the open session.

        Returns True when the key was used by the session. Otherwise the
        session has ended and `unconsumed` holds the keys (including any
        buffered prefix) the caller should process normally.
        """
        self.unconsumed = ()
        session = self.active
        if session is None:
            self.unconsumed = (key,)
            return False

        typed = self._pending + split_key_expression(key)
        fwd = split_key_expression(session.forward_key)
        bwd = split_key_expression(session.backward_key)

        if typed == fwd or typed == bwd:
            self._pending = []
            n = 1 if count is None else int(count)
            try:
                if typed == fwd:
                    session.forward(n)
                else:
                    session.backward(n)
            except UserError as e:
                session.host.notify(e.message)
            return True

        if typed == fwd[: len(typed)] or typed == bwd[: len(typed)]:
            self._pending = typed
            return True

        self.unconsumed = tuple(typed)
        self.exit()
        return False
