"""Worker sessions backed by tmux windows.

Each window of the current tmux session whose name is the session kind (or
the kind with a "<N>" suffix) is a worker session. Busy probes are answered
live from tmux on every call.
"""
from __future__ import annotations

import logging
import re
import shlex
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, List, Optional, Sequence, Tuple

from ..kernel.errors import UserError
from ..kernel.host import ApplyContext, SessionJumpHost
from ..kernel.settings import DEFAULT_SHELLS

logger = logging.getLogger("cyclekit.tmux")

_FIELD_SEP = "\t"
_WINDOW_FORMAT = _FIELD_SEP.join(
    [
        "#{window_id}",
        "#{window_name}",
        "#{pane_current_path}",
        "#{window_activity}",
        "#{window_active}",
        "#{window_last_flag}",
    ]
)

# Text after a typical shell prompt on the last non-empty line.
_PROMPT_RE = re.compile(r"[$#%>❯]\s+(\S.*)$")


def _run_tmux(args: List[str], *, timeout_s: float = 3.0) -> Tuple[int, str, str]:
    try:
        p = subprocess.run(
            ["tmux", *args],
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            timeout=timeout_s,
            check=False,
        )
        return int(p.returncode), (p.stdout or ""), (p.stderr or "")
    except subprocess.TimeoutExpired:
        return 124, "", "tmux timeout"
    except OSError as e:
        return 1, "", str(e)


def _flag(value: str) -> bool:
    return (value or "").strip() in ("1", "yes", "on", "true")


@dataclass(frozen=True)
class TmuxWindow:
    window_id: str
    name: str
    path: str = ""
    activity: int = 0
    active: bool = False
    last: bool = False


def _parse_window(line: str) -> Optional[TmuxWindow]:
    parts = line.split(_FIELD_SEP)
    if len(parts) < 6 or not parts[0].startswith("@"):
        return None
    try:
        activity = int(parts[3] or 0)
    except ValueError:
        activity = 0
    return TmuxWindow(
        window_id=parts[0],
        name=parts[1],
        path=parts[2],
        activity=activity,
        active=_flag(parts[4]),
        last=_flag(parts[5]),
    )


def list_windows(target: Optional[str] = None) -> List[TmuxWindow]:
    args = ["list-windows", "-F", _WINDOW_FORMAT]
    if target:
        args[1:1] = ["-t", target]
    code, out, _ = _run_tmux(args)
    if code != 0:
        return []
    windows = [w for w in (_parse_window(ln) for ln in out.splitlines()) if w is not None]
    return windows


def _display(window_id: str, fmt: str) -> str:
    code, out, _ = _run_tmux(["display-message", "-p", "-t", window_id, fmt])
    if code != 0:
        return ""
    return out.strip()


def _kind_pattern(kind: str) -> "re.Pattern[str]":
    return re.compile(r"\A" + re.escape(kind) + r"(?:<\d+>)?\Z")


class TmuxHost(SessionJumpHost):
    def __init__(
        self,
        *,
        target: Optional[str] = None,
        shells: Sequence[str] = DEFAULT_SHELLS,
        on_notify: Optional[Callable[[str], None]] = None,
    ) -> None:
        self.target = target
        self.shells = {s.strip() for s in shells if s and s.strip()}
        self._on_notify = on_notify

    # -- SessionHost

    def sessions(self, kind: str) -> List[Any]:
        pat = _kind_pattern(kind)
        windows = [w for w in list_windows(self.target) if pat.match(w.name)]
        # Stable sort keeps tmux's index order among equally recent windows.
        return sorted(windows, key=lambda w: (not w.active, -w.activity))

    def session_name(self, session: Any) -> str:
        return session.name

    def session_directory(self, session: Any) -> Optional[Path]:
        path = _display(session.window_id, "#{pane_current_path}") or session.path
        return Path(path) if path else None

    def has_foreign_process(self, session: Any) -> bool:
        command = _display(session.window_id, "#{pane_current_command}")
        if not command:
            return False
        return command.lstrip("-") not in self.shells

    def is_narrowed(self, session: Any) -> bool:
        # Copy mode and a zoomed pane both show only part of the window.
        return _flag(_display(session.window_id, "#{pane_in_mode}")) or _flag(
            _display(session.window_id, "#{window_zoomed_flag}")
        )

    def pending_input(self, session: Any) -> str:
        code, out, _ = _run_tmux(["capture-pane", "-p", "-t", session.window_id])
        if code != 0:
            return ""
        lines = [ln.rstrip() for ln in out.splitlines() if ln.strip()]
        if not lines:
            return ""
        m = _PROMPT_RE.search(lines[-1])
        return m.group(1).strip() if m else ""

    def create_session(self, kind: str, name: str, directory: Optional[Path]) -> Any:
        args = ["new-window", "-d", "-P", "-F", _WINDOW_FORMAT, "-n", name]
        if self.target:
            args += ["-t", self.target + ":"]
        if directory is not None:
            args += ["-c", str(directory)]
        code, out, err = _run_tmux(args)
        window = _parse_window(out.strip()) if code == 0 else None
        if window is None:
            raise UserError(f"tmux new-window failed: {err.strip() or 'no window created'}")
        return window

    def rename_session(self, session: Any, name: str) -> None:
        code, _, err = _run_tmux(["rename-window", "-t", session.window_id, name])
        if code != 0:
            raise UserError(f"tmux rename-window failed: {err.strip()}")

    def change_directory(self, session: Any, directory: Path) -> None:
        if _flag(_display(session.window_id, "#{pane_dead}")):
            raise UserError(f"window {session.name} has no live process")
        _run_tmux(["send-keys", "-t", session.window_id, "-l", "cd -- " + shlex.quote(str(directory))])
        _run_tmux(["send-keys", "-t", session.window_id, "Enter"])

    def canonical_name(self, kind: str) -> str:
        return kind

    # -- SelectionHost

    def invoke_selection(self, command: str, args: Sequence[Any]) -> Any:
        if command != "select-window":
            raise UserError(f"unknown command: {command}")
        if not args:
            raise UserError("no window given")
        wanted = str(args[0])
        for w in list_windows(self.target):
            if wanted in (w.window_id, w.name):
                self.apply_candidate(w, ApplyContext())
                return w
        raise UserError(f"no such window: {wanted}")

    def apply_candidate(self, candidate: Any, context: ApplyContext) -> None:
        window_id = getattr(candidate, "window_id", "")
        if not window_id:
            raise UserError(f"cannot select {candidate!r}")
        code, _, err = _run_tmux(["select-window", "-t", window_id])
        if code != 0:
            raise UserError(f"tmux select-window failed: {err.strip()}")

    def snapshot_history(self, scope: str) -> Any:
        current = ""
        last = ""
        for w in list_windows(self.target):
            if w.active:
                current = w.window_id
            if w.last:
                last = w.window_id
        return (last, current)

    def commit_history(self, scope: str, state: Any) -> None:
        # Selecting last then current leaves tmux's last-window pointer as it was.
        if not state:
            return
        for window_id in state:
            if window_id:
                _run_tmux(["select-window", "-t", window_id])

    def notify(self, message: str) -> None:
        logger.info(message)
        if self._on_notify is not None:
            self._on_notify(message)
            return
        _run_tmux(["display-message", message])
