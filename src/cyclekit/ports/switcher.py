"""Full-screen tmux window switcher (meant for `tmux display-popup -E`).

j   jump to an idle shell window (press again to relax, a third time for a new one)
h   same, preferring a window in the current directory or project
←/→ cycle through the other shell windows after a jump
q / Enter / Esc  close the switcher, keeping the current selection
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional, Tuple

from prompt_toolkit import Application
from prompt_toolkit.layout import HSplit, Layout, Window
from prompt_toolkit.layout.controls import FormattedTextControl
from prompt_toolkit.styles import Style

from ..engine.cycling import CycleController
from ..engine.dispatch import CommandDispatcher
from ..engine.presets import session_variants
from ..kernel.settings import CycleSettings
from ..runners.tmux import TmuxHost, TmuxWindow
from .ptk import dispatcher_key_bindings

logger = logging.getLogger("cyclekit.switcher")

_STYLE = Style.from_dict(
    {
        "current": "reverse bold",
        "cycling": "fg:ansicyan",
        "status": "fg:ansiyellow",
        "hint": "fg:ansibrightblack",
    }
)


class SwitcherApp:
    def __init__(self, *, settings: CycleSettings, directory: Optional[Path] = None, target: Optional[str] = None):
        self.settings = settings
        self.directory = directory
        self.status = ""
        self.host = TmuxHost(target=target, shells=settings.shells, on_notify=self._set_status)
        self.controller = CycleController()
        self.dispatcher = CommandDispatcher(self.controller)

        variants = session_variants(
            self.host,
            self.controller,
            settings=settings,
            directory=lambda: self.directory or Path.cwd(),
        )
        self.dispatcher.install(variants)
        self.dispatcher.bind("j", "cycle-jump-to-session")
        self.dispatcher.bind("h", "cycle-jump-to-session-here")
        # Enter arrives as c-m.
        for key in ("q", "c-m", "escape", "c-c"):
            self.dispatcher.register(f"quit:{key}", lambda _inv: self._quit(), key=key)

        self.app: Application = Application(
            layout=Layout(
                HSplit(
                    [
                        Window(FormattedTextControl(self._render_windows)),
                        Window(FormattedTextControl(self._render_status), height=1),
                    ]
                )
            ),
            key_bindings=dispatcher_key_bindings(self.dispatcher, on_error=self._set_status),
            style=_STYLE,
            full_screen=True,
        )

    def _set_status(self, message: str) -> None:
        self.status = message

    def _quit(self) -> None:
        if self.controller.is_active:
            self.controller.exit()
        self.app.exit()

    def _render_windows(self) -> List[Tuple[str, str]]:
        windows = self.host.sessions(self.settings.session_kind)
        session = self.controller.active
        ring = session.ring.to_list() if session is not None else []
        current = session.current if session is not None else None
        lines: List[Tuple[str, str]] = []
        for w in windows:
            style = ""
            if current is not None and isinstance(current, TmuxWindow) and current.window_id == w.window_id:
                style = "class:current"
            elif any(getattr(c, "window_id", None) == w.window_id for c in ring):
                style = "class:cycling"
            lines.append((style, f" {w.window_id:>4}  {w.name:<16} {w.path}\n"))
        if not lines:
            lines.append(("class:hint", f" no '{self.settings.session_kind}' windows yet; press j to create one\n"))
        return lines

    def _render_status(self) -> List[Tuple[str, str]]:
        if self.status:
            return [("class:status", " " + self.status)]
        return [("class:hint", " j: jump  h: jump here  q: quit")]

    def run(self) -> int:
        self.app.run()
        return 0
