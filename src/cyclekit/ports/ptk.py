"""prompt_toolkit key bindings for cycling sessions.

Two ways to hook the engine into an Application:

- `dispatcher_key_bindings(dispatcher)`: every key press goes through a
  `CommandDispatcher`, which owns both the key map and the cycling mode.
- `cycling_key_bindings(controller, app_bindings)`: the application keeps its
  own bindings; they are disabled while a session is open, and the first key
  the session does not use ends it and is fed back for normal processing.

prompt_toolkit's editing bindings only apply when a BufferControl has focus;
with a buffer focused, its exact bindings take precedence over both.
"""
from __future__ import annotations

import logging
from typing import List, Optional

from prompt_toolkit.filters import Condition
from prompt_toolkit.key_binding import ConditionalKeyBindings, KeyBindings, KeyPressEvent, merge_key_bindings
from prompt_toolkit.key_binding.key_bindings import KeyBindingsBase
from prompt_toolkit.key_binding.key_processor import KeyPress
from prompt_toolkit.keys import Keys

from ..engine.cycling import CycleController
from ..engine.dispatch import CommandDispatcher
from ..kernel.errors import UserError

logger = logging.getLogger("cyclekit.ptk")


def key_name(press: KeyPress) -> str:
    k = press.key
    name = k.value if isinstance(k, Keys) else str(k)
    if name == " ":
        return "space"
    return name


def _count(event: KeyPressEvent) -> Optional[int]:
    return event.arg if event.arg_present else None


def cycling_key_bindings(
    controller: CycleController,
    app_bindings: Optional[KeyBindingsBase] = None,
) -> KeyBindingsBase:
    active = Condition(lambda: controller.is_active)
    kb = KeyBindings()
    buffered: List[KeyPress] = []

    @kb.add(Keys.Any, filter=active, eager=True)
    def _cycle(event: KeyPressEvent) -> None:
        press = event.key_sequence[-1]
        if controller.handle_key(key_name(press), _count(event)):
            if controller.pending:
                buffered.append(press)
            else:
                buffered.clear()
            return
        replay = buffered + [press]
        buffered.clear()
        # Session is closed now, so the replayed keys reach the app bindings.
        for p in reversed(replay):
            event.app.key_processor.feed(p, first=True)

    if app_bindings is None:
        return kb
    return merge_key_bindings([ConditionalKeyBindings(app_bindings, filter=~active), kb])


def dispatcher_key_bindings(dispatcher: CommandDispatcher, *, on_error=None) -> KeyBindings:
    kb = KeyBindings()

    @kb.add(Keys.Any)
    def _press(event: KeyPressEvent) -> None:
        press = event.key_sequence[-1]
        try:
            dispatcher.press(key_name(press), _count(event))
        except UserError as e:
            logger.info("rejected: %s", e.message)
            if on_error is not None:
                on_error(e.message)

    return kb
