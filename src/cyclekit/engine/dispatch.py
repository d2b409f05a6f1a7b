from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional, Tuple

from ..contracts.v1 import validate_key_expression
from ..kernel.errors import ConfigurationError, UserError
from .cycling import CycleController
from .variants import Invocation, VariantSet

logger = logging.getLogger("cyclekit.dispatch")

# Recorded as the last command after a cycling move, so moving counts as an
# intervening command for repeat detection.
CYCLE_COMMAND = "cycle"

Handler = Callable[[Invocation], Any]


class CommandDispatcher:
    """Key map, command table and override table in front of a cycling controller.

    Overrides replace a command by another one wherever it is run, which is
    how cycling variants take the place of the commands they wrap.
    """

    def __init__(self, controller: Optional[CycleController] = None) -> None:
        self.controller = controller or CycleController()
        self.commands: Dict[str, Handler] = {}
        self.keymap: Dict[str, str] = {}
        self.overrides: Dict[str, str] = {}
        self.last_command: Optional[str] = None
        self._prefix: List[str] = []

    def register(self, name: str, handler: Handler, *, key: Optional[str] = None) -> None:
        if not name:
            raise ConfigurationError("missing command name")
        self.commands[name] = handler
        if key is not None:
            self.bind(key, name)

    def bind(self, key: str, command: str) -> None:
        try:
            expr = validate_key_expression(key)
        except ValueError as e:
            raise ConfigurationError(f"cannot bind {key!r} to {command}: {e}") from e
        self.keymap[expr] = command

    def remap(self, command: str, replacement: str) -> None:
        if command == replacement:
            raise ConfigurationError(f"cannot remap {command} to itself")
        self.overrides[command] = replacement

    def install(self, variants: VariantSet, *, remap: bool = True) -> None:
        for name, handler in variants.handlers.items():
            self.register(name, handler)
        for key, name in variants.key_bindings:
            self.bind(key, name)
        if remap:
            for command, name in variants.remaps.items():
                if command != name:
                    self.remap(command, name)

    def resolve(self, command: str) -> str:
        name = command
        seen = {name}
        while name in self.overrides:
            name = self.overrides[name]
            if name in seen:
                raise ConfigurationError(f"override loop at {name}")
            seen.add(name)
        return name

    def run(
        self,
        command: str,
        *args: Any,
        count: Optional[int] = None,
        keys: Tuple[str, ...] = (),
    ) -> Any:
        name = self.resolve(command)
        handler = self.commands.get(name)
        if handler is None:
            raise UserError(f"unknown command: {command}")
        inv = Invocation(command=name, args=tuple(args), keys=tuple(keys), count=count, last_command=self.last_command)
        logger.debug("run %s", name, extra={"command": name})
        try:
            return handler(inv)
        finally:
            self.last_command = name

    def press(self, key: str, count: Optional[int] = None) -> bool:
        """Process one input key; returns True if anything used it."""
        if self.controller.is_active:
            if self.controller.handle_key(key, count):
                self.last_command = CYCLE_COMMAND
                return True
            keys = self.controller.unconsumed
        else:
            keys = (key,)

        handled = False
        for i, k in enumerate(keys):
            last = i == len(keys) - 1
            if self._press_unbound(k, count if last else None):
                handled = True
        return handled

    def _press_unbound(self, key: str, count: Optional[int]) -> bool:
        typed = self._prefix + [key]
        expr = " ".join(typed)
        command = self.keymap.get(expr)
        if command is not None:
            self._prefix = []
            self.run(command, count=count, keys=tuple(typed))
            return True
        if any(k.startswith(expr + " ") for k in self.keymap):
            self._prefix = typed
            return True
        self._prefix = []
        self.last_command = None
        return False
