from __future__ import annotations


class CyclekitError(Exception):
    """Base class for errors raised by cyclekit itself."""


class UserError(CyclekitError):
    """A rejected user action.

    Aborts only the current step; an open cycling session stays open.
    """

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ConfigurationError(CyclekitError, ValueError):
    """A command variant or setting that cannot be built."""


class RingInvariantError(CyclekitError, RuntimeError):
    """A ring was used without any candidates in it."""
