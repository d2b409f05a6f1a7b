from __future__ import annotations

from typing import List

from prompt_toolkit.keys import ALL_KEYS, KEY_ALIASES

_KNOWN_KEYS = {k.lower() for k in ALL_KEYS} | {k.lower() for k in KEY_ALIASES}


def split_key_expression(expr: str) -> List[str]:
    """Split "c-x b" into ["c-x", "b"]; a lone space key is written "space"."""
    return [t for t in str(expr or "").split() if t]


def is_valid_key(token: str) -> bool:
    if len(token) == 1:
        return token.isprintable()
    if token.lower() == "space":
        return True
    return token.lower() in _KNOWN_KEYS


def validate_key_expression(expr: str) -> str:
    tokens = split_key_expression(expr)
    if not tokens:
        raise ValueError("empty key expression")
    for t in tokens:
        if not is_valid_key(t):
            raise ValueError(f"unknown key: {t!r}")
    return " ".join(tokens)
