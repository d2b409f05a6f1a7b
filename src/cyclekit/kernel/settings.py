"""User settings for cyclekit.

Settings are read from $CYCLEKIT_HOME/settings.yaml (default ~/.cyclekit) and
include:
- cycle_keys: default forward/backward keys while cycling
- show_cycling_keys: notify which keys cycle when a session starts
- sibling_type_overrides: root-name pattern -> resource type table
- session_kind / shells: worker-session defaults for the tmux host
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml  # type: ignore
from pydantic import ValidationError

from ..contracts.v1 import CycleKeys, TypeOverride
from ..paths import settings_path
from ..util.conv import coerce_bool, coerce_str_list

logger = logging.getLogger("cyclekit.settings")

DEFAULT_SHELLS = ["bash", "zsh", "sh", "fish", "dash", "ksh", "tcsh", "nu", "xonsh"]


@dataclass
class CycleSettings:
    cycle_keys: CycleKeys = field(default_factory=CycleKeys)
    show_cycling_keys: bool = True
    sibling_type_overrides: List[TypeOverride] = field(default_factory=list)
    session_kind: str = "shell"
    shells: List[str] = field(default_factory=lambda: list(DEFAULT_SHELLS))
    log_level: str = "INFO"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "cycle_keys": self.cycle_keys.model_dump(),
            "show_cycling_keys": self.show_cycling_keys,
            "sibling_type_overrides": [o.model_dump() for o in self.sibling_type_overrides],
            "session_kind": self.session_kind,
            "shells": list(self.shells),
            "log_level": self.log_level,
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "CycleSettings":
        out = cls()

        keys_raw = d.get("cycle_keys")
        if isinstance(keys_raw, dict):
            try:
                out.cycle_keys = CycleKeys.model_validate(
                    {k: v for k, v in keys_raw.items() if k in ("forward", "backward")}
                )
            except ValidationError as e:
                logger.warning("ignoring invalid cycle_keys: %s", e.errors()[0].get("msg", e))

        out.show_cycling_keys = coerce_bool(d.get("show_cycling_keys"), default=True)

        overrides_raw = d.get("sibling_type_overrides")
        if isinstance(overrides_raw, list):
            for item in overrides_raw:
                if not isinstance(item, dict):
                    continue
                try:
                    out.sibling_type_overrides.append(TypeOverride.model_validate(item))
                except ValidationError:
                    logger.warning("ignoring invalid sibling_type_overrides entry: %r", item)

        kind = str(d.get("session_kind") or "").strip()
        if kind:
            out.session_kind = kind

        shells = coerce_str_list(d.get("shells"))
        if shells:
            out.shells = shells

        level = str(d.get("log_level") or "").strip().upper()
        if level:
            out.log_level = level
        return out


def load_settings_doc(path: Optional[Path] = None) -> Dict[str, Any]:
    """Load the raw settings document; missing or unreadable files give {}."""
    p = path or settings_path()
    if not p.exists():
        return {}
    try:
        doc = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.warning("cannot read settings %s: %s", p, e)
        return {}
    return doc if isinstance(doc, dict) else {}


def load_settings(path: Optional[Path] = None) -> CycleSettings:
    return CycleSettings.from_dict(load_settings_doc(path))
