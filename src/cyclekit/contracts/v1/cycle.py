from __future__ import annotations

import re
from pathlib import Path
from typing import Any, Callable, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .keys import validate_key_expression

DirectoryAffinity = Literal["none", "exact", "project"]
BusyTolerance = Literal["strict", "tolerant", "interactive", "fresh"]


class CycleKeys(BaseModel):
    forward: str = "right"
    backward: str = "left"

    model_config = ConfigDict(extra="forbid", frozen=True)

    @field_validator("forward", "backward")
    @classmethod
    def _check_key(cls, v: str) -> str:
        return validate_key_expression(v)

    @model_validator(mode="after")
    def _distinct(self) -> "CycleKeys":
        if self.forward == self.backward:
            raise ValueError(f"forward and backward keys are both {self.forward!r}")
        return self


class TypeOverride(BaseModel):
    """Maps resource root names matching `pattern` to a fixed type."""

    pattern: str
    type: str

    model_config = ConfigDict(extra="ignore")

    @field_validator("pattern")
    @classmethod
    def _compiles(cls, v: str) -> str:
        try:
            re.compile(v)
        except re.error as e:
            raise ValueError(f"invalid pattern {v!r}: {e}") from e
        return v

    @field_validator("type")
    @classmethod
    def _non_empty(cls, v: str) -> str:
        s = str(v or "").strip()
        if not s:
            raise ValueError("missing type")
        return s


class VariantSpec(BaseModel):
    """One generated command: which selection command it wraps and how."""

    name: str
    command: str
    args: List[str] = Field(default_factory=list)
    # body(ctx, *args) -> result; None forwards the arguments to the host.
    body: Optional[Callable[..., Any]] = None
    key: Optional[str] = None
    # Static key pair, or a callable of the invocation returning one.
    cycle_keys: Optional[Union[CycleKeys, Callable[..., Any]]] = None

    model_config = ConfigDict(extra="forbid", arbitrary_types_allowed=True)

    @field_validator("name", "command")
    @classmethod
    def _non_empty(cls, v: str) -> str:
        s = str(v or "").strip()
        if not s:
            raise ValueError("must not be empty")
        return s

    @field_validator("key")
    @classmethod
    def _check_key(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        return validate_key_expression(v)

    @field_validator("args")
    @classmethod
    def _unique_args(cls, v: List[str]) -> List[str]:
        if len(set(v)) != len(v):
            raise ValueError(f"duplicate argument names: {v}")
        return v


class SelectionOptions(BaseModel):
    kind: str = "shell"
    affinity: DirectoryAffinity = "none"
    tolerance: BusyTolerance = "strict"
    directory: Optional[Path] = None

    model_config = ConfigDict(extra="forbid")
