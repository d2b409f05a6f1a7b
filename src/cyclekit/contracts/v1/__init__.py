from __future__ import annotations

from .cycle import BusyTolerance, CycleKeys, DirectoryAffinity, SelectionOptions, TypeOverride, VariantSpec
from .keys import is_valid_key, split_key_expression, validate_key_expression

__all__ = [
    "BusyTolerance",
    "CycleKeys",
    "DirectoryAffinity",
    "SelectionOptions",
    "TypeOverride",
    "VariantSpec",
    "is_valid_key",
    "split_key_expression",
    "validate_key_expression",
]
