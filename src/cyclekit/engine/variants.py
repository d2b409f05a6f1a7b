"""Generating cycling variants of selection commands.

`define_variants` takes a table of command specifications and returns one
handler per entry. A handler behaves exactly like the command it wraps, except
that when the ring builder finds alternatives to the command's result, a
cycling session is opened over them.
"""
from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from pydantic import ValidationError

from ..contracts.v1 import CycleKeys, VariantSpec
from ..kernel.errors import ConfigurationError
from ..kernel.host import ApplyContext, SelectionHost
from ..kernel.ring import CandidateRing
from ..kernel.settings import CycleSettings
from .cycling import ApplyFn, CycleController, CyclingSession

logger = logging.getLogger("cyclekit.variants")


@dataclass(frozen=True)
class Invocation:
    """How a command was invoked: its arguments, keys and numeric prefix."""

    command: str
    args: Tuple[Any, ...] = ()
    keys: Tuple[str, ...] = ()
    count: Optional[int] = None
    last_command: Optional[str] = None


@dataclass
class VariantContext:
    """Per-invocation state shared by the body, the ring builder and the session."""

    spec: VariantSpec
    invocation: Invocation
    host: SelectionHost
    state: Dict[str, Any]
    apply_context: ApplyContext
    result: Any = None


Handler = Callable[[Invocation], Any]
RingBuilder = Callable[[Any, VariantContext], Optional[CandidateRing]]
KeysSource = Union[CycleKeys, Callable[[Invocation], Any], None]


@dataclass
class VariantSet:
    handlers: Dict[str, Handler] = field(default_factory=dict)
    # (key expression, command name) pairs for the caller's key map.
    key_bindings: List[Tuple[str, str]] = field(default_factory=list)
    # underlying command -> generated command, for a dispatcher override table.
    remaps: Dict[str, str] = field(default_factory=dict)
    specs: Dict[str, VariantSpec] = field(default_factory=dict)


def _validate_specs(specs: Iterable[Union[VariantSpec, Mapping[str, Any]]]) -> List[VariantSpec]:
    out: List[VariantSpec] = []
    names: set = set()
    keys: set = set()
    for raw in specs:
        try:
            spec = raw if isinstance(raw, VariantSpec) else VariantSpec.model_validate(raw)
        except ValidationError as e:
            raise ConfigurationError(f"invalid command variant {raw!r}: {e}") from e
        if spec.name in names:
            raise ConfigurationError(f"duplicate command variant: {spec.name}")
        if spec.key is not None and spec.key in keys:
            raise ConfigurationError(f"key {spec.key!r} bound twice")
        names.add(spec.name)
        if spec.key is not None:
            keys.add(spec.key)
        out.append(spec)
    if not out:
        raise ConfigurationError("no command variants given")
    return out


def _coerce_keys(value: Any, *, command: str) -> CycleKeys:
    try:
        if isinstance(value, CycleKeys):
            return value
        if isinstance(value, (tuple, list)) and len(value) == 2:
            return CycleKeys(forward=value[0], backward=value[1])
        if isinstance(value, Mapping):
            return CycleKeys.model_validate(dict(value))
    except ValidationError as e:
        raise ConfigurationError(f"invalid cycle keys for {command}: {e}") from e
    raise ConfigurationError(f"invalid cycle keys for {command}: {value!r}")


def _init_state(bindings: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    state: Dict[str, Any] = {}
    for name, init in (bindings or {}).items():
        state[name] = init() if callable(init) else copy.copy(init)
    return state


def define_variants(
    specs: Iterable[Union[VariantSpec, Mapping[str, Any]]],
    ring_builder: RingBuilder,
    *,
    host: SelectionHost,
    controller: CycleController,
    bindings: Optional[Mapping[str, Any]] = None,
    cycle_keys: KeysSource = None,
    settings: Optional[CycleSettings] = None,
    apply: Optional[ApplyFn] = None,
    on_exit: Optional[Callable[[CyclingSession], None]] = None,
    scope: str = "global",
) -> VariantSet:
    """Build one handler per spec.

    bindings: name -> initial value (or zero-argument factory), evaluated
        afresh for every invocation into `VariantContext.state`.
    ring_builder: maps the command result to a ring, or None for no cycling.
    cycle_keys: default key pair (or callable of the invocation) for specs
        that do not name their own; falls back to the settings.
    """
    checked = _validate_specs(specs)
    cfg = settings or CycleSettings()
    default_keys: KeysSource = cycle_keys if cycle_keys is not None else cfg.cycle_keys
    if isinstance(default_keys, (tuple, list, Mapping)):
        default_keys = _coerce_keys(default_keys, command="defaults")

    out = VariantSet()

    def _resolve_keys(spec: VariantSpec, inv: Invocation) -> CycleKeys:
        source = spec.cycle_keys if spec.cycle_keys is not None else default_keys
        if source is None:
            return CycleKeys()
        value = source(inv) if callable(source) and not isinstance(source, CycleKeys) else source
        return _coerce_keys(value, command=spec.name)

    def _make_handler(spec: VariantSpec) -> Handler:
        def handler(inv: Optional[Invocation] = None) -> Any:
            inv = inv or Invocation(command=spec.name)
            if spec.args and len(inv.args) > len(spec.args):
                raise TypeError(f"{spec.name} takes at most {len(spec.args)} argument(s), got {len(inv.args)}")

            # A still-open session must commit before this command snapshots history.
            if controller.is_active:
                controller.exit()

            ctx = VariantContext(
                spec=spec,
                invocation=inv,
                host=host,
                state=_init_state(bindings),
                apply_context=ApplyContext(scope=scope),
            )
            snapshot = host.snapshot_history(scope)

            if spec.body is None:
                result = host.invoke_selection(spec.command, list(inv.args))
            else:
                result = spec.body(ctx, *inv.args)
            ctx.result = result

            try:
                ring = ring_builder(result, ctx)
            except Exception:
                logger.warning("ring builder failed; not cycling", exc_info=True, extra={"command": spec.name})
                ring = None
            if ring is None or len(ring) == 0:
                return result

            keys = _resolve_keys(spec, inv)
            session = CyclingSession(
                command=spec.name,
                ring=ring,
                host=host,
                forward_key=keys.forward,
                backward_key=keys.backward,
                context=ApplyContext(view=ctx.apply_context.view, scope=scope),
                history=snapshot,
                state=ctx.state,
                apply=apply,
                on_exit=on_exit,
            )
            controller.start(session)
            if cfg.show_cycling_keys:
                host.notify(f"Cycle with {keys.forward} and {keys.backward}")
            return result

        handler.__name__ = spec.name.replace("-", "_")
        handler.__doc__ = f"Cycling variant of {spec.command}."
        return handler

    for spec in checked:
        out.handlers[spec.name] = _make_handler(spec)
        out.specs[spec.name] = spec
        out.remaps[spec.command] = spec.name
        if spec.key is not None:
            out.key_bindings.append((spec.key, spec.name))
    return out
