"""Ready-made cycling variants for documents, view history and worker sessions."""
from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Dict, Optional, Sequence, Tuple

from ..contracts.v1 import BusyTolerance, CycleKeys, SelectionOptions, split_key_expression
from ..kernel.host import ApplyContext, SelectionHost, SessionJumpHost
from ..kernel.sessions import EscalationTracker, SessionSelection, jump_to_session
from ..kernel.settings import CycleSettings
from ..kernel.siblings import Resource, ResourcePool, SiblingRingBuilder
from ..kernel.view_history import view_history_ring
from .cycling import CycleController, CyclingSession
from .variants import Invocation, VariantContext, VariantSet, define_variants

OTHER_VIEW = "other"

_OPPOSITE = {"left": "right", "right": "left", "up": "down", "down": "up"}


def directional_keys(default: CycleKeys) -> Callable[[Invocation], CycleKeys]:
    """Cycle with the arrow key that invoked the command, when there was one."""

    def resolve(inv: Invocation) -> CycleKeys:
        tokens = split_key_expression(inv.keys[-1]) if inv.keys else []
        last = tokens[-1].lower() if tokens else ""
        if last in _OPPOSITE:
            return CycleKeys(forward=last, backward=_OPPOSITE[last])
        return default

    return resolve


def document_variants(
    host: SelectionHost,
    pool: ResourcePool,
    controller: CycleController,
    *,
    settings: Optional[CycleSettings] = None,
    builder: Optional[SiblingRingBuilder] = None,
) -> VariantSet:
    """Switching to a document cycles through its siblings afterwards."""
    cfg = settings or CycleSettings()
    siblings = builder or SiblingRingBuilder(pool, cfg.sibling_type_overrides)

    def _other_view(ctx: VariantContext, *args: Any) -> Any:
        result = host.invoke_selection(ctx.spec.command, list(args))
        view = host.current_view() or OTHER_VIEW
        ctx.apply_context = ApplyContext(view=view, scope=ctx.apply_context.scope)
        return result

    def _ring(result: Any, ctx: VariantContext):
        if not isinstance(result, Resource):
            return None
        return siblings.build(result, fresh=bool(ctx.invocation.count))

    def _remember(session: CyclingSession) -> None:
        siblings.remember(session.current, session.ring)

    return define_variants(
        [
            {"name": "cycle-switch-to-document", "command": "switch-to-document", "args": ["name"]},
            {
                "name": "cycle-switch-to-document-other-view",
                "command": "switch-to-document-other-view",
                "args": ["name"],
                "body": _other_view,
            },
        ],
        _ring,
        host=host,
        controller=controller,
        settings=cfg,
        on_exit=_remember,
    )


HistoryOf = Callable[[Any, str], Tuple[Sequence[Any], Sequence[Any]]]


def view_history_variants(
    host: SelectionHost,
    controller: CycleController,
    history_of: HistoryOf,
    *,
    is_live: Optional[Callable[[Any], bool]] = None,
    settings: Optional[CycleSettings] = None,
) -> VariantSet:
    """Previous/next document in the current view, then keep going.

    history_of(resource, direction) returns (ahead, behind) for the view now
    showing `resource`, where direction is "previous" or "next".
    """
    cfg = settings or CycleSettings()

    def _ring(result: Any, ctx: VariantContext):
        if result is None:
            return None
        direction = str(ctx.state.get("direction") or "previous")
        ahead, behind = history_of(result, direction)
        return view_history_ring(result, ahead, behind, is_live=is_live)

    def _body(direction: str):
        def body(ctx: VariantContext, *args: Any) -> Any:
            ctx.state["direction"] = direction
            return host.invoke_selection(ctx.spec.command, list(args))

        return body

    previous_keys = CycleKeys(forward="left", backward="right")
    next_keys = CycleKeys(forward="right", backward="left")
    return define_variants(
        [
            {
                "name": "cycle-previous-document",
                "command": "previous-document",
                "body": _body("previous"),
                "cycle_keys": directional_keys(previous_keys),
            },
            {
                "name": "cycle-next-document",
                "command": "next-document",
                "body": _body("next"),
                "cycle_keys": directional_keys(next_keys),
            },
        ],
        _ring,
        host=host,
        controller=controller,
        bindings={"direction": None},
        settings=cfg,
    )


def session_variants(
    host: SessionJumpHost,
    controller: CycleController,
    *,
    settings: Optional[CycleSettings] = None,
    tolerance: BusyTolerance = "strict",
    directory: Optional[Callable[[], Optional[Path]]] = None,
) -> VariantSet:
    """Jump to a worker session, then cycle through the others.

    `jump-to-session` reuses the most recent idle session anywhere;
    `jump-to-session-here` prefers one in the current directory or project.
    """
    cfg = settings or CycleSettings()
    trackers: Dict[str, EscalationTracker] = {}

    def _body(affinity: str):
        def body(ctx: VariantContext, *args: Any) -> SessionSelection:
            inv = ctx.invocation
            tracker = trackers.setdefault(inv.command, EscalationTracker())
            target = directory() if directory is not None else None
            options = SelectionOptions(
                kind=cfg.session_kind,
                affinity=affinity,
                tolerance=tolerance,
                directory=target,
            )
            selection = jump_to_session(
                host,
                options,
                tracker,
                command=inv.command,
                last_command=inv.last_command,
                explicit_count=inv.count,
            )
            view = None if selection.same_view else OTHER_VIEW
            ctx.apply_context = ApplyContext(view=view, scope=ctx.apply_context.scope)
            host.apply_candidate(selection.selected, ctx.apply_context)
            return selection

        return body

    def _ring(result: Any, ctx: VariantContext):
        if not isinstance(result, SessionSelection) or len(result.ring) < 2:
            return None
        return result.ring

    return define_variants(
        [
            {"name": "cycle-jump-to-session", "command": "jump-to-session", "body": _body("none")},
            {"name": "cycle-jump-to-session-here", "command": "jump-to-session-here", "body": _body("project")},
        ],
        _ring,
        host=host,
        controller=controller,
        settings=cfg,
    )
