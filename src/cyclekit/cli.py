from __future__ import annotations

import argparse
import json
from pathlib import Path
from typing import Any

from . import __version__
from .contracts.v1 import SelectionOptions
from .kernel.errors import UserError
from .kernel.host import ApplyContext
from .kernel.sessions import select_session, tolerance_for_count
from .kernel.settings import load_settings
from .paths import settings_path
from .util.obslog import setup_root_json_logging


def _print_json(obj: Any) -> None:
    print(json.dumps(obj, ensure_ascii=False, indent=2))


def cmd_version(args: argparse.Namespace) -> int:
    print(f"cyclekit {__version__}")
    return 0


def cmd_config(args: argparse.Namespace) -> int:
    settings = load_settings()
    _print_json({"ok": True, "result": {"path": str(settings_path()), "settings": settings.to_dict()}})
    return 0


def cmd_jump(args: argparse.Namespace) -> int:
    from .runners.tmux import TmuxHost

    settings = load_settings()
    host = TmuxHost(target=args.target or None, shells=settings.shells, on_notify=lambda _m: None)
    tolerance = tolerance_for_count(args.tolerance, args.count or 1)
    directory = Path(args.dir) if args.dir else (Path.cwd() if args.here else None)
    options = SelectionOptions(
        kind=args.kind or settings.session_kind,
        affinity="project" if args.here else ("exact" if args.exact else "none"),
        tolerance=tolerance,
        directory=directory,
    )
    try:
        selection = select_session(host, options)
        host.apply_candidate(selection.selected, ApplyContext(record=True))
    except UserError as e:
        _print_json({"ok": False, "error": e.message})
        return 2
    w = selection.selected
    _print_json(
        {
            "ok": True,
            "result": {
                "window_id": w.window_id,
                "name": w.name,
                "created": selection.created,
                "changed_directory": selection.changed_directory,
                "tolerance": selection.tolerance,
                "others": [s.window_id for s in selection.ring.to_list()[:-1]],
            },
        }
    )
    return 0


def cmd_switcher(args: argparse.Namespace) -> int:
    from .ports.switcher import SwitcherApp

    settings = load_settings()
    app = SwitcherApp(settings=settings, directory=Path(args.dir) if args.dir else None, target=args.target or None)
    return app.run()


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="cyclekit", description="Transient cycling for selection commands")
    p.add_argument("--log-level", default="", help="Override the log level from settings.yaml")
    sub = p.add_subparsers(dest="cmd", required=True)

    p_ver = sub.add_parser("version", help="Show version")
    p_ver.set_defaults(func=cmd_version)

    p_cfg = sub.add_parser("config", help="Show the effective settings")
    p_cfg.set_defaults(func=cmd_config)

    p_jump = sub.add_parser("jump", help="Select (or create) an idle shell window in tmux")
    where = p_jump.add_mutually_exclusive_group()
    where.add_argument("--here", action="store_true", help="Prefer a window in this directory's project")
    where.add_argument("--exact", action="store_true", help="Prefer a window in exactly this directory")
    p_jump.add_argument("--dir", default="", help="Target directory (default: current directory)")
    p_jump.add_argument(
        "--tolerance",
        choices=["strict", "tolerant", "interactive", "fresh"],
        default="strict",
        help="What counts as busy (default: strict)",
    )
    p_jump.add_argument("--count", type=int, default=0, help="Repeat count: 4 relaxes busyness, 16 forces a new window")
    p_jump.add_argument("--kind", default="", help="Window name family (default: session_kind setting)")
    p_jump.add_argument("--target", default="", help="tmux session to use (default: current)")
    p_jump.set_defaults(func=cmd_jump)

    p_sw = sub.add_parser("switcher", help="Interactive window switcher with cycling")
    p_sw.add_argument("--dir", default="", help="Directory for 'jump here' (default: current directory)")
    p_sw.add_argument("--target", default="", help="tmux session to use (default: current)")
    p_sw.set_defaults(func=cmd_switcher)

    return p


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    level = args.log_level or load_settings().log_level
    setup_root_json_logging(component="cyclekit", level=level)
    return int(args.func(args))


if __name__ == "__main__":
    raise SystemExit(main())
