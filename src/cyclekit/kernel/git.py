from __future__ import annotations

import subprocess
from pathlib import Path
from typing import Optional


def _run_git(args: list[str], *, cwd: Path) -> tuple[int, str]:
    try:
        p = subprocess.run(
            ["git", *args],
            cwd=str(cwd),
            stdout=subprocess.PIPE,
            stderr=subprocess.DEVNULL,
            text=True,
            check=False,
        )
        return int(p.returncode), (p.stdout or "").strip()
    except OSError:
        return 1, ""


def git_root(path: Path) -> Optional[Path]:
    p = Path(path).expanduser()
    if not p.is_dir():
        return None
    code, out = _run_git(["rev-parse", "--show-toplevel"], cwd=p)
    if code != 0 or not out:
        return None
    return Path(out).resolve()


def same_directory(a: Optional[Path], b: Optional[Path]) -> bool:
    if a is None or b is None:
        return False
    try:
        return Path(a).expanduser().resolve() == Path(b).expanduser().resolve()
    except OSError:
        return False
