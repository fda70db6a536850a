"""Env snapshot builder.

The snapshot is taken once at process start (os.environ + optional dotenv
files) and passed explicitly to settings and credential resolution. Nothing
downstream reads os.environ or mutates it.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Dict, Iterable, Optional


def _read_dotenv(p: Path) -> Dict[str, str]:
    out: Dict[str, str] = {}
    for raw in p.read_text(encoding="utf-8").splitlines():
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        if line.startswith("export "):
            line = line[len("export "):].lstrip()
        if "=" not in line:
            continue
        k, v = line.split("=", 1)
        k = k.strip()
        v = v.strip()
        # strip simple quotes
        if len(v) >= 2 and v[0] == v[-1] and v[0] in ("'", '"'):
            v = v[1:-1]
        if k:
            out[k] = v
    return out


def load_env_files(paths: Iterable[str | Path], *, optional: bool = False) -> Dict[str, str]:
    """Merge dotenv files. Later files override earlier ones."""
    merged: Dict[str, str] = {}
    for raw in paths:
        p = Path(raw).expanduser()
        if not p.exists():
            if optional:
                continue
            raise FileNotFoundError(str(p))
        merged.update(_read_dotenv(p))
    return merged


def build_env_snapshot(
    env_files: Optional[Iterable[str | Path]] = None,
    *,
    base: Optional[Dict[str, str]] = None,
) -> Dict[str, str]:
    """os.environ (or `base`) overlaid with env_files."""
    snapshot: Dict[str, str] = {k: str(v) for k, v in (os.environ if base is None else base).items()}
    if env_files:
        snapshot.update(load_env_files(env_files))
    return snapshot
