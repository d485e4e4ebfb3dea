from __future__ import annotations

import os
import re
from typing import Mapping


def parse_id_set(raw: str | None) -> set[str]:
    """Parse a comma/space separated list of numeric platform ids."""
    if not raw:
        return set()
    out: set[str] = set()
    for tok in re.split(r"[\s,;]+", str(raw).strip()):
        if not tok:
            continue
        if re.fullmatch(r"-?\d{1,22}", tok):
            out.add(tok)
    return out


def env_flag(name: str, default: bool, environ: Mapping[str, str] | None = None) -> bool:
    env = os.environ if environ is None else environ
    raw = env.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def env_int(name: str, default: int, environ: Mapping[str, str] | None = None) -> int:
    env = os.environ if environ is None else environ
    raw = (env.get(name) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default
