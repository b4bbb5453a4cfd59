from __future__ import annotations

import math
from collections.abc import Mapping
from urllib.parse import urlencode


def build_query(params: Mapping[str, str | int | float | bool | None]) -> str:
    """
    "?a=1&b=x" from a params mapping, skipping None and blank values.
    Returns "" when nothing is left.
    """
    pairs: list[tuple[str, str]] = []
    for k, v in params.items():
        if v is None:
            continue
        if isinstance(v, bool):
            s = "true" if v else "false"
        else:
            s = str(v).strip()
        if not s:
            continue
        pairs.append((str(k), s))
    qs = urlencode(pairs)
    return f"?{qs}" if qs else ""


def parse_number(value: str | None, fallback: int | float) -> int | float:
    if not value:
        return fallback
    try:
        n = float(value)
    except ValueError:
        return fallback
    if not math.isfinite(n):
        return fallback
    return int(n) if n.is_integer() else n
