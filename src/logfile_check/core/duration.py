"""Retention duration parsing.

Accepts an integer with an optional unit suffix: ``90``, ``90s``, ``15m``, ``2h``, ``1d``.
"""

from __future__ import annotations

import re
from datetime import timedelta

_DURATION_RE = re.compile(r"^(?P<n>\d+)\s*(?P<unit>[smhd]?)$")

_UNIT_SECONDS = {"": 1, "s": 1, "m": 60, "h": 3600, "d": 86400}


def parse_duration(s: str) -> timedelta:
    """Parse a retention duration. ``0`` disables retention."""
    m = _DURATION_RE.match(s.strip().lower())
    if not m:
        raise ValueError(f"Invalid duration {s!r}; use e.g. 90, 30s, 15m, 2h or 1d")
    return timedelta(seconds=int(m.group("n")) * _UNIT_SECONDS[m.group("unit")])


def format_duration(d: timedelta) -> str:
    """Render a duration with the largest unit that divides it."""
    seconds = int(d.total_seconds())
    for unit in ("d", "h", "m"):
        size = _UNIT_SECONDS[unit]
        if seconds and seconds % size == 0:
            return f"{seconds // size}{unit}"
    return f"{seconds}s"
