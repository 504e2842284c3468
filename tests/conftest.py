from __future__ import annotations

import os
from collections.abc import Callable
from datetime import UTC, datetime
from pathlib import Path

import pytest

BASE_TS = 1_700_000_000


@pytest.fixture
def write_lines() -> Callable[[Path, list[str]], None]:
    def _write(path: Path, lines: list[str]) -> None:
        path.write_text("".join(line + "\n" for line in lines), encoding="utf-8")

    return _write


@pytest.fixture
def append_lines() -> Callable[[Path, list[str]], None]:
    def _append(path: Path, lines: list[str]) -> None:
        with path.open("a", encoding="utf-8") as f:
            f.write("".join(line + "\n" for line in lines))

    return _append


@pytest.fixture
def set_mtime() -> Callable[[Path, int], datetime]:
    """Pin a file's mtime to BASE_TS + offset seconds and return it as a datetime."""

    def _set(path: Path, offset: int) -> datetime:
        ts = BASE_TS + offset
        os.utime(path, (ts, ts))
        return datetime.fromtimestamp(ts, tz=UTC)

    return _set


@pytest.fixture
def at() -> Callable[[int], datetime]:
    """Timestamp BASE_TS + offset seconds, matching what set_mtime pins."""

    def _at(offset: int) -> datetime:
        return datetime.fromtimestamp(BASE_TS + offset, tz=UTC)

    return _at


@pytest.fixture
def write_app_log() -> Callable[[Path], None]:
    def _write(path: Path) -> None:
        path.write_text(
            "\n".join(
                [
                    "[2025-12-30 08:12:01] INFO service started",
                    "[2025-12-30 08:12:03] WARNING retrying request id=abc123",
                    "  attempt 2 of 3",
                    "[2025-12-30 08:12:04] ERROR upstream timeout route=/api/v1/items",
                    "Traceback (most recent call last):",
                    '  File "app.py", line 10, in handler',
                    "[2025-12-30 08:12:05] INFO recovered",
                ]
            )
            + "\n",
            encoding="utf-8",
        )

    return _write
