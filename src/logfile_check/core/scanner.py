"""Incremental multi-line scanning of a resolved file sequence.

Lines are numbered from 1 within each physical file. A line matching the boundary
pattern starts a new message; everything up to the next boundary belongs to it.
"""

from __future__ import annotations

import gzip
import logging
import re
from collections.abc import Sequence
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from pathlib import Path

import aiofiles
from aiofiles.threadpool import wrap

from .classifier import classify_into
from .errors import ScanError
from .models import Message, Pattern, ScanResult
from .rotation import ScanPlan, is_compressed, stat_file

logger = logging.getLogger(__name__)


@asynccontextmanager
async def _open_text(path: Path, *, encoding: str, decode_errors: str):
    """Open a log file for async text reading (plain or gzip)."""
    if is_compressed(path):
        f = gzip.open(path, mode="rt", encoding=encoding, errors=decode_errors)
        af = wrap(f)
        try:
            yield af
        finally:
            await af.close()
    else:
        async with aiofiles.open(path, encoding=encoding, errors=decode_errors) as f:
            yield f


async def _enumerate_async(iterable, start: int = 0):
    """Async enumerate helper for async iterators."""
    index = start
    async for item in iterable:
        yield index, item
        index += 1


@dataclass(slots=True)
class _Pending:
    """Message being assembled."""

    line_no: int
    parts: list[str] = field(default_factory=list)

    def to_message(self) -> Message:
        return Message(line_no=self.line_no, text="".join(self.parts))


@dataclass(slots=True)
class _FileScan:
    lines_read: int = 0
    line_count: int = 0


async def _scan_file(
    path: Path,
    *,
    skip: int,
    boundary: re.Pattern[str] | None,
    patterns: Sequence[Pattern],
    out: list[Message],
    encoding: str,
    decode_errors: str,
) -> _FileScan:
    stats = _FileScan()
    pending: _Pending | None = None

    async with _open_text(path, encoding=encoding, decode_errors=decode_errors) as f:
        async for line_no, raw in _enumerate_async(f, start=1):
            stats.line_count = line_no
            if line_no <= skip:
                continue

            line = raw.rstrip("\r\n")
            if pending is not None and boundary is not None and boundary.search(line):
                classify_into(pending.to_message(), patterns, out)
                pending = None
            if pending is None:
                pending = _Pending(line_no=line_no)
            pending.parts.append(line + "\n")
            stats.lines_read += 1

    if pending is not None:
        classify_into(pending.to_message(), patterns, out)
    return stats


async def scan(
    plan: ScanPlan,
    boundary: re.Pattern[str] | None,
    patterns: Sequence[Pattern],
    *,
    path: str,
    encoding: str = "utf-8",
    decode_errors: str = "replace",
) -> ScanResult:
    """Read the unseen lines of ``plan`` and return the classified matches.

    Only the first file of the plan is resumed (``plan.resume_after`` lines are
    skipped); later files are newer rotations and are read in full. The line
    position and size reported back describe the current file.
    """
    messages: list[Message] = []
    lines_count = 0
    last_line_number = 0

    for index, log_file in enumerate(plan.files):
        skip = plan.resume_after if index == 0 else 0
        try:
            stats = await _scan_file(
                log_file.path,
                skip=skip,
                boundary=boundary,
                patterns=patterns,
                out=messages,
                encoding=encoding,
                decode_errors=decode_errors,
            )
        except OSError as e:
            raise ScanError(f"Could not read log file {log_file.path}: {e}") from e
        except EOFError as e:
            raise ScanError(f"Truncated compressed log file {log_file.path}: {e}") from e

        logger.debug(
            "Read %d new line(s) of %s (skipped %d)",
            stats.lines_read,
            log_file.path,
            min(skip, stats.line_count),
        )
        lines_count += stats.lines_read
        if log_file.current:
            last_line_number = stats.line_count

    current = stat_file(plan.current.path, current=True)
    return ScanResult(
        path=path,
        lines_count=lines_count,
        last_line_number=last_line_number,
        file_size=current.size,
        modified=current.modified,
        messages=messages,
    )
