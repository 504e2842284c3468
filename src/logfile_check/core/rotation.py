"""Rotation-aware selection of the files to scan.

A stream is its current file plus siblings whose names match the rotation pattern.
The resolver decides which of them still hold unseen lines and where to resume.

Ordering rule: newest first by modification time; on a tie the current file is
newest, then paths sort ascending (``app.log.1`` is newer than ``app.log.2``).
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path

from .errors import ScanError
from .models import Stream, StreamState

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class LogFile:
    """A candidate file with the metadata used for ordering."""

    path: Path
    modified: datetime
    size: int
    current: bool = False


@dataclass(frozen=True, slots=True)
class ScanPlan:
    """Files to read, oldest first, and the lines to skip in the first one."""

    files: list[LogFile]
    resume_after: int = 0
    fallback: bool = False

    @property
    def current(self) -> LogFile:
        return next(f for f in self.files if f.current)


def is_compressed(path: Path) -> bool:
    return path.suffix.lower() == ".gz"


def stat_file(path: Path, *, current: bool = False) -> LogFile:
    """Read the ordering metadata of a single file."""
    try:
        st = path.stat()
    except FileNotFoundError as e:
        raise ScanError(f"Log file not found: {path}") from e
    except OSError as e:
        raise ScanError(f"Could not get file metadata of {path}: {e}") from e
    return LogFile(
        path=path,
        modified=datetime.fromtimestamp(st.st_mtime, tz=UTC),
        size=st.st_size,
        current=current,
    )


def _newest_first(files: list[LogFile]) -> list[LogFile]:
    # Stable sorts: path ascending breaks ties left by mtime and the current flag.
    ordered = sorted(files, key=lambda f: str(f.path))
    ordered.sort(key=lambda f: (f.modified, f.current), reverse=True)
    return ordered


def discover(stream: Stream) -> list[LogFile]:
    """Return the current file and its rotations, newest first."""
    parent = stream.path.parent
    if not parent.is_dir():
        raise ScanError(f"Log directory not found: {parent}")
    if not stream.path.is_file():
        raise ScanError(f"Log file not found: {stream.path}")

    files = [stat_file(stream.path, current=True)]

    if stream.rotation_pattern is not None:
        try:
            names = sorted(os.listdir(parent))
        except OSError as e:
            raise ScanError(f"Could not list log directory {parent}: {e}") from e
        for name in names:
            candidate = parent / name
            if candidate == stream.path or not stream.rotation_pattern.fullmatch(name):
                continue
            if not candidate.is_file():
                continue
            files.append(stat_file(candidate))

    return _newest_first(files)


def resolve(stream: Stream, prior: StreamState | None) -> ScanPlan:
    """Choose the files to scan for ``stream`` given the previous run's state."""
    files = discover(stream)

    if prior is None or not prior.has_history:
        current = next(f for f in files if f.current)
        logger.debug("No history for %s, scanning current file only", stream.path)
        return ScanPlan(files=[current])

    # Files touched after the previous run still have unseen lines. The first file
    # carrying exactly the recorded mtime is where the previous run stopped; ties
    # are already ordered so the current file comes first.
    included: list[LogFile] = []
    for f in files:
        if f.modified < prior.modified:
            break
        included.append(f)
        if f.modified == prior.modified:
            break

    if not any(f.current for f in included):
        logger.info(
            "Previously active file of %s is gone, rescanning %d file(s)",
            stream.path,
            len(files),
        )
        return ScanPlan(files=list(reversed(files)), fallback=True)

    included.reverse()
    resume = included[0]
    resume_after = prior.line_number
    if not is_compressed(resume.path) and resume.size < prior.size:
        logger.info("%s shrank from %d to %d bytes, reading from the start", resume.path, prior.size, resume.size)
        resume_after = 0

    if len(included) > 1:
        logger.debug(
            "%s rotated since last run, reading %s",
            stream.path,
            ", ".join(str(f.path) for f in included),
        )
    return ScanPlan(files=included, resume_after=resume_after)
