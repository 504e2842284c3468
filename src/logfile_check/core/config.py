"""Run configuration shared by the CLI and the MCP tool."""

from __future__ import annotations

import codecs
import logging
import os
import re
import tempfile
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path

from .duration import parse_duration
from .errors import ConfigurationError
from .models import Pattern, Severity, Stream

STATE_FILE_ENV = "LOGFILE_CHECK_STATE_FILE"
MAX_WORKERS_ENV = "LOGFILE_CHECK_MAX_WORKERS"
DEFAULT_STATE_NAME = "logfile_check_state.json"
ROTATION_DELIMITER = ":"

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CheckConfig:
    """Everything one check run needs."""

    streams: Sequence[Stream]
    state_path: Path
    boundary: re.Pattern[str] | None = None
    patterns: Sequence[Pattern] = field(default_factory=tuple)
    keep_for: timedelta = timedelta(0)
    encoding: str = "utf-8"
    decode_errors: str = "replace"
    max_workers: int | None = None

    @property
    def retention_enabled(self) -> bool:
        return self.keep_for > timedelta(0)


def compile_pattern(raw: str, *, what: str) -> re.Pattern[str]:
    try:
        return re.compile(raw)
    except re.error as e:
        raise ConfigurationError(f"Invalid {what} {raw!r}: {e}") from e


def parse_file_arg(entry: str) -> Stream:
    """Parse ``PATH`` or ``PATH:ROTATION_REGEX``."""
    path, sep, rotation = entry.partition(ROTATION_DELIMITER)
    if not path:
        raise ConfigurationError(f"Missing log file path in {entry!r}")
    rotation_re = compile_pattern(rotation, what="rotation pattern") if sep and rotation else None
    return Stream(path=Path(path).expanduser(), rotation_pattern=rotation_re)


def build_patterns(
    warning_patterns: Sequence[str] = (),
    critical_patterns: Sequence[str] = (),
) -> list[Pattern]:
    """Compile severity patterns, warnings first."""
    patterns = [
        Pattern(Severity.WARNING, compile_pattern(p, what="warning pattern")) for p in warning_patterns
    ]
    patterns.extend(
        Pattern(Severity.CRITICAL, compile_pattern(p, what="critical pattern")) for p in critical_patterns
    )
    return patterns


def default_state_path() -> Path:
    env = os.getenv(STATE_FILE_ENV)
    if env:
        return Path(env).expanduser()
    return Path(tempfile.gettempdir()) / DEFAULT_STATE_NAME


def resolve_max_workers(max_workers: int | None) -> int:
    """Bound on concurrently scanned streams."""
    if max_workers is not None:
        if max_workers < 1:
            raise ConfigurationError("max_workers must be >= 1")
        return max_workers

    env = os.getenv(MAX_WORKERS_ENV)
    if env:
        try:
            value = int(env)
        except ValueError as exc:
            raise ConfigurationError(f"{MAX_WORKERS_ENV} must be an integer") from exc
        if value < 1:
            raise ConfigurationError(f"{MAX_WORKERS_ENV} must be >= 1")
        return value

    cpu_count = os.cpu_count() or 1
    return min(8, cpu_count)


def build_config(
    *,
    files: Sequence[str],
    line_pattern: str | None = None,
    warning_patterns: Sequence[str] = (),
    critical_patterns: Sequence[str] = (),
    state_file: str | None = None,
    keep: str | None = None,
    encoding: str = "utf-8",
    max_workers: int | None = None,
) -> CheckConfig:
    """Validate raw settings and compile them into a :class:`CheckConfig`."""
    if not files:
        raise ConfigurationError("At least one log file is required")

    try:
        keep_for = parse_duration(keep) if keep else timedelta(0)
    except ValueError as e:
        raise ConfigurationError(str(e)) from e

    try:
        codecs.lookup(encoding)
    except LookupError as e:
        raise ConfigurationError(f"Unknown encoding {encoding!r}") from e

    boundary = compile_pattern(line_pattern, what="line pattern") if line_pattern else None

    streams: dict[str, Stream] = {}
    for entry in files:
        stream = parse_file_arg(entry)
        if stream.identity in streams:
            logger.warning("Ignoring duplicate log file %s", stream.identity)
            continue
        streams[stream.identity] = stream

    return CheckConfig(
        streams=tuple(streams.values()),
        state_path=Path(state_file).expanduser() if state_file else default_state_path(),
        boundary=boundary,
        patterns=tuple(build_patterns(warning_patterns, critical_patterns)),
        keep_for=keep_for,
        encoding=encoding,
        max_workers=resolve_max_workers(max_workers),
    )
