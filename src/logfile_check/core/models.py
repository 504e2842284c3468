"""Core data models for log checking.

Run-scoped configuration (streams, patterns) uses frozen dataclasses. Everything that
ends up in the state file is a pydantic model so it can be validated on load.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field


class Severity(str, Enum):
    """Check severity; the rank doubles as the monitoring exit code."""

    OK = "OK"
    WARNING = "WARNING"
    CRITICAL = "CRITICAL"
    UNKNOWN = "UNKNOWN"

    @property
    def rank(self) -> int:
        return _RANK[self]

    @property
    def exit_code(self) -> int:
        return _RANK[self]

    @classmethod
    def highest(cls, severities: Iterable[Severity]) -> Severity:
        """Return the most urgent severity, OK for an empty input."""
        return max(severities, key=lambda s: s.rank, default=cls.OK)


_RANK: dict[Severity, int] = {
    Severity.OK: 0,
    Severity.WARNING: 1,
    Severity.CRITICAL: 2,
    Severity.UNKNOWN: 3,
}


@dataclass(frozen=True, slots=True)
class Pattern:
    """A severity-tagged regular expression."""

    severity: Severity
    regex: re.Pattern[str]


@dataclass(frozen=True, slots=True)
class Stream:
    """One monitored log: the current file plus optional rotated siblings."""

    path: Path
    rotation_pattern: re.Pattern[str] | None = None

    @property
    def identity(self) -> str:
        return str(self.path)


class Message(BaseModel):
    """A multi-line log message, 1-based line number of its first line."""

    line_no: int
    severity: Severity = Severity.UNKNOWN
    text: str = ""

    def __str__(self) -> str:
        return f"{self.severity.value}({self.line_no}): {self.text}"


class ScanResult(BaseModel):
    """Outcome of scanning one stream in the current run."""

    path: str
    lines_count: int = 0
    last_line_number: int = 0
    file_size: int = 0
    modified: datetime | None = None
    messages: list[Message] = Field(default_factory=list)

    def count(self, severity: Severity) -> int:
        return sum(1 for m in self.messages if m.severity == severity)

    @property
    def severity(self) -> Severity:
        return Severity.highest(m.severity for m in self.messages)


class KeptAlert(BaseModel):
    """A previous scan result that still counts until ``keep_until``."""

    result: ScanResult
    keep_until: datetime

    def expired(self, now: datetime) -> bool:
        return self.keep_until < now


class StreamState(BaseModel):
    """Persisted progress of one stream."""

    path: str
    size: int = 0
    modified: datetime | None = None  # None until the first completed run
    line_number: int = 0  # last processed line of the current file, 0 = none
    kept_alerts: list[KeptAlert] = Field(default_factory=list)

    @property
    def has_history(self) -> bool:
        return self.modified is not None


class StateDocument(BaseModel):
    """All stream states, keyed by the current-file path."""

    states: dict[str, StreamState] = Field(default_factory=dict)

    def get(self, path: str) -> StreamState | None:
        return self.states.get(path)

    def find_or_create(self, path: str) -> StreamState:
        state = self.states.get(path)
        if state is None:
            state = StreamState(path=path)
            self.states[path] = state
        return state
