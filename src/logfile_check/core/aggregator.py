"""Overall verdict and report text for a check run."""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass, field

from .models import KeptAlert, Message, ScanResult, Severity

RESULT_NAME = "LOGFILES"


def _message_lines(messages: Iterable[Message]) -> Iterator[str]:
    for m in messages:
        yield f"{m}" if m.text.endswith("\n") else f"{m}\n"


@dataclass(frozen=True, slots=True)
class StatusReport:
    """Aggregated outcome of all streams of one run."""

    severity: Severity
    warnings: int
    criticals: int
    lines: int
    streams: int
    retention_enabled: bool = False
    kept_warnings: int = 0
    kept_criticals: int = 0
    results: Sequence[ScanResult] = field(default_factory=tuple)
    kept: Sequence[KeptAlert] = field(default_factory=tuple)

    @property
    def exit_code(self) -> int:
        return self.severity.exit_code

    def summary(self) -> str:
        """First line of the report."""
        line = (
            f"{RESULT_NAME} {self.severity.value}: {self.warnings} warnings and "
            f"{self.criticals} criticals in {self.lines} lines of {self.streams} files"
        )
        if self.retention_enabled:
            line += f" ({self.kept_warnings} warnings and {self.kept_criticals} criticals kept)"
        return line

    def details(self) -> str:
        """Fresh matches per stream, followed by that stream's still active kept matches."""
        out: list[str] = []
        for result in self.results:
            kept = [k for k in self.kept if k.result.path == result.path]
            if not result.messages and not kept:
                continue
            out.append(f"File: {result.path}\n")
            out.extend(_message_lines(result.messages))
            for alert in kept:
                out.append(f"Kept until {alert.keep_until.isoformat()}:\n")
                out.extend(_message_lines(alert.result.messages))
        return "".join(out)

    def render(self) -> str:
        """Summary line followed by the per-stream match detail."""
        return f"{self.summary()}\n{self.details()}"


def aggregate(
    results: Sequence[ScanResult],
    kept_alerts: Sequence[KeptAlert],
    retention_enabled: bool,
) -> StatusReport:
    """Combine fresh results and still-active kept alerts into one verdict."""
    kept_alerts = tuple(kept_alerts) if retention_enabled else ()
    fresh = [m for r in results for m in r.messages]
    kept = [m for k in kept_alerts for m in k.result.messages]

    return StatusReport(
        severity=Severity.highest(m.severity for m in [*fresh, *kept]),
        warnings=sum(r.count(Severity.WARNING) for r in results),
        criticals=sum(r.count(Severity.CRITICAL) for r in results),
        lines=sum(r.lines_count for r in results),
        streams=len(results),
        retention_enabled=retention_enabled,
        kept_warnings=sum(1 for m in kept if m.severity == Severity.WARNING),
        kept_criticals=sum(1 for m in kept if m.severity == Severity.CRITICAL),
        results=tuple(results),
        kept=kept_alerts,
    )
