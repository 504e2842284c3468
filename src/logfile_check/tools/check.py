"""MCP tool implementations.

This module contains the *implementation* behind the exposed MCP tools.
Keep this layer thin: validate inputs, translate them into core calls, and
return JSON-serializable data structures.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from logfile_check.core.aggregator import RESULT_NAME, StatusReport
from logfile_check.core.check_service import run_check
from logfile_check.core.config import build_config
from logfile_check.core.errors import CheckError
from logfile_check.core.models import ScanResult, Severity

logger = logging.getLogger(__name__)

MAX_MESSAGES_PER_FILE = 200


def _result_to_dict(result: ScanResult) -> dict[str, Any]:
    """Convert a ScanResult into a JSON-serializable dict."""
    messages = result.messages[:MAX_MESSAGES_PER_FILE]
    return {
        "path": result.path,
        "lines": result.lines_count,
        "last_line_number": result.last_line_number,
        "warnings": result.count(Severity.WARNING),
        "criticals": result.count(Severity.CRITICAL),
        "messages": [
            {"severity": m.severity.value, "line_no": m.line_no, "text": m.text} for m in messages
        ],
        "truncated": len(result.messages) > len(messages),
    }


def _report_to_dict(report: StatusReport) -> dict[str, Any]:
    return {
        "severity": report.severity.value,
        "exit_code": report.exit_code,
        "summary": report.summary(),
        "report": report.render(),
        "results": [_result_to_dict(r) for r in report.results],
    }


async def check_logfiles_impl(
    *,
    files: Sequence[str],
    line_pattern: str | None = None,
    warning_patterns: Sequence[str] | None = None,
    critical_patterns: Sequence[str] | None = None,
    state_file: str | None = None,
    keep: str | None = None,
    encoding: str = "utf-8",
) -> dict[str, Any]:
    """Implementation for the `check_logfiles` MCP tool.

    Failures are reported the way the CLI reports them: an UNKNOWN verdict with a
    description, rather than an exception.
    """
    try:
        cfg = build_config(
            files=list(files),
            line_pattern=line_pattern,
            warning_patterns=list(warning_patterns or []),
            critical_patterns=list(critical_patterns or []),
            state_file=state_file,
            keep=keep,
            encoding=encoding,
        )
        report = await run_check(cfg)
    except CheckError as e:
        logger.warning("check_logfiles failed: %s", e)
        return {
            "severity": Severity.UNKNOWN.value,
            "exit_code": Severity.UNKNOWN.exit_code,
            "summary": f"{RESULT_NAME} {Severity.UNKNOWN.value}: {e}",
            "report": "",
            "results": [],
        }

    return _report_to_dict(report)
