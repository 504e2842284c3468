"""MCP server entrypoint (stdio transport).

This module wires together:
- Tools: run the log file check with explicit arguments
- Resources: usage help and the state file schema

Run locally (stdio):
    python -m logfile_check.server.check_server
"""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import Sequence
from typing import Any

from mcp.server.fastmcp import FastMCP

from logfile_check.core.config import MAX_WORKERS_ENV, STATE_FILE_ENV, default_state_path
from logfile_check.core.models import StateDocument
from logfile_check.tools.check import check_logfiles_impl

LOGGER = logging.getLogger(__name__)


def _configure_logging() -> None:
    """Configure a reasonable default logging setup.

    The MCP client typically captures stderr; keeping logs concise makes them easier to consume.
    """
    level_name = os.getenv("LOGFILE_CHECK_LOG_LEVEL", "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


mcp = FastMCP("logfile-check", json_response=True)


@mcp.tool()
async def check_logfiles(
    files: Sequence[str],
    line_pattern: str | None = None,
    warning_patterns: Sequence[str] | None = None,
    critical_patterns: Sequence[str] | None = None,
    state_file: str | None = None,
    keep: str | None = None,
) -> dict[str, Any]:
    """Scan log files for new lines matching warning/critical patterns.

    Parameters
    ----------
    files:
        Log file paths. Append ":<regex>" to include rotated siblings whose file
        names match the regex (e.g., "/var/log/app.log:app\\.log\\.\\d+(\\.gz)?").
    line_pattern:
        Regex marking the first line of a message; following lines are folded into it.
    warning_patterns/critical_patterns:
        Regexes searched in every new message.
    state_file:
        Where scan progress is kept between calls.
    keep:
        Keep reporting matches for this long (e.g., 30m, 2h). Omit to disable.

    Returns
    -------
    dict:
        {"severity": str, "exit_code": int, "summary": str, "report": str, "results": list[dict]}
    """
    return await check_logfiles_impl(
        files=files,
        line_pattern=line_pattern,
        warning_patterns=warning_patterns,
        critical_patterns=critical_patterns,
        state_file=state_file,
        keep=keep,
    )


@mcp.resource("app://logfile-check/help")
def help_resource() -> str:
    """Return a short description of the tool and its environment."""
    return (
        "Tools:\n"
        "- check_logfiles(files, line_pattern, warning_patterns, critical_patterns, state_file, keep)\n"
        "Resources:\n"
        "- app://logfile-check/help\n"
        "- app://logfile-check/schemas/state-document\n"
        f"\nDefault state file: {default_state_path()} (override with {STATE_FILE_ENV})\n"
        f"Concurrent scans: {MAX_WORKERS_ENV}\n"
    )


@mcp.resource("app://logfile-check/schemas/state-document")
def state_schema() -> dict[str, Any]:
    """Return the JSON schema of the persisted state file."""
    return StateDocument.model_json_schema()


def main(argv: Sequence[str] | None = None) -> None:
    """Start the MCP server over stdio."""
    _configure_logging()
    LOGGER.debug("Starting MCP server (transport=stdio)")
    _ = argv or sys.argv[1:]
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
