"""Command-line entrypoint for the monitoring check.

Exit code follows the monitoring plugin convention: 0 OK, 1 WARNING, 2 CRITICAL,
3 UNKNOWN. The first stdout line is the summary.
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from collections.abc import Sequence
from importlib.metadata import PackageNotFoundError, version
from typing import NoReturn

from logfile_check.core.aggregator import RESULT_NAME
from logfile_check.core.check_service import run_check_sync
from logfile_check.core.config import STATE_FILE_ENV, build_config
from logfile_check.core.errors import CheckError, ConfigurationError, ScanError, StateError
from logfile_check.core.models import Severity

LOG_LEVEL_ENV = "LOGFILE_CHECK_LOG_LEVEL"

logger = logging.getLogger(__name__)


class _ArgumentParser(argparse.ArgumentParser):
    """argparse exits with 2 on bad input, which would read as CRITICAL."""

    def error(self, message: str) -> None:  # type: ignore[override]
        raise ConfigurationError(message)


def _version() -> str:
    try:
        return version("logfile-check")
    except PackageNotFoundError:
        return "unknown"


def _configure_logging(verbosity: int) -> None:
    """Log to stderr; stdout belongs to the monitoring host."""
    if verbosity >= 2:
        level = logging.DEBUG
    elif verbosity == 1:
        level = logging.INFO
    else:
        level_name = os.getenv(LOG_LEVEL_ENV, "WARNING").upper()
        level = getattr(logging, level_name, logging.WARNING)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def build_parser() -> argparse.ArgumentParser:
    p = _ArgumentParser(
        prog="check-logfiles",
        description="Checks log files for specific patterns and respects messages with multiple lines.",
    )
    p.add_argument(
        "-f",
        "--file",
        dest="files",
        action="append",
        required=True,
        metavar="PATH[:ROTATION_REGEX]",
        help="Log file to analyze, optionally with a regex matching its rotated siblings",
    )
    p.add_argument("-l", "--line", dest="line_pattern", default=None, help="Pattern to detect new messages")
    p.add_argument(
        "-w",
        "--warningpattern",
        dest="warning_patterns",
        action="append",
        default=[],
        help="Regex pattern to trigger a WARNING problem",
    )
    p.add_argument(
        "-c",
        "--criticalpattern",
        dest="critical_patterns",
        action="append",
        default=[],
        help="Regex pattern to trigger a CRITICAL problem",
    )
    p.add_argument(
        "-s",
        "--statefile",
        dest="state_file",
        default=None,
        help=f"File to save the processing state in from run to run (default: ${STATE_FILE_ENV} or a temp file)",
    )
    p.add_argument(
        "-k",
        "--keep",
        default=None,
        help="Keep reporting matches for this long, e.g. 300, 30m, 2h, 1d (default: 0, disabled)",
    )
    p.add_argument("--encoding", default="utf-8", help="Log file encoding (default: utf-8)")
    p.add_argument("-v", "--verbose", action="count", default=0, help="Log progress to stderr (-vv for debug)")
    p.add_argument("--version", action="version", version=f"%(prog)s {_version()}")
    return p


def _unknown(message: str) -> NoReturn:
    print(f"{RESULT_NAME} {Severity.UNKNOWN.value}: {message}")
    raise SystemExit(Severity.UNKNOWN.exit_code)


def main(argv: Sequence[str] | None = None) -> None:
    try:
        args = build_parser().parse_args(argv)
    except ConfigurationError as e:
        _unknown(f"Could not parse command line arguments: {e}")

    _configure_logging(args.verbose)

    try:
        cfg = build_config(
            files=args.files,
            line_pattern=args.line_pattern,
            warning_patterns=args.warning_patterns,
            critical_patterns=args.critical_patterns,
            state_file=args.state_file,
            keep=args.keep,
            encoding=args.encoding,
        )
        logger.debug("Checking %d log file(s), state in %s", len(cfg.streams), cfg.state_path)
        report = run_check_sync(cfg)
    except ConfigurationError as e:
        _unknown(f"Invalid configuration: {e}")
    except StateError as e:
        _unknown(f"Could not handle state file: {e}")
    except ScanError as e:
        _unknown(f"Could not check log file: {e}")
    except CheckError as e:
        _unknown(str(e))

    sys.stdout.write(report.render())
    raise SystemExit(report.exit_code)


if __name__ == "__main__":
    main()
