"""Error types raised by the check.

Every error ends the run with an UNKNOWN verdict; the split only tells the
operator where it went wrong.
"""

from __future__ import annotations


class CheckError(Exception):
    """Base class for failures that abort a check run."""


class ConfigurationError(CheckError):
    """Invalid arguments, patterns or environment overrides."""


class ScanError(CheckError):
    """A log file could not be listed, inspected or read."""


class StateError(CheckError):
    """The state file could not be locked, read, parsed or written."""
