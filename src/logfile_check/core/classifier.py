"""Severity classification of reassembled messages."""

from __future__ import annotations

from collections.abc import Sequence

from .models import Message, Pattern


def classify(message: Message, patterns: Sequence[Pattern]) -> list[Message]:
    """Return one copy of ``message`` per matching pattern, in pattern order.

    Every pattern is tried; a message matching a WARNING and a CRITICAL pattern
    is reported twice.
    """
    return [
        message.model_copy(update={"severity": p.severity})
        for p in patterns
        if p.regex.search(message.text)
    ]


def classify_into(message: Message, patterns: Sequence[Pattern], out: list[Message]) -> int:
    """Classify ``message`` and append the matches to ``out``. Returns the match count."""
    matches = classify(message, patterns)
    out.extend(matches)
    return len(matches)
