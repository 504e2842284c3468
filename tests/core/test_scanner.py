from __future__ import annotations

import gzip
import re
from pathlib import Path

import pytest

from logfile_check.core.errors import ScanError
from logfile_check.core.models import Pattern, Severity
from logfile_check.core.rotation import LogFile, ScanPlan, stat_file
from logfile_check.core.scanner import scan

BOUNDARY = re.compile(r"^\[")


def _plan(*paths: Path, resume_after: int = 0) -> ScanPlan:
    files = [stat_file(p) for p in paths[:-1]]
    files.append(stat_file(paths[-1], current=True))
    return ScanPlan(files=files, resume_after=resume_after)


def _critical(regex: str) -> list[Pattern]:
    return [Pattern(Severity.CRITICAL, re.compile(regex))]


@pytest.mark.asyncio
async def test_scan_reassembles_and_classifies_message(tmp_path: Path) -> None:
    log = tmp_path / "app.log"
    log.write_text("[INFO] a\nfollowup\n[ERROR] boom\n", encoding="utf-8")

    result = await scan(_plan(log), BOUNDARY, _critical("ERROR"), path=str(log))

    assert [(m.severity, m.line_no, m.text) for m in result.messages] == [
        (Severity.CRITICAL, 3, "[ERROR] boom\n")
    ]
    assert result.lines_count == 3
    assert result.last_line_number == 3
    assert result.file_size == log.stat().st_size
    assert result.path == str(log)


@pytest.mark.asyncio
async def test_scan_keeps_continuation_lines_with_their_message(tmp_path: Path, write_app_log) -> None:
    log = tmp_path / "app.log"
    write_app_log(log)
    patterns = [
        Pattern(Severity.WARNING, re.compile(r"WARNING")),
        Pattern(Severity.CRITICAL, re.compile(r"Traceback")),
    ]

    result = await scan(_plan(log), BOUNDARY, patterns, path=str(log))

    assert [(m.severity, m.line_no) for m in result.messages] == [
        (Severity.WARNING, 2),
        (Severity.CRITICAL, 4),
    ]
    assert result.messages[0].text.endswith("  attempt 2 of 3\n")
    assert result.messages[1].text.count("\n") == 3


@pytest.mark.asyncio
async def test_scan_skips_already_processed_lines(tmp_path: Path, write_lines) -> None:
    log = tmp_path / "app.log"
    write_lines(log, ["[1] ERROR one", "[2] ERROR two", "[3] ERROR three", "[4] ok"])

    result = await scan(_plan(log, resume_after=2), BOUNDARY, _critical("ERROR"), path=str(log))

    assert [m.line_no for m in result.messages] == [3]
    assert result.lines_count == 2
    assert result.last_line_number == 4


@pytest.mark.asyncio
async def test_scan_with_nothing_new_reports_no_lines(tmp_path: Path, write_lines) -> None:
    log = tmp_path / "app.log"
    write_lines(log, ["[1] ERROR one", "[2] ERROR two"])

    result = await scan(_plan(log, resume_after=2), BOUNDARY, _critical("ERROR"), path=str(log))

    assert result.lines_count == 0
    assert result.messages == []
    assert result.last_line_number == 2


@pytest.mark.asyncio
async def test_scan_without_boundary_folds_file_into_one_message(tmp_path: Path, write_lines) -> None:
    log = tmp_path / "app.log"
    write_lines(log, ["[1] ERROR one", "[2] ERROR two", "[3] ok"])

    result = await scan(_plan(log), None, _critical("ERROR"), path=str(log))

    assert len(result.messages) == 1
    assert result.messages[0].line_no == 1
    assert result.messages[0].text == "[1] ERROR one\n[2] ERROR two\n[3] ok\n"


@pytest.mark.asyncio
async def test_scan_finalizes_message_without_trailing_newline(tmp_path: Path) -> None:
    log = tmp_path / "app.log"
    log.write_text("[1] ok\n[2] ERROR last", encoding="utf-8")

    result = await scan(_plan(log), BOUNDARY, _critical("ERROR"), path=str(log))

    assert [(m.line_no, m.text) for m in result.messages] == [(2, "[2] ERROR last\n")]


@pytest.mark.asyncio
async def test_scan_reads_rotated_tail_then_current(tmp_path: Path, write_lines) -> None:
    rotated = tmp_path / "app.log.1"
    log = tmp_path / "app.log"
    write_lines(rotated, ["[1] seen", "[2] ERROR tail"])
    write_lines(log, ["[1] ERROR fresh", "[2] ok", "[3] ok"])

    result = await scan(_plan(rotated, log, resume_after=1), BOUNDARY, _critical("ERROR"), path=str(log))

    assert [(m.line_no, m.text) for m in result.messages] == [
        (2, "[2] ERROR tail\n"),
        (1, "[1] ERROR fresh\n"),
    ]
    assert result.lines_count == 4
    assert result.last_line_number == 3


@pytest.mark.asyncio
async def test_scan_reads_gzip_rotation(tmp_path: Path, write_lines) -> None:
    rotated = tmp_path / "app.log.1.gz"
    with gzip.open(rotated, "wt", encoding="utf-8") as f:
        f.write("[1] ok\n[2] ERROR zipped\n")
    log = tmp_path / "app.log"
    write_lines(log, ["[1] ok"])

    result = await scan(_plan(rotated, log), BOUNDARY, _critical("ERROR"), path=str(log))

    assert [m.text for m in result.messages] == ["[2] ERROR zipped\n"]
    assert result.lines_count == 3


@pytest.mark.asyncio
async def test_scan_empty_patterns_match_nothing(tmp_path: Path, write_app_log) -> None:
    log = tmp_path / "app.log"
    write_app_log(log)

    result = await scan(_plan(log), BOUNDARY, [], path=str(log))

    assert result.messages == []
    assert result.lines_count == 7


@pytest.mark.asyncio
async def test_scan_unreadable_file_raises(tmp_path: Path, write_lines) -> None:
    log = tmp_path / "app.log"
    write_lines(log, ["x"])
    plan = _plan(log)
    gone = LogFile(path=tmp_path / "gone.log", modified=plan.files[0].modified, size=0)

    with pytest.raises(ScanError):
        await scan(ScanPlan(files=[gone, plan.files[0]]), BOUNDARY, [], path=str(log))
