from __future__ import annotations

from pathlib import Path

import pytest

from logfile_check.server.check_server import state_schema
from logfile_check.tools.check import check_logfiles_impl


def _write_log(path: Path) -> None:
    path.write_text(
        "\n".join(
            [
                "2025-12-30T08:12:01Z [INFO] service started",
                "2025-12-30T08:12:03Z [WARNING] retrying request id=abc123",
                "2025-12-30T08:12:04Z [ERROR] upstream timeout route=/api/v1/items",
                "    at Client.fetch (client.js:42)",
                "2025-12-30T08:12:05Z [INFO] recovered",
            ]
        )
        + "\n",
        encoding="utf-8",
    )


@pytest.mark.asyncio
async def test_check_logfiles_impl_reports_matches(tmp_path: Path) -> None:
    log = tmp_path / "app.log"
    _write_log(log)

    out = await check_logfiles_impl(
        files=[str(log)],
        line_pattern=r"^\d{4}-",
        warning_patterns=[r"\[WARNING\]"],
        critical_patterns=[r"\[ERROR\]"],
        state_file=str(tmp_path / "state.json"),
    )

    assert out["severity"] == "CRITICAL"
    assert out["exit_code"] == 2
    assert out["summary"].startswith("LOGFILES CRITICAL: 1 warnings and 1 criticals in 5 lines")
    [result] = out["results"]
    assert result["path"] == str(log)
    assert [m["line_no"] for m in result["messages"]] == [2, 3]
    assert result["messages"][1]["text"].endswith("(client.js:42)\n")
    assert result["truncated"] is False


@pytest.mark.asyncio
async def test_check_logfiles_impl_second_call_sees_only_new_lines(tmp_path: Path) -> None:
    log = tmp_path / "app.log"
    _write_log(log)
    kwargs = dict(
        files=[str(log)],
        critical_patterns=[r"\[ERROR\]"],
        state_file=str(tmp_path / "state.json"),
    )

    await check_logfiles_impl(**kwargs)
    out = await check_logfiles_impl(**kwargs)

    assert out["severity"] == "OK"
    assert out["results"][0]["lines"] == 0


@pytest.mark.asyncio
async def test_check_logfiles_impl_invalid_pattern_is_unknown(tmp_path: Path) -> None:
    log = tmp_path / "app.log"
    _write_log(log)

    out = await check_logfiles_impl(
        files=[str(log)],
        critical_patterns=["(unclosed"],
        state_file=str(tmp_path / "state.json"),
    )

    assert out["severity"] == "UNKNOWN"
    assert out["exit_code"] == 3
    assert out["results"] == []


def test_state_schema_resource_describes_state_document() -> None:
    schema = state_schema()
    assert "states" in schema["properties"]
