"""One complete check run.

Lock the state, resolve and scan every stream, fold the results into the state,
save it, then aggregate. Nothing is saved when any stream fails.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import UTC, datetime

from .aggregator import StatusReport, aggregate
from .config import CheckConfig, resolve_max_workers
from .duration import format_duration
from .models import KeptAlert, ScanResult, StateDocument, Stream, StreamState
from .rotation import resolve
from .scanner import scan
from .state_store import StateStore, update_stream_state

logger = logging.getLogger(__name__)


async def _scan_stream(
    stream: Stream,
    prior: StreamState | None,
    cfg: CheckConfig,
    semaphore: asyncio.Semaphore,
) -> ScanResult:
    async with semaphore:
        plan = await asyncio.to_thread(resolve, stream, prior)
        return await scan(
            plan,
            cfg.boundary,
            cfg.patterns,
            path=stream.identity,
            encoding=cfg.encoding,
            decode_errors=cfg.decode_errors,
        )


async def _scan_all(
    cfg: CheckConfig,
    doc: StateDocument,
    semaphore: asyncio.Semaphore,
) -> list[ScanResult]:
    """Scan all streams; the first failure cancels the rest and is re-raised."""
    try:
        async with asyncio.TaskGroup() as tg:
            tasks = [
                tg.create_task(_scan_stream(s, doc.get(s.identity), cfg, semaphore))
                for s in cfg.streams
            ]
    except ExceptionGroup as eg:
        raise eg.exceptions[0]
    return [t.result() for t in tasks]


async def run_check(cfg: CheckConfig, *, now: datetime | None = None) -> StatusReport:
    """Run the check for all configured streams and persist the new state."""
    now = now or datetime.now(UTC)
    store = StateStore(cfg.state_path)
    semaphore = asyncio.Semaphore(resolve_max_workers(cfg.max_workers))

    if cfg.retention_enabled:
        logger.debug("Keeping matches for %s", format_duration(cfg.keep_for))

    async with store.locked():
        doc = await asyncio.to_thread(store.load)
        results = await _scan_all(cfg, doc, semaphore)

        active: list[KeptAlert] = []
        for stream, result in zip(cfg.streams, results):
            state = doc.find_or_create(stream.identity)
            active.extend(update_stream_state(state, result, now=now, keep_for=cfg.keep_for))
            logger.info(
                "%s: %d new line(s), %d match(es), resume at line %d",
                stream.identity,
                result.lines_count,
                len(result.messages),
                result.last_line_number,
            )

        await asyncio.to_thread(store.save, doc)

    return aggregate(results, active, cfg.retention_enabled)


def run_check_sync(cfg: CheckConfig, *, now: datetime | None = None) -> StatusReport:
    """Blocking wrapper around :func:`run_check`."""
    return asyncio.run(run_check(cfg, now=now))
