"""Persisted scan progress and kept alerts.

The state file is a single JSON document. Concurrent check runs are serialized by an
exclusive lock on ``<state file>.lock`` that is held for the whole load-scan-save
section; the document itself is replaced atomically on save.

Runs sharing one process (the MCP server) queue on an in-process lock per state file
before taking the file lock, so they wait for each other instead of colliding.
"""

from __future__ import annotations

import asyncio
import logging
import os
import tempfile
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, timedelta
from pathlib import Path

from filelock import AsyncFileLock, Timeout
from pydantic import ValidationError

from .errors import StateError
from .models import KeptAlert, ScanResult, StateDocument, StreamState

logger = logging.getLogger(__name__)

_process_locks: dict[str, asyncio.Lock] = {}


def _process_lock(lock_path: Path) -> asyncio.Lock:
    key = str(lock_path.resolve())
    lock = _process_locks.get(key)
    if lock is None:
        lock = _process_locks[key] = asyncio.Lock()
    return lock


class StateStore:
    """Load and save a :class:`StateDocument` under an exclusive file lock."""

    def __init__(self, path: str | Path, *, lock_timeout: float = -1) -> None:
        self.path = Path(path)
        self.lock_path = self.path.with_name(self.path.name + ".lock")
        self.lock_timeout = lock_timeout
        self._lock = AsyncFileLock(str(self.lock_path), timeout=lock_timeout)

    @property
    def is_locked(self) -> bool:
        return self._lock.is_locked

    @asynccontextmanager
    async def locked(self) -> AsyncIterator[StateStore]:
        """Hold the state lock; waits while another run holds it."""
        if self.path.is_dir():
            raise StateError(f"State file is a directory: {self.path}")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StateError(f"Could not create state directory {self.path.parent}: {e}") from e

        guard = _process_lock(self.lock_path)
        timeout = None if self.lock_timeout < 0 else self.lock_timeout
        try:
            await asyncio.wait_for(guard.acquire(), timeout)
        except TimeoutError as e:
            raise StateError(f"Timed out waiting for state lock {self.lock_path}") from e

        try:
            try:
                await self._lock.acquire()
            except Timeout as e:
                raise StateError(f"Timed out waiting for state lock {self.lock_path}") from e
            except OSError as e:
                raise StateError(f"Could not lock state file {self.path}: {e}") from e

            logger.debug("Acquired state lock %s", self.lock_path)
            try:
                yield self
            finally:
                await self._lock.release()
                logger.debug("Released state lock %s", self.lock_path)
        finally:
            guard.release()

    def load(self) -> StateDocument:
        """Read the state document; a missing or empty file yields an empty one."""
        if self.path.is_dir():
            raise StateError(f"State file is a directory: {self.path}")
        try:
            content = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            logger.info("No state file at %s, starting fresh", self.path)
            return StateDocument()
        except OSError as e:
            raise StateError(f"Could not read state file {self.path}: {e}") from e

        if not content.strip():
            return StateDocument()
        try:
            return StateDocument.model_validate_json(content)
        except ValidationError as e:
            raise StateError(f"Could not parse state file {self.path}: {e}") from e

    def save(self, doc: StateDocument) -> None:
        """Write the whole document, replacing the previous file atomically."""
        content = doc.model_dump_json(indent=2)
        try:
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent
            )
        except OSError as e:
            raise StateError(f"Could not write state file {self.path}: {e}") from e
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(content)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, self.path)
        except OSError as e:
            try:
                os.unlink(tmp_name)
            except FileNotFoundError:
                pass
            raise StateError(f"Could not write state file {self.path}: {e}") from e
        logger.debug("Saved %d stream state(s) to %s", len(doc.states), self.path)


def prune_kept_alerts(state: StreamState, now: datetime) -> list[KeptAlert]:
    """Drop expired kept alerts and return the remaining ones."""
    active = [k for k in state.kept_alerts if not k.expired(now)]
    dropped = len(state.kept_alerts) - len(active)
    if dropped:
        logger.debug("Expired %d kept alert(s) of %s", dropped, state.path)
    state.kept_alerts = active
    return list(active)


def update_stream_state(
    state: StreamState,
    result: ScanResult,
    *,
    now: datetime,
    keep_for: timedelta,
) -> list[KeptAlert]:
    """Fold a fresh scan result into ``state``.

    Returns the kept alerts that were still active before this run's result was
    added, i.e. the ones that count on top of the fresh messages.
    """
    active = prune_kept_alerts(state, now)

    if keep_for > timedelta(0) and result.messages:
        state.kept_alerts.append(KeptAlert(result=result, keep_until=now + keep_for))

    state.line_number = result.last_line_number
    state.size = result.file_size
    state.modified = result.modified
    return active
