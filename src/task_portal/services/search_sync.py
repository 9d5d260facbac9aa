"""
Keeps the search projection in step with the tasks table.

Writes to the tasks table enqueue an index operation here, carrying only the
task id. Applying an operation re-reads the row and mirrors whatever the store
holds at that moment (or drops the document when the row is gone), so the
projection converges on the latest committed state whatever order concurrent
writes are queued in. In `deferred` mode a background worker applies them, so
a search issued right after a write may not see it yet; in `inline` mode the
operation is applied before the request returns. Either way an index failure
is retried with backoff and then logged; it never propagates to the request
that caused it.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from task_portal.domain.task_models import Task
from task_portal.infra.search.sqlite_fts import to_document

logger = logging.getLogger("portal.search")


class SyncKind(str, Enum):
    UPSERT = "upsert"
    DELETE = "delete"


@dataclass(frozen=True)
class SyncOp:
    kind: SyncKind
    task_id: int


class SearchSync:
    def __init__(
        self,
        index,
        repo,
        *,
        mode: str = "deferred",
        retries: int = 3,
        retry_delay_seconds: float = 0.5,
    ) -> None:
        self.index = index
        self.repo = repo
        self.mode = mode
        self.retries = max(1, int(retries))
        self.retry_delay_seconds = max(0.0, float(retry_delay_seconds))
        self._queue: "asyncio.Queue[SyncOp]" = asyncio.Queue()
        self._worker: Optional[asyncio.Task] = None
        self.failed = 0

    # --- producers -------------------------------------------------------

    async def task_saved(self, task: Task) -> None:
        await self._submit(SyncOp(SyncKind.UPSERT, task.id))

    async def task_deleted(self, task_id: int) -> None:
        await self._submit(SyncOp(SyncKind.DELETE, task_id))

    async def _submit(self, op: SyncOp) -> None:
        if self.mode == "inline" or self._worker is None:
            await self._apply_with_retry(op)
            return
        self._queue.put_nowait(op)

    # --- worker ----------------------------------------------------------

    def start(self) -> None:
        if self.mode != "deferred" or self._worker is not None:
            return
        self._worker = asyncio.create_task(self._run(), name="search-sync")
        logger.info("search.sync_started", extra={"category": "search", "event": "search.sync_started"})

    async def drain(self) -> None:
        """Wait until every queued operation has been applied (or given up on)."""
        await self._queue.join()

    async def stop(self) -> None:
        if self._worker is None:
            return
        await self.drain()
        self._worker.cancel()
        try:
            await self._worker
        except asyncio.CancelledError:
            pass
        self._worker = None
        logger.info("search.sync_stopped", extra={"category": "search", "event": "search.sync_stopped"})

    async def _run(self) -> None:
        while True:
            op = await self._queue.get()
            try:
                await self._apply_with_retry(op)
            finally:
                self._queue.task_done()

    async def _apply_with_retry(self, op: SyncOp) -> bool:
        delay = self.retry_delay_seconds
        for attempt in range(1, self.retries + 1):
            try:
                await self._apply(op)
                return True
            except Exception:
                logger.exception(
                    "search.sync_failed",
                    extra={
                        "category": "search",
                        "event": "search.sync_failed",
                        "op": op.kind.value,
                        "task_id": op.task_id,
                        "attempt": attempt,
                    },
                )
                if attempt < self.retries:
                    await asyncio.sleep(delay)
                    delay *= 2

        self.failed += 1
        logger.error(
            "search.sync_gave_up",
            extra={"category": "search", "event": "search.sync_gave_up", "op": op.kind.value, "task_id": op.task_id},
        )
        return False

    async def _apply(self, op: SyncOp) -> None:
        # Both kinds mirror the current row; the kind only labels the log lines.
        task = await self.repo.get(op.task_id)
        if task is None:
            await self.index.delete(op.task_id)
        else:
            await self.index.upsert(to_document(task))
