"""
Update backlog queue.

Individual DELETE then INSERT transactions are far too slow to run once per
file change notification, so notifications are queued and a single writer
works through the backlog in bulk. A single change on disk is still picked
up immediately, while a storm of changes is absorbed into large batches.
"""

import asyncio
import logging
import time
from collections import deque
from concurrent.futures import Executor
from dataclasses import dataclass, field
from datetime import datetime

from ici.core.models import FqnSymbol, PendingUpdate, TrackedFile
from ici.infrastructure.index_store import IndexStoreError, SymbolIndexStore
from ici.infrastructure.metadata_store import MetadataStoreError
from ici.services.index_writer import IndexWriter

logger = logging.getLogger(__name__)


@dataclass
class QueueStats:
    """Counters for the backlog queue."""

    started_at: datetime = field(default_factory=datetime.now)
    updates_received: int = 0
    updates_written: int = 0
    batches_written: int = 0
    errors: int = 0
    last_batch_at: datetime | None = None
    last_batch_duration_ms: float = 0.0

    def to_dict(self) -> dict:
        """Serialize stats to dictionary for JSON reporting."""
        return {
            "started_at": self.started_at.isoformat(),
            "updates_received": self.updates_received,
            "updates_written": self.updates_written,
            "batches_written": self.batches_written,
            "errors": self.errors,
            "last_batch_at": self.last_batch_at.isoformat() if self.last_batch_at else None,
            "last_batch_duration_ms": self.last_batch_duration_ms,
        }


def dedupe_updates(batch: list[PendingUpdate]) -> list[PendingUpdate]:
    """Keep only the last update per file, in order of last occurrence."""
    latest: dict[str, PendingUpdate] = {}
    for update in batch:
        latest.pop(update.key, None)
        latest[update.key] = update
    return list(latest.values())


class UpdateBacklogQueue:
    """
    Single-writer batching queue of pending file updates.

    Bookkeeping (the queue and the busy flag) only ever happens on the
    event loop thread; batch writes run on the worker pool, at most one at
    a time. Every batch deletes all touched files, even new ones, and only
    inserts files that still have symbols.
    """

    def __init__(
        self,
        writer: IndexWriter,
        index_store: SymbolIndexStore,
        executor: Executor,
        batch_size: int = 500,
        loop: asyncio.AbstractEventLoop | None = None,
    ):
        """
        Initialize the backlog queue.

        Args:
            writer: Shared persist/delete primitives
            index_store: Index store committed after every batch
            executor: Worker pool the batch writes run on
            batch_size: Maximum number of queued updates taken per batch
            loop: Event loop owning the queue (default: the running loop on first use)
        """
        self._writer = writer
        self._index_store = index_store
        self._executor = executor
        self._batch_size = max(1, batch_size)
        self._loop = loop
        self._queue: deque[PendingUpdate] = deque()
        self._busy = False
        self._idle: asyncio.Event | None = None
        self._stats = QueueStats()

    @property
    def batch_size(self) -> int:
        return self._batch_size

    @property
    def is_busy(self) -> bool:
        return self._busy

    def pending_count(self) -> int:
        return len(self._queue)

    def get_stats(self) -> QueueStats:
        return self._stats

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def _get_idle_event(self) -> asyncio.Event:
        if self._idle is None:
            self._idle = asyncio.Event()
            if not self._busy and not self._queue:
                self._idle.set()
        return self._idle

    def enqueue(self, file: TrackedFile, symbols: list[FqnSymbol]) -> None:
        """
        Append an update and start a batch if the writer is idle.

        Must be called on the event loop thread.
        """
        self._get_loop()
        self._queue.append(PendingUpdate(file=file, symbols=list(symbols)))
        self._stats.updates_received += 1
        self._get_idle_event().clear()
        self._process_queue()

    async def join(self) -> None:
        """Wait until the queue is empty and no batch is in flight."""
        await self._get_idle_event().wait()

    def _process_queue(self) -> None:
        if self._busy or not self._queue:
            return

        batch = [self._queue.popleft() for _ in range(min(self._batch_size, len(self._queue)))]
        self._busy = True
        future = self._get_loop().run_in_executor(self._executor, self._write_batch, batch)
        future.add_done_callback(self._on_batch_complete)

    def _on_batch_complete(self, future: asyncio.Future) -> None:
        self._busy = False
        if future.cancelled():
            logger.warning("Backlog batch was cancelled")
        elif future.exception() is not None:
            exc = future.exception()
            self._stats.errors += 1
            logger.error(
                "Error writing backlog batch: %s",
                str(exc),
                extra={
                    "error": str(exc),
                    "error_type": type(exc).__name__,
                    "pending": len(self._queue),
                    "errors_total": self._stats.errors,
                },
                exc_info=exc,
            )
        else:
            written, failed, duration_ms = future.result()
            self._stats.batches_written += 1
            self._stats.updates_written += written
            self._stats.errors += failed
            self._stats.last_batch_at = datetime.now()
            self._stats.last_batch_duration_ms = duration_ms

        if self._queue:
            self._process_queue()
        else:
            self._get_idle_event().set()

    def _write_batch(self, batch: list[PendingUpdate]) -> tuple[int, int, float]:
        """
        Runs on the worker pool.

        A file that fails to persist is dropped for this batch; the rest of
        the batch is still written and committed. A failed delete fails the
        whole batch.

        Returns:
            (files written, files failed, duration in ms)
        """
        start_time = time.time()
        work = dedupe_updates(batch)
        logger.info(
            f"Indexing {len(work)} classfiles",
            extra={"batch_size": len(batch), "unique_files": len(work)},
        )

        failed = 0
        try:
            self._writer.delete([update.file for update in work])
            for update in work:
                if update.is_removal:
                    continue
                try:
                    self._writer.persist(update.file, update.symbols)
                except (IndexStoreError, MetadataStoreError) as e:
                    failed += 1
                    logger.error(
                        f"Failed to persist {update.file.uri}: {e}",
                        extra={"file_uri": update.file.uri, "error_type": type(e).__name__},
                    )
        finally:
            self._index_store.commit()

        return len(work) - failed, failed, (time.time() - start_time) * 1000
