"""
Search service: the single entry point over the classfile index.

Owns the stores, the extractor, the worker pool and the write paths
(refresh and backlog), and answers symbol queries by combining the
full-text index with the metadata store.
"""

import asyncio
import logging
from concurrent.futures import Executor
from pathlib import Path
from typing import Callable, List, Optional

from ici.core.extractor import ExtractionError, SymbolExtractor
from ici.core.models import FqnSymbol, TrackedFile
from ici.core.project import ProjectModelInterface
from ici.core.source_resolver import SourceResolver
from ici.infrastructure.index_store import SymbolIndexStore
from ici.infrastructure.metadata_store import SymbolMetadataStore
from ici.services.backlog_queue import UpdateBacklogQueue
from ici.services.index_writer import IndexWriter
from ici.services.indexing_models import PersistOutcome, RefreshResult
from ici.services.refresh_engine import RefreshEngine

logger = logging.getLogger(__name__)


class SearchService:
    """
    Query and notification facade over the classfile index.

    Queries run synchronously on the caller's thread. Change notifications
    must be made from the event loop thread; extraction is scheduled on the
    worker pool and the result handed to the backlog queue.
    """

    def __init__(
        self,
        project: ProjectModelInterface,
        index_store: SymbolIndexStore,
        metadata_store: SymbolMetadataStore,
        extractor: SymbolExtractor,
        executor: Executor,
        resolver: Optional[SourceResolver] = None,
        stale_group_size: int = 1000,
        backlog_batch_size: int = 500,
        progress_callback: Optional[Callable[[int, int, str], None]] = None,
    ):
        self._project = project
        self._index_store = index_store
        self._metadata_store = metadata_store
        self._extractor = extractor
        self._executor = executor
        self._resolver = resolver
        self._writer = IndexWriter(index_store, metadata_store)
        self._refresh_engine = RefreshEngine(
            project=project,
            extractor=extractor,
            writer=self._writer,
            index_store=index_store,
            metadata_store=metadata_store,
            executor=executor,
            stale_group_size=stale_group_size,
            progress_callback=progress_callback,
        )
        self._backlog = UpdateBacklogQueue(
            writer=self._writer,
            index_store=index_store,
            executor=executor,
            batch_size=backlog_batch_size,
        )
        self._tasks: set[asyncio.Task] = set()

    @property
    def backlog(self) -> UpdateBacklogQueue:
        return self._backlog

    @property
    def index_store(self) -> SymbolIndexStore:
        return self._index_store

    @property
    def metadata_store(self) -> SymbolMetadataStore:
        return self._metadata_store

    # ─────────────────────────────────────────────────────────────────
    # Queries
    # ─────────────────────────────────────────────────────────────────

    def search_classes(self, query: str, max_results: int) -> List[FqnSymbol]:
        """
        Find classes whose names match every word of the query.

        Index hits the metadata store does not know about are dropped.
        """
        fqns = self._index_store.search_classes(query, max_results)
        return self._metadata_store.find_many(fqns)[:max_results]

    def search_classes_methods(self, terms: List[str], max_results: int) -> List[FqnSymbol]:
        """Find classes and methods matching all of the terms."""
        fqns = self._index_store.search_classes_methods(terms, max_results)
        return self._metadata_store.find_many(fqns)[:max_results]

    def find_unique(self, fqn: str) -> Optional[FqnSymbol]:
        """Exact lookup in the metadata store."""
        return self._metadata_store.find(fqn)

    # ─────────────────────────────────────────────────────────────────
    # Writes
    # ─────────────────────────────────────────────────────────────────

    async def refresh(self) -> RefreshResult:
        return await self._refresh_engine.refresh()

    def persist(self, file: TrackedFile, symbols: List[FqnSymbol]) -> PersistOutcome:
        return self._writer.persist(file, symbols)

    def delete(self, files: List[TrackedFile]) -> None:
        self._writer.delete(files)

    def refresh_resolver(self) -> int:
        """Rescan source roots. Returns the number of source files known."""
        if self._resolver is None:
            return 0
        return self._resolver.update()

    # ─────────────────────────────────────────────────────────────────
    # Change notifications
    # ─────────────────────────────────────────────────────────────────

    def classfile_added(self, path: Path | str) -> asyncio.Task:
        return self.classfile_changed(path)

    def classfile_changed(self, path: Path | str) -> asyncio.Task:
        """Re-extract a file in the background and queue its symbols."""
        file = TrackedFile.for_path(path)
        return self._spawn(self._extract_and_enqueue(file))

    def classfile_removed(self, path: Path | str) -> asyncio.Task:
        """Queue a delete-only update for a file."""
        file = TrackedFile.for_path(path)
        return self._spawn(self._enqueue_removal(file))

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _extract_and_enqueue(self, file: TrackedFile) -> None:
        loop = asyncio.get_running_loop()
        try:
            symbols = await loop.run_in_executor(self._executor, self._extractor.extract_file, file)
        except ExtractionError as e:
            logger.info(f"Unable to read {file.uri}, removing it from the index: {e}")
            symbols = []
        self._backlog.enqueue(file, symbols)

    async def _enqueue_removal(self, file: TrackedFile) -> None:
        self._backlog.enqueue(file, [])

    async def wait_idle(self) -> None:
        """Wait for scheduled notifications and the backlog to settle."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
        await self._backlog.join()

    # ─────────────────────────────────────────────────────────────────
    # Lifecycle
    # ─────────────────────────────────────────────────────────────────

    def shutdown(self) -> None:
        """
        Close both stores.

        Work still in flight is not drained; uncommitted index writes are lost
        and will be redone by the next refresh.
        """
        logger.info("Shutting down search service")
        self._metadata_store.close()
        self._index_store.close()
