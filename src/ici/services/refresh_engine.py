"""
Refresh Engine for the classfile index.

Reconciles the full universe of project artifacts against both stores:
stale files are removed, then everything the metadata store does not
already consider up to date is extracted and persisted, and the index is
committed once at the end.
"""

import asyncio
import logging
import time
from concurrent.futures import Executor
from pathlib import Path
from typing import Callable, List, Optional

from ici.core.extractor import SymbolExtractor
from ici.core.models import TrackedFile
from ici.core.project import ProjectModelInterface
from ici.infrastructure.index_store import SymbolIndexStore
from ici.infrastructure.metadata_store import SymbolMetadataStore
from ici.services.index_writer import IndexWriter
from ici.services.indexing_models import RefreshResult

logger = logging.getLogger(__name__)


class RefreshEngine:
    """
    Incremental refresh of the whole project.

    Extraction and store I/O run on the worker pool; the event loop only
    schedules and joins them.
    """

    def __init__(
        self,
        project: ProjectModelInterface,
        extractor: SymbolExtractor,
        writer: IndexWriter,
        index_store: SymbolIndexStore,
        metadata_store: SymbolMetadataStore,
        executor: Executor,
        stale_group_size: int = 1000,
        progress_callback: Optional[Callable[[int, int, str], None]] = None,
    ):
        """
        Initialize the refresh engine.

        Args:
            project: Supplies the universe of files and archives to index
            extractor: Produces symbols for a file or archive
            writer: Shared persist/delete primitives
            index_store: Full-text index, committed once per refresh
            metadata_store: Source of known files and staleness checks
            executor: Worker pool for blocking extraction and store I/O
            stale_group_size: Number of stale files removed per write
            progress_callback: Optional callback(current, total, message)
        """
        self._project = project
        self._extractor = extractor
        self._writer = writer
        self._index_store = index_store
        self._metadata_store = metadata_store
        self._executor = executor
        self._stale_group_size = max(1, stale_group_size)
        self._progress_callback = progress_callback

    def _report_progress(self, current: int, total: int, message: str) -> None:
        """Report progress if callback is set."""
        if self._progress_callback:
            self._progress_callback(current, total, message)

    async def refresh(self) -> RefreshResult:
        """
        Index everything that is not already up to date.

        All stale removals complete before any indexing starts, otherwise a
        delete could race an insert of the same file.

        Returns:
            RefreshResult with estimated removed and indexed counts

        Raises:
            MetadataStoreError, IndexStoreError: If a store is unavailable
        """
        start_time = time.time()
        result = RefreshResult()
        loop = asyncio.get_running_loop()

        self._report_progress(0, 0, "Scanning project...")
        universe = await loop.run_in_executor(self._executor, self._project.list_universe)
        archive_uris = self._project.archive_uris()

        stale = await loop.run_in_executor(self._executor, self._find_stale, archive_uris)
        logger.info(f"Removing {len(stale)} stale files from the index")
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(f"Stale files: {[f.uri for f in stale]}")

        # barrier: every removal group finishes before indexing starts
        groups = [
            stale[i : i + self._stale_group_size]
            for i in range(0, len(stale), self._stale_group_size)
        ]
        await asyncio.gather(
            *(loop.run_in_executor(self._executor, self._writer.delete, group) for group in groups)
        )
        result.removed = len(stale)

        self._report_progress(0, 0, "Checking for out of date files...")
        outdated = await loop.run_in_executor(self._executor, self._out_of_date, universe)
        total = len(outdated)
        logger.info(f"Indexing {total} out of date files")

        done = 0

        async def index_one(file: TrackedFile) -> bool:
            nonlocal done
            ok = await loop.run_in_executor(self._executor, self._index_file, file)
            if not ok:
                result.failed_files.append(file.uri)
            done += 1
            if done % 50 == 0 or done == total:
                self._report_progress(done, total, f"Indexed {done} files")
            return ok

        outcomes = await asyncio.gather(*(index_one(f) for f in outdated))
        result.indexed = sum(1 for ok in outcomes if ok)

        # commits are deferred across the whole refresh
        logger.debug("Committing index to disk...")
        await loop.run_in_executor(self._executor, self._index_store.commit)
        logger.debug("...done committing index")

        result.duration_seconds = time.time() - start_time
        logger.info(
            "Refresh completed",
            extra={
                "removed": result.removed,
                "indexed": result.indexed,
                "failed": len(result.failed_files),
                "duration_seconds": result.duration_seconds,
            },
        )
        return result

    def _find_stale(self, archive_uris: set[str]) -> List[TrackedFile]:
        """Known files that are gone, changed, or archives no longer in the project."""
        return [
            known
            for known in self._metadata_store.known_files()
            if not known.exists
            or known.changed
            or (known.is_archive and known.uri not in archive_uris)
        ]

    def _out_of_date(self, universe: set[Path]) -> List[TrackedFile]:
        files = [TrackedFile.for_path(path) for path in sorted(universe)]
        return [
            f for f in files
            if f.change_token is not None and self._metadata_store.out_of_date(f)
        ]

    def _index_file(self, file: TrackedFile) -> bool:
        """Extract and persist one file. Failures are logged, not raised."""
        try:
            logger.debug(f"Indexing {file.uri}")
            symbols = self._extractor.extract_file(file)
            self._writer.persist(file, symbols)
            return True
        except Exception as e:
            logger.error(
                f"Failed to index {file.uri}: {e}",
                extra={"file_uri": file.uri, "error_type": type(e).__name__},
            )
            return False
