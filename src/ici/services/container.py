"""
Centralized services container module for the classfile indexer.

Builds the stores, extractor, worker pool and search service from
configuration so that every CLI command shares the same wiring.
"""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from ici.core.config import ICIConfig, load_config
from ici.core.extractor import SymbolExtractor
from ici.core.project import ProjectModel
from ici.core.source_resolver import SourceResolver
from ici.core.symbol_filter import SymbolFilter
from ici.infrastructure import (
    SymbolIndexStore,
    SymbolMetadataStore,
    create_index_store,
    create_metadata_store,
)
from ici.services.search_service import SearchService

INDEX_DB_NAME = "symbols.db"
METADATA_DB_NAME = "metadata.db"


@dataclass
class ServicesContainer:
    """
    Container holding all shared service instances.

    Attributes:
        config: Application configuration
        project: Project model built from the project section
        index_store: Full-text symbol index
        metadata_store: SQLite store for file checks and symbols
        executor: Worker pool for extraction and store I/O
        search_service: Query and notification facade
    """

    config: ICIConfig
    project: ProjectModel
    index_store: SymbolIndexStore
    metadata_store: SymbolMetadataStore
    executor: ThreadPoolExecutor
    search_service: SearchService

    def close(self) -> None:
        """Shut down the search service and the worker pool."""
        self.search_service.shutdown()
        self.executor.shutdown(wait=False)


def create_services(
    config_path: Optional[Path] = None,
    config: Optional[ICIConfig] = None,
    progress_callback: Optional[Callable[[int, int, str], None]] = None,
) -> ServicesContainer:
    """
    Create and initialize all services.

    Args:
        config_path: Optional path to configuration file. If None, uses
                    environment variables and defaults.
        config: Already loaded configuration, takes precedence over config_path
        progress_callback: Optional refresh progress callback(current, total, message)

    Returns:
        ServicesContainer with all initialized services.
    """
    config = config or load_config(config_path)
    project = ProjectModel(config.project)

    index_store = create_index_store(config.project.index_dir / INDEX_DB_NAME)
    metadata_store = create_metadata_store(config.project.sql_dir / METADATA_DB_NAME)
    index_store.initialize()
    metadata_store.initialize()

    resolver = SourceResolver(project.source_roots())
    symbol_filter = SymbolFilter(
        package_blacklist=config.indexing.package_blacklist,
        synthetic_markers=config.indexing.synthetic_markers,
    )
    extractor = SymbolExtractor(resolver=resolver, symbol_filter=symbol_filter)
    executor = ThreadPoolExecutor(
        max_workers=max(1, config.indexing.max_workers),
        thread_name_prefix="ici-worker",
    )

    search_service = SearchService(
        project=project,
        index_store=index_store,
        metadata_store=metadata_store,
        extractor=extractor,
        executor=executor,
        resolver=resolver,
        stale_group_size=config.indexing.stale_group_size,
        backlog_batch_size=config.indexing.backlog_batch_size,
        progress_callback=progress_callback,
    )

    return ServicesContainer(
        config=config,
        project=project,
        index_store=index_store,
        metadata_store=metadata_store,
        executor=executor,
        search_service=search_service,
    )
