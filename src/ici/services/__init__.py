"""
Service Layer - Refresh, backlog, SearchService, WatchService, and ServicesContainer.
"""

from ici.services.backlog_queue import QueueStats, UpdateBacklogQueue
from ici.services.container import ServicesContainer, create_services
from ici.services.index_writer import IndexWriter
from ici.services.indexing_models import PersistOutcome, RefreshResult
from ici.services.refresh_engine import RefreshEngine
from ici.services.search_service import SearchService
from ici.services.watch_service import (
    PathValidationError,
    WatchService,
    WatchServiceError,
    WatchStats,
)

__all__ = [
    # Container and factory
    "ServicesContainer",
    "create_services",
    # Write paths
    "IndexWriter",
    "RefreshEngine",
    "RefreshResult",
    "PersistOutcome",
    "UpdateBacklogQueue",
    "QueueStats",
    # Services
    "SearchService",
    # Watch service
    "WatchService",
    "WatchServiceError",
    "PathValidationError",
    "WatchStats",
]
