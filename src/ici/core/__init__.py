"""
Core Layer - Classfile reading, symbol extraction, project model and configuration.
"""

from ici.core.classfile import ClassfileError, ClassfileReader, ClassInfo, MemberInfo, read_classfile
from ici.core.config import (
    ConfigError,
    ICIConfig,
    IndexingConfig,
    LoggingConfig,
    ModuleConfig,
    ProjectConfig,
    SearchConfig,
    WatchConfig,
    configure_logging,
    load_config,
)
from ici.core.extractor import ExtractionError, SymbolExtractor
from ici.core.file_events import ArtifactChange, FileEvent, FileEventType
from ici.core.models import (
    FileKind,
    FqnSymbol,
    PendingUpdate,
    SymbolKind,
    TrackedFile,
)
from ici.core.project import ProjectModel, ProjectModelInterface, StaticProjectModel
from ici.core.source_resolver import SourceResolver
from ici.core.symbol_filter import SymbolFilter

__all__ = [
    # Classfile reader
    "ClassfileReader",
    "ClassInfo",
    "MemberInfo",
    "ClassfileError",
    "read_classfile",
    # Configuration
    "ICIConfig",
    "ProjectConfig",
    "ModuleConfig",
    "IndexingConfig",
    "SearchConfig",
    "WatchConfig",
    "LoggingConfig",
    "ConfigError",
    "configure_logging",
    "load_config",
    # Extraction
    "SymbolExtractor",
    "SymbolFilter",
    "ExtractionError",
    "SourceResolver",
    # Models
    "FileKind",
    "SymbolKind",
    "TrackedFile",
    "FqnSymbol",
    "PendingUpdate",
    # File events
    "FileEvent",
    "FileEventType",
    "ArtifactChange",
    # Project
    "ProjectModel",
    "ProjectModelInterface",
    "StaticProjectModel",
]
