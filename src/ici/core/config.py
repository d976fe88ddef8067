"""
Configuration module for the classfile indexer.

Supports loading from YAML/JSON files with environment variable overrides.
Default values are loaded from defaults.yaml for maintainability.
"""

import json
import logging
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml

logger = logging.getLogger(__name__)

# Path to the default configuration file
_DEFAULTS_CONFIG_PATH = Path(__file__).parent / "defaults.yaml"

# Cache for default values
_defaults_cache: dict[str, Any] | None = None


class ConfigError(Exception):
    """Raised when a configuration file is invalid."""

    pass


def _load_defaults() -> dict[str, Any]:
    """Load default configuration values from defaults.yaml."""
    global _defaults_cache

    if _defaults_cache is not None:
        return _defaults_cache

    if not _DEFAULTS_CONFIG_PATH.exists():
        logger.warning(f"Defaults config not found: {_DEFAULTS_CONFIG_PATH}")
        _defaults_cache = {}
        return _defaults_cache

    try:
        content = _DEFAULTS_CONFIG_PATH.read_text(encoding="utf-8")
        _defaults_cache = yaml.safe_load(content) or {}
    except yaml.YAMLError as e:
        logger.error(f"Failed to parse defaults config: {e}")
        _defaults_cache = {}

    return _defaults_cache


def _get_default(section: str, key: str, fallback: Any = None) -> Any:
    """Get a default value from the defaults config."""
    defaults = _load_defaults()
    section_defaults = defaults.get(section, {})
    value = section_defaults.get(key, fallback)
    # Lists are shared through the cache, hand out copies
    return list(value) if isinstance(value, list) else value


@dataclass
class ModuleConfig:
    """Build outputs and dependencies of one project module."""

    name: str
    target_dirs: list[str] = field(default_factory=list)
    test_target_dirs: list[str] = field(default_factory=list)
    compile_jars: list[str] = field(default_factory=list)
    test_jars: list[str] = field(default_factory=list)
    source_roots: list[str] = field(default_factory=list)


@dataclass
class ProjectConfig:
    """Configuration describing what to index and where to keep the index."""

    cache_dir: str = field(default_factory=lambda: _get_default("project", "cache_dir", ".ici"))
    index_version: str = field(
        default_factory=lambda: str(_get_default("project", "index_version", "1.0"))
    )
    modules: list[ModuleConfig] = field(default_factory=list)
    java_libs: list[str] = field(
        default_factory=lambda: _get_default("project", "java_libs", [])
    )

    def __post_init__(self) -> None:
        """Accept module entries given as plain dictionaries."""
        self.modules = [
            m if isinstance(m, ModuleConfig) else ModuleConfig(**m) for m in self.modules
        ]

    @property
    def index_dir(self) -> Path:
        return Path(self.cache_dir) / f"index-{self.index_version}"

    @property
    def sql_dir(self) -> Path:
        return Path(self.cache_dir) / f"sql-{self.index_version}"


@dataclass
class IndexingConfig:
    """Configuration for refresh and backlog processing."""

    max_workers: int = field(default_factory=lambda: _get_default("indexing", "max_workers", 4))
    stale_group_size: int = field(
        default_factory=lambda: _get_default("indexing", "stale_group_size", 1000)
    )
    backlog_batch_size: int = field(
        default_factory=lambda: _get_default("indexing", "backlog_batch_size", 500)
    )
    package_blacklist: list[str] = field(
        default_factory=lambda: _get_default(
            "indexing", "package_blacklist", ["sun/", "sunw/", "com/sun/"]
        )
    )
    synthetic_markers: list[str] = field(
        default_factory=lambda: _get_default(
            "indexing", "synthetic_markers", ["$$anon$", "$$anonfun$", "$worker$"]
        )
    )


@dataclass
class SearchConfig:
    """Configuration for the query facade."""

    default_limit: int = field(
        default_factory=lambda: _get_default("search", "default_limit", 10)
    )


@dataclass
class WatchConfig:
    """Configuration for the file watching service."""

    refresh_on_start: bool = field(
        default_factory=lambda: _get_default("watch", "refresh_on_start", True)
    )


@dataclass
class LoggingConfig:
    """Configuration for logging."""

    level: str = field(default_factory=lambda: _get_default("logging", "level", "INFO"))
    format: str = field(
        default_factory=lambda: _get_default(
            "logging", "format", "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )
    )


@dataclass
class ICIConfig:
    """Main configuration class for the classfile indexer."""

    project: ProjectConfig = field(default_factory=ProjectConfig)
    indexing: IndexingConfig = field(default_factory=IndexingConfig)
    search: SearchConfig = field(default_factory=SearchConfig)
    watch: WatchConfig = field(default_factory=WatchConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_file(cls, path: Path | str) -> "ICIConfig":
        """
        Load configuration from a YAML or JSON file.

        Args:
            path: Path to the configuration file (.yaml, .yml, or .json)

        Returns:
            ICIConfig instance with loaded values

        Raises:
            FileNotFoundError: If the config file doesn't exist
            ValueError: If the file format is unsupported
            ConfigError: If the file contents are invalid
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        content = path.read_text(encoding="utf-8")

        try:
            if path.suffix in (".yaml", ".yml"):
                data = yaml.safe_load(content) or {}
            elif path.suffix == ".json":
                data = json.loads(content) if content.strip() else {}
            else:
                raise ValueError(f"Unsupported config file format: {path.suffix}")
        except (yaml.YAMLError, json.JSONDecodeError) as e:
            raise ConfigError(f"Failed to parse {path}: {e}") from e

        return cls._from_dict(data)

    @classmethod
    def _from_dict(cls, data: dict) -> "ICIConfig":
        """Create ICIConfig from a dictionary."""
        config = cls()

        try:
            if "project" in data:
                config.project = ProjectConfig(**data["project"])
            if "indexing" in data:
                config.indexing = IndexingConfig(**data["indexing"])
            if "search" in data:
                config.search = SearchConfig(**data["search"])
            if "watch" in data:
                config.watch = WatchConfig(**data["watch"])
            if "logging" in data:
                config.logging = LoggingConfig(**data["logging"])
        except TypeError as e:
            raise ConfigError(f"Invalid configuration: {e}") from e

        return config

    def apply_env_overrides(self) -> "ICIConfig":
        """
        Apply environment variable overrides to the configuration.

        Environment variables follow the pattern: ICI_<SECTION>_<KEY>
        Examples:
            - ICI_PROJECT_CACHE_DIR
            - ICI_INDEXING_MAX_WORKERS
            - ICI_INDEXING_BACKLOG_BATCH_SIZE
            - ICI_LOGGING_LEVEL

        Returns:
            Self with environment overrides applied
        """
        env_mappings = {
            # Project config
            "ICI_PROJECT_CACHE_DIR": ("project", "cache_dir", str),
            "ICI_PROJECT_INDEX_VERSION": ("project", "index_version", str),
            # Indexing config
            "ICI_INDEXING_MAX_WORKERS": ("indexing", "max_workers", int),
            "ICI_INDEXING_STALE_GROUP_SIZE": ("indexing", "stale_group_size", int),
            "ICI_INDEXING_BACKLOG_BATCH_SIZE": ("indexing", "backlog_batch_size", int),
            # Search config
            "ICI_SEARCH_DEFAULT_LIMIT": ("search", "default_limit", int),
            # Watch config
            "ICI_WATCH_REFRESH_ON_START": ("watch", "refresh_on_start", _parse_bool),
            # Logging config
            "ICI_LOGGING_LEVEL": ("logging", "level", str),
        }

        for env_var, (section, key, converter) in env_mappings.items():
            value = os.environ.get(env_var)
            if value is not None:
                section_obj = getattr(self, section)
                setattr(section_obj, key, converter(value))

        return self

    def to_dict(self) -> dict:
        """Convert configuration to a dictionary."""
        return asdict(self)

    def to_yaml(self) -> str:
        """Serialize configuration to YAML string."""
        return yaml.dump(self.to_dict(), default_flow_style=False, sort_keys=False)

    def to_json(self) -> str:
        """Serialize configuration to JSON string."""
        return json.dumps(self.to_dict(), indent=2)

    def save(self, path: Path | str) -> None:
        """
        Save configuration to a file.

        Args:
            path: Path to save the configuration (.yaml, .yml, or .json)

        Raises:
            ValueError: If the file format is unsupported
        """
        path = Path(path)

        if path.suffix in (".yaml", ".yml"):
            content = self.to_yaml()
        elif path.suffix == ".json":
            content = self.to_json()
        else:
            raise ValueError(f"Unsupported config file format: {path.suffix}")

        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")


def _parse_bool(value: str) -> bool:
    """Parse a string to boolean."""
    return value.lower() in ("true", "1", "yes", "on")


def configure_logging(config: LoggingConfig) -> None:
    """Apply the logging section to the root logger."""
    level = getattr(logging, config.level.upper(), logging.INFO)
    logging.basicConfig(level=level, format=config.format, force=True)


def load_config(config_path: Optional[Path | str] = None, apply_env: bool = True) -> ICIConfig:
    """
    Load configuration with optional environment variable overrides.

    Args:
        config_path: Optional path to config file. If None, uses defaults.
        apply_env: Whether to apply environment variable overrides.

    Returns:
        ICIConfig instance
    """
    if config_path:
        config = ICIConfig.from_file(config_path)
    else:
        config = ICIConfig()

    if apply_env:
        config.apply_env_overrides()

    return config
