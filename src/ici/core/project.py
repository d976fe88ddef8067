"""
Project model: the universe of artifacts that should be indexed.
"""

import logging
from pathlib import Path
from typing import Protocol

from ici.core.config import ModuleConfig, ProjectConfig
from ici.core.models import CLASSFILE_SUFFIX

logger = logging.getLogger(__name__)


class ProjectModelInterface(Protocol):
    """Supplies candidate files and archives to the refresh engine."""

    def list_universe(self) -> set[Path]:
        ...

    def archive_uris(self) -> set[str]:
        ...


def scan_classfiles(directory: Path) -> list[Path]:
    """All class files below a build output directory."""
    if not directory.is_dir():
        return []
    return sorted(p for p in directory.rglob(f"*{CLASSFILE_SUFFIX}") if p.is_file())


class ProjectModel:
    """Project model backed by the project section of the configuration."""

    def __init__(self, config: ProjectConfig):
        self._config = config

    @property
    def modules(self) -> list[ModuleConfig]:
        return self._config.modules

    def target_dirs(self) -> list[Path]:
        """Output directories of every module, main and test."""
        return [
            Path(d).resolve()
            for m in self._config.modules
            for d in (*m.target_dirs, *m.test_target_dirs)
        ]

    def all_jars(self) -> list[Path]:
        """Compile and test dependency archives plus extra Java libraries."""
        jars = [
            Path(j).resolve()
            for m in self._config.modules
            for j in (*m.compile_jars, *m.test_jars)
        ]
        jars.extend(Path(j).resolve() for j in self._config.java_libs)
        return jars

    def source_roots(self) -> list[Path]:
        return [Path(s).resolve() for m in self._config.modules for s in m.source_roots]

    def archive_uris(self) -> set[str]:
        return {jar.as_uri() for jar in self.all_jars()}

    def list_universe(self) -> set[Path]:
        universe: set[Path] = set()
        for directory in self.target_dirs():
            universe.update(scan_classfiles(directory))
        universe.update(self.all_jars())
        logger.debug(f"Project universe has {len(universe)} candidate files")
        return universe


class StaticProjectModel:
    """Project model over a fixed set of paths."""

    def __init__(self, paths: list[Path] | None = None):
        self.paths = [Path(p).resolve() for p in paths or []]

    def list_universe(self) -> set[Path]:
        universe: set[Path] = set()
        for path in self.paths:
            if path.is_dir():
                universe.update(scan_classfiles(path))
            else:
                universe.add(path)
        return universe

    def archive_uris(self) -> set[str]:
        return {p.as_uri() for p in self.paths if p.suffix.lower() in (".jar", ".zip")}
