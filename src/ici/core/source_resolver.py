"""
Best-effort mapping of compiled classes back to their source files.
"""

import logging
import threading
import zipfile
from pathlib import Path

from ici.core.models import ARCHIVE_SUFFIXES, entry_uri

logger = logging.getLogger(__name__)

SOURCE_SUFFIXES = (".java", ".scala", ".kt")


class SourceResolver:
    """
    Resolves (package, source file name) pairs to source URIs.

    Source roots may be directories or source archives (e.g. ``src.zip``).
    Files are keyed by the package implied by their path relative to the root.
    """

    def __init__(self, source_roots: list[Path] | None = None):
        self._roots = [Path(r) for r in source_roots or []]
        self._sources: dict[tuple[str, str], str] = {}
        self._lock = threading.Lock()
        self._loaded = False

    def update(self) -> int:
        """Rescan all source roots. Returns the number of known source files."""
        sources: dict[tuple[str, str], str] = {}
        for root in self._roots:
            if root.is_dir():
                self._scan_directory(root, sources)
            elif root.is_file() and root.suffix.lower() in ARCHIVE_SUFFIXES:
                self._scan_archive(root, sources)
            else:
                logger.debug(f"Ignoring missing source root: {root}")

        with self._lock:
            self._sources = sources
            self._loaded = True
        logger.info(f"Source resolver knows {len(sources)} source files")
        return len(sources)

    def resolve(self, package: str, source_file: str | None) -> str | None:
        if not source_file:
            return None
        if not self._loaded:
            self.update()
        with self._lock:
            return self._sources.get((package, source_file))

    @staticmethod
    def _key(relative: str) -> tuple[str, str]:
        head, _, name = relative.rpartition("/")
        return head.replace("/", "."), name

    def _scan_directory(self, root: Path, sources: dict[tuple[str, str], str]) -> None:
        for path in root.rglob("*"):
            if path.suffix in SOURCE_SUFFIXES and path.is_file():
                relative = path.relative_to(root).as_posix()
                sources.setdefault(self._key(relative), path.resolve().as_uri())

    def _scan_archive(self, root: Path, sources: dict[tuple[str, str], str]) -> None:
        archive_uri = root.resolve().as_uri()
        try:
            with zipfile.ZipFile(root) as archive:
                for name in archive.namelist():
                    if name.endswith(SOURCE_SUFFIXES):
                        sources.setdefault(self._key(name), entry_uri(archive_uri, name))
        except (OSError, zipfile.BadZipFile) as e:
            logger.warning(f"Cannot read source archive {root}: {e}")
