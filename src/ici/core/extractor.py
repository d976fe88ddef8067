"""
Symbol extraction from class files and archives of class files.

Turns a tracked artifact into the list of publicly visible FqnSymbol
records, applying the symbol filter policy and resolving source locations.
"""

import logging
import zipfile
from typing import Protocol

from ici.core.classfile import ClassfileError, ClassInfo, read_classfile
from ici.core.models import CLASSFILE_SUFFIX, FqnSymbol, TrackedFile, entry_uri
from ici.core.symbol_filter import SymbolFilter

logger = logging.getLogger(__name__)


class ExtractionError(Exception):
    """Raised when an artifact or one of its entries cannot be read."""

    def __init__(self, message: str, uri: str | None = None):
        self.uri = uri
        super().__init__(message)


class SourceResolverInterface(Protocol):
    """Maps a class's package and source file name to a source URI."""

    def resolve(self, package: str, source_file: str | None) -> str | None:
        ...


class _NullResolver:
    def resolve(self, package: str, source_file: str | None) -> str | None:
        return None


class SymbolExtractor:
    """Reads class files and produces filtered symbol records."""

    def __init__(
        self,
        resolver: SourceResolverInterface | None = None,
        symbol_filter: SymbolFilter | None = None,
    ):
        self._resolver = resolver or _NullResolver()
        self._filter = symbol_filter or SymbolFilter()

    def extract_file(self, file: TrackedFile) -> list[FqnSymbol]:
        """
        Extract all symbols from a class file or an archive.

        Archive entries that fail to parse are logged and skipped.

        Raises:
            ExtractionError: If the file itself cannot be opened
        """
        if not file.is_archive:
            return self.extract(file, None)

        try:
            archive = zipfile.ZipFile(file.path)
        except (OSError, zipfile.BadZipFile) as e:
            raise ExtractionError(f"Cannot open archive {file.path}: {e}", uri=file.uri) from e

        symbols: list[FqnSymbol] = []
        with archive:
            entries = [
                name for name in archive.namelist()
                if name.endswith(CLASSFILE_SUFFIX) and not name.startswith("META-INF/")
            ]
            logger.debug(f"Indexing {len(entries)} entries of {file.uri}")
            for entry in entries:
                if self._filter.is_blacklisted(entry):
                    continue
                try:
                    data = self._read_entry(archive, file, entry)
                    symbols.extend(self._parse(file, entry, data))
                except ExtractionError as e:
                    logger.warning(
                        f"Skipping unreadable entry {entry}: {e}",
                        extra={"container_uri": file.uri, "entry": entry},
                    )
        return symbols

    def extract(self, container: TrackedFile, entry: str | None) -> list[FqnSymbol]:
        """
        Extract symbols from a single class.

        Args:
            container: The tracked file holding the class
            entry: Path of the class inside an archive, None for plain class files

        Raises:
            ExtractionError: If the class cannot be read or parsed
        """
        if self._filter.is_blacklisted(entry):
            return []

        if entry is None:
            try:
                data = container.path.read_bytes()
            except OSError as e:
                raise ExtractionError(
                    f"Cannot read {container.path}: {e}", uri=container.uri
                ) from e
        else:
            try:
                archive = zipfile.ZipFile(container.path)
            except (OSError, zipfile.BadZipFile) as e:
                raise ExtractionError(
                    f"Cannot open archive {container.path}: {e}", uri=container.uri
                ) from e
            with archive:
                data = self._read_entry(archive, container, entry)
        return self._parse(container, entry, data)

    def _parse(self, container: TrackedFile, entry: str | None, data: bytes) -> list[FqnSymbol]:
        try:
            clazz = read_classfile(data)
        except ClassfileError as e:
            location = entry or container.uri
            raise ExtractionError(f"Malformed classfile {location}: {e}", uri=container.uri) from e

        path = container.uri if entry is None else entry_uri(container.uri, entry)
        return self._filter.apply(self._symbols_for(clazz, container.uri, path))

    def _read_entry(self, archive: zipfile.ZipFile, container: TrackedFile, entry: str) -> bytes:
        try:
            return archive.read(entry)
        except (OSError, KeyError, zipfile.BadZipFile) as e:
            raise ExtractionError(f"Cannot read {entry}: {e}", uri=container.uri) from e

    def _symbols_for(self, clazz: ClassInfo, name: str, path: str) -> list[FqnSymbol]:
        if not self._filter.accepts_class(clazz):
            return []

        source_uri = self._resolver.resolve(clazz.package, clazz.source_file)
        class_line = clazz.line

        symbols = [
            FqnSymbol(
                container_uri=name,
                entry_path=path,
                fqn=clazz.fqn,
                source_uri=source_uri,
                line=class_line,
            )
        ]
        symbols.extend(
            FqnSymbol(
                container_uri=name,
                entry_path=path,
                fqn=f"{clazz.fqn}.{method.name}",
                descriptor=method.descriptor,
                source_uri=source_uri,
                line=method.line,
            )
            for method in self._filter.visible_members(clazz.methods)
        )
        symbols.extend(
            FqnSymbol(
                container_uri=name,
                entry_path=path,
                fqn=f"{clazz.fqn}.{fld.name}",
                internal=fld.descriptor,
                source_uri=source_uri,
                line=class_line,
            )
            for fld in self._filter.visible_members(clazz.fields)
        )
        return symbols
