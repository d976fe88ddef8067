"""
Core data models for the classfile index.

Contains the tracked file identity, symbol records and the queued unit of
incremental work shared by the refresh engine and the backlog queue.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

ARCHIVE_SUFFIXES = (".jar", ".zip")
CLASSFILE_SUFFIX = ".class"


class FileKind(str, Enum):
    """Kinds of indexable artifacts."""

    CLASSFILE = "classfile"
    ARCHIVE = "archive"

    @classmethod
    def for_path(cls, path: Path) -> "FileKind":
        if path.suffix.lower() in ARCHIVE_SUFFIXES:
            return cls.ARCHIVE
        return cls.CLASSFILE


class SymbolKind(str, Enum):
    """Kinds of declarations stored in the index."""

    CLASS = "class"
    METHOD = "method"
    FIELD = "field"


def measure_change_token(path: Path) -> str | None:
    """Return the change token for a file on disk, or None if it is gone."""
    try:
        stat = path.stat()
    except OSError:
        return None
    return f"{stat.st_mtime_ns}:{stat.st_size}"


def entry_uri(container_uri: str, entry: str) -> str:
    """URI of an entry inside an archive."""
    return f"jar:{container_uri}!/{entry}"


@dataclass(frozen=True)
class TrackedFile:
    """
    Identity of an indexable artifact.

    Attributes:
        uri: Stable identifier of the file or archive
        path: Location on disk
        kind: Single class file or archive of class files
        change_token: Fingerprint of the on-disk state when the file was
            observed, None when the file no longer exists
    """

    uri: str
    path: Path
    kind: FileKind
    change_token: str | None = None

    @classmethod
    def for_path(cls, path: Path | str) -> "TrackedFile":
        """Observe a file on disk now."""
        path = Path(path).resolve()
        return cls(
            uri=path.as_uri(),
            path=path,
            kind=FileKind.for_path(path),
            change_token=measure_change_token(path),
        )

    @property
    def is_archive(self) -> bool:
        return self.kind == FileKind.ARCHIVE

    def current_token(self) -> str | None:
        return measure_change_token(self.path)

    @property
    def exists(self) -> bool:
        return self.path.is_file()

    @property
    def changed(self) -> bool:
        """True if the file on disk no longer matches the stored token."""
        return self.current_token() != self.change_token


@dataclass(frozen=True)
class FqnSymbol:
    """
    One publicly visible declaration.

    Attributes:
        container_uri: URI of the owning file or archive
        entry_path: URI of the class entry (equals container_uri for plain files)
        fqn: Fully qualified name of the declaration
        descriptor: JVM method descriptor, methods only
        internal: JVM field type descriptor, fields only
        source_uri: Best-effort pointer to the originating source file
        line: Line number hint in the source file
    """

    container_uri: str
    entry_path: str
    fqn: str
    descriptor: str | None = None
    internal: str | None = None
    source_uri: str | None = None
    line: int | None = None

    @property
    def kind(self) -> SymbolKind:
        if self.descriptor is not None:
            return SymbolKind.METHOD
        if self.internal is not None:
            return SymbolKind.FIELD
        return SymbolKind.CLASS


@dataclass
class PendingUpdate:
    """A queued file update; empty symbols means delete only."""

    file: TrackedFile
    symbols: list[FqnSymbol] = field(default_factory=list)

    @property
    def key(self) -> str:
        return self.file.uri

    @property
    def is_removal(self) -> bool:
        return not self.symbols
