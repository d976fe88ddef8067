"""
Property-based tests for the shared write primitives.

Persisting is idempotent and deleting removes every trace of a file from
both stores.
"""

import tempfile
from pathlib import Path
from unittest.mock import MagicMock

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from ici.core.models import FqnSymbol, TrackedFile
from ici.infrastructure.index_store import IndexStoreError, SymbolIndexStore
from ici.infrastructure.metadata_store import MetadataStoreError, SymbolMetadataStore
from ici.services.index_writer import IndexWriter
from ici.services.indexing_models import PersistOutcome


def _stores(tmpdir: str) -> tuple[SymbolIndexStore, SymbolMetadataStore]:
    return (
        SymbolIndexStore(Path(tmpdir) / "index-1.0" / "symbols.db"),
        SymbolMetadataStore(Path(tmpdir) / "sql-1.0" / "metadata.db"),
    )


def _snapshot(
    index: SymbolIndexStore,
    metadata: SymbolMetadataStore,
    symbols: list[FqnSymbol],
    terms: list[str],
):
    return (
        sorted(f.uri for f in metadata.known_files()),
        metadata.find_many([s.fqn for s in symbols]),
        metadata.get_stats().total_symbols,
        index.count_documents(),
        [index.search_classes_methods([t], 100) for t in terms],
    )


name_strategy = st.from_regex(r"[A-Z][a-z]{2,8}", fullmatch=True)


@given(
    class_names=st.lists(name_strategy, min_size=1, max_size=6, unique=True),
    method_names=st.lists(st.from_regex(r"[a-z]{3,8}", fullmatch=True), max_size=4, unique=True),
)
@settings(max_examples=20, deadline=None)
def test_persist_twice_leaves_the_same_state(class_names: list[str], method_names: list[str]):
    with tempfile.TemporaryDirectory() as tmpdir:
        index, metadata = _stores(tmpdir)
        writer = IndexWriter(index, metadata)
        path = Path(tmpdir) / "lib.jar"
        path.write_bytes(b"jar")
        file = TrackedFile.for_path(path)
        symbols = [FqnSymbol(file.uri, file.uri, f"pkg.{c}") for c in class_names] + [
            FqnSymbol(file.uri, file.uri, f"pkg.{class_names[0]}.{m}", descriptor="()V")
            for m in method_names
        ]

        assert writer.persist(file, symbols) == PersistOutcome.PERSISTED
        once = _snapshot(index, metadata, symbols, class_names)

        writer.persist(file, symbols)
        twice = _snapshot(index, metadata, symbols, class_names)

        assert once == twice
        index.close()
        metadata.close()


@given(
    keep=st.lists(name_strategy, min_size=1, max_size=4, unique=True),
    drop=st.lists(name_strategy, min_size=1, max_size=4, unique=True),
)
@settings(max_examples=20, deadline=None)
def test_delete_removes_every_symbol_of_the_file(keep: list[str], drop: list[str]):
    drop = [d for d in drop if d not in keep] or ["Zzzdropped"]
    with tempfile.TemporaryDirectory() as tmpdir:
        index, metadata = _stores(tmpdir)
        writer = IndexWriter(index, metadata)
        kept_path = Path(tmpdir) / "Keep.class"
        dropped_path = Path(tmpdir) / "Drop.class"
        kept_path.write_bytes(b"k")
        dropped_path.write_bytes(b"d")
        kept = TrackedFile.for_path(kept_path)
        dropped = TrackedFile.for_path(dropped_path)
        writer.persist(kept, [FqnSymbol(kept.uri, kept.uri, f"keep.{k}") for k in keep])
        writer.persist(dropped, [FqnSymbol(dropped.uri, dropped.uri, f"drop.{d}") for d in drop])

        writer.delete([dropped])

        assert metadata.get_file(dropped.uri) is None
        for d in drop:
            assert metadata.find(f"drop.{d}") is None
            assert f"drop.{d}" not in index.search_classes(d, 100)
        for k in keep:
            assert f"keep.{k}" in index.search_classes(k, 100)
        index.close()
        metadata.close()


def test_delete_of_unknown_files_is_a_no_op():
    with tempfile.TemporaryDirectory() as tmpdir:
        index, metadata = _stores(tmpdir)
        writer = IndexWriter(index, metadata)

        writer.delete([])
        writer.delete([TrackedFile.for_path(Path(tmpdir) / "Never.class")])

        assert metadata.known_files() == []
        index.close()
        metadata.close()


def test_conflict_is_reported_not_raised():
    with tempfile.TemporaryDirectory() as tmpdir:
        index, metadata = _stores(tmpdir)
        writer = IndexWriter(index, metadata)
        a_path, b_path = Path(tmpdir) / "A.class", Path(tmpdir) / "B.class"
        a_path.write_bytes(b"a")
        b_path.write_bytes(b"b")
        a, b = TrackedFile.for_path(a_path), TrackedFile.for_path(b_path)

        assert writer.persist(a, [FqnSymbol(a.uri, a.uri, "same.Name")]) == PersistOutcome.PERSISTED
        assert writer.persist(b, [FqnSymbol(b.uri, b.uri, "same.Name")]) == PersistOutcome.CONFLICT
        assert metadata.get_file(b.uri) is not None
        assert not metadata.out_of_date(b)
        assert metadata.find("same.Name").container_uri == a.uri
        index.close()
        metadata.close()


def test_store_failures_propagate():
    index = MagicMock()
    index.persist.side_effect = IndexStoreError("disk full")
    metadata = MagicMock()
    writer = IndexWriter(index, metadata)

    with pytest.raises(IndexStoreError):
        writer.persist(MagicMock(uri="file:///A.class"), [])
    metadata.persist.assert_not_called()


def test_metadata_failure_removes_the_index_documents():
    with tempfile.TemporaryDirectory() as tmpdir:
        index, _ = _stores(tmpdir)
        metadata = MagicMock()
        metadata.persist.side_effect = MetadataStoreError("disk I/O error")
        writer = IndexWriter(index, metadata)
        path = Path(tmpdir) / "A.class"
        path.write_bytes(b"a")
        file = TrackedFile.for_path(path)

        with pytest.raises(MetadataStoreError):
            writer.persist(file, [FqnSymbol(file.uri, file.uri, "a.Orphan")])

        assert index.search_classes("Orphan", 10) == []
        index.close()
