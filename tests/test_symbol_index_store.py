"""
Tests for the full-text symbol index store.
"""

import tempfile
from pathlib import Path

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from ici.core.models import FileKind, FqnSymbol, TrackedFile
from ici.infrastructure.index_store import (
    IndexStoreError,
    SymbolIndexStore,
    build_prefix_query,
    tokenize_fqn,
)


def _file(name: str) -> TrackedFile:
    uri = f"file:///build/{name}"
    kind = FileKind.ARCHIVE if name.endswith(".jar") else FileKind.CLASSFILE
    return TrackedFile(uri=uri, path=Path(f"/build/{name}"), kind=kind, change_token="1:1")


def _cls(file: TrackedFile, fqn: str) -> FqnSymbol:
    return FqnSymbol(container_uri=file.uri, entry_path=file.uri, fqn=fqn)


def _method(file: TrackedFile, fqn: str, descriptor: str = "()V") -> FqnSymbol:
    return FqnSymbol(container_uri=file.uri, entry_path=file.uri, fqn=fqn, descriptor=descriptor)


def _field(file: TrackedFile, fqn: str) -> FqnSymbol:
    return FqnSymbol(container_uri=file.uri, entry_path=file.uri, fqn=fqn, internal="I")


def test_tokenize_splits_segments_and_camel_case():
    terms = tokenize_fqn("org.example.HttpClient$Builder.getFoo").split()

    assert terms == [
        "org", "example", "HttpClient", "Http", "Client",
        "Builder", "getFoo", "get", "Foo",
    ]


def test_build_prefix_query():
    assert build_prefix_query(["Http cli"]) == '"Http"* AND "cli"*'
    assert build_prefix_query(["", "  "]) is None
    assert build_prefix_query(['a"b']) == '"a"* AND "b"*'


def test_search_classes_matches_prefixes_of_name_parts():
    with tempfile.TemporaryDirectory() as tmpdir:
        store = SymbolIndexStore(Path(tmpdir) / "index.db")
        file = _file("HttpClient.class")
        store.persist(
            file,
            [
                _cls(file, "org.example.HttpClient"),
                _method(file, "org.example.HttpClient.send"),
            ],
        )

        assert store.search_classes("HttpCli", 10) == ["org.example.HttpClient"]
        assert store.search_classes("client", 10) == ["org.example.HttpClient"]
        assert store.search_classes("example http", 10) == ["org.example.HttpClient"]
        assert store.search_classes("send", 10) == []
        store.close()


def test_search_classes_methods_requires_all_terms():
    with tempfile.TemporaryDirectory() as tmpdir:
        store = SymbolIndexStore(Path(tmpdir) / "index.db")
        file = _file("Widget.class")
        store.persist(
            file,
            [
                _cls(file, "ui.Widget"),
                _method(file, "ui.Widget.draw"),
                _method(file, "ui.Widget.resize"),
                _field(file, "ui.Widget.drawCount"),
            ],
        )

        assert store.search_classes_methods(["Widget", "dr"], 10) == ["ui.Widget.draw"]
        assert set(store.search_classes_methods(["Widget"], 10)) == {
            "ui.Widget",
            "ui.Widget.draw",
            "ui.Widget.resize",
        }
        store.close()


def test_overloads_are_returned_once():
    with tempfile.TemporaryDirectory() as tmpdir:
        store = SymbolIndexStore(Path(tmpdir) / "index.db")
        file = _file("Math.class")
        store.persist(
            file,
            [
                _method(file, "util.Math.max", "(II)I"),
                _method(file, "util.Math.max", "(JJ)J"),
                _method(file, "util.Math.max", "(DD)D"),
            ],
        )

        assert store.search_classes_methods(["max"], 10) == ["util.Math.max"]
        store.close()


def test_results_are_limited():
    with tempfile.TemporaryDirectory() as tmpdir:
        store = SymbolIndexStore(Path(tmpdir) / "index.db")
        file = _file("lib.jar")
        store.persist(file, [_cls(file, f"pkg.Service{i}") for i in range(20)])

        assert len(store.search_classes("Service", 5)) == 5
        assert store.search_classes("Service", 0) == []
        store.close()


def test_persist_replaces_documents_of_the_file():
    with tempfile.TemporaryDirectory() as tmpdir:
        store = SymbolIndexStore(Path(tmpdir) / "index.db")
        file = _file("A.class")
        store.persist(file, [_cls(file, "a.Old")])
        store.persist(file, [_cls(file, "a.New")])

        assert store.search_classes("Old", 10) == []
        assert store.search_classes("New", 10) == ["a.New"]
        assert store.count_documents() == 1
        store.close()


def test_remove_deletes_only_the_given_files():
    with tempfile.TemporaryDirectory() as tmpdir:
        store = SymbolIndexStore(Path(tmpdir) / "index.db")
        a, b = _file("A.class"), _file("B.jar")
        store.persist(a, [_cls(a, "x.Alpha"), _method(a, "x.Alpha.run")])
        store.persist(b, [_cls(b, "y.Beta")])

        removed = store.remove([a, _file("Missing.class")])

        assert removed == 2
        assert store.search_classes("Alpha", 10) == []
        assert store.search_classes("Beta", 10) == ["y.Beta"]
        store.close()


def test_writes_are_discarded_without_commit():
    with tempfile.TemporaryDirectory() as tmpdir:
        db = Path(tmpdir) / "index.db"
        store = SymbolIndexStore(db)
        file = _file("A.class")
        store.persist(file, [_cls(file, "a.Kept")])
        store.commit()
        store.persist(_file("B.class"), [_cls(_file("B.class"), "b.Lost")])
        store.close()

        reopened = SymbolIndexStore(db)
        assert reopened.search_classes("Kept", 10) == ["a.Kept"]
        assert reopened.search_classes("Lost", 10) == []
        reopened.close()


def test_query_syntax_never_raises():
    with tempfile.TemporaryDirectory() as tmpdir:
        store = SymbolIndexStore(Path(tmpdir) / "index.db")

        for query in ['"', "AND", "*", "NEAR(", "a OR", "-x"]:
            assert isinstance(store.search_classes(query, 10), list)
        store.close()


segment = st.from_regex(r"[A-Z][a-z]{1,6}[A-Z][a-z]{1,6}", fullmatch=True)


@given(names=st.lists(segment, min_size=1, max_size=8, unique=True))
@settings(max_examples=25, deadline=None)
def test_every_class_is_found_by_its_simple_name(names: list[str]):
    with tempfile.TemporaryDirectory() as tmpdir:
        store = SymbolIndexStore(Path(tmpdir) / "index.db")
        file = _file("lib.jar")
        store.persist(file, [_cls(file, f"gen.{n}") for n in names])

        for name in names:
            assert f"gen.{name}" in store.search_classes(name, len(names))
        store.close()


def test_closed_store_does_not_reconnect():
    with tempfile.TemporaryDirectory() as tmpdir:
        store = SymbolIndexStore(Path(tmpdir) / "index.db")
        file = _file("A.class")
        store.persist(file, [_cls(file, "a.Alpha")])
        store.commit()

        store.close()

        with pytest.raises(IndexStoreError):
            store.search_classes("Alpha", 10)
        with pytest.raises(IndexStoreError):
            store.persist(file, [_cls(file, "a.Alpha")])
        with pytest.raises(IndexStoreError):
            store.commit()
        assert store._conn is None
