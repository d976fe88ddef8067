"""
Tests for the classfile reader.
"""

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from ici.core.classfile import ClassfileError, read_classfile
from tests.support.classfile_builder import (
    ACC_PRIVATE,
    ACC_PUBLIC,
    ClassDef,
    Member,
    build_classfile,
)


def test_reads_class_name_and_package():
    info = read_classfile(build_classfile(ClassDef("org/example/HttpClient")))

    assert info.internal_name == "org/example/HttpClient"
    assert info.fqn == "org.example.HttpClient"
    assert info.package == "org.example"
    assert info.is_public


def test_default_package_is_empty():
    info = read_classfile(build_classfile(ClassDef("Main")))

    assert info.package == ""
    assert info.fqn == "Main"


def test_reads_members_with_access_and_descriptors():
    definition = ClassDef(
        "a/B",
        methods=[
            Member("run", "()V", ACC_PUBLIC, line=12),
            Member("hidden", "(I)I", ACC_PRIVATE, line=30),
        ],
        fields=[Member("count", "I", ACC_PUBLIC), Member("secret", "J", ACC_PRIVATE)],
    )
    info = read_classfile(build_classfile(definition))

    assert [(m.name, m.descriptor, m.is_public) for m in info.methods] == [
        ("run", "()V", True),
        ("hidden", "(I)I", False),
    ]
    assert [(f.name, f.descriptor, f.is_public) for f in info.fields] == [
        ("count", "I", True),
        ("secret", "J", False),
    ]


def test_method_lines_come_from_line_number_table():
    definition = ClassDef(
        "a/B",
        methods=[Member("late", "()V", line=40), Member("early", "()V", line=7)],
    )
    info = read_classfile(build_classfile(definition))

    assert [m.line for m in info.methods] == [40, 7]
    assert info.line == 7


def test_class_without_line_numbers_has_no_line():
    definition = ClassDef("a/B", methods=[Member("m", "()V", line=None)])
    info = read_classfile(build_classfile(definition))

    assert info.methods[0].line is None
    assert info.line is None


def test_reads_source_file_attribute():
    info = read_classfile(build_classfile(ClassDef("a/B", source_file="B.scala")))

    assert info.source_file == "B.scala"


def test_long_constants_take_two_pool_slots():
    definition = ClassDef("a/B", methods=[Member("m", "()V", line=3)], source_file="B.java")
    info = read_classfile(build_classfile(definition, with_long_constant=True))

    assert info.fqn == "a.B"
    assert info.methods[0].name == "m"
    assert info.source_file == "B.java"


def test_bad_magic_is_rejected():
    data = bytearray(build_classfile(ClassDef("a/B")))
    data[0:4] = b"\x00\x00\x00\x00"

    with pytest.raises(ClassfileError):
        read_classfile(bytes(data))


@given(cut=st.integers(min_value=0, max_value=60))
@settings(max_examples=50, deadline=None)
def test_truncated_classfile_raises_classfile_error(cut: int):
    """Any truncation fails with ClassfileError rather than an arbitrary exception."""
    data = build_classfile(
        ClassDef("org/example/Thing", methods=[Member("go", "()V", line=5)], source_file="Thing.java")
    )
    truncated = data[: max(0, len(data) - 1 - cut)]

    with pytest.raises(ClassfileError):
        read_classfile(truncated)


identifier = st.from_regex(r"[A-Za-z][A-Za-z0-9_]{0,10}", fullmatch=True)


@given(
    package=st.lists(st.from_regex(r"[a-z][a-z0-9]{0,6}", fullmatch=True), max_size=3),
    name=identifier,
    methods=st.lists(identifier, max_size=5, unique=True),
)
@settings(max_examples=50, deadline=None)
def test_names_survive_encoding(package: list[str], name: str, methods: list[str]):
    internal = "/".join([*package, name])
    definition = ClassDef(internal, methods=[Member(m, "()V", line=1) for m in methods])
    info = read_classfile(build_classfile(definition))

    assert info.fqn == internal.replace("/", ".")
    assert [m.name for m in info.methods] == methods
