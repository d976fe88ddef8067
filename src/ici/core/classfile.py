"""
Minimal JVM classfile reader.

Reads just enough of the classfile format to produce symbol records:
the constant pool, access flags, class name, fields, methods, the
SourceFile attribute and the first line of each method's LineNumberTable.
"""

import struct
from dataclasses import dataclass, field

CLASSFILE_MAGIC = 0xCAFEBABE

ACC_PUBLIC = 0x0001
ACC_PRIVATE = 0x0002
ACC_PROTECTED = 0x0004
ACC_SYNTHETIC = 0x1000

# Constant pool tags
CONSTANT_UTF8 = 1
CONSTANT_INTEGER = 3
CONSTANT_FLOAT = 4
CONSTANT_LONG = 5
CONSTANT_DOUBLE = 6
CONSTANT_CLASS = 7
CONSTANT_STRING = 8
CONSTANT_FIELDREF = 9
CONSTANT_METHODREF = 10
CONSTANT_INTERFACE_METHODREF = 11
CONSTANT_NAME_AND_TYPE = 12
CONSTANT_METHOD_HANDLE = 15
CONSTANT_METHOD_TYPE = 16
CONSTANT_DYNAMIC = 17
CONSTANT_INVOKE_DYNAMIC = 18
CONSTANT_MODULE = 19
CONSTANT_PACKAGE = 20

# Payload size in bytes for fixed-width constant pool entries
_FIXED_ENTRY_SIZES = {
    CONSTANT_INTEGER: 4,
    CONSTANT_FLOAT: 4,
    CONSTANT_LONG: 8,
    CONSTANT_DOUBLE: 8,
    CONSTANT_CLASS: 2,
    CONSTANT_STRING: 2,
    CONSTANT_FIELDREF: 4,
    CONSTANT_METHODREF: 4,
    CONSTANT_INTERFACE_METHODREF: 4,
    CONSTANT_NAME_AND_TYPE: 4,
    CONSTANT_METHOD_HANDLE: 3,
    CONSTANT_METHOD_TYPE: 2,
    CONSTANT_DYNAMIC: 4,
    CONSTANT_INVOKE_DYNAMIC: 4,
    CONSTANT_MODULE: 2,
    CONSTANT_PACKAGE: 2,
}


class ClassfileError(Exception):
    """Raised when a classfile cannot be parsed."""

    pass


@dataclass
class MemberInfo:
    """A field or method declaration."""

    name: str
    descriptor: str
    access: int
    line: int | None = None

    @property
    def is_public(self) -> bool:
        return bool(self.access & ACC_PUBLIC)


@dataclass
class ClassInfo:
    """The parts of a classfile needed for indexing."""

    internal_name: str
    access: int
    source_file: str | None = None
    fields: list[MemberInfo] = field(default_factory=list)
    methods: list[MemberInfo] = field(default_factory=list)

    @property
    def is_public(self) -> bool:
        return bool(self.access & ACC_PUBLIC)

    @property
    def fqn(self) -> str:
        return self.internal_name.replace("/", ".")

    @property
    def package(self) -> str:
        """Dotted package name, empty for the default package."""
        head, _, _ = self.internal_name.rpartition("/")
        return head.replace("/", ".")

    @property
    def line(self) -> int | None:
        """Smallest known method line, used as the class position."""
        lines = [m.line for m in self.methods if m.line is not None]
        return min(lines) if lines else None


def _decode_modified_utf8(raw: bytes) -> str:
    # JVM encodes NUL as 0xC0 0x80 and supplementary characters as surrogate pairs
    raw = raw.replace(b"\xc0\x80", b"\x00")
    try:
        return raw.decode("utf-8", errors="surrogatepass").encode(
            "utf-16", errors="surrogatepass"
        ).decode("utf-16")
    except UnicodeError:
        return raw.decode("utf-8", errors="replace")


class _Reader:
    """Big-endian cursor over classfile bytes."""

    def __init__(self, data: bytes):
        self._data = data
        self._pos = 0

    def _take(self, size: int) -> bytes:
        end = self._pos + size
        if end > len(self._data):
            raise ClassfileError(
                f"Unexpected end of classfile at offset {self._pos} (wanted {size} bytes)"
            )
        chunk = self._data[self._pos:end]
        self._pos = end
        return chunk

    def u1(self) -> int:
        return self._take(1)[0]

    def u2(self) -> int:
        return struct.unpack(">H", self._take(2))[0]

    def u4(self) -> int:
        return struct.unpack(">I", self._take(4))[0]

    def skip(self, size: int) -> None:
        self._take(size)

    def bytes(self, size: int) -> bytes:
        return self._take(size)


class ClassfileReader:
    """Parses classfile bytes into a ClassInfo."""

    def read(self, data: bytes) -> ClassInfo:
        reader = _Reader(data)
        if reader.u4() != CLASSFILE_MAGIC:
            raise ClassfileError("Not a classfile: bad magic number")
        reader.u2()  # minor version
        reader.u2()  # major version

        pool = self._read_constant_pool(reader)

        access = reader.u2()
        this_class = reader.u2()
        reader.u2()  # super class
        interface_count = reader.u2()
        reader.skip(2 * interface_count)

        internal_name = self._class_name(pool, this_class)

        fields = [self._read_member(reader, pool) for _ in range(reader.u2())]
        methods = [self._read_member(reader, pool) for _ in range(reader.u2())]

        source_file = None
        for name, payload in self._read_attributes(reader, pool):
            if name == "SourceFile" and len(payload) == 2:
                source_file = self._utf8(pool, struct.unpack(">H", payload)[0])

        return ClassInfo(
            internal_name=internal_name,
            access=access,
            source_file=source_file,
            fields=fields,
            methods=methods,
        )

    def _read_constant_pool(self, reader: _Reader) -> dict[int, tuple[int, object]]:
        count = reader.u2()
        pool: dict[int, tuple[int, object]] = {}
        index = 1
        while index < count:
            tag = reader.u1()
            if tag == CONSTANT_UTF8:
                length = reader.u2()
                pool[index] = (tag, _decode_modified_utf8(reader.bytes(length)))
            elif tag == CONSTANT_CLASS:
                pool[index] = (tag, reader.u2())
            elif tag in _FIXED_ENTRY_SIZES:
                reader.skip(_FIXED_ENTRY_SIZES[tag])
                pool[index] = (tag, None)
            else:
                raise ClassfileError(f"Unknown constant pool tag {tag} at index {index}")

            # long and double take two slots
            index += 2 if tag in (CONSTANT_LONG, CONSTANT_DOUBLE) else 1
        return pool

    def _utf8(self, pool: dict[int, tuple[int, object]], index: int) -> str:
        entry = pool.get(index)
        if entry is None or entry[0] != CONSTANT_UTF8:
            raise ClassfileError(f"Constant pool entry {index} is not a UTF8 string")
        return str(entry[1])

    def _class_name(self, pool: dict[int, tuple[int, object]], index: int) -> str:
        entry = pool.get(index)
        if entry is None or entry[0] != CONSTANT_CLASS:
            raise ClassfileError(f"Constant pool entry {index} is not a class reference")
        return self._utf8(pool, int(entry[1]))

    def _read_attributes(
        self, reader: _Reader, pool: dict[int, tuple[int, object]]
    ) -> list[tuple[str, bytes]]:
        attributes = []
        for _ in range(reader.u2()):
            name = self._utf8(pool, reader.u2())
            payload = reader.bytes(reader.u4())
            attributes.append((name, payload))
        return attributes

    def _read_member(
        self, reader: _Reader, pool: dict[int, tuple[int, object]]
    ) -> MemberInfo:
        access = reader.u2()
        name = self._utf8(pool, reader.u2())
        descriptor = self._utf8(pool, reader.u2())
        line = None
        for attr_name, payload in self._read_attributes(reader, pool):
            if attr_name == "Code":
                line = self._first_line(payload, pool)
        return MemberInfo(name=name, descriptor=descriptor, access=access, line=line)

    def _first_line(
        self, code: bytes, pool: dict[int, tuple[int, object]]
    ) -> int | None:
        """Smallest line number in a Code attribute's LineNumberTable."""
        reader = _Reader(code)
        reader.skip(4)  # max_stack, max_locals
        reader.skip(reader.u4())
        reader.skip(8 * reader.u2())  # exception table
        lines: list[int] = []
        for name, payload in self._read_attributes(reader, pool):
            if name != "LineNumberTable":
                continue
            table = _Reader(payload)
            for _ in range(table.u2()):
                table.u2()  # start_pc
                lines.append(table.u2())
        return min(lines) if lines else None


def read_classfile(data: bytes) -> ClassInfo:
    """Parse classfile bytes."""
    return ClassfileReader().read(data)
