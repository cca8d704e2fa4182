"""
Binary value codec for BHV2 (Layer 1: Raw Bytes -> Value Model).

Grammar (all integers u64 little-endian):

    value         := type_name dims payload
    type_name     := u64(len) bytes(len)
    dims          := u64(rank) u64[rank]
    payload       := bytes(width * count)             numeric, logical, char
                   | u64(field_width) field{count * field_width}   struct
                   | cell_element{count}                           cell
    field         := u64(name_len) bytes(name_len) value
    cell_element  := u64(name_len) bytes(name_len) value

Three readers walk this grammar:
    - decode: materializes every node
    - skip: advances past a value without building anything
    - decode_selective: decodes only the wanted fields of a top-level struct

read_header_and_skip is skip that also reports the header it walked past.

ARCHITECTURAL RULE:
    All three MUST consume exactly the same bytes for the same input.
    They share the header, name and struct-table helpers below so that
    the byte accounting lives in one place.
"""
from __future__ import annotations

import io
import os
import struct
from dataclasses import dataclass
from typing import AbstractSet, BinaryIO, FrozenSet, Iterable, List, Optional, Tuple

import numpy as np

from bhv2.config import DEFAULT_LIMITS, DecodeLimits
from bhv2.dtypes import (
    TEXT_ENCODING,
    ElementKind,
    fixed_width_of,
    is_numeric,
    kind_of,
    numpy_dtype_of,
)
from bhv2.errors import BHV2FormatError, BHV2IOError
from bhv2.model import (
    CellValue,
    CharValue,
    FieldSlot,
    NamedVariable,
    NumericValue,
    StructValue,
    Value,
    make_value_shell,
)

_U64 = struct.Struct("<Q")
_DISCARD_CHUNK = 64 * 1024

# Smallest possible encoding of a value: type length, a 4-byte type name, rank 0.
_MIN_VALUE_BYTES = 8 + 4 + 8
# A struct field or cell element adds its name length in front.
_MIN_ENTRY_BYTES = 8 + _MIN_VALUE_BYTES


class ByteCursor:
    """
    Sequential reader over a binary stream.

    When the stream is seekable the total size is recorded up front, so
    reads and skips past the end fail before any buffer is requested and
    skips become relative seeks. Otherwise skips discard by reading.
    """

    def __init__(self, stream: BinaryIO):
        self._stream = stream
        self._seekable = False
        self._size: Optional[int] = None
        self._pos = 0
        try:
            if stream.seekable():
                self._pos = stream.tell()
                self._size = stream.seek(0, os.SEEK_END)
                stream.seek(self._pos)
                self._seekable = True
        except OSError as e:
            raise BHV2IOError(f"Failed to determine stream size: {e}") from e

    @property
    def seekable(self) -> bool:
        return self._seekable

    @property
    def size(self) -> Optional[int]:
        """Total size of the medium, or None if unknown."""
        return self._size

    def tell(self) -> int:
        return self._pos

    def remaining(self) -> Optional[int]:
        if self._size is None:
            return None
        return max(self._size - self._pos, 0)

    def ensure_available(self, n: int, what: str) -> None:
        remaining = self.remaining()
        if remaining is not None and n > remaining:
            raise BHV2IOError(
                f"Unexpected end of data at offset {self._pos}: "
                f"{what} needs {n} bytes, {remaining} left"
            )

    def read_exact(self, n: int, what: str = "data") -> bytes:
        """Read exactly n bytes or raise BHV2IOError."""
        if n == 0:
            return b""
        self.ensure_available(n, what)
        try:
            if self._size is None and n > _DISCARD_CHUNK:
                data = self._read_chunked(n)
            else:
                data = self._stream.read(n)
        except OSError as e:
            raise BHV2IOError(f"Failed to read {what}: {e}") from e
        if data is None or len(data) != n:
            got = 0 if data is None else len(data)
            raise BHV2IOError(f"Short read of {what} at offset {self._pos}: wanted {n} bytes, got {got}")
        self._pos += n
        return data

    def _read_chunked(self, n: int) -> bytes:
        # Size unknown: grow the buffer only as data actually arrives.
        buf = bytearray()
        while len(buf) < n:
            chunk = self._stream.read(min(n - len(buf), _DISCARD_CHUNK))
            if not chunk:
                break
            buf += chunk
        return bytes(buf)

    def read_u64(self, what: str = "u64") -> int:
        return _U64.unpack(self.read_exact(8, what))[0]

    def skip(self, n: int, what: str = "data") -> None:
        """Advance n bytes: a relative seek if possible, a discarding read otherwise."""
        if n == 0:
            return
        self.ensure_available(n, what)
        if self._seekable:
            try:
                self._stream.seek(n, os.SEEK_CUR)
            except OSError as e:
                raise BHV2IOError(f"Failed to skip {what}: {e}") from e
            self._pos += n
            return
        left = n
        while left > 0:
            chunk = self.read_exact(min(left, _DISCARD_CHUNK), what)
            left -= len(chunk)

    def seek(self, offset: int) -> None:
        """Move to an absolute offset (seekable streams only)."""
        if not self._seekable:
            raise BHV2IOError("Stream does not support seeking")
        try:
            self._stream.seek(offset, os.SEEK_SET)
        except OSError as e:
            raise BHV2IOError(f"Failed to seek to offset {offset}: {e}") from e
        self._pos = offset


# =============================================================================
# Shared grammar helpers
# =============================================================================

def _read_header(cursor: ByteCursor, limits: DecodeLimits) -> Tuple[ElementKind, Tuple[int, ...]]:
    """Read type_name and dims. Caps are checked before reading what they bound."""
    type_len = cursor.read_u64("type name length")
    if type_len > limits.max_type_length:
        raise BHV2FormatError(
            f"Type name length {type_len} exceeds limit {limits.max_type_length}"
        )
    type_name = cursor.read_exact(type_len, "type name").decode(TEXT_ENCODING)
    kind = kind_of(type_name)
    if kind is None:
        raise BHV2FormatError(f"Unknown type name: {type_name!r}")

    rank = cursor.read_u64("rank")
    if rank > limits.max_rank:
        raise BHV2FormatError(f"Rank {rank} exceeds limit {limits.max_rank}")
    raw = cursor.read_exact(8 * rank, "dimensions")
    shape = struct.unpack(f"<{rank}Q", raw) if rank else ()
    return kind, shape


def _read_name_length(cursor: ByteCursor, limits: DecodeLimits, what: str) -> int:
    name_len = cursor.read_u64(f"{what} name length")
    if name_len > limits.max_name_length:
        raise BHV2FormatError(
            f"{what} name length {name_len} exceeds limit {limits.max_name_length}"
        )
    return name_len


def read_name(cursor: ByteCursor, limits: DecodeLimits = DEFAULT_LIMITS, what: str = "Field") -> str:
    """Read a length-prefixed name."""
    name_len = _read_name_length(cursor, limits, what)
    return cursor.read_exact(name_len, f"{what} name").decode(TEXT_ENCODING)


def _skip_name(cursor: ByteCursor, limits: DecodeLimits, what: str) -> None:
    # The name bytes must be skipped too, or the next header is read from inside the name.
    name_len = _read_name_length(cursor, limits, what)
    cursor.skip(name_len, f"{what} name")


def _element_count(shape: Tuple[int, ...]) -> int:
    count = 1
    for d in shape:
        count *= d
    return count


def _check_entries_fit(cursor: ByteCursor, entries: int, what: str) -> None:
    """Reject tables that cannot fit in what is left of the medium, before allocating them."""
    if entries:
        cursor.ensure_available(entries * _MIN_ENTRY_BYTES, what)


def _read_field_width(cursor: ByteCursor, count: int, limits: DecodeLimits) -> int:
    field_width = cursor.read_u64("field count")
    if field_width > limits.max_fields:
        raise BHV2FormatError(f"Field count {field_width} exceeds limit {limits.max_fields}")
    _check_entries_fit(cursor, count * field_width, "struct fields")
    return field_width


def _enter(depth: int, limits: DecodeLimits) -> int:
    depth += 1
    if depth > limits.max_depth:
        raise BHV2FormatError(f"Nesting depth exceeds limit {limits.max_depth}")
    return depth


# =============================================================================
# decode
# =============================================================================

def _decode_payload(cursor: ByteCursor, kind: ElementKind, shape: Tuple[int, ...],
                    limits: DecodeLimits, depth: int) -> Value:
    value = make_value_shell(kind, shape)
    count = value.element_count

    if is_numeric(kind):
        raw = cursor.read_exact(fixed_width_of(kind) * count, f"{kind.value} data")
        if count:
            value.data = np.frombuffer(raw, dtype=numpy_dtype_of(kind))
        return value

    if kind is ElementKind.CHAR:
        value.text = cursor.read_exact(count, "char data").decode(TEXT_ENCODING)
        return value

    if kind is ElementKind.STRUCT:
        _read_struct_payload(cursor, value, limits, depth, wanted=None)
        return value

    _check_entries_fit(cursor, count, "cell elements")
    for _ in range(count):
        name = read_name(cursor, limits, "Cell element")
        child = _decode(cursor, limits, depth)
        value.names.append(name)
        value.cells.append(child)
    return value


def _read_struct_payload(cursor: ByteCursor, value: StructValue, limits: DecodeLimits,
                         depth: int, wanted: Optional[AbstractSet[str]]) -> None:
    """
    Fill the field table of a struct.

    wanted=None decodes every field; otherwise only fields named in
    `wanted` are decoded and the rest are skipped, leaving holes.
    """
    count = value.element_count
    field_width = _read_field_width(cursor, count, limits)
    value.field_width = field_width
    if field_width == 0:
        return
    slots = value.slots
    for _ in range(count):
        for _ in range(field_width):
            name = read_name(cursor, limits, "Field")
            if wanted is None or name in wanted:
                slots.append(FieldSlot(name, _decode(cursor, limits, depth)))
            else:
                _skip(cursor, limits, depth)
                slots.append(FieldSlot.hole())


def _decode(cursor: ByteCursor, limits: DecodeLimits, depth: int) -> Value:
    depth = _enter(depth, limits)
    kind, shape = _read_header(cursor, limits)
    return _decode_payload(cursor, kind, shape, limits, depth)


def decode(cursor: ByteCursor, limits: DecodeLimits = DEFAULT_LIMITS) -> Value:
    """
    Decode one complete value, materializing every node.

    Raises:
        BHV2IOError: On short reads or failed seeks
        BHV2FormatError: On unknown types or lengths over their caps
    """
    return _decode(cursor, limits, 0)


# =============================================================================
# skip
# =============================================================================

def _skip_payload(cursor: ByteCursor, kind: ElementKind, shape: Tuple[int, ...],
                  limits: DecodeLimits, depth: int) -> Optional[int]:
    """Skip the payload after a header. Returns the field width for structs."""
    count = _element_count(shape)

    if kind is ElementKind.STRUCT:
        field_width = _read_field_width(cursor, count, limits)
        for _ in range(count * field_width):
            _skip_name(cursor, limits, "Field")
            _skip(cursor, limits, depth)
        return field_width

    if kind is ElementKind.CELL:
        _check_entries_fit(cursor, count, "cell elements")
        for _ in range(count):
            _skip_name(cursor, limits, "Cell element")
            _skip(cursor, limits, depth)
        return None

    cursor.skip(fixed_width_of(kind) * count, f"{kind.value} data")
    return None


def _skip(cursor: ByteCursor, limits: DecodeLimits, depth: int) -> None:
    depth = _enter(depth, limits)
    kind, shape = _read_header(cursor, limits)
    _skip_payload(cursor, kind, shape, limits, depth)


def skip(cursor: ByteCursor, limits: DecodeLimits = DEFAULT_LIMITS) -> None:
    """
    Advance past one complete value without building it.

    Consumes exactly the bytes decode() would. Raises the same errors.
    """
    _skip(cursor, limits, 0)


@dataclass(frozen=True)
class ValueHeader:
    """
    What a value's header declares, without its payload.

    Properties:
        kind: Element kind
        shape: Dimension sizes
        field_width: Fields per struct element (None for other kinds)
    """

    kind: ElementKind
    shape: Tuple[int, ...]
    field_width: Optional[int] = None


def read_header_and_skip(cursor: ByteCursor, limits: DecodeLimits = DEFAULT_LIMITS) -> ValueHeader:
    """
    Read one value's header, then skip its payload.

    Consumes exactly the bytes decode() would, but no payload byte is read
    into memory on a seekable stream.
    """
    depth = _enter(0, limits)
    kind, shape = _read_header(cursor, limits)
    field_width = _skip_payload(cursor, kind, shape, limits, depth)
    return ValueHeader(kind=kind, shape=shape, field_width=field_width)


# =============================================================================
# decode_selective
# =============================================================================

def wanted_field_set(wanted: Iterable[str]) -> FrozenSet[str]:
    """
    Normalize a collection of wanted field names.

    Raises:
        TypeError: If given a single string rather than a collection of names
    """
    if isinstance(wanted, (str, bytes)):
        raise TypeError(
            f"Wanted fields must be a collection of names, not a single string: {wanted!r}"
        )
    return frozenset(wanted)


def decode_selective(cursor: ByteCursor, wanted: Iterable[str],
                     limits: DecodeLimits = DEFAULT_LIMITS) -> Value:
    """
    Decode a value, keeping only the wanted fields if it is a struct.

    Fields of a top-level struct whose names are in `wanted` are fully
    decoded; all others are skipped and leave a hole slot. Values of any
    other kind are decoded fully. Consumes exactly the bytes decode() would.
    """
    wanted_set = wanted_field_set(wanted)
    depth = _enter(0, limits)
    kind, shape = _read_header(cursor, limits)
    if kind is not ElementKind.STRUCT:
        return _decode_payload(cursor, kind, shape, limits, depth)
    value = make_value_shell(kind, shape)
    _read_struct_payload(cursor, value, limits, depth, wanted=wanted_set)
    return value


# =============================================================================
# Byte-string conveniences
# =============================================================================

def decode_bytes(data: bytes, limits: DecodeLimits = DEFAULT_LIMITS) -> Value:
    """Decode one value from the start of `data`."""
    return decode(ByteCursor(io.BytesIO(data)), limits)


def skip_bytes(data: bytes, limits: DecodeLimits = DEFAULT_LIMITS) -> int:
    """Skip one value at the start of `data`; return the number of bytes it spans."""
    cursor = ByteCursor(io.BytesIO(data))
    skip(cursor, limits)
    return cursor.tell()


# =============================================================================
# Encoding (inverse of decode)
# =============================================================================

def _encode_text(text: str) -> bytes:
    raw = text.encode(TEXT_ENCODING)
    return _U64.pack(len(raw)) + raw


def _encode_into(value: Value, out: List[bytes]) -> None:
    out.append(_encode_text(value.kind.value))
    out.append(_U64.pack(len(value.shape)))
    out.extend(_U64.pack(d) for d in value.shape)
    count = value.element_count

    if isinstance(value, NumericValue):
        data = np.asarray(value.data).astype(numpy_dtype_of(value.kind), copy=False)
        if data.size != count:
            raise ValueError(f"{value.kind.value} value has {data.size} elements, shape needs {count}")
        out.append(data.tobytes())
    elif isinstance(value, CharValue):
        raw = value.text.encode(TEXT_ENCODING)
        if len(raw) != count:
            raise ValueError(f"char value has {len(raw)} bytes, shape needs {count}")
        out.append(raw)
    elif isinstance(value, StructValue):
        if len(value.slots) != count * value.field_width:
            raise ValueError(
                f"struct has {len(value.slots)} slots, expected {count * value.field_width}"
            )
        out.append(_U64.pack(value.field_width))
        for slot in value.slots:
            if slot.is_hole:
                raise ValueError("Cannot encode a struct containing skipped fields")
            out.append(_encode_text(slot.name))
            _encode_into(slot.value, out)
    elif isinstance(value, CellValue):
        if len(value.cells) != count:
            raise ValueError(f"cell has {len(value.cells)} elements, shape needs {count}")
        for i, child in enumerate(value.cells):
            name = value.names[i] if i < len(value.names) else ""
            out.append(_encode_text(name))
            _encode_into(child, out)
    else:
        raise TypeError(f"Unsupported value type: {type(value)}")


def encode_value(value: Value) -> bytes:
    """Encode one value to its wire form."""
    out: List[bytes] = []
    _encode_into(value, out)
    return b"".join(out)


def encode_variable(name: str, value: Value) -> bytes:
    """Encode a top-level named variable."""
    return _encode_text(name) + encode_value(value)


def write_variables(filepath: str, variables: Iterable[NamedVariable]) -> None:
    """Write a BHV2 file holding the given variables in order."""
    with open(filepath, "wb") as f:
        for var in variables:
            f.write(encode_variable(var.name, var.value))


__all__ = [
    "ByteCursor",
    "read_name",
    "decode",
    "skip",
    "ValueHeader",
    "read_header_and_skip",
    "wanted_field_set",
    "decode_selective",
    "decode_bytes",
    "skip_bytes",
    "encode_value",
    "encode_variable",
    "write_variables",
]
