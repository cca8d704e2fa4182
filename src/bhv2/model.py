"""
Core Value Model

Defines the in-memory tree for one decoded BHV2 value:
    - NumericValue (double, single, integer and logical arrays)
    - CharValue (char arrays, flattened to one string)
    - StructValue (struct arrays: a flat table of field slots)
    - CellValue (cell arrays: owned child values)

ARCHITECTURAL RULE:
    Each variant carries exactly one payload.
    The kind of a value decides which variant it is;
    there is no shared "data" member to read the wrong way.

OWNERSHIP:
    Struct slots and cell children are owned by their parent only.
    No sharing, no back-references, no cycles. Dropping the root
    drops the whole tree.
"""

from abc import ABC
from dataclasses import dataclass, field
from math import prod
from typing import List, Optional, Sequence, Tuple

import numpy as np

from bhv2.dtypes import ElementKind, is_numeric, numpy_dtype_of
from bhv2.indexing import sub2ind


class Value(ABC):
    """
    Base class for all decoded values.

    Subclasses provide `kind` and `shape`. Shape-derived properties live here.
    """

    kind: ElementKind
    shape: Tuple[int, ...]

    @property
    def rank(self) -> int:
        return len(self.shape)

    @property
    def element_count(self) -> int:
        """Product of the dimensions (1 for rank 0, 0 if any dimension is 0)."""
        return prod(self.shape)

    def is_scalar(self) -> bool:
        return self.element_count == 1


@dataclass(eq=False)
class NumericValue(Value):
    """
    Numeric or logical array.

    Properties:
        kind: Any numeric kind or ElementKind.BOOL
        shape: Dimension sizes
        data: Flat numpy array of element_count elements in wire order
              (no reshaping, no reordering), typed by the kind
    """

    kind: ElementKind
    shape: Tuple[int, ...]
    data: np.ndarray = ()

    def __post_init__(self):
        self.data = np.asarray(self.data, dtype=numpy_dtype_of(self.kind)).reshape(-1)

    def __eq__(self, other):
        if not isinstance(other, NumericValue):
            return NotImplemented
        return (
            self.kind == other.kind
            and tuple(self.shape) == tuple(other.shape)
            and np.array_equal(self.data, other.data)
        )


@dataclass
class CharValue(Value):
    """
    Char array.

    The format has no notion of multi-row strings: all bytes
    flatten into one string.
    """

    shape: Tuple[int, ...]
    text: str = ""

    @property
    def kind(self) -> ElementKind:
        return ElementKind.CHAR


@dataclass(frozen=True)
class FieldSlot:
    """
    One (name, value) position in a struct's field table.

    Either both parts are present (a decoded field) or both are absent
    (a "hole" left by selective decoding).
    """

    name: Optional[str] = None
    value: Optional[Value] = None

    def __post_init__(self):
        if (self.name is None) != (self.value is None):
            raise ValueError("FieldSlot name and value must be both present or both absent")

    @classmethod
    def hole(cls) -> "FieldSlot":
        return cls()

    @property
    def is_hole(self) -> bool:
        return self.name is None


@dataclass
class StructValue(Value):
    """
    Struct array.

    Properties:
        shape: Dimension sizes
        field_width: Number of field slots per struct element
        slots: element_count * field_width slots; the slots of element 0
               come first, then element 1, and so on

    INVARIANT:
        len(slots) == element_count * field_width once decoded
    """

    shape: Tuple[int, ...]
    field_width: int = 0
    slots: List[FieldSlot] = field(default_factory=list)

    @property
    def kind(self) -> ElementKind:
        return ElementKind.STRUCT

    def element_slots(self, index: int = 0) -> List[FieldSlot]:
        """Slots belonging to one struct element (0-based)."""
        if index < 0 or index >= self.element_count:
            raise IndexError(f"Struct element {index} out of range for {self.element_count} elements")
        base = index * self.field_width
        return self.slots[base:base + self.field_width]

    @property
    def field_names(self) -> List[str]:
        """Names of the decoded fields of element 0 (holes excluded)."""
        if self.element_count == 0:
            return []
        return [slot.name for slot in self.element_slots(0) if not slot.is_hole]

    def get(self, name: str, index: int = 0) -> Optional[Value]:
        """
        Retrieve a field value by name.

        Args:
            name: Field name
            index: 0-based struct element

        Returns:
            Value, or None if the field is absent or was skipped
        """
        for slot in self.element_slots(index):
            if slot.name == name:
                return slot.value
        return None


@dataclass
class CellValue(Value):
    """
    Cell array.

    Properties:
        shape: Dimension sizes
        cells: element_count child values
        names: The name stored before each element on the wire.
               Almost always empty; kept as read, with no meaning assigned.
    """

    shape: Tuple[int, ...]
    cells: List[Value] = field(default_factory=list)
    names: List[str] = field(default_factory=list)

    @property
    def kind(self) -> ElementKind:
        return ElementKind.CELL


@dataclass
class NamedVariable:
    """A top-level (name, value) pair as stored in the file."""

    name: str
    value: Value


def make_value_shell(kind: ElementKind, shape: Sequence[int]) -> Value:
    """
    Create an empty value of the right variant for `kind`.

    The payload (numeric data, text, slots, cells) is filled in by the codec.

    Raises:
        ValueError: If any dimension is not a non-negative integer
    """
    dims = tuple(shape)
    for d in dims:
        if not isinstance(d, int) or isinstance(d, bool) or d < 0:
            raise ValueError(f"Invalid dimension {d!r} in shape {dims}")
    if is_numeric(kind):
        return NumericValue(kind=kind, shape=dims)
    if kind is ElementKind.CHAR:
        return CharValue(shape=dims)
    if kind is ElementKind.STRUCT:
        return StructValue(shape=dims)
    if kind is ElementKind.CELL:
        return CellValue(shape=dims)
    raise ValueError(f"Unsupported kind: {kind}")


# =============================================================================
# Accessors
# =============================================================================

def struct_field(value: Value, name: str, element_index: int = 0) -> Optional[Value]:
    """
    Navigate into a struct by field name.

    Returns:
        The field's value, or None if there is no such (decoded) field

    Raises:
        TypeError: If value is not a struct
        IndexError: If element_index is out of range
    """
    if not isinstance(value, StructValue):
        raise TypeError(f"Expected struct, got {value.kind.value}")
    return value.get(name, element_index)


def cell_element(value: Value, index: int) -> Value:
    """
    Get one element of a cell array (0-based linear index).

    Raises:
        TypeError: If value is not a cell array
        IndexError: If index is out of range
    """
    if not isinstance(value, CellValue):
        raise TypeError(f"Expected cell, got {value.kind.value}")
    if index < 0 or index >= len(value.cells):
        raise IndexError(f"Cell index {index} out of range for {len(value.cells)} elements")
    return value.cells[index]


def get_double(value: Value, index: int = 0) -> float:
    """
    Read one numeric or logical element as a float.

    Raises:
        TypeError: If value is not numeric/logical
        IndexError: If index is out of range
    """
    if not isinstance(value, NumericValue):
        raise TypeError(f"Expected numeric value, got {value.kind.value}")
    if index < 0 or index >= value.data.size:
        raise IndexError(f"Index {index} out of range for {value.data.size} elements")
    return float(value.data[index])


def get_string(value: Value) -> Optional[str]:
    """Text of a char value, or None for any other kind."""
    if isinstance(value, CharValue):
        return value.text
    return None


def element_at(value: Value, *subscripts: int):
    """
    Fetch one element by 1-based MATLAB subscripts.

    Returns the number for numeric values, the child for cells,
    the character for char values. Struct elements are reached
    through struct_field instead.
    """
    index = sub2ind(value.shape, subscripts)
    if isinstance(value, NumericValue):
        return value.data[index].item()
    if isinstance(value, CellValue):
        return value.cells[index]
    if isinstance(value, CharValue):
        return value.text[index]
    raise TypeError(f"Cannot index elements of {value.kind.value}")


def resolve_path(value: Value, path: str) -> Optional[Value]:
    """
    Follow a dotted field path such as "AnalogData.Eye".

    Each segment selects a field of element 0 of the current struct.
    Returns None if a segment is missing or the current value is not a struct.
    """
    current: Optional[Value] = value
    for segment in path.split("."):
        if not segment:
            continue
        if not isinstance(current, StructValue) or current.element_count == 0:
            return None
        current = current.get(segment)
        if current is None:
            return None
    return current


__all__ = [
    "Value",
    "NumericValue",
    "CharValue",
    "FieldSlot",
    "StructValue",
    "CellValue",
    "NamedVariable",
    "make_value_shell",
    "struct_field",
    "cell_element",
    "get_double",
    "get_string",
    "element_at",
    "resolve_path",
]
