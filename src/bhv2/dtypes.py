"""
Element kinds of the BHV2 value model.

The wire format names types with strings ("double", "struct", ...).
Those strings are translated exactly once, here, into the closed
ElementKind enum. Everything downstream dispatches on the enum.
"""

from enum import Enum
from typing import Dict, Optional

import numpy as np


class ElementKind(Enum):
    """
    Closed set of value kinds.

    The enum value is the wire type name.
    """

    F64 = "double"
    F32 = "single"
    U8 = "uint8"
    U16 = "uint16"
    U32 = "uint32"
    U64 = "uint64"
    I8 = "int8"
    I16 = "int16"
    I32 = "int32"
    I64 = "int64"
    BOOL = "logical"
    CHAR = "char"
    STRUCT = "struct"
    CELL = "cell"


# Byte width of each fixed-width kind.
_FIXED_WIDTHS: Dict[ElementKind, int] = {
    ElementKind.F64: 8,
    ElementKind.F32: 4,
    ElementKind.U8: 1,
    ElementKind.U16: 2,
    ElementKind.U32: 4,
    ElementKind.U64: 8,
    ElementKind.I8: 1,
    ElementKind.I16: 2,
    ElementKind.I32: 4,
    ElementKind.I64: 8,
    ElementKind.BOOL: 1,
    ElementKind.CHAR: 1,
}

_NUMPY_DTYPES: Dict[ElementKind, np.dtype] = {
    ElementKind.F64: np.dtype("<f8"),
    ElementKind.F32: np.dtype("<f4"),
    ElementKind.U8: np.dtype("u1"),
    ElementKind.U16: np.dtype("<u2"),
    ElementKind.U32: np.dtype("<u4"),
    ElementKind.U64: np.dtype("<u8"),
    ElementKind.I8: np.dtype("i1"),
    ElementKind.I16: np.dtype("<i2"),
    ElementKind.I32: np.dtype("<i4"),
    ElementKind.I64: np.dtype("<i8"),
    ElementKind.BOOL: np.dtype("?"),
}

_BY_NAME: Dict[str, ElementKind] = {kind.value: kind for kind in ElementKind}

NUMERIC_KINDS = frozenset(_NUMPY_DTYPES)
COMPOSITE_KINDS = frozenset({ElementKind.STRUCT, ElementKind.CELL})

# Text on the wire is raw bytes; Latin-1 maps each byte to one character.
TEXT_ENCODING = "latin-1"


def kind_of(name: str) -> Optional[ElementKind]:
    """
    Look up the kind for a wire type name.

    Returns:
        ElementKind, or None if the name is not recognized.
        An unrecognized name is a format error for the caller to raise.
    """
    return _BY_NAME.get(name)


def name_of(kind: ElementKind) -> str:
    """Wire type name of a kind."""
    return kind.value


def fixed_width_of(kind: ElementKind) -> Optional[int]:
    """Byte width of one element, or None for struct/cell."""
    return _FIXED_WIDTHS.get(kind)


def numpy_dtype_of(kind: ElementKind) -> Optional[np.dtype]:
    """Little-endian numpy dtype of a numeric or logical kind, or None."""
    return _NUMPY_DTYPES.get(kind)


def is_numeric(kind: ElementKind) -> bool:
    return kind in NUMERIC_KINDS


def is_composite(kind: ElementKind) -> bool:
    return kind in COMPOSITE_KINDS


__all__ = [
    "ElementKind",
    "NUMERIC_KINDS",
    "COMPOSITE_KINDS",
    "TEXT_ENCODING",
    "kind_of",
    "name_of",
    "fixed_width_of",
    "numpy_dtype_of",
    "is_numeric",
    "is_composite",
]
