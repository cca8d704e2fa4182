"""
Variable inventory for BHV2 files.

Lists what a file holds (names, kinds, shapes, field counts) without
materializing bulk data: each variable's header is read and its payload
skipped, so nothing beyond headers and names is loaded.

This is a read-only report. It does NOT interpret variables.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from bhv2.codec import ValueHeader
from bhv2.config import DEFAULT_LIMITS, DecodeLimits
from bhv2.dtypes import ElementKind
from bhv2.model import StructValue, Value
from bhv2.session import open_stream


@dataclass
class VariableSummary:
    """What one top-level variable looks like."""

    name: str
    kind: ElementKind
    shape: Tuple[int, ...]
    field_count: Optional[int] = None

    def describe(self) -> str:
        return f"{self.name}: {_describe(self.kind, self.shape, self.field_count)}"


@dataclass
class FileInventory:
    """Summary of every variable in a file."""

    path: str
    variables: List[VariableSummary] = field(default_factory=list)
    truncated: bool = False

    @property
    def kind_counts(self) -> Dict[ElementKind, int]:
        return dict(Counter(v.kind for v in self.variables))

    def get(self, name: str) -> Optional[VariableSummary]:
        for var in self.variables:
            if var.name == name:
                return var
        return None


def _format_shape(shape: Tuple[int, ...]) -> str:
    if len(shape) == 1:
        return f"{shape[0]}x1"
    return "x".join(str(d) for d in shape)


def _describe(kind: ElementKind, shape: Tuple[int, ...], field_count: Optional[int]) -> str:
    text = kind.value
    if shape:
        text = f"{_format_shape(shape)} {text}"
    if kind is ElementKind.STRUCT:
        text += f" ({field_count} fields)"
    return text


def describe_value(value: Value) -> str:
    """
    One-line description such as "1x1 double" or "1x3 struct (4 fields)".
    """
    field_count = value.field_width if isinstance(value, StructValue) else None
    return _describe(value.kind, value.shape, field_count)


def summarize_value(name: str, value: Value) -> VariableSummary:
    summary = VariableSummary(name=name, kind=value.kind, shape=value.shape)
    if isinstance(value, StructValue):
        summary.field_count = value.field_width
    return summary


def summarize_header(name: str, header: ValueHeader) -> VariableSummary:
    return VariableSummary(
        name=name,
        kind=header.kind,
        shape=tuple(header.shape),
        field_count=header.field_width,
    )


def list_variables(path: str, limit: Optional[int] = None,
                   limits: DecodeLimits = DEFAULT_LIMITS) -> FileInventory:
    """
    Build an inventory of a file's variables.

    Only headers are read; every payload is skipped.

    Args:
        path: BHV2 file
        limit: Stop after this many variables (inventory.truncated is set)
    """
    inventory = FileInventory(path=path)
    with open_stream(path, limits=limits) as f:
        while True:
            name = f.next_name()
            if name is None:
                break
            if limit is not None and len(inventory.variables) >= limit:
                inventory.truncated = True
                break
            header = f.read_header_and_skip()
            inventory.variables.append(summarize_header(name, header))
    return inventory


__all__ = [
    "VariableSummary",
    "FileInventory",
    "describe_value",
    "summarize_value",
    "summarize_header",
    "list_variables",
]
