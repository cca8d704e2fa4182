"""
Export helpers for decoded BHV2 values.

Converts Value trees to plain Python data (dicts, lists, numbers, strings)
and from there to JSON or YAML. The mapping is one-way: it mirrors how a
MATLAB user thinks of the data, not the wire layout, so shapes are not
preserved.

Mapping:
    numeric scalar      -> number (logical -> bool)
    numeric array       -> flat list in stored order
    NaN / Inf           -> None (JSON has no spelling for them)
    char                -> str
    1-element struct    -> dict of decoded fields (holes omitted)
    struct array        -> list of dicts
    1-element cell      -> its element
    cell array          -> list
"""
from __future__ import annotations

import json
from typing import Any, Dict, Iterable, List

import numpy as np
import yaml

from bhv2.model import CellValue, CharValue, NamedVariable, NumericValue, StructValue, Value


def _numeric_to_list(value: NumericValue) -> List[Any]:
    items = value.data.tolist()
    if value.data.dtype.kind == "f":
        finite = np.isfinite(value.data)
        items = [x if ok else None for x, ok in zip(items, finite)]
    return items


def _struct_element_to_dict(value: StructValue, index: int) -> Dict[str, Any]:
    return {
        slot.name: value_to_plain(slot.value)
        for slot in value.element_slots(index)
        if not slot.is_hole
    }


def value_to_plain(value: Value | None) -> Any:
    if value is None:
        return None
    if isinstance(value, NumericValue):
        items = _numeric_to_list(value)
        if value.element_count == 1:
            return items[0]
        return items
    if isinstance(value, CharValue):
        return value.text
    if isinstance(value, StructValue):
        if value.element_count == 1:
            return _struct_element_to_dict(value, 0)
        return [_struct_element_to_dict(value, i) for i in range(value.element_count)]
    if isinstance(value, CellValue):
        if value.element_count == 1:
            return value_to_plain(value.cells[0])
        return [value_to_plain(child) for child in value.cells]
    raise TypeError(f"Unsupported value type: {type(value)}")


def variables_to_dict(variables: Iterable[NamedVariable]) -> Dict[str, Any]:
    """Map variable names to their plain values, in file order."""
    return {var.name: value_to_plain(var.value) for var in variables}


def value_to_json(value: Value, compact: bool = False) -> str:
    if compact:
        return json.dumps(value_to_plain(value), separators=(",", ":"))
    return json.dumps(value_to_plain(value), indent=2)


def variables_to_json(variables: Iterable[NamedVariable], compact: bool = False) -> str:
    d = variables_to_dict(variables)
    if compact:
        return json.dumps(d, separators=(",", ":"))
    return json.dumps(d, indent=2)


def value_to_yaml(value: Value) -> str:
    return yaml.safe_dump(value_to_plain(value), sort_keys=False)


def variables_to_yaml(variables: Iterable[NamedVariable]) -> str:
    return yaml.safe_dump(variables_to_dict(variables), sort_keys=False)


__all__ = [
    "value_to_plain",
    "variables_to_dict",
    "value_to_json",
    "variables_to_json",
    "value_to_yaml",
    "variables_to_yaml",
]
