"""
Decoder limits.

Caps on declared lengths, enforced before anything sized by them is
allocated. Defaults match the limits of the reference MonkeyLogic reader.
Overrides can be loaded from a YAML mapping.
"""
from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Any, Dict

import yaml


@dataclass(frozen=True)
class DecodeLimits:
    """
    Format-imposed bounds.

    Properties:
        max_name_length: Longest variable, field or cell-element name (bytes)
        max_type_length: Longest type name (bytes)
        max_rank: Most dimensions a value may declare
        max_fields: Most distinct fields a struct may declare
        max_depth: Deepest nesting of struct/cell values the decoder follows
    """

    max_name_length: int = 10000
    max_type_length: int = 100
    max_rank: int = 100
    max_fields: int = 1000
    max_depth: int = 200


DEFAULT_LIMITS = DecodeLimits()


def limits_from_dict(d: Dict[str, Any] | None) -> DecodeLimits:
    """
    Build limits from a mapping, starting from the defaults.

    Raises:
        ValueError: On unknown keys or non-positive values
    """
    if not d:
        return DEFAULT_LIMITS
    known = {f.name for f in fields(DecodeLimits)}
    unknown = set(d) - known
    if unknown:
        raise ValueError(f"Unknown limit keys: {sorted(unknown)}")
    for key, val in d.items():
        if not isinstance(val, int) or isinstance(val, bool) or val <= 0:
            raise ValueError(f"Limit {key} must be a positive integer, got {val!r}")
    return DecodeLimits(**d)


def load_limits(filepath: str) -> DecodeLimits:
    """
    Load limits from a YAML file.

    The file may hold the mapping at top level or under a `limits` key.
    """
    with open(filepath, "r", encoding="utf-8") as f:
        d = yaml.safe_load(f)
    if isinstance(d, dict) and "limits" in d:
        d = d["limits"]
    if d is not None and not isinstance(d, dict):
        raise ValueError(f"Expected a mapping of limits in {filepath}")
    return limits_from_dict(d)


__all__ = ["DecodeLimits", "DEFAULT_LIMITS", "limits_from_dict", "load_limits"]
