# © Copyright 2025-2026, Query.Farm LLC - https://query.farm
# SPDX-License-Identifier: Apache-2.0

"""Value helpers shared by fixture matching and handler assertions.

KEY FUNCTIONS
-------------
structurally_equal : Strict deep equality over XML-RPC values
describe_value : Render a value for fault messages (double-quoted strings)
freeze_value : Read-only deep copy (mapping proxies and tuples)
thaw_value : Mutable deep copy (dicts and lists) for handing out
"""

from __future__ import annotations

import json
from collections.abc import Mapping, Sequence
from types import MappingProxyType
from typing import Any

__all__ = ["describe_value", "freeze_value", "structurally_equal", "thaw_value"]


def _is_sequence(value: object) -> bool:
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray))


def structurally_equal(left: Any, right: Any) -> bool:
    """Compare two decoded XML-RPC values recursively.

    Mappings compare by key set and per-key value regardless of key order;
    sequences compare element-wise in order (lists and tuples are
    interchangeable).  Booleans only ever equal booleans, so ``True`` does
    not match ``1`` the way plain ``==`` would.

    Args:
        left: First value.
        right: Second value.

    Returns:
        ``True`` when both values have the same structure and contents.

    """
    if isinstance(left, bool) or isinstance(right, bool):
        return isinstance(left, bool) and isinstance(right, bool) and left is right
    if isinstance(left, Mapping):
        if not isinstance(right, Mapping) or left.keys() != right.keys():
            return False
        return all(structurally_equal(left[key], right[key]) for key in left)
    if _is_sequence(left):
        if not _is_sequence(right) or len(left) != len(right):
            return False
        return all(structurally_equal(a, b) for a, b in zip(left, right, strict=True))
    if isinstance(right, Mapping) or _is_sequence(right):
        return False
    return bool(left == right)


def describe_value(value: Any) -> str:
    """Render *value* the way fault messages show it.

    Strings are double-quoted with JSON escaping, containers are rendered
    recursively, and everything else falls back to ``repr``.

    >>> describe_value({"ids": [123, "abc"]})
    '{"ids": [123, "abc"]}'
    """
    if isinstance(value, str):
        return json.dumps(value, ensure_ascii=False)
    if isinstance(value, Mapping):
        items = ", ".join(f"{describe_value(k)}: {describe_value(v)}" for k, v in value.items())
        return "{" + items + "}"
    if _is_sequence(value):
        return "[" + ", ".join(describe_value(v) for v in value) + "]"
    return repr(value)


def freeze_value(value: Any) -> Any:
    """Return a read-only deep copy of *value*.

    Mappings become ``MappingProxyType`` over fresh dicts and sequences
    become tuples; scalars are returned as-is.
    """
    if isinstance(value, Mapping):
        return MappingProxyType({k: freeze_value(v) for k, v in value.items()})
    if _is_sequence(value):
        return tuple(freeze_value(v) for v in value)
    return value


def thaw_value(value: Any) -> Any:
    """Return a mutable deep copy of *value* as plain dicts and lists."""
    if isinstance(value, Mapping):
        return {k: thaw_value(v) for k, v in value.items()}
    if _is_sequence(value):
        return [thaw_value(v) for v in value]
    return value
