"""Tagged JSON value model used by the variable store and resolver.

Stored variables are plain Python values, but every place that needs to
reason about their shape -- validation on write, nested ``a.b.0`` access,
canonical stringification, size estimates -- goes through
:func:`classify`, which maps a value onto exactly one :class:`ValueKind`.
Nothing else in the package inspects value types directly.

``bool`` is checked before numbers because ``bool`` subclasses ``int``.
"""

from __future__ import annotations

import enum
import json
import math
from typing import Any, Iterable, Optional


class ValueKind(str, enum.Enum):
    """The six variants of a JSON value."""

    NULL = "null"
    BOOL = "bool"
    NUMBER = "number"
    STRING = "string"
    LIST = "list"
    MAP = "map"


def classify(value: Any) -> Optional[ValueKind]:
    """Return the :class:`ValueKind` of *value*, or ``None`` if it is not JSON-shaped.

    Only the top level is inspected; use :func:`normalize` to validate a
    whole tree.
    """
    if value is None:
        return ValueKind.NULL
    if isinstance(value, bool):
        return ValueKind.BOOL
    if isinstance(value, (int, float)):
        return ValueKind.NUMBER
    if isinstance(value, str):
        return ValueKind.STRING
    if isinstance(value, (list, tuple)):
        return ValueKind.LIST
    if isinstance(value, dict):
        return ValueKind.MAP
    return None


def normalize(value: Any) -> Any:
    """Return a deep copy of *value* with tuples turned into lists.

    Raises:
        TypeError: If any node is not JSON-representable (unknown type,
            non-string map key, or a non-finite float).
    """
    kind = classify(value)
    if kind is None:
        raise TypeError(f"unsupported type '{type(value).__name__}'")
    if kind == ValueKind.NUMBER and isinstance(value, float) and not math.isfinite(value):
        raise TypeError(f"non-finite number {value!r}")
    if kind == ValueKind.LIST:
        return [normalize(item) for item in value]
    if kind == ValueKind.MAP:
        result = {}
        for key, item in value.items():
            if not isinstance(key, str):
                raise TypeError(f"map key {key!r} is not a string")
            result[key] = normalize(item)
        return result
    return value


def copy_value(value: Any) -> Any:
    """Deep-copy an already normalized value (cheaper than :func:`copy.deepcopy`)."""
    kind = classify(value)
    if kind == ValueKind.LIST:
        return [copy_value(item) for item in value]
    if kind == ValueKind.MAP:
        return {key: copy_value(item) for key, item in value.items()}
    return value


MISSING = object()
"""Sentinel returned by :func:`walk` for a path that does not exist."""


def walk(value: Any, segments: Iterable[str]) -> Any:
    """Follow *segments* into a nested value.

    A segment is a map key on a ``MAP`` and, when it is all digits, a list
    index on a ``LIST``. Returns :data:`MISSING` as soon as a segment cannot
    be followed, so callers can tell an absent path from a ``null`` leaf.
    """
    current = value
    for segment in segments:
        kind = classify(current)
        if kind == ValueKind.MAP:
            if segment not in current:
                return MISSING
            current = current[segment]
        elif kind == ValueKind.LIST:
            if not segment.isdigit():
                return MISSING
            index = int(segment)
            if index >= len(current):
                return MISSING
            current = current[index]
        else:
            return MISSING
    return current


def to_text(value: Any) -> str:
    """Render *value* in canonical textual form for substitution into a template.

    Strings are returned as-is, ``None`` becomes ``null``, booleans become
    ``true``/``false``, numbers use their JSON spelling and containers are
    rendered as compact JSON.
    """
    kind = classify(value)
    if kind == ValueKind.STRING:
        return value
    if kind == ValueKind.NULL:
        return "null"
    if kind == ValueKind.BOOL:
        return "true" if value else "false"
    if kind == ValueKind.NUMBER:
        return json.dumps(value)
    if kind in (ValueKind.LIST, ValueKind.MAP):
        return json.dumps(value, separators=(",", ":"), ensure_ascii=False, default=str)
    return str(value)


def estimate_size(value: Any) -> int:
    """Approximate in-memory footprint of a value in bytes.

    Strings count two bytes per character, numbers eight, booleans four;
    containers sum their members (map keys included).
    """
    kind = classify(value)
    if kind == ValueKind.STRING:
        return len(value) * 2
    if kind == ValueKind.NUMBER:
        return 8
    if kind == ValueKind.BOOL:
        return 4
    if kind == ValueKind.LIST:
        return sum(estimate_size(item) for item in value)
    if kind == ValueKind.MAP:
        return sum(len(key) * 2 + estimate_size(item) for key, item in value.items())
    return 0
