"""Structural snapshot comparison.

Decides whether a freshly fetched snapshot differs from the cached one.
Pure functions, no I/O.
"""

from collections.abc import Mapping
from collections.abc import Sequence
from typing import Any
from typing import TypeVar

from pydantic import BaseModel

S = TypeVar("S")


def _normalize(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump()
    return value


def deep_equal(first: Any, second: Any) -> bool:
    """Compare two snapshot values structurally.

    Sequences compare element-wise in order, mappings key-by-key and
    pydantic models field-by-field (extra fields included). Strings and
    bytes are compared as scalars.

    Args:
        first: Previous value
        second: New value

    Returns:
        True if both values are structurally equal

    Example:
        >>> deep_equal([{"id": "a"}], [{"id": "a"}])
        True
        >>> deep_equal(["a", "b"], ["b", "a"])
        False
    """
    if first is second:
        return True

    first = _normalize(first)
    second = _normalize(second)

    if first is None or second is None:
        return first is second

    if isinstance(first, Mapping) and isinstance(second, Mapping):
        if len(first) != len(second):
            return False
        for key, value in first.items():
            if key not in second:
                return False
            if not deep_equal(value, second[key]):
                return False
        return True

    if _is_sequence(first) and _is_sequence(second):
        if len(first) != len(second):
            return False
        return all(deep_equal(a, b) for a, b in zip(first, second, strict=True))

    if isinstance(first, Mapping) or isinstance(second, Mapping):
        return False
    if _is_sequence(first) or _is_sequence(second):
        return False

    return bool(first == second)


def has_changed(previous: S | None, current: S | None) -> bool:
    """Check whether a new snapshot should replace the cached one."""
    return not deep_equal(previous, current)


def _is_sequence(value: Any) -> bool:
    return isinstance(value, Sequence) and not isinstance(value, str | bytes | bytearray)
