"""
MIT License
Copyright (c) 2026 socioy
See LICENSE file for full license text.

JSON-safe value aliases shared across pollagent layers.
"""

from __future__ import annotations

from typing import Any, TypeAlias

JSONPrimitive: TypeAlias = str | int | float | bool | None
JSONValue: TypeAlias = JSONPrimitive | list["JSONValue"] | dict[str, "JSONValue"]
JSONObject: TypeAlias = dict[str, JSONValue]


def to_json_value(value: Any) -> JSONValue:
    """
    Best-effort conversion of arbitrary payloads to JSON-safe values.

    Unsupported objects are stringified with `repr(...)`.
    """
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, (list, tuple)):
        return [to_json_value(v) for v in value]
    if isinstance(value, dict):
        return {str(k): to_json_value(v) for k, v in value.items()}
    model_dump = getattr(value, "model_dump", None)
    if callable(model_dump):
        return to_json_value(model_dump())
    return repr(value)
