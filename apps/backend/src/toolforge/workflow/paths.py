"""Field-accessor paths used by data mappings.

Supported syntax is deliberately small: dotted names with optional array
indices, e.g. ``items[0].id`` or ``data.rows[2][1]``. Anything else is a
syntax error rather than a silent no-op.
"""

from __future__ import annotations

import re
from typing import Any, Union

Segment = Union[str, int]

_NAME = re.compile(r"[A-Za-z_][A-Za-z0-9_\-]*")
_INDEX = re.compile(r"\[(\d+)\]")


class PathSyntaxError(ValueError):
    """Raised for path expressions outside the supported syntax."""


class SchemaPathError(ValueError):
    """Raised when a path component is not declared in a schema."""

    def __init__(self, message: str, segment: Segment):
        self.segment = segment
        super().__init__(message)


def parse_path(expression: str) -> list[Segment]:
    """Split ``a.b[0].c`` into ``["a", "b", 0, "c"]``."""
    if not expression:
        raise PathSyntaxError("Empty path")

    segments: list[Segment] = []
    pos = 0
    while True:
        match = _NAME.match(expression, pos)
        if match is None:
            raise PathSyntaxError(f"Expected a field name at position {pos} in '{expression}'")
        segments.append(match.group(0))
        pos = match.end()

        while True:
            index = _INDEX.match(expression, pos)
            if index is None:
                break
            segments.append(int(index.group(1)))
            pos = index.end()

        if pos == len(expression):
            return segments
        if expression[pos] != ".":
            raise PathSyntaxError(
                f"Unsupported syntax '{expression[pos]}' at position {pos} in '{expression}'"
            )
        pos += 1


def format_path(segments: list[Segment]) -> str:
    out = ""
    for seg in segments:
        if isinstance(seg, int):
            out += f"[{seg}]"
        else:
            out += f".{seg}" if out else seg
    return out


def schema_types(schema: dict[str, Any]) -> set[str] | None:
    """Declared JSON types of a schema, or None when untyped."""
    declared = schema.get("type")
    if declared is None:
        return None
    types = {declared} if isinstance(declared, str) else set(declared)
    if schema.get("nullable"):
        types.add("null")
    return types


def resolve_schema(schema: dict[str, Any], segments: list[Segment]) -> dict[str, Any]:
    """Walk a JSON-Schema shape along ``segments`` and return the sub-schema.

    Only declared structure counts: a name must be a declared property of an
    object schema, an index must address an array schema with ``items``.
    """
    current = schema
    for seg in segments:
        types = schema_types(current) or set()
        if isinstance(seg, int):
            if "array" not in types or not isinstance(current.get("items"), dict):
                raise SchemaPathError(f"[{seg}] indexes a value that is not a declared array", seg)
            current = current["items"]
        else:
            properties = current.get("properties")
            if not isinstance(properties, dict) or seg not in properties:
                raise SchemaPathError(f"'{seg}' is not a declared field", seg)
            current = properties[seg]
    return current


def types_compatible(source: dict[str, Any], target: dict[str, Any]) -> bool:
    """True when every value allowed by ``source`` is allowed by ``target``.

    Partial matches such as a nullable source feeding a non-nullable target
    are rejected; an untyped source only fits an untyped target.
    """
    target_types = schema_types(target)
    if target_types is None:
        return True
    source_types = schema_types(source)
    if source_types is None:
        return False

    accepted = set(target_types)
    if "number" in accepted:
        accepted.add("integer")
    if not source_types <= accepted:
        return False

    if "array" in source_types and isinstance(target.get("items"), dict):
        source_items = source.get("items")
        if not isinstance(source_items, dict):
            return False
        return types_compatible(source_items, target["items"])
    return True
