"""
Maps OpenAPI schema objects to the annotations used for tool arguments in
the generated server.

Only the declared ``type`` (and ``items.type`` for arrays) is consulted.
Anything richer, such as ``enum``, ``format``, object properties or a
``$ref`` inside ``items``, collapses to ``Any``.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional


class Primitive(Enum):
    STRING = "string"
    NUMBER = "number"
    INTEGER = "integer"
    BOOLEAN = "boolean"
    ARRAY = "array"
    UNKNOWN = "unknown"


# Types that are allowed as array items. Nested arrays are not.
_SCALARS = {
    "string": Primitive.STRING,
    "number": Primitive.NUMBER,
    "integer": Primitive.INTEGER,
    "boolean": Primitive.BOOLEAN,
}

_ANNOTATIONS = {
    Primitive.STRING: "str",
    Primitive.NUMBER: "float",
    Primitive.INTEGER: "int",
    Primitive.BOOLEAN: "bool",
    Primitive.UNKNOWN: "Any",
}


@dataclass(frozen=True)
class SchemaKind:
    primitive: Primitive
    items: Optional["SchemaKind"] = None


STRING = SchemaKind(Primitive.STRING)
UNKNOWN = SchemaKind(Primitive.UNKNOWN)


def _declared_type(schema: Any) -> Optional[str]:
    if not isinstance(schema, dict):
        return None
    declared = schema.get("type")
    return declared if isinstance(declared, str) else None


def schema_kind(schema: Any) -> SchemaKind:
    """Derives the SchemaKind of a schema object. Never raises."""
    declared = _declared_type(schema)
    if declared in _SCALARS:
        return SchemaKind(_SCALARS[declared])
    if declared == "array":
        item_type = _declared_type(schema.get("items"))
        items = SchemaKind(_SCALARS[item_type]) if item_type in _SCALARS else UNKNOWN
        return SchemaKind(Primitive.ARRAY, items=items)
    return UNKNOWN


def validation_expression(kind: SchemaKind) -> str:
    """Returns the bare (required form) annotation for ``kind``."""
    if kind.primitive == Primitive.ARRAY:
        inner = validation_expression(kind.items or UNKNOWN)
        return f"list[{inner}]"
    return _ANNOTATIONS[kind.primitive]


def optional(expression: str) -> str:
    """Applies the optional modifier to an annotation."""
    return f"Optional[{expression}]"
