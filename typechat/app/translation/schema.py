from __future__ import annotations

import dataclasses
import json
import types
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, Literal, Union, get_args, get_origin, get_type_hints
from uuid import UUID

from pydantic import BaseModel

_STRING_LIKE = (str, date, datetime, time, UUID, Decimal)
_SEQUENCE_ORIGINS = (list, set, frozenset, Sequence)
_MAPPING_ORIGINS = (dict, Mapping)


@dataclass(frozen=True)
class FieldDescriptor:
    name: str
    annotation: Any
    optional: bool


def is_shape(annotation: Any) -> bool:
    if not isinstance(annotation, type):
        return False
    if issubclass(annotation, (BaseModel, Enum)):
        return True
    return dataclasses.is_dataclass(annotation)


def field_descriptors(shape: type) -> list[FieldDescriptor]:
    """Declared fields of a dataclass or pydantic model, in declaration order."""
    if issubclass(shape, BaseModel):
        return [
            FieldDescriptor(
                name=info.alias or name,
                annotation=info.annotation,
                optional=not info.is_required(),
            )
            for name, info in shape.model_fields.items()
        ]

    if dataclasses.is_dataclass(shape):
        hints = get_type_hints(shape, include_extras=True)
        return [
            FieldDescriptor(
                name=item.name,
                annotation=hints.get(item.name, Any),
                optional=(
                    item.default is not dataclasses.MISSING
                    or item.default_factory is not dataclasses.MISSING
                ),
            )
            for item in dataclasses.fields(shape)
        ]

    raise TypeError(f"{shape!r} is not a dataclass or pydantic model")


def describe_schema(shape: type, max_depth: int = 4) -> str:
    """Render ``shape`` as TypeScript-style interface text for a prompt.

    Nested models and enums are defined inline, one level deeper, right after
    the first field that references them. A type is defined at most once, so
    self-referencing shapes terminate; definitions that would sit deeper than
    ``max_depth`` are left as bare name references.
    """
    if not is_shape(shape) or issubclass(shape, Enum):
        raise TypeError(f"{shape!r} is not a dataclass or pydantic model")

    writer = _SchemaWriter(max_depth=max_depth)
    return "\n".join(writer.definition(shape, depth=0))


def describe_type(annotation: Any) -> str:
    return _SchemaWriter(max_depth=0).type_text(annotation, [])


def _literal_text(value: Any) -> str:
    if isinstance(value, Enum):
        value = value.value
    return json.dumps(value)


class _SchemaWriter:
    def __init__(self, max_depth: int) -> None:
        self._max_depth = max(0, max_depth)
        self._visited: set[type] = set()

    def definition(self, shape: type, depth: int) -> list[str]:
        self._visited.add(shape)
        if issubclass(shape, Enum):
            members = " | ".join(_literal_text(member) for member in shape)
            return [f"export type {shape.__name__} = {members};"]

        lines = [f"export interface {shape.__name__} {{"]
        for descriptor in field_descriptors(shape):
            referenced: list[type] = []
            type_text = self.type_text(descriptor.annotation, referenced)
            marker = "?" if descriptor.optional else ""
            lines.append(f"  {descriptor.name}{marker}: {type_text};")

            for nested in referenced:
                if nested in self._visited or depth + 1 > self._max_depth:
                    continue
                lines.extend(f"  {line}" for line in self.definition(nested, depth + 1))
        lines.append("}")
        return lines

    def type_text(self, annotation: Any, referenced: list[type]) -> str:
        if annotation is Any:
            return "any"
        if annotation is None or annotation is type(None):
            return "null"

        origin = get_origin(annotation)
        args = get_args(annotation)

        if origin is Annotated:
            return self.type_text(args[0], referenced)
        if origin is Literal:
            return " | ".join(_literal_text(arg) for arg in args)
        if origin is Union or origin is types.UnionType:
            return " | ".join(self.type_text(arg, referenced) for arg in args)
        if origin is tuple:
            if len(args) == 2 and args[1] is Ellipsis:
                return self._array_text(args[0], referenced)
            if not args:
                return "any[]"
            items = ", ".join(self.type_text(arg, referenced) for arg in args)
            return f"[{items}]"
        if origin in _SEQUENCE_ORIGINS:
            return self._array_text(args[0] if args else Any, referenced)
        if origin in _MAPPING_ORIGINS:
            key_text = self.type_text(args[0], referenced) if args else "string"
            value_text = self.type_text(args[1], referenced) if len(args) > 1 else "any"
            return f"Record<{key_text}, {value_text}>"

        if annotation is bool:
            return "boolean"
        if annotation in (int, float):
            return "number"
        if annotation in _STRING_LIKE:
            return "string"
        if annotation in (list, set, frozenset, tuple):
            return "any[]"
        if annotation is dict:
            return "Record<string, any>"
        if is_shape(annotation):
            referenced.append(annotation)
            return annotation.__name__
        return "any"

    def _array_text(self, item: Any, referenced: list[type]) -> str:
        item_text = self.type_text(item, referenced)
        if " | " in item_text:
            return f"({item_text})[]"
        return f"{item_text}[]"
