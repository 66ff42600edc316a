"""Schema combinators.

    from schemakit import obj, string, number, array

    user = obj({
        "name": string().min(1).required(),
        "email": string().email().required().with_translation_key("errors.email"),
        "age": number().integer().min(0),
        "tags": array(string()).max(10),
    })
"""
from __future__ import annotations

from typing import Any, Callable, Iterable, Mapping

from schemakit.constraints import ObjectRule
from schemakit.nodes import (
    UNDEFINED,
    AlternativesSchema,
    ArraySchema,
    ConditionalRule,
    Constraints,
    FieldSpec,
    Forbidden,
    Kind,
    ObjectSchema,
    Primitive,
    SchemaNode,
    StripMarker,
    UnknownKeys,
)


def primitive(kind: Kind | str, **constraints: Any) -> Primitive:
    """Primitive of the given kind; raises SchemaDefinitionError for unknown kinds or constraints."""
    return Primitive(kind, Constraints(**constraints))


def string() -> Primitive: return Primitive(Kind.STRING)


def number() -> Primitive: return Primitive(Kind.NUMBER)


def integer() -> Primitive: return Primitive(Kind.INTEGER)


def boolean() -> Primitive: return Primitive(Kind.BOOLEAN)


def date() -> Primitive: return Primitive(Kind.DATE)


def any_() -> Primitive: return Primitive(Kind.ANY)


def obj(
    fields: Mapping[str, FieldSpec | SchemaNode] | None = None,
    *,
    rules: Iterable[ObjectRule] = (),
    unknown: UnknownKeys | None = None,
    meta: Mapping[str, Any] | None = None,
) -> ObjectSchema:
    schema = ObjectSchema(fields or {}, unknown=unknown, meta=meta or {})
    return schema.with_rules(*rules) if rules else schema


def array(element: SchemaNode, *, min_items: int | None = None, max_items: int | None = None) -> ArraySchema:
    return ArraySchema(element, min_items=min_items, max_items=max_items)


def alternatives(
    *candidates: SchemaNode,
    discriminator: str | None = None,
    mapping: Mapping[Any, SchemaNode] | None = None,
) -> AlternativesSchema:
    return AlternativesSchema(candidates, discriminator=discriminator, mapping=mapping)


def forbidden() -> Forbidden: return Forbidden()


def strip_field() -> StripMarker: return StripMarker()


def field(
    schema: SchemaNode,
    *,
    required: bool = False,
    default: Any = UNDEFINED,
    redacted: bool = False,
    translation_key: str | None = None,
    conditional: ConditionalRule | None = None,
    custom_validator: Callable[[Any], Any] | None = None,
    custom_message: str | None = None,
    description: str | None = None,
    examples: Iterable[Any] = (),
) -> FieldSpec:
    """FieldSpec with every option spelled out as keywords."""
    return FieldSpec(schema, required=required, default=default, redacted=redacted, translation_key=translation_key,
        conditional=conditional, custom_validator=custom_validator, custom_message=custom_message,
        description=description, examples=tuple(examples))
