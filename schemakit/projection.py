"""Type Projection

Derives static types from a schema: TypedDicts for type checkers and pydantic
models for interop (JSON Schema, OpenAPI, FastAPI bodies). Projections are
computed from the node itself, so every derived schema (partial, pick,
merge, ...) projects to a matching type without extra bookkeeping.

Type mapping:
- string -> str, number -> float, integer -> int, boolean -> bool
- date -> datetime.date (ISO strings validate to datetime, a date subclass)
- any -> Any; allowed values -> Literal[...]; allow_none -> T | None
- array -> list[T]; alternatives -> Union[...]
- optional fields -> NotRequired[T]; forbidden and stripped fields are omitted
"""
from __future__ import annotations

import keyword
from datetime import date, datetime
from typing import Annotated, Any, Literal, NotRequired, Optional, Required, TypedDict, Union

from pydantic import BaseModel, ConfigDict, Field, create_model

from schemakit.errors import SchemaDefinitionError
from schemakit.nodes import (
    AlternativesSchema,
    ArraySchema,
    FieldSpec,
    Forbidden,
    Kind,
    ObjectSchema,
    Primitive,
    SchemaNode,
    StripMarker,
)

PRIMITIVE_TYPES: dict[Kind, Any] = {
    Kind.STRING: str,
    Kind.NUMBER: float,
    Kind.INTEGER: int,
    Kind.BOOLEAN: bool,
    Kind.DATE: date,
    Kind.ANY: Any,
}

MODEL_PRIMITIVE_TYPES: dict[Kind, Any] = {**PRIMITIVE_TYPES, Kind.DATE: datetime}

MODEL_CONFIG = ConfigDict(regex_engine="python-re", populate_by_name=True, extra="ignore")


def _type_name(prefix: str, key: str) -> str:
    return prefix + "".join(part.capitalize() for part in key.replace("-", "_").split("_") if part)


def _union(types: list[Any]) -> Any:
    unique = list(dict.fromkeys(types))
    return unique[0] if len(unique) == 1 else Union[tuple(unique)]


def _literal_or(node: Primitive, base: Any) -> Any:
    allowed = node.constraints.allowed
    if allowed and all(isinstance(v, (str, int, bool)) or v is None for v in allowed): return Literal[allowed]
    return base


def _emitted(spec: FieldSpec) -> bool:
    return not isinstance(spec.schema, (Forbidden, StripMarker))


def _conditional_targets(spec: FieldSpec) -> list[SchemaNode] | None:
    """Schemas a conditional field may resolve to, or None when it can be unconstrained."""
    if not spec.conditional.has_fallback: return None
    return [t.schema if isinstance(t, FieldSpec) else t for t in spec.conditional.targets()
        if not isinstance(t.schema if isinstance(t, FieldSpec) else t, (Forbidden, StripMarker))]


# ============================================================================
# TypedDict
# ============================================================================

def _annotation(node: SchemaNode, name: str) -> Any:
    match node:
        case Primitive():
            base = _literal_or(node, PRIMITIVE_TYPES[node.kind])
            return Optional[base] if node.constraints.allow_none and base is not Any else base
        case ObjectSchema(): return to_typed_dict(node, name)
        case ArraySchema(): return list[_annotation(node.element, f"{name}Item")]
        case AlternativesSchema():
            return _union([_annotation(c, f"{name}Option{i}") for i, c in enumerate(node.options)])
    return Any


def _field_annotation(spec: FieldSpec, name: str) -> Any:
    if spec.conditional is None: return _annotation(spec.schema, name)
    if not (targets := _conditional_targets(spec)): return Any
    return _union([_annotation(t, name) for t in targets])


def to_typed_dict(schema: ObjectSchema, name: str = "Schema") -> type:
    """TypedDict mirroring the validated output of schema.

    Fields with a default are always present in the output, so they are Required.
    """
    if not isinstance(schema, ObjectSchema): raise SchemaDefinitionError("to_typed_dict() requires an object schema")
    annotations = {}
    for key, spec in schema.fields.items():
        if not _emitted(spec): continue
        annotation = _field_annotation(spec, _type_name(name, key))
        always_present = (spec.required or spec.has_default) and spec.conditional is None
        annotations[key] = Required[annotation] if always_present else NotRequired[annotation]
    return TypedDict(name, annotations)


# ============================================================================
# Pydantic Models
# ============================================================================

def _constraint_field(node: Primitive | ArraySchema) -> Any:
    """Field(...) carrying node-level constraints, or None when there are none."""
    kwargs: dict[str, Any] = {}
    match node:
        case ArraySchema():
            if node.min_items is not None: kwargs["min_length"] = node.min_items
            if node.max_items is not None: kwargs["max_length"] = node.max_items
        case Primitive(kind=Kind.STRING):
            c = node.constraints
            if c.min_length is not None: kwargs["min_length"] = c.min_length
            if c.max_length is not None: kwargs["max_length"] = c.max_length
            if c.pattern is not None: kwargs["pattern"] = c.pattern
            if c.format is not None: kwargs["json_schema_extra"] = {"format": c.format}
        case Primitive(kind=Kind.NUMBER | Kind.INTEGER):
            if node.constraints.minimum is not None: kwargs["ge"] = node.constraints.minimum
            if node.constraints.maximum is not None: kwargs["le"] = node.constraints.maximum
    return Field(**kwargs) if kwargs else None


def _model_annotation(node: SchemaNode, name: str) -> Any:
    match node:
        case Primitive():
            base = MODEL_PRIMITIVE_TYPES[node.kind]
            if (literal := _literal_or(node, None)) is not None: base = literal
            elif (constraints := _constraint_field(node)) is not None: base = Annotated[base, constraints]
            return Optional[base] if node.constraints.allow_none and base is not Any else base
        case ObjectSchema(): return to_model(node, name)
        case ArraySchema():
            base = list[_model_annotation(node.element, f"{name}Item")]
            return Annotated[base, constraints] if (constraints := _constraint_field(node)) is not None else base
        case AlternativesSchema():
            return _union([_model_annotation(c, f"{name}Option{i}") for i, c in enumerate(node.options)])
    return Any


def _model_field(spec: FieldSpec, name: str, alias: str | None) -> tuple[Any, Any]:
    if spec.conditional is None: annotation = _model_annotation(spec.schema, name)
    elif targets := _conditional_targets(spec): annotation = _union([_model_annotation(t, name) for t in targets])
    else: annotation = Any

    kwargs: dict[str, Any] = {}
    if alias is not None: kwargs["alias"] = alias
    if spec.description: kwargs["description"] = spec.description
    if examples := list(spec.examples) or list(spec.schema.meta.get("examples", ())): kwargs["examples"] = examples
    extra = {}
    if spec.redacted: extra["x-sensitive"] = True
    if spec.translation_key: extra["x-translation-key"] = spec.translation_key
    if extra: kwargs["json_schema_extra"] = extra

    if spec.dynamic_default: return annotation, Field(default_factory=spec.default, **kwargs)
    if spec.has_default: return annotation, Field(default=spec.default, **kwargs)
    if spec.required and spec.conditional is None: return annotation, Field(..., **kwargs)
    return annotation, Field(default=None, **kwargs)


def to_model(schema: ObjectSchema, name: str = "Schema") -> type[BaseModel]:
    """Pydantic model with the schema's fields, constraints and descriptions.

    Keys that are not valid Python identifiers are exposed through aliases.
    """
    if not isinstance(schema, ObjectSchema): raise SchemaDefinitionError("to_model() requires an object schema")
    definitions: dict[str, Any] = {}
    for index, (key, spec) in enumerate(schema.fields.items()):
        if not _emitted(spec): continue
        unsafe = not key.isidentifier() or keyword.iskeyword(key) or key.startswith("_") or hasattr(BaseModel, key)
        definitions[f"field_{index}" if unsafe else key] = _model_field(spec, _type_name(name, key), key if unsafe else None)
    model = create_model(name, __config__=MODEL_CONFIG, **definitions)
    if description := schema.get_meta("description"): model.__doc__ = description
    return model


def annotation_for(schema: SchemaNode, name: str = "Schema") -> Any:
    """Pydantic-compatible annotation for any schema node."""
    return _model_annotation(schema, name)
