"""Structural Transformer

Pure functions deriving a new schema from an existing one. Inputs are never
mutated and untouched fields keep their order.

Merge policy: on a key collision the second argument wins. The colliding key
keeps its position from the first schema; new keys are appended in the order
of the second.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Callable, Iterable, Mapping

from schemakit.config import get_settings
from schemakit.errors import SchemaDefinitionError
from schemakit.nodes import (
    AlternativesSchema,
    ArraySchema,
    FieldSpec,
    Forbidden,
    Kind,
    ObjectSchema,
    SchemaNode,
    StripMarker,
)

FieldPredicate = Callable[[FieldSpec, str], bool]


# ============================================================================
# Helpers
# ============================================================================

def _require_object(schema: Any, operation: str) -> ObjectSchema:
    if not isinstance(schema, ObjectSchema):
        kind = schema.kind.value if isinstance(schema, SchemaNode) else type(schema).__name__
        raise SchemaDefinitionError(f"{operation}() requires an object schema, got {kind}")
    return schema


def _key_set(keys: Iterable[str] | str) -> set[str]:
    return {keys} if isinstance(keys, str) else set(keys)


def _with_fields(schema: ObjectSchema, fields: Mapping[str, FieldSpec]) -> ObjectSchema:
    rules = tuple(r for rule in schema.rules if (r := rule.narrowed(fields)) is not None)
    return replace(schema, fields=fields, rules=rules)


def replace_field(schema: ObjectSchema, name: str, operation: str, **changes: Any) -> ObjectSchema:
    """Copy of schema with one existing field's FieldSpec updated."""
    schema = _require_object(schema, operation)
    if name not in schema.fields: raise SchemaDefinitionError(f"{operation}(): unknown field '{name}'")
    return replace(schema, fields={**schema.fields, name: replace(schema.fields[name], **changes)})


# ============================================================================
# Presence
# ============================================================================

def _relax_target(target: SchemaNode | FieldSpec | None, deep: bool) -> SchemaNode | FieldSpec | None:
    if isinstance(target, FieldSpec): return _relax(target, deep)
    if deep and isinstance(target, SchemaNode): return _deep(target)
    return target


def _relax(spec: FieldSpec, deep: bool = False) -> FieldSpec:
    changes: dict[str, Any] = {}
    if spec.required: changes["required"] = False
    if deep and (schema := _deep(spec.schema)) is not spec.schema: changes["schema"] = schema
    if spec.conditional is not None:
        branches = tuple(replace(b, then=_relax_target(b.then, deep), otherwise=_relax_target(b.otherwise, deep))
            for b in spec.conditional.branches)
        if branches != spec.conditional.branches: changes["conditional"] = replace(spec.conditional, branches=branches)
    return replace(spec, **changes) if changes else spec


def _deep(node: SchemaNode) -> SchemaNode:
    match node:
        case ObjectSchema():
            return replace(node, fields={k: _relax(spec, deep=True) for k, spec in node.fields.items()})
        case ArraySchema():
            return replace(node, element=_deep(node.element))
        case AlternativesSchema():
            mapping = {k: _deep(v) for k, v in node.mapping.items()} if node.mapping is not None else None
            return replace(node, candidates=tuple(_deep(c) for c in node.candidates), mapping=mapping)
        case _:
            return node


def partial(schema: ObjectSchema) -> ObjectSchema:
    """Every top-level field optional, including fields required by a conditional branch. Nested schemas untouched."""
    schema = _require_object(schema, "partial")
    return replace(schema, fields={k: _relax(spec) for k, spec in schema.fields.items()})


def deep_partial(schema: SchemaNode) -> SchemaNode:
    """Fields optional at every depth: nested objects, array elements, alternatives, conditional branches.

    An array of objects stays an array, of partial objects.
    """
    return _deep(schema)


def require_all(schema: ObjectSchema) -> ObjectSchema:
    """Every top-level field required, except forbidden, stripped and conditional fields."""
    schema = _require_object(schema, "require_all")
    return replace(schema, fields={
        k: spec if spec.required or spec.conditional or isinstance(spec.schema, (Forbidden, StripMarker))
        else replace(spec, required=True)
        for k, spec in schema.fields.items()
    })


# ============================================================================
# Selection
# ============================================================================

def pick(schema: ObjectSchema, keys: Iterable[str] | str) -> ObjectSchema:
    """Keep the named fields, in schema order. Unknown keys are ignored."""
    schema, wanted = _require_object(schema, "pick"), _key_set(keys)
    return _with_fields(schema, {k: spec for k, spec in schema.fields.items() if k in wanted})


def omit(schema: ObjectSchema, keys: Iterable[str] | str) -> ObjectSchema:
    """Drop the named fields. Unknown keys are ignored."""
    schema, unwanted = _require_object(schema, "omit"), _key_set(keys)
    return _with_fields(schema, {k: spec for k, spec in schema.fields.items() if k not in unwanted})


def pick_by(schema: ObjectSchema, predicate: FieldPredicate) -> ObjectSchema:
    schema = _require_object(schema, "pick_by")
    return _with_fields(schema, {k: spec for k, spec in schema.fields.items() if predicate(spec, k)})


def omit_by(schema: ObjectSchema, predicate: FieldPredicate) -> ObjectSchema:
    schema = _require_object(schema, "omit_by")
    return _with_fields(schema, {k: spec for k, spec in schema.fields.items() if not predicate(spec, k)})


def pick_by_type(schema: ObjectSchema, kind: Kind | str) -> ObjectSchema:
    """Keep fields whose schema kind matches ("string", "object", "array", ...)."""
    try: kind = Kind(kind)
    except ValueError: raise SchemaDefinitionError(f"Unknown schema kind '{kind}'") from None
    return pick_by(schema, lambda spec, _: spec.schema.kind is kind)


# ============================================================================
# Combination
# ============================================================================

def merge(a: ObjectSchema, b: ObjectSchema) -> ObjectSchema:
    """Union of fields; b wins on collisions. Rules are concatenated, b's unknown policy and metadata override a's."""
    a, b = _require_object(a, "merge"), _require_object(b, "merge")
    return ObjectSchema({**a.fields, **b.fields}, rules=(*a.rules, *(r for r in b.rules if r not in a.rules)),
        unknown=b.unknown if b.unknown is not None else a.unknown, meta={**a.meta, **b.meta})


def extend_with(schema: ObjectSchema, extra_fields: Mapping[str, FieldSpec | SchemaNode] | ObjectSchema) -> ObjectSchema:
    """Add or override fields; extra fields win on collisions."""
    return merge(schema, extra_fields if isinstance(extra_fields, ObjectSchema) else ObjectSchema(extra_fields))


def extend_with_defaults(schema: ObjectSchema, defaults: Mapping[str, Any]) -> ObjectSchema:
    """Attach defaults to existing fields. Keys the schema does not declare are ignored."""
    schema = _require_object(schema, "extend_with_defaults")
    return replace(schema, fields={
        k: replace(spec, default=defaults[k]) if k in defaults else spec for k, spec in schema.fields.items()
    })


# ============================================================================
# Field Metadata
# ============================================================================

def with_translation_key(schema: ObjectSchema, name: str, key: str) -> ObjectSchema:
    """Issues at this field carry key so the formatting boundary can localize them."""
    return replace_field(schema, name, "with_translation_key", translation_key=key)


def with_custom_validator(schema: ObjectSchema, name: str, fn: Callable[[Any], Any], message: str | None = None) -> ObjectSchema:
    """Run fn on the field's validated value. A raised exception fails the field; message replaces its text."""
    return replace_field(schema, name, "with_custom_validator", custom_validator=fn, custom_message=message)


def with_meta(schema: SchemaNode, key: str, value: Any) -> SchemaNode: return schema.with_meta(key, value)


def get_meta(schema: SchemaNode, key: str, default: Any = None) -> Any: return schema.get_meta(key, default)


def with_version(schema: SchemaNode, tag: str) -> SchemaNode: return schema.with_version(tag)


def get_version(schema: SchemaNode) -> str | None: return schema.get_version()


def with_example(schema: SchemaNode, example: Any) -> SchemaNode: return schema.with_example(example)


# ============================================================================
# Output Shaping
# ============================================================================

@dataclass(frozen=True, slots=True)
class Redactor:
    """Replaces the values of named keys in an already-validated object. Validation is unaffected."""
    schema: ObjectSchema
    keys: frozenset[str]
    marker: str

    def __call__(self, value: Mapping[str, Any]) -> dict[str, Any]:
        if not isinstance(value, Mapping): raise TypeError(f"Expected a mapping, got {type(value).__name__}")
        return {k: self.marker if k in self.keys else v for k, v in value.items()}

    def validate(self, value: Any, **options: Any) -> dict[str, Any]:
        """Validate against the bound schema, then redact."""
        from schemakit.validator import validate
        return self(validate(self.schema, value, **options))


@dataclass(frozen=True, slots=True)
class Omitter:
    """Removes named keys from an already-validated object."""
    schema: ObjectSchema
    keys: frozenset[str]

    def __call__(self, value: Mapping[str, Any]) -> dict[str, Any]:
        if not isinstance(value, Mapping): raise TypeError(f"Expected a mapping, got {type(value).__name__}")
        return {k: v for k, v in value.items() if k not in self.keys}

    def validate(self, value: Any, **options: Any) -> dict[str, Any]:
        from schemakit.validator import validate
        return self(validate(self.schema, value, **options))


def with_redacted_fields(schema: ObjectSchema, keys: Iterable[str] | str | None = None, marker: str | None = None) -> Redactor:
    """Redactor bound to schema. Without keys, fields declared with `redacted=True` are masked."""
    schema = _require_object(schema, "with_redacted_fields")
    if keys is None: keys = [k for k, spec in schema.fields.items() if spec.redacted]
    return Redactor(schema, frozenset(_key_set(keys)), marker if marker is not None else get_settings().REDACTION_MARKER)


def with_omitted_fields(schema: ObjectSchema, keys: Iterable[str] | str) -> Omitter:
    return Omitter(_require_object(schema, "with_omitted_fields"), frozenset(_key_set(keys)))
