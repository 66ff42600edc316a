"""Schema Analyzer

Read-only introspection over schema trees: structural description, diffs
between versions, dependency graphs, field presence and deterministic
example values for documentation.
"""
from __future__ import annotations

import copy
import math
from dataclasses import dataclass, field, replace
from datetime import date, datetime, time
from enum import Enum
from typing import Any

from schemakit.checks import Check, failures
from schemakit.constraints import RuleKind
from schemakit.errors import SchemaDefinitionError
from schemakit.nodes import (
    UNDEFINED,
    AlternativesSchema,
    ArraySchema,
    Branch,
    FieldSpec,
    Forbidden,
    Kind,
    ObjectSchema,
    Primitive,
    SchemaNode,
    StripMarker,
)

EXAMPLE_DATE = datetime(2024, 1, 15, 10, 30)
EXAMPLE_UUID = "550e8400-e29b-41d4-a716-446655440000"

FORMAT_EXAMPLES = {
    "email": "user@example.com",
    "uuid": EXAMPLE_UUID,
    "uri": "https://example.com",
}

STRING_CANDIDATES = ("example", *FORMAT_EXAMPLES.values(), "example123", "EXAMPLE", "12345", "a")
EXAMPLE_SEARCH_LIMIT = 2000


class Presence(str, Enum):
    REQUIRED = "required"
    OPTIONAL = "optional"
    CONDITIONAL = "conditional"
    FORBIDDEN = "forbidden"


def presence_of(spec: FieldSpec) -> Presence:
    if isinstance(spec.schema, Forbidden): return Presence.FORBIDDEN
    if spec.conditional is not None: return Presence.CONDITIONAL
    return Presence.REQUIRED if spec.required else Presence.OPTIONAL


# ============================================================================
# Description
# ============================================================================

def _jsonable(value: Any) -> Any:
    if isinstance(value, (datetime, date)): return value.isoformat()
    if isinstance(value, Enum): return value.value
    if isinstance(value, (list, tuple)): return [_jsonable(v) for v in value]
    if isinstance(value, dict): return {str(k): _jsonable(v) for k, v in value.items()}
    return value


def _describe_target(target: SchemaNode | FieldSpec | None, include_meta: bool) -> dict[str, Any] | None:
    if target is None: return None
    if isinstance(target, FieldSpec): return _describe_field(target, include_meta)
    return _describe(target, include_meta)


def _describe_branch(branch: Branch, include_meta: bool) -> dict[str, Any]:
    result: dict[str, Any] = {}
    if branch.is_ is not UNDEFINED:
        result["is"] = "<predicate>" if callable(branch.is_) else _jsonable(branch.is_)
    if branch.then is not None: result["then"] = _describe_target(branch.then, include_meta)
    if branch.otherwise is not None: result["otherwise"] = _describe_target(branch.otherwise, include_meta)
    return result


def _describe_field(spec: FieldSpec, include_meta: bool) -> dict[str, Any]:
    result = {**_describe(spec.schema, include_meta), "presence": presence_of(spec).value}
    if spec.has_default:
        if spec.dynamic_default: result["dynamic_default"] = True
        else: result["default"] = _jsonable(spec.default)
    if spec.redacted: result["redacted"] = True
    if spec.translation_key: result["translation_key"] = spec.translation_key
    if spec.custom_validator is not None: result["custom_validator"] = True
    if spec.description: result["description"] = spec.description
    if spec.examples: result["examples"] = _jsonable(spec.examples)
    if spec.conditional is not None:
        result["depends_on"] = spec.conditional.depends_on
        result["branches"] = [_describe_branch(b, include_meta) for b in spec.conditional.branches]
    return result


def _describe(node: SchemaNode, include_meta: bool = True) -> dict[str, Any]:
    result: dict[str, Any] = {"type": node.kind.value}
    match node:
        case Primitive():
            c = node.constraints
            for name in ("min_length", "max_length", "minimum", "maximum", "pattern", "format"):
                if (value := getattr(c, name)) is not None: result[name] = _jsonable(value)
            if c.allowed is not None: result["allowed"] = _jsonable(c.allowed)
            if c.allow_none: result["allow_none"] = True
            if node.extra_checks: result["checks"] = [check.constraint_name for check in node.extra_checks]
        case ObjectSchema():
            if node.unknown is not None: result["unknown"] = node.unknown
            result["fields"] = {k: _describe_field(spec, include_meta) for k, spec in node.fields.items()}
            if node.rules: result["rules"] = [{"kind": r.kind.value, "fields": list(r.fields)} for r in node.rules]
        case ArraySchema():
            result["items"] = _describe(node.element, include_meta)
            if node.min_items is not None: result["min_items"] = node.min_items
            if node.max_items is not None: result["max_items"] = node.max_items
        case AlternativesSchema():
            result["candidates"] = [_describe(c, include_meta) for c in node.candidates]
            if node.discriminator is not None:
                result["discriminator"] = node.discriminator
                result["mapping"] = {str(k): _describe(v, include_meta) for k, v in node.mapping.items()}
    if include_meta and node.meta: result["meta"] = _jsonable(dict(node.meta))
    return result


def describe(schema: SchemaNode | FieldSpec) -> dict[str, Any]:
    """JSON-compatible structural description of a schema."""
    return _describe_target(schema, include_meta=True)


# ============================================================================
# Diff
# ============================================================================

@dataclass(frozen=True, slots=True)
class SchemaDiff:
    """Field-level differences between two object schemas.

    - added: keys only in the new schema (new schema order)
    - removed: keys only in the old schema (old schema order)
    - changed: keys in both whose kind, constraints or presence differ (old schema order)
    """
    added: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)
    changed: list[str] = field(default_factory=list)
    old_version: str | None = None
    new_version: str | None = None

    @property
    def has_changes(self) -> bool: return bool(self.added or self.removed or self.changed)

    def to_dict(self) -> dict[str, Any]:
        return {"added": list(self.added), "removed": list(self.removed), "changed": list(self.changed),
            "old_version": self.old_version, "new_version": self.new_version}


def diff(a: ObjectSchema, b: ObjectSchema) -> SchemaDiff:
    """Compare two object schemas structurally. Metadata (versions, examples) does not count as a change."""
    for schema in (a, b):
        if not isinstance(schema, ObjectSchema): raise SchemaDefinitionError("diff() compares object schemas")
    return SchemaDiff(
        added=[k for k in b.fields if k not in a.fields],
        removed=[k for k in a.fields if k not in b.fields],
        changed=[k for k, spec in a.fields.items()
            if k in b.fields and _signature(spec) != _signature(b.fields[k])],
        old_version=a.get_version(),
        new_version=b.get_version(),
    )


def _signature(spec: FieldSpec) -> dict[str, Any]:
    return {"schema": _describe(spec.schema, include_meta=False), "presence": presence_of(spec).value}


# ============================================================================
# Dependencies and Presence
# ============================================================================

def get_dependency_graph(schema: ObjectSchema) -> dict[str, set[str]]:
    """Field -> fields it depends on, through conditionals and shared object-level rules."""
    if not isinstance(schema, ObjectSchema): raise SchemaDefinitionError("get_dependency_graph() requires an object schema")
    graph: dict[str, set[str]] = {name: set() for name in schema.fields}
    for name, spec in schema.fields.items():
        if spec.conditional is not None: graph[name].add(spec.conditional.depends_on)
    for rule in schema.rules:
        for name in rule.fields: graph[name].update(f for f in rule.fields if f != name)
    return {name: deps for name, deps in graph.items() if deps}


def get_field_presence(schema: ObjectSchema) -> dict[str, Presence]:
    if not isinstance(schema, ObjectSchema): raise SchemaDefinitionError("get_field_presence() requires an object schema")
    return {name: presence_of(spec) for name, spec in schema.fields.items()}


# ============================================================================
# Examples
# ============================================================================

def _as_datetime(bound: date) -> datetime:
    return bound if isinstance(bound, datetime) else datetime.combine(bound, time())


def _number_example(node: Primitive) -> int | float:
    c, value = node.constraints, 42
    if c.minimum is not None and value < c.minimum: value = c.minimum
    if c.maximum is not None and value > c.maximum: value = c.maximum
    if node.kind is Kind.INTEGER and value != int(value):
        value = math.ceil(value) if c.maximum is None or math.ceil(value) <= c.maximum else math.floor(value)
    return int(value) if node.kind is Kind.INTEGER else value


def _fit_length(text: str, min_length: int | None, max_length: int | None) -> str:
    if min_length is not None and len(text) < min_length: text = text + "x" * (min_length - len(text))
    if max_length is not None and len(text) > max_length: text = text[:max_length]
    return text


def _search_string(node: Primitive, checks: list[Check]) -> str:
    """Smallest string passing every check, found by hypothesis search and shrinking."""
    from hypothesis import HealthCheck, find, settings, strategies as st
    from hypothesis.errors import HypothesisException

    c = node.constraints
    strategy = st.from_regex(c.pattern) if c.pattern is not None else st.text(min_size=c.min_length or 0,
        max_size=c.max_length)
    try:
        return find(strategy, lambda text: not failures(checks, text), settings=settings(
            database=None, derandomize=True, max_examples=EXAMPLE_SEARCH_LIMIT, suppress_health_check=list(HealthCheck)))
    except HypothesisException as e:
        raise SchemaDefinitionError(f"No example satisfies string constraints {[ch.constraint_name for ch in checks]}") from e


def _string_example(node: Primitive) -> str:
    c = node.constraints
    preferred = FORMAT_EXAMPLES.get(c.format, "example")
    candidates = [_fit_length(text, c.min_length, c.max_length) for text in (preferred, *STRING_CANDIDATES)]
    checks = node.checks()
    if (text := next((t for t in candidates if not failures(checks, t)), None)) is not None: return text
    return _search_string(node, checks)


def _primitive_example(node: Primitive) -> Any:
    c = node.constraints
    if c.allowed: return copy.deepcopy(c.allowed[0])
    match node.kind:
        case Kind.STRING: return _string_example(node)
        case Kind.NUMBER | Kind.INTEGER: return _number_example(node)
        case Kind.BOOLEAN: return True
        case Kind.DATE:
            value = EXAMPLE_DATE
            if c.minimum is not None and value < _as_datetime(c.minimum): value = _as_datetime(c.minimum)
            if c.maximum is not None and value > _as_datetime(c.maximum): value = _as_datetime(c.maximum)
            return value
    return "example"


def _field_example(spec: FieldSpec, siblings: dict[str, Any]) -> Any:
    if spec.conditional is not None:
        if (resolved := spec.conditional.resolve(spec, siblings.get(spec.conditional.depends_on, UNDEFINED))) is None:
            return UNDEFINED
        spec = resolved
    if isinstance(spec.schema, (Forbidden, StripMarker)): return UNDEFINED
    if spec.has_default and not spec.dynamic_default: return copy.deepcopy(spec.default)
    if spec.examples: return copy.deepcopy(spec.examples[0])
    return _example(spec.schema)


def _object_example(node: ObjectSchema) -> dict[str, Any]:
    result: dict[str, Any] = {}
    for name, spec in node.fields.items():
        if (value := _field_example(spec, result)) is not UNDEFINED: result[name] = value
    for rule in node.rules:
        present = [f for f in rule.fields if f in result]
        if rule.kind is RuleKind.MUTUALLY_EXCLUSIVE:
            for name in present[1:]: result.pop(name)
        elif not present:
            for name in rule.fields:
                spec = replace(node.fields[name], conditional=None)
                if (value := _field_example(spec, result)) is not UNDEFINED:
                    result[name] = value
                    break
    return result


def _example(node: SchemaNode) -> Any:
    if examples := node.meta.get("examples"): return copy.deepcopy(examples[0])
    match node:
        case Primitive(): return _primitive_example(node)
        case ObjectSchema(): return _object_example(node)
        case ArraySchema():
            if isinstance(node.element, (Forbidden, StripMarker)) or node.max_items == 0: return []
            return [_example(node.element) for _ in range(max(1, node.min_items or 0))]
        case AlternativesSchema():
            if node.discriminator is None: return _example(node.options[0])
            key, candidate = next(iter(node.mapping.items()))
            value = _example(candidate)
            if isinstance(value, dict): value[node.discriminator] = key
            return value
    return None


def generate_example(schema: SchemaNode | FieldSpec) -> Any:
    """Deterministic example value satisfying the schema's constraints.

    Priority per field: static default, declared example, first allowed value,
    then a representative value honouring length, range and format. Strings no
    fixed candidate satisfies are searched for with hypothesis; when none exists
    SchemaDefinitionError is raised.
    """
    if isinstance(schema, FieldSpec): return _field_example(schema, {})
    return _example(schema)


def describe_with_examples(schema: SchemaNode) -> dict[str, Any]:
    return {"description": describe(schema), "example": generate_example(schema)}
