"""Cross-field Constraint Combinators

Conditional requirement and conditional schemas are FieldSpec metadata
(ConditionalRule). Mutual exclusion and at-least-one-of are object-level rules
that run after every field of the object has validated.

Usage:
    schema = obj({
        "status": string().valid("active", "inactive"),
        "reason": require_if(string(), "status", "inactive"),
        "email": string().email(),
        "phone": string(),
    }).with_rules(at_least_one_of(["email", "phone"]))
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Callable, Iterable, Mapping

from schemakit.errors import ErrorKind, Path, SchemaDefinitionError, ValidationIssue
from schemakit.nodes import (
    UNDEFINED,
    Branch,
    ConditionalRule,
    FieldSpec,
    Kind,
    ObjectSchema,
    Primitive,
    SchemaNode,
    as_field,
)
from schemakit.transform import replace_field


class RuleKind(str, Enum):
    MUTUALLY_EXCLUSIVE = "mutually_exclusive"
    AT_LEAST_ONE = "at_least_one"


@dataclass(frozen=True, slots=True)
class ObjectRule:
    """Object-level post-validator over a set of sibling fields.

    Calling a rule with an ObjectSchema attaches it: `mutually_exclusive(["a", "b"])(schema)`.
    """
    kind: RuleKind
    fields: tuple[str, ...]
    message: str | None = None

    def __post_init__(self):
        object.__setattr__(self, "kind", RuleKind(self.kind))
        object.__setattr__(self, "fields", tuple(dict.fromkeys(self.fields)))
        if not self.fields: raise SchemaDefinitionError(f"{self.kind.value} needs at least one field")

    def __call__(self, schema: ObjectSchema) -> ObjectSchema:
        if not isinstance(schema, ObjectSchema):
            raise SchemaDefinitionError(f"{self.kind.value} applies to object schemas")
        return schema.with_rules(self)

    def ensure_fields(self, schema: ObjectSchema) -> None:
        if missing := [f for f in self.fields if f not in schema.fields]:
            raise SchemaDefinitionError(f"{self.kind.value} references unknown fields: {missing}")

    def narrowed(self, keep: Iterable[str]) -> ObjectRule | None:
        """Rule restricted to kept fields, or None when it no longer constrains anything."""
        keep = set(keep)
        fields = tuple(f for f in self.fields if f in keep)
        if fields == self.fields: return self
        minimum = 2 if self.kind is RuleKind.MUTUALLY_EXCLUSIVE else 1
        return replace(self, fields=fields) if len(fields) >= minimum else None

    def check(self, output: Mapping[str, Any], path: Path) -> ValidationIssue | None:
        present = [f for f in self.fields if output.get(f, UNDEFINED) is not UNDEFINED]
        if self.kind is RuleKind.MUTUALLY_EXCLUSIVE and len(present) > 1:
            return ValidationIssue(path=path, kind=ErrorKind.MUTUAL_EXCLUSION_VIOLATED,
                message=self.message or f"Only one of {list(self.fields)} may be present, got {present}")
        if self.kind is RuleKind.AT_LEAST_ONE and not present:
            return ValidationIssue(path=path, kind=ErrorKind.AT_LEAST_ONE_REQUIRED,
                message=self.message or f"At least one of {list(self.fields)} is required")
        return None


def mutually_exclusive(fields: Iterable[str], *, message: str | None = None) -> ObjectRule:
    return ObjectRule(RuleKind.MUTUALLY_EXCLUSIVE, tuple(fields), message)


def at_least_one_of(fields: Iterable[str], *, message: str | None = None) -> ObjectRule:
    return ObjectRule(RuleKind.AT_LEAST_ONE, tuple(fields), message)


def require_if(schema: SchemaNode | FieldSpec, depends_on: str, trigger: Any) -> FieldSpec:
    """Field required when `depends_on` resolves to trigger (or trigger(value) is true), optional otherwise."""
    base = as_field(schema)
    return replace(base, required=False, conditional=ConditionalRule(depends_on, (
        Branch(is_=trigger, then=replace(base, required=True, conditional=None),
            otherwise=replace(base, required=False, conditional=None)),
    )))


def conditional_field(
    depends_on: str,
    branches: Iterable[Branch | Mapping[str, Any]],
    schema: SchemaNode | FieldSpec | None = None,
) -> FieldSpec:
    """Field whose schema is chosen from a branch table on another field's value.

    Plain nodes in `then`/`otherwise` inherit the base field's presence;
    FieldSpecs bring their own. With no matching branch and no `otherwise`,
    the field is accepted as-is.
    """
    base = as_field(schema if schema is not None else Primitive(Kind.ANY))
    return replace(base, conditional=ConditionalRule(depends_on, tuple(branches)))


def dynamic_default(schema: ObjectSchema, field_name: str, supplier: Callable[[], Any]) -> ObjectSchema:
    """Schema whose field defaults to supplier(), evaluated on every validation call."""
    if not callable(supplier): raise SchemaDefinitionError("dynamic_default needs a zero-argument callable")
    return replace_field(schema, field_name, "dynamic_default", default=supplier)
