"""Schema Node Model

Schemas are trees of frozen dataclasses. Every derivation returns a new node,
so one schema can be shared across threads and reused as the base for many
derived schemas.

Features:
- Primitive, object, array, alternatives, forbidden and strip variants
- FieldSpec carrying presence, defaults, redaction and translation metadata
- ConditionalRule as inspectable data (branch table, not a closure)
- Immutable metadata for versions and examples
"""
from __future__ import annotations

import copy
from abc import ABC
from dataclasses import dataclass, field, replace
from datetime import date
from enum import Enum
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Callable, ClassVar, Iterable, Literal, Mapping

from schemakit.checks import (
    FORMAT_CHECKS,
    Check,
    DateRange,
    NumericRange,
    OneOf,
    RegexPattern,
    StringLength,
)
from schemakit.errors import SchemaDefinitionError

if TYPE_CHECKING:
    from schemakit.constraints import ObjectRule
    from schemakit.transform import Omitter, Redactor
    from schemakit.validator import SafeValidationResult

UnknownKeys = Literal["strip", "allow", "forbid"]
UNKNOWN_POLICIES = ("strip", "allow", "forbid")


class _Undefined:
    """Marker for an absent value. Distinct from None, which is a real value."""

    _instance: _Undefined | None = None

    def __new__(cls) -> _Undefined:
        if cls._instance is None: cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool: return False

    def __repr__(self) -> str: return "UNDEFINED"

    def __copy__(self) -> _Undefined: return self

    def __deepcopy__(self, memo: dict) -> _Undefined: return self

    def __reduce__(self) -> str: return "UNDEFINED"


UNDEFINED: Any = _Undefined()


class Kind(str, Enum):
    STRING = "string"
    NUMBER = "number"
    INTEGER = "integer"
    BOOLEAN = "boolean"
    DATE = "date"
    ANY = "any"
    OBJECT = "object"
    ARRAY = "array"
    ALTERNATIVES = "alternatives"
    FORBIDDEN = "forbidden"
    STRIP = "strip"


PRIMITIVE_KINDS = frozenset({Kind.STRING, Kind.NUMBER, Kind.INTEGER, Kind.BOOLEAN, Kind.DATE, Kind.ANY})


def _frozen(mapping: Mapping[Any, Any] | None = None) -> Mapping[Any, Any]:
    return MappingProxyType(dict(mapping or {}))


# ============================================================================
# Base Node
# ============================================================================

class SchemaNode(ABC):
    """Base class for every schema variant.

    Subclasses are frozen dataclasses with a `meta` mapping. Presence helpers
    (`required()`, `optional()`, ...) wrap the node in a FieldSpec for use as
    an object field.
    """

    __slots__ = ()

    kind: ClassVar[Kind]
    meta: Mapping[str, Any]

    # Presence -----------------------------------------------------------

    def required(self) -> FieldSpec: return FieldSpec(self, required=True)

    def optional(self) -> FieldSpec: return FieldSpec(self)

    def with_default(self, value: Any) -> FieldSpec:
        """Optional field that falls back to value (or value() for zero-arg callables)."""
        return FieldSpec(self, default=value)

    def redacted(self) -> FieldSpec: return FieldSpec(self, redacted=True)

    # Metadata -----------------------------------------------------------

    def with_meta(self, key: str, value: Any) -> SchemaNode:
        return replace(self, meta={**self.meta, key: value})

    def get_meta(self, key: str, default: Any = None) -> Any: return self.meta.get(key, default)

    def with_version(self, tag: str) -> SchemaNode: return self.with_meta("version", str(tag))

    def get_version(self) -> str | None: return self.meta.get("version")

    def with_example(self, example: Any) -> SchemaNode:
        return self.with_meta("examples", (*self.meta.get("examples", ()), example))

    # Validation ---------------------------------------------------------

    def validate(self, value: Any, **options: Any) -> Any:
        from schemakit.validator import validate
        return validate(self, value, **options)

    def safe_validate(self, value: Any, **options: Any) -> SafeValidationResult:
        from schemakit.validator import safe_validate
        return safe_validate(self, value, **options)

    async def validate_async(self, value: Any, validators: Iterable[Callable[[Any], Any]] = (), **options: Any) -> Any:
        from schemakit.validator import validate_async
        return await validate_async(self, value, validators, **options)


# ============================================================================
# Primitives
# ============================================================================

@dataclass(frozen=True, slots=True)
class Constraints:
    """Kind-specific primitive constraints. Bounds are inclusive."""
    min_length: int | None = None
    max_length: int | None = None
    minimum: int | float | date | None = None
    maximum: int | float | date | None = None
    pattern: str | None = None
    allowed: tuple[Any, ...] | None = None
    format: str | None = None
    allow_none: bool = False

    def __post_init__(self):
        if self.allowed is not None: object.__setattr__(self, "allowed", tuple(self.allowed))
        if self.format is not None and self.format not in FORMAT_CHECKS:
            raise SchemaDefinitionError(f"Unknown format '{self.format}', expected one of {sorted(FORMAT_CHECKS)}")
        for low, high in ((self.min_length, self.max_length), (self.minimum, self.maximum)):
            if low is not None and high is not None and low > high:
                raise SchemaDefinitionError(f"Lower bound {low!r} exceeds upper bound {high!r}")


@dataclass(frozen=True, slots=True)
class Primitive(SchemaNode):
    """A scalar schema: string, number, integer, boolean, date or any."""
    kind: Kind
    constraints: Constraints = Constraints()
    extra_checks: tuple[Check, ...] = ()
    meta: Mapping[str, Any] = field(default_factory=_frozen)

    def __post_init__(self):
        try: kind = Kind(self.kind)
        except ValueError: raise SchemaDefinitionError(f"Unknown primitive kind '{self.kind}'") from None
        if kind not in PRIMITIVE_KINDS: raise SchemaDefinitionError(f"'{kind.value}' is not a primitive kind")
        object.__setattr__(self, "kind", kind)
        object.__setattr__(self, "extra_checks", tuple(self.extra_checks))
        object.__setattr__(self, "meta", _frozen(self.meta))

    def checks(self) -> list[Check]:
        """Constraint checks in evaluation order: bounds, pattern, format, allowed values, extras."""
        c, result = self.constraints, []
        match self.kind:
            case Kind.STRING:
                if c.min_length is not None or c.max_length is not None:
                    result.append(StringLength(c.min_length, c.max_length))
                if c.pattern is not None: result.append(RegexPattern(c.pattern))
                if c.format is not None: result.append(FORMAT_CHECKS[c.format]())
            case Kind.NUMBER | Kind.INTEGER:
                if c.minimum is not None or c.maximum is not None: result.append(NumericRange(c.minimum, c.maximum))
            case Kind.DATE:
                if c.minimum is not None or c.maximum is not None: result.append(DateRange(c.minimum, c.maximum))
        if c.allowed is not None: result.append(OneOf(*c.allowed))
        return result + list(self.extra_checks)

    def _constrain(self, **changes: Any) -> Primitive:
        return replace(self, constraints=replace(self.constraints, **changes))

    def min(self, bound: int | float | date) -> Primitive:
        """Minimum length for strings, minimum value for numbers and dates."""
        return self._constrain(min_length=bound) if self.kind is Kind.STRING else self._constrain(minimum=bound)

    def max(self, bound: int | float | date) -> Primitive:
        """Maximum length for strings, maximum value for numbers and dates."""
        return self._constrain(max_length=bound) if self.kind is Kind.STRING else self._constrain(maximum=bound)

    def length(self, exact: int) -> Primitive: return self._constrain(min_length=exact, max_length=exact)

    def pattern(self, regex: str) -> Primitive: return self._constrain(pattern=regex)

    def email(self) -> Primitive: return self._constrain(format="email")

    def uuid(self) -> Primitive: return self._constrain(format="uuid")

    def uri(self) -> Primitive: return self._constrain(format="uri")

    def valid(self, *values: Any) -> Primitive: return self._constrain(allowed=values)

    def allow_none(self) -> Primitive: return self._constrain(allow_none=True)

    def integer(self) -> Primitive:
        if self.kind not in (Kind.NUMBER, Kind.INTEGER):
            raise SchemaDefinitionError(f"integer() applies to numbers, not {self.kind.value}")
        return replace(self, kind=Kind.INTEGER)

    def check(self, extra: Check) -> Primitive: return replace(self, extra_checks=(*self.extra_checks, extra))


# ============================================================================
# Fields
# ============================================================================

@dataclass(frozen=True, slots=True)
class FieldSpec:
    """A schema attached to an object key, with presence and display metadata."""
    schema: SchemaNode
    required: bool = False
    default: Any = UNDEFINED
    redacted: bool = False
    translation_key: str | None = None
    conditional: ConditionalRule | None = None
    custom_validator: Callable[[Any], Any] | None = None
    custom_message: str | None = None
    description: str | None = None
    examples: tuple[Any, ...] = ()

    def __post_init__(self):
        if not isinstance(self.schema, SchemaNode):
            raise SchemaDefinitionError(f"FieldSpec requires a schema node, got {type(self.schema).__name__}")
        if self.required and isinstance(self.schema, Forbidden):
            raise SchemaDefinitionError("A forbidden field cannot be required")
        object.__setattr__(self, "examples", tuple(self.examples))

    @property
    def has_default(self) -> bool: return self.default is not UNDEFINED

    @property
    def dynamic_default(self) -> bool: return callable(self.default)

    def resolve_default(self) -> Any:
        """Evaluate the default for one occurrence; static defaults are copied so outputs never share state."""
        return self.default() if callable(self.default) else copy.deepcopy(self.default)

    def as_required(self) -> FieldSpec: return replace(self, required=True)

    def as_optional(self) -> FieldSpec: return replace(self, required=False)

    def as_redacted(self) -> FieldSpec: return replace(self, redacted=True)

    def with_default(self, value: Any) -> FieldSpec: return replace(self, default=value)

    def with_translation_key(self, key: str) -> FieldSpec: return replace(self, translation_key=key)

    def with_custom_validator(self, fn: Callable[[Any], Any], message: str | None = None) -> FieldSpec:
        return replace(self, custom_validator=fn, custom_message=message)

    def with_description(self, text: str) -> FieldSpec: return replace(self, description=text)

    def with_examples(self, *examples: Any) -> FieldSpec: return replace(self, examples=(*self.examples, *examples))

    def with_schema(self, schema: SchemaNode) -> FieldSpec: return replace(self, schema=schema)


def as_field(value: FieldSpec | SchemaNode) -> FieldSpec:
    """Coerce a bare node into an optional FieldSpec."""
    if isinstance(value, FieldSpec): return value
    if isinstance(value, SchemaNode): return FieldSpec(value)
    raise SchemaDefinitionError(f"Expected a schema node or FieldSpec, got {type(value).__name__}")


@dataclass(frozen=True, slots=True)
class Branch:
    """One row of a conditional branch table.

    `is_` is compared by equality, or called when it is a predicate. A branch
    without `is_` always matches. Predicates receive UNDEFINED when the
    dependency is absent from the input.
    """
    is_: Any = UNDEFINED
    then: SchemaNode | FieldSpec | None = None
    otherwise: SchemaNode | FieldSpec | None = None

    def __post_init__(self):
        for target in (self.then, self.otherwise):
            if target is not None and not isinstance(target, (SchemaNode, FieldSpec)):
                raise SchemaDefinitionError(f"Branch targets must be schema nodes or FieldSpecs, got {type(target).__name__}")
        if self.then is None and self.otherwise is None:
            raise SchemaDefinitionError("A branch needs `then` or `otherwise`")

    @property
    def is_fallback(self) -> bool: return self.is_ is UNDEFINED and self.then is None

    def matches(self, value: Any) -> bool:
        if self.is_ is UNDEFINED: return True
        if callable(self.is_): return bool(self.is_(value))
        return value == self.is_ and isinstance(value, bool) == isinstance(self.is_, bool)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> Branch:
        """Build from {"is": ..., "then": ..., "otherwise": ...}."""
        if unknown := set(data) - {"is", "then", "otherwise"}:
            raise SchemaDefinitionError(f"Unknown branch keys: {sorted(unknown)}")
        return cls(is_=data.get("is", UNDEFINED), then=data.get("then"), otherwise=data.get("otherwise"))


@dataclass(frozen=True, slots=True)
class ConditionalRule:
    """Selects a field's effective schema from another field's resolved value."""
    depends_on: str
    branches: tuple[Branch, ...]

    def __post_init__(self):
        branches = tuple(b if isinstance(b, Branch) else Branch.from_mapping(b) for b in self.branches)
        if not branches: raise SchemaDefinitionError(f"Conditional on '{self.depends_on}' has no branches")
        object.__setattr__(self, "branches", branches)

    def targets(self) -> list[SchemaNode | FieldSpec]:
        return [t for b in self.branches for t in (b.then, b.otherwise) if t is not None]

    @property
    def has_fallback(self) -> bool: return any(b.otherwise is not None for b in self.branches)

    def resolve(self, base: FieldSpec, dependency: Any) -> FieldSpec | None:
        """Effective FieldSpec for the dependency value, or None when the field is unconstrained."""
        for branch in self.branches:
            if not branch.is_fallback and branch.matches(dependency):
                return self._apply(base, branch.then)
        for branch in self.branches:
            if branch.otherwise is not None: return self._apply(base, branch.otherwise)
        return None

    @staticmethod
    def _apply(base: FieldSpec, target: SchemaNode | FieldSpec | None) -> FieldSpec:
        if target is None: return replace(base, conditional=None)
        if isinstance(target, FieldSpec):
            return replace(target, conditional=None, redacted=target.redacted or base.redacted,
                translation_key=target.translation_key or base.translation_key)
        return replace(base, schema=target, conditional=None, required=base.required and not isinstance(target, Forbidden))


# ============================================================================
# Composite Nodes
# ============================================================================

@dataclass(frozen=True, slots=True, eq=False)
class ObjectSchema(SchemaNode):
    """Ordered mapping of field name to FieldSpec plus object-level settings.

    - rules: object-level checks run after every field validates
    - unknown: "strip" drops unknown keys, "allow" keeps them, "forbid" reports them.
      None defers to settings.
    """
    fields: Mapping[str, FieldSpec] = field(default_factory=_frozen)
    rules: tuple[ObjectRule, ...] = ()
    unknown: UnknownKeys | None = None
    meta: Mapping[str, Any] = field(default_factory=_frozen)

    kind: ClassVar[Kind] = Kind.OBJECT

    def __post_init__(self):
        pairs = self.fields.items() if isinstance(self.fields, Mapping) else self.fields
        normalized: dict[str, FieldSpec] = {}
        for name, spec in pairs:
            if not isinstance(name, str): raise SchemaDefinitionError(f"Field names must be strings, got {name!r}")
            if name in normalized: raise SchemaDefinitionError(f"Duplicate field '{name}'")
            normalized[name] = as_field(spec)
        if self.unknown is not None and self.unknown not in UNKNOWN_POLICIES:
            raise SchemaDefinitionError(f"unknown must be one of {UNKNOWN_POLICIES}, got {self.unknown!r}")
        object.__setattr__(self, "fields", MappingProxyType(normalized))
        object.__setattr__(self, "rules", tuple(self.rules))
        object.__setattr__(self, "meta", _frozen(self.meta))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ObjectSchema): return NotImplemented
        return (tuple(self.fields.items()) == tuple(other.fields.items()) and self.rules == other.rules
            and self.unknown == other.unknown and dict(self.meta) == dict(other.meta))

    __hash__ = None

    def __contains__(self, name: object) -> bool: return name in self.fields

    def keys(self) -> list[str]: return list(self.fields)

    def get_field(self, name: str) -> FieldSpec:
        if name not in self.fields: raise SchemaDefinitionError(f"Unknown field '{name}'")
        return self.fields[name]

    def with_rules(self, *rules: ObjectRule) -> ObjectSchema:
        for rule in rules: rule.ensure_fields(self)
        return replace(self, rules=(*self.rules, *rules))

    def with_unknown(self, policy: UnknownKeys) -> ObjectSchema: return replace(self, unknown=policy)

    # Structural transforms (see schemakit.transform) ---------------------

    def partial(self) -> ObjectSchema:
        from schemakit import transform
        return transform.partial(self)

    def deep_partial(self) -> ObjectSchema:
        from schemakit import transform
        return transform.deep_partial(self)

    def require_all(self) -> ObjectSchema:
        from schemakit import transform
        return transform.require_all(self)

    def pick(self, keys: Iterable[str]) -> ObjectSchema:
        from schemakit import transform
        return transform.pick(self, keys)

    def omit(self, keys: Iterable[str]) -> ObjectSchema:
        from schemakit import transform
        return transform.omit(self, keys)

    def pick_by(self, predicate: Callable[[FieldSpec, str], bool]) -> ObjectSchema:
        from schemakit import transform
        return transform.pick_by(self, predicate)

    def omit_by(self, predicate: Callable[[FieldSpec, str], bool]) -> ObjectSchema:
        from schemakit import transform
        return transform.omit_by(self, predicate)

    def pick_by_type(self, kind: Kind | str) -> ObjectSchema:
        from schemakit import transform
        return transform.pick_by_type(self, kind)

    def merge(self, other: ObjectSchema) -> ObjectSchema:
        from schemakit import transform
        return transform.merge(self, other)

    def extend_with(self, extra_fields: Mapping[str, FieldSpec | SchemaNode] | ObjectSchema) -> ObjectSchema:
        from schemakit import transform
        return transform.extend_with(self, extra_fields)

    def extend_with_defaults(self, defaults: Mapping[str, Any]) -> ObjectSchema:
        from schemakit import transform
        return transform.extend_with_defaults(self, defaults)

    def with_translation_key(self, name: str, key: str) -> ObjectSchema:
        from schemakit import transform
        return transform.with_translation_key(self, name, key)

    def with_custom_validator(self, name: str, fn: Callable[[Any], Any], message: str | None = None) -> ObjectSchema:
        from schemakit import transform
        return transform.with_custom_validator(self, name, fn, message)

    def with_redacted_fields(self, keys: Iterable[str] | None = None, marker: str | None = None) -> Redactor:
        from schemakit import transform
        return transform.with_redacted_fields(self, keys, marker)

    def with_omitted_fields(self, keys: Iterable[str]) -> Omitter:
        from schemakit import transform
        return transform.with_omitted_fields(self, keys)


@dataclass(frozen=True, slots=True)
class ArraySchema(SchemaNode):
    """Homogeneous list of element values."""
    element: SchemaNode
    min_items: int | None = None
    max_items: int | None = None
    meta: Mapping[str, Any] = field(default_factory=_frozen)

    kind: ClassVar[Kind] = Kind.ARRAY

    def __post_init__(self):
        if not isinstance(self.element, SchemaNode):
            raise SchemaDefinitionError(f"Array element must be a schema node, got {type(self.element).__name__}")
        if self.min_items is not None and self.max_items is not None and self.min_items > self.max_items:
            raise SchemaDefinitionError(f"min_items {self.min_items} exceeds max_items {self.max_items}")
        object.__setattr__(self, "meta", _frozen(self.meta))

    def min(self, count: int) -> ArraySchema: return replace(self, min_items=count)

    def max(self, count: int) -> ArraySchema: return replace(self, max_items=count)

    def length(self, count: int) -> ArraySchema: return replace(self, min_items=count, max_items=count)


@dataclass(frozen=True, slots=True)
class AlternativesSchema(SchemaNode):
    """Value must satisfy one candidate.

    With a discriminator and a mapping input, the candidate is looked up by
    the discriminator key's value; otherwise candidates are tried in order.
    """
    candidates: tuple[SchemaNode, ...] = ()
    discriminator: str | None = None
    mapping: Mapping[Any, SchemaNode] | None = None
    meta: Mapping[str, Any] = field(default_factory=_frozen)

    kind: ClassVar[Kind] = Kind.ALTERNATIVES

    def __post_init__(self):
        object.__setattr__(self, "candidates", tuple(self.candidates))
        if self.mapping is not None: object.__setattr__(self, "mapping", MappingProxyType(dict(self.mapping)))
        if (self.discriminator is None) != (self.mapping is None):
            raise SchemaDefinitionError("discriminator and mapping must be given together")
        if not self.options: raise SchemaDefinitionError("Alternatives need at least one candidate")
        for node in self.options:
            if not isinstance(node, SchemaNode):
                raise SchemaDefinitionError(f"Alternatives take schema nodes, got {type(node).__name__}")
        object.__setattr__(self, "meta", _frozen(self.meta))

    @property
    def options(self) -> tuple[SchemaNode, ...]:
        """Candidates tried in order when key-based dispatch does not apply."""
        return self.candidates or tuple((self.mapping or {}).values())


@dataclass(frozen=True, slots=True)
class Forbidden(SchemaNode):
    """The key must be absent."""
    meta: Mapping[str, Any] = field(default_factory=_frozen)

    kind: ClassVar[Kind] = Kind.FORBIDDEN

    def __post_init__(self):
        object.__setattr__(self, "meta", _frozen(self.meta))

    def required(self) -> FieldSpec:
        raise SchemaDefinitionError("A forbidden field cannot be required")


@dataclass(frozen=True, slots=True)
class StripMarker(SchemaNode):
    """Accepts anything and removes the key from the output."""
    meta: Mapping[str, Any] = field(default_factory=_frozen)

    kind: ClassVar[Kind] = Kind.STRIP

    def __post_init__(self):
        object.__setattr__(self, "meta", _frozen(self.meta))
