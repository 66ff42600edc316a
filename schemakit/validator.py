"""Validator

Recursive descent over the schema tree, mirroring the shape of the input.

- validate: returns the typed value or raises AggregateValidationError
- safe_validate: never raises for invalid input, returns SafeValidationResult
- validate_async: synchronous pass, then extra validators awaited one at a time

Validation is exhaustive: every sibling failure is collected before the call
fails (unless abort_early is set). Nested issues carry the full path from the
root. All per-call state lives in a _Run local to the call, so schemas can be
validated concurrently.
"""
from __future__ import annotations

import inspect
from collections.abc import Hashable
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Callable, Generic, Iterable, Mapping, TypeVar

from schemakit.checks import ListLength, failures, is_number
from schemakit.config import get_settings
from schemakit.errors import (
    AggregateValidationError,
    Err,
    ErrorKind,
    IssueAccumulator,
    FailFastAccumulator,
    Ok,
    Path,
    Result,
    ValidationIssue,
    create_accumulator,
)
from schemakit.logging import validation_logger
from schemakit.nodes import (
    UNDEFINED,
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

T = TypeVar("T")

AsyncValidator = Callable[[Any], Any]

_INVALID: Any = object()


@dataclass(frozen=True, slots=True)
class SafeValidationResult(Generic[T]):
    """Outcome of safe_validate: exactly one of value / error is meaningful."""
    value: T | None = None
    error: AggregateValidationError | None = None

    @property
    def ok(self) -> bool: return self.error is None

    @property
    def issues(self) -> tuple[ValidationIssue, ...]: return self.error.issues if self.error else ()

    def unwrap(self) -> T:
        if self.error is not None: raise self.error
        return self.value

    def to_result(self) -> Result[T, AggregateValidationError]:
        return Ok(self.value) if self.error is None else Err(self.error)


# ============================================================================
# Per-call State
# ============================================================================

@dataclass(frozen=True, slots=True)
class _Scope:
    """Display metadata of the field being validated."""
    translation_key: str | None = None
    sensitive: bool = False

    def child(self, spec: FieldSpec) -> _Scope:
        return _Scope(spec.translation_key, self.sensitive or spec.redacted)

    def element(self) -> _Scope: return _Scope(None, self.sensitive)


class _Run:
    __slots__ = ("accumulator", "marker", "max_issues", "defaults")

    def __init__(self, accumulator: IssueAccumulator, marker: str, max_issues: int,
                 defaults: dict[tuple[Path, int], Any] | None = None):
        self.accumulator, self.marker, self.max_issues = accumulator, marker, max_issues
        self.defaults = {} if defaults is None else defaults

    @property
    def stopped(self) -> bool: return self.accumulator.stopped

    def report(self, path: Path, message: str, kind: ErrorKind, scope: _Scope, value: Any = None) -> None:
        if scope.sensitive and value is not None: value = self.marker
        self.accumulator.add(ValidationIssue(path=path, message=message, kind=kind, value=value,
            translation_key=scope.translation_key))

    def default(self, path: Path, spec: FieldSpec) -> Any:
        # one supplier call per input path, shared by every alternative tried there
        if not spec.dynamic_default: return spec.resolve_default()
        key = (path, id(spec.default))
        if key not in self.defaults: self.defaults[key] = spec.resolve_default()
        return self.defaults[key]

    def fork(self) -> _Run:
        abort_early = isinstance(self.accumulator, FailFastAccumulator)
        return _Run(create_accumulator(abort_early, self.max_issues), self.marker, self.max_issues, self.defaults)


# ============================================================================
# Node Checks
# ============================================================================

def _coerce_primitive(node: Primitive, value: Any) -> Any:
    match node.kind:
        case Kind.STRING: return value if isinstance(value, str) else _INVALID
        case Kind.BOOLEAN: return value if isinstance(value, bool) else _INVALID
        case Kind.NUMBER: return value if is_number(value) else _INVALID
        case Kind.INTEGER:
            if not is_number(value): return _INVALID
            if isinstance(value, int): return value
            whole = value == value.to_integral_value() if isinstance(value, Decimal) else value.is_integer()
            return int(value) if whole else _INVALID
        case Kind.DATE:
            if isinstance(value, date): return value
            if isinstance(value, str):
                try: return datetime.fromisoformat(value)
                except ValueError: return _INVALID
            return _INVALID
    return value


def _check_primitive(node: Primitive, value: Any, path: Path, run: _Run, scope: _Scope) -> Any:
    if value is None and node.kind is not Kind.ANY:
        if node.constraints.allow_none: return None
        run.report(path, f"Expected {node.kind.value}, got null", ErrorKind.TYPE_MISMATCH, scope)
        return _INVALID

    if (coerced := _coerce_primitive(node, value)) is _INVALID:
        expected = "ISO-8601 date" if node.kind is Kind.DATE else node.kind.value
        run.report(path, f"Expected {expected}, got {type(value).__name__}", ErrorKind.TYPE_MISMATCH, scope, value)
        return _INVALID

    if not (failed := failures(node.checks(), coerced)): return coerced
    for result in failed:
        run.report(path, result.message, result.kind, scope, value)
        if run.stopped: break
    return _INVALID


def _check_field(spec: FieldSpec, raw: Any, path: Path, run: _Run, scope: _Scope) -> Any:
    if isinstance(spec.schema, StripMarker): return UNDEFINED
    if raw is UNDEFINED:
        if isinstance(spec.schema, Forbidden): return UNDEFINED
        if spec.has_default: return run.default(path, spec)
        if spec.required:
            run.report(path, f"'{path[-1]}' is required" if path else "Value is required", ErrorKind.MISSING_REQUIRED_FIELD, scope)
            return _INVALID
        return UNDEFINED

    if (result := _check(spec.schema, raw, path, run, scope)) is _INVALID or spec.custom_validator is None:
        return result
    try: replaced = spec.custom_validator(result)
    except Exception as e:
        run.report(path, spec.custom_message or str(e) or type(e).__name__, ErrorKind.CUSTOM_VALIDATION_FAILED, scope, raw)
        return _INVALID
    return result if replaced is None else replaced


def _check_object(node: ObjectSchema, value: Any, path: Path, run: _Run, scope: _Scope) -> Any:
    if not isinstance(value, Mapping):
        run.report(path, f"Expected object, got {type(value).__name__}", ErrorKind.TYPE_MISMATCH, scope)
        return _INVALID

    output: dict[str, Any] = {}
    failed = False
    for name, spec in node.fields.items():
        if run.stopped: return _INVALID
        if spec.conditional is not None:
            dependency = spec.conditional.depends_on
            resolved = spec.conditional.resolve(spec, output[dependency] if dependency in output
                else value.get(dependency, UNDEFINED))
            if resolved is None:
                if name in value: output[name] = value[name]
                continue
            spec = resolved
        result = _check_field(spec, value.get(name, UNDEFINED), path + (name,), run, scope.child(spec))
        if result is _INVALID: failed = True
        elif result is not UNDEFINED: output[name] = result

    policy = node.unknown or get_settings().UNKNOWN_KEYS
    if policy != "strip":
        for key in (k for k in value if k not in node.fields):
            if policy == "allow":
                output[key] = value[key]
                continue
            run.report(path + (key,), f"Unknown key '{key}' is not allowed", ErrorKind.CONSTRAINT_VIOLATION, _Scope())
            failed = True
            if run.stopped: return _INVALID

    if failed: return _INVALID
    for rule in node.rules:
        if (issue := rule.check(output, path)) is not None:
            run.accumulator.add(issue)
            failed = True
            if run.stopped: break
    return _INVALID if failed else output


def _check_array(node: ArraySchema, value: Any, path: Path, run: _Run, scope: _Scope) -> Any:
    if not isinstance(value, (list, tuple)):
        run.report(path, f"Expected array, got {type(value).__name__}", ErrorKind.TYPE_MISMATCH, scope)
        return _INVALID

    failed = False
    if not (size := ListLength(node.min_items, node.max_items).validate(value)).is_valid:
        run.report(path, size.message, size.kind, scope)
        failed = True

    items = []
    for index, item in enumerate(value):
        if run.stopped: return _INVALID
        result = _check(node.element, item, path + (index,), run, scope.element())
        if result is _INVALID: failed = True
        elif result is not UNDEFINED: items.append(result)
    return _INVALID if failed else items


def _check_alternatives(node: AlternativesSchema, value: Any, path: Path, run: _Run, scope: _Scope) -> Any:
    if node.discriminator is not None and isinstance(value, Mapping):
        key_path = path + (node.discriminator,)
        if (key := value.get(node.discriminator, UNDEFINED)) is UNDEFINED:
            run.report(key_path, f"'{node.discriminator}' is required", ErrorKind.MISSING_REQUIRED_FIELD, scope)
            return _INVALID
        if not isinstance(key, Hashable) or key not in node.mapping:
            run.report(key_path, f"'{node.discriminator}' must be one of {list(node.mapping)}",
                ErrorKind.CONSTRAINT_VIOLATION, scope, key)
            return _INVALID
        return _check(node.mapping[key], value, path, run, scope)

    collected: list[ValidationIssue] = []
    for candidate in node.options:
        trial = run.fork()
        result = _check(candidate, value, path, trial, scope)
        if not trial.accumulator.has_issues(): return result
        collected.extend(trial.accumulator.get_issues())
    for issue in collected:
        if not run.accumulator.add(issue): break
    return _INVALID


def _check(node: SchemaNode, value: Any, path: Path, run: _Run, scope: _Scope) -> Any:
    """Validated value, UNDEFINED for output-less nodes, or _INVALID after reporting issues."""
    match node:
        case Primitive(): return _check_primitive(node, value, path, run, scope)
        case ObjectSchema(): return _check_object(node, value, path, run, scope)
        case ArraySchema(): return _check_array(node, value, path, run, scope)
        case AlternativesSchema(): return _check_alternatives(node, value, path, run, scope)
        case StripMarker(): return UNDEFINED
        case Forbidden():
            if value is UNDEFINED: return UNDEFINED
            run.report(path, "Value is not allowed", ErrorKind.FORBIDDEN_FIELD_PRESENT, scope, value)
            return _INVALID
    raise TypeError(f"Unsupported schema node: {type(node).__name__}")


# ============================================================================
# Public API
# ============================================================================

def _execute(
    schema: SchemaNode | FieldSpec,
    value: Any,
    abort_early: bool | None,
    max_issues: int | None,
    schema_name: str | None,
) -> tuple[Any, AggregateValidationError | None]:
    settings = get_settings()
    if max_issues is None: max_issues = settings.MAX_ISSUES
    if max_issues < 1: raise ValueError(f"max_issues must be at least 1, got {max_issues}")
    accumulator = create_accumulator(settings.ABORT_EARLY if abort_early is None else abort_early, max_issues)
    run = _Run(accumulator, settings.REDACTION_MARKER, max_issues)

    if isinstance(schema, FieldSpec): result = _check_field(schema, value, (), run, _Scope().child(schema))
    else: result = _check(schema, value, (), run, _Scope())

    if (error := accumulator.to_error(schema_name)) is None: return result, None
    validation_logger().debug("validation_failed", schema=schema_name or _label(schema),
        issue_count=len(error.issues), kinds=sorted({k.value for k in error.kinds}))
    return None, error


def _label(schema: SchemaNode | FieldSpec) -> str:
    node = schema.schema if isinstance(schema, FieldSpec) else schema
    return f"{node.kind.value}@{v}" if (v := node.get_version()) else node.kind.value


def validate(
    schema: SchemaNode | FieldSpec,
    value: Any,
    *,
    abort_early: bool | None = None,
    max_issues: int | None = None,
    schema_name: str | None = None,
) -> Any:
    """Validate value and return the typed output (defaults applied, unknown and stripped keys removed).

    Raises:
        AggregateValidationError: every issue found, with paths
    """
    result, error = _execute(schema, value, abort_early, max_issues, schema_name)
    if error is not None: raise error
    return result


def safe_validate(
    schema: SchemaNode | FieldSpec,
    value: Any,
    *,
    abort_early: bool | None = None,
    max_issues: int | None = None,
    schema_name: str | None = None,
) -> SafeValidationResult:
    """Like validate, but returns the error inline instead of raising."""
    result, error = _execute(schema, value, abort_early, max_issues, schema_name)
    return SafeValidationResult(value=result, error=error)


async def validate_async(
    schema: SchemaNode | FieldSpec,
    value: Any,
    validators: Iterable[AsyncValidator] = (),
    *,
    abort_early: bool | None = None,
    max_issues: int | None = None,
    schema_name: str | None = None,
) -> Any:
    """Validate synchronously, then await each extra validator in order with the typed value.

    Extra validators never run when the synchronous pass fails. The first
    validator to raise aborts the rest; its exception propagates unchanged.
    Plain callables are accepted alongside coroutine functions.
    """
    result = validate(schema, value, abort_early=abort_early, max_issues=max_issues, schema_name=schema_name)
    for index, validator in enumerate(validators):
        try:
            outcome = validator(result)
            if inspect.isawaitable(outcome): await outcome
        except Exception as e:
            validation_logger().warning("async_validator_failed", schema=schema_name or _label(schema), index=index,
                validator=getattr(validator, "__name__", type(validator).__name__), error_type=type(e).__name__)
            raise
    return result
