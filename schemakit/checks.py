"""Compositional Constraint Checks

Atomic checks attached to primitive and array schemas. Checks combine via
AND/OR/NOT combinators and compare structurally, so two schemas built with the
same constraints are equal.

Features:
- Frozen dataclass checks for immutability
- Compiled regex caching
- Rich failure metadata for issue reporting
- Lazy evaluation for OR combinators
- Short-circuit evaluation for AND combinators
"""
from __future__ import annotations

import math
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import Decimal
from email.utils import parseaddr
from functools import lru_cache
from typing import Any, Callable, Sequence
from urllib.parse import urlparse
from uuid import UUID as StdUUID

from schemakit.errors import ErrorKind

EMAIL_PATTERN = r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"


@lru_cache(maxsize=256)
def compile_pattern(pattern: str, flags: int = 0) -> re.Pattern:
    return re.compile(pattern, flags)


@dataclass(frozen=True, slots=True)
class CheckResult:
    """Result of a constraint check with rich context."""
    is_valid: bool
    message: str | None = None
    kind: ErrorKind = ErrorKind.CONSTRAINT_VIOLATION
    constraint: str | None = None
    expected: Any = None
    actual: Any = None

    @classmethod
    def valid(cls) -> CheckResult: return cls(is_valid=True)

    @classmethod
    def invalid(cls, message: str, kind: ErrorKind = ErrorKind.CONSTRAINT_VIOLATION, *,
                constraint: str | None = None, expected: Any = None, actual: Any = None) -> CheckResult:
        return cls(is_valid=False, message=message, kind=kind, constraint=constraint, expected=expected, actual=actual)

    def to_dict(self) -> dict[str, Any]:
        if self.is_valid: return {"valid": True}
        return {"valid": False, "message": self.message, "kind": self.kind.value,
            "constraint": self.constraint, "expected": self.expected, "actual": self.actual}


def _type_mismatch(expected: str, value: Any) -> CheckResult:
    return CheckResult.invalid(f"Expected {expected}, got {type(value).__name__}", ErrorKind.TYPE_MISMATCH,
        constraint=expected, expected=expected, actual=type(value).__name__)


def is_number(value: Any) -> bool:
    """Numbers are int/float/Decimal, never bool, never NaN or infinite."""
    if isinstance(value, bool) or not isinstance(value, (int, float, Decimal)): return False
    if isinstance(value, Decimal): return value.is_finite()
    return isinstance(value, int) or math.isfinite(value)


class Check(ABC):
    """Base class for atomic checks.

    Checks are immutable and composable via operators:
    - & (AND): both must pass
    - | (OR): at least one must pass
    - ~ (NOT): negates the check
    """

    @abstractmethod
    def validate(self, value: Any) -> CheckResult:
        """Check a value. Returns CheckResult."""

    @property
    @abstractmethod
    def constraint_name(self) -> str:
        """Human-readable constraint name for descriptions and error messages."""

    def __call__(self, value: Any) -> CheckResult: return self.validate(value)

    def __and__(self, other: Check) -> And: return And(self, other)

    def __or__(self, other: Check) -> Or: return Or(self, other)

    def __invert__(self) -> Not: return Not(self)

    def with_message(self, message: str) -> WithMessage: return WithMessage(self, message)


# ============================================================================
# String Checks
# ============================================================================

@dataclass(frozen=True, slots=True)
class StringLength(Check):
    """String length constraints (inclusive)."""
    min_length: int | None = None
    max_length: int | None = None

    @property
    def constraint_name(self) -> str:
        if self.min_length is not None and self.max_length is not None:
            return f"length[{self.min_length},{self.max_length}]"
        if self.min_length is not None:
            return f"min_length[{self.min_length}]"
        if self.max_length is not None:
            return f"max_length[{self.max_length}]"
        return "string_length"

    def validate(self, value: Any) -> CheckResult:
        if not isinstance(value, str): return _type_mismatch("string", value)

        length = len(value)

        if self.min_length is not None and length < self.min_length:
            return CheckResult.invalid(
                f"String length {length} is less than minimum {self.min_length}",
                constraint=self.constraint_name,
                expected=f">= {self.min_length} characters",
                actual=f"{length} characters",
            )

        if self.max_length is not None and length > self.max_length:
            return CheckResult.invalid(
                f"String length {length} exceeds maximum {self.max_length}",
                constraint=self.constraint_name,
                expected=f"<= {self.max_length} characters",
                actual=f"{length} characters",
            )

        return CheckResult.valid()


@dataclass(frozen=True, slots=True)
class RegexPattern(Check):
    """String must match a regex pattern (anchored at the start, like re.match)."""
    pattern: str
    flags: int = 0
    description: str | None = None

    @property
    def constraint_name(self) -> str:
        return self.description or f"pattern[{self.pattern}]"

    def validate(self, value: Any) -> CheckResult:
        if not isinstance(value, str): return _type_mismatch("string", value)

        if not compile_pattern(self.pattern, self.flags).match(value):
            return CheckResult.invalid(
                f"Value does not match pattern: {self.description or self.pattern}",
                constraint=self.constraint_name,
                expected=f"match pattern '{self.pattern}'",
                actual=value[:50] + ("..." if len(value) > 50 else ""),
            )

        return CheckResult.valid()


@dataclass(frozen=True, slots=True)
class OneOf(Check):
    """Value must equal one of the allowed options (order preserved for descriptions)."""
    options: tuple[Any, ...]

    def __init__(self, *options: Any):
        object.__setattr__(self, "options", tuple(options))

    @property
    def constraint_name(self) -> str:
        opts = [repr(o) for o in self.options[:5]]
        suffix = f"... +{len(self.options) - 5}" if len(self.options) > 5 else ""
        return f"one_of[{', '.join(opts)}{suffix}]"

    def validate(self, value: Any) -> CheckResult:
        # bool == int in Python; True must not satisfy an allowed 1
        if any(value == o and isinstance(value, bool) == isinstance(o, bool) for o in self.options):
            return CheckResult.valid()
        return CheckResult.invalid(f"Value {value!r} is not one of: {', '.join(repr(o) for o in self.options)}",
            constraint=self.constraint_name, expected=list(self.options), actual=value)


@dataclass(frozen=True, slots=True)
class EmailFormat(Check):
    """Email address format."""
    allow_display_name: bool = False

    @property
    def constraint_name(self) -> str:
        return "email"

    def validate(self, value: Any) -> CheckResult:
        if not isinstance(value, str): return _type_mismatch("string", value)

        _, addr = parseaddr(value)
        check_value = addr if self.allow_display_name else value

        if not check_value or not compile_pattern(EMAIL_PATTERN).match(check_value):
            return CheckResult.invalid(f"Invalid email format: {value}", constraint=self.constraint_name,
                expected="valid email address", actual=value)
        return CheckResult.valid()


@dataclass(frozen=True, slots=True)
class UUIDFormat(Check):
    """UUID format, optionally pinned to a version."""
    version: int | None = None

    @property
    def constraint_name(self) -> str:
        return f"uuid{f'v{self.version}' if self.version else ''}"

    def validate(self, value: Any) -> CheckResult:
        if not isinstance(value, str): return _type_mismatch("string", value)

        try: parsed = StdUUID(value)
        except ValueError:
            return CheckResult.invalid(f"Invalid UUID format: {value}", constraint=self.constraint_name,
                expected="valid UUID", actual=value[:50])

        if self.version and parsed.version != self.version:
            return CheckResult.invalid(f"Expected UUID version {self.version}, got version {parsed.version}",
                constraint=self.constraint_name, expected=f"UUID v{self.version}", actual=f"UUID v{parsed.version}")
        return CheckResult.valid()


@dataclass(frozen=True, slots=True)
class URIFormat(Check):
    """URL format with an allowed scheme set."""
    allowed_schemes: tuple[str, ...] = ("http", "https")

    @property
    def constraint_name(self) -> str:
        return f"uri[{', '.join(self.allowed_schemes)}]"

    def validate(self, value: Any) -> CheckResult:
        if not isinstance(value, str): return _type_mismatch("string", value)

        parsed = urlparse(value)
        if not parsed.scheme:
            return CheckResult.invalid("URL must include scheme (e.g., https://)", constraint=self.constraint_name,
                expected="URL with scheme", actual=value)
        if parsed.scheme not in self.allowed_schemes:
            return CheckResult.invalid(f"URL scheme '{parsed.scheme}' not allowed", constraint=self.constraint_name,
                expected=f"scheme in {list(self.allowed_schemes)}", actual=parsed.scheme)
        if not parsed.netloc:
            return CheckResult.invalid("URL must include host", constraint=self.constraint_name,
                expected="URL with host", actual=value)
        return CheckResult.valid()


FORMAT_CHECKS: dict[str, Callable[[], Check]] = {
    "email": EmailFormat,
    "uuid": UUIDFormat,
    "uri": URIFormat,
}


# ============================================================================
# Numeric Checks
# ============================================================================

@dataclass(frozen=True, slots=True)
class NumericRange(Check):
    """Numeric range constraints."""
    min_value: float | int | None = None
    max_value: float | int | None = None
    exclusive_min: bool = False
    exclusive_max: bool = False

    @property
    def constraint_name(self) -> str:
        parts = []
        if self.min_value is not None:
            parts.append(f"{'>' if self.exclusive_min else '>='}{self.min_value}")
        if self.max_value is not None:
            parts.append(f"{'<' if self.exclusive_max else '<='}{self.max_value}")
        return f"range[{', '.join(parts)}]" if parts else "numeric"

    def validate(self, value: Any) -> CheckResult:
        if not is_number(value): return _type_mismatch("number", value)

        if self.min_value is not None:
            if self.exclusive_min and value <= self.min_value:
                return CheckResult.invalid(f"Value {value} must be greater than {self.min_value}",
                    constraint=self.constraint_name, expected=f"> {self.min_value}", actual=value)
            if not self.exclusive_min and value < self.min_value:
                return CheckResult.invalid(f"Value {value} must be at least {self.min_value}",
                    constraint=self.constraint_name, expected=f">= {self.min_value}", actual=value)

        if self.max_value is not None:
            if self.exclusive_max and value >= self.max_value:
                return CheckResult.invalid(f"Value {value} must be less than {self.max_value}",
                    constraint=self.constraint_name, expected=f"< {self.max_value}", actual=value)
            if not self.exclusive_max and value > self.max_value:
                return CheckResult.invalid(f"Value {value} must be at most {self.max_value}",
                    constraint=self.constraint_name, expected=f"<= {self.max_value}", actual=value)

        return CheckResult.valid()


# ============================================================================
# Date Checks
# ============================================================================

@dataclass(frozen=True, slots=True)
class DateRange(Check):
    """Inclusive date/datetime bounds."""
    min_value: date | None = None
    max_value: date | None = None

    @property
    def constraint_name(self) -> str:
        parts = []
        if self.min_value is not None: parts.append(f">={self.min_value.isoformat()}")
        if self.max_value is not None: parts.append(f"<={self.max_value.isoformat()}")
        return f"date_range[{', '.join(parts)}]" if parts else "date"

    @staticmethod
    def _comparable(left: date, right: date) -> tuple[date, date]:
        # datetime vs date compare by calendar date
        if isinstance(left, datetime) != isinstance(right, datetime):
            return (left.date() if isinstance(left, datetime) else left,
                    right.date() if isinstance(right, datetime) else right)
        # naive side is read as UTC when the other carries an offset
        if isinstance(left, datetime) and (left.tzinfo is None) != (right.tzinfo is None):
            return (left.replace(tzinfo=timezone.utc) if left.tzinfo is None else left,
                    right.replace(tzinfo=timezone.utc) if right.tzinfo is None else right)
        return left, right

    def validate(self, value: Any) -> CheckResult:
        if not isinstance(value, date): return _type_mismatch("date", value)

        if self.min_value is not None:
            v, bound = self._comparable(value, self.min_value)
            if v < bound:
                return CheckResult.invalid(f"Date {value.isoformat()} is before {self.min_value.isoformat()}",
                    constraint=self.constraint_name, expected=f">= {self.min_value.isoformat()}", actual=value.isoformat())
        if self.max_value is not None:
            v, bound = self._comparable(value, self.max_value)
            if v > bound:
                return CheckResult.invalid(f"Date {value.isoformat()} is after {self.max_value.isoformat()}",
                    constraint=self.constraint_name, expected=f"<= {self.max_value.isoformat()}", actual=value.isoformat())
        return CheckResult.valid()


# ============================================================================
# Collection Checks
# ============================================================================

@dataclass(frozen=True, slots=True)
class ListLength(Check):
    """List length constraints (inclusive)."""
    min_length: int | None = None
    max_length: int | None = None

    @property
    def constraint_name(self) -> str:
        parts = []
        if self.min_length is not None: parts.append(f"min={self.min_length}")
        if self.max_length is not None: parts.append(f"max={self.max_length}")
        return f"list_length[{', '.join(parts)}]" if parts else "list"

    def validate(self, value: Any) -> CheckResult:
        if not isinstance(value, (list, tuple)): return _type_mismatch("array", value)

        length = len(value)
        if self.min_length is not None and length < self.min_length:
            return CheckResult.invalid(f"List has {length} items, minimum is {self.min_length}",
                constraint=self.constraint_name, expected=f">= {self.min_length} items", actual=f"{length} items")
        if self.max_length is not None and length > self.max_length:
            return CheckResult.invalid(f"List has {length} items, maximum is {self.max_length}",
                constraint=self.constraint_name, expected=f"<= {self.max_length} items", actual=f"{length} items")
        return CheckResult.valid()


# ============================================================================
# Combinators
# ============================================================================

@dataclass(frozen=True, slots=True)
class And(Check):
    """AND combinator: all checks must pass (short-circuit on first failure)."""
    left: Check
    right: Check

    @property
    def constraint_name(self) -> str:
        return f"({self.left.constraint_name} AND {self.right.constraint_name})"

    def validate(self, value: Any) -> CheckResult:
        if not (left_result := self.left.validate(value)).is_valid: return left_result
        return self.right.validate(value)


@dataclass(frozen=True, slots=True)
class Or(Check):
    """OR combinator: at least one check must pass (lazy evaluation)."""
    left: Check
    right: Check

    @property
    def constraint_name(self) -> str:
        return f"({self.left.constraint_name} OR {self.right.constraint_name})"

    def validate(self, value: Any) -> CheckResult:
        if (left_result := self.left.validate(value)).is_valid: return CheckResult.valid()
        if (right_result := self.right.validate(value)).is_valid: return CheckResult.valid()
        return CheckResult.invalid(f"Neither constraint satisfied: {left_result.message} OR {right_result.message}",
            constraint=self.constraint_name)


@dataclass(frozen=True, slots=True)
class Not(Check):
    """NOT combinator: negates a check."""
    check: Check
    message: str | None = None

    @property
    def constraint_name(self) -> str:
        return f"NOT({self.check.constraint_name})"

    def validate(self, value: Any) -> CheckResult:
        if self.check.validate(value).is_valid:
            return CheckResult.invalid(self.message or f"Value should not satisfy: {self.check.constraint_name}",
                constraint=self.constraint_name)
        return CheckResult.valid()


@dataclass(frozen=True, slots=True)
class WithMessage(Check):
    """Wrapper to override the failure message."""
    check: Check
    message: str

    @property
    def constraint_name(self) -> str:
        return self.check.constraint_name

    def validate(self, value: Any) -> CheckResult:
        if (result := self.check.validate(value)).is_valid: return result
        return CheckResult.invalid(self.message, result.kind, constraint=result.constraint,
            expected=result.expected, actual=result.actual)


@dataclass(frozen=True, slots=True)
class Predicate(Check):
    """Check from a boolean function.

    Usage:
        even = Predicate(lambda n: n % 2 == 0, name="even", message="Must be even")
    """
    fn: Callable[[Any], bool]
    name: str = "predicate"
    message: str | None = None

    @property
    def constraint_name(self) -> str:
        return self.name

    def validate(self, value: Any) -> CheckResult:
        if self.fn(value): return CheckResult.valid()
        return CheckResult.invalid(self.message or f"Value failed check '{self.name}'", constraint=self.name, actual=value)


def _run_check(check: Check, value: Any) -> CheckResult:
    try: return check.validate(value)
    except Exception as e:
        return CheckResult.invalid(f"Check '{check.constraint_name}' raised {type(e).__name__}: {e}",
            ErrorKind.CUSTOM_VALIDATION_FAILED, constraint=check.constraint_name, actual=value)


def failures(checks: Sequence[Check], value: Any) -> list[CheckResult]:
    """Run every check against value and return the failures in order.

    A check that raises fails with CUSTOM_VALIDATION_FAILED instead of propagating.
    """
    return [result for check in checks if not (result := _run_check(check, value)).is_valid]
