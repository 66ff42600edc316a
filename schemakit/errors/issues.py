"""Validation Issue System

Structured issues with paths, error kinds, offending values (redacted when the
field is marked sensitive) and optional translation keys. Issues from one
validation call are aggregated into a single AggregateValidationError.

Error Format:
{
    "error": {
        "type": "validation_error",
        "message": "Validation failed (2 errors)",
        "error_count": 2,
        "errors": [
            {
                "path": "user.email",
                "kind": "constraint_violation",
                "message": "Invalid email format",
                "value": "invalid-email"
            }
        ]
    }
}
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, Sequence

from .types import AppError, ErrorCode

PathSegment = str | int
Path = tuple[PathSegment, ...]


class ErrorKind(str, Enum):
    """Taxonomy of validation failures."""
    MISSING_REQUIRED_FIELD = "missing_required_field"
    TYPE_MISMATCH = "type_mismatch"
    CONSTRAINT_VIOLATION = "constraint_violation"
    FORBIDDEN_FIELD_PRESENT = "forbidden_field_present"
    CUSTOM_VALIDATION_FAILED = "custom_validation_failed"
    MUTUAL_EXCLUSION_VIOLATED = "mutual_exclusion_violated"
    AT_LEAST_ONE_REQUIRED = "at_least_one_required"
    ASYNC_VALIDATION_FAILED = "async_validation_failed"

    @property
    def code(self) -> ErrorCode:
        return _KIND_CODES[self]


_KIND_CODES: dict[ErrorKind, ErrorCode] = {
    ErrorKind.MISSING_REQUIRED_FIELD: ErrorCode.E2001_REQUIRED_FIELD_MISSING,
    ErrorKind.TYPE_MISMATCH: ErrorCode.E2004_INVALID_TYPE,
    ErrorKind.CONSTRAINT_VIOLATION: ErrorCode.E2005_CONSTRAINT_VIOLATION,
    ErrorKind.FORBIDDEN_FIELD_PRESENT: ErrorCode.E2006_FORBIDDEN_FIELD,
    ErrorKind.CUSTOM_VALIDATION_FAILED: ErrorCode.E2007_CUSTOM_VALIDATION,
    ErrorKind.MUTUAL_EXCLUSION_VIOLATED: ErrorCode.E2010_MUTUAL_EXCLUSION,
    ErrorKind.AT_LEAST_ONE_REQUIRED: ErrorCode.E2011_AT_LEAST_ONE,
    ErrorKind.ASYNC_VALIDATION_FAILED: ErrorCode.E2020_ASYNC_VALIDATION,
}


def format_path(path: Sequence[PathSegment]) -> str:
    """Format a path tuple as a dotted path ("items[0].name")."""
    if not path: return "$"
    parts: list[str] = []
    for segment in path:
        if isinstance(segment, int): parts.append(f"[{segment}]")
        elif parts: parts.append(f".{segment}")
        else: parts.append(str(segment))
    return "".join(parts)


@dataclass(frozen=True, slots=True)
class ValidationIssue:
    """A single validation failure.

    - path: ordered field/index segments leading to the offending value
    - message: human-readable error message
    - kind: ErrorKind of the failure
    - value: the offending value (redacted for sensitive fields)
    - translation_key: lookup key for localized messages, if the field has one
    """
    path: Path
    message: str
    kind: ErrorKind
    value: Any = None
    translation_key: str | None = None

    @property
    def dotted_path(self) -> str: return format_path(self.path)

    def with_prefix(self, prefix: Path) -> ValidationIssue:
        return ValidationIssue(path=prefix + self.path, message=self.message, kind=self.kind,
            value=self.value, translation_key=self.translation_key)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for API responses."""
        result = {"path": self.dotted_path, "kind": self.kind.value, "message": self.message}
        if self.value is not None: result["value"] = self.value
        if self.translation_key: result["translation_key"] = self.translation_key
        return result


class SchemaError(Exception):
    """Base class for every error raised by schemakit."""

    code: ErrorCode = ErrorCode.E3000_SCHEMA_GENERIC


class SchemaDefinitionError(SchemaError, ValueError):
    """A schema was constructed or transformed with invalid arguments."""

    code = ErrorCode.E3001_INVALID_DEFINITION


class SchemaNotFoundError(SchemaError, KeyError):
    """A named schema is not registered."""

    code = ErrorCode.E3003_SCHEMA_NOT_FOUND

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else "Schema not found"


class AggregateValidationError(SchemaError):
    """All issues collected during one validation call.

    Callers must not assume only the first issue is meaningful: the engine
    collects every sibling failure before raising.
    """

    code = ErrorCode.E2000_VALIDATION_GENERIC

    def __init__(self, issues: Iterable[ValidationIssue], *, schema_name: str | None = None):
        self.issues: tuple[ValidationIssue, ...] = tuple(issues)
        self.schema_name = schema_name
        super().__init__(self.message)

    @property
    def message(self) -> str:
        if not self.issues: return "Validation failed"
        if len(self.issues) == 1: return f"{(i := self.issues[0]).dotted_path}: {i.message}"
        return f"Validation failed ({len(self.issues)} errors)"

    def __str__(self) -> str:
        return self.message

    @property
    def kinds(self) -> list[ErrorKind]: return [i.kind for i in self.issues]

    @property
    def first_issue(self) -> ValidationIssue | None: return self.issues[0] if self.issues else None

    @property
    def field_issues(self) -> dict[str, list[ValidationIssue]]:
        """Group issues by dotted path."""
        result: dict[str, list[ValidationIssue]] = {}
        for issue in self.issues: result.setdefault(issue.dotted_path, []).append(issue)
        return result

    def issues_at(self, *path: PathSegment) -> list[ValidationIssue]:
        return [i for i in self.issues if i.path == path]

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for API responses."""
        return {"error": {"type": "validation_error", "message": self.message,
            "error_count": len(self.issues), "errors": [i.to_dict() for i in self.issues]}}

    def to_app_error(self) -> AppError:
        """Convert to AppError for Result-based call sites."""
        if len(self.issues) == 1:
            i = self.issues[0]
            return AppError(code=i.kind.code, message=self.message,
                metadata={"path": i.dotted_path, "kind": i.kind.value, "value": i.value})
        return AppError(code=self.code, message=self.message,
            metadata={"schema": self.schema_name, "error_count": len(self.issues),
                "errors": [i.to_dict() for i in self.issues]})


class AsyncValidationError(SchemaError):
    """Raised by async validators to report issues in the engine's format.

    The engine never wraps exceptions from async validators: whatever the first
    failing validator raises is what the caller sees. Raising this class lets a
    validator attach a path and the ASYNC_VALIDATION_FAILED kind.
    """

    code = ErrorCode.E2020_ASYNC_VALIDATION

    def __init__(self, message: str, *, path: Sequence[PathSegment] = ()):
        super().__init__(message)
        self.issue = ValidationIssue(path=tuple(path), message=message, kind=ErrorKind.ASYNC_VALIDATION_FAILED)

    @property
    def issues(self) -> tuple[ValidationIssue, ...]: return (self.issue,)


# ============================================================================
# Accumulators
# ============================================================================

class IssueAccumulator(ABC):
    """Abstract base for issue accumulation strategies."""

    @abstractmethod
    def add(self, issue: ValidationIssue) -> bool:
        """Add an issue. Returns True if validation should continue."""

    @abstractmethod
    def get_issues(self) -> list[ValidationIssue]:
        """Get accumulated issues."""

    @property
    @abstractmethod
    def stopped(self) -> bool:
        """Whether no further issues will be accepted."""

    def has_issues(self) -> bool: return bool(self.get_issues())

    def to_error(self, schema_name: str | None = None) -> AggregateValidationError | None:
        """Convert to AggregateValidationError if issues exist."""
        if not self.has_issues(): return None
        return AggregateValidationError(self.get_issues(), schema_name=schema_name)


@dataclass
class FailFastAccumulator(IssueAccumulator):
    """Stops on the first issue."""
    _issue: ValidationIssue | None = None

    def add(self, issue: ValidationIssue) -> bool:
        if self._issue is None: self._issue = issue
        return False

    def get_issues(self) -> list[ValidationIssue]: return [self._issue] if self._issue else []

    @property
    def stopped(self) -> bool: return self._issue is not None


@dataclass
class CollectAllAccumulator(IssueAccumulator):
    """Gathers all issues up to max_issues."""
    max_issues: int = 100
    _issues: list[ValidationIssue] = field(default_factory=list)

    def add(self, issue: ValidationIssue) -> bool:
        if len(self._issues) < self.max_issues: self._issues.append(issue)
        return len(self._issues) < self.max_issues

    def get_issues(self) -> list[ValidationIssue]: return self._issues.copy()

    @property
    def stopped(self) -> bool: return len(self._issues) >= self.max_issues


def create_accumulator(abort_early: bool = False, max_issues: int = 100) -> IssueAccumulator:
    """Factory for creating accumulators based on mode."""
    return FailFastAccumulator() if abort_early else CollectAllAccumulator(max_issues=max_issues)
