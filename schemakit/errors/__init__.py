"""Error Handling for schemakit

Key components:
- ErrorKind / ValidationIssue: what went wrong and where
- AggregateValidationError: every issue from one validation call
- SchemaDefinitionError: a schema was built or transformed incorrectly
- Result[T, E]: monadic container for call sites that avoid exceptions

Usage:
    from schemakit.errors import Ok, Err, AggregateValidationError

    match registry.safe_validate("user", payload).to_result():
        case Ok(user):
            save(user)
        case Err(error):
            return format_error(error)
"""
from .types import (
    Result,
    Ok,
    Err,
    AppError,
    ErrorCode,
    ErrorContext,
    from_exception,
    try_result,
    collect_results,
)

from .issues import (
    ErrorKind,
    Path,
    PathSegment,
    ValidationIssue,
    SchemaError,
    SchemaDefinitionError,
    SchemaNotFoundError,
    AggregateValidationError,
    AsyncValidationError,
    IssueAccumulator,
    FailFastAccumulator,
    CollectAllAccumulator,
    create_accumulator,
    format_path,
)

__all__ = [
    # Result monad
    "Result",
    "Ok",
    "Err",
    "AppError",
    "ErrorCode",
    "ErrorContext",
    "from_exception",
    "try_result",
    "collect_results",
    # Validation issues
    "ErrorKind",
    "Path",
    "PathSegment",
    "ValidationIssue",
    "SchemaError",
    "SchemaDefinitionError",
    "SchemaNotFoundError",
    "AggregateValidationError",
    "AsyncValidationError",
    "IssueAccumulator",
    "FailFastAccumulator",
    "CollectAllAccumulator",
    "create_accumulator",
    "format_path",
]
