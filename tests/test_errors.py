"""Tests for issues, aggregate errors, accumulators and the Result monad."""
import pytest

from schemakit import (
    AggregateValidationError,
    ErrorKind,
    SchemaDefinitionError,
    SchemaNotFoundError,
    ValidationIssue,
    obj,
    safe_validate,
    string,
)
from schemakit.errors import (
    AppError,
    CollectAllAccumulator,
    Err,
    ErrorCode,
    FailFastAccumulator,
    Ok,
    collect_results,
    create_accumulator,
    format_path,
    from_exception,
    try_result,
)


def issue(path=(), kind=ErrorKind.CONSTRAINT_VIOLATION, message="bad"):
    return ValidationIssue(path=tuple(path), message=message, kind=kind)


class TestPaths:

    def test_format_path(self):
        assert format_path(()) == "$"
        assert format_path(("user", "email")) == "user.email"
        assert format_path(("items", 0, "name")) == "items[0].name"
        assert format_path((2,)) == "[2]"

    def test_with_prefix(self):
        assert issue(["name"]).with_prefix(("items", 1)).path == ("items", 1, "name")

    def test_to_dict_omits_empty_values(self):
        assert issue(["a"]).to_dict() == {"path": "a", "kind": "constraint_violation", "message": "bad"}


class TestAggregateValidationError:

    def test_single_issue_message(self):
        error = AggregateValidationError([issue(["email"], message="Invalid email format")])

        assert str(error) == "email: Invalid email format"

    def test_multiple_issue_message(self):
        error = AggregateValidationError([issue(["a"]), issue(["b"])])

        assert str(error) == "Validation failed (2 errors)"
        assert error.first_issue.path == ("a",)

    def test_grouping(self):
        error = AggregateValidationError([issue(["a"]), issue(["a"], ErrorKind.TYPE_MISMATCH), issue(["b"])])

        assert list(error.field_issues) == ["a", "b"]
        assert len(error.issues_at("a")) == 2
        assert error.kinds == [ErrorKind.CONSTRAINT_VIOLATION, ErrorKind.TYPE_MISMATCH, ErrorKind.CONSTRAINT_VIOLATION]

    def test_to_dict(self):
        error = AggregateValidationError([issue(["a"]), issue(["b"])])

        payload = error.to_dict()["error"]

        assert payload["error_count"] == 2
        assert [e["path"] for e in payload["errors"]] == ["a", "b"]

    def test_to_app_error(self):
        single = AggregateValidationError([issue(["a"], ErrorKind.MISSING_REQUIRED_FIELD)]).to_app_error()
        several = AggregateValidationError([issue(["a"]), issue(["b"])], schema_name="user").to_app_error()

        assert single.code is ErrorCode.E2001_REQUIRED_FIELD_MISSING
        assert single.code.http_status == 422
        assert several.code is ErrorCode.E2000_VALIDATION_GENERIC
        assert several.metadata["schema"] == "user"
        assert several.to_dict()["error"]["category"] == "validation"

    def test_schema_name_from_registry_style_calls(self):
        error = safe_validate(obj({"a": string().required()}), {}, schema_name="signup").error

        assert error.schema_name == "signup"


class TestSchemaErrors:

    def test_definition_errors_are_value_errors(self):
        with pytest.raises(ValueError):
            string().min(3).max(1)

    def test_not_found_is_key_error(self):
        error = SchemaNotFoundError("Schema 'x' is not registered")

        assert isinstance(error, KeyError)
        assert str(error) == "Schema 'x' is not registered"
        assert error.code.http_status == 404

    def test_definition_error_code(self):
        assert SchemaDefinitionError("x").code.category == "schema"


class TestAccumulators:

    def test_fail_fast(self):
        accumulator = create_accumulator(abort_early=True)

        assert accumulator.add(issue(["a"])) is False
        accumulator.add(issue(["b"]))

        assert isinstance(accumulator, FailFastAccumulator)
        assert [i.path for i in accumulator.get_issues()] == [("a",)]
        assert accumulator.stopped

    def test_collect_all_caps(self):
        accumulator = create_accumulator(max_issues=2)

        assert accumulator.add(issue(["a"])) is True
        assert accumulator.add(issue(["b"])) is False
        accumulator.add(issue(["c"]))

        assert isinstance(accumulator, CollectAllAccumulator)
        assert len(accumulator.get_issues()) == 2

    def test_to_error(self):
        accumulator = create_accumulator()

        assert accumulator.to_error() is None
        accumulator.add(issue(["a"]))
        assert isinstance(accumulator.to_error("user"), AggregateValidationError)


class TestResult:

    def test_ok_chain(self):
        assert Ok(2).map(lambda x: x * 3).and_then(lambda x: Ok(x + 1)).unwrap() == 7

    def test_err_short_circuits(self):
        result = Err("boom").map(lambda x: x * 3)

        assert result.is_err()
        assert result.unwrap_or(0) == 0
        with pytest.raises(ValueError):
            result.unwrap()

    def test_match(self):
        assert Ok(1).match(ok=lambda v: f"ok {v}", err=str) == "ok 1"
        assert Err("x").match(ok=str, err=lambda e: f"err {e}") == "err x"

    def test_try_result(self):
        assert try_result(lambda: 1) == Ok(1)
        failed = try_result(lambda: 1 / 0)
        assert isinstance(failed.unwrap_err(), AppError)
        assert isinstance(failed.unwrap_err().cause, ZeroDivisionError)

    def test_from_exception(self):
        error = from_exception(KeyError("user"), code=ErrorCode.E3003_SCHEMA_NOT_FOUND, origin="registry", name="user")

        payload = error.unwrap_err().to_dict()["error"]
        assert payload["code"] == "E3003_SCHEMA_NOT_FOUND"
        assert payload["category"] == "schema"
        assert payload["metadata"] == {"name": "user"}
        assert error.unwrap_err().context.origin == "registry"
        assert Err("x").flat_map(lambda v: Ok(v)) == Err("x")

    def test_collect_results(self):
        assert collect_results([Ok(1), Ok(2)]) == Ok([1, 2])
        assert collect_results([Ok(1), Err("a"), Err("b")]) == Err(["a", "b"])

    def test_error_kind_codes(self):
        assert ErrorKind.FORBIDDEN_FIELD_PRESENT.code is ErrorCode.E2006_FORBIDDEN_FIELD
        assert ErrorKind.ASYNC_VALIDATION_FAILED.code.category == "validation"
