"""Tests for atomic checks and their combinators."""
from datetime import date, datetime
from decimal import Decimal

from schemakit import ErrorKind
from schemakit.checks import (
    DateRange,
    EmailFormat,
    ListLength,
    NumericRange,
    OneOf,
    Predicate,
    RegexPattern,
    StringLength,
    URIFormat,
    UUIDFormat,
    failures,
    is_number,
)


class TestCheckResult:

    def test_to_dict(self):
        result = StringLength(min_length=3).validate("ab")

        assert result.to_dict()["valid"] is False
        assert result.to_dict()["kind"] == "constraint_violation"
        assert StringLength(min_length=3).validate("abc").to_dict() == {"valid": True}

    def test_type_mismatch_kind(self):
        assert StringLength(min_length=1).validate(5).kind is ErrorKind.TYPE_MISMATCH


class TestAtomicChecks:

    def test_string_length(self):
        check = StringLength(2, 4)

        assert check("abc").is_valid
        assert not check("a").is_valid
        assert not check("abcde").is_valid

    def test_regex_anchors_at_start(self):
        assert RegexPattern(r"\d+").validate("12ab").is_valid
        assert not RegexPattern(r"\d+").validate("ab12").is_valid

    def test_one_of_is_bool_aware(self):
        assert OneOf(1, 2).validate(1).is_valid
        assert not OneOf(1, 2).validate(True).is_valid
        assert OneOf(True).validate(True).is_valid

    def test_formats(self):
        assert EmailFormat().validate("ada@example.com").is_valid
        assert UUIDFormat().validate("550e8400-e29b-41d4-a716-446655440000").is_valid
        assert not UUIDFormat(version=1).validate("550e8400-e29b-41d4-a716-446655440000").is_valid
        assert URIFormat().validate("https://example.com/a").is_valid
        assert not URIFormat().validate("ftp://example.com").is_valid

    def test_numeric_range(self):
        check = NumericRange(0, 10)

        assert check(Decimal("9.5")).is_valid
        assert not check(-1).is_valid

    def test_date_range_compares_calendar_dates(self):
        check = DateRange(date(2024, 1, 1), date(2024, 1, 31))

        assert check(datetime(2024, 1, 31, 23, 59)).is_valid
        assert not check(date(2024, 2, 1)).is_valid

    def test_list_length(self):
        assert not ListLength(1, None).validate([]).is_valid

    def test_is_number(self):
        assert is_number(1) and is_number(1.5) and is_number(Decimal("2"))
        assert not is_number(True)
        assert not is_number(float("inf"))
        assert not is_number(Decimal("NaN"))
        assert not is_number("1")


class TestCombinators:

    def test_and(self):
        check = StringLength(min_length=2) & RegexPattern(r"^[a-z]+$")

        assert check("ab").is_valid
        assert not check("a").is_valid
        assert not check("AB").is_valid

    def test_or(self):
        check = OneOf("admin") | StringLength(max_length=2)

        assert check("admin").is_valid
        assert check("ab").is_valid
        assert "Neither constraint satisfied" in check("member").message

    def test_not(self):
        not_reserved = ~OneOf("root", "admin")

        assert not_reserved("ada").is_valid
        assert not not_reserved("root").is_valid

    def test_with_message(self):
        assert StringLength(min_length=8).with_message("Too short")("abc").message == "Too short"

    def test_constraint_names(self):
        check = (StringLength(min_length=2) & ~Predicate(str.isdigit, name="digits"))

        assert check.constraint_name == "(min_length[2] AND NOT(digits))"

    def test_failures_collects_every_failing_check(self):
        failed = failures([StringLength(min_length=5), RegexPattern(r"^\d+$"), OneOf("ab")], "ab")

        assert len(failed) == 2

    def test_failures_turns_exceptions_into_results(self):
        failed = failures([Predicate(lambda s: s.missing, name="broken"), StringLength(min_length=1)], "ab")

        assert len(failed) == 1
        assert failed[0].kind is ErrorKind.CUSTOM_VALIDATION_FAILED
        assert failed[0].constraint == "broken"
