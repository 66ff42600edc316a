"""Error Formatting Boundary

Maps validation errors to display payloads for callers such as request
handlers. Translation keys attached with `with_translation_key` are resolved
here and nowhere else; validation outcomes never depend on them.

Usage:
    result = safe_validate(schema, body)
    if not result.ok:
        return 400, format_error(result.error, {"errors.email": "Adresse e-mail invalide"})
"""
from __future__ import annotations

from typing import Any, Mapping

from schemakit.errors import ValidationIssue

DEFAULT_CODE = "VALIDATION_ERROR"


def _issues(error: BaseException) -> tuple[ValidationIssue, ...]:
    return tuple(getattr(error, "issues", ()))


def _detail(issue: ValidationIssue, translation_map: Mapping[str, str] | None) -> dict[str, Any]:
    message = issue.message
    if translation_map and issue.translation_key in translation_map: message = translation_map[issue.translation_key]
    detail = {"path": issue.dotted_path, "message": message, "kind": issue.kind.value}
    if issue.translation_key: detail["translation_key"] = issue.translation_key
    return detail


def format_error(error: BaseException, translation_map: Mapping[str, str] | None = None) -> dict[str, Any]:
    """{"message", "details": [{"path", "message", "kind", "translation_key"?}]}.

    Issues whose translation key is in translation_map get the mapped message;
    others keep the engine message. Exceptions without issues (for example an
    async validator's own error) produce empty details.
    """
    return {"message": str(error), "details": [_detail(i, translation_map) for i in _issues(error)]}


def format_error_with_codes(
    error: BaseException,
    code_map: Mapping[str, str],
    translation_map: Mapping[str, str] | None = None,
) -> dict[str, Any]:
    """format_error plus a `code` per detail, looked up by error kind (falls back to VALIDATION_ERROR)."""
    payload = format_error(error, translation_map)
    for detail, issue in zip(payload["details"], _issues(error)):
        detail["code"] = code_map.get(issue.kind.value, code_map.get(issue.kind, DEFAULT_CODE))
    return payload
