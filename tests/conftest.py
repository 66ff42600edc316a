"""Shared fixtures for schemakit tests."""
import pytest

from schemakit import obj, string, number, integer, array, require_if
from schemakit.config import get_settings


@pytest.fixture(autouse=True)
def fresh_settings():
    """Settings are cached; tests that patch SCHEMAKIT_* variables need a fresh read."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def user_schema():
    return obj({
        "username": string().min(3).required(),
        "email": string().email().required().with_translation_key("errors.email"),
        "age": integer().min(0),
        "password": string().min(8).redacted(),
    })


@pytest.fixture
def account_schema():
    return obj({
        "status": string().valid("active", "inactive"),
        "reason": require_if(string(), "status", "inactive"),
        "score": number(),
        "tags": array(string()),
    })
