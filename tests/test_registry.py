"""Tests for the explicit schema registry."""
import pytest

from schemakit import (
    AggregateValidationError,
    SchemaDefinitionError,
    SchemaNotFoundError,
    SchemaRegistry,
    string,
)


@pytest.fixture
def registry(user_schema):
    return SchemaRegistry({"user": user_schema.with_version("1")})


class TestSchemaRegistry:

    def test_lookup(self, registry, user_schema):
        assert "user" in registry
        assert len(registry) == 1
        assert registry.get("user").fields == user_schema.fields
        assert registry.names() == list(registry) == ["user"]

    def test_duplicate_names_rejected(self, registry):
        with pytest.raises(SchemaDefinitionError):
            registry.register("user", string())

    def test_replace(self, registry):
        registry.register("user", string().with_version("2"), replace=True)

        assert registry.versions() == {"user": "2"}

    def test_unknown_name(self, registry):
        with pytest.raises(SchemaNotFoundError):
            registry.get("order")
        with pytest.raises(SchemaNotFoundError):
            registry.unregister("order")

    def test_unregister(self, registry):
        registry.unregister("user")

        assert "user" not in registry

    def test_only_schema_nodes(self, registry):
        with pytest.raises(SchemaDefinitionError):
            registry.register("bad", {"type": "string"})

    def test_validate_by_name(self, registry):
        assert registry.validate("user", {"username": "ada", "email": "ada@example.com"})["username"] == "ada"
        with pytest.raises(AggregateValidationError) as exc_info:
            registry.validate("user", {})
        assert exc_info.value.schema_name == "user"

    def test_safe_validate_by_name(self, registry):
        result = registry.safe_validate("user", {"username": "ada"}, abort_early=True)

        assert len(result.issues) == 1
        assert result.error.schema_name == "user"

    def test_registries_are_independent(self, registry):
        assert "user" not in SchemaRegistry()
