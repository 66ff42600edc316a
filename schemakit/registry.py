"""Schema Registry

Named schemas owned by the caller. There is no module-level registry: create a
SchemaRegistry where the application is wired together and pass it to the
code that needs it.
"""
from __future__ import annotations

from typing import Any, Callable, Iterable, Iterator

from schemakit.errors import SchemaDefinitionError, SchemaNotFoundError
from schemakit.logging import registry_logger
from schemakit.nodes import SchemaNode
from schemakit.validator import SafeValidationResult, safe_validate, validate, validate_async


class SchemaRegistry:
    """Registry of named schemas.

    Usage:
        schemas = SchemaRegistry()
        schemas.register("user", user_schema.with_version("2"))
        user = schemas.validate("user", payload)
    """

    __slots__ = ("_schemas",)

    def __init__(self, schemas: dict[str, SchemaNode] | None = None):
        self._schemas: dict[str, SchemaNode] = {}
        for name, schema in (schemas or {}).items(): self.register(name, schema)

    def __contains__(self, name: object) -> bool: return name in self._schemas

    def __len__(self) -> int: return len(self._schemas)

    def __iter__(self) -> Iterator[str]: return iter(self._schemas)

    def register(self, name: str, schema: SchemaNode, *, replace: bool = False) -> SchemaNode:
        """Register schema under name. Re-registering a name requires replace=True."""
        if not isinstance(schema, SchemaNode):
            raise SchemaDefinitionError(f"Cannot register {type(schema).__name__} as a schema")
        if name in self._schemas and not replace:
            raise SchemaDefinitionError(f"Schema '{name}' is already registered")
        event = "schema_replaced" if name in self._schemas else "schema_registered"
        self._schemas[name] = schema
        registry_logger().debug(event, schema=name, version=schema.get_version(), kind=schema.kind.value)
        return schema

    def unregister(self, name: str) -> SchemaNode:
        if name not in self._schemas: raise SchemaNotFoundError(f"Schema '{name}' is not registered")
        registry_logger().debug("schema_unregistered", schema=name)
        return self._schemas.pop(name)

    def get(self, name: str) -> SchemaNode:
        if (schema := self._schemas.get(name)) is None:
            raise SchemaNotFoundError(f"Schema '{name}' is not registered")
        return schema

    def names(self) -> list[str]: return list(self._schemas)

    def versions(self) -> dict[str, str | None]:
        return {name: schema.get_version() for name, schema in self._schemas.items()}

    def validate(self, name: str, value: Any, **options: Any) -> Any:
        return validate(self.get(name), value, schema_name=name, **options)

    def safe_validate(self, name: str, value: Any, **options: Any) -> SafeValidationResult:
        return safe_validate(self.get(name), value, schema_name=name, **options)

    async def validate_async(
        self, name: str, value: Any, validators: Iterable[Callable[[Any], Any]] = (), **options: Any
    ) -> Any:
        return await validate_async(self.get(name), value, validators, schema_name=name, **options)
