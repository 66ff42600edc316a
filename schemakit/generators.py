"""Schema Generators

Generate JSON Schema and TypeScript definitions from schema nodes. Schemas are
the single source of truth; generated artifacts are never edited by hand.

Features:
- JSON Schema draft 2020-12 (through the pydantic projection)
- TypeScript interfaces with JSDoc comments
- Literal unions for enumerated values
"""
from __future__ import annotations

import json
from abc import ABC, abstractmethod
from typing import Any

from pydantic import TypeAdapter

from schemakit.nodes import (
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
from schemakit.projection import annotation_for, to_model

JSON_SCHEMA_DIALECT = "https://json-schema.org/draft/2020-12/schema"


def to_json_schema(schema: SchemaNode, name: str = "Schema", *, mode: str = "validation") -> dict[str, Any]:
    """JSON Schema (draft 2020-12) for schema."""
    if isinstance(schema, ObjectSchema): json_schema = to_model(schema, name).model_json_schema(mode=mode)
    else: json_schema = TypeAdapter(annotation_for(schema, name)).json_schema(mode=mode)
    json_schema["$schema"] = JSON_SCHEMA_DIALECT
    if version := schema.get_version(): json_schema["x-version"] = version
    return json_schema


class SchemaGenerator(ABC):
    """Base class for schema generators."""

    @abstractmethod
    def generate(self, schema: SchemaNode, name: str) -> str:
        """Generate schema representation."""

    def generate_all(self, schemas: dict[str, SchemaNode], separator: str = "\n\n") -> str:
        return separator.join(self.generate(schema, name) for name, schema in schemas.items())


class JSONSchemaGenerator(SchemaGenerator):
    """Generate JSON Schema (draft 2020-12)."""

    def __init__(self, mode: str = "validation", indent: int | None = 2):
        self.mode, self.indent = mode, indent

    def generate(self, schema: SchemaNode, name: str = "Schema") -> str:
        return json.dumps(to_json_schema(schema, name, mode=self.mode), indent=self.indent)


class TypeScriptGenerator(SchemaGenerator):
    """Generate TypeScript type definitions.

    Features:
    - Interfaces with proper optionality
    - JSDoc comments from field descriptions
    - Inline nested object types
    - Literal unions for allowed values
    """

    TYPE_MAP: dict[Kind, str] = {
        Kind.STRING: "string",
        Kind.NUMBER: "number",
        Kind.INTEGER: "number",
        Kind.BOOLEAN: "boolean",
        Kind.DATE: "string",  # ISO8601
        Kind.ANY: "unknown",
    }

    def __init__(self, export_style: str = "export", use_type_alias: bool = False, indent: str = "  "):
        self.export_style, self.use_type_alias, self.indent = export_style, use_type_alias, indent

    def generate(self, schema: SchemaNode, name: str = "Schema") -> str:
        """Generate a TypeScript interface (or type alias for non-object schemas)."""
        lines: list[str] = []

        if description := schema.get_meta("description"):
            lines.append("/**")
            lines.extend(f" * {line.strip()}" for line in str(description).strip().split("\n"))
            lines.append(" */")

        if not isinstance(schema, ObjectSchema):
            lines.append(f"{self.export_style} type {name} = {self._node_to_ts(schema, 0)};")
            return "\n".join(lines)

        keyword = "type" if self.use_type_alias else "interface"
        eq = " =" if self.use_type_alias else ""
        lines.append(f"{self.export_style} {keyword} {name}{eq} {self._object_body(schema, 0)}")
        return "\n".join(lines)

    def _object_body(self, schema: ObjectSchema, depth: int) -> str:
        pad = self.indent * (depth + 1)
        lines = ["{"]
        for key, spec in schema.fields.items():
            if isinstance(spec.schema, (Forbidden, StripMarker)): continue
            lines.extend(f"{pad}{line}" for line in self._generate_field(key, spec, depth + 1))
        if schema.unknown == "allow": lines.append(f"{pad}[key: string]: unknown;")
        lines.append(f"{self.indent * depth}}}")
        return "\n".join(lines)

    def _generate_field(self, name: str, spec: FieldSpec, depth: int) -> list[str]:
        """Generate TypeScript field definition with JSDoc."""
        lines: list[str] = []

        comments: list[str] = []
        if spec.description: comments.append(spec.description)
        if spec.redacted: comments.append("@sensitive This field contains sensitive data")
        if spec.conditional is not None: comments.append(f"Depends on `{spec.conditional.depends_on}`")

        if len(comments) == 1:
            lines.append(f"/** {comments[0]} */")
        elif comments:
            lines.append("/**")
            lines.extend(f" * {comment}" for comment in comments)
            lines.append(" */")

        if spec.conditional is None: ts_type = self._node_to_ts(spec.schema, depth)
        elif spec.conditional.has_fallback:
            targets = [t.schema if isinstance(t, FieldSpec) else t for t in spec.conditional.targets()]
            ts_type = " | ".join(dict.fromkeys(self._node_to_ts(t, depth) for t in targets
                if not isinstance(t, (Forbidden, StripMarker))))
        else: ts_type = "unknown"
        optional = "" if (spec.required or spec.has_default) and spec.conditional is None else "?"
        key = name if name.isidentifier() else json.dumps(name)

        lines.append(f"{key}{optional}: {ts_type};")
        return lines

    def _node_to_ts(self, node: SchemaNode, depth: int) -> str:
        match node:
            case Primitive():
                if node.constraints.allowed:
                    ts = " | ".join(json.dumps(v, default=str) for v in node.constraints.allowed)
                else: ts = self.TYPE_MAP[node.kind]
                return f"{ts} | null" if node.constraints.allow_none and ts != "unknown" else ts
            case ObjectSchema(): return self._object_body(node, depth)
            case ArraySchema():
                element = self._node_to_ts(node.element, depth)
                return f"{element}[]" if element.isidentifier() else f"Array<{element}>"
            case AlternativesSchema():
                return " | ".join(dict.fromkeys(self._node_to_ts(c, depth) for c in node.options))
        return "never"
