"""schemakit: declarative schema validation and transformation

Describe the shape of structured data with combinators, validate input
against it, and derive new schemas (partial, pick, merge, ...) whose static
projections stay in sync.

    from schemakit import obj, string, number, validate, partial

    user = obj({"name": string().required(), "age": number().integer().min(0)})
    validate(user, {"name": "Ada", "age": 36})
    update = partial(user)
"""
__version__ = "0.1.0"

from schemakit.analysis import (
    Presence,
    SchemaDiff,
    describe,
    describe_with_examples,
    diff,
    generate_example,
    get_dependency_graph,
    get_field_presence,
)
from schemakit.builders import (
    alternatives,
    any_,
    array,
    boolean,
    date,
    field,
    forbidden,
    integer,
    number,
    obj,
    primitive,
    string,
    strip_field,
)
from schemakit.checks import Check, CheckResult, Predicate
from schemakit.config import Settings, get_settings
from schemakit.constraints import (
    ObjectRule,
    RuleKind,
    at_least_one_of,
    conditional_field,
    dynamic_default,
    mutually_exclusive,
    require_if,
)
from schemakit.errors import (
    AggregateValidationError,
    AsyncValidationError,
    Err,
    ErrorKind,
    Ok,
    Result,
    SchemaDefinitionError,
    SchemaError,
    SchemaNotFoundError,
    ValidationIssue,
)
from schemakit.formatting import format_error, format_error_with_codes
from schemakit.generators import JSONSchemaGenerator, TypeScriptGenerator, to_json_schema
from schemakit.logging import configure_logging, get_logger
from schemakit.nodes import (
    UNDEFINED,
    AlternativesSchema,
    ArraySchema,
    Branch,
    ConditionalRule,
    Constraints,
    FieldSpec,
    Forbidden,
    Kind,
    ObjectSchema,
    Primitive,
    SchemaNode,
    StripMarker,
)
from schemakit.projection import to_model, to_typed_dict
from schemakit.registry import SchemaRegistry
from schemakit.transform import (
    Omitter,
    Redactor,
    deep_partial,
    extend_with,
    extend_with_defaults,
    get_meta,
    get_version,
    merge,
    omit,
    omit_by,
    partial,
    pick,
    pick_by,
    pick_by_type,
    require_all,
    with_custom_validator,
    with_example,
    with_meta,
    with_omitted_fields,
    with_redacted_fields,
    with_translation_key,
    with_version,
)
from schemakit.validator import SafeValidationResult, safe_validate, validate, validate_async

__all__ = [
    "__version__",
    # Builders
    "alternatives",
    "any_",
    "array",
    "boolean",
    "date",
    "field",
    "forbidden",
    "integer",
    "number",
    "obj",
    "primitive",
    "string",
    "strip_field",
    # Nodes
    "UNDEFINED",
    "AlternativesSchema",
    "ArraySchema",
    "Branch",
    "ConditionalRule",
    "Constraints",
    "FieldSpec",
    "Forbidden",
    "Kind",
    "ObjectSchema",
    "Primitive",
    "SchemaNode",
    "StripMarker",
    "Check",
    "CheckResult",
    "Predicate",
    # Validation
    "validate",
    "safe_validate",
    "validate_async",
    "SafeValidationResult",
    # Constraints
    "ObjectRule",
    "RuleKind",
    "require_if",
    "conditional_field",
    "mutually_exclusive",
    "at_least_one_of",
    "dynamic_default",
    # Transforms
    "partial",
    "deep_partial",
    "require_all",
    "pick",
    "omit",
    "pick_by",
    "omit_by",
    "pick_by_type",
    "merge",
    "extend_with",
    "extend_with_defaults",
    "with_redacted_fields",
    "with_omitted_fields",
    "with_custom_validator",
    "with_translation_key",
    "with_meta",
    "get_meta",
    "with_version",
    "get_version",
    "with_example",
    "Redactor",
    "Omitter",
    # Analysis
    "diff",
    "SchemaDiff",
    "Presence",
    "get_dependency_graph",
    "get_field_presence",
    "generate_example",
    "describe",
    "describe_with_examples",
    # Projection and generators
    "to_typed_dict",
    "to_model",
    "to_json_schema",
    "JSONSchemaGenerator",
    "TypeScriptGenerator",
    # Errors and formatting
    "ErrorKind",
    "ValidationIssue",
    "SchemaError",
    "SchemaDefinitionError",
    "SchemaNotFoundError",
    "AggregateValidationError",
    "AsyncValidationError",
    "Result",
    "Ok",
    "Err",
    "format_error",
    "format_error_with_codes",
    # Registry, config, logging
    "SchemaRegistry",
    "Settings",
    "get_settings",
    "configure_logging",
    "get_logger",
]
