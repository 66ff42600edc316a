"""Tests for structural transforms and output shaping."""
import pytest

from schemakit import (
    ErrorKind,
    FieldSpec,
    SchemaDefinitionError,
    alternatives,
    array,
    boolean,
    deep_partial,
    extend_with,
    extend_with_defaults,
    forbidden,
    get_meta,
    get_version,
    integer,
    merge,
    mutually_exclusive,
    number,
    obj,
    omit,
    omit_by,
    partial,
    pick,
    pick_by,
    pick_by_type,
    require_all,
    safe_validate,
    string,
    strip_field,
    validate,
    with_custom_validator,
    with_example,
    with_meta,
    with_omitted_fields,
    with_redacted_fields,
    with_translation_key,
    with_version,
)


@pytest.fixture
def profile_schema():
    return obj({
        "a": string().required(),
        "b": number().required(),
        "c": boolean().required(),
    })


class TestPresence:

    def test_partial_makes_fields_optional(self, profile_schema):
        assert validate(partial(profile_schema), {}) == {}

    def test_partial_is_idempotent(self, user_schema):
        assert partial(partial(user_schema)) == partial(user_schema)

    def test_partial_does_not_mutate_input(self, profile_schema):
        partial(profile_schema)

        assert all(spec.required for spec in profile_schema.fields.values())

    def test_partial_is_shallow(self):
        schema = obj({"inner": obj({"x": string().required()}).required()})

        assert not safe_validate(partial(schema), {"inner": {}}).ok

    def test_partial_relaxes_conditional_requirements(self, account_schema):
        assert validate(partial(account_schema), {"status": "inactive"}) == {"status": "inactive"}

    def test_deep_partial_recurses(self):
        schema = obj({
            "inner": obj({"x": string().required()}).required(),
            "items": array(obj({"y": integer().required()})),
            "either": alternatives(obj({"z": string().required()}), string()),
        })

        relaxed = deep_partial(schema)

        assert validate(relaxed, {"inner": {}, "items": [{}], "either": {}}) == {"inner": {}, "items": [{}], "either": {}}

    def test_deep_partial_keeps_constraints(self):
        relaxed = deep_partial(obj({"x": string().min(3).required()}))

        assert not safe_validate(relaxed, {"x": "ab"}).ok

    def test_require_all_restores_partial(self, profile_schema):
        assert require_all(partial(profile_schema)) == profile_schema

    def test_require_all_skips_forbidden_fields(self):
        schema = require_all(obj({"a": string(), "legacy": forbidden()}))

        assert schema.get_field("a").required
        assert not schema.get_field("legacy").required

    def test_object_required(self):
        with pytest.raises(SchemaDefinitionError):
            partial(string())


class TestSelection:

    def test_pick_keeps_schema_order(self, profile_schema):
        assert pick(profile_schema, ["c", "a"]).keys() == ["a", "c"]

    def test_pick_composes_as_intersection(self, profile_schema):
        assert pick(pick(profile_schema, ["a", "b"]), ["b", "c"]) == pick(profile_schema, ["b"])

    def test_pick_ignores_unknown_keys(self, profile_schema):
        assert pick(profile_schema, ["a", "zzz"]).keys() == ["a"]

    def test_pick_single_key_string(self, profile_schema):
        assert pick(profile_schema, "b").keys() == ["b"]

    def test_omit_preserves_order(self, profile_schema):
        assert omit(profile_schema, ["b"]).keys() == ["a", "c"]

    def test_picked_schema_validates_subset(self, profile_schema):
        assert validate(pick(profile_schema, ["a"]), {"a": "x", "b": 1}) == {"a": "x"}

    def test_pick_by_and_omit_by(self, user_schema):
        required = pick_by(user_schema, lambda spec, name: spec.required)
        public = omit_by(user_schema, lambda spec, name: spec.redacted)

        assert required.keys() == ["username", "email"]
        assert public.keys() == ["username", "email", "age"]

    def test_pick_by_type(self, user_schema):
        assert pick_by_type(user_schema, "integer").keys() == ["age"]
        with pytest.raises(SchemaDefinitionError):
            pick_by_type(user_schema, "money")

    def test_methods_match_functions(self, profile_schema):
        assert profile_schema.pick(["a"]) == pick(profile_schema, ["a"])
        assert profile_schema.omit(["a"]).partial() == partial(omit(profile_schema, ["a"]))


class TestCombination:

    def test_second_schema_wins_conflicts(self):
        merged = merge(obj({"a": string()}), obj({"a": number()}))

        assert validate(merged, {"a": 1}) == {"a": 1}
        assert not safe_validate(merged, {"a": "x"}).ok

    def test_merge_order(self):
        merged = merge(obj({"x": string(), "y": number()}), obj({"z": boolean(), "x": number().required()}))

        assert merged.keys() == ["x", "y", "z"]
        assert merged.get_field("x").required

    def test_merge_concatenates_rules(self):
        a = obj({"p": string(), "q": string()}).with_rules(mutually_exclusive(["p", "q"]))
        b = obj({"r": string(), "s": string()}).with_rules(mutually_exclusive(["r", "s"]))

        assert [rule.fields for rule in merge(a, b).rules] == [("p", "q"), ("r", "s")]

    def test_merge_prefers_second_unknown_policy(self):
        merged = merge(obj({"a": string()}, unknown="forbid"), obj({"b": string()}, unknown="allow"))

        assert merged.unknown == "allow"

    def test_extend_with_mapping(self, profile_schema):
        extended = extend_with(profile_schema, {"d": string(), "a": number().required()})

        assert extended.keys() == ["a", "b", "c", "d"]
        assert validate(extended, {"a": 1, "b": 2, "c": True}) == {"a": 1, "b": 2, "c": True}

    def test_extend_with_defaults(self):
        schema = extend_with_defaults(obj({"role": string(), "active": boolean()}), {"role": "member", "unknown": 1})

        assert validate(schema, {}) == {"role": "member"}
        assert schema.keys() == ["role", "active"]


class TestFieldMetadata:

    def test_translation_key_does_not_change_outcome(self, profile_schema):
        keyed = with_translation_key(profile_schema, "a", "errors.a")

        assert safe_validate(keyed, {}).issues[0].translation_key == "errors.a"
        assert [i.kind for i in safe_validate(keyed, {}).issues] == [i.kind for i in safe_validate(profile_schema, {}).issues]

    def test_custom_validator_by_name(self, profile_schema):
        def positive(value):
            if value <= 0:
                raise ValueError("must be positive")

        schema = with_custom_validator(profile_schema, "b", positive)

        result = safe_validate(schema, {"a": "x", "b": -1, "c": True})
        assert result.issues[0].kind is ErrorKind.CUSTOM_VALIDATION_FAILED

    def test_unknown_field(self, profile_schema):
        with pytest.raises(SchemaDefinitionError):
            with_translation_key(profile_schema, "zzz", "errors.z")

    def test_meta_and_version(self, profile_schema):
        tagged = with_version(with_meta(profile_schema, "owner", "billing"), "2.1")

        assert get_version(tagged) == "2.1"
        assert get_meta(tagged, "owner") == "billing"
        assert get_version(profile_schema) is None
        assert tagged.fields == profile_schema.fields

    @pytest.mark.parametrize("node", [forbidden(), strip_field(), string()])
    def test_meta_is_read_only(self, node):
        tagged = with_meta(node, "owner", "billing")

        with pytest.raises(TypeError):
            tagged.meta["owner"] = "sales"
        assert get_meta(tagged, "owner") == "billing"

    def test_examples_accumulate(self):
        schema = with_example(with_example(string(), "a"), "b")

        assert schema.get_meta("examples") == ("a", "b")


class TestOutputShaping:

    def test_redaction_is_output_only(self, user_schema):
        redact = with_redacted_fields(user_schema, ["password"])

        assert redact({"username": "a", "password": "p"}) == {"username": "a", "password": "[REDACTED]"}
        assert validate(user_schema, {"username": "ada", "email": "ada@example.com"}) == {
            "username": "ada", "email": "ada@example.com",
        }

    def test_defaults_to_redacted_fields(self, user_schema):
        redact = user_schema.with_redacted_fields()

        assert redact.keys == frozenset({"password"})

    def test_validate_then_redact(self, user_schema):
        redact = with_redacted_fields(user_schema, marker="***")

        value = redact.validate({"username": "ada", "email": "ada@example.com", "password": "correct horse"})

        assert value["password"] == "***"

    def test_marker_from_settings(self, user_schema, monkeypatch):
        monkeypatch.setenv("SCHEMAKIT_REDACTION_MARKER", "<hidden>")

        assert with_redacted_fields(user_schema)({"password": "x"}) == {"password": "<hidden>"}

    def test_absent_keys_stay_absent(self, user_schema):
        assert with_redacted_fields(user_schema)({"username": "a"}) == {"username": "a"}

    def test_omitted_fields(self, user_schema):
        strip_secrets = with_omitted_fields(user_schema, ["password"])

        assert strip_secrets({"username": "a", "password": "p"}) == {"username": "a"}

    def test_requires_mapping(self, user_schema):
        with pytest.raises(TypeError):
            with_redacted_fields(user_schema)(["password"])


def test_field_specs_compare_structurally():
    assert FieldSpec(string(), required=True) == string().required()
