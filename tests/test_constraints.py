"""Tests for cross-field constraint combinators."""
import itertools

import pytest

from schemakit import (
    UNDEFINED,
    Branch,
    ErrorKind,
    SchemaDefinitionError,
    alternatives,
    array,
    at_least_one_of,
    conditional_field,
    dynamic_default,
    forbidden,
    integer,
    mutually_exclusive,
    obj,
    omit,
    pick,
    require_if,
    safe_validate,
    string,
    validate,
)


class TestRequireIf:

    def test_not_required_when_trigger_differs(self, account_schema):
        assert validate(account_schema, {"status": "active"}) == {"status": "active"}

    def test_required_when_trigger_matches(self, account_schema):
        result = safe_validate(account_schema, {"status": "inactive"})

        assert [(i.path, i.kind) for i in result.issues] == [(("reason",), ErrorKind.MISSING_REQUIRED_FIELD)]

    def test_present_value_still_validated(self, account_schema):
        value = validate(account_schema, {"status": "inactive", "reason": "moved"})

        assert value == {"status": "inactive", "reason": "moved"}
        assert not safe_validate(account_schema, {"status": "inactive", "reason": 1}).ok

    def test_absent_dependency_means_optional(self, account_schema):
        assert validate(account_schema, {}) == {}

    def test_dependency_default_is_used(self):
        schema = obj({
            "status": string().with_default("inactive"),
            "reason": require_if(string(), "status", "inactive"),
        })

        result = safe_validate(schema, {})

        assert result.issues[0].path == ("reason",)

    def test_predicate_trigger(self):
        schema = obj({
            "age": integer(),
            "guardian": require_if(string(), "age", lambda age: age is not UNDEFINED and age < 18),
        })

        assert validate(schema, {"age": 30}) == {"age": 30}
        assert validate(schema, {}) == {}
        assert safe_validate(schema, {"age": 12}).issues[0].kind is ErrorKind.MISSING_REQUIRED_FIELD

    def test_predicate_sees_undefined_for_missing_dependency(self):
        seen = []
        schema = obj({"a": string(), "b": require_if(string(), "a", lambda v: seen.append(v))})

        validate(schema, {})

        assert seen == [UNDEFINED]

    def test_boolean_trigger_does_not_match_integers(self):
        schema = obj({"flag": integer(), "note": require_if(string(), "flag", True)})

        assert validate(schema, {"flag": 1}) == {"flag": 1}


class TestConditionalField:

    @pytest.fixture
    def payment_schema(self):
        return obj({
            "method": string().valid("card", "cash"),
            "card_number": conditional_field("method", [
                {"is": "card", "then": string().pattern(r"^\d{16}$").required()},
                {"otherwise": forbidden()},
            ]),
        })

    def test_then_branch(self, payment_schema):
        assert validate(payment_schema, {"method": "card", "card_number": "4111111111111111"})["card_number"]
        assert safe_validate(payment_schema, {"method": "card"}).issues[0].kind is ErrorKind.MISSING_REQUIRED_FIELD
        assert not safe_validate(payment_schema, {"method": "card", "card_number": "41"}).ok

    def test_otherwise_branch(self, payment_schema):
        result = safe_validate(payment_schema, {"method": "cash", "card_number": "4111111111111111"})

        assert result.issues[0].kind is ErrorKind.FORBIDDEN_FIELD_PRESENT
        assert validate(payment_schema, {"method": "cash"}) == {"method": "cash"}

    def test_no_matching_branch_leaves_field_unconstrained(self):
        schema = obj({
            "kind": string(),
            "value": conditional_field("kind", [Branch(is_="number", then=integer())]),
        })

        assert validate(schema, {"kind": "text", "value": "anything"}) == {"kind": "text", "value": "anything"}
        assert not safe_validate(schema, {"kind": "number", "value": "x"}).ok

    def test_node_targets_inherit_base_presence(self):
        schema = obj({
            "kind": string(),
            "value": conditional_field("kind", [Branch(is_="n", then=integer())], string().required()),
        })

        assert safe_validate(schema, {"kind": "n"}).issues[0].path == ("value",)

    def test_needs_branches(self):
        with pytest.raises(SchemaDefinitionError):
            conditional_field("kind", [])

    def test_branch_needs_a_target(self):
        with pytest.raises(SchemaDefinitionError):
            Branch(is_="x")

    def test_unknown_branch_keys(self):
        with pytest.raises(SchemaDefinitionError):
            conditional_field("kind", [{"when": "x", "then": string()}])


class TestObjectRules:

    @pytest.fixture
    def contact_schema(self):
        return obj({"email": string().email(), "phone": string(), "fax": string()})

    def test_mutually_exclusive(self, contact_schema):
        schema = contact_schema.with_rules(mutually_exclusive(["email", "phone"]))

        assert validate(schema, {"email": "a@example.com"}) == {"email": "a@example.com"}
        result = safe_validate(schema, {"email": "a@example.com", "phone": "555"})
        assert result.issues[0].kind is ErrorKind.MUTUAL_EXCLUSION_VIOLATED
        assert result.issues[0].path == ()

    def test_at_least_one_of(self, contact_schema):
        schema = at_least_one_of(["email", "phone"])(contact_schema)

        assert validate(schema, {"phone": "555"}) == {"phone": "555"}
        assert safe_validate(schema, {"fax": "1"}).issues[0].kind is ErrorKind.AT_LEAST_ONE_REQUIRED

    def test_custom_message(self, contact_schema):
        schema = contact_schema.with_rules(at_least_one_of(["email", "phone"], message="Give us a way to reach you"))

        assert safe_validate(schema, {}).issues[0].message == "Give us a way to reach you"

    def test_defaults_count_as_present(self):
        schema = obj({"a": string().with_default("x"), "b": string()}).with_rules(at_least_one_of(["a", "b"]))

        assert validate(schema, {}) == {"a": "x"}

    def test_rules_skipped_when_a_field_fails(self, contact_schema):
        schema = contact_schema.with_rules(at_least_one_of(["email", "phone"]))

        result = safe_validate(schema, {"fax": 1})

        assert [i.kind for i in result.issues] == [ErrorKind.TYPE_MISMATCH]

    def test_nested_rule_paths(self, contact_schema):
        schema = obj({"contact": contact_schema.with_rules(mutually_exclusive(["email", "phone"]))})

        result = safe_validate(schema, {"contact": {"email": "a@example.com", "phone": "1"}})

        assert result.issues[0].path == ("contact",)

    def test_unknown_fields_rejected(self, contact_schema):
        with pytest.raises(SchemaDefinitionError):
            contact_schema.with_rules(mutually_exclusive(["email", "pager"]))

    def test_obj_accepts_rules(self):
        schema = obj({"a": string(), "b": string()}, rules=[mutually_exclusive(["a", "b"])])

        assert not safe_validate(schema, {"a": "1", "b": "2"}).ok

    def test_pick_narrows_rules(self, contact_schema):
        schema = contact_schema.with_rules(mutually_exclusive(["email", "phone"]), at_least_one_of(["email", "phone", "fax"]))

        picked = pick(schema, ["email", "fax"])

        assert [(r.kind.value, r.fields) for r in picked.rules] == [("at_least_one", ("email", "fax"))]

    def test_omit_drops_exhausted_rules(self, contact_schema):
        schema = contact_schema.with_rules(at_least_one_of(["phone"]))

        assert omit(schema, ["phone"]).rules == ()


class TestDynamicDefault:

    def test_supplier_called_once_per_validation(self):
        counter = itertools.count(1)
        calls = []

        def next_id():
            calls.append(1)
            return next(counter)

        schema = dynamic_default(obj({"id": integer(), "name": string()}), "id", next_id)

        assert validate(schema, {})["id"] == 1
        assert validate(schema, {})["id"] == 2
        assert len(calls) == 2

    def test_supplier_skipped_when_value_given(self):
        calls = []
        schema = dynamic_default(obj({"id": integer()}), "id", lambda: calls.append(1) or 0)

        assert validate(schema, {"id": 7}) == {"id": 7}
        assert calls == []

    def test_evaluated_per_occurrence(self):
        counter = itertools.count()
        item = dynamic_default(obj({"n": integer()}), "n", lambda: next(counter))

        assert validate(array(item), [{}, {}]) == [{"n": 0}, {"n": 1}]

    def test_alternatives_share_one_evaluation(self):
        calls = []

        def stamp():
            calls.append(1)
            return len(calls)

        card = dynamic_default(obj({"kind": string().valid("card"), "id": integer()}), "id", stamp)
        cash = dynamic_default(obj({"kind": string().valid("cash"), "id": integer()}), "id", stamp)

        assert validate(alternatives(card, cash), {"kind": "cash"}) == {"kind": "cash", "id": 1}
        assert calls == [1]

    def test_unknown_field(self):
        with pytest.raises(SchemaDefinitionError):
            dynamic_default(obj({"a": string()}), "b", lambda: "x")

    def test_supplier_must_be_callable(self):
        with pytest.raises(SchemaDefinitionError):
            dynamic_default(obj({"a": string()}), "a", "x")
