"""Tests for rule records and the rule table."""

import json

import pytest

from groupacl.core.rbac.catalog import ResourceCatalog, StaticCatalogSource
from groupacl.core.rbac.errors import MalformedRuleError
from groupacl.core.rbac.roles import RoleHierarchy
from groupacl.core.rbac.rules import RuleRecord, RuleTable, decode_grants, parse_rule_record
from groupacl.core.rbac.sources import RuleRow


@pytest.fixture
def roles(sample_groups):
    return RoleHierarchy.build(sample_groups)


@pytest.fixture
def catalog(sample_catalog):
    return ResourceCatalog.load(sample_catalog)


class TestDecodeGrants:
    """Test decoding of stored rule payloads."""

    def test_json_text(self):
        grants = decode_grants('{"view": ["1", "2"], "publish": [7]}')
        assert grants == {"view": frozenset({"1", "2"}), "publish": frozenset({"7"})}

    def test_bytes(self):
        assert decode_grants(b'{"view": ["1"]}') == {"view": frozenset({"1"})}

    def test_decoded_mapping(self):
        assert decode_grants({"view": [1, "1"]}) == {"view": frozenset({"1"})}

    def test_empty_payload(self):
        assert decode_grants(None) == {}
        assert decode_grants("") == {}
        assert decode_grants("{}") == {}

    def test_invalid_json(self):
        with pytest.raises(MalformedRuleError) as exc_info:
            decode_grants("{not json", resource="blog")
        assert exc_info.value.resource == "blog"

    def test_payload_not_object(self):
        with pytest.raises(MalformedRuleError):
            decode_grants('["1", "2"]')

    def test_grant_list_not_list(self):
        with pytest.raises(MalformedRuleError):
            decode_grants('{"view": "1"}')

    def test_invalid_role_id(self):
        with pytest.raises(MalformedRuleError):
            decode_grants('{"view": [{"id": 1}]}')
        with pytest.raises(MalformedRuleError):
            decode_grants({"view": [True]})


class TestParseRuleRecord:
    """Test building records from stored rows."""

    def test_from_row_object(self):
        record = parse_rule_record(
            RuleRow(id=3, parent_id=1, resource="blog", rules='{"view": ["2"]}')
        )
        assert record == RuleRecord(
            id="3", resource="blog", grants={"view": frozenset({"2"})}, parent_id="1"
        )

    def test_root_parent(self):
        record = parse_rule_record({"id": 1, "parent_id": 0, "resource": "app", "rules": "{}"})
        assert record.parent_id is None

    def test_missing_resource(self):
        with pytest.raises(MalformedRuleError):
            parse_rule_record({"id": 1, "rules": "{}"})


class TestRuleTable:
    """Test building and querying the rule table."""

    def test_grants_listed_roles(self, roles, catalog):
        table = RuleTable.build(
            [{"id": 1, "resource": "blog", "rules": '{"publish": ["2"], "view": ["2", "3"]}'}],
            roles,
            catalog,
        )
        assert table.granted_roles("blog", "publish") == frozenset({"2"})
        assert table.is_granted(2, "blog", "publish")
        assert not table.is_granted(3, "blog", "publish")
        assert table.is_granted("3", "blog", "view")

    def test_round_trip_for_every_listed_action(self, roles, catalog):
        payload = {"view": ["1", "3"], "publish": ["2", "4"]}
        table = RuleTable.build(
            [{"id": 1, "resource": "blog", "rules": json.dumps(payload)}], roles, catalog
        )
        for action, listed in payload.items():
            for role_id in roles.ids:
                assert table.is_granted(role_id, "blog", action) == (role_id in listed)

    def test_declared_resource_without_record(self, roles, catalog):
        table = RuleTable.build([], roles, catalog)

        assert table.has_rule("forum", "post")
        assert table.granted_roles("forum", "post") == frozenset()
        assert table.granted_roles("forum", "delete") == frozenset()

    def test_action_missing_from_record(self, roles, catalog):
        table = RuleTable.build(
            [{"id": 1, "resource": "blog", "rules": '{"view": ["2"]}'}], roles, catalog
        )
        assert table.granted_roles("blog", "publish") == frozenset()

    def test_unknown_role_ids_dropped(self, roles, catalog):
        table = RuleTable.build(
            [{"id": 1, "resource": "blog", "rules": '{"view": ["2", "99"]}'}], roles, catalog
        )
        assert table.granted_roles("blog", "view") == frozenset({"2"})

    def test_undeclared_resource_and_action_ignored(self, roles, catalog):
        table = RuleTable.build(
            [
                {"id": 1, "resource": "wiki", "rules": '{"edit": ["2"]}'},
                {"id": 2, "resource": "blog", "rules": '{"delete": ["2"]}'},
            ],
            roles,
            catalog,
        )
        assert not table.has_rule("wiki", "edit")
        assert not table.has_rule("blog", "delete")
        assert table.granted_roles("wiki", "edit") == frozenset()

    def test_resource_without_actions_has_no_rules(self, roles):
        catalog = ResourceCatalog.load(StaticCatalogSource({"empty": []}))
        table = RuleTable.build(
            [{"id": 1, "resource": "empty", "rules": '{"view": ["1"]}'}], roles, catalog
        )
        assert len(table) == 0

    def test_duplicate_record(self, roles, catalog):
        with pytest.raises(MalformedRuleError):
            RuleTable.build(
                [
                    {"id": 1, "resource": "blog", "rules": "{}"},
                    {"id": 2, "resource": "blog", "rules": "{}"},
                ],
                roles,
                catalog,
            )

    def test_malformed_record_fails_build(self, roles, catalog):
        with pytest.raises(MalformedRuleError):
            RuleTable.build(
                [{"id": 1, "resource": "blog", "rules": '{"view": "2"}'}], roles, catalog
            )

    def test_record_tree_kept(self, roles, catalog):
        table = RuleTable.build(
            [
                {"id": 1, "parent_id": 0, "resource": "app", "rules": "{}"},
                {"id": 2, "parent_id": 1, "resource": "blog", "rules": '{"view": ["2"]}'},
            ],
            roles,
            catalog,
        )
        assert table.record_for("blog").parent_id == "1"
        assert table.record_for("forum") is None

    def test_unknown_pair(self, roles, catalog):
        table = RuleTable.build([], roles, catalog)
        assert table.granted_roles("nope", "nope") == frozenset()
        assert not table.is_granted(1, "nope", "nope")
