import copy

import pytest

from grantscope.compress import (
    InventoryObject,
    compress_snapshot,
    find_databases_with_all_schemas_granted,
    find_schemas_with_all_objects_granted,
    get_databases_to_schemas,
    get_schemas_to_objects,
    replace_with_wildcards,
)
from grantscope_test_utils.snapshot_builder import SnapshotBuilder


def role_grants(snapshot, role):
    return snapshot["roleGrants"][role]


class TestInventoryObject:
    def test_ids_are_lower_cased(self):
        obj = InventoryObject("DB1", "S1", "T1", "TABLE")

        assert obj.schema_id == "db1.s1"
        assert obj.object_id == "db1.s1.t1"
        assert obj.kind_object_id == "table:db1.s1.t1"

    @pytest.mark.parametrize(
        "row",
        [
            {"database": "DB1", "schema": "S1", "name": "T1", "kind": "TABLE"},
            {
                "database_name": "DB1",
                "schema_name": "S1",
                "name": "T1",
                "kind": "TABLE",
                "owner": "SYSADMIN",
            },
        ],
    )
    def test_from_row(self, row):
        assert InventoryObject.from_row(row).kind_object_id == "table:db1.s1.t1"


class TestInventoryIndexes:
    def test_databases_to_schemas(self, inventory):
        assert get_databases_to_schemas(inventory) == {
            "db1": {"db1.s1", "db1.s2"},
            "db10": {"db10.s1"},
        }

    def test_schemas_to_objects(self, inventory):
        schemas_to_objects = get_schemas_to_objects(inventory)

        assert schemas_to_objects["db1.s2"] == ["table:db1.s2.t3", "view:db1.s2.v1"]
        assert schemas_to_objects["db10.s1"] == ["table:db10.s1.t1"]

    def test_databases_with_all_schemas(self, inventory):
        databases_to_schemas = get_databases_to_schemas(inventory)

        assert find_databases_with_all_schemas_granted(
            ["db1", "db10"], ["db1.s1", "db10.s1"], databases_to_schemas
        ) == ["db10"]
        assert find_databases_with_all_schemas_granted(
            ["db1", "unknown"], ["db1.s1", "db1.s2"], databases_to_schemas
        ) == ["db1"]

    def test_schemas_need_objects_of_the_kind(self, inventory):
        """A schema without views is never fully granted for views"""
        schemas_to_objects = get_schemas_to_objects(inventory)

        assert find_schemas_with_all_objects_granted(
            "view", ["db1.s1", "db1.s2"], ["db1.s2.v1"], schemas_to_objects
        ) == ["db1.s2"]
        assert find_schemas_with_all_objects_granted(
            "table", ["db1.s1", "db1.s2"], ["db1.s1.t1", "db1.s2.t3"], schemas_to_objects
        ) == ["db1.s2"]


class TestReplaceWithWildcards:
    def test_marked_entries_are_kept(self):
        assert replace_with_wildcards(["db.a", "db.b", "db.<future>"], ["db"]) == [
            "db.*",
            "db.<future>",
        ]

    def test_scope_needs_a_separator(self):
        assert replace_with_wildcards(["db1.a", "db10.a"], ["db1"]) == ["db1.*", "db10.a"]

    def test_no_scopes(self):
        assert replace_with_wildcards(["b", "a"], []) == ["a", "b"]


class TestCompressSnapshot:
    def test_full_coverage(self, inventory):
        snapshot = (
            SnapshotBuilder()
            .add_grant("reader", "usage", "database", "db1")
            .add_grant("reader", "usage", "schema", "db1.s1", "db1.s2")
            .add_grant("reader", "select", "table", "db1.s1.t1", "db1.s1.t2", "db1.s2.t3")
            .add_grant("reader", "select", "view", "db1.s2.v1")
            .build()
        )

        compressed = compress_snapshot(snapshot, inventory)

        assert role_grants(compressed, "reader") == {
            "usage": {"database": ["db1"], "schema": ["db1.*"]},
            "select": {"table": ["db1.*"], "view": ["db1.s2.*"]},
        }

    def test_missing_schema(self, inventory):
        snapshot = (
            SnapshotBuilder()
            .add_grant("reader", "usage", "database", "db1")
            .add_grant("reader", "usage", "schema", "db1.s1")
            .add_grant("reader", "select", "table", "db1.s1.t1")
            .build()
        )

        compressed = compress_snapshot(snapshot, inventory)

        assert role_grants(compressed, "reader") == role_grants(snapshot, "reader")

    def test_similar_database_names(self, inventory):
        """Schemas of db10 never count towards db1"""
        snapshot = (
            SnapshotBuilder()
            .add_grant("reader", "usage", "database", "db1", "db10")
            .add_grant("reader", "usage", "schema", "db10.s1", "db1.s1")
            .build()
        )

        compressed = compress_snapshot(snapshot, inventory)

        assert role_grants(compressed, "reader")["usage"]["schema"] == [
            "db1.s1",
            "db10.*",
        ]

    def test_future_marker_is_kept(self, inventory):
        snapshot = (
            SnapshotBuilder()
            .add_grant("reader", "usage", "database", "db1")
            .add_grant("reader", "usage", "schema", "db1.s1", "db1.s2", "db1.<future>")
            .build()
        )

        compressed = compress_snapshot(snapshot, inventory)

        assert role_grants(compressed, "reader")["usage"]["schema"] == [
            "db1.*",
            "db1.<future>",
        ]

    def test_role_without_schema_usage(self, inventory):
        snapshot = (
            SnapshotBuilder()
            .add_grant("reader", "usage", "database", "db1")
            .add_grant("reader", "select", "table", "db1.s1.t1", "db1.s1.t2")
            .build()
        )

        assert compress_snapshot(snapshot, inventory) == snapshot

    def test_empty_inventory(self):
        snapshot = (
            SnapshotBuilder()
            .add_grant("reader", "usage", "database", "db1")
            .add_grant("reader", "usage", "schema", "db1.s1")
            .build()
        )

        assert compress_snapshot(snapshot, []) == snapshot

    def test_input_is_not_modified(self, inventory):
        snapshot = (
            SnapshotBuilder()
            .add_grant("reader", "usage", "database", "db1")
            .add_grant("reader", "usage", "schema", "db1.s1", "db1.s2")
            .build()
        )
        before = copy.deepcopy(snapshot)

        compressed = compress_snapshot(snapshot, inventory)

        assert snapshot == before
        assert compressed != snapshot
