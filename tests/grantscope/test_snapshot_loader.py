import os

import pytest

from grantscope import SnapshotLoadingError
from grantscope.compress import InventoryObject
from grantscope.snapshot_loader import (
    dump_snapshot,
    load_inventory,
    load_snapshot,
    lower_values,
    snapshot_path,
    validate_snapshot,
)
from grantscope_test_utils.snapshot_builder import SnapshotBuilder

THIS_DIR = os.path.dirname(os.path.abspath(__file__))
SNAPSHOT_FILE_DIR = os.path.join(THIS_DIR, "snapshots")


def get_snapshot_file(file_name):
    return os.path.join(SNAPSHOT_FILE_DIR, file_name)


class TestLoadSnapshot:
    def test_identifiers_are_lower_cased(self):
        snapshot = load_snapshot(get_snapshot_file("acme.yaml"))

        assert snapshot["metadata"]["accountId"] == "acme-prod"
        assert snapshot["metadata"]["lastSyncedMs"] == 1678883775793
        assert snapshot["roleGrants"]["viewer"]["select"]["view"] == [
            "acme.prod.store_returns",
            "acme.prod.daily_orders",
        ]
        assert snapshot["userGrants"] == {"charles_stevens": {"roles": ["analyst"]}}
        assert snapshot["warehouses"] == {
            "compute_wh": {"size": "x-small", "auto_suspend": 600}
        }

    def test_missing_file(self):
        with pytest.raises(SnapshotLoadingError, match="not found"):
            load_snapshot(get_snapshot_file("does_not_exist.yaml"))

    def test_invalid_yaml(self, write_yaml):
        path = write_yaml("roleGrants: [unclosed")

        with pytest.raises(SnapshotLoadingError, match="not valid YAML"):
            load_snapshot(path)

    def test_not_a_mapping(self, write_yaml):
        path = write_yaml("- viewer\n- analyst\n")

        with pytest.raises(SnapshotLoadingError, match="mapping"):
            load_snapshot(path)

    def test_invalid_privilege(self):
        with pytest.raises(SnapshotLoadingError) as exc_info:
            load_snapshot(get_snapshot_file("invalid_privilege.yaml"))

        assert str(exc_info.value).startswith("Snapshot error: roleGrants")

    def test_missing_warehouse_size(self):
        with pytest.raises(SnapshotLoadingError, match="size"):
            load_snapshot(get_snapshot_file("missing_warehouse_size.yaml"))


class TestValidateSnapshot:
    def test_builder_snapshot_is_valid(self):
        snapshot = (
            SnapshotBuilder()
            .add_user("alice", roles=["analyst"])
            .add_grant("analyst", "usage", "role", "viewer")
            .add_grant("viewer", "select", "table", "acme.prod.<future>")
            .add_warehouse("compute_wh", auto_suspend=None)
            .build()
        )

        assert validate_snapshot(snapshot) == []

    def test_negative_auto_suspend(self):
        snapshot = SnapshotBuilder().add_warehouse("compute_wh", auto_suspend=-1).build()

        assert validate_snapshot(snapshot) != []


def test_lower_values():
    assert lower_values({"ROLE": ["A", {"B": "C"}], "size": 1}) == {
        "role": ["a", {"b": "c"}],
        "size": 1,
    }


class TestDumpSnapshot:
    def test_round_trip(self, mkdtemp):
        path = str(mkdtemp() / "acme.yaml")
        snapshot = load_snapshot(get_snapshot_file("acme.yaml"))

        dump_snapshot(snapshot, path)

        reloaded = load_snapshot(path)
        assert reloaded["roleGrants"]["viewer"]["select"]["view"] == [
            "acme.prod.daily_orders",
            "acme.prod.store_returns",
        ]
        assert reloaded["warehouses"] == snapshot["warehouses"]

    def test_output_is_deterministic(self, mkdtemp):
        """List order in memory never shows up in the file"""
        directory = mkdtemp()
        first = SnapshotBuilder().add_user("alice", roles=["b", "a"]).build()
        second = SnapshotBuilder().add_user("alice", roles=["a", "b"]).build()

        dump_snapshot(first, str(directory / "first.yaml"))
        dump_snapshot(second, str(directory / "second.yaml"))

        with open(directory / "first.yaml") as first_file, open(
            directory / "second.yaml"
        ) as second_file:
            assert first_file.read() == second_file.read()
        assert first["userGrants"]["alice"]["roles"] == ["b", "a"]


def test_snapshot_path():
    assert snapshot_path("ACME-Prod", "snapshots") == os.path.join(
        "snapshots", "acme-prod.yaml"
    )


class TestLoadInventory:
    def test_both_key_styles(self):
        inventory = load_inventory(get_snapshot_file("inventory.yaml"))

        assert inventory == [
            InventoryObject("DB1", "S1", "T1", "TABLE"),
            InventoryObject("DB1", "S2", "V1", "VIEW"),
        ]

    def test_empty_file(self, write_yaml):
        assert load_inventory(write_yaml("", name="inventory.yaml")) == []

    def test_missing_kind(self, write_yaml):
        path = write_yaml(
            [{"database": "db1", "schema": "s1", "name": "t1"}], name="inventory.yaml"
        )

        with pytest.raises(SnapshotLoadingError, match="Inventory error: entry 0, kind"):
            load_inventory(path)

    def test_not_a_list(self, write_yaml):
        path = write_yaml({"database": "db1"}, name="inventory.yaml")

        with pytest.raises(SnapshotLoadingError, match="must contain a list"):
            load_inventory(path)
