import pytest

from grantscope.compress import InventoryObject
from grantscope_test_utils.snapshot_builder import SnapshotBuilder


@pytest.fixture
def inheritance_snapshot():
    """alice -> analyst -> reporting, reporting can select sales.q1"""
    snapshot = (
        SnapshotBuilder()
        .add_user("alice", roles=["analyst"])
        .add_user("bob", roles=["reporting"])
        .add_grant("analyst", "usage", "role", "reporting")
        .add_grant("reporting", "select", "table", "sales.q1")
        .build()
    )
    yield snapshot


@pytest.fixture
def missing_database_usage_snapshot():
    """Role viewer can select a view but has no usage on its database."""
    snapshot = (
        SnapshotBuilder()
        .add_user("charles_stevens", roles=["viewer"])
        .add_grant("viewer", "select", "view", "acme.prod.store_returns")
        .build()
    )
    yield snapshot


@pytest.fixture
def inventory():
    """
    db1 holds schemas s1 (tables t1, t2) and s2 (table t3, view v1).
    db10 holds schema s1 (table t1).
    """
    yield [
        InventoryObject("DB1", "S1", "T1", "TABLE"),
        InventoryObject("DB1", "S1", "T2", "TABLE"),
        InventoryObject("DB1", "S2", "T3", "TABLE"),
        InventoryObject("DB1", "S2", "V1", "VIEW"),
        InventoryObject("DB1", "INFORMATION_SCHEMA", "TABLES", "VIEW"),
        InventoryObject("DB10", "S1", "T1", "TABLE"),
    ]
