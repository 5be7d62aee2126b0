from enum import Enum
from typing import Dict, List, Optional, TypedDict


class Privilege(str, Enum):
    USAGE = "usage"
    SELECT = "select"
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"
    MONITOR = "monitor"


# Key inside a role grant holding future grants, it is not a privilege
FUTURE_KEY = "future"


class ObjectType(str, Enum):
    """
    Object types grantscope knows about. Grant lists may use any other
    lower-case object type name that Snowflake reports (e.g. "stage").
    """

    DATABASE = "database"
    SCHEMA = "schema"
    TABLE = "table"
    VIEW = "view"
    ROLE = "role"
    WAREHOUSE = "warehouse"


# object type -> fully-qualified object ids
ObjectGrantMap = Dict[str, List[str]]


class RoleGrant(TypedDict, total=False):
    usage: ObjectGrantMap
    select: ObjectGrantMap
    insert: ObjectGrantMap
    update: ObjectGrantMap
    delete: ObjectGrantMap
    monitor: ObjectGrantMap
    # privilege -> object type names
    future: Dict[str, List[str]]


class UserGrant(TypedDict):
    roles: List[str]


class WarehouseSchemaBase(TypedDict):
    size: str


class Warehouse(WarehouseSchemaBase, total=False):
    name: str
    auto_suspend: Optional[int]


class SnapshotMetadataBase(TypedDict):
    accountId: str
    platform: str
    version: int


class SnapshotMetadata(SnapshotMetadataBase, total=False):
    lastSyncedMs: int
    compressRecords: bool


class Snapshot(TypedDict, total=False):
    metadata: SnapshotMetadata
    roleGrants: Dict[str, RoleGrant]
    userGrants: Dict[str, UserGrant]
    warehouses: Dict[str, Warehouse]
