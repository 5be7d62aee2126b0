import copy
from dataclasses import dataclass
from typing import Dict, Iterable, List, Set

from grantscope.identifiers import (
    fq_database_id,
    fq_object_id,
    fq_schema_id,
    is_wildcard_marked,
    is_within,
)
from grantscope.logger import GLOBAL_LOGGER as logger
from grantscope.types import FUTURE_KEY, Privilege, Snapshot

# System schema, never the target of an explicit grant
INFORMATION_SCHEMA = "information_schema"


@dataclass(frozen=True)
class InventoryObject:
    """An object that exists in the account, as reported by `SHOW OBJECTS`."""

    database: str
    schema: str
    name: str
    kind: str

    @classmethod
    def from_row(cls, row: Dict) -> "InventoryObject":
        """
        Build an object from a mapping that uses either the short keys
        (database, schema, name, kind) or the `SHOW OBJECTS` column names
        (database_name, schema_name, name, kind).
        """
        return cls(
            database=row.get("database", row.get("database_name", "")),
            schema=row.get("schema", row.get("schema_name", "")),
            name=row["name"],
            kind=row["kind"],
        )

    @property
    def schema_id(self) -> str:
        return fq_schema_id(self.database, self.schema)

    @property
    def object_id(self) -> str:
        return fq_object_id(self.database, self.schema, self.name)

    @property
    def kind_object_id(self) -> str:
        return f"{self.kind.lower()}:{self.object_id}"


def compress_snapshot(
    snapshot: Snapshot, inventory: Iterable[InventoryObject]
) -> Snapshot:
    """
    Return a copy of `snapshot` where explicit grant lists that cover every
    existing object of a schema or database are replaced by a `schema.*` or
    `database.*` wildcard.

    `inventory` lists every object that exists in the account. An empty
    inventory never makes a scope fully granted, so nothing is compressed.
    """
    compressed = copy.deepcopy(snapshot)
    inventory = list(inventory)
    databases_to_schemas = get_databases_to_schemas(inventory)
    schemas_to_objects = get_schemas_to_objects(inventory)

    for role_name, role_grant in (compressed.get("roleGrants") or {}).items():
        usage = role_grant.get(Privilege.USAGE.value)
        if not usage:
            continue

        databases = usage.get("database")
        schemas = usage.get("schema")
        if not (databases and schemas):
            continue

        databases_with_all_schemas = find_databases_with_all_schemas_granted(
            databases, schemas, databases_to_schemas
        )
        usage["schema"] = replace_with_wildcards(schemas, databases_with_all_schemas)

        for privilege, object_lists in role_grant.items():
            if privilege in (Privilege.USAGE.value, FUTURE_KEY):
                continue

            for object_type, granted_objects in object_lists.items():
                schemas_with_all_objects = find_schemas_with_all_objects_granted(
                    object_type, schemas, granted_objects, schemas_to_objects
                )
                updated_objects = replace_with_wildcards(
                    granted_objects, schemas_with_all_objects
                )

                fully_granted_databases = [
                    database
                    for database in databases_with_all_schemas
                    if all(
                        schema in schemas_with_all_objects
                        for schema in databases_to_schemas[database]
                    )
                ]
                object_lists[object_type] = replace_with_wildcards(
                    updated_objects, fully_granted_databases
                )

        logger.debug(
            f"Compressed role {role_name}: {databases_with_all_schemas} fully granted databases"
        )

    return compressed


def get_databases_to_schemas(inventory: List[InventoryObject]) -> Dict[str, Set[str]]:
    """
    Map each database id to the ids of the schemas it contains.

    For example:
        {"acme": {"acme.prod", "acme.staging"}}
    """
    databases_to_schemas: Dict[str, Set[str]] = {}
    for obj in inventory:
        if obj.schema.lower() == INFORMATION_SCHEMA:
            continue
        databases_to_schemas.setdefault(fq_database_id(obj.database), set()).add(
            obj.schema_id
        )
    return databases_to_schemas


def get_schemas_to_objects(inventory: List[InventoryObject]) -> Dict[str, List[str]]:
    """
    Map each schema id to the `kind:object_id` strings of the objects it contains.

    For example:
        {"acme.prod": ["table:acme.prod.orders", "view:acme.prod.daily_orders"]}
    """
    schemas_to_objects: Dict[str, List[str]] = {}
    for obj in inventory:
        schemas_to_objects.setdefault(obj.schema_id, []).append(obj.kind_object_id)
    return schemas_to_objects


def find_databases_with_all_schemas_granted(
    databases: List[str],
    schemas: List[str],
    databases_to_schemas: Dict[str, Set[str]],
) -> List[str]:
    databases_with_all_schemas = []
    for database in databases:
        if database not in databases_to_schemas:
            continue

        granted_schemas = {schema for schema in schemas if is_within(schema, database)}
        if databases_to_schemas[database] <= granted_schemas:
            databases_with_all_schemas.append(database)
    return databases_with_all_schemas


def find_schemas_with_all_objects_granted(
    object_type: str,
    schemas: List[str],
    granted_objects: List[str],
    schemas_to_objects: Dict[str, List[str]],
) -> List[str]:
    """
    Return the schemas in which every existing object of kind `object_type`
    is present in `granted_objects`. Schemas without any object of that kind
    never qualify.
    """
    schemas_with_all_objects = []
    for schema in schemas:
        existing_objects = [
            kind_object_id
            for kind_object_id in schemas_to_objects.get(schema, [])
            if kind_object_id.startswith(object_type + ":")
        ]
        if not existing_objects:
            continue

        granted_schema_objects = {
            f"{object_type}:{object_id}"
            for object_id in granted_objects
            if is_within(object_id, schema)
        }
        if all(obj in granted_schema_objects for obj in existing_objects):
            schemas_with_all_objects.append(schema)
    return schemas_with_all_objects


def replace_with_wildcards(granted: List[str], scopes: List[str]) -> List[str]:
    """
    Drop every entry inside each of `scopes` and add a `scope.*` wildcard
    instead. Entries carrying a bracket marker (e.g. `db.schema.<future>`) are kept.

    replace_with_wildcards(["db.a", "db.b", "db.<future>"], ["db"]) ->
        ["db.*", "db.<future>"]
    """
    updated = list(granted)
    for scope in scopes:
        updated = [
            entry
            for entry in updated
            if not is_within(entry, scope) or is_wildcard_marked(entry)
        ]
        updated.append(f"{scope}.*")

    return sorted(updated)
