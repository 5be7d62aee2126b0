import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from grantscope.diff import SnapshotDiff
from grantscope.error import InvalidInputError
from grantscope.identifiers import quote_identifier
from grantscope.logger import GLOBAL_LOGGER as logger
from grantscope.types import FUTURE_KEY, ObjectType, Privilege

GRANT_ROLE_TEMPLATE = "GRANT ROLE {role_name} TO {type} {entity_name}"

REVOKE_ROLE_TEMPLATE = "REVOKE ROLE {role_name} FROM {type} {entity_name}"

GRANT_PRIVILEGES_TEMPLATE = (
    "GRANT {privileges} ON {resource_type} {resource_name} TO ROLE {role}"
)

REVOKE_PRIVILEGES_TEMPLATE = (
    "REVOKE {privileges} ON {resource_type} {resource_name} FROM ROLE {role}"
)

GRANT_FUTURE_PRIVILEGES_TEMPLATE = "GRANT {privileges} ON FUTURE {resource_type}s IN {grouping_type} {grouping_name} TO ROLE {role}"

REVOKE_FUTURE_PRIVILEGES_TEMPLATE = "REVOKE {privileges} ON FUTURE {resource_type}s IN {grouping_type} {grouping_name} FROM ROLE {role}"

GRANT_ALL_PRIVILEGES_TEMPLATE = "GRANT {privileges} ON ALL {resource_type}s IN {grouping_type} {grouping_name} TO ROLE {role}"

REVOKE_ALL_PRIVILEGES_TEMPLATE = "REVOKE {privileges} ON ALL {resource_type}s IN {grouping_type} {grouping_name} FROM ROLE {role}"

ALTER_WAREHOUSE_TEMPLATE = "ALTER WAREHOUSE {warehouse_name} SET {setting} = {value}"

FUTURE_IN_SCHEMA_RE = re.compile(r"^([^.]+\.[^.]+)\.<(.*)>$")
FUTURE_IN_DATABASE_RE = re.compile(r"^([^.]+)\.<(.*)>$")
ALL_IN_SCHEMA_RE = re.compile(r"^([^.]+\.[^.]+)\.\*$")
ALL_IN_DATABASE_RE = re.compile(r"^([^.]+)\.\*$")
KEYWORD_RE = re.compile(r"^[a-z_ ]+$")

WAREHOUSE_SETTINGS = {"size": "warehouse_size", "auto_suspend": "auto_suspend"}


@dataclass
class Entity:
    type: str
    id: str


@dataclass
class SqlCommand:
    sql: str
    entities: List[Entity] = field(default_factory=list)


def sql_commands_from_diff(snapshot_diff: SnapshotDiff) -> List[SqlCommand]:
    """
    Render a snapshot diff as the Snowflake statements that apply it.

    Revokes are emitted before grants, warehouse changes last.
    """
    commands = [
        *role_grant_commands(snapshot_diff.deleted.get("roleGrants"), grant=False),
        *user_grant_commands(snapshot_diff.deleted.get("userGrants"), grant=False),
        *role_grant_commands(snapshot_diff.added.get("roleGrants"), grant=True),
        *user_grant_commands(snapshot_diff.added.get("userGrants"), grant=True),
        *warehouse_commands(snapshot_diff.added.get("warehouses"), new_entries=True),
        *warehouse_commands(snapshot_diff.updated.get("warehouses")),
    ]
    logger.debug(f"Generated {len(commands)} SQL commands")
    return commands


def role_grant_commands(
    role_grants: Optional[Dict[str, Any]], grant: bool
) -> List[SqlCommand]:
    if not role_grants:
        return []

    commands = []
    for role_name, role_grant in role_grants.items():
        if FUTURE_KEY in role_grant:
            logger.debug(
                f"Skipping future grants of role {role_name}, they have no scope to apply to"
            )

        for privilege in Privilege:
            object_lists = role_grant.get(privilege.value) or {}
            for object_type, object_ids in object_lists.items():
                for object_id in object_ids:
                    commands.append(
                        privilege_command(
                            role_name, privilege.value, object_type, object_id, grant
                        )
                    )
    return commands


def privilege_command(
    role_name: str, privilege: str, object_type: str, object_id: str, grant: bool
) -> SqlCommand:
    """
    Build the statement that grants (or revokes) `privilege` on one entry of
    a role's grant list.

    For example:
    privilege_command('viewer', 'select', 'table', 'acme.prod.<future>', True) ->
        GRANT select ON FUTURE tables IN SCHEMA acme.prod TO ROLE viewer
    """
    for keyword in (privilege, object_type):
        if not KEYWORD_RE.match(keyword):
            raise InvalidInputError(f"Invalid privilege or object type: {keyword!r}")

    role = quote_identifier(role_name)

    if privilege == Privilege.USAGE.value and object_type == ObjectType.ROLE.value:
        template = GRANT_ROLE_TEMPLATE if grant else REVOKE_ROLE_TEMPLATE
        return SqlCommand(
            sql=template.format(
                role_name=quote_identifier(object_id),
                type="ROLE",
                entity_name=role,
            ),
            entities=[Entity("role", role_name), Entity("role", object_id)],
        )

    for regex, grouping_type, future in (
        (FUTURE_IN_SCHEMA_RE, "schema", True),
        (FUTURE_IN_DATABASE_RE, "database", True),
        (ALL_IN_SCHEMA_RE, "schema", False),
        (ALL_IN_DATABASE_RE, "database", False),
    ):
        match = regex.match(object_id)
        if not match:
            continue

        grouping_name = match.group(1)
        if future:
            template = (
                GRANT_FUTURE_PRIVILEGES_TEMPLATE
                if grant
                else REVOKE_FUTURE_PRIVILEGES_TEMPLATE
            )
        else:
            template = (
                GRANT_ALL_PRIVILEGES_TEMPLATE if grant else REVOKE_ALL_PRIVILEGES_TEMPLATE
            )
        return SqlCommand(
            sql=template.format(
                privileges=privilege,
                resource_type=object_type,
                grouping_type=grouping_type.upper(),
                grouping_name=quote_identifier(grouping_name),
                role=role,
            ),
            entities=[Entity("role", role_name), Entity(grouping_type, grouping_name)],
        )

    template = GRANT_PRIVILEGES_TEMPLATE if grant else REVOKE_PRIVILEGES_TEMPLATE
    return SqlCommand(
        sql=template.format(
            privileges=privilege,
            resource_type=object_type,
            resource_name=quote_identifier(object_id),
            role=role,
        ),
        entities=[Entity("role", role_name), Entity(object_type, object_id)],
    )


def user_grant_commands(
    user_grants: Optional[Dict[str, Any]], grant: bool
) -> List[SqlCommand]:
    if not user_grants:
        return []

    template = GRANT_ROLE_TEMPLATE if grant else REVOKE_ROLE_TEMPLATE
    commands = []
    for username, user_grant in user_grants.items():
        for role_name in (user_grant or {}).get("roles") or []:
            commands.append(
                SqlCommand(
                    sql=template.format(
                        role_name=quote_identifier(role_name),
                        type="USER",
                        entity_name=quote_identifier(username),
                    ),
                    entities=[Entity("role", role_name), Entity("user", username)],
                )
            )
    return commands


def warehouse_commands(
    warehouses: Optional[Dict[str, Any]], new_entries: bool = False
) -> List[SqlCommand]:
    """
    Build `ALTER WAREHOUSE` statements for changed warehouse settings.

    With `new_entries`, `warehouses` comes from the added side of a diff: a
    brand new warehouse always carries its size and is not created here,
    while an entry without a size only adds settings to an existing one.
    """
    if not warehouses:
        return []

    commands = []
    for warehouse_name, settings in warehouses.items():
        if new_entries and "size" in settings:
            logger.debug(f"Skipping new warehouse {warehouse_name}, creation is not managed")
            continue

        for setting, column in WAREHOUSE_SETTINGS.items():
            if setting not in settings:
                continue
            commands.append(
                SqlCommand(
                    sql=ALTER_WAREHOUSE_TEMPLATE.format(
                        warehouse_name=quote_identifier(warehouse_name),
                        setting=column.upper(),
                        value=_sql_literal(settings[setting]),
                    ),
                    entities=[Entity("warehouse", warehouse_name)],
                )
            )
    return commands


def _sql_literal(value: Any) -> str:
    if value is None:
        return "NULL"
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    escaped = str(value).replace("'", "''")
    return f"'{escaped}'"
