import re
from typing import Optional

WILDCARD_MARKER_RE = re.compile(r".*<.*>$")
PLAIN_IDENTIFIER_RE = re.compile(r"^[a-z_][a-z0-9_$]*$")


def fq_database_id(database: str) -> str:
    return database.lower()


def fq_schema_id(database: str, schema: str) -> str:
    return ".".join([database.lower(), schema.lower()])


def fq_object_id(database: str, schema: str, name: str) -> str:
    return ".".join([database.lower(), schema.lower(), name.lower()])


def is_wildcard_marked(object_id: str) -> bool:
    """
    Returns True for ids that end in a bracketed marker, e.g. `db.schema.<future>`.
    These are opaque and are never expanded or collapsed.
    """
    return WILDCARD_MARKER_RE.match(object_id) is not None


def is_within(object_id: str, scope: str) -> bool:
    """
    Returns True if `object_id` lives under `scope`.

    is_within("db1.public", "db1") -> True
    is_within("db10.public", "db1") -> False
    """
    return object_id.startswith(scope + ".")


def parent_database(object_id: str) -> str:
    return object_id.split(".")[0]


def parent_schema(object_id: str) -> Optional[str]:
    """
    Returns the `db.schema` part of a schema-level object id, or None for
    ids that do not name an object inside a schema.
    """
    name_parts = object_id.split(".")
    if len(name_parts) < 3 or name_parts[1] in ("*", "") or "<" in name_parts[1]:
        return None
    return ".".join(name_parts[:2])


def quote_identifier(identifier: str) -> str:
    """
    Quote every part of a dotted identifier that is not a plain lower-case
    identifier, so the name survives Snowflake's upper-casing rules.

    quote_identifier("acme.prod.orders") -> acme.prod.orders
    quote_identifier("acme.my-schema.orders") -> acme."my-schema".orders
    """
    quoted_parts = []
    for part in identifier.split("."):
        if part == "*" or PLAIN_IDENTIFIER_RE.match(part):
            quoted_parts.append(part)
        else:
            escaped = part.replace('"', '""')
            quoted_parts.append(f'"{escaped}"')
    return ".".join(quoted_parts)
