import copy
import os
from typing import Any, Dict, Iterator, List, Tuple

import cerberus
import yaml

from grantscope.compress import InventoryObject
from grantscope.error import SnapshotLoadingError
from grantscope.logger import GLOBAL_LOGGER as logger
from grantscope.set_normalization import deeply_sort_lists
from grantscope.snapshot_schemas import INVENTORY_OBJECT_SCHEMA, SNAPSHOT_SCHEMA
from grantscope.types import Snapshot

VALIDATION_ERR_MSG = "Snapshot error: {}: {}"
INVENTORY_ERR_MSG = "Inventory error: entry {}, {}: {}"


def _flatten_errors(errors: Dict, path: List[str]) -> Iterator[Tuple[str, str]]:
    """Yield (dotted field path, message) for a nested cerberus error tree."""
    for field, messages in errors.items():
        field_path = path + [str(field)]
        for message in messages:
            if isinstance(message, dict):
                yield from _flatten_errors(message, field_path)
            else:
                yield ".".join(field_path), message


def validate_snapshot(snapshot: Dict) -> List[str]:
    """
    Ensure that the provided snapshot has no schema errors.

    Returns a list with all the errors found.
    """
    validator = cerberus.Validator(yaml.safe_load(SNAPSHOT_SCHEMA))
    validator.validate(snapshot)
    return [
        VALIDATION_ERR_MSG.format(field, message)
        for field, message in _flatten_errors(validator.errors, [])
    ]


def lower_values(value: Any) -> Any:
    if isinstance(value, str):
        return value.lower()
    elif isinstance(value, list):
        return [lower_values(entry) for entry in value]
    elif isinstance(value, dict):
        return {
            (key.lower() if isinstance(key, str) else key): lower_values(entry)
            for key, entry in value.items()
        }
    return value


def normalize_snapshot(snapshot: Dict) -> Snapshot:
    """
    Lower-case every identifier in the snapshot. Section names and metadata
    field names keep their case.
    """
    normalized = {}
    for section, content in snapshot.items():
        if section == "metadata" and isinstance(content, dict):
            normalized[section] = {
                key: lower_values(entry) for key, entry in content.items()
            }
        else:
            normalized[section] = lower_values(content)
    return normalized  # type: ignore


def load_snapshot(snapshot_path: str) -> Snapshot:
    """
    Load a snapshot from a YAML file.

    Raises a SnapshotLoadingError with all the errors found if the file does
    not exist, is not valid YAML or does not match the snapshot schema.

    Returns the snapshot with lower-cased identifiers if everything is OK.
    """
    try:
        with open(snapshot_path, "r") as stream:
            snapshot = yaml.safe_load(stream)
    except FileNotFoundError:
        raise SnapshotLoadingError(f"Snapshot file {snapshot_path} not found")
    except yaml.YAMLError as exc:
        raise SnapshotLoadingError(f"Snapshot file {snapshot_path} is not valid YAML: {exc}")

    if not isinstance(snapshot, dict):
        raise SnapshotLoadingError(
            f"Snapshot file {snapshot_path} must contain a mapping at the top level"
        )

    snapshot = normalize_snapshot(snapshot)
    error_messages = validate_snapshot(snapshot)
    if error_messages:
        raise SnapshotLoadingError("\n".join(error_messages))

    logger.debug(f"Loaded snapshot {snapshot_path}")
    return snapshot


def dump_snapshot(snapshot: Snapshot, snapshot_path: str) -> None:
    """
    Write a snapshot to a YAML file with sorted keys and sorted lists, so
    equal snapshots always produce identical files.
    """
    sorted_snapshot = copy.deepcopy(snapshot)
    deeply_sort_lists(sorted_snapshot)

    with open(snapshot_path, "w") as stream:
        yaml.safe_dump(
            sorted_snapshot, stream, sort_keys=True, default_flow_style=False
        )
    logger.debug(f"Wrote snapshot {snapshot_path}")


def snapshot_path(account_id: str, directory: str = ".") -> str:
    return os.path.join(directory, f"{account_id.lower()}.yaml")


def load_inventory(inventory_path: str) -> List[InventoryObject]:
    """
    Load the list of objects that exist in an account from a YAML file.

    Every entry needs a name, a kind, a database and a schema. The
    `SHOW OBJECTS` column names (database_name, schema_name) are accepted too.
    """
    try:
        with open(inventory_path, "r") as stream:
            rows = yaml.safe_load(stream)
    except FileNotFoundError:
        raise SnapshotLoadingError(f"Inventory file {inventory_path} not found")
    except yaml.YAMLError as exc:
        raise SnapshotLoadingError(
            f"Inventory file {inventory_path} is not valid YAML: {exc}"
        )

    if rows is None:
        return []
    if not isinstance(rows, list):
        raise SnapshotLoadingError(f"Inventory file {inventory_path} must contain a list")

    # SHOW OBJECTS rows carry many more columns than the ones used here
    validator = cerberus.Validator(
        yaml.safe_load(INVENTORY_OBJECT_SCHEMA), allow_unknown=True
    )
    error_messages = []
    for index, row in enumerate(rows):
        if not isinstance(row, dict):
            error_messages.append(INVENTORY_ERR_MSG.format(index, "row", "must be a mapping"))
            continue
        validator.validate(row)
        for field, message in _flatten_errors(validator.errors, []):
            error_messages.append(INVENTORY_ERR_MSG.format(index, field, message))

    if error_messages:
        raise SnapshotLoadingError("\n".join(error_messages))

    return [InventoryObject.from_row(row) for row in rows]
