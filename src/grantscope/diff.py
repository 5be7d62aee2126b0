import copy
from dataclasses import dataclass, field
from typing import Any, Dict, Tuple

from grantscope.error import InvalidInputError
from grantscope.logger import GLOBAL_LOGGER as logger
from grantscope.set_normalization import (
    MISSING,
    fill_deleted_values,
    to_list_form,
    to_set_form,
)


@dataclass
class SnapshotDiff:
    """
    The change set between two snapshots.

    `added` and `deleted` hold partial snapshots with only the entries that
    appear in one side. `updated` holds leaf replacements (e.g. a new
    warehouse size) taken as-is from the proposed snapshot.
    """

    added: Dict[str, Any] = field(default_factory=dict)
    deleted: Dict[str, Any] = field(default_factory=dict)
    updated: Dict[str, Any] = field(default_factory=dict)

    def is_empty(self) -> bool:
        return not (self.added or self.deleted or self.updated)

    def as_dict(self) -> Dict[str, Any]:
        return {"added": self.added, "deleted": self.deleted, "updated": self.updated}


def diff_snapshots(current: Dict, proposed: Dict) -> SnapshotDiff:
    """
    Compute what has to be added, deleted and updated to get from `current`
    to `proposed`. String lists are compared as sets, so their order and
    duplicates never show up as changes. Neither argument is modified.

    Raises InvalidInputError if either snapshot is not a mapping.
    """
    for name, snapshot in (("current", current), ("proposed", proposed)):
        if not isinstance(snapshot, dict):
            raise InvalidInputError(
                f"Expected the {name} snapshot to be a mapping, got {type(snapshot).__name__}"
            )

    current_sets = to_set_form(current)
    proposed_sets = to_set_form(proposed)

    added, deleted, updated = _detailed_diff(current_sets, proposed_sets, proposed)

    # Deleted keys are only known by path, look their values up in current
    fill_deleted_values(deleted, current_sets)

    snapshot_diff = SnapshotDiff(
        added=to_list_form(added),
        deleted=to_list_form(deleted),
        updated=copy.deepcopy(updated),
    )
    logger.debug(
        f"Diffed snapshots: {sorted(snapshot_diff.added)} added, "
        f"{sorted(snapshot_diff.deleted)} deleted, "
        f"{sorted(snapshot_diff.updated)} updated"
    )
    return snapshot_diff


def _detailed_diff(
    current: Dict, proposed: Dict, original_proposed: Dict
) -> Tuple[Dict, Dict, Dict]:
    """
    Structural diff of two set-form mappings. Keys only in `current` are
    reported as MISSING under deleted. `original_proposed` is the list-form
    counterpart of `proposed`, used for the values reported as updated.
    """
    added: Dict[str, Any] = {}
    deleted: Dict[str, Any] = {}
    updated: Dict[str, Any] = {}

    for key in current:
        if key not in proposed:
            deleted[key] = MISSING

    for key, new_value in proposed.items():
        if key not in current:
            added[key] = new_value
            continue

        old_value = current[key]
        if isinstance(old_value, dict) and isinstance(new_value, dict):
            sub_added, sub_deleted, sub_updated = _detailed_diff(
                old_value, new_value, original_proposed[key]
            )
            if sub_added:
                added[key] = sub_added
            if sub_deleted:
                deleted[key] = sub_deleted
            if sub_updated:
                updated[key] = sub_updated
        elif _is_set_like(old_value) and _is_set_like(new_value):
            old_entries, new_entries = set(old_value), set(new_value)
            if new_entries - old_entries:
                added[key] = new_entries - old_entries
            if old_entries - new_entries:
                deleted[key] = old_entries - new_entries
        elif old_value != new_value:
            updated[key] = original_proposed[key]

    return added, deleted, updated


def _is_set_like(value: Any) -> bool:
    # An empty list is an empty collection of strings
    return isinstance(value, set) or value == []
