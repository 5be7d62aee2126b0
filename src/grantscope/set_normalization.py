"""
Conversions between the list form of a snapshot (as written to disk) and the
set form used for diffing.

In set form every non-empty list of strings becomes a python `set`, so that
reordering or duplicating entries does not register as a change. Empty lists
and empty mappings are left alone: "no grants" stays distinguishable from
"any grants".
"""
from typing import Any, List


class _Missing:
    """Placeholder for a value that was deleted from a mapping."""

    def __repr__(self):
        return "MISSING"


MISSING = _Missing()


def is_string_list(value: Any) -> bool:
    """
    Returns True for a non-empty list whose entries are all strings.

    is_string_list(["a", "b"]) -> True
    is_string_list([]) -> False
    is_string_list(["a", 1]) -> False
    """
    if not isinstance(value, list) or not value:
        return False
    return all(isinstance(entry, str) for entry in value)


def to_set_form(value: Any) -> Any:
    """
    Return a copy of `value` where every non-empty string list is a set.
    Mappings and other lists are recursed into but keep their type.
    """
    if is_string_list(value):
        return set(value)
    if isinstance(value, dict):
        return {key: to_set_form(entry) for key, entry in value.items()}
    if isinstance(value, list):
        return [to_set_form(entry) for entry in value]
    return value


def to_list_form(value: Any) -> Any:
    """
    Inverse of `to_set_form`. Sets become lists sorted in ascending order, so
    two equal snapshots always serialize the same way.
    """
    if isinstance(value, (set, frozenset)):
        return sorted(value)
    if isinstance(value, dict):
        return {key: to_list_form(entry) for key, entry in value.items()}
    if isinstance(value, list):
        return [to_list_form(entry) for entry in value]
    return value


def deeply_sort_lists(value: Any) -> None:
    """Sort every string list found in `value` in place."""
    if isinstance(value, dict):
        entries: List[Any] = list(value.values())
    elif isinstance(value, list):
        if is_string_list(value):
            value.sort()
            return
        entries = value
    else:
        return

    for entry in entries:
        deeply_sort_lists(entry)


def fill_deleted_values(deleted: dict, current: dict) -> None:
    """
    Replace every MISSING placeholder in `deleted` with the value found at the
    same key path in `current`. Works in place.
    """
    _fill_deleted_values(deleted, current, [])


def _fill_deleted_values(deleted: dict, current: dict, keys: List[str]) -> None:
    for key, value in deleted.items():
        keys.append(key)
        if value is MISSING:
            deleted[key] = _get_value(current, keys)
        elif isinstance(value, dict):
            _fill_deleted_values(value, current, keys)
        keys.pop()


def _get_value(tree: dict, keys: List[str]) -> Any:
    value: Any = tree
    for key in keys:
        value = value[key]
    return value
