import pytest

from grantscope.set_normalization import (
    MISSING,
    deeply_sort_lists,
    fill_deleted_values,
    is_string_list,
    to_list_form,
    to_set_form,
)


@pytest.mark.parametrize(
    "value,expected",
    [
        (["a", "b"], True),
        (["a"], True),
        ([], False),
        (["a", 1], False),
        ([{"a": "b"}], False),
        ("a", False),
        ({"a": ["b"]}, False),
        (None, False),
    ],
)
def test_is_string_list(value, expected):
    assert is_string_list(value) is expected


class TestSetForm:
    def test_string_lists_become_sets(self):
        snapshot = {"roleGrants": {"viewer": {"select": {"table": ["b", "a", "b"]}}}}

        assert to_set_form(snapshot) == {
            "roleGrants": {"viewer": {"select": {"table": {"a", "b"}}}}
        }

    def test_empty_lists_and_mappings_are_kept(self):
        snapshot = {"userGrants": {"bob": {"roles": []}}, "warehouses": {}}

        assert to_set_form(snapshot) == snapshot

    def test_scalars_are_kept(self):
        snapshot = {"warehouses": {"wh": {"size": "large", "auto_suspend": None}}}

        assert to_set_form(snapshot) == snapshot

    def test_input_is_not_modified(self):
        snapshot = {"userGrants": {"bob": {"roles": ["b", "a"]}}}

        to_set_form(snapshot)

        assert snapshot == {"userGrants": {"bob": {"roles": ["b", "a"]}}}

    def test_list_form_is_sorted(self):
        """Equal sets must always produce the same list"""
        set_form = {"userGrants": {"bob": {"roles": {"c", "a", "b"}}}}

        assert to_list_form(set_form) == {"userGrants": {"bob": {"roles": ["a", "b", "c"]}}}

    def test_list_form_reverses_set_form(self):
        snapshot = {
            "roleGrants": {"viewer": {"usage": {"database": ["acme"], "role": []}}},
            "warehouses": {"wh": {"size": "x-small", "auto_suspend": 600}},
        }

        assert to_list_form(to_set_form(snapshot)) == snapshot


def test_deeply_sort_lists():
    snapshot = {
        "roleGrants": {"viewer": {"select": {"table": ["c", "a", "b"]}}},
        "userGrants": {"bob": {"roles": ["z", "y"]}},
    }

    deeply_sort_lists(snapshot)

    assert snapshot == {
        "roleGrants": {"viewer": {"select": {"table": ["a", "b", "c"]}}},
        "userGrants": {"bob": {"roles": ["y", "z"]}},
    }


class TestFillDeletedValues:
    def test_missing_values_are_looked_up(self):
        current = {"foo": {"a": True, "b": True, "c": {"d": 1}}}
        deleted = {"foo": {"c": MISSING}}

        fill_deleted_values(deleted, current)

        assert deleted == {"foo": {"c": {"d": 1}}}

    def test_other_values_are_kept(self):
        current = {"foo": {"a": {"x", "y"}, "b": 2}}
        deleted = {"foo": {"a": {"x"}, "b": MISSING}}

        fill_deleted_values(deleted, current)

        assert deleted == {"foo": {"a": {"x"}, "b": 2}}
