from __future__ import annotations

import doctest

import pytest

from i18n_keyguard import keys
from i18n_keyguard.keys import (
    defined_matches_usage,
    delete_key_path,
    extract_message_keys,
    get_value_at_path,
    is_todo,
    sort_keys,
    to_wildcard,
    todo_placeholder,
    usage_matches_defined,
)


def test_doctests():
    failures, _ = doctest.testmod(keys)
    assert failures == 0


def test_extract_message_keys_nested_and_lists():
    messages = {"a": {"b": "x", "c": {"d": "y"}}, "list": [1, 2], "top": "z"}
    assert extract_message_keys(messages) == ["a.b", "a.c.d", "list", "top"]


def test_extract_message_keys_empty_dict_has_no_leaves():
    assert extract_message_keys({"a": {}}) == []


def test_sort_keys_is_recursive_and_keeps_lists():
    data = {"b": {"z": 1, "a": 2}, "a": [{"y": 1, "x": 2}]}
    result = sort_keys(data)
    assert list(result) == ["a", "b"]
    assert list(result["b"]) == ["a", "z"]
    assert result["a"] == [{"y": 1, "x": 2}]


def test_get_value_at_path_handles_dotted_keys():
    data = {"common": {"error.404": "Not Found"}}
    assert get_value_at_path(data, "common.error.404") == "Not Found"
    assert get_value_at_path(data, "common.missing", "fallback") == "fallback"


def test_delete_key_path_prunes_empty_parents():
    data = {"foo": {"bar": {"baz": "x"}}, "keep": "y"}
    assert delete_key_path(data, "foo.bar.baz")
    assert data == {"keep": "y"}


def test_delete_key_path_keeps_non_empty_parents():
    data = {"foo": {"bar": "x", "other": "y"}}
    assert delete_key_path(data, "foo.bar")
    assert data == {"foo": {"other": "y"}}


def test_delete_key_path_never_removes_root():
    data = {"only": "x"}
    assert delete_key_path(data, "only")
    assert data == {}


def test_delete_key_path_missing_returns_false():
    data = {"foo": {"bar": "x"}}
    assert not delete_key_path(data, "foo.baz")
    assert not delete_key_path(data, "foo.bar.deeper")
    assert data == {"foo": {"bar": "x"}}


def test_delete_key_path_with_dotted_key():
    data = {"common": {"error.404": "Not Found"}}
    assert delete_key_path(data, "common.error.404")
    assert data == {}


def test_to_wildcard_replaces_every_interpolation():
    assert to_wildcard("a.${x}.b.${y.z}") == "a.*.b.*"
    assert to_wildcard("plain.key") == "plain.key"


@pytest.mark.parametrize(
    ("usage", "expected"),
    [
        ("common.save", True),
        ("common.*", True),
        ("common.error.*", True),
        ("*.save", True),
        ("common.delete", False),
        ("common.*.deep", False),
    ],
)
def test_usage_matches_defined(usage, expected):
    defined = {"common.save", "common.error.404", "common.error.500"}
    assert usage_matches_defined(usage, defined) is expected


def test_wildcard_matches_single_segment_only():
    assert not usage_matches_defined("common.*", {"common.error.not_found"})
    assert usage_matches_defined("common.*.not_found", {"common.error.not_found"})


def test_wildcard_escapes_regex_characters():
    assert not usage_matches_defined("a+b.*", {"aab.x"})
    assert usage_matches_defined("a+b.*", {"a+b.x"})


def test_defined_matches_usage():
    used = ["common.save", "common.error.*"]
    assert defined_matches_usage("common.save", used)
    assert defined_matches_usage("common.error.404", used)
    assert not defined_matches_usage("common.cancel", used)
    assert defined_matches_usage("common.error.500", iter(used))


def test_todo_placeholder_round_trip():
    value = todo_placeholder("Hello")
    assert value == "TODO: `Hello`"
    assert is_todo(value)
    assert not is_todo("Hallo")
    assert not is_todo(None)
