"""Key paths of nested translation documents.

A translation document maps keys to strings, lists or nested documents.  Every
leaf is addressed by its *key path*, the dot-joined keys leading to it, e.g.
``common.actions.save``.  Lists are leaves; they are never expanded.

This module also holds the wildcard pattern language used to validate
dynamically built keys: ``*`` stands for exactly one dot-free segment, so
``common.error.*`` matches ``common.error.404`` but not
``common.error.not.found``.
"""

from __future__ import annotations

import re
from collections.abc import Collection, Iterable, Mapping
from functools import lru_cache
from typing import Any

WILDCARD = "*"
TODO_PREFIX = "TODO:"

_INTERPOLATION_RE = re.compile(r"\$\{[^}]+\}")
_SEGMENT_PATTERN = "[^.]+"


def extract_message_keys(messages: Mapping[str, Any], parent_key: str = "") -> list[str]:
    """Return every leaf key path of ``messages`` in document order.

    >>> extract_message_keys({"common": {"save": "Save", "items": ["a", "b"]}})
    ['common.save', 'common.items']
    """
    keys: list[str] = []
    for key, value in messages.items():
        full_key = f"{parent_key}.{key}" if parent_key else key
        if isinstance(value, dict):
            keys.extend(extract_message_keys(value, full_key))
        else:
            keys.append(full_key)
    return keys


def sort_keys(value: Any) -> Any:
    """Return ``value`` with dict keys sorted alphabetically at every level."""
    if not isinstance(value, dict):
        return value
    return {key: sort_keys(value[key]) for key in sorted(value)}


def _resolve_parts(node: Any, parts: list[str]) -> list[str] | None:
    """Map dot-split ``parts`` onto the real keys present in ``node``.

    Keys may contain dots themselves (``{"error.404": ...}``), so a segment
    that is not found on its own is retried joined with its successors.
    """
    if not parts:
        return []
    if not isinstance(node, dict):
        return None
    for end in range(1, len(parts) + 1):
        candidate = ".".join(parts[:end])
        if candidate in node:
            rest = _resolve_parts(node[candidate], parts[end:])
            if rest is not None:
                return [candidate, *rest]
    return None


def get_value_at_path(obj: Mapping[str, Any], key_path: str, default: Any = None) -> Any:
    """Return the value addressed by ``key_path`` or ``default``."""
    parts = _resolve_parts(obj, key_path.split("."))
    if parts is None:
        return default
    current: Any = obj
    for part in parts:
        current = current[part]
    return current


def delete_key_path(obj: dict[str, Any], key_path: str) -> bool:
    """Delete the value at ``key_path`` and prune parents left empty.

    Returns ``True`` when something was removed.  The root object itself is
    never removed, even when it ends up empty.
    """
    parts = _resolve_parts(obj, key_path.split("."))
    if not parts:
        return False
    chain: list[dict[str, Any]] = [obj]
    for part in parts[:-1]:
        chain.append(chain[-1][part])
    del chain[-1][parts[-1]]
    for depth in range(len(parts) - 1, 0, -1):
        if chain[depth]:
            break
        del chain[depth - 1][parts[depth - 1]]
    return True


def to_wildcard(key: str) -> str:
    """Replace every ``${...}`` interpolation in ``key`` with ``*``."""
    return _INTERPOLATION_RE.sub(WILDCARD, key)


def has_interpolation(key: str) -> bool:
    return "${" in key


@lru_cache(maxsize=2048)
def wildcard_regex(pattern: str) -> re.Pattern[str]:
    """Compile ``pattern`` so that each ``*`` matches one key segment."""
    return re.compile(_SEGMENT_PATTERN.join(re.escape(part) for part in pattern.split(WILDCARD)))


def usage_matches_defined(usage_key: str, defined_keys: Collection[str]) -> bool:
    """Return ``True`` if a (possibly wildcard) usage key names a defined key."""
    if usage_key in defined_keys:
        return True
    if WILDCARD not in usage_key:
        return False
    regex = wildcard_regex(usage_key)
    return any(regex.fullmatch(key) for key in defined_keys)


def defined_matches_usage(defined_key: str, used_keys: Iterable[str]) -> bool:
    """Return ``True`` if ``defined_key`` is covered by any of ``used_keys``."""
    used = used_keys if isinstance(used_keys, Collection) else list(used_keys)
    if defined_key in used:
        return True
    return any(
        WILDCARD in key and wildcard_regex(key).fullmatch(defined_key) is not None
        for key in used
    )


def todo_placeholder(reference_text: str) -> str:
    """Return the sentinel written in place of an untranslated value."""
    return f"{TODO_PREFIX} `{reference_text}`"


def is_todo(value: Any) -> bool:
    return isinstance(value, str) and value.startswith(TODO_PREFIX)


__all__ = [
    "TODO_PREFIX",
    "WILDCARD",
    "defined_matches_usage",
    "delete_key_path",
    "extract_message_keys",
    "get_value_at_path",
    "has_interpolation",
    "is_todo",
    "sort_keys",
    "to_wildcard",
    "todo_placeholder",
    "usage_matches_defined",
    "wildcard_regex",
]
