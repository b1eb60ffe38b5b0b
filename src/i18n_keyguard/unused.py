"""Report and remove translation keys that no source file uses.

The defined keys come from the compiled reference dictionary; the used keys
from scanning the sources, where dynamic keys such as ``common.error.${code}``
become the pattern ``common.error.*``.  A defined key is unused when no used
key or pattern covers it and no whitelist prefix applies.

Each unused key is traced back to the fragment file that defines it by
matching the longest namespace prefix of the key against the namespaces of
all reference-language fragments, computed the same way the merger does.
"""

from __future__ import annotations

import json
import sys
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import TextIO

from i18n_keyguard.keys import (
    WILDCARD,
    defined_matches_usage,
    delete_key_path,
    extract_message_keys,
    has_interpolation,
    to_wildcard,
)
from i18n_keyguard.namespace import find_fragment_files, namespace_prefix, path_to_namespace
from i18n_keyguard.scanner import KeyUsage, ScannerConfig, find_usage_in_dirs
from i18n_keyguard.utils import load_messages, logger, write_messages

ERR_TRANSLATION_NOT_FOUND = "Translation file not found: {path}"


@dataclass
class UnusedKey:
    full_key: str
    local_key_path: str


@dataclass
class FileGroup:
    """Unused keys that live in one fragment file."""

    namespace: str
    keys: list[UnusedKey] = field(default_factory=list)


@dataclass
class NamespaceMatch:
    namespace: str
    file_path: Path
    local_key_path: str


@dataclass
class UnusedStatistics:
    defined_keys_count: int
    used_keys_count: int
    unused_keys_count: int


@dataclass
class UnusedReport:
    unused_keys: list[str]
    file_groups: dict[Path, FileGroup]
    unmatched_keys: list[str]
    statistics: UnusedStatistics


def collect_used_keys(usage: Mapping[str, list[KeyUsage]]) -> list[str]:
    """Return the used keys, turning dynamic keys into wildcard patterns.

    Patterns starting with a wildcard match almost anything and are dropped.
    """
    used: list[str] = []
    for full_key, entries in usage.items():
        if has_interpolation(full_key) and any(entry.is_dynamic for entry in entries):
            pattern = to_wildcard(full_key)
            if pattern.startswith(WILDCARD):
                continue
            used.append(pattern)
        else:
            used.append(full_key)
    return used


def find_best_matching_namespace(
    key: str, namespace_map: Mapping[str, Path]
) -> NamespaceMatch | None:
    """Return the fragment owning ``key``, trying the longest namespace first.

    ``pages.home.title`` with a fragment at namespace ``pages.home`` yields
    that file and the local path ``title``.  The empty namespace (a root
    fragment) is tried last.
    """
    parts = key.split(".")
    for depth in range(len(parts) - 1, -1, -1):
        candidate = ".".join(parts[:depth])
        file_path = namespace_map.get(candidate)
        if file_path is not None:
            return NamespaceMatch(candidate, file_path, ".".join(parts[depth:]))
    return None


class UnusedKeysChecker:
    """Find, report and optionally remove unused translation keys."""

    def __init__(
        self,
        src_dirs: str | Path | Sequence[str | Path],
        locales_dir: str | Path,
        *,
        translation_factories: Sequence[str] | None = None,
        i18n_library: str = "vue-i18n",
        whitelist_prefixes: Sequence[str] = (),
        reference_locale: str = "en",
        src_dir_namespaces: Mapping[str | Path, str] | None = None,
    ) -> None:
        if isinstance(src_dirs, str | Path):
            src_dirs = [src_dirs]
        self.src_dirs = [Path(src) for src in src_dirs]
        self.locales_dir = Path(locales_dir)
        self.whitelist_prefixes = tuple(whitelist_prefixes)
        self.reference_locale = reference_locale
        self.src_dir_namespaces = dict(src_dir_namespaces or {})
        self.scanner_config = ScannerConfig.for_library(
            i18n_library,
            None if translation_factories is None else tuple(translation_factories),
        )

    def build_namespace_map(self) -> dict[str, Path]:
        """Map the namespace of every reference fragment to its path."""
        namespace_map: dict[str, Path] = {}
        for src_dir in self.src_dirs:
            prefix = namespace_prefix(src_dir, self.src_dir_namespaces)
            for path in find_fragment_files(src_dir, self.reference_locale):
                namespace_map[path_to_namespace(path, src_dir, prefix)] = path
        logger.debug("Found %d translation fragments", len(namespace_map))
        return namespace_map

    def is_whitelisted(self, key: str) -> bool:
        return any(
            key == prefix or key.startswith(prefix + ".") for prefix in self.whitelist_prefixes
        )

    def group_by_file(
        self, unused_keys: list[str], namespace_map: Mapping[str, Path]
    ) -> tuple[dict[Path, FileGroup], list[str]]:
        """Group ``unused_keys`` by owning fragment; also return unmatched keys."""
        groups: dict[Path, FileGroup] = {}
        unmatched: list[str] = []
        for key in unused_keys:
            match = find_best_matching_namespace(key, namespace_map)
            if match is None:
                unmatched.append(key)
                continue
            group = groups.setdefault(match.file_path, FileGroup(match.namespace))
            group.keys.append(UnusedKey(key, match.local_key_path))

        if unmatched:
            logger.warning(
                "Logic error: %d keys could not be matched to source files: %s",
                len(unmatched),
                ", ".join(unmatched),
            )
            logger.warning("This indicates a problem with the namespace mapping.")
        return groups, unmatched

    def check(self) -> UnusedReport:
        """Return unused keys grouped by fragment file, with statistics.

        Raises:
            FileNotFoundError: If the reference dictionary does not exist.
        """
        path = self.locales_dir / f"{self.reference_locale}.json"
        if not path.exists():
            raise FileNotFoundError(ERR_TRANSLATION_NOT_FOUND.format(path=path))

        namespace_map = self.build_namespace_map()
        defined_keys = list(dict.fromkeys(extract_message_keys(load_messages(path))))
        logger.debug("Loaded %d defined keys from %s", len(defined_keys), path.name)

        usage = find_usage_in_dirs(self.src_dirs, self.scanner_config)
        used_keys = collect_used_keys(usage)
        used_set = set(used_keys)
        logger.debug("Found %d unique keys used in source files", len(used_keys))

        unused = [
            key
            for key in defined_keys
            if not self.is_whitelisted(key) and not defined_matches_usage(key, used_set)
        ]
        logger.debug("%d unused keys after whitelist filtering", len(unused))

        groups, unmatched = self.group_by_file(unused, namespace_map)
        return UnusedReport(
            unused_keys=unused,
            file_groups=groups,
            unmatched_keys=unmatched,
            statistics=UnusedStatistics(
                defined_keys_count=len(defined_keys),
                used_keys_count=len(used_keys),
                unused_keys_count=len(unused),
            ),
        )

    def print_unused_keys(
        self, file_groups: Mapping[Path, FileGroup], stream: TextIO | None = None
    ) -> None:
        """Write unused keys grouped by fragment file to ``stream`` (stderr)."""
        out = stream or sys.stderr
        total = sum(len(group.keys) for group in file_groups.values())
        out.write(f"Found {total} unused i18n keys:\n\n")
        for file_path, group in file_groups.items():
            suffix = f" (namespace: {group.namespace})" if group.namespace else ""
            out.write(f"{file_path}{suffix}:\n")
            out.writelines(
                f'   "{key.local_key_path}" -> "{key.full_key}"\n' for key in group.keys
            )
            out.write("\n")
        out.write("Run with --fix to remove unused keys from the fragment files\n")

    def fix(self, file_groups: Mapping[Path, FileGroup]) -> int:
        """Delete unused keys from their fragment files; return keys removed.

        Files are rewritten only when something changed.  A file that is
        missing or cannot be processed is logged and skipped.
        """
        total = 0
        for file_path, group in file_groups.items():
            if not file_path.exists():
                logger.warning("Source file not found: %s", file_path)
                continue
            try:
                data = json.loads(file_path.read_text(encoding="utf-8"))
                removed = [
                    key.local_key_path
                    for key in group.keys
                    if delete_key_path(data, key.local_key_path)
                ]
                if not removed:
                    continue
                write_messages(file_path, data)
            except (OSError, ValueError) as exc:
                logger.error("Failed to process %s: %s", file_path, exc)
                continue
            logger.info("Removed %d unused keys from %s", len(removed), file_path)
            logger.debug("Removed keys: %s", ", ".join(removed))
            total += len(removed)
        logger.debug("Total unused keys removed: %d", total)
        return total


__all__ = [
    "FileGroup",
    "NamespaceMatch",
    "UnusedKey",
    "UnusedKeysChecker",
    "UnusedReport",
    "UnusedStatistics",
    "collect_used_keys",
    "find_best_matching_namespace",
]
