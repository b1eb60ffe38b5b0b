"""Compile directory-scoped translation fragments into one file per language.

Fragments are ``<language>.json`` files anywhere below the configured source
directories.  Each fragment's directory determines its namespace (see
:func:`i18n_keyguard.namespace.path_to_namespace`); fragments without a
namespace are deep-merged at the root, namespaced fragments are laid over the
existing value at their namespace one level deep.  The merged tree is sorted
and written to ``<output_dir>/<language>.json``.

:class:`I18nMergePlugin` wraps the merger for build pipelines: it merges once
on :meth:`~I18nMergePlugin.build_start` and again for every changed fragment
reported to :meth:`~I18nMergePlugin.watch_change`.
"""

from __future__ import annotations

import copy
import json
import threading
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from i18n_keyguard.keys import sort_keys
from i18n_keyguard.namespace import find_fragment_files, namespace_prefix, path_to_namespace
from i18n_keyguard.utils import dump_messages, logger

MergeCallback = Callable[[], None]

_SEPARATOR = "=" * 60


@dataclass
class MergeOptions:
    """Settings for :class:`I18nMerger`."""

    src_dirs: list[Path]
    output_dir: Path
    languages: list[str] = field(default_factory=lambda: ["en"])
    sort_original_files: bool = False
    src_dir_namespaces: dict[str, str] = field(default_factory=dict)
    on_merge_complete: MergeCallback | None = None

    def __post_init__(self) -> None:
        if isinstance(self.src_dirs, str | Path):
            self.src_dirs = [self.src_dirs]
        self.src_dirs = [Path(src) for src in self.src_dirs]
        self.output_dir = Path(self.output_dir)


def deep_merge(target: dict[str, Any], source: Mapping[str, Any]) -> dict[str, Any]:
    """Merge ``source`` into ``target`` recursively; source leaves win."""
    for key, value in source.items():
        current = target.get(key)
        if isinstance(value, dict) and isinstance(current, dict):
            deep_merge(current, value)
        else:
            target[key] = copy.deepcopy(value)
    return target


class I18nMerger:
    """Discover, merge and write translation fragments."""

    def __init__(self, options: MergeOptions) -> None:
        self.options = options

    def get_files_by_dir(self, language: str) -> list[tuple[Path, list[Path]]]:
        """Return ``(src_dir, fragments)`` pairs for ``language``."""
        return [
            (src_dir, find_fragment_files(src_dir, language))
            for src_dir in self.options.src_dirs
        ]

    def get_all_i18n_files(self) -> list[Path]:
        """Return all fragments of every configured language."""
        return [
            path
            for language in self.options.languages
            for _, files in self.get_files_by_dir(language)
            for path in files
        ]

    def merge_i18n_files(self) -> list[Path]:
        """Merge every configured language; return the files written."""
        written: list[Path] = []
        try:
            for language in self.options.languages:
                output = self.merge_language_files(language)
                if output is not None:
                    written.append(output)
        except Exception as exc:
            logger.error("Failed to merge i18n files: %s", exc)
            raise
        return written

    def merge_language_files(self, language: str) -> Path | None:
        """Compile the fragments of ``language``.

        Returns the output path, or ``None`` when the sort pre-pass rewrote a
        fragment.  In that case the merge is skipped for this run and must be
        triggered again.
        """
        files_by_dir = self.get_files_by_dir(language)

        if self.options.sort_original_files:
            changed = [path for _, files in files_by_dir for path in files if self.sort_file(path)]
            if changed:
                logger.debug(
                    "Sorted %d %s fragments, waiting for next trigger to merge",
                    len(changed),
                    language,
                )
                return None

        merged: dict[str, Any] = {}
        for src_dir, files in files_by_dir:
            prefix = namespace_prefix(src_dir, self.options.src_dir_namespaces)
            for path in files:
                messages = json.loads(path.read_text(encoding="utf-8"))
                namespace = path_to_namespace(path, src_dir, prefix)
                self.merge_into_namespace(merged, namespace, messages)

        output_path = self.options.output_dir / f"{language}.json"
        output_path.parent.mkdir(parents=True, exist_ok=True)
        content = dump_messages(sort_keys(merged))
        if not output_path.exists() or output_path.read_text(encoding="utf-8") != content:
            output_path.write_text(content, encoding="utf-8")
            logger.debug("Generated %s", output_path)
        else:
            logger.debug("%s is up to date", output_path)
        return output_path

    @staticmethod
    def merge_into_namespace(
        target: dict[str, Any], namespace: str, messages: Mapping[str, Any]
    ) -> None:
        """Place ``messages`` at ``namespace`` inside ``target``.

        Root fragments are deep-merged.  Namespaced fragments replace
        same-named keys at the namespace without recursing, so two fragments
        sharing a namespace overwrite each other's top-level keys.
        """
        if not namespace:
            deep_merge(target, messages)
            return

        # a list path keeps bracketed segments such as "[id]" intact
        parts = namespace.strip(".").split(".")
        node = target
        for part in parts[:-1]:
            child = node.get(part)
            if not isinstance(child, dict):
                child = node[part] = {}
            node = child
        existing = node.get(parts[-1])
        if not isinstance(existing, dict):
            existing = {}
        node[parts[-1]] = {**existing, **copy.deepcopy(dict(messages))}

    @staticmethod
    def sort_file(path: Path) -> bool:
        """Rewrite ``path`` with sorted keys; return ``True`` if it changed."""
        try:
            original = path.read_text(encoding="utf-8")
            content = dump_messages(sort_keys(json.loads(original)))
            if original.strip() == content.strip():
                return False
            path.write_text(content, encoding="utf-8")
        except (OSError, ValueError) as exc:
            logger.error("Failed to sort %s: %s", path, exc)
            return False
        logger.debug("Sorted %s", path)
        return True

    def is_i18n_file(self, path: str | Path) -> bool:
        """Return ``True`` if ``path`` is a fragment of a configured language."""
        normalised = str(path).replace("\\", "/")
        return any(normalised.endswith(f"/{lang}.json") for lang in self.options.languages)


class I18nMergePlugin:
    """Build-pipeline integration around one :class:`I18nMerger`.

    The plugin holds the state of a single pipeline attachment: whether the
    initial merge has run and whether a merge is in flight.  A change
    reported while a merge is running is dropped, not queued.
    """

    name = "i18n-merge-plugin"

    def __init__(self, options: MergeOptions) -> None:
        self.merger = I18nMerger(options)
        self.on_merge_complete = options.on_merge_complete
        self.initialized = False
        self.is_processing = False
        self._guard = threading.Lock()

    def _run(self) -> None:
        self.merger.merge_i18n_files()
        if self.on_merge_complete is not None:
            self.on_merge_complete()

    def build_start(self, add_watch_file: Callable[[Path], None] | None = None) -> list[Path]:
        """Run the initial merge and register fragments for watching.

        Returns the registered fragment paths; later calls are no-ops.
        """
        if self.initialized:
            return []
        logger.debug(_SEPARATOR)
        logger.info("Initial i18n compilation")
        self._run()
        self.initialized = True
        logger.debug(_SEPARATOR)

        files = self.watched_files()
        if add_watch_file is not None:
            for path in files:
                add_watch_file(path)
        return files

    def watch_change(self, path: str | Path) -> bool:
        """Re-merge after ``path`` changed; return ``True`` if a merge ran."""
        with self._guard:
            if self.is_processing:
                logger.debug("Merge in progress, ignoring change to %s", path)
                return False
            if not self.merger.is_i18n_file(path):
                return False
            self.is_processing = True
        logger.debug(_SEPARATOR)
        logger.info("i18n file changed: %s", path)
        try:
            self._run()
        finally:
            self.is_processing = False
            logger.debug(_SEPARATOR)
        return True

    def watched_files(self) -> list[Path]:
        """Return the fragment files the host should watch."""
        return [path.resolve() for path in self.merger.get_all_i18n_files()]


def _snapshot(paths: Iterable[Path]) -> dict[Path, int]:
    stamps: dict[Path, int] = {}
    for path in paths:
        try:
            stamps[path] = path.stat().st_mtime_ns
        except FileNotFoundError:
            continue
    return stamps


def poll_changes(
    plugin: I18nMergePlugin,
    *,
    interval: float = 1.0,
    stop: threading.Event | None = None,
) -> None:
    """Feed fragment changes to ``plugin`` until ``stop`` is set.

    Fragments are rediscovered every ``interval`` seconds so new and deleted
    files are noticed.  All changes seen in one interval trigger a single
    merge.  A failed merge is logged and polling continues, so saving a
    corrected fragment recovers.
    """
    stop = stop or threading.Event()
    previous = _snapshot(plugin.watched_files())
    while not stop.wait(interval):
        current = _snapshot(plugin.watched_files())
        changed = sorted(
            path
            for path in previous.keys() | current.keys()
            if previous.get(path) != current.get(path)
        )
        previous = current
        if not changed:
            continue
        try:
            plugin.watch_change(changed[0])
        except (OSError, ValueError) as exc:
            logger.error("Merge failed, waiting for the next change: %s", exc)


__all__ = [
    "I18nMergePlugin",
    "I18nMerger",
    "MergeOptions",
    "deep_merge",
    "poll_changes",
]
