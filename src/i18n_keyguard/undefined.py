"""Report translation keys used in source code but missing from the dictionary."""

from __future__ import annotations

import sys
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import TextIO

from i18n_keyguard.keys import WILDCARD, extract_message_keys, to_wildcard, usage_matches_defined
from i18n_keyguard.scanner import PAGE_META_PREFIX, KeyUsage, ScannerConfig, find_usage_in_dirs
from i18n_keyguard.utils import load_messages, logger

ERR_TRANSLATION_NOT_FOUND = "Translation file not found: {path}"


@dataclass
class UndefinedStatistics:
    defined_keys_count: int
    usage_count: int


@dataclass
class UndefinedReport:
    undefined_keys: list[KeyUsage]
    statistics: UndefinedStatistics


def key_to_check(entry: KeyUsage) -> str:
    """Return the key validated for ``entry``; dynamic parts become ``*``."""
    return to_wildcard(entry.full_key) if entry.is_dynamic else entry.full_key


def find_undefined_keys(
    usage: dict[str, list[KeyUsage]], defined_keys: set[str]
) -> list[KeyUsage]:
    """Return usage entries whose key matches no defined key.

    Keys starting with a wildcard (``*``, ``*.save``) cannot be validated and
    are skipped.
    """
    undefined: list[KeyUsage] = []
    for entries in usage.values():
        for entry in entries:
            key = key_to_check(entry)
            if key.startswith(WILDCARD):
                continue
            if not usage_matches_defined(key, defined_keys):
                undefined.append(entry)
    return undefined


class UndefinedKeysChecker:
    """Find translation keys used in ``src_dirs`` but not defined.

    Usage keys are checked against the reference dictionary in
    ``locales_dir``; dynamic keys match when each interpolation can stand for
    one key segment of a defined key.
    """

    def __init__(
        self,
        src_dirs: str | Path | Sequence[str | Path],
        locales_dir: str | Path,
        *,
        translation_factories: Sequence[str] | None = None,
        i18n_library: str = "vue-i18n",
        reference_locale: str = "en",
    ) -> None:
        if isinstance(src_dirs, str | Path):
            src_dirs = [src_dirs]
        self.src_dirs = [Path(src) for src in src_dirs]
        self.locales_dir = Path(locales_dir)
        self.reference_locale = reference_locale
        self.scanner_config = ScannerConfig.for_library(
            i18n_library,
            None if translation_factories is None else tuple(translation_factories),
        )

    def check(self) -> UndefinedReport:
        """Scan the sources and return undefined usage with statistics.

        Raises:
            FileNotFoundError: If the reference dictionary does not exist.
        """
        path = self.locales_dir / f"{self.reference_locale}.json"
        if not path.exists():
            raise FileNotFoundError(ERR_TRANSLATION_NOT_FOUND.format(path=path))
        defined_keys = set(extract_message_keys(load_messages(path)))
        usage = find_usage_in_dirs(self.src_dirs, self.scanner_config)
        undefined = find_undefined_keys(usage, defined_keys)
        logger.debug(
            "%d defined keys, %d used keys, %d undefined usages",
            len(defined_keys),
            len(usage),
            len(undefined),
        )
        return UndefinedReport(
            undefined_keys=undefined,
            statistics=UndefinedStatistics(
                defined_keys_count=len(defined_keys),
                usage_count=len(usage),
            ),
        )

    def format_usage(self, entry: KeyUsage) -> str:
        """Render ``entry`` the way it appears in source."""
        name = entry.function_name
        if name.startswith(PAGE_META_PREFIX):
            quote = entry.quote or "'"
            return f"{name}={quote}{entry.key}{quote}"
        if name.lstrip(":") in self.scanner_config.key_attributes:
            if name.startswith(":"):
                return f'{name}="{entry.quote}{entry.key}{entry.quote}"'
            return f'{name}="{entry.key}"'
        return f"{name}({entry.quote}{entry.key}{entry.quote})"

    def print_undefined_keys(
        self, undefined_keys: list[KeyUsage], stream: TextIO | None = None
    ) -> None:
        """Write undefined usage grouped by file to ``stream`` (stderr)."""
        out = stream or sys.stderr
        out.write("Found undefined i18n keys:\n\n")
        out.write(f"Total: {len(undefined_keys)} undefined keys\n\n")

        by_file: dict[str, list[KeyUsage]] = {}
        for entry in undefined_keys:
            by_file.setdefault(entry.file, []).append(entry)

        for file in sorted(by_file):
            out.write(f"{file}:\n")
            for entry in sorted(by_file[file], key=lambda item: (item.line, item.column)):
                scope = f"[namespace: {entry.namespace}]" if entry.namespace else "[no namespace]"
                out.write(
                    f"   Line {entry.line}:{entry.column} - {scope} "
                    f'{self.format_usage(entry)} -> "{entry.full_key}"\n'
                )
            out.write("\n")


__all__ = [
    "UndefinedKeysChecker",
    "UndefinedReport",
    "UndefinedStatistics",
    "find_undefined_keys",
    "key_to_check",
]
