"""Keep compiled language dictionaries aligned with the reference language.

:meth:`AlignmentChecker.check` compares the key paths of every dictionary in
the locales directory with the reference dictionary.  :meth:`~AlignmentChecker.fix`
sorts the reference file, drops extra keys from the other files and rebuilds
them in reference order.  Missing values, and values that are still
untranslated placeholders, become ``TODO: `<reference text>``` so translators
always see the current source text.
"""

from __future__ import annotations

import copy
import json
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, TextIO

from i18n_keyguard.keys import (
    delete_key_path,
    extract_message_keys,
    is_todo,
    sort_keys,
    todo_placeholder,
)
from i18n_keyguard.utils import dump_messages, load_messages, logger

ERR_REFERENCE_NOT_FOUND = "Reference file not found: {path}"


@dataclass
class AlignmentResult:
    """Key differences of one language file against the reference."""

    missing: list[str]
    extra: list[str]
    total: int

    @property
    def aligned(self) -> bool:
        return not self.missing and not self.extra


@dataclass
class LanguageFileResult:
    file: str
    path: Path
    alignment: AlignmentResult
    messages: dict[str, Any]


@dataclass
class AlignmentReport:
    reference_keys: list[str]
    results: list[LanguageFileResult] = field(default_factory=list)

    @property
    def issue_count(self) -> int:
        return sum(len(r.alignment.missing) + len(r.alignment.extra) for r in self.results)


def check_alignment(reference_keys: list[str], messages: dict[str, Any]) -> AlignmentResult:
    """Return the missing and extra key paths of ``messages``."""
    keys = extract_message_keys(messages)
    key_set = set(keys)
    reference_set = set(reference_keys)
    return AlignmentResult(
        missing=[key for key in reference_keys if key not in key_set],
        extra=[key for key in keys if key not in reference_set],
        total=len(keys),
    )


def rebuild_with_order(
    reference: dict[str, Any], messages: dict[str, Any] | None
) -> dict[str, Any]:
    """Rebuild ``messages`` following the sorted key order of ``reference``."""
    result: dict[str, Any] = {}
    for key in sorted(reference):
        ref_value = reference[key]
        has_value = isinstance(messages, dict) and key in messages
        value = messages[key] if has_value else None
        if isinstance(ref_value, list):
            if isinstance(value, list):
                result[key] = list(value)
            else:
                result[key] = todo_placeholder(json.dumps(ref_value, ensure_ascii=False))
        elif isinstance(ref_value, dict):
            result[key] = rebuild_with_order(ref_value, value if isinstance(value, dict) else None)
        elif not has_value or is_todo(value):
            result[key] = todo_placeholder(_as_text(ref_value))
        else:
            result[key] = value
    return result


def _as_text(value: Any) -> str:
    """Render a reference leaf the way it would appear in source text."""
    if isinstance(value, str):
        return value
    if value is None:
        return "null"
    return json.dumps(value)


class AlignmentChecker:
    """Check and fix key alignment between compiled language files."""

    def __init__(self, locales_dir: str | Path, reference_locale: str = "en") -> None:
        self.locales_dir = Path(locales_dir)
        self.reference_locale = reference_locale

    @property
    def reference_path(self) -> Path:
        return self.locales_dir / f"{self.reference_locale}.json"

    def check(self) -> AlignmentReport:
        """Compare each language file with the reference dictionary.

        Raises:
            FileNotFoundError: If the reference file does not exist.
        """
        reference_path = self.reference_path
        if not reference_path.exists():
            raise FileNotFoundError(ERR_REFERENCE_NOT_FOUND.format(path=reference_path))

        reference_keys = extract_message_keys(load_messages(reference_path))
        logger.debug(
            "Reference %s contains %d keys", reference_path.name, len(reference_keys)
        )
        report = AlignmentReport(reference_keys)
        lang_files = sorted(
            path
            for path in self.locales_dir.glob("*.json")
            if path.name != reference_path.name
        )
        if not lang_files:
            logger.debug("No other language files to compare with %s", reference_path.name)
            return report

        for path in lang_files:
            messages = load_messages(path)
            report.results.append(
                LanguageFileResult(
                    file=path.name,
                    path=path,
                    alignment=check_alignment(reference_keys, messages),
                    messages=messages,
                )
            )
        return report

    def print_alignment_results(
        self, results: list[LanguageFileResult], stream: TextIO | None = None
    ) -> None:
        """Write a per-file alignment report to ``stream`` (stdout)."""
        out = stream or sys.stdout
        reference_name = f"{self.reference_locale}.json"
        for result in results:
            alignment = result.alignment
            out.write(f"{result.file}:\n")
            out.write(f"   Total keys: {alignment.total}\n")
            if alignment.missing:
                out.write(f"   Missing keys: {len(alignment.missing)}\n")
                out.writelines(f'      - "{key}"\n' for key in alignment.missing)
            if alignment.extra:
                out.write(f"   Extra keys: {len(alignment.extra)}\n")
                out.writelines(f'      - "{key}"\n' for key in alignment.extra)
            if alignment.aligned:
                out.write(f"   Aligned with {reference_name}\n")
            out.write("\n")

        total = sum(len(r.alignment.missing) + len(r.alignment.extra) for r in results)
        if total == 0:
            out.write(f"All language files are aligned with {reference_name}!\n")
        else:
            affected = sum(1 for r in results if not r.alignment.aligned)
            out.write(
                f"Summary: {total} alignment issues found across {affected} files\n"
            )

    def fix(self, results: list[LanguageFileResult]) -> int:
        """Rewrite language files to match the reference; return files changed.

        Files whose content already matches are left untouched.  A file that
        cannot be read or written is logged and skipped.
        """
        reference_path = self.reference_path
        reference = sort_keys(load_messages(reference_path))
        if _write_if_changed(reference_path, dump_messages(reference)):
            logger.debug("Sorted %s", reference_path.name)

        fixed = 0
        for result in results:
            cleaned = copy.deepcopy(result.messages)
            for key in result.alignment.extra:
                delete_key_path(cleaned, key)
            rebuilt = rebuild_with_order(reference, cleaned)
            try:
                changed = _write_if_changed(result.path, dump_messages(rebuilt))
            except OSError as exc:
                logger.error("Failed to write %s: %s", result.path, exc)
                continue
            if not changed:
                logger.debug("%s is already aligned", result.file)
                continue
            logger.info(
                "Fixed %s: removed %d extra keys, added %d missing keys",
                result.file,
                len(result.alignment.extra),
                len(result.alignment.missing),
            )
            fixed += 1
        return fixed


def _write_if_changed(path: Path, content: str) -> bool:
    if path.exists() and path.read_text(encoding="utf-8") == content:
        return False
    path.write_text(content, encoding="utf-8")
    return True


__all__ = [
    "AlignmentChecker",
    "AlignmentReport",
    "AlignmentResult",
    "LanguageFileResult",
    "check_alignment",
    "rebuild_with_order",
]
