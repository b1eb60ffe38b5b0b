"""Command line interface for merging and checking translation files."""

from __future__ import annotations

import argparse
import sys
import typing as t
from pathlib import Path
from typing import Any, Self

from i18n_keyguard.alignment import AlignmentChecker
from i18n_keyguard.config import CONFIG_FILENAME, DEFAULT_CONFIG, load_config, save_config_at
from i18n_keyguard.merge import I18nMergePlugin, MergeOptions, poll_changes
from i18n_keyguard.paths import validate_directory, validate_path
from i18n_keyguard.undefined import UndefinedKeysChecker
from i18n_keyguard.unused import UnusedKeysChecker
from i18n_keyguard.utils import configure_logging, logger

_Handler = t.Callable[[argparse.Namespace, dict[str, Any]], int]


class CliError(RuntimeError):
    """Raised when CLI arguments cannot be processed."""

    @classmethod
    def unsupported_command(cls, command: str) -> Self:
        return cls(f"unsupported command: {command}")

    @classmethod
    def no_source_dirs(cls) -> Self:
        return cls("no source directories configured; pass --src-dir or set 'src_dirs'")

    @classmethod
    def invalid_interval(cls, value: float) -> Self:
        return cls(f"polling interval must be positive, got {value}")

    @classmethod
    def config_exists(cls, path: Path) -> Self:
        return cls(f"config file already exists: {path}")


def main(argv: t.Sequence[str] | None = None) -> int:
    """Parse *argv* and dispatch the requested command."""
    parser = _create_parser()
    try:
        args = parser.parse_args(argv)
    except SystemExit as exc:  # pragma: no cover - argparse handles usage exits
        code = exc.code
        return code if isinstance(code, int) else 1

    try:
        handler = _resolve_handler(args.command)
        if args.command == "init":
            return handler(args, {})
        cfg = load_config(args.config)
        configure_logging(args.log_level or cfg["log_level"])
        _apply_overrides(cfg, args)
        return handler(args, cfg)
    except CliError as exc:
        _write_line(sys.stderr, str(exc))
        return 2
    except Exception as exc:  # pragma: no cover - exercised in integration tests
        _write_line(sys.stderr, f"Error: {exc}")
        return 1


def _resolve_handler(command: str) -> _Handler:
    handlers: dict[str, _Handler] = {
        "init": _handle_init,
        "merge": _handle_merge,
        "watch": _handle_watch,
        "align": _handle_align,
        "undefined": _handle_undefined,
        "unused": _handle_unused,
    }
    try:
        return handlers[command]
    except KeyError as exc:
        raise CliError.unsupported_command(command) from exc


def _create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="i18n-keyguard",
        description="Compile translation fragments and check translation keys.",
    )
    parser.add_argument(
        "--config",
        type=Path,
        help=f"Path to the config file (default: nearest {CONFIG_FILENAME}).",
    )
    parser.add_argument("--log-level", help="Logging level, e.g. DEBUG or INFO.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    init_parser = subparsers.add_parser(
        "init",
        help=f"Write a default {CONFIG_FILENAME}.",
    )
    init_parser.add_argument(
        "directory", nargs="?", type=Path, default=Path(), help="Project directory."
    )

    merge_parser = subparsers.add_parser(
        "merge",
        help="Merge fragments into one dictionary per language.",
    )
    _add_merge_arguments(merge_parser)

    watch_parser = subparsers.add_parser(
        "watch",
        help="Merge, then re-merge whenever a fragment changes.",
    )
    _add_merge_arguments(watch_parser)
    watch_parser.add_argument(
        "--interval",
        type=float,
        default=1.0,
        help="Seconds between file system polls.",
    )

    align_parser = subparsers.add_parser(
        "align",
        help="Compare language dictionaries with the reference language.",
    )
    _add_locale_arguments(align_parser)
    align_parser.add_argument(
        "--fix",
        action="store_true",
        help="Add missing keys as TODO placeholders and drop extra keys.",
    )

    undefined_parser = subparsers.add_parser(
        "undefined",
        help="Report keys used in source code but not defined.",
    )
    _add_locale_arguments(undefined_parser)
    _add_source_arguments(undefined_parser)

    unused_parser = subparsers.add_parser(
        "unused",
        help="Report keys defined but never used.",
    )
    _add_locale_arguments(unused_parser)
    _add_source_arguments(unused_parser)
    unused_parser.add_argument(
        "--whitelist",
        action="append",
        default=None,
        metavar="PREFIX",
        help="Key prefix never reported as unused (repeatable).",
    )
    unused_parser.add_argument(
        "--fix",
        action="store_true",
        help="Remove unused keys from their fragment files.",
    )
    return parser


def _add_source_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--src-dir",
        action="append",
        dest="src_dirs",
        default=None,
        metavar="DIR",
        help="Source directory to scan (repeatable, overrides config).",
    )


def _add_locale_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--locales-dir",
        dest="output_dir",
        help="Directory with the compiled dictionaries.",
    )
    parser.add_argument("--reference-locale", help="Reference language code.")


def _add_merge_arguments(parser: argparse.ArgumentParser) -> None:
    _add_source_arguments(parser)
    parser.add_argument("--output-dir", help="Directory for compiled dictionaries.")
    parser.add_argument(
        "--language",
        action="append",
        dest="languages",
        default=None,
        help="Language to compile (repeatable, overrides config).",
    )
    parser.add_argument(
        "--sort-fragments",
        action="store_true",
        default=None,
        help="Sort fragment files in place before merging.",
    )
    parser.add_argument(
        "--align",
        action="store_true",
        help="Fix dictionary alignment after every merge.",
    )


def _apply_overrides(cfg: dict[str, Any], args: argparse.Namespace) -> None:
    """Let explicit CLI flags win over configuration values."""
    if getattr(args, "src_dirs", None):
        cfg["src_dirs"] = [str(validate_directory(p)) for p in args.src_dirs]
    if getattr(args, "output_dir", None):
        cfg["output_dir"] = str(validate_path(args.output_dir))
    if getattr(args, "languages", None):
        cfg["languages"] = list(args.languages)
    if getattr(args, "reference_locale", None):
        cfg["reference_locale"] = args.reference_locale
    if getattr(args, "sort_fragments", None):
        cfg["sort_original_files"] = True
    if getattr(args, "whitelist", None):
        cfg["whitelist_prefixes"] = list(args.whitelist)


def _source_dirs(cfg: dict[str, Any]) -> list[Path]:
    if not cfg["src_dirs"]:
        raise CliError.no_source_dirs()
    return [validate_directory(p) for p in cfg["src_dirs"]]


def _alignment_checker(cfg: dict[str, Any]) -> AlignmentChecker:
    return AlignmentChecker(cfg["output_dir"], reference_locale=cfg["reference_locale"])


def _build_plugin(args: argparse.Namespace, cfg: dict[str, Any]) -> I18nMergePlugin:
    on_complete = None
    if args.align:
        checker = _alignment_checker(cfg)

        def on_complete() -> None:
            report = checker.check()
            checker.fix(report.results)

    return I18nMergePlugin(
        MergeOptions(
            src_dirs=_source_dirs(cfg),
            output_dir=Path(cfg["output_dir"]),
            languages=cfg["languages"],
            sort_original_files=cfg["sort_original_files"],
            src_dir_namespaces=cfg["src_dir_namespaces"],
            on_merge_complete=on_complete,
        )
    )


def _handle_init(args: argparse.Namespace, cfg: dict[str, Any]) -> int:
    del cfg
    target = validate_directory(args.directory) / CONFIG_FILENAME
    if target.exists():
        raise CliError.config_exists(target)
    save_config_at(target, DEFAULT_CONFIG)
    _write_line(sys.stdout, str(target))
    return 0


def _handle_merge(args: argparse.Namespace, cfg: dict[str, Any]) -> int:
    plugin = _build_plugin(args, cfg)
    files = plugin.build_start()
    logger.info("Merged %d fragment files", len(files))
    return 0


def _handle_watch(args: argparse.Namespace, cfg: dict[str, Any]) -> int:
    if args.interval <= 0:
        raise CliError.invalid_interval(args.interval)
    plugin = _build_plugin(args, cfg)
    files = plugin.build_start()
    logger.info("Watching %d fragment files, press Ctrl+C to stop", len(files))
    try:
        poll_changes(plugin, interval=args.interval)
    except KeyboardInterrupt:
        logger.info("Stopped watching")
    return 0


def _handle_align(args: argparse.Namespace, cfg: dict[str, Any]) -> int:
    checker = _alignment_checker(cfg)
    report = checker.check()
    checker.print_alignment_results(report.results)
    if args.fix:
        fixed = checker.fix(report.results)
        _write_line(sys.stdout, f"Fixed {fixed} language files")
        return 0
    return 0 if report.issue_count == 0 else 1


def _handle_undefined(args: argparse.Namespace, cfg: dict[str, Any]) -> int:
    del args
    checker = UndefinedKeysChecker(
        _source_dirs(cfg),
        cfg["output_dir"],
        translation_factories=cfg["translation_factories"],
        i18n_library=cfg["i18n_library"],
        reference_locale=cfg["reference_locale"],
    )
    report = checker.check()
    if report.undefined_keys:
        checker.print_undefined_keys(report.undefined_keys)
        return 1
    stats = report.statistics
    _write_line(
        sys.stdout,
        f"No undefined keys ({stats.usage_count} used keys, "
        f"{stats.defined_keys_count} defined keys)",
    )
    return 0


def _handle_unused(args: argparse.Namespace, cfg: dict[str, Any]) -> int:
    checker = UnusedKeysChecker(
        _source_dirs(cfg),
        cfg["output_dir"],
        translation_factories=cfg["translation_factories"],
        i18n_library=cfg["i18n_library"],
        whitelist_prefixes=cfg["whitelist_prefixes"],
        reference_locale=cfg["reference_locale"],
        src_dir_namespaces=cfg["src_dir_namespaces"],
    )
    report = checker.check()
    if not report.unused_keys:
        stats = report.statistics
        _write_line(
            sys.stdout,
            f"No unused keys ({stats.defined_keys_count} defined keys, "
            f"{stats.used_keys_count} used keys)",
        )
        return 0
    checker.print_unused_keys(report.file_groups)
    if args.fix:
        removed = checker.fix(report.file_groups)
        _write_line(sys.stdout, f"Removed {removed} unused keys")
        return 0
    return 1


def _write_line(stream: t.TextIO, text: str) -> None:
    stream.write(f"{text}\n")


__all__ = ["CliError", "main"]
