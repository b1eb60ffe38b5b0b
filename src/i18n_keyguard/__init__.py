"""Translation key tooling: fragment compilation and key consistency checks."""

from i18n_keyguard.alignment import AlignmentChecker
from i18n_keyguard.merge import I18nMergePlugin, I18nMerger, MergeOptions
from i18n_keyguard.undefined import UndefinedKeysChecker
from i18n_keyguard.unused import UnusedKeysChecker
from i18n_keyguard.utils import configure_logging, logger

__all__ = [
    "AlignmentChecker",
    "I18nMergePlugin",
    "I18nMerger",
    "MergeOptions",
    "UndefinedKeysChecker",
    "UnusedKeysChecker",
    "configure_logging",
    "logger",
]
