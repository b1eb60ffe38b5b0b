"""Configuration loading for i18n-keyguard.

Settings are read from ``i18n-keyguard.json`` in the project (searched from
the working directory upwards) layered over an optional user-wide file in the
platform config directory and the built-in defaults.  Relative paths in a
project file are resolved against the directory containing it.
"""

from __future__ import annotations

import copy
import json
from contextlib import suppress
from pathlib import Path
from typing import Any

from platformdirs import user_config_dir

from i18n_keyguard.scanner import DEFAULT_TRANSLATION_FACTORIES, I18N_LIBRARIES

CONFIG_FILENAME = "i18n-keyguard.json"
# user-wide defaults in a platform-specific config directory
USER_CONFIG_FILE = Path(user_config_dir("i18n_keyguard")) / "config.json"

DEFAULT_CONFIG: dict[str, Any] = {
    "src_dirs": ["app"],
    "src_dir_namespaces": {},
    "output_dir": "i18n/messages",
    "languages": ["en"],
    "reference_locale": "en",
    "sort_original_files": False,
    "translation_factories": list(DEFAULT_TRANSLATION_FACTORIES),
    "i18n_library": "vue-i18n",
    "whitelist_prefixes": [],
    "log_level": "INFO",
}

_STRING_LISTS = ("src_dirs", "languages", "translation_factories", "whitelist_prefixes")
_STRINGS = ("output_dir", "reference_locale", "i18n_library", "log_level")

ERR_CONFIG_OBJECT = "{path} must contain a JSON object"
ERR_STRING_LIST = "Config field '{key}' must be a list of strings"
ERR_STRING = "Config field '{key}' must be a string"
ERR_BOOL = "Config field '{key}' must be true or false"
ERR_NAMESPACES = "Config field 'src_dir_namespaces' must map directories to strings"
ERR_UNKNOWN_KEYS = "Unknown config field(s): {keys}"
ERR_LIBRARY = "Unsupported i18n library {name!r}; expected one of: {choices}"


class ConfigError(ValueError):
    """Raised when a configuration file holds invalid values."""


def validate_config(config: dict[str, Any]) -> dict[str, Any]:
    """Validate ``config`` field types and return it unchanged."""
    unknown = set(config) - set(DEFAULT_CONFIG)
    if unknown:
        raise ConfigError(ERR_UNKNOWN_KEYS.format(keys=", ".join(sorted(unknown))))
    for key in _STRING_LISTS:
        value = config.get(key)
        if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
            raise ConfigError(ERR_STRING_LIST.format(key=key))
    for key in _STRINGS:
        if not isinstance(config.get(key), str):
            raise ConfigError(ERR_STRING.format(key=key))
    if not isinstance(config.get("sort_original_files"), bool):
        raise ConfigError(ERR_BOOL.format(key="sort_original_files"))
    namespaces = config.get("src_dir_namespaces")
    if not isinstance(namespaces, dict) or not all(
        isinstance(k, str) and isinstance(v, str) for k, v in namespaces.items()
    ):
        raise ConfigError(ERR_NAMESPACES)
    if config["i18n_library"] not in I18N_LIBRARIES:
        choices = ", ".join(sorted(I18N_LIBRARIES))
        raise ConfigError(ERR_LIBRARY.format(name=config["i18n_library"], choices=choices))
    return config


def _read_object(path: Path) -> dict[str, Any]:
    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ConfigError(ERR_CONFIG_OBJECT.format(path=path))
    return data


def _resolve_paths(cfg: dict[str, Any], base: Path) -> dict[str, Any]:
    """Make the directory settings of ``cfg`` absolute relative to ``base``."""
    cfg["src_dirs"] = [str((base / p).resolve()) for p in cfg["src_dirs"]]
    cfg["output_dir"] = str((base / cfg["output_dir"]).resolve())
    cfg["src_dir_namespaces"] = {
        str((base / p).resolve()): prefix for p, prefix in cfg["src_dir_namespaces"].items()
    }
    return cfg


def load_user_defaults() -> dict[str, Any]:
    """Return the defaults merged with the user-wide config file, if readable."""
    cfg = copy.deepcopy(DEFAULT_CONFIG)
    if USER_CONFIG_FILE.exists():
        with suppress(Exception):
            cfg.update(_read_object(USER_CONFIG_FILE))
    return cfg


def load_config_at(path: Path) -> dict[str, Any]:
    """Load and validate the project configuration at ``path``.

    Raises:
        ConfigError: If the file holds invalid settings.
        json.JSONDecodeError: If the file is not valid JSON.
    """
    cfg = load_user_defaults()
    cfg.update(_read_object(path))
    validate_config(cfg)
    return _resolve_paths(cfg, path.resolve().parent)


def find_config(start: Path | None = None) -> Path | None:
    """Return the nearest ``i18n-keyguard.json`` at or above ``start``."""
    current = (start or Path.cwd()).resolve()
    for directory in (current, *current.parents):
        candidate = directory / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
    return None


def load_config(path: Path | None = None) -> dict[str, Any]:
    """Load ``path`` or the discovered project config, else the defaults."""
    target = path if path is not None else find_config()
    if target is not None:
        return load_config_at(target)
    cfg = validate_config(load_user_defaults())
    return _resolve_paths(cfg, Path.cwd())


def save_config_at(path: Path, cfg: dict[str, Any]) -> None:
    """Persist ``cfg`` to ``path`` after validating it."""
    data = validate_config({**copy.deepcopy(DEFAULT_CONFIG), **cfg})
    path.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")


__all__ = [
    "CONFIG_FILENAME",
    "DEFAULT_CONFIG",
    "USER_CONFIG_FILE",
    "ConfigError",
    "find_config",
    "load_config",
    "load_config_at",
    "save_config_at",
    "validate_config",
]
