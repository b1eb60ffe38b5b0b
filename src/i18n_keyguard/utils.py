"""Common utilities for i18n-keyguard modules."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

# central logger for the project
logger = logging.getLogger("i18n_keyguard")
logger.propagate = False

ERR_NOT_AN_OBJECT = "Translation document must be a JSON object: {path}"


def configure_logging(
    level: str = "INFO", handler: logging.Handler | None = None
) -> logging.Logger:
    """Configure and return the package logger."""
    numeric = getattr(logging, level.upper(), logging.INFO)
    logger.setLevel(numeric)
    logger.handlers.clear()
    if handler is None:
        handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
    logger.addHandler(handler)

    # forward warnings.warn() calls through the logging system
    logging.captureWarnings(True)
    wlog = logging.getLogger("py.warnings")
    wlog.setLevel(numeric)
    wlog.handlers.clear()
    wlog.addHandler(handler)
    wlog.propagate = False
    return logger


# configure default logging on import
configure_logging()


def load_messages(path: str | Path) -> dict[str, Any]:
    """Read a translation document from ``path``.

    Parse errors propagate unchanged; a corrupt translation file should stop
    the run.
    """
    p = Path(path)
    data = json.loads(p.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError(ERR_NOT_AN_OBJECT.format(path=p))
    return data


def dump_messages(data: Any) -> str:
    """Return ``data`` as 2-space indented JSON with a trailing newline."""
    return json.dumps(data, indent=2, ensure_ascii=False) + "\n"


def write_messages(path: str | Path, data: Any) -> None:
    """Write ``data`` to ``path`` in the compiled dictionary format."""
    Path(path).write_text(dump_messages(data), encoding="utf-8")


def display_path(path: str | Path) -> str:
    """Return ``path`` relative to the working directory when possible."""
    p = Path(path)
    try:
        return str(p.resolve().relative_to(Path.cwd().resolve()))
    except ValueError:
        return str(p)


__all__ = [
    "configure_logging",
    "display_path",
    "dump_messages",
    "load_messages",
    "logger",
    "write_messages",
]
