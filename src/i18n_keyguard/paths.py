"""Path validation utilities."""

from __future__ import annotations

from pathlib import Path

ERR_NULL_BYTES = "path contains null bytes: {path!r}"
ERR_NOT_EXIST = "path does not exist: {path}"
ERR_NOT_DIRECTORY = "expected a directory, got a file: {path}"


class PathValidationError(ValueError):
    """Raised when a configured path is invalid."""


def validate_path(
    path: str | Path,
    *,
    base: str | Path | None = None,
    must_exist: bool = False,
) -> Path:
    """Return ``path`` as an absolute path.

    Relative paths are resolved against ``base`` when given, otherwise against
    the working directory.

    Raises:
        PathValidationError: If the path contains null bytes or does not exist
            while ``must_exist`` is set.
    """
    if "\x00" in str(path):
        raise PathValidationError(ERR_NULL_BYTES.format(path=str(path)))

    p = Path(path).expanduser()
    if base is not None:
        base_path = Path(base).resolve()
        candidate = (base_path / p).resolve() if not p.is_absolute() else p.resolve()
    else:
        candidate = p.resolve()
    if must_exist and not candidate.exists():
        raise PathValidationError(ERR_NOT_EXIST.format(path=path))
    return candidate


def validate_directory(
    path: str | Path,
    *,
    base: str | Path | None = None,
    must_exist: bool = True,
) -> Path:
    """Like :func:`validate_path` but reject existing non-directories."""
    candidate = validate_path(path, base=base, must_exist=must_exist)
    if candidate.exists() and not candidate.is_dir():
        raise PathValidationError(ERR_NOT_DIRECTORY.format(path=path))
    return candidate


__all__ = ["PathValidationError", "validate_directory", "validate_path"]
