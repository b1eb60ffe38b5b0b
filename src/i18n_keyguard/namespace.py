"""Map fragment file locations to dotted namespaces."""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path

# routing-only directory name, never part of a namespace
LOCALE_SEGMENT = "[locale]"


def _segment_to_identifier(segment: str) -> str:
    """Rewrite routing brackets, which the key lookup reads as indexing."""
    if segment.startswith("[[") and segment.endswith("]]"):
        return f"__{segment[2:-2]}__"
    if segment.startswith("[...") and segment.endswith("]"):
        return f"___{segment[4:-1]}"
    if segment.startswith("[") and segment.endswith("]"):
        return f"_{segment[1:-1]}_"
    return segment


def path_to_namespace(
    file_path: str | Path,
    root_dir: str | Path,
    prefix: str | None = None,
) -> str:
    """Return the namespace of the fragment at ``file_path`` under ``root_dir``.

    Files directly in ``root_dir`` map to ``prefix`` (or the empty string).
    Nested files use their directory names joined with dots, e.g.
    ``pages/users/[id]/en.json`` becomes ``pages.users._id_``:

    - ``[locale]`` segments are dropped
    - ``[[slug]]`` becomes ``__slug__``
    - ``[...slug]`` becomes ``___slug``
    - ``[id]`` becomes ``_id_``

    The merger and the unused-key checker both rely on this mapping, so the
    result must only depend on the arguments.
    """
    relative_dir = os.path.dirname(os.path.relpath(file_path, root_dir))
    segments = [
        segment
        for segment in relative_dir.replace("\\", "/").split("/")
        if segment and segment != "." and segment != LOCALE_SEGMENT
    ]
    if not segments:
        return prefix or ""
    namespace = ".".join(_segment_to_identifier(segment) for segment in segments)
    if prefix:
        return f"{prefix}.{namespace}"
    return namespace


def find_fragment_files(src_dir: str | Path, language: str) -> list[Path]:
    """Return every ``<language>.json`` fragment below ``src_dir``, sorted."""
    return sorted(path for path in Path(src_dir).rglob(f"{language}.json") if path.is_file())


def namespace_prefix(
    src_dir: str | Path, src_dir_namespaces: Mapping[str | Path, str] | None
) -> str | None:
    """Return the prefix configured for ``src_dir``, comparing resolved paths."""
    if not src_dir_namespaces:
        return None
    target = Path(src_dir).resolve()
    for configured, prefix in src_dir_namespaces.items():
        if Path(configured).resolve() == target:
            return prefix
    return None


__all__ = ["LOCALE_SEGMENT", "find_fragment_files", "namespace_prefix", "path_to_namespace"]
