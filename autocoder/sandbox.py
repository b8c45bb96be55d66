"""Path containment for tool file access."""

import os
from pathlib import Path

from autocoder.exceptions import PathError


def resolve(root: Path | str, relative_path: str) -> Path:
    """Resolve a model-supplied relative path under the sandbox root.

    The check is lexical: the joined, normalized path must have the
    normalized root plus a separator as prefix, so the root itself and
    siblings such as ``root2`` are rejected.

    Args:
        root: Sandbox root directory
        relative_path: Path as requested by the model

    Returns:
        Absolute path inside the root

    Raises:
        PathError if the path is blank, absolute, has a ``..`` segment,
        or escapes the root
    """
    raw = str(relative_path or "")
    if not raw.strip():
        raise PathError(raw, "path is empty")
    if os.path.isabs(raw) or raw.startswith(("/", "\\")):
        raise PathError(raw, "absolute paths are not allowed")

    if ".." in raw.replace("\\", "/").split("/"):
        raise PathError(raw, "parent directory traversal is not allowed")

    base = os.path.normpath(os.path.abspath(os.fspath(root)))
    candidate = os.path.normpath(os.path.join(base, raw))
    if not candidate.startswith(base.rstrip(os.sep) + os.sep):
        raise PathError(raw, "path escapes the sandbox root")
    return Path(candidate)


def relative_to_root(root: Path | str, path: Path | str) -> str:
    """Return ``path`` relative to ``root`` in POSIX form for display."""
    base = os.path.normpath(os.path.abspath(os.fspath(root)))
    return Path(os.path.relpath(os.fspath(path), base)).as_posix()
