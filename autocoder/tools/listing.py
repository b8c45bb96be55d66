"""Listing tool for enumerating project files."""

import os
from pathlib import Path
from typing import Any

from autocoder import sandbox
from autocoder.exceptions import PathError
from autocoder.logging import get_logger
from autocoder.tools.registry import Tool, ToolResult

log = get_logger(__name__)

NO_FILES = "No files found."


def list_files(root: Path | str, start: Path | str | None = None) -> list[str]:
    """Walk ``start`` (default: ``root``) and return regular files relative to ``root``.

    Directories that cannot be read for lack of permission are skipped;
    any other error aborts the walk.
    """
    base = Path(root).resolve()
    top = Path(start) if start is not None else base

    def _on_error(error: OSError) -> None:
        if isinstance(error, PermissionError):
            log.warning("Skipping unreadable directory", path=error.filename)
            return
        raise error

    found: list[str] = []
    for dirpath, dirnames, filenames in os.walk(top, onerror=_on_error):
        dirnames.sort()
        for filename in sorted(filenames):
            full = Path(dirpath) / filename
            if full.is_symlink() or not full.is_file():
                continue
            found.append(sandbox.relative_to_root(base, full))
    return found


class ListFilesTool(Tool):
    """Recursively list files in the project."""

    name = "list_files"
    description = "Recursively list all files in the project, or in one of its subdirectories."
    parameters = {
        "type": "object",
        "properties": {
            "path": {
                "type": "string",
                "description": "Optional subdirectory relative to the project root",
            },
        },
        "required": [],
    }

    async def execute(self, path: str | None = None, **kwargs: Any) -> ToolResult:
        """List files under the sandbox root.

        Returns:
            ToolResult with one root-relative path per line
        """
        try:
            root = self._sandbox_root(kwargs)
            start = sandbox.resolve(root, path) if path and path.strip() else root
            if not start.exists():
                return ToolResult(success=False, error=f"Directory not found: {path}")
            if not start.is_dir():
                return ToolResult(success=False, error=f"Not a directory: {path}")

            files = list_files(root, start)
            if not files:
                return ToolResult(success=True, content=NO_FILES)
            return ToolResult(success=True, content="\n".join(files))

        except (PathError, OSError) as e:
            log.error("List files failed", path=path, error=str(e))
            return ToolResult(success=False, error=str(e))
