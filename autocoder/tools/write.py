"""Write tools for creating and appending to files."""

from typing import Any

from autocoder import sandbox
from autocoder.exceptions import PathError
from autocoder.logging import get_logger
from autocoder.tools.registry import Tool, ToolResult

log = get_logger(__name__)

_PATH_PARAM = {
    "type": "string",
    "description": "File path relative to the project root",
}


class CreateFileTool(Tool):
    """Create or overwrite a file."""

    name = "create_file"
    description = "Create a new file with the given content, overwriting any existing file."
    parameters = {
        "type": "object",
        "properties": {
            "path": _PATH_PARAM,
            "content": {
                "type": "string",
                "description": "Full content of the file",
            },
        },
        "required": ["path", "content"],
    }
    allow_blank = frozenset({"content"})

    async def execute(self, path: str, content: str, **kwargs: Any) -> ToolResult:
        """Write content to a file.

        Args:
            path: Path relative to the sandbox root
            content: Content to write

        Returns:
            ToolResult with status
        """
        try:
            root = self._sandbox_root(kwargs)
            file_path = sandbox.resolve(root, path)
            file_path.parent.mkdir(parents=True, exist_ok=True)
            with open(file_path, "w", encoding="utf-8", newline="") as f:
                f.write(content)
            return ToolResult(
                success=True,
                content=f"File created: {sandbox.relative_to_root(root, file_path)} ({len(content)} chars)",
            )
        except (PathError, OSError, UnicodeError) as e:
            log.error("Create file failed", path=path, error=str(e))
            return ToolResult(success=False, error=str(e))


class AppendFileTool(Tool):
    """Append content to a file, creating it if missing."""

    name = "append_file"
    description = "Append content to the end of a file. The file is created if it does not exist."
    parameters = {
        "type": "object",
        "properties": {
            "path": _PATH_PARAM,
            "content": {
                "type": "string",
                "description": "Content to append",
            },
        },
        "required": ["path", "content"],
    }
    allow_blank = frozenset({"content"})

    async def execute(self, path: str, content: str, **kwargs: Any) -> ToolResult:
        """Append content to a file."""
        try:
            root = self._sandbox_root(kwargs)
            file_path = sandbox.resolve(root, path)
            file_path.parent.mkdir(parents=True, exist_ok=True)
            with open(file_path, "a", encoding="utf-8", newline="") as f:
                f.write(content)
            return ToolResult(
                success=True,
                content=f"Appended to: {sandbox.relative_to_root(root, file_path)} ({len(content)} chars)",
            )
        except (PathError, OSError, UnicodeError) as e:
            log.error("Append file failed", path=path, error=str(e))
            return ToolResult(success=False, error=str(e))
