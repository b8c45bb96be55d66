"""Read tool for reading file contents."""

from typing import Any

from autocoder import sandbox
from autocoder.exceptions import PathError
from autocoder.logging import get_logger
from autocoder.tools.registry import Tool, ToolResult

log = get_logger(__name__)


class ReadFileTool(Tool):
    """Read file contents."""

    name = "read_file"
    description = "Read the full contents of a file."
    parameters = {
        "type": "object",
        "properties": {
            "path": {
                "type": "string",
                "description": "File path relative to the project root",
            },
        },
        "required": ["path"],
    }

    async def execute(self, path: str, **kwargs: Any) -> ToolResult:
        """Read a file.

        Args:
            path: Path relative to the sandbox root

        Returns:
            ToolResult whose content is the file text, verbatim
        """
        try:
            file_path = sandbox.resolve(self._sandbox_root(kwargs), path)

            if not file_path.exists():
                return ToolResult(success=False, error=f"File not found: {path}")
            if not file_path.is_file():
                return ToolResult(success=False, error=f"Not a file: {path}")

            with open(file_path, encoding="utf-8", newline="") as f:
                content = f.read()
            return ToolResult(success=True, content=content)

        except (PathError, OSError, UnicodeError) as e:
            log.error("Read failed", path=path, error=str(e))
            return ToolResult(success=False, error=str(e))
