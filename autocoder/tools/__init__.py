"""Tools package for Autocoder."""

from autocoder.tools.registry import (
    Tool,
    ToolRegistry,
    ToolResult,
)
from autocoder.tools.write import AppendFileTool, CreateFileTool
from autocoder.tools.update import UpdateFileTool
from autocoder.tools.read import ReadFileTool
from autocoder.tools.listing import ListFilesTool
from autocoder.tools.shell import ShellResult, ShellTool, run_shell
from autocoder.tools.catalog import (
    CAPABILITIES,
    build_registry,
    default_tools,
    tool_catalog,
)

__all__ = [
    "Tool",
    "ToolRegistry",
    "ToolResult",
    "CreateFileTool",
    "AppendFileTool",
    "UpdateFileTool",
    "ReadFileTool",
    "ListFilesTool",
    "ShellTool",
    "ShellResult",
    "run_shell",
    "CAPABILITIES",
    "build_registry",
    "default_tools",
    "tool_catalog",
]
