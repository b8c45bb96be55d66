"""Capability catalog advertised to the model.

``CAPABILITIES`` is the authoritative list of tool names. Adding a capability
means adding a Tool subclass, returning it from :func:`default_tools`, and
listing its name here; the catalog tests fail if the two drift apart.
"""

from pathlib import Path

from autocoder.config import ShellToolConfig
from autocoder.llm import ToolDefinition
from autocoder.tools.listing import ListFilesTool
from autocoder.tools.read import ReadFileTool
from autocoder.tools.registry import Tool, ToolRegistry
from autocoder.tools.shell import ShellTool
from autocoder.tools.update import UpdateFileTool
from autocoder.tools.write import AppendFileTool, CreateFileTool

CAPABILITIES: tuple[str, ...] = (
    "create_file",
    "append_file",
    "update_file",
    "read_file",
    "list_files",
    "run_shell",
)


def default_tools(shell_config: ShellToolConfig | None = None) -> list[Tool]:
    """Instantiate one tool per capability."""
    return [
        CreateFileTool(),
        AppendFileTool(),
        UpdateFileTool(),
        ReadFileTool(),
        ListFilesTool(),
        ShellTool(shell_config),
    ]


def build_registry(root: Path | str, shell_config: ShellToolConfig | None = None) -> ToolRegistry:
    """Create a registry rooted at the sandbox with every capability registered."""
    registry = ToolRegistry(base_path=root)
    for tool in default_tools(shell_config):
        registry.register(tool)
    return registry


def tool_catalog(registry: ToolRegistry) -> list[ToolDefinition]:
    """Return the definitions the model is allowed to call."""
    return [
        ToolDefinition(
            name=definition["name"],
            description=definition["description"],
            parameters=definition["parameters"],
        )
        for definition in registry.get_definitions()
    ]
