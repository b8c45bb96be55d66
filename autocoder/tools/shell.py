"""Shell tool for executing commands.

:func:`run_shell` is the only place in Autocoder that spawns processes; both
the ``run_shell`` tool and the test runner go through it.
"""

import asyncio
import os
import signal
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from autocoder.config import ShellToolConfig, get_config
from autocoder.exceptions import ToolBlockedError
from autocoder.logging import get_logger
from autocoder.tools.registry import (
    Tool,
    ToolResult,
    extract_shell_base_commands,
    is_blocked_shell_command,
)

log = get_logger(__name__)


@dataclass
class ShellResult:
    """Exit status and combined stdout/stderr of a command."""

    command: str
    exit_code: int | None
    output: str
    timed_out: bool = False

    @property
    def ok(self) -> bool:
        return not self.timed_out and self.exit_code == 0

    def render(self) -> str:
        """Fold output and exit status into one text blob."""
        text = self.output.rstrip("\n")
        if self.timed_out:
            status = "[timed out, process killed]"
        elif self.exit_code != 0:
            status = f"[exit code {self.exit_code}]"
        else:
            return text or "[no output]"
        return f"{text}\n{status}" if text else status


def _kill(process: asyncio.subprocess.Process) -> None:
    """Kill the shell and everything it started."""
    try:
        if hasattr(os, "killpg"):
            os.killpg(process.pid, signal.SIGKILL)
        else:
            process.kill()
    except ProcessLookupError:
        pass


def _truncate(text: str, max_chars: int) -> str:
    if max_chars <= 0 or len(text) <= max_chars:
        return text
    return text[:max_chars] + f"\n... [truncated, {len(text)} total chars]"


async def _drain(stream: asyncio.StreamReader, chunks: list[bytes]) -> None:
    while True:
        chunk = await stream.read(65536)
        if not chunk:
            return
        chunks.append(chunk)


async def run_shell(
    root: Path | str,
    command: str,
    timeout: float | None = None,
    max_output_chars: int = 0,
) -> ShellResult:
    """Run ``command`` through the shell with ``root`` as working directory.

    A non-zero exit is a normal result. On timeout the child is killed and a
    result with ``timed_out`` set is returned, carrying whatever output was
    produced before the kill.

    Raises:
        OSError if the process cannot be spawned
    """
    env = os.environ.copy()
    env["PATH"] = os.environ.get("PATH", "/usr/local/bin:/usr/bin:/bin")

    log.info("Executing shell command", command=command, cwd=str(root), timeout=timeout)
    process = await asyncio.create_subprocess_shell(
        command,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.STDOUT,
        cwd=str(root),
        env=env,
        start_new_session=hasattr(os, "killpg"),
    )

    chunks: list[bytes] = []
    reader = asyncio.ensure_future(_drain(process.stdout, chunks))
    timed_out = False
    try:
        await asyncio.wait_for(asyncio.shield(reader), timeout=timeout)
    except asyncio.TimeoutError:
        timed_out = True
        _kill(process)
        try:
            # The pipe closes once the process group is gone.
            await asyncio.wait_for(reader, timeout=5)
        except asyncio.TimeoutError:
            log.warning("Output pipe still open after kill", command=command)
    except asyncio.CancelledError:
        _kill(process)
        reader.cancel()
        await process.wait()
        raise
    await process.wait()

    output = _truncate(b"".join(chunks).decode("utf-8", errors="replace"), max_output_chars)
    if timed_out:
        log.warning("Shell command timed out", command=command, timeout=timeout)
    else:
        log.debug("Shell command finished", command=command, exit_code=process.returncode)
    return ShellResult(
        command=command,
        exit_code=process.returncode,
        output=output,
        timed_out=timed_out,
    )


class ShellTool(Tool):
    """Execute shell commands in the project root."""

    name = "run_shell"
    description = (
        "Execute a shell command in the project root and return its combined "
        "output and exit status."
    )
    parameters = {
        "type": "object",
        "properties": {
            "command": {
                "type": "string",
                "description": "The shell command to execute",
            },
            "timeout": {
                "type": "number",
                "description": "Timeout in seconds (optional, default from config)",
            },
        },
        "required": ["command"],
    }

    def __init__(self, config: ShellToolConfig | None = None):
        self.config = config or get_config().tools.shell
        # Leave room for the command's own timeout to fire first.
        self.timeout_seconds = float(self.config.timeout) + 5.0

    def _is_command_safe(self, command: str) -> tuple[bool, str]:
        """Check if command is safe to execute.

        Returns:
            Tuple of (is_safe, reason)
        """
        blocked, matched = is_blocked_shell_command(command, self.config.blocked)
        if blocked:
            if matched == "empty_command":
                return False, "Command is empty"
            if matched == "unparseable_command":
                return False, "Command is not parseable"
            return False, f"Command matches blocked pattern: {matched}"

        if self.config.allowed_commands:
            allowed = {
                str(item).strip()
                for item in self.config.allowed_commands
                if str(item).strip()
            }
            base_commands = extract_shell_base_commands(command)
            if not base_commands:
                return False, "Command is not parseable"
            for base_cmd in base_commands:
                normalized = base_cmd.split("/")[-1]
                if base_cmd not in allowed and normalized not in allowed:
                    return False, f"Command not in allowed list: {base_cmd}"

        return True, ""

    async def execute(self, command: str, timeout: float | None = None, **kwargs: Any) -> ToolResult:
        """Execute a shell command.

        Args:
            command: Shell command to execute
            timeout: Optional timeout override, capped at the configured timeout

        Returns:
            ToolResult with the rendered output; a non-zero exit is still a
            successful invocation

        Raises:
            ToolBlockedError if the command fails the blocked/allowed policy
        """
        is_safe, reason = self._is_command_safe(command)
        if not is_safe:
            log.warning("Blocked unsafe command", command=command, reason=reason)
            raise ToolBlockedError(self.name, reason)

        limit = float(self.config.timeout)
        if timeout is not None:
            try:
                limit = min(limit, max(1.0, float(timeout)))
            except (TypeError, ValueError):
                pass

        try:
            result = await run_shell(
                self._sandbox_root(kwargs),
                command,
                timeout=limit,
                max_output_chars=self.config.max_output_chars,
            )
        except OSError as e:
            log.error("Shell command failed to start", command=command, error=str(e))
            return ToolResult(success=False, error=f"Failed to start command: {e}")

        return ToolResult(success=True, content=result.render())
