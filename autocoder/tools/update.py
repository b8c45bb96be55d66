"""Search-and-replace tool.

``find`` is applied in one of three modes:

* ``regex``   - ``find`` is a regular expression; every match is replaced and
  ``replace`` may use group references (``\\1``, ``\\g<name>``).
* ``literal`` - every occurrence of ``find`` is replaced verbatim.
* ``auto``    - ``find`` is matched as a regex when it compiles, as literal text
  otherwise. ``replace`` is always inserted verbatim; backslashes and group
  references are not expanded. This is the default and is kept for
  compatibility with callers that never pass a mode.

The mode that actually ran is always named in the result so the caller can
tell which interpretation was used.
"""

import re
from dataclasses import dataclass
from typing import Any

from autocoder import sandbox
from autocoder.exceptions import PathError
from autocoder.logging import get_logger
from autocoder.tools.registry import Tool, ToolResult

log = get_logger(__name__)

MODES = ("auto", "regex", "literal")


@dataclass
class Substitution:
    """Outcome of applying a find/replace to text."""

    text: str
    count: int
    mode: str


def choose_mode(find: str, mode: str = "auto") -> str:
    """Resolve ``auto`` to the concrete mode that will run."""
    if mode not in MODES:
        raise ValueError(f"Unknown mode '{mode}', expected one of: {', '.join(MODES)}")
    if mode != "auto":
        return mode
    try:
        re.compile(find)
    except re.error:
        return "literal"
    return "regex"


def substitute(text: str, find: str, replace: str, mode: str = "auto") -> Substitution:
    """Replace every match of ``find`` in ``text``.

    Only an explicit ``regex`` mode treats ``replace`` as a template.

    Raises:
        ValueError for an unknown mode
        re.error for an invalid pattern or template (explicit regex mode)
    """
    effective = choose_mode(find, mode)
    if effective == "literal":
        count = text.count(find)
        return Substitution(text.replace(find, replace), count, effective)
    template = replace if mode == "regex" else (lambda _match: replace)
    updated, count = re.subn(find, template, text)
    return Substitution(updated, count, effective)


class UpdateFileTool(Tool):
    """Search and replace inside an existing file."""

    name = "update_file"
    description = (
        "Replace all matches of 'find' with 'replace' in an existing file. "
        "mode 'regex' treats find as a regular expression, 'literal' as plain text; "
        "'auto' (default) uses regex when find is a valid pattern, else literal. "
        "Only 'regex' mode expands group references such as \\1 in replace."
    )
    parameters = {
        "type": "object",
        "properties": {
            "path": {
                "type": "string",
                "description": "File path relative to the project root",
            },
            "find": {
                "type": "string",
                "description": "Text or regular expression to search for",
            },
            "replace": {
                "type": "string",
                "description": "Replacement text",
            },
            "mode": {
                "type": "string",
                "enum": list(MODES),
                "description": "How to interpret 'find' (default: auto)",
            },
        },
        "required": ["path", "find", "replace"],
    }
    allow_blank = frozenset({"replace"})

    async def execute(
        self,
        path: str,
        find: str,
        replace: str,
        mode: str = "auto",
        **kwargs: Any,
    ) -> ToolResult:
        """Apply the substitution and write back only on change."""
        try:
            root = self._sandbox_root(kwargs)
            file_path = sandbox.resolve(root, path)
            if not file_path.is_file():
                return ToolResult(success=False, error=f"File not found: {path}")

            with open(file_path, encoding="utf-8", newline="") as f:
                original = f.read()

            try:
                outcome = substitute(original, find, replace, mode or "auto")
            except (ValueError, re.error) as e:
                return ToolResult(success=False, error=f"Cannot apply substitution: {e}")

            display = sandbox.relative_to_root(root, file_path)
            if outcome.text == original:
                log.info("Update made no change", path=display, mode=outcome.mode)
                reason = "did not match" if outcome.count == 0 else "matched but replacement is identical"
                return ToolResult(
                    success=True,
                    noop=True,
                    content=f"No change: '{find}' {reason} in {display} ({outcome.mode} mode)",
                )

            with open(file_path, "w", encoding="utf-8", newline="") as f:
                f.write(outcome.text)
            return ToolResult(
                success=True,
                content=f"Updated {display}: {outcome.count} replacement(s) ({outcome.mode} mode)",
            )

        except (PathError, OSError, UnicodeError) as e:
            log.error("Update failed", path=path, error=str(e))
            return ToolResult(success=False, error=str(e))
