"""Custom exceptions for Autocoder."""


class AutocoderError(Exception):
    """Base exception for Autocoder."""

    pass


class ConfigurationError(AutocoderError):
    """Configuration-related errors."""

    pass


class LLMError(AutocoderError):
    """LLM-related errors."""

    pass


class LLMAPIError(LLMError):
    """LLM API errors (rate limit, auth, etc.)."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class ToolError(AutocoderError):
    """Tool execution errors."""

    pass


class ToolExecutionError(ToolError):
    """Tool execution failed."""

    def __init__(self, tool_name: str, message: str):
        super().__init__(f"Tool '{tool_name}' failed: {message}")
        self.tool_name = tool_name


class ToolNotFoundError(ToolError):
    """Tool not found in registry."""

    def __init__(self, tool_name: str):
        super().__init__(f"Tool not found: {tool_name}")
        self.tool_name = tool_name


class ToolBlockedError(ToolError):
    """Tool execution blocked by policy."""

    def __init__(self, tool_name: str, reason: str):
        super().__init__(f"Tool '{tool_name}' blocked: {reason}")
        self.tool_name = tool_name
        self.reason = reason


class PathError(ToolError):
    """Path is malformed or escapes the sandbox root."""

    def __init__(self, path: str, reason: str):
        super().__init__(f"Invalid path '{path}': {reason}")
        self.path = path
        self.reason = reason


class ArgumentDecodeError(ToolError):
    """Tool call arguments could not be decoded."""

    def __init__(self, tool_name: str, message: str):
        super().__init__(f"Invalid arguments for '{tool_name}': {message}")
        self.tool_name = tool_name


class DispatchError(AutocoderError):
    """A turn of the tool loop could not produce an answer."""

    pass


class EmptyResponseError(DispatchError):
    """Model returned neither content nor tool calls."""

    def __init__(self, hop: int):
        super().__init__(f"Empty response from model at hop {hop}")
        self.hop = hop


class ToolLoopExceededError(DispatchError):
    """Model kept requesting tools past the hop budget."""

    def __init__(self, max_hops: int):
        super().__init__(f"Tool loop exceeded {max_hops} hops without a final answer")
        self.max_hops = max_hops
