"""Bounded conversation history for model requests."""

from collections import deque
from typing import Any

from autocoder.llm import Message, ToolCall
from autocoder.logging import get_logger

log = get_logger(__name__)


class ConversationState:
    """Sliding window of messages plus the system preamble.

    The preamble is not stored in the window and does not count against
    ``max_messages``; it is prepended to every request snapshot.
    """

    def __init__(self, system_prompt: str, max_messages: int = 40):
        if max_messages < 1:
            raise ValueError("max_messages must be at least 1")
        self.system_prompt = system_prompt
        self.max_messages = max_messages
        self._history: deque[Message] = deque()

    def __len__(self) -> int:
        return len(self._history)

    @property
    def messages(self) -> tuple[Message, ...]:
        """Current window, oldest first."""
        return tuple(self._history)

    def append(self, message: Message) -> None:
        """Append a message, then trim the window to capacity."""
        self._history.append(message)
        dropped = self.trim_to_capacity()
        if dropped:
            log.debug("Trimmed conversation history", dropped=dropped, kept=len(self._history))

    def add(
        self,
        role: str,
        content: str,
        tool_call_id: str | None = None,
        tool_name: str | None = None,
        tool_calls: list[ToolCall] | tuple[ToolCall, ...] = (),
    ) -> Message:
        """Build a message from parts, append it, and return it."""
        message = Message(
            role=role,
            content=content,
            tool_call_id=tool_call_id,
            tool_name=tool_name,
            tool_calls=tuple(tool_calls),
        )
        self.append(message)
        return message

    def trim_to_capacity(self) -> int:
        """Drop the oldest messages beyond ``max_messages``; return how many."""
        dropped = 0
        while len(self._history) > self.max_messages:
            self._history.popleft()
            dropped += 1
        return dropped

    def clear(self) -> None:
        self._history.clear()

    def snapshot_for_request(self) -> list[Message]:
        """Return the preamble followed by the window.

        Tool results at the head of the window whose assistant call was
        trimmed away are left out, since the service rejects a tool message
        without its originating call.
        """
        window = list(self._history)
        start = 0
        while start < len(window) and window[start].role == "tool":
            start += 1
        return [Message(role="system", content=self.system_prompt), *window[start:]]

    def to_dicts(self) -> list[dict[str, Any]]:
        """Plain representation of the window, for debug logging."""
        return [
            {
                "role": msg.role,
                "content": msg.content,
                "tool_call_id": msg.tool_call_id,
                "tool_name": msg.tool_name,
                "tool_calls": [call.name for call in msg.tool_calls],
            }
            for msg in self._history
        ]
