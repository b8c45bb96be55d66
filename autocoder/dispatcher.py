"""Inner loop: resolve model tool calls until a plain answer arrives."""

import json
from typing import Any

from autocoder.conversation import ConversationState
from autocoder.exceptions import (
    ArgumentDecodeError,
    EmptyResponseError,
    ToolError,
    ToolLoopExceededError,
)
from autocoder.llm import LLMProvider, LLMResponse, ToolCall
from autocoder.logging import get_logger
from autocoder.tools.catalog import tool_catalog
from autocoder.tools.registry import ToolRegistry

log = get_logger(__name__)


def decode_arguments(call: ToolCall) -> dict[str, Any]:
    """Decode a tool call's raw argument payload into a mapping.

    Raises:
        ArgumentDecodeError if the payload is not a JSON object
    """
    raw = call.arguments
    if isinstance(raw, dict):
        return dict(raw)
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        return {}
    if not isinstance(raw, str):
        raise ArgumentDecodeError(call.name, f"unsupported payload type {type(raw).__name__}")
    try:
        decoded = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ArgumentDecodeError(call.name, f"malformed JSON ({e.msg} at position {e.pos})")
    if not isinstance(decoded, dict):
        raise ArgumentDecodeError(call.name, "arguments must be a JSON object")
    return decoded


class ToolDispatcher:
    """Send the conversation, run requested tools, repeat."""

    def __init__(
        self,
        provider: LLMProvider,
        registry: ToolRegistry,
        conversation: ConversationState,
        max_hops: int = 10,
        temperature: float | None = None,
    ):
        if max_hops < 1:
            raise ValueError("max_hops must be at least 1")
        self.provider = provider
        self.registry = registry
        self.conversation = conversation
        self.max_hops = max_hops
        self.temperature = temperature
        self.last_hops = 0
        self.usage: dict[str, int] = self._empty_usage()

    @staticmethod
    def _empty_usage() -> dict[str, int]:
        return {
            "prompt_tokens": 0,
            "completion_tokens": 0,
            "total_tokens": 0,
        }

    def _accumulate_usage(self, usage: dict[str, int] | None) -> None:
        if not usage:
            return
        prompt = int(usage.get("prompt_tokens", 0))
        completion = int(usage.get("completion_tokens", 0))
        self.usage["prompt_tokens"] += prompt
        self.usage["completion_tokens"] += completion
        self.usage["total_tokens"] += int(usage.get("total_tokens", 0) or prompt + completion)

    async def run_turn(self, instruction: str) -> str:
        """Run one turn for ``instruction`` and return the model's final answer.

        Raises:
            EmptyResponseError if a reply has neither content nor tool calls
            ToolLoopExceededError if ``max_hops`` replies all requested tools
            LLMError if the provider fails
        """
        self.conversation.add("user", instruction)
        catalog = tool_catalog(self.registry)

        for hop in range(1, self.max_hops + 1):
            self.last_hops = hop
            messages = self.conversation.snapshot_for_request()
            log.info("Calling LLM", hop=hop, message_count=len(messages))
            response = await self.provider.complete(
                messages=messages,
                tools=catalog,
                temperature=self.temperature,
            )
            self._accumulate_usage(response.usage)

            self.conversation.add(
                "assistant",
                response.content or "",
                tool_calls=response.tool_calls,
            )

            if not response.tool_calls:
                if not (response.content or "").strip():
                    raise EmptyResponseError(hop)
                log.info("Final answer received", hop=hop)
                return response.content

            await self._handle_tool_calls(response)

        log.warning("Tool loop exceeded", max_hops=self.max_hops)
        raise ToolLoopExceededError(self.max_hops)

    async def _handle_tool_calls(self, response: LLMResponse) -> None:
        """Resolve calls in order, appending each result before the next runs."""
        log.info("Tool calls detected", count=len(response.tool_calls))
        for call in response.tool_calls:
            output = await self._execute_call(call)
            self.conversation.add(
                "tool",
                output,
                tool_call_id=call.id,
                tool_name=call.name,
            )

    async def _execute_call(self, call: ToolCall) -> str:
        """Run one call; any tool-level failure becomes ``Error: ...`` text."""
        try:
            arguments = decode_arguments(call)
            result = await self.registry.execute(call.name, arguments)
        except ToolError as e:
            log.warning("Tool call failed", tool=call.name, call_id=call.id, error=str(e))
            return f"Error: {e}"
        return result.render()
