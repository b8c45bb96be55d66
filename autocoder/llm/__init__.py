"""OpenAI-compatible chat-completion provider - direct HTTP calls with httpx."""

import json
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

import httpx

from autocoder.exceptions import LLMAPIError, LLMError
from autocoder.logging import get_logger

log = get_logger(__name__)


OPENAI_BASE_URL = "https://api.openai.com/v1"

_PROVIDER_ALIASES = {
    "openai": "openai",
    "chatgpt": "openai",
}


@dataclass(frozen=True)
class ToolCall:
    """A tool call from the LLM."""

    id: str
    name: str
    # Raw payload: a JSON string from OpenAI-compatible services, or a mapping.
    arguments: dict[str, Any] | str


@dataclass(frozen=True)
class Message:
    """A message in the conversation."""

    role: str  # "system", "user", "assistant", "tool"
    content: str
    tool_call_id: str | None = None
    tool_name: str | None = None
    tool_calls: tuple[ToolCall, ...] = ()


@dataclass
class LLMResponse:
    """Response from the LLM."""

    content: str
    tool_calls: list[ToolCall] = field(default_factory=list)
    model: str = ""
    usage: dict[str, int] = field(default_factory=dict)


@dataclass
class ToolDefinition:
    """Definition of a tool for the LLM."""

    name: str
    description: str
    parameters: dict[str, Any]  # JSON Schema


class LLMProvider(ABC):
    """Abstract base class for LLM providers."""

    @abstractmethod
    async def complete(
        self,
        messages: list[Message],
        tools: list[ToolDefinition] | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> LLMResponse:
        pass

    async def close(self) -> None:
        """Release transport resources."""
        return None


class OpenAIProvider(LLMProvider):
    """Chat-completions provider for OpenAI and compatible services."""

    def __init__(
        self,
        model: str = "gpt-4o",
        api_key: str | None = None,
        base_url: str = OPENAI_BASE_URL,
        temperature: float = 0.2,
        max_tokens: int = 4096,
        timeout: float = 120.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize the provider.

        Args:
            model: Model name (e.g., 'gpt-4o')
            api_key: Bearer credential for the service
            base_url: API base URL, up to and including the version segment
            temperature: Sampling temperature
            max_tokens: Max tokens to generate
            timeout: HTTP timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        self.model = model
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.temperature = temperature
        self.max_tokens = max_tokens

        self.client = httpx.AsyncClient(
            timeout=timeout,
            follow_redirects=True,
            transport=transport,
        )

    @staticmethod
    def _encode_arguments(arguments: dict[str, Any] | str) -> str:
        if isinstance(arguments, str):
            return arguments
        return json.dumps(arguments)

    def _convert_messages(self, messages: list[Message]) -> list[dict[str, Any]]:
        """Convert messages to the chat-completions wire format."""
        result: list[dict[str, Any]] = []
        for msg in messages:
            if msg.role == "assistant" and msg.tool_calls:
                result.append({
                    "role": "assistant",
                    "content": msg.content or None,
                    "tool_calls": [
                        {
                            "id": call.id,
                            "type": "function",
                            "function": {
                                "name": call.name,
                                "arguments": self._encode_arguments(call.arguments),
                            },
                        }
                        for call in msg.tool_calls
                    ],
                })
            elif msg.role == "tool":
                result.append({
                    "role": "tool",
                    "tool_call_id": msg.tool_call_id or "",
                    "content": msg.content or "",
                })
            else:
                result.append({"role": msg.role, "content": msg.content or ""})
        return result

    def _convert_tools(self, tools: list[ToolDefinition | dict[str, Any]]) -> list[dict[str, Any]]:
        """Convert tools to the function-calling format."""
        result = []
        for tool in tools:
            if isinstance(tool, dict):
                name = tool.get("name")
                description = tool.get("description", "")
                parameters = tool.get("parameters", {})
            else:
                name = tool.name
                description = tool.description
                parameters = tool.parameters

            if name:
                result.append({
                    "type": "function",
                    "function": {
                        "name": name,
                        "description": description or "",
                        "parameters": parameters or {"type": "object", "properties": {}},
                    },
                })
        return result

    def _request_body(
        self,
        messages: list[Message],
        tools: list[ToolDefinition] | None,
        temperature: float | None,
        max_tokens: int | None,
    ) -> dict[str, Any]:
        body: dict[str, Any] = {
            "model": self.model,
            "messages": self._convert_messages(messages),
            "temperature": self.temperature if temperature is None else temperature,
            "max_tokens": max_tokens or self.max_tokens,
        }
        if tools:
            body["tools"] = self._convert_tools(tools)
            body["tool_choice"] = "auto"
        return body

    @staticmethod
    def _parse_response(data: dict[str, Any], model: str) -> LLMResponse:
        choices = data.get("choices") or []
        if not choices:
            raise LLMError("No choices returned from API")

        message = choices[0].get("message") or {}
        tool_calls = [
            ToolCall(
                id=str(tc.get("id", "")),
                name=str((tc.get("function") or {}).get("name", "")),
                arguments=(tc.get("function") or {}).get("arguments", "") or "",
            )
            for tc in message.get("tool_calls") or []
        ]

        usage_raw = data.get("usage") or {}
        usage = {
            "prompt_tokens": int(usage_raw.get("prompt_tokens", 0) or 0),
            "completion_tokens": int(usage_raw.get("completion_tokens", 0) or 0),
            "total_tokens": int(usage_raw.get("total_tokens", 0) or 0),
        }

        return LLMResponse(
            content=message.get("content") or "",
            tool_calls=tool_calls,
            model=str(data.get("model") or model),
            usage=usage,
        )

    async def complete(
        self,
        messages: list[Message],
        tools: list[ToolDefinition] | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> LLMResponse:
        """Generate a completion."""
        url = f"{self.base_url}/chat/completions"
        body = self._request_body(messages, tools, temperature, max_tokens)

        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        try:
            log.debug("Calling model", model=self.model, url=url, msg_count=len(body["messages"]))
            response = await self.client.post(url, json=body, headers=headers)
            log.debug("Model response status", status=response.status_code)

            if not response.is_success:
                raise LLMAPIError(
                    f"API error {response.status_code}: {response.text}",
                    status_code=response.status_code,
                )

            data = response.json()
        except httpx.HTTPError as e:
            raise LLMAPIError(f"HTTP error: {e}")
        except json.JSONDecodeError as e:
            raise LLMError(f"Response decode error: {e}")

        if not isinstance(data, dict):
            raise LLMError("Response body is not a JSON object")
        return self._parse_response(data, self.model)

    async def close(self) -> None:
        """Close the HTTP client."""
        await self.client.aclose()


def create_provider(
    provider: str = "openai",
    model: str = "gpt-4o",
    api_key: str | None = None,
    base_url: str | None = None,
    temperature: float = 0.2,
    max_tokens: int = 4096,
    timeout: float = 120.0,
) -> LLMProvider:
    """Create an LLM provider.

    Args:
        provider: Provider name (openai, or the chatgpt alias)
        model: Model name
        api_key: Optional API key; falls back to OPENAI_API_KEY
        base_url: Optional base URL for compatible services
        temperature: Default temperature
        max_tokens: Default max tokens
        timeout: HTTP timeout in seconds

    Returns:
        Configured LLMProvider instance
    """
    normalized = _PROVIDER_ALIASES.get((provider or "").strip().lower())
    if normalized is None:
        raise ValueError(f"Provider '{provider}' not supported. Use 'openai' or an OpenAI-compatible base_url.")

    return OpenAIProvider(
        model=model,
        api_key=api_key or os.environ.get("OPENAI_API_KEY") or None,
        base_url=base_url or OPENAI_BASE_URL,
        temperature=temperature,
        max_tokens=max_tokens,
        timeout=timeout,
    )
