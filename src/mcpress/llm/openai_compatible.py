"""OpenAI-compatible chat completions provider."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from ..errors import ConfigMissing, MalformedClientInput
from .base import DEFAULT_TEMPERATURE, ChatProvider, OptionField
from .tool_converter import to_openai_tools
from .types import CompletionResult, Message, ToolCall, ToolSchema

logger = logging.getLogger(__name__)


def parse_tool_calls(raw_calls: Any) -> list[ToolCall]:
    """Normalize an OpenAI ``tool_calls`` array, dropping entries without a function name."""
    if not isinstance(raw_calls, list):
        return []
    tool_calls = []
    for raw in raw_calls:
        try:
            tool_calls.append(ToolCall.from_dict(raw))
        except ValueError as e:
            logger.warning(f"Ignoring malformed tool call from provider: {e}")
    return tool_calls


class OpenAICompatibleProvider(ChatProvider):
    """Any endpoint speaking the OpenAI chat completions wire format."""

    id = "openai_compatible"
    label = "OpenAI Compatible"
    default_endpoint = ""
    default_model = "gpt-5"
    missing_config_message = "OpenAI-compatible endpoint or API key is not configured."

    def options_schema(self) -> list[OptionField]:
        return [
            OptionField(
                key="endpoint",
                label="API Endpoint",
                type="url",
                placeholder="https://api.openai.com/v1/chat/completions",
                description="The full URL to the chat completions endpoint.",
            ),
            OptionField(
                key="api_key",
                label="API Key",
                type="password",
                description="Your API key for the OpenAI-compatible service.",
            ),
            OptionField(
                key="model",
                label="Model Name",
                placeholder=self.default_model,
                description=f"Model to use (default {self.default_model}).",
            ),
        ]

    def resolve_settings(self, options: Mapping[str, str]) -> tuple[str, str, str]:
        """Return (endpoint, api_key, model) or raise ConfigMissing."""
        endpoint = (options.get("endpoint") or self.default_endpoint).strip()
        api_key = (options.get("api_key") or "").strip()
        if not endpoint or not api_key:
            raise ConfigMissing(self.missing_config_message)
        model = (options.get("model") or "").strip() or self.default_model
        return endpoint, api_key, model

    def build_headers(self, api_key: str, options: Mapping[str, str]) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {api_key}",
        }

    @staticmethod
    def build_body(
        messages: list[Message],
        tools: list[ToolSchema],
        tool_choice: Any,
        model: str,
    ) -> dict[str, Any]:
        body: dict[str, Any] = {
            "model": model,
            "messages": [message.to_dict() for message in messages],
            "temperature": DEFAULT_TEMPERATURE,
        }
        if tools:
            body["tools"] = to_openai_tools(tools)
            if tool_choice:
                body["tool_choice"] = tool_choice
        return body

    async def send_chat(
        self,
        messages: list[Message],
        tools: list[ToolSchema],
        tool_choice: Any = "auto",
        options: Mapping[str, str] | None = None,
    ) -> CompletionResult:
        if not messages:
            raise MalformedClientInput("Messages array cannot be empty.")
        options = options or {}
        endpoint, api_key, model = self.resolve_settings(options)

        body = self.build_body(messages, tools, tool_choice, model)
        decoded = await self._post_json(endpoint, body, self.build_headers(api_key, options))
        return self.parse_response(decoded)

    @staticmethod
    def parse_response(body: Mapping[str, Any]) -> CompletionResult:
        """Read ``choices[0].message`` into a CompletionResult."""
        message: Any = {}
        choices = body.get("choices")
        if isinstance(choices, list) and choices and isinstance(choices[0], Mapping):
            message = choices[0].get("message") or {}
        if not isinstance(message, Mapping):
            message = {}

        content = message.get("content")
        return CompletionResult(
            content=content if isinstance(content, str) else "",
            tool_calls=parse_tool_calls(message.get("tool_calls")),
            raw=body,
        )
