"""OpenRouter provider: OpenAI wire format plus streaming."""

from __future__ import annotations

from collections.abc import AsyncIterator, Mapping
from typing import Any

from ..errors import MalformedClientInput
from .base import OptionField, StreamingChatProvider
from .openai_compatible import OpenAICompatibleProvider
from .types import Message, StreamEvent, ToolCallDelta, ToolSchema

OPENROUTER_API_URL = "https://openrouter.ai/api/v1/chat/completions"


def parse_stream_chunk(payload: dict[str, Any]) -> list[StreamEvent]:
    """Turn one OpenAI-style streaming chunk into normalized events."""
    error = payload.get("error")
    if isinstance(error, Mapping):
        return [StreamEvent.error(str(error.get("message") or "Unknown provider API error."))]

    choices = payload.get("choices")
    if not isinstance(choices, list) or not choices or not isinstance(choices[0], Mapping):
        return []
    delta = choices[0].get("delta")
    if not isinstance(delta, Mapping):
        return []

    events = []
    content = delta.get("content")
    if isinstance(content, str) and content:
        events.append(StreamEvent.delta(content))

    raw_deltas = delta.get("tool_calls")
    if isinstance(raw_deltas, list):
        deltas = [d for d in (ToolCallDelta.from_dict(raw) for raw in raw_deltas) if d is not None]
        if deltas:
            events.append(StreamEvent.tool_call_delta(deltas))
    return events


class OpenRouterProvider(OpenAICompatibleProvider, StreamingChatProvider):
    """OpenRouter's unified chat completions API."""

    id = "openrouter"
    label = "OpenRouter"
    default_endpoint = OPENROUTER_API_URL
    default_model = "openrouter/auto"
    missing_config_message = "OpenRouter API key is not configured."

    def options_schema(self) -> list[OptionField]:
        return [
            OptionField(
                key="endpoint",
                label="API Endpoint",
                type="url",
                placeholder=OPENROUTER_API_URL,
                description="Leave empty to use the default OpenRouter endpoint.",
            ),
            OptionField(
                key="api_key",
                label="API Key",
                type="password",
                description="Your OpenRouter API key.",
            ),
            OptionField(
                key="model",
                label="Model Name",
                placeholder=self.default_model,
                description="Any model slug listed by OpenRouter.",
            ),
            OptionField(
                key="http_referer",
                label="HTTP Referer",
                type="url",
                description="Optional. Sent as HTTP-Referer for OpenRouter rankings.",
            ),
            OptionField(
                key="x_title",
                label="App Title",
                description="Optional. Sent as X-Title for OpenRouter rankings.",
            ),
        ]

    def build_headers(self, api_key: str, options: Mapping[str, str]) -> dict[str, str]:
        headers = super().build_headers(api_key, options)
        referer = (options.get("http_referer") or "").strip()
        title = (options.get("x_title") or "").strip()
        if referer:
            headers["HTTP-Referer"] = referer
        if title:
            headers["X-Title"] = title
        return headers

    async def stream_chat(
        self,
        messages: list[Message],
        tools: list[ToolSchema],
        tool_choice: Any = "auto",
        options: Mapping[str, str] | None = None,
    ) -> AsyncIterator[StreamEvent]:
        if not messages:
            raise MalformedClientInput("Messages array cannot be empty.")
        options = options or {}
        endpoint, api_key, model = self.resolve_settings(options)

        body = self.build_body(messages, tools, tool_choice, model)
        body["stream"] = True
        headers = self.build_headers(api_key, options)
        headers["Accept"] = "text/event-stream"

        async for event in self._stream_sse(endpoint, body, headers, parse_stream_chunk):
            yield event
