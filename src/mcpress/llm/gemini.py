"""Google Gemini provider (generateContent / streamGenerateContent)."""

from __future__ import annotations

import json
import logging
from collections.abc import AsyncIterator, Mapping
from typing import Any
from urllib.parse import quote

from ..errors import ConfigMissing, MalformedClientInput
from .base import DEFAULT_TEMPERATURE, ChatProvider, OptionField, StreamingChatProvider
from .tool_converter import to_gemini_tools
from .types import (
    CompletionResult,
    FunctionCall,
    Message,
    StreamEvent,
    ToolCall,
    ToolCallDelta,
    ToolSchema,
)

logger = logging.getLogger(__name__)

GEMINI_API_BASE = "https://generativelanguage.googleapis.com/v1beta/models/"


def tool_call_id(position: int) -> str:
    """Gemini does not return call ids; synthesize one from the call's position."""
    return f"call_{position}"


def _parse_arguments(arguments: str) -> dict[str, Any]:
    try:
        value = json.loads(arguments or "{}")
    except (json.JSONDecodeError, TypeError):
        return {}
    return value if isinstance(value, dict) else {}


def _candidate_parts(body: Mapping[str, Any]) -> list[Mapping[str, Any]]:
    candidates = body.get("candidates")
    if not isinstance(candidates, list) or not candidates or not isinstance(candidates[0], Mapping):
        return []
    content = candidates[0].get("content")
    if not isinstance(content, Mapping):
        return []
    parts = content.get("parts")
    if not isinstance(parts, list):
        return []
    return [part for part in parts if isinstance(part, Mapping)]


def _function_call(part: Mapping[str, Any]) -> tuple[str, str] | None:
    call = part.get("functionCall")
    if not isinstance(call, Mapping) or not call.get("name"):
        return None
    args = call.get("args")
    return str(call["name"]), json.dumps(args if isinstance(args, Mapping) else {})


class GeminiStreamParser:
    """Per-stream parser; numbers function calls in the order they arrive."""

    def __init__(self):
        self._next_index = 0

    def __call__(self, payload: dict[str, Any]) -> list[StreamEvent]:
        error = payload.get("error")
        if isinstance(error, Mapping):
            return [StreamEvent.error(str(error.get("message") or "Unknown provider API error."))]

        events = []
        for part in _candidate_parts(payload):
            text = part.get("text")
            if isinstance(text, str) and text:
                events.append(StreamEvent.delta(text))
                continue
            call = _function_call(part)
            if call is None:
                continue
            name, arguments = call
            index = self._next_index
            self._next_index += 1
            events.append(StreamEvent.tool_call_delta([
                ToolCallDelta(index=index, id=tool_call_id(index), type="function", name=name, arguments=arguments),
            ]))
        return events


class GeminiProvider(ChatProvider, StreamingChatProvider):
    """Google Gemini API with function calling and streaming."""

    id = "gemini"
    label = "Gemini"
    default_model = "gemini-2.5-flash"

    def options_schema(self) -> list[OptionField]:
        return [
            OptionField(
                key="api_key",
                label="API Key",
                type="password",
                description="Your Google AI Studio API key.",
            ),
            OptionField(
                key="model",
                label="Model Name",
                placeholder=self.default_model,
                description=f"Gemini model to use (default {self.default_model}).",
            ),
            OptionField(
                key="endpoint",
                label="API Endpoint",
                type="url",
                placeholder=f"{GEMINI_API_BASE}{{model}}:generateContent",
                description="Leave empty to derive the endpoint from the model name.",
            ),
        ]

    def resolve_settings(self, options: Mapping[str, str]) -> tuple[str, str]:
        """Return (endpoint, api_key) or raise ConfigMissing."""
        api_key = (options.get("api_key") or "").strip()
        if not api_key:
            raise ConfigMissing("Gemini API key is not configured.")
        model = (options.get("model") or "").strip() or self.default_model
        endpoint = (options.get("endpoint") or "").strip()
        if not endpoint:
            endpoint = f"{GEMINI_API_BASE}{quote(model, safe='')}:generateContent"
        return endpoint, api_key

    @staticmethod
    def stream_endpoint(endpoint: str) -> str:
        base = endpoint.split("?", 1)[0]
        if base.endswith(":generateContent"):
            base = base[: -len(":generateContent")] + ":streamGenerateContent"
        elif not base.endswith(":streamGenerateContent"):
            base = base.rstrip("/") + ":streamGenerateContent"
        return f"{base}?alt=sse"

    @staticmethod
    def convert_messages(messages: list[Message]) -> tuple[list[dict[str, Any]], list[str]]:
        """Map the conversation to Gemini ``contents`` plus the collected system prompts."""
        contents: list[dict[str, Any]] = []
        system_prompts: list[str] = []

        for message in messages:
            if message.role == "system":
                if message.content:
                    system_prompts.append(message.content)
                continue

            if message.role == "assistant":
                parts: list[dict[str, Any]] = []
                if message.content:
                    parts.append({"text": message.content})
                for call in message.tool_calls:
                    parts.append({
                        "functionCall": {"name": call.name, "args": _parse_arguments(call.function.arguments)},
                    })
                # Gemini rejects empty text parts, so a blank assistant turn is left out.
                if parts:
                    contents.append({"role": "model", "parts": parts})

            elif message.role == "tool":
                name = message.name or message.tool_call_id
                contents.append({
                    "role": "function",
                    "parts": [{
                        "functionResponse": {
                            "name": name,
                            "response": {"name": name, "content": message.content or ""},
                        },
                    }],
                })

            elif message.content:
                contents.append({"role": "user", "parts": [{"text": message.content}]})

        return contents, system_prompts

    @staticmethod
    def tool_config(tool_choice: Any) -> dict[str, Any] | None:
        if tool_choice == "none":
            return {"function_calling_config": {"mode": "NONE"}}
        if isinstance(tool_choice, Mapping):
            function = tool_choice.get("function")
            if isinstance(function, Mapping) and function.get("name"):
                return {
                    "function_calling_config": {
                        "mode": "ANY",
                        "allowed_function_names": [str(function["name"])],
                    },
                }
        return None

    def build_body(self, messages: list[Message], tools: list[ToolSchema], tool_choice: Any) -> dict[str, Any]:
        contents, system_prompts = self.convert_messages(messages)
        body: dict[str, Any] = {
            "contents": contents,
            "generationConfig": {"temperature": DEFAULT_TEMPERATURE},
        }
        if system_prompts:
            body["systemInstruction"] = {"parts": [{"text": "\n\n".join(system_prompts)}]}
        if tools:
            body["tools"] = to_gemini_tools(tools)
            config = self.tool_config(tool_choice)
            if config:
                body["toolConfig"] = config
        return body

    @staticmethod
    def headers(api_key: str) -> dict[str, str]:
        return {"Content-Type": "application/json", "x-goog-api-key": api_key}

    async def send_chat(
        self,
        messages: list[Message],
        tools: list[ToolSchema],
        tool_choice: Any = "auto",
        options: Mapping[str, str] | None = None,
    ) -> CompletionResult:
        if not messages:
            raise MalformedClientInput("Messages array cannot be empty.")
        endpoint, api_key = self.resolve_settings(options or {})
        decoded = await self._post_json(endpoint, self.build_body(messages, tools, tool_choice), self.headers(api_key))
        return self.parse_response(decoded)

    @staticmethod
    def parse_response(body: Mapping[str, Any]) -> CompletionResult:
        """Concatenate text parts and turn functionCall parts into positional tool calls."""
        texts = []
        tool_calls = []
        for part in _candidate_parts(body):
            text = part.get("text")
            if isinstance(text, str):
                texts.append(text)
                continue
            call = _function_call(part)
            if call is not None:
                name, arguments = call
                tool_calls.append(ToolCall(
                    id=tool_call_id(len(tool_calls)),
                    function=FunctionCall(name=name, arguments=arguments),
                ))
        return CompletionResult(content="".join(texts), tool_calls=tool_calls, raw=body)

    async def stream_chat(
        self,
        messages: list[Message],
        tools: list[ToolSchema],
        tool_choice: Any = "auto",
        options: Mapping[str, str] | None = None,
    ) -> AsyncIterator[StreamEvent]:
        if not messages:
            raise MalformedClientInput("Messages array cannot be empty.")
        endpoint, api_key = self.resolve_settings(options or {})
        url = self.stream_endpoint(endpoint)
        headers = self.headers(api_key)
        headers["Accept"] = "text/event-stream"

        async for event in self._stream_sse(
            url, self.build_body(messages, tools, tool_choice), headers, GeminiStreamParser(),
        ):
            yield event
