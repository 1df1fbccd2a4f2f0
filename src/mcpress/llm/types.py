"""Shared types for chat providers."""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

ROLES = ("system", "user", "assistant", "tool")


@dataclass
class FunctionCall:
    """Name plus raw JSON arguments of a tool invocation."""

    name: str
    arguments: str = ""


@dataclass
class ToolCall:
    """A single tool invocation requested by the LLM."""

    id: str
    function: FunctionCall
    type: str = "function"

    @property
    def name(self) -> str:
        return self.function.name

    def parsed_arguments(self) -> dict[str, Any]:
        """Decode the argument string. Invalid JSON or a non-object yields {}."""
        try:
            value = json.loads(self.function.arguments or "{}")
        except (json.JSONDecodeError, TypeError):
            return {}
        return value if isinstance(value, dict) else {}

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "function": {"name": self.function.name, "arguments": self.function.arguments},
        }

    @classmethod
    def from_dict(cls, data: Any) -> ToolCall:
        """Build from the OpenAI-style wire shape. Raises ValueError when malformed."""
        if not isinstance(data, Mapping):
            raise ValueError("Tool call must be an object.")
        function = data.get("function")
        if not isinstance(function, Mapping) or not isinstance(function.get("name"), str) or not function["name"]:
            raise ValueError("Tool call is missing a function name.")
        arguments = function.get("arguments", "")
        if arguments is None:
            arguments = ""
        elif not isinstance(arguments, str):
            arguments = json.dumps(arguments)
        return cls(
            id=str(data.get("id") or ""),
            function=FunctionCall(name=function["name"], arguments=arguments),
            type=str(data.get("type") or "function"),
        )


@dataclass
class ToolCallDelta:
    """A fragment of a tool call received while streaming."""

    index: int
    id: str = ""
    type: str = ""
    name: str = ""
    arguments: str = ""

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"index": self.index}
        if self.id:
            data["id"] = self.id
        if self.type:
            data["type"] = self.type
        function: dict[str, str] = {}
        if self.name:
            function["name"] = self.name
        if self.arguments:
            function["arguments"] = self.arguments
        if function:
            data["function"] = function
        return data

    @classmethod
    def from_dict(cls, data: Any) -> ToolCallDelta | None:
        """Parse an OpenAI-style delta. Returns None when there is no usable index."""
        if not isinstance(data, Mapping):
            return None
        index = data.get("index")
        if isinstance(index, bool) or not isinstance(index, int):
            return None
        function = data.get("function")
        if not isinstance(function, Mapping):
            function = {}
        arguments = function.get("arguments")
        if arguments is not None and not isinstance(arguments, str):
            arguments = json.dumps(arguments)
        return cls(
            index=index,
            id=str(data.get("id") or ""),
            type=str(data.get("type") or ""),
            name=str(function.get("name") or ""),
            arguments=arguments or "",
        )


@dataclass
class Message:
    """One entry of the conversation history."""

    role: str
    content: str | None = None
    tool_calls: list[ToolCall] = field(default_factory=list)
    tool_call_id: str = ""
    name: str = ""

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"role": self.role}
        if self.tool_calls:
            data["content"] = self.content
            data["tool_calls"] = [call.to_dict() for call in self.tool_calls]
        else:
            data["content"] = self.content or ""
        if self.tool_call_id:
            data["tool_call_id"] = self.tool_call_id
        if self.name:
            data["name"] = self.name
        return data

    @classmethod
    def from_dict(cls, data: Any) -> Message:
        if not isinstance(data, Mapping):
            raise ValueError("Message must be an object.")
        role = data.get("role")
        if role not in ROLES:
            raise ValueError(f"Invalid message role: {role!r}")
        content = data.get("content")
        if content is not None and not isinstance(content, str):
            raise ValueError("Message content must be a string.")
        raw_calls = data.get("tool_calls") or []
        if not isinstance(raw_calls, list):
            raise ValueError("Message tool_calls must be a list.")
        return cls(
            role=role,
            content=content,
            tool_calls=[ToolCall.from_dict(call) for call in raw_calls],
            tool_call_id=str(data.get("tool_call_id") or ""),
            name=str(data.get("name") or ""),
        )


@dataclass
class ToolSchema:
    """Vendor-neutral description of a tool offered to the LLM."""

    name: str
    description: str = ""
    parameters: dict[str, Any] = field(default_factory=lambda: {"type": "object", "properties": {}})

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "description": self.description, "parameters": self.parameters}


@dataclass
class CompletionResult:
    """Normalized completion: text plus any tool calls."""

    content: str = ""
    tool_calls: list[ToolCall] = field(default_factory=list)
    raw: Any = None


class StreamEventType(str, Enum):
    DELTA = "delta"
    TOOL_CALL_DELTA = "tool_call_delta"
    TOOL_CALLS = "tool_calls"
    ERROR = "error"
    DONE = "done"


@dataclass
class StreamEvent:
    """One event of a streamed chat turn."""

    type: StreamEventType
    content: str = ""
    deltas: list[ToolCallDelta] = field(default_factory=list)
    tool_calls: list[ToolCall] = field(default_factory=list)
    message: str = ""

    @classmethod
    def delta(cls, content: str) -> StreamEvent:
        return cls(StreamEventType.DELTA, content=content)

    @classmethod
    def tool_call_delta(cls, deltas: list[ToolCallDelta]) -> StreamEvent:
        return cls(StreamEventType.TOOL_CALL_DELTA, deltas=list(deltas))

    @classmethod
    def calls(cls, tool_calls: list[ToolCall]) -> StreamEvent:
        return cls(StreamEventType.TOOL_CALLS, tool_calls=list(tool_calls))

    @classmethod
    def error(cls, message: str) -> StreamEvent:
        return cls(StreamEventType.ERROR, message=message)

    @classmethod
    def done(cls) -> StreamEvent:
        return cls(StreamEventType.DONE)

    def to_dict(self) -> dict[str, Any]:
        if self.type is StreamEventType.DELTA:
            return {"content": self.content}
        if self.type is StreamEventType.TOOL_CALL_DELTA:
            return {"tool_calls": [delta.to_dict() for delta in self.deltas]}
        if self.type is StreamEventType.TOOL_CALLS:
            return {"tool_calls": [call.to_dict() for call in self.tool_calls]}
        if self.type is StreamEventType.ERROR:
            return {"message": self.message}
        return {}

    def to_sse(self) -> str:
        """Render as one server-sent event frame."""
        return f"event: {self.type.value}\ndata: {json.dumps(self.to_dict())}\n\n"
