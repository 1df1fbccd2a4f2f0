"""Core data models for mcpress conversations."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .llm.types import Message, ToolCall


class TurnState(str, Enum):
    """States a conversation turn can end in.

    The completion and tool-execution phases in between are the bodies of
    ``ConversationOrchestrator.chat`` and ``execute_tools``.
    """

    DIRECT_REPLY = "direct_reply"
    AWAITING_CONFIRMATION = "awaiting_confirmation"
    DECLINED = "declined"


class ToolResultMode(str, Enum):
    """How tool output is handed back to the model."""

    AUTO = "auto"
    TOOL = "tool"  # role "tool" messages
    USER = "user"  # plain user turns


@dataclass
class ToolOutcome:
    """Result of running one tool call."""

    call: ToolCall
    output: str
    ok: bool = True


@dataclass
class TurnResult:
    """What the orchestrator hands back to the caller after a turn."""

    state: TurnState
    message: str
    tool_calls: list[ToolCall] = field(default_factory=list)
    messages: list[Message] = field(default_factory=list)
    outcomes: list[ToolOutcome] = field(default_factory=list)

    @property
    def requires_confirmation(self) -> bool:
        return self.state is TurnState.AWAITING_CONFIRMATION

    def to_response(self) -> dict[str, Any]:
        data: dict[str, Any] = {"success": True, "message": self.message}
        if self.requires_confirmation:
            data["tool_calls"] = [call.to_dict() for call in self.tool_calls]
            data["requires_confirmation"] = True
        if self.messages:
            data["messages"] = [message.to_dict() for message in self.messages]
        return data
