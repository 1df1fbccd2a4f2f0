"""Reassemble streamed chat output into a final completion."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from .sse import SSEFrameDecoder
from .types import (
    CompletionResult,
    FunctionCall,
    StreamEvent,
    StreamEventType,
    ToolCall,
    ToolCallDelta,
)

PayloadParser = Callable[[dict[str, Any]], list[StreamEvent]]


class ToolCallAccumulator:
    """Merge tool-call fragments by index."""

    def __init__(self):
        self._slots: dict[int, ToolCall] = {}

    def add(self, delta: ToolCallDelta) -> None:
        slot = self._slots.get(delta.index)
        if slot is None:
            slot = ToolCall(id=delta.id, function=FunctionCall(name=delta.name), type=delta.type or "function")
            self._slots[delta.index] = slot
        else:
            if delta.id:
                slot.id = delta.id
            if delta.name:
                slot.function.name = delta.name
            if delta.type:
                slot.type = delta.type
        slot.function.arguments += delta.arguments

    def __len__(self) -> int:
        return len(self._slots)

    def tool_calls(self) -> list[ToolCall]:
        return [self._slots[index] for index in sorted(self._slots)]


class StreamReassembler:
    """Holds the running state of one streamed completion.

    Feed raw bytes with :meth:`on_frame` (needs a vendor ``parser``) or
    already-normalized events with :meth:`accept`, then call :meth:`finalize`.
    """

    def __init__(self, parser: PayloadParser | None = None):
        self._parser = parser
        self._decoder = SSEFrameDecoder()
        self._content: list[str] = []
        self._accumulator = ToolCallAccumulator()
        self._explicit_calls: list[ToolCall] | None = None
        self.errors: list[str] = []

    @property
    def content(self) -> str:
        return "".join(self._content)

    def on_frame(self, chunk: bytes) -> list[StreamEvent]:
        """Decode a raw chunk, accumulate it, and return the events it produced."""
        if self._parser is None:
            raise RuntimeError("StreamReassembler needs a payload parser to decode raw frames")
        return self._consume(self._decoder.feed(chunk))

    def close(self) -> list[StreamEvent]:
        """Flush the decoder at end of stream."""
        if self._parser is None:
            return []
        return self._consume(self._decoder.flush())

    def accept(self, event: StreamEvent) -> None:
        if event.type is StreamEventType.DELTA:
            self._content.append(event.content)
        elif event.type is StreamEventType.TOOL_CALL_DELTA:
            for delta in event.deltas:
                self._accumulator.add(delta)
        elif event.type is StreamEventType.TOOL_CALLS:
            self._explicit_calls = list(event.tool_calls)
        elif event.type is StreamEventType.ERROR:
            self.errors.append(event.message)

    def finalize(self) -> CompletionResult:
        if self._explicit_calls is not None:
            tool_calls = self._explicit_calls
        else:
            tool_calls = self._accumulator.tool_calls()
        return CompletionResult(content=self.content, tool_calls=tool_calls)

    def _consume(self, payloads: list[dict[str, Any]]) -> list[StreamEvent]:
        events = []
        for payload in payloads:
            for event in self._parser(payload):
                self.accept(event)
                events.append(event)
        return events
