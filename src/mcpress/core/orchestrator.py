"""Conversation orchestrator: suggest tools, wait for confirmation, execute, resume.

The server keeps no conversation state. Every call receives the full history
from the client, and a turn that needs confirmation hands the pending
assistant tool-call message back so the client can resubmit it.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import aclosing
from typing import Any

from ..errors import MalformedClientInput, MCPressError, ToolExecutionError, ToolNotFound
from ..llm.prompts import (
    NO_FOLLOW_UP_MESSAGE,
    TOOL_SUGGESTION_MESSAGE,
    build_decline_message,
    build_tool_request_text,
    build_tool_result_text,
)
from ..llm.registry import ProviderRegistry
from ..llm.streaming import StreamReassembler
from ..llm.types import Message, StreamEvent, ToolCall
from ..models import ToolOutcome, ToolResultMode, TurnResult, TurnState
from ..tools.registry import ToolRegistry, tool_output_text

logger = logging.getLogger(__name__)


class ConversationOrchestrator:
    """Drives one chat turn through the provider and tool registries."""

    def __init__(
        self,
        providers: ProviderRegistry,
        tools: ToolRegistry,
        tool_result_mode: ToolResultMode | str = ToolResultMode.AUTO,
        tool_choice: Any = "auto",
    ):
        self.providers = providers
        self.tools = tools
        self.tool_result_mode = ToolResultMode(tool_result_mode)
        self.tool_choice = tool_choice

    def resolve_tool_result_mode(self) -> ToolResultMode:
        if self.tool_result_mode is not ToolResultMode.AUTO:
            return self.tool_result_mode
        provider = self.providers.get_current_provider()
        if provider is not None and not provider.supports_tool_role:
            return ToolResultMode.USER
        return ToolResultMode.TOOL

    # ── Buffered turn ──────────────────────────────────────

    async def chat(self, messages: list[Message]) -> TurnResult:
        """First completion. Either a direct reply or a request for confirmation."""
        if not messages:
            raise MalformedClientInput("Messages array cannot be empty.")

        result = await self.providers.send_chat(messages, self.tools.schemas(), self.tool_choice)
        if not result.tool_calls:
            return TurnResult(state=TurnState.DIRECT_REPLY, message=result.content)

        names = ", ".join(call.name for call in result.tool_calls)
        logger.info(f"Model suggested tools: {names}; awaiting confirmation")
        history = list(messages)
        history.append(Message(role="assistant", content=None, tool_calls=list(result.tool_calls)))
        return TurnResult(
            state=TurnState.AWAITING_CONFIRMATION,
            message=TOOL_SUGGESTION_MESSAGE,
            tool_calls=list(result.tool_calls),
            messages=history,
        )

    async def execute_tools(
        self,
        tool_calls: list[ToolCall],
        messages: list[Message],
        confirm: bool = True,
    ) -> TurnResult:
        """Resume a turn that was waiting for confirmation.

        ``tool_calls`` must be exactly the calls of the trailing assistant
        message in ``messages``. When ``confirm`` is False nothing runs and the
        pending request is replaced by a short acknowledgement.
        """
        if not tool_calls or not messages:
            raise MalformedClientInput("Invalid tool calls or messages provided for execution.")
        pending = messages[-1]
        if pending.role != "assistant" or pending.tool_calls != list(tool_calls):
            raise MalformedClientInput("Tool calls do not match the pending assistant message.")

        if not confirm:
            text = build_decline_message([call.name for call in tool_calls])
            logger.info("User declined tool execution")
            history = list(messages[:-1])
            history.append(Message(role="assistant", content=text))
            return TurnResult(state=TurnState.DECLINED, message=text, messages=history)

        outcomes = await self.run_tool_calls(tool_calls)
        history = self._append_results(list(messages), outcomes)

        result = await self.providers.send_chat(history, self.tools.schemas(), self.tool_choice)
        if result.tool_calls:
            logger.debug("Ignoring tool calls returned by the follow-up completion")
        content = result.content or NO_FOLLOW_UP_MESSAGE
        history.append(Message(role="assistant", content=content))
        return TurnResult(
            state=TurnState.DIRECT_REPLY,
            message=content,
            messages=history,
            outcomes=outcomes,
        )

    async def run_tool_calls(self, tool_calls: list[ToolCall]) -> list[ToolOutcome]:
        """Run each call in order. A failing call never stops the others."""
        outcomes = []
        for call in tool_calls:
            try:
                output = await self.tools.execute(call.name, call.parsed_arguments())
            except ToolNotFound as e:
                logger.warning(f"Unknown tool requested: {call.name}")
                outcomes.append(ToolOutcome(
                    call=call,
                    output=tool_output_text({"message": e.message, "status": "error"}),
                    ok=False,
                ))
                continue
            except ToolExecutionError as e:
                logger.warning(f"Tool {call.name} failed: {e.reason}")
                outcomes.append(ToolOutcome(call=call, output=e.message, ok=False))
                continue
            text = tool_output_text(output)
            logger.info(f"Tool {call.name}({call.function.arguments or '{}'}) -> {text[:80]}")
            outcomes.append(ToolOutcome(call=call, output=text))
        return outcomes

    def _append_results(self, history: list[Message], outcomes: list[ToolOutcome]) -> list[Message]:
        if self.resolve_tool_result_mode() is ToolResultMode.TOOL:
            for outcome in outcomes:
                history.append(Message(
                    role="tool",
                    content=outcome.output,
                    tool_call_id=outcome.call.id,
                    name=outcome.call.name,
                ))
            return history

        # Providers without a tool role need plain alternating user/assistant turns.
        pending = history.pop()
        request_text = "\n".join(
            build_tool_request_text(call.name, call.function.arguments) for call in pending.tool_calls
        )
        if pending.content:
            request_text = f"{pending.content}\n{request_text}"
        history.append(Message(role="assistant", content=request_text))
        history.append(Message(
            role="user",
            content="\n\n".join(build_tool_result_text(o.call.name, o.output) for o in outcomes),
        ))
        return history

    # ── Streamed turn ──────────────────────────────────────

    async def stream_chat(self, messages: list[Message]) -> AsyncIterator[StreamEvent]:
        """First completion as a stream of events, always ending with exactly one ``done``."""
        reassembler = StreamReassembler()
        try:
            if not messages:
                raise MalformedClientInput("Messages array cannot be empty.")
            schemas = self.tools.schemas()
            provider_id = self.providers.get_current_provider_id()

            if self.providers.supports_streaming(provider_id):
                async with aclosing(self.providers.stream_chat_via(
                    provider_id, messages, schemas, self.tool_choice,
                )) as events:
                    async for event in events:
                        reassembler.accept(event)
                        yield event
            else:
                result = await self.providers.send_chat_via(provider_id, messages, schemas, self.tool_choice)
                if result.content:
                    event = StreamEvent.delta(result.content)
                    reassembler.accept(event)
                    yield event
                if result.tool_calls:
                    reassembler.accept(StreamEvent.calls(result.tool_calls))
        except MCPressError as e:
            logger.warning(f"Streaming chat failed: {e.message}")
            yield StreamEvent.error(e.message)
        except Exception:
            logger.exception("Unexpected error while streaming chat")
            yield StreamEvent.error("An unexpected error occurred while contacting the provider.")
        else:
            final = reassembler.finalize()
            if final.tool_calls and not reassembler.errors:
                yield StreamEvent.calls(final.tool_calls)
        yield StreamEvent.done()
