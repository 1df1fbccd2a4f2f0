"""Tests for tool-call accumulation and stream reassembly."""

import json

import pytest

from mcpress.llm.gemini import GeminiProvider, GeminiStreamParser
from mcpress.llm.openai_compatible import OpenAICompatibleProvider
from mcpress.llm.openrouter import parse_stream_chunk
from mcpress.llm.streaming import StreamReassembler, ToolCallAccumulator
from mcpress.llm.types import FunctionCall, StreamEvent, StreamEventType, ToolCall, ToolCallDelta


def sse(payload) -> bytes:
    return f"data: {json.dumps(payload)}\n\n".encode()


def reassemble(parser, frames: list[bytes]):
    reassembler = StreamReassembler(parser)
    events = []
    for frame in frames:
        events.extend(reassembler.on_frame(frame))
    events.extend(reassembler.close())
    return reassembler.finalize(), events


class TestToolCallAccumulator:
    def test_fragments_are_concatenated_by_index(self):
        acc = ToolCallAccumulator()
        acc.add(ToolCallDelta(index=0, id="c1", name="f", arguments='{"a":'))
        acc.add(ToolCallDelta(index=0, arguments="1}"))

        calls = acc.tool_calls()
        assert len(calls) == 1
        assert calls[0].id == "c1"
        assert calls[0].name == "f"
        assert calls[0].type == "function"
        assert calls[0].parsed_arguments() == {"a": 1}

    def test_empty_id_and_name_do_not_overwrite(self):
        acc = ToolCallAccumulator()
        acc.add(ToolCallDelta(index=0, id="c1", name="f"))
        acc.add(ToolCallDelta(index=0, id="", name="", arguments="{}"))
        call = acc.tool_calls()[0]
        assert (call.id, call.name, call.function.arguments) == ("c1", "f", "{}")

    def test_later_non_empty_id_wins(self):
        acc = ToolCallAccumulator()
        acc.add(ToolCallDelta(index=0, id="tmp", name="f"))
        acc.add(ToolCallDelta(index=0, id="final"))
        assert acc.tool_calls()[0].id == "final"

    def test_sorted_by_index(self):
        acc = ToolCallAccumulator()
        acc.add(ToolCallDelta(index=2, id="c", name="third"))
        acc.add(ToolCallDelta(index=0, id="a", name="first"))
        acc.add(ToolCallDelta(index=1, id="b", name="second"))
        assert [c.name for c in acc.tool_calls()] == ["first", "second", "third"]
        assert len(acc) == 3


class TestStreamReassembler:
    def test_accept_builds_content_and_calls(self):
        r = StreamReassembler()
        r.accept(StreamEvent.delta("Hel"))
        r.accept(StreamEvent.delta("lo"))
        r.accept(StreamEvent.tool_call_delta([ToolCallDelta(index=0, id="c1", name="f", arguments="{}")]))

        result = r.finalize()
        assert result.content == "Hello"
        assert [c.id for c in result.tool_calls] == ["c1"]

    def test_explicit_tool_calls_event_is_authoritative(self):
        r = StreamReassembler()
        r.accept(StreamEvent.tool_call_delta([ToolCallDelta(index=0, id="partial", name="f")]))
        explicit = ToolCall(id="x", function=FunctionCall(name="g", arguments='{"k": 1}'))
        r.accept(StreamEvent.calls([explicit]))
        assert r.finalize().tool_calls == [explicit]

    def test_error_events_are_recorded(self):
        r = StreamReassembler()
        r.accept(StreamEvent.error("boom"))
        assert r.errors == ["boom"]

    def test_on_frame_without_parser_raises(self):
        with pytest.raises(RuntimeError):
            StreamReassembler().on_frame(b"data: {}\n\n")

    def test_openai_delta_fragments(self):
        frames = [
            sse({"choices": [{"delta": {"tool_calls": [
                {"index": 0, "id": "c1", "type": "function", "function": {"name": "f", "arguments": '{"a":'}},
            ]}}]}),
            sse({"choices": [{"delta": {"tool_calls": [{"index": 0, "function": {"arguments": "1}"}}]}}]}),
        ]
        result, events = reassemble(parse_stream_chunk, frames)
        assert [e.type for e in events] == [StreamEventType.TOOL_CALL_DELTA] * 2
        assert len(result.tool_calls) == 1
        assert result.tool_calls[0].parsed_arguments() == {"a": 1}

    def test_frames_split_at_arbitrary_byte_boundaries(self):
        raw = sse({"choices": [{"delta": {"content": "Hel"}}]}) + sse({"choices": [{"delta": {"content": "lo"}}]})
        pieces = [raw[i:i + 7] for i in range(0, len(raw), 7)]
        result, events = reassemble(parse_stream_chunk, pieces)
        assert result.content == "Hello"
        assert [e.content for e in events] == ["Hel", "lo"]


class TestStreamingMatchesBuffered:
    """The same vendor response gives the same result streamed or buffered."""

    def test_openai_wire_format(self):
        buffered = {"choices": [{"message": {
            "content": "Checking.",
            "tool_calls": [
                {"id": "call_1", "type": "function", "function": {"name": "get_site_info", "arguments": '{"a":1}'}},
                {"id": "call_2", "type": "function", "function": {"name": "other", "arguments": "{}"}},
            ],
        }}]}
        frames = [
            sse({"choices": [{"delta": {"role": "assistant", "content": "Check"}}]}),
            sse({"choices": [{"delta": {"content": "ing."}}]}),
            sse({"choices": [{"delta": {"tool_calls": [
                {"index": 0, "id": "call_1", "type": "function", "function": {"name": "get_site_info", "arguments": '{"a":'}},
            ]}}]}),
            sse({"choices": [{"delta": {"tool_calls": [{"index": 0, "function": {"arguments": "1}"}}]}}]}),
            sse({"choices": [{"delta": {"tool_calls": [
                {"index": 1, "id": "call_2", "type": "function", "function": {"name": "other", "arguments": "{}"}},
            ]}}]}),
            b"data: [DONE]\n\n",
        ]

        expected = OpenAICompatibleProvider.parse_response(buffered)
        streamed, _ = reassemble(parse_stream_chunk, frames)
        assert streamed.content == expected.content
        assert streamed.tool_calls == expected.tool_calls

    def test_gemini(self):
        parts = [
            {"text": "Sure. "},
            {"text": "Here."},
            {"functionCall": {"name": "get_site_info", "args": {}}},
            {"functionCall": {"name": "lookup", "args": {"q": "x"}}},
        ]
        buffered = {"candidates": [{"content": {"role": "model", "parts": parts}}]}
        frames = [
            sse({"candidates": [{"content": {"role": "model", "parts": parts[:1]}}]}),
            sse({"candidates": [{"content": {"role": "model", "parts": parts[1:3]}}]}),
            sse({"candidates": [{"content": {"role": "model", "parts": parts[3:]}}]}),
        ]

        expected = GeminiProvider.parse_response(buffered)
        streamed, _ = reassemble(GeminiStreamParser(), frames)
        assert streamed.content == expected.content == "Sure. Here."
        assert streamed.tool_calls == expected.tool_calls
        assert [c.id for c in streamed.tool_calls] == ["call_0", "call_1"]
