"""Tests for the OpenRouter provider."""

import json

import httpx
import pytest

from mcpress.errors import ConfigMissing, UpstreamTransportError
from mcpress.llm.openrouter import OPENROUTER_API_URL, OpenRouterProvider, parse_stream_chunk
from mcpress.llm.types import Message, StreamEventType

MESSAGES = [Message(role="user", content="hi")]


def make_provider(handler, seen):
    def wrapped(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return handler(request)

    return OpenRouterProvider(transport=httpx.MockTransport(wrapped))


def sse_body(*payloads) -> bytes:
    return ("".join(f"data: {json.dumps(p)}\n\n" for p in payloads) + "data: [DONE]\n\n").encode()


class TestParseStreamChunk:
    def test_content_delta(self):
        events = parse_stream_chunk({"choices": [{"delta": {"content": "Hi"}}]})
        assert len(events) == 1
        assert events[0].type is StreamEventType.DELTA
        assert events[0].content == "Hi"

    def test_tool_call_delta_without_index_is_ignored(self):
        events = parse_stream_chunk({"choices": [{"delta": {"tool_calls": [{"function": {"arguments": "{"}}]}}]})
        assert events == []

    def test_error_payload(self):
        events = parse_stream_chunk({"error": {"message": "Rate limited"}})
        assert events[0].type is StreamEventType.ERROR
        assert events[0].message == "Rate limited"

    def test_empty_choices(self):
        assert parse_stream_chunk({"choices": []}) == []


class TestRequests:
    @pytest.mark.asyncio
    async def test_defaults_and_ranking_headers(self):
        seen = []
        provider = make_provider(lambda r: httpx.Response(200, json={"choices": [{"message": {"content": "ok"}}]}), seen)

        result = await provider.send_chat(MESSAGES, [], "auto", {
            "api_key": "or-key", "http_referer": "https://site.example", "x_title": "My Site",
        })

        assert result.content == "ok"
        assert result.tool_calls == []
        request = seen[0]
        assert str(request.url) == OPENROUTER_API_URL
        assert request.headers["HTTP-Referer"] == "https://site.example"
        assert request.headers["X-Title"] == "My Site"
        assert json.loads(request.content)["model"] == "openrouter/auto"

    @pytest.mark.asyncio
    async def test_missing_key(self):
        seen = []
        provider = make_provider(lambda r: httpx.Response(200, json={}), seen)
        with pytest.raises(ConfigMissing) as exc:
            await provider.send_chat(MESSAGES, [], "auto", {})
        assert exc.value.message == "OpenRouter API key is not configured."
        assert seen == []

    @pytest.mark.asyncio
    async def test_stream_chat(self):
        seen = []
        body = sse_body(
            {"choices": [{"delta": {"content": "Hel"}}]},
            {"choices": [{"delta": {"content": "lo"}}]},
        )
        provider = make_provider(lambda r: httpx.Response(200, content=body), seen)

        events = [e async for e in provider.stream_chat(MESSAGES, [], "auto", {"api_key": "k"})]

        assert [e.content for e in events] == ["Hel", "lo"]
        sent = json.loads(seen[0].content)
        assert sent["stream"] is True
        assert seen[0].headers["accept"] == "text/event-stream"

    @pytest.mark.asyncio
    async def test_stream_transport_failure(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        provider = OpenRouterProvider(transport=httpx.MockTransport(handler))
        with pytest.raises(UpstreamTransportError):
            async for _ in provider.stream_chat(MESSAGES, [], "auto", {"api_key": "k"}):
                pass

    @pytest.mark.asyncio
    async def test_stream_malformed_endpoint(self):
        provider = OpenRouterProvider(transport=httpx.MockTransport(lambda r: httpx.Response(200)))
        options = {"api_key": "k", "endpoint": "https://openrouter.example:80x/api"}
        with pytest.raises(ConfigMissing):
            async for _ in provider.stream_chat(MESSAGES, [], "auto", options):
                pass
