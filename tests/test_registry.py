"""Tests for the provider registry."""

import pytest

from mcpress.errors import BadProviderResponse, InvalidProvider
from mcpress.llm.base import ChatProvider, OptionField, StreamingChatProvider
from mcpress.llm.registry import ProviderRegistry
from mcpress.llm.types import CompletionResult, Message, StreamEvent
from mcpress.options import InMemoryOptionStore


# ── Mocks ─────────────────────────────────────────────────


class RecordingProvider(ChatProvider):
    def __init__(self, provider_id, label="", result=None):
        super().__init__()
        self.id = provider_id
        self.label = label
        self.result = result if result is not None else CompletionResult(content="ok")
        self.last_options = None

    def options_schema(self):
        return [OptionField(key="api_key", label="API Key"), OptionField(key="model", label="Model")]

    async def send_chat(self, messages, tools, tool_choice="auto", options=None):
        self.last_options = dict(options or {})
        return self.result


class StreamingProvider(RecordingProvider, StreamingChatProvider):
    async def stream_chat(self, messages, tools, tool_choice="auto", options=None):
        self.last_options = dict(options or {})
        yield StreamEvent.delta("Hel")
        yield StreamEvent.delta("lo")


MESSAGES = [Message(role="user", content="hi")]


# ── Registration ──────────────────────────────────────────


class TestRegistration:
    def test_duplicate_id_keeps_first(self):
        registry = ProviderRegistry()
        assert registry.register(RecordingProvider("a", "First"))
        assert not registry.register(RecordingProvider("a", "Second"))
        assert registry.available_providers() == ["a"]
        assert registry.get_provider_label("a") == "First"

    def test_order_is_first_seen(self):
        registry = ProviderRegistry()
        for pid in ("b", "a", "c"):
            registry.register(RecordingProvider(pid))
        assert registry.available_providers() == ["b", "a", "c"]

    def test_empty_id_rejected(self):
        registry = ProviderRegistry()
        assert not registry.register(RecordingProvider(""))
        assert registry.available_providers() == []

    def test_labels_fall_back_to_id(self):
        registry = ProviderRegistry()
        registry.register(RecordingProvider("x"))
        assert registry.providers_with_labels() == {"x": "x"}
        assert registry.get_provider_label("missing") == "missing"


class TestCurrentProvider:
    def test_persisted_selection_wins(self):
        registry = ProviderRegistry(InMemoryOptionStore(current_provider="b"))
        registry.register(RecordingProvider("openai_compatible"))
        registry.register(RecordingProvider("b"))
        assert registry.get_current_provider_id() == "b"

    def test_falls_back_to_default(self):
        registry = ProviderRegistry(InMemoryOptionStore(current_provider="gone"))
        registry.register(RecordingProvider("b"))
        registry.register(RecordingProvider("openai_compatible"))
        assert registry.get_current_provider_id() == "openai_compatible"

    def test_falls_back_to_first(self):
        registry = ProviderRegistry()
        registry.register(RecordingProvider("b"))
        registry.register(RecordingProvider("c"))
        assert registry.get_current_provider_id() == "b"

    def test_empty_registry(self):
        assert ProviderRegistry().get_current_provider_id() == ""

    def test_set_rejects_unknown(self):
        registry = ProviderRegistry()
        registry.register(RecordingProvider("a"))
        assert not registry.set_current_provider_id("zzz")
        assert registry.set_current_provider_id("a")
        assert registry.store.get_current_provider() == "a"


class TestOptions:
    def test_one_value_per_schema_field(self):
        store = InMemoryOptionStore({"a": {"api_key": "k", "unrelated": "x"}})
        registry = ProviderRegistry(store)
        registry.register(RecordingProvider("a"))
        assert registry.get_provider_options("a") == {"api_key": "k", "model": ""}

    def test_save_ignores_unknown_fields(self):
        registry = ProviderRegistry()
        registry.register(RecordingProvider("a"))
        assert registry.save_provider_options("a", {"model": " m1 ", "bogus": "x"})
        assert registry.get_provider_options("a") == {"api_key": "", "model": "m1"}
        assert registry.store.get("a", "bogus") == ""
        assert not registry.save_provider_options("missing", {"model": "m"})


class TestSendChat:
    @pytest.mark.asyncio
    async def test_overrides_win(self):
        provider = RecordingProvider("a")
        registry = ProviderRegistry(InMemoryOptionStore({"a": {"api_key": "stored", "model": "m"}}))
        registry.register(provider)

        await registry.send_chat(MESSAGES, override_options={"api_key": "override"})
        assert provider.last_options == {"api_key": "override", "model": "m"}

    @pytest.mark.asyncio
    async def test_no_provider_selected(self):
        with pytest.raises(InvalidProvider) as exc:
            await ProviderRegistry().send_chat(MESSAGES)
        assert exc.value.message == "No provider selected."

    @pytest.mark.asyncio
    async def test_unknown_provider(self):
        registry = ProviderRegistry()
        registry.register(RecordingProvider("a"))
        with pytest.raises(InvalidProvider) as exc:
            await registry.send_chat_via("nope", MESSAGES)
        assert exc.value.message == "Selected provider is not available."

    @pytest.mark.asyncio
    async def test_mapping_result_is_normalized(self):
        registry = ProviderRegistry()
        registry.register(RecordingProvider("a", result={"content": None}))
        result = await registry.send_chat(MESSAGES)
        assert result.content == ""
        assert result.tool_calls == []

    @pytest.mark.asyncio
    async def test_mapping_tool_calls_are_coerced(self):
        registry = ProviderRegistry()
        registry.register(RecordingProvider("a", result={
            "content": "x",
            "tool_calls": [{"id": "c1", "function": {"name": "f", "arguments": "{}"}}],
        }))
        result = await registry.send_chat(MESSAGES)
        assert result.tool_calls[0].name == "f"

    @pytest.mark.asyncio
    async def test_garbage_result_is_bad_response(self):
        registry = ProviderRegistry()
        registry.register(RecordingProvider("a", result="just a string"))
        with pytest.raises(BadProviderResponse) as exc:
            await registry.send_chat(MESSAGES)
        assert exc.value.message == "Provider returned an invalid response."


class TestStreaming:
    def test_capability_check(self):
        registry = ProviderRegistry()
        registry.register(RecordingProvider("plain"))
        registry.register(StreamingProvider("live"))
        assert not registry.supports_streaming("plain")
        assert registry.supports_streaming("live")
        assert not registry.supports_streaming("missing")

    @pytest.mark.asyncio
    async def test_stream_via_streaming_provider(self):
        registry = ProviderRegistry(InMemoryOptionStore({"live": {"api_key": "k"}}))
        registry.register(StreamingProvider("live"))
        events = [e async for e in registry.stream_chat(MESSAGES)]
        assert [e.content for e in events] == ["Hel", "lo"]

    @pytest.mark.asyncio
    async def test_stream_without_capability_raises(self):
        registry = ProviderRegistry()
        registry.register(RecordingProvider("plain"))
        with pytest.raises(InvalidProvider):
            async for _ in registry.stream_chat(MESSAGES):
                pass
