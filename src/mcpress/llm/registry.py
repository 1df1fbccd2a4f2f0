"""Registry of chat providers and routing of chat requests to them."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Mapping
from contextlib import aclosing
from typing import Any

from ..errors import BadProviderResponse, InvalidProvider
from ..options import InMemoryOptionStore, OptionStore
from .base import ChatProvider, OptionField, StreamingChatProvider
from .types import CompletionResult, Message, StreamEvent, ToolCall, ToolSchema

logger = logging.getLogger(__name__)

DEFAULT_PROVIDER = "openai_compatible"


class ProviderRegistry:
    """Ordered set of providers plus the selection and settings that route to them."""

    def __init__(self, store: OptionStore | None = None):
        self.store = store or InMemoryOptionStore()
        self._providers: dict[str, ChatProvider] = {}

    # ── Registration ───────────────────────────────────────

    def register(self, provider: ChatProvider) -> bool:
        """Add a provider. Returns False if its id is empty or already taken."""
        if not provider.id:
            logger.warning(f"Ignoring provider {type(provider).__name__} without an id")
            return False
        if provider.id in self._providers:
            logger.debug(f"Provider {provider.id} already registered, keeping the first one")
            return False
        self._providers[provider.id] = provider
        return True

    def available_providers(self) -> list[str]:
        return list(self._providers)

    def providers_with_labels(self) -> dict[str, str]:
        return {provider_id: provider.get_label() for provider_id, provider in self._providers.items()}

    def get_provider(self, provider_id: str) -> ChatProvider | None:
        return self._providers.get(provider_id)

    def get_provider_label(self, provider_id: str) -> str:
        provider = self._providers.get(provider_id)
        return provider.get_label() if provider else provider_id

    def get_options_schema(self, provider_id: str) -> list[OptionField]:
        provider = self._providers.get(provider_id)
        return provider.options_schema() if provider else []

    def supports_streaming(self, provider_id: str | None = None) -> bool:
        if provider_id is None:
            provider_id = self.get_current_provider_id()
        return isinstance(self._providers.get(provider_id), StreamingChatProvider)

    # ── Selection and settings ─────────────────────────────

    def get_current_provider_id(self) -> str:
        selected = self.store.get_current_provider()
        if selected in self._providers:
            return selected
        if DEFAULT_PROVIDER in self._providers:
            return DEFAULT_PROVIDER
        return next(iter(self._providers), "")

    def set_current_provider_id(self, provider_id: str) -> bool:
        if provider_id not in self._providers:
            return False
        self.store.set_current_provider(provider_id)
        return True

    def get_current_provider(self) -> ChatProvider | None:
        return self._providers.get(self.get_current_provider_id())

    def get_provider_options(self, provider_id: str) -> dict[str, str]:
        return {field.key: self.store.get(provider_id, field.key) for field in self.get_options_schema(provider_id)}

    def save_provider_options(self, provider_id: str, options: Mapping[str, Any]) -> bool:
        """Persist values for schema fields only; unknown keys are ignored."""
        if provider_id not in self._providers:
            return False
        for field in self.get_options_schema(provider_id):
            if field.key in options:
                value = options[field.key]
                self.store.set(provider_id, field.key, "" if value is None else str(value).strip())
        return True

    # ── Routing ────────────────────────────────────────────

    def _resolve(
        self, provider_id: str, override_options: Mapping[str, str] | None,
    ) -> tuple[ChatProvider, dict[str, str]]:
        if not provider_id:
            raise InvalidProvider("No provider selected.")
        provider = self._providers.get(provider_id)
        if provider is None:
            raise InvalidProvider("Selected provider is not available.")
        options = self.get_provider_options(provider_id)
        if override_options:
            options.update({key: value for key, value in override_options.items() if value is not None})
        return provider, options

    async def send_chat(
        self,
        messages: list[Message],
        tools: list[ToolSchema] = (),
        tool_choice: Any = "auto",
        override_options: Mapping[str, str] | None = None,
    ) -> CompletionResult:
        return await self.send_chat_via(
            self.get_current_provider_id(), messages, tools, tool_choice, override_options,
        )

    async def send_chat_via(
        self,
        provider_id: str,
        messages: list[Message],
        tools: list[ToolSchema] = (),
        tool_choice: Any = "auto",
        override_options: Mapping[str, str] | None = None,
    ) -> CompletionResult:
        provider, options = self._resolve(provider_id, override_options)
        logger.info(f"Routing chat to {provider_id} ({len(messages)} messages, {len(tools)} tools)")
        result = await provider.send_chat(list(messages), list(tools), tool_choice, options)
        return self.normalize_result(result)

    async def stream_chat(
        self,
        messages: list[Message],
        tools: list[ToolSchema] = (),
        tool_choice: Any = "auto",
        override_options: Mapping[str, str] | None = None,
    ) -> AsyncIterator[StreamEvent]:
        async with aclosing(self.stream_chat_via(
            self.get_current_provider_id(), messages, tools, tool_choice, override_options,
        )) as events:
            async for event in events:
                yield event

    async def stream_chat_via(
        self,
        provider_id: str,
        messages: list[Message],
        tools: list[ToolSchema] = (),
        tool_choice: Any = "auto",
        override_options: Mapping[str, str] | None = None,
    ) -> AsyncIterator[StreamEvent]:
        provider, options = self._resolve(provider_id, override_options)
        if not isinstance(provider, StreamingChatProvider):
            raise InvalidProvider(f"Provider {provider.get_label()} does not support streaming.")
        logger.info(f"Streaming chat via {provider_id} ({len(messages)} messages, {len(tools)} tools)")
        async with aclosing(provider.stream_chat(list(messages), list(tools), tool_choice, options)) as events:
            async for event in events:
                yield event

    @staticmethod
    def normalize_result(result: Any) -> CompletionResult:
        """Coerce an adapter's return value into a CompletionResult with safe defaults."""
        if isinstance(result, CompletionResult):
            return CompletionResult(
                content=result.content if isinstance(result.content, str) else "",
                tool_calls=list(result.tool_calls or []),
                raw=result.raw,
            )
        if isinstance(result, Mapping):
            content = result.get("content")
            raw_calls = result.get("tool_calls") or []
            if not isinstance(raw_calls, list):
                raise BadProviderResponse("Provider returned an invalid response.")
            try:
                tool_calls = [call if isinstance(call, ToolCall) else ToolCall.from_dict(call) for call in raw_calls]
            except ValueError as e:
                raise BadProviderResponse("Provider returned an invalid response.") from e
            return CompletionResult(
                content=content if isinstance(content, str) else "",
                tool_calls=tool_calls,
                raw=result.get("raw"),
            )
        raise BadProviderResponse("Provider returned an invalid response.")
