"""Abstract bases for chat providers."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Mapping
from dataclasses import asdict, dataclass
from typing import Any

import httpx

from ..errors import BadProviderResponse, ConfigMissing, UpstreamHTTPError, UpstreamTransportError
from .streaming import PayloadParser, StreamReassembler
from .types import CompletionResult, Message, StreamEvent, ToolSchema

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 45.0
DEFAULT_TEMPERATURE = 0.7


@dataclass(frozen=True)
class OptionField:
    """One entry of a provider's settings form."""

    key: str
    label: str
    type: str = "text"
    placeholder: str = ""
    description: str = ""

    def to_dict(self) -> dict[str, str]:
        return asdict(self)


def vendor_error_message(body: Any) -> str:
    """Pull a human message out of a vendor error body, whatever its shape."""
    if isinstance(body, Mapping):
        error = body.get("error")
        if isinstance(error, Mapping) and error.get("message"):
            return str(error["message"])
        if isinstance(error, str) and error:
            return error
        if body.get("message"):
            return str(body["message"])
    return "Unknown provider API error."


def http_error(response: httpx.Response) -> UpstreamHTTPError:
    try:
        body = response.json()
    except ValueError:
        body = None
    return UpstreamHTTPError(response.status_code, vendor_error_message(body), details=body)


class ChatProvider(ABC):
    """Base class for LLM backends (OpenAI-compatible, Gemini, OpenRouter).

    Subclasses set ``id`` and ``label`` and implement :meth:`send_chat`.
    ``transport`` is handed to every ``httpx.AsyncClient`` the provider opens,
    which lets tests plug in ``httpx.MockTransport``.
    """

    id: str = ""
    label: str = ""
    supports_tool_role: bool = True

    def __init__(self, timeout: float = DEFAULT_TIMEOUT, transport: httpx.AsyncBaseTransport | None = None):
        self.timeout = timeout
        self._transport = transport

    def get_label(self) -> str:
        return self.label or self.id

    @abstractmethod
    def options_schema(self) -> list[OptionField]:
        """Ordered settings fields this provider reads from its options."""
        ...

    @abstractmethod
    async def send_chat(
        self,
        messages: list[Message],
        tools: list[ToolSchema],
        tool_choice: Any = "auto",
        options: Mapping[str, str] | None = None,
    ) -> CompletionResult:
        """Send the conversation and return a normalized completion.

        Args:
            messages: Full conversation history, oldest first. Must be non-empty.
            tools: Schemas of every tool the model may call.
            tool_choice: Vendor-neutral tool choice ("auto", "none", or a named function).
            options: Merged provider settings (api_key, model, endpoint, ...).

        Returns:
            CompletionResult with ``content`` and ``tool_calls``.
        """
        ...

    def _client(self, stream: bool = False) -> httpx.AsyncClient:
        # Streams may idle between chunks for longer than the request timeout.
        timeout = httpx.Timeout(self.timeout, read=None) if stream else httpx.Timeout(self.timeout)
        return httpx.AsyncClient(timeout=timeout, transport=self._transport)

    async def _post_json(self, url: str, body: dict[str, Any], headers: dict[str, str]) -> dict[str, Any]:
        """POST a JSON body and return the decoded JSON reply, raising typed errors."""
        logger.debug(f"POST {url} via {self.id}")
        try:
            async with self._client() as client:
                response = await client.post(url, json=body, headers=headers)
        except httpx.InvalidURL as e:
            raise self._invalid_endpoint(e) from e
        except httpx.HTTPError as e:
            logger.error(f"{self.get_label()} request failed: {e}")
            raise UpstreamTransportError(f"Failed to connect to {self.get_label()} API: {e}") from e

        if not response.is_success:
            error = http_error(response)
            logger.warning(f"{self.get_label()} returned HTTP {error.status}: {error.vendor_message}")
            raise error

        try:
            decoded = response.json()
        except ValueError:
            decoded = None
        if not isinstance(decoded, dict):
            raise BadProviderResponse("Provider returned an invalid response.")
        return decoded

    async def _stream_sse(
        self,
        url: str,
        body: dict[str, Any],
        headers: dict[str, str],
        parser: PayloadParser,
    ) -> AsyncIterator[StreamEvent]:
        """POST a streaming request and yield the normalized events of every SSE frame."""
        reassembler = StreamReassembler(parser)
        logger.debug(f"Streaming POST {url} via {self.id}")
        try:
            async with self._client(stream=True) as client:
                async with client.stream("POST", url, json=body, headers=headers) as response:
                    if not response.is_success:
                        await response.aread()
                        error = http_error(response)
                        logger.warning(
                            f"{self.get_label()} stream returned HTTP {error.status}: {error.vendor_message}"
                        )
                        raise error
                    async for chunk in response.aiter_bytes():
                        for event in reassembler.on_frame(chunk):
                            yield event
            for event in reassembler.close():
                yield event
        except httpx.InvalidURL as e:
            raise self._invalid_endpoint(e) from e
        except httpx.HTTPError as e:
            logger.error(f"{self.get_label()} stream failed: {e}")
            raise UpstreamTransportError(f"Failed to connect to {self.get_label()} API: {e}") from e

    def _invalid_endpoint(self, error: Exception) -> ConfigMissing:
        # httpx.InvalidURL is not an httpx.HTTPError.
        logger.error(f"{self.get_label()} endpoint is invalid: {error}")
        return ConfigMissing(f"{self.get_label()} endpoint is not a valid URL: {error}")


class StreamingChatProvider(ABC):
    """Capability mixin for providers that can stream completions."""

    @abstractmethod
    def stream_chat(
        self,
        messages: list[Message],
        tools: list[ToolSchema],
        tool_choice: Any = "auto",
        options: Mapping[str, str] | None = None,
    ) -> AsyncIterator[StreamEvent]:
        """Yield ``delta`` and ``tool_call_delta`` events in vendor order."""
        ...
