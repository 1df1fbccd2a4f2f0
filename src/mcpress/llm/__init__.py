"""Chat provider abstraction layer."""

from .base import ChatProvider, OptionField, StreamingChatProvider
from .gemini import GeminiProvider
from .openai_compatible import OpenAICompatibleProvider
from .openrouter import OpenRouterProvider
from .registry import ProviderRegistry
from .types import CompletionResult, Message, StreamEvent, ToolCall, ToolSchema

__all__ = [
    "ChatProvider",
    "CompletionResult",
    "GeminiProvider",
    "Message",
    "OpenAICompatibleProvider",
    "OpenRouterProvider",
    "OptionField",
    "ProviderRegistry",
    "StreamEvent",
    "StreamingChatProvider",
    "ToolCall",
    "ToolSchema",
]


def builtin_providers(timeout: float = 45.0) -> list[ChatProvider]:
    """The providers shipped with mcpress, in registration order."""
    return [
        OpenAICompatibleProvider(timeout=timeout),
        GeminiProvider(timeout=timeout),
        OpenRouterProvider(timeout=timeout),
    ]
