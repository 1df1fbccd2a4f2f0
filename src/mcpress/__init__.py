"""MCPress: provider-agnostic LLM chat with confirm-before-execute tool calling."""

__version__ = "0.1.0"
