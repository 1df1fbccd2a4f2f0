"""Abstract base for tools the assistant may call."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from ..llm.types import ToolSchema


class Tool(ABC):
    """A named action with a JSON-Schema parameter description.

    ``execute`` may be a plain or an async method. Its return value is turned
    into text for the model: a mapping with a ``message`` key yields that
    message, other mappings and lists are JSON-encoded, anything else goes
    through ``str()``.
    """

    name: str = ""
    description: str = ""
    parameters: dict[str, Any] = {"type": "object", "properties": {}}

    def schema(self) -> ToolSchema:
        return ToolSchema(name=self.name, description=self.description, parameters=dict(self.parameters))

    @abstractmethod
    def execute(self, arguments: dict[str, Any]) -> Any:
        ...
