"""Registry of tools, looked up by name."""

from __future__ import annotations

import inspect
import json
import logging
from collections.abc import Mapping
from typing import Any

from ..errors import ToolExecutionError, ToolNotFound
from ..llm.types import ToolSchema
from .base import Tool

logger = logging.getLogger(__name__)


def tool_output_text(output: Any) -> str:
    """Render a tool's return value as the text the model sees."""
    if isinstance(output, Mapping):
        if "message" in output:
            return str(output["message"])
        return json.dumps(output, default=str)
    if isinstance(output, (list, tuple)):
        return json.dumps(output, default=str)
    if output is None:
        return ""
    return str(output)


class ToolRegistry:
    """Name -> tool map, filled once at startup."""

    def __init__(self, tools: list[Tool] | None = None):
        self._tools: dict[str, Tool] = {}
        for tool in tools or []:
            self.register(tool)

    def register(self, tool: Tool) -> bool:
        if not tool.name:
            logger.warning(f"Ignoring tool {type(tool).__name__} without a name")
            return False
        if tool.name in self._tools:
            logger.warning(f"Tool {tool.name} already registered, keeping the first one")
            return False
        self._tools[tool.name] = tool
        return True

    def tool_names(self) -> list[str]:
        return list(self._tools)

    def get_schema(self, name: str) -> ToolSchema | None:
        tool = self._tools.get(name)
        return tool.schema() if tool else None

    def schemas(self) -> list[ToolSchema]:
        return [tool.schema() for tool in self._tools.values()]

    async def execute(self, name: str, arguments: dict[str, Any]) -> Any:
        """Run a tool by name.

        Raises:
            ToolNotFound: no tool with that name is registered.
            ToolExecutionError: the tool raised.
        """
        tool = self._tools.get(name)
        if tool is None:
            raise ToolNotFound(name)
        try:
            result = tool.execute(arguments)
            if inspect.isawaitable(result):
                result = await result
        except Exception as e:
            raise ToolExecutionError(name, str(e) or type(e).__name__) from e
        return result
