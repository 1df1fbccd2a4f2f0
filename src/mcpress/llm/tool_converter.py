"""Convert vendor-neutral tool schemas to each vendor's function-calling format."""

from __future__ import annotations

from typing import Any

from .types import ToolSchema


def _object_parameters(parameters: Any) -> dict[str, Any]:
    """Make sure parameters (and its properties) are JSON objects, not lists or nulls."""
    if not isinstance(parameters, dict):
        return {"type": "object", "properties": {}}
    result = dict(parameters)
    result.setdefault("type", "object")
    if not isinstance(result.get("properties"), dict):
        result["properties"] = {}
    return result


def to_openai_tools(tools: list[ToolSchema]) -> list[dict[str, Any]]:
    """Wrap each schema as an OpenAI tool.

    OpenAI format:
        {"type": "function", "function": {"name": "...", "description": "...", "parameters": {...}}}
    """
    openai_tools = []
    for tool in tools:
        openai_tools.append({
            "type": "function",
            "function": {
                "name": tool.name,
                "description": tool.description,
                "parameters": _object_parameters(tool.parameters),
            },
        })
    return openai_tools


def to_gemini_tools(tools: list[ToolSchema]) -> list[dict[str, Any]]:
    """Gemini takes one tool entry holding every function declaration.

    Gemini format:
        [{"function_declarations": [{"name": "...", "description": "...", "parameters": {...}}]}]
    """
    if not tools:
        return []
    declarations = [
        {
            "name": tool.name,
            "description": tool.description,
            "parameters": _object_parameters(tool.parameters),
        }
        for tool in tools
    ]
    return [{"function_declarations": declarations}]
