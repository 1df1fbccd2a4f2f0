"""Tests for the tool registry and built-in tools."""

import json

import pytest

from mcpress.errors import ToolExecutionError, ToolNotFound
from mcpress.site import SiteContext
from mcpress.tools import SiteInfoTool, Tool, ToolRegistry, tool_output_text


class EchoTool(Tool):
    name = "echo"
    description = "Echo the arguments back"
    parameters = {"type": "object", "properties": {"text": {"type": "string"}}}

    def execute(self, arguments):
        return {"echo": arguments.get("text", "")}


class AsyncTool(Tool):
    name = "slow"

    async def execute(self, arguments):
        return "done"


class BrokenTool(Tool):
    name = "broken"

    def execute(self, arguments):
        raise RuntimeError("disk full")


class TestToolRegistry:
    def test_register_and_lookup(self):
        registry = ToolRegistry([EchoTool(), AsyncTool()])
        assert registry.tool_names() == ["echo", "slow"]
        assert registry.get_schema("echo").parameters["properties"]["text"]["type"] == "string"
        assert registry.get_schema("missing") is None
        assert [s.name for s in registry.schemas()] == ["echo", "slow"]

    def test_duplicate_name_keeps_first(self):
        first = EchoTool()
        registry = ToolRegistry([first])
        assert not registry.register(EchoTool())
        assert registry.tool_names() == ["echo"]

    @pytest.mark.asyncio
    async def test_execute_sync_and_async(self):
        registry = ToolRegistry([EchoTool(), AsyncTool()])
        assert await registry.execute("echo", {"text": "hi"}) == {"echo": "hi"}
        assert await registry.execute("slow", {}) == "done"

    @pytest.mark.asyncio
    async def test_unknown_tool(self):
        with pytest.raises(ToolNotFound) as exc:
            await ToolRegistry().execute("nope", {})
        assert exc.value.message == 'Tool "nope" not found or not registered.'

    @pytest.mark.asyncio
    async def test_raising_tool(self):
        registry = ToolRegistry([BrokenTool()])
        with pytest.raises(ToolExecutionError) as exc:
            await registry.execute("broken", {})
        assert exc.value.reason == "disk full"
        assert "disk full" in exc.value.message


class TestToolOutputText:
    def test_message_field_wins(self):
        assert tool_output_text({"message": "Saved", "id": 3}) == "Saved"

    def test_structured_is_json(self):
        assert json.loads(tool_output_text({"a": 1})) == {"a": 1}
        assert json.loads(tool_output_text([1, 2])) == [1, 2]

    def test_scalars(self):
        assert tool_output_text("plain") == "plain"
        assert tool_output_text(5) == "5"
        assert tool_output_text(None) == ""


class TestSiteInfoTool:
    def test_returns_site_json(self):
        site = SiteContext(
            name="Blog", description="Tagline", url="https://blog.example", version="6.6", charset="UTF-8",
        )
        data = json.loads(SiteInfoTool(site).execute({}))
        assert data == {
            "site_title": "Blog",
            "site_description": "Tagline",
            "site_url": "https://blog.example",
            "wp_version": "6.6",
            "charset": "UTF-8",
        }
