"""Tools the assistant can ask to run."""

from .base import Tool
from .registry import ToolRegistry, tool_output_text
from .site_info import SiteInfoTool

__all__ = ["SiteInfoTool", "Tool", "ToolRegistry", "tool_output_text"]
