"""System prompt and canned assistant texts."""

from __future__ import annotations

from ..site import SiteContext

WELCOME_MESSAGE = "Welcome to the LLM Chat. I am ready to assist."
TOOL_SUGGESTION_MESSAGE = "I am suggesting to use a tool to help you with your request."
NO_FOLLOW_UP_MESSAGE = "Tool execution completed and LLM did not provide a follow-up response."


def build_system_prompt(site: SiteContext) -> str:
    """Build the first system message of every conversation."""
    capabilities = ", ".join(site.capabilities) if site.capabilities else "none"
    return (
        f'You are a helpful AI assistant for a WordPress site named "{site.name}" '
        f"running version {site.version}. The site URL is {site.url}. "
        f"The current user has capabilities: {capabilities}. "
        "Your purpose is to assist the user with tasks related to WordPress. "
        "You can use available tools to interact with the WordPress environment. "
        "Always respond in Markdown format. DO NOT USE TOOLS UNNECESSARILY"
    )


def build_decline_message(tool_names: list[str]) -> str:
    names = ", ".join(f'"{name}"' for name in tool_names) or "the suggested tools"
    return f"Okay, I won't run {names}. Let me know if there's anything else I can help with."


def build_tool_result_text(tool_name: str, output: str) -> str:
    """Tool result phrased as a user turn, for providers without a tool role."""
    return f'Tool "{tool_name}" executed. Output: {output}'


def build_tool_request_text(tool_name: str, arguments: str) -> str:
    """Assistant tool request folded into plain text."""
    return f'Calling tool "{tool_name}" with arguments: {arguments or "{}"}'
