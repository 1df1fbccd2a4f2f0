"""Error taxonomy shared by providers, registries, the orchestrator and the web layer."""

from __future__ import annotations

from typing import Any


class MCPressError(Exception):
    """Base class for every error the chat core raises on purpose.

    ``message`` is always safe to show to the user: it never contains a stack
    trace or a raw vendor payload.
    """

    code = "mcpress_error"
    http_status = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConfigMissing(MCPressError):
    """A required provider setting (usually the API key) is not configured."""

    code = "mcpress_provider_config_missing"


class InvalidProvider(MCPressError):
    """No provider selected, or the selected id is not registered."""

    code = "mcpress_invalid_provider"


class UpstreamTransportError(MCPressError):
    """The vendor could not be reached (DNS, connect, timeout, broken stream)."""

    code = "mcpress_llm_api_error"


class UpstreamHTTPError(MCPressError):
    """The vendor answered with a non-2xx status."""

    code = "mcpress_provider_http_error"

    def __init__(self, status: int, vendor_message: str, details: Any = None):
        super().__init__(f"Provider API returned HTTP {status}: {vendor_message}")
        self.status = status
        self.vendor_message = vendor_message
        self.details = details


class BadProviderResponse(MCPressError):
    """An adapter produced something that is not a completion result."""

    code = "mcpress_provider_bad_response"


class ToolNotFound(MCPressError):
    code = "mcpress_tool_not_found"

    def __init__(self, name: str):
        super().__init__(f'Tool "{name}" not found or not registered.')
        self.name = name


class ToolExecutionError(MCPressError):
    code = "mcpress_tool_execution_error"

    def __init__(self, name: str, reason: str):
        super().__init__(f'Tool "{name}" failed: {reason}')
        self.name = name
        self.reason = reason


class MalformedClientInput(MCPressError):
    """Missing, empty or badly shaped request fields."""

    code = "mcpress_bad_request"
    http_status = 400
