"""Wiring of registries, orchestrator and collaborators, built once at startup."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .auth import AccessGate, gate_for
from .config import Config
from .core.orchestrator import ConversationOrchestrator
from .discovery import discover_providers, discover_tools
from .llm import builtin_providers
from .llm.registry import ProviderRegistry
from .options import InMemoryOptionStore, OptionStore
from .site import SiteContext
from .tools import SiteInfoTool, ToolRegistry

logger = logging.getLogger(__name__)


@dataclass
class Services:
    site: SiteContext
    providers: ProviderRegistry
    tools: ToolRegistry
    orchestrator: ConversationOrchestrator
    gate: AccessGate


def site_from_config(config: Config) -> SiteContext:
    return SiteContext(
        name=config.site.name,
        description=config.site.description,
        url=config.site.url,
        version=config.site.version,
        charset=config.site.charset,
        capabilities=list(config.site.capabilities),
    )


def build_services(
    config: Config,
    store: OptionStore | None = None,
    discover: bool = True,
) -> Services:
    """Build every long-lived object the web layer and CLI need."""
    site = site_from_config(config)
    store = store or InMemoryOptionStore(config.providers, config.current_provider)

    providers = ProviderRegistry(store)
    for provider in builtin_providers(timeout=config.chat.timeout):
        providers.register(provider)

    tools = ToolRegistry([SiteInfoTool(site)])

    if discover:
        for provider in discover_providers():
            if providers.register(provider):
                logger.info(f"Registered provider plugin: {provider.id}")
        for tool in discover_tools():
            if tools.register(tool):
                logger.info(f"Registered tool plugin: {tool.name}")

    if config.current_provider and config.current_provider not in providers.available_providers():
        logger.warning(
            f"Configured provider '{config.current_provider}' is not registered; "
            f"falling back to '{providers.get_current_provider_id()}'"
        )

    orchestrator = ConversationOrchestrator(
        providers,
        tools,
        tool_result_mode=config.chat.tool_result_mode,
        tool_choice=config.chat.tool_choice,
    )
    return Services(
        site=site,
        providers=providers,
        tools=tools,
        orchestrator=orchestrator,
        gate=gate_for(config.server.api_key),
    )
