"""Discovery of third-party providers and tools through entry points."""

from __future__ import annotations

import logging
from importlib.metadata import entry_points
from typing import Any

from .llm.base import ChatProvider
from .tools.base import Tool

logger = logging.getLogger(__name__)

PROVIDER_GROUP = "mcpress.providers"
TOOL_GROUP = "mcpress.tools"


def _load_group(group: str, expected: type) -> list[Any]:
    """Load every entry point of ``group``.

    An entry point may name an instance of ``expected`` or a zero-argument
    callable (usually the class itself) returning one. Broken plugins are
    logged and skipped.
    """
    loaded = []
    for ep in entry_points().select(group=group):
        try:
            obj = ep.load()
            if not isinstance(obj, expected) and callable(obj):
                obj = obj()
        except Exception as e:
            logger.warning(f"Failed to load {group} entry point {ep.name} ({ep.value}): {e}")
            continue
        if not isinstance(obj, expected):
            logger.warning(f"Entry point {ep.name} in {group} is not a {expected.__name__}; skipping")
            continue
        loaded.append(obj)
    return loaded


def discover_providers() -> list[ChatProvider]:
    return _load_group(PROVIDER_GROUP, ChatProvider)


def discover_tools() -> list[Tool]:
    return _load_group(TOOL_GROUP, Tool)


def list_entry_points() -> list[dict[str, str]]:
    out: list[dict[str, str]] = []
    for group in (PROVIDER_GROUP, TOOL_GROUP):
        for ep in entry_points().select(group=group):
            out.append({"group": ep.group, "name": ep.name, "value": ep.value})
    return out

