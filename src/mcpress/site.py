"""Context about the site the assistant works on."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class SiteContext:
    """Facts about the host site and the current user, fed to prompts and tools."""

    name: str = "My Site"
    description: str = ""
    url: str = "http://localhost"
    version: str = ""
    charset: str = "UTF-8"
    capabilities: list[str] = field(default_factory=list)

    def info(self) -> dict[str, Any]:
        return {
            "site_title": self.name,
            "site_description": self.description,
            "site_url": self.url,
            "wp_version": self.version,
            "charset": self.charset,
        }
