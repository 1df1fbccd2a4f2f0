"""Built-in tool: basic information about the site."""

from __future__ import annotations

import json
from typing import Any

from ..site import SiteContext
from .base import Tool


class SiteInfoTool(Tool):
    name = "get_site_info"
    description = (
        "Retrieves basic information about the WordPress site, "
        "such as site title, description, URL, and WordPress version."
    )
    parameters = {"type": "object", "properties": {}}

    def __init__(self, site: SiteContext):
        self.site = site

    def execute(self, arguments: dict[str, Any]) -> str:
        return json.dumps(self.site.info())
