"""Configuration loading from YAML + environment variables."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from pathlib import Path

import yaml
from dotenv import load_dotenv

from .models import ToolResultMode


@dataclass
class SiteConfig:
    name: str = "My Site"
    description: str = ""
    url: str = "http://localhost"
    version: str = ""
    charset: str = "UTF-8"
    capabilities: list[str] = field(default_factory=list)


@dataclass
class ServerConfig:
    host: str = "127.0.0.1"
    port: int = 8080
    prefix: str = "/mcp/v1"
    api_key: str = ""  # empty = no auth
    allowed_origins: list[str] = field(default_factory=list)


@dataclass
class ChatConfig:
    tool_result_mode: str = ToolResultMode.AUTO.value  # auto | tool | user
    tool_choice: str = "auto"
    timeout: float = 45.0


@dataclass
class Config:
    site: SiteConfig = field(default_factory=SiteConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    chat: ChatConfig = field(default_factory=ChatConfig)
    current_provider: str = ""
    providers: dict[str, dict[str, str]] = field(default_factory=dict)  # provider id -> options


def _resolve_env_vars(value: str) -> str:
    """Replace ${VAR} with environment variable values."""
    def replacer(match):
        var_name = match.group(1)
        return os.environ.get(var_name, "")
    return re.sub(r"\$\{(\w+)\}", replacer, value)


def _resolve_dict(d: dict) -> dict:
    """Recursively resolve env vars in a dict."""
    resolved = {}
    for k, v in d.items():
        if isinstance(v, str):
            resolved[k] = _resolve_env_vars(v)
        elif isinstance(v, dict):
            resolved[k] = _resolve_dict(v)
        elif isinstance(v, list):
            resolved[k] = [_resolve_env_vars(i) if isinstance(i, str) else i for i in v]
        else:
            resolved[k] = v
    return resolved


def _str_list(value) -> list[str]:
    if not value:
        return []
    if isinstance(value, str):
        return [item.strip() for item in value.split(",") if item.strip()]
    return [str(item) for item in value]


def load_config(config_path: str | Path, env_path: str | Path | None = None) -> Config:
    """Load config from YAML file with env var resolution."""
    config_path = Path(config_path).resolve()
    config_dir = config_path.parent

    if env_path:
        load_dotenv(env_path)
    else:
        # Look for .env next to config file first, then CWD
        env_beside_config = config_dir / ".env"
        if env_beside_config.exists():
            load_dotenv(env_beside_config)
        else:
            load_dotenv()

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path) as f:
        raw = yaml.safe_load(f) or {}

    raw = _resolve_dict(raw)

    site_data = raw.get("site") or {}
    site = SiteConfig(
        name=str(site_data.get("name", "My Site")),
        description=str(site_data.get("description", "")),
        url=str(site_data.get("url", "http://localhost")),
        version=str(site_data.get("version", "")),
        charset=str(site_data.get("charset", "UTF-8")),
        capabilities=_str_list(site_data.get("capabilities")),
    )

    server_data = raw.get("server") or {}
    port = int(server_data.get("port", 8080))
    if not 1 <= port <= 65535:
        raise ValueError(f"Invalid server port: {port}")
    prefix = "/" + str(server_data.get("prefix", "/mcp/v1")).strip("/")
    server = ServerConfig(
        host=str(server_data.get("host", "127.0.0.1")),
        port=port,
        prefix=prefix,
        api_key=str(server_data.get("api_key") or ""),
        allowed_origins=_str_list(server_data.get("allowed_origins")),
    )

    chat_data = raw.get("chat") or {}
    mode = str(chat_data.get("tool_result_mode", ToolResultMode.AUTO.value))
    if mode not in {m.value for m in ToolResultMode}:
        raise ValueError(f"Invalid chat.tool_result_mode: {mode}")
    chat = ChatConfig(
        tool_result_mode=mode,
        tool_choice=str(chat_data.get("tool_choice", "auto")),
        timeout=float(chat_data.get("timeout", 45)),
    )

    providers = {}
    for provider_id, options in (raw.get("providers") or {}).items():
        if isinstance(options, dict):
            providers[provider_id] = {
                key: "" if value is None else str(value) for key, value in options.items()
            }

    current_provider = os.environ.get("MCPRESS_PROVIDER") or str(raw.get("current_provider") or "")

    return Config(
        site=site,
        server=server,
        chat=chat,
        current_provider=current_provider,
        providers=providers,
    )
