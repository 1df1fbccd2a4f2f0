"""CLI entry point for mcpress."""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import shutil
import sys
from pathlib import Path

from . import __version__

MINIMAL_CONFIG = """site:
  name: "My Site"
  url: "http://localhost"
  capabilities: [read]

server:
  host: 127.0.0.1
  port: 8080
  api_key: "${MCPRESS_API_KEY}"

current_provider: openai_compatible

providers:
  openai_compatible:
    endpoint: "https://api.openai.com/v1/chat/completions"
    api_key: "${OPENAI_API_KEY}"
    model: gpt-5
"""


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
    )


def cmd_init(args: argparse.Namespace) -> None:
    """Write config.yaml and .env into the current directory."""
    config_dest = Path("config.yaml")
    env_dest = Path(".env")

    # Find example files from package
    pkg_dir = Path(__file__).parent.parent.parent  # src/mcpress -> project root
    config_src = pkg_dir / "config.example.yaml"
    env_src = pkg_dir / ".env.example"

    if config_dest.exists() and not args.force:
        print("config.yaml already exists. Use --force to overwrite.")
    else:
        if config_src.exists():
            shutil.copy(config_src, config_dest)
        else:
            config_dest.write_text(MINIMAL_CONFIG)
        print(f"Created {config_dest}")

    if env_dest.exists() and not args.force:
        print(".env already exists. Use --force to overwrite.")
    else:
        if env_src.exists():
            shutil.copy(env_src, env_dest)
        else:
            env_dest.write_text("OPENAI_API_KEY=sk-...\nMCPRESS_API_KEY=\n")
        print(f"Created {env_dest}")

    print("\nNext steps:")
    print("  1. Edit config.yaml with your site details")
    print("  2. Edit .env with your provider API keys")
    print("  3. Verify: mcpress check")
    print("  4. Run: mcpress run")


def cmd_check(args: argparse.Namespace) -> None:
    """Load the config and report which providers have credentials."""
    from .config import load_config
    from .discovery import list_entry_points
    from .services import build_services

    print(f"mcpress v{__version__} - configuration check\n")

    try:
        config = load_config(args.config)
        print(f"[OK] Config loaded from {args.config}")
    except Exception as e:
        print(f"[FAIL] Config: {e}")
        sys.exit(1)

    services = build_services(config)
    registry = services.providers
    current = registry.get_current_provider_id()
    if not current:
        print("[FAIL] No providers registered")
        sys.exit(1)

    for provider_id, label in registry.providers_with_labels().items():
        options = registry.get_provider_options(provider_id)
        marker = " (current)" if provider_id == current else ""
        if options.get("api_key"):
            print(f"[OK] {label}{marker}: API key configured")
        elif provider_id == current:
            print(f"[FAIL] {label}{marker}: API key not set")
        else:
            print(f"[--] {label}: not configured")

    print(f"[OK] Tools: {', '.join(services.tools.tool_names()) or 'none'}")
    for ep in list_entry_points():
        print(f"[OK] Plugin {ep['group']}: {ep['name']} = {ep['value']}")
    if config.server.api_key:
        print("[OK] API key required for HTTP requests")
    else:
        print("[WARN] server.api_key is empty; the HTTP API is open to anyone who can reach it")


def cmd_providers(args: argparse.Namespace) -> None:
    """List registered providers."""
    from .config import load_config
    from .services import build_services

    services = build_services(load_config(args.config))
    registry = services.providers
    current = registry.get_current_provider_id()
    for provider_id, label in registry.providers_with_labels().items():
        marker = "*" if provider_id == current else " "
        streaming = "streaming" if registry.supports_streaming(provider_id) else "buffered"
        print(f"{marker} {provider_id:<20} {label:<20} {streaming}")


def cmd_run(args: argparse.Namespace) -> None:
    """Serve the HTTP API."""
    from .config import load_config

    config = load_config(args.config)
    if args.host:
        config.server.host = args.host
    if args.port:
        config.server.port = args.port

    _setup_logging(args.verbose)
    asyncio.run(_serve(config))


async def _serve(config) -> None:
    from .services import build_services
    from .web import WebServer

    services = build_services(config)
    server = WebServer(config, services)
    print(f"Using provider: {services.providers.get_current_provider_id() or '(none)'}")

    # Handle graceful shutdown
    stop_event = asyncio.Event()

    def signal_handler():
        print("\nShutting down...")
        stop_event.set()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, signal_handler)

    task = asyncio.create_task(server.start())
    await stop_event.wait()
    await server.stop()
    await task


def cmd_ask(args: argparse.Namespace) -> None:
    """Run one chat turn in the terminal, asking before any tool runs."""
    from .config import load_config
    from .errors import MCPressError

    config = load_config(args.config)
    if args.provider:
        config.current_provider = args.provider
    _setup_logging(args.verbose)

    try:
        print(asyncio.run(_ask(config, args.question, assume_yes=args.yes)))
    except MCPressError as e:
        print(f"Error: {e.message}")
        sys.exit(1)


async def _ask(config, question: str, assume_yes: bool = False) -> str:
    from .llm.prompts import build_system_prompt
    from .llm.types import Message
    from .services import build_services

    services = build_services(config)
    messages = [
        Message(role="system", content=build_system_prompt(services.site)),
        Message(role="user", content=question),
    ]
    orchestrator = services.orchestrator
    result = await orchestrator.chat(messages)
    if not result.requires_confirmation:
        return result.message

    print(result.message)
    for call in result.tool_calls:
        print(f"  - {call.name}({call.function.arguments or '{}'})")
    confirm = assume_yes or input("Run these tools? [y/N] ").strip().lower() in ("y", "yes")
    result = await orchestrator.execute_tools(result.tool_calls, result.messages, confirm=confirm)
    return result.message


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mcpress",
        description="Chat with an LLM that can use site tools, across swappable providers",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    subparsers = parser.add_subparsers(dest="command")

    # init
    init_parser = subparsers.add_parser("init", help="Initialize configuration")
    init_parser.add_argument("--force", action="store_true", help="Overwrite existing files")

    # check
    check_parser = subparsers.add_parser("check", help="Check configuration and provider credentials")
    check_parser.add_argument("-c", "--config", default="config.yaml", help="Config file path")

    # providers
    providers_parser = subparsers.add_parser("providers", help="List registered providers")
    providers_parser.add_argument("-c", "--config", default="config.yaml", help="Config file path")

    # run
    run_parser = subparsers.add_parser("run", help="Serve the HTTP API")
    run_parser.add_argument("-c", "--config", default="config.yaml", help="Config file path")
    run_parser.add_argument("--host", default=None, help="Override server.host")
    run_parser.add_argument("--port", type=int, default=None, help="Override server.port")
    run_parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    # ask
    ask_parser = subparsers.add_parser("ask", help="Ask one question from the terminal")
    ask_parser.add_argument("question", help="What to ask")
    ask_parser.add_argument("-c", "--config", default="config.yaml", help="Config file path")
    ask_parser.add_argument("-p", "--provider", default=None, help="Provider id to use for this question")
    ask_parser.add_argument(
        "-y", "--yes", action="store_true",
        help="Auto-approve tool execution: run every suggested tool without asking",
    )
    ask_parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    return parser


def main():
    parser = build_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(0)

    commands = {
        "init": cmd_init,
        "check": cmd_check,
        "providers": cmd_providers,
        "run": cmd_run,
        "ask": cmd_ask,
    }
    commands[args.command](args)


if __name__ == "__main__":
    main()
