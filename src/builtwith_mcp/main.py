"""
Process entrypoint for the BuiltWith MCP server.

Usage:
    builtwith-mcp                      # stdio (default)
    MCP_TRANSPORT=http builtwith-mcp   # streamable HTTP on 127.0.0.1:8787
    builtwith-mcp --transport http --port 9000
"""

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from .config import ConfigurationError, Settings
from .handlers import build_prompt_registry, build_tool_registry
from .transports import TransportAdapter, create_transport
from .upstream import UpstreamClient

logger = logging.getLogger(__name__)


def configure_logging(level_name: str = "INFO") -> None:
    """Log to stderr; stdout carries the stdio JSON-RPC stream."""
    logging.basicConfig(
        level=getattr(logging, level_name.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        stream=sys.stderr,
    )


def build_transport(settings: Settings) -> TransportAdapter:
    """Wire upstream client, registries and the configured transport."""
    client = UpstreamClient(settings.hostname, timeout=settings.timeout)
    tools = build_tool_registry(client)
    prompts = build_prompt_registry(tools.names())
    return create_transport(settings, tools, prompts)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="BuiltWith MCP server")
    parser.add_argument("--transport", choices=["stdio", "http"], help="Override MCP_TRANSPORT")
    parser.add_argument("--port", type=int, help="Override PORT (http transport only)")
    return parser.parse_args(argv)


def apply_overrides(settings: Settings, args: argparse.Namespace) -> Settings:
    """Command-line flags win over the environment."""
    overrides = {}
    if args.transport is not None:
        overrides["transport"] = args.transport
    if args.port is not None:
        overrides["port"] = args.port
    if overrides:
        settings = settings.model_copy(update=overrides)
    return settings


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)

    try:
        settings = Settings.from_env()
    except ConfigurationError as e:
        configure_logging()
        logger.error(f"Invalid configuration: {e}")
        return 2

    settings = apply_overrides(settings, args)

    configure_logging(settings.log_level)

    transport = build_transport(settings)
    try:
        asyncio.run(transport.serve())
    except KeyboardInterrupt:
        logger.info("Shutting down")
    return 0


if __name__ == "__main__":
    sys.exit(main())
