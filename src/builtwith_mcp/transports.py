"""
Transport adapters.

Both adapters drive the same ToolRegistry and PromptRegistry:
- StdioTransport: one MCP session over stdin/stdout for a single local
  caller; only the process-wide BUILTWITH_API_KEY applies.
- HttpTransport: streamable HTTP on loopback; each request carries its own
  bearer key (see server.StreamableHttpEndpoint).
"""

import logging
from abc import ABC, abstractmethod

import uvicorn
from fastapi import FastAPI
from mcp.server.lowlevel import Server
from mcp.server.stdio import stdio_server

from .config import Settings
from .context import with_credential
from .handlers import PromptRegistry, ToolRegistry
from .protocol import build_mcp_server
from .server import create_app

logger = logging.getLogger(__name__)


class TransportAdapter(ABC):
    """Binds the shared registries to one way of talking to clients."""

    name = "abstract"

    def __init__(self, settings: Settings, tools: ToolRegistry, prompts: PromptRegistry):
        self.settings = settings
        self.tools = tools
        self.prompts = prompts

    @abstractmethod
    async def serve(self) -> None:
        """Serve until the channel closes or the process is stopped."""


class StdioTransport(TransportAdapter):
    """Single persistent session over stdin/stdout."""

    name = "stdio"

    def build_server(self) -> Server:
        """MCP server whose tool calls only ever see the process-wide key."""
        return build_mcp_server(
            self.tools,
            self.prompts,
            lambda: with_credential(None, self.settings),
        )

    async def serve(self) -> None:
        server = self.build_server()
        if not self.settings.api_key:
            logger.warning("BUILTWITH_API_KEY is not set; every tool call will report a missing key")
        logger.info("BuiltWith MCP Server running on stdio")
        try:
            async with stdio_server() as (read_stream, write_stream):
                await server.run(read_stream, write_stream, server.create_initialization_options())
        finally:
            self.tools.client.close()


class HttpTransport(TransportAdapter):
    """Streamable HTTP on the loopback interface, one MCP session per request."""

    name = "http"

    def create_app(self) -> FastAPI:
        return create_app(self.settings, self.tools, self.prompts)

    async def serve(self) -> None:
        config = uvicorn.Config(
            self.create_app(),
            host=self.settings.host,
            port=self.settings.port,
            log_level=self.settings.log_level.lower(),
        )
        logger.info(
            f"BuiltWith MCP Server listening on http://{self.settings.host}:{self.settings.port}/mcp"
        )
        await uvicorn.Server(config).serve()


TRANSPORTS = {
    StdioTransport.name: StdioTransport,
    HttpTransport.name: HttpTransport,
}


def create_transport(settings: Settings, tools: ToolRegistry, prompts: PromptRegistry) -> TransportAdapter:
    """Pick the adapter named by settings.transport."""
    return TRANSPORTS[settings.transport](settings, tools, prompts)
