"""
MCP Server - HTTP Application

FastAPI application for the per-request (streamable HTTP) transport:
- /mcp        MCP endpoint; one stateless session per HTTP request
- /           discovery document (server info, tool and prompt catalogs)
- /health     liveness check

Each /mcp request is origin-checked, gets its bearer key extracted, and is
served by a fresh MCP server bound to that key only.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any

import anyio
from fastapi import FastAPI
from fastapi.responses import JSONResponse
from mcp.server.lowlevel import Server
from mcp.server.streamable_http import StreamableHTTPServerTransport
from starlette.requests import Request
from starlette.types import Message, Receive, Scope, Send

from . import SERVER_NAME, __version__
from .auth import extract_bearer_token, is_origin_allowed
from .config import Settings
from .context import InvocationContext, with_credential
from .handlers import PromptRegistry, ToolRegistry
from .models import (
    DiscoveryResponse,
    ErrorKind,
    HealthResponse,
    MCPError,
    UpstreamFailure,
)
from .protocol import build_mcp_server

logger = logging.getLogger(__name__)

MCP_PATH = "/mcp"

DESCRIPTION = "Model Context Protocol gateway for the BuiltWith technology intelligence APIs"


class StreamableHttpEndpoint:
    """ASGI endpoint serving one stateless MCP exchange per HTTP request."""

    def __init__(self, settings: Settings, tools: ToolRegistry, prompts: PromptRegistry):
        self.settings = settings
        self.tools = tools
        self.prompts = prompts

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        request = Request(scope, receive)

        origin = request.headers.get("origin")
        if not is_origin_allowed(origin, self.settings.allowed_origins):
            logger.warning(f"Rejected request from origin '{origin}'")
            response = JSONResponse(
                status_code=403,
                content=UpstreamFailure(
                    kind=ErrorKind.FORBIDDEN_ORIGIN,
                    message="Forbidden origin",
                ).to_payload(),
            )
            await response(scope, receive, send)
            return

        credential = extract_bearer_token(request.headers.get("authorization"))
        context = with_credential(credential, self.settings)

        response_started = False

        async def tracking_send(message: Message) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        try:
            await self.serve_session(context, scope, receive, tracking_send)
        except Exception as e:
            logger.error(f"Unhandled exception while serving MCP request: {e}", exc_info=True)
            if not response_started:
                response = JSONResponse(
                    status_code=500,
                    content=MCPError(code=500, message="Internal server error").model_dump(),
                )
                await response(scope, receive, send)

    async def serve_session(
        self,
        context: InvocationContext,
        scope: Scope,
        receive: Receive,
        send: Send,
    ) -> None:
        """Run a fresh MCP server/transport pair for this request, then tear it down."""
        server = build_mcp_server(self.tools, self.prompts, lambda: context)
        transport = StreamableHTTPServerTransport(
            mcp_session_id=None,
            is_json_response_enabled=True,
        )

        async with transport.connect() as (read_stream, write_stream):
            async with anyio.create_task_group() as tg:
                tg.start_soon(_run_server, server, read_stream, write_stream)
                try:
                    await transport.handle_request(scope, receive, send)
                finally:
                    await _close_quietly(transport)
                    tg.cancel_scope.cancel()


async def _run_server(server: Server, read_stream: Any, write_stream: Any) -> None:
    await server.run(
        read_stream,
        write_stream,
        server.create_initialization_options(),
        stateless=True,
    )


async def _close_quietly(transport: StreamableHTTPServerTransport) -> None:
    # The client may already be gone; nothing useful can be sent either way.
    try:
        await transport.terminate()
    except Exception as e:
        logger.debug(f"Ignoring error while closing MCP transport: {e}")


def create_app(
    settings: Settings,
    tools: ToolRegistry,
    prompts: PromptRegistry,
) -> FastAPI:
    """
    Create the HTTP application.

    Args:
        settings: Process-wide settings (allowlist, fallback key)
        tools: Shared tool registry
        prompts: Shared prompt registry
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"{SERVER_NAME} MCP server ready with {len(tools)} tools and {len(prompts)} prompts")
        yield
        tools.client.close()

    app = FastAPI(
        title="BuiltWith MCP Server",
        description=DESCRIPTION,
        version=__version__,
        docs_url=None,
        redoc_url=None,
        lifespan=lifespan,
    )

    app.add_route(
        MCP_PATH,
        StreamableHttpEndpoint(settings, tools, prompts),
        methods=["GET", "POST", "DELETE"],
    )

    # ========================================================================
    # Error Handlers
    # ========================================================================

    @app.exception_handler(Exception)
    async def general_exception_handler(request, exc: Exception):
        """Handle general exceptions."""
        logger.error(f"Unhandled exception: {exc}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content=MCPError(
                code=500,
                message="Internal server error",
                data={"type": type(exc).__name__},
            ).model_dump()
        )

    # ========================================================================
    # Health Check and Discovery
    # ========================================================================

    @app.get("/health", response_model=HealthResponse, tags=["Health"])
    async def health_check():
        """Health check endpoint."""
        return HealthResponse(status="ok")

    @app.get("/", response_model=DiscoveryResponse, tags=["Root"])
    async def root():
        """Server information with the full tool and prompt catalogs."""
        return DiscoveryResponse(
            name=SERVER_NAME,
            version=__version__,
            description=DESCRIPTION,
            endpoints={
                "mcp": MCP_PATH,
                "health": "/health",
            },
            tools=tools.catalog(),
            prompts=prompts.catalog(),
        )

    return app
