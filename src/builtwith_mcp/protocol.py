"""
MCP protocol binding.

Builds an MCP SDK low-level Server whose handlers delegate to the shared
tool and prompt registries. The server is cheap to build, so the HTTP
transport builds one per request with that request's credential.
"""

import logging
from typing import Any, Callable, Dict, List, Optional

from mcp import types
from mcp.server.lowlevel import Server

from . import SERVER_NAME, __version__
from .context import InvocationContext
from .handlers import PromptRegistry, ToolRegistry

logger = logging.getLogger(__name__)

ContextFactory = Callable[[], InvocationContext]


def build_mcp_server(
    tools: ToolRegistry,
    prompts: PromptRegistry,
    context_factory: ContextFactory,
) -> Server:
    """
    Bind the registries to a new MCP server.

    Args:
        tools: Shared tool registry
        prompts: Shared prompt registry
        context_factory: Called once per tool call to open its credential scope
    """
    server: Server = Server(SERVER_NAME, version=__version__)

    @server.list_tools()
    async def list_tools() -> List[types.Tool]:
        return [
            types.Tool(name=tool.name, description=tool.description, inputSchema=tool.inputSchema)
            for tool in tools.catalog()
        ]

    # Validation happens in the registry so bad input comes back as a payload.
    @server.call_tool(validate_input=False)
    async def call_tool(name: str, arguments: Optional[Dict[str, Any]]) -> List[types.TextContent]:
        logger.debug(f"tools/call {name}")
        text = await tools.call_tool_text(name, arguments, context_factory())
        return [types.TextContent(type="text", text=text)]

    @server.list_prompts()
    async def list_prompts() -> List[types.Prompt]:
        return [
            types.Prompt(
                name=prompt.name,
                description=prompt.description,
                arguments=[
                    types.PromptArgument(name=arg.name, description=arg.description, required=arg.required)
                    for arg in prompt.arguments
                ],
            )
            for prompt in prompts.catalog()
        ]

    @server.get_prompt()
    async def get_prompt(name: str, arguments: Optional[Dict[str, str]]) -> types.GetPromptResult:
        rendered = prompts.render(name, arguments)
        return types.GetPromptResult(
            description=rendered.description,
            messages=[
                types.PromptMessage(role=message.role, content=types.TextContent(type="text", text=message.text))
                for message in rendered.messages
            ],
        )

    return server
