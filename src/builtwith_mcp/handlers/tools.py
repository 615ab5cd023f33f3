"""
MCP Tool Handlers

Holds the BuiltWith tool catalog and dispatches tool calls:
name lookup -> input validation -> parameter mapping -> upstream call -> normalization.

Every outcome, including errors, is returned as a JSON payload; the caller
decides nothing based on exceptions.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional

from ..context import InvocationContext
from ..models import ErrorKind, ToolDescriptor, UpstreamFailure, UpstreamOk
from ..normalizers import identity, normalize_domain_lookup
from ..schema import InputSchema, InputValidationError, optional, param
from ..upstream import ParamValue, UpstreamClient

logger = logging.getLogger(__name__)

ParamMapper = Callable[[Dict[str, Any]], Mapping[str, ParamValue]]
Normalizer = Callable[[Any], Any]


class DuplicateRegistrationError(ValueError):
    """Raised when a tool or prompt name is registered twice."""


@dataclass(frozen=True)
class ToolDefinition:
    """One tool: schema, upstream path and how to map its input to query params."""
    name: str
    description: str
    input_schema: InputSchema
    path: str
    build_params: ParamMapper
    normalize: Normalizer = field(default=identity)

    def describe(self) -> ToolDescriptor:
        return ToolDescriptor(
            name=self.name,
            description=self.description,
            inputSchema=self.input_schema.to_json_schema(),
        )


class ToolRegistry:
    """Ordered tool catalog bound to one UpstreamClient."""

    def __init__(self, client: UpstreamClient):
        self.client = client
        self._tools: Dict[str, ToolDefinition] = {}

    def register(self, definition: ToolDefinition) -> ToolDefinition:
        if definition.name in self._tools:
            raise DuplicateRegistrationError(f"Tool '{definition.name}' is already registered")
        self._tools[definition.name] = definition
        return definition

    def get(self, name: str) -> Optional[ToolDefinition]:
        return self._tools.get(name)

    def names(self) -> List[str]:
        return list(self._tools)

    def catalog(self) -> List[ToolDescriptor]:
        """Catalog entries in registration order."""
        return [tool.describe() for tool in self._tools.values()]

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    async def dispatch(
        self,
        name: str,
        arguments: Optional[Dict[str, Any]],
        context: InvocationContext,
    ) -> Any:
        """
        Execute a tool call.

        Args:
            name: Tool name to call
            arguments: Raw tool arguments from the client
            context: Credential scope of this invocation

        Returns:
            Normalized upstream data, or an error payload (dict with "error" and "kind")
        """
        tool = self._tools.get(name)
        if tool is None:
            logger.info(f"Unknown tool requested: {name}")
            return UpstreamFailure(
                kind=ErrorKind.UNKNOWN_TOOL,
                message=f"Tool '{name}' not found.",
                details={"available_tools": self.names()},
            ).to_payload()

        try:
            validated = tool.input_schema.validate(arguments)
        except InputValidationError as e:
            logger.info(f"Invalid input for tool '{name}': {e}")
            return UpstreamFailure(
                kind=ErrorKind.INVALID_INPUT,
                message=str(e),
                details=e.errors,
            ).to_payload()

        logger.info(f"Calling tool '{name}' -> {tool.path}")
        result = await self.client.call(tool.path, tool.build_params(validated), context)

        if isinstance(result, UpstreamOk):
            return tool.normalize(result.payload)
        return result.to_payload()

    async def call_tool_text(
        self,
        name: str,
        arguments: Optional[Dict[str, Any]],
        context: InvocationContext,
    ) -> str:
        """dispatch() encoded as the JSON text carried in the tool result."""
        return json.dumps(await self.dispatch(name, arguments, context))


# ============================================================================
# BuiltWith tool table
# ============================================================================

def _lookup_tool(name: str, description: str, path: str) -> ToolDefinition:
    return ToolDefinition(
        name=name,
        description=description,
        input_schema=InputSchema(param("lookup")),
        path=path,
        build_params=lambda args: {"LOOKUP": args["lookup"]},
    )


def _domain_lookup_params(args: Dict[str, Any]) -> Dict[str, ParamValue]:
    return {
        "LOOKUP": args["domain"],
        # Live-only is the default; only an explicit false turns it off.
        "LIVEONLY": None if args.get("liveOnly") is False else "yes",
    }


BUILTWITH_TOOLS: List[ToolDefinition] = [
    ToolDefinition(
        name="domain-lookup",
        description="Returns the live web technologies use on the root domain name.",
        input_schema=InputSchema(
            param("domain"),
            optional("liveOnly", "boolean"),
        ),
        path="v22/api.json",
        build_params=_domain_lookup_params,
        normalize=normalize_domain_lookup,
    ),
    _lookup_tool(
        "domain-api",
        "Domain API JSON lookup for technology and metadata by domain.",
        "v22/api.json",
    ),
    _lookup_tool(
        "relationships-api",
        "Relationships API JSON lookup for related websites by domain.",
        "rv4/api.json",
    ),
    _lookup_tool(
        "free-api",
        "Free API JSON lookup for category/group counts by domain.",
        "free1/api.json",
    ),
    ToolDefinition(
        name="company-to-url",
        description="Company to URL API JSON lookup for domains from a company name.",
        input_schema=InputSchema(param("company")),
        path="ctu3/api.json",
        build_params=lambda args: {"COMPANY": args["company"]},
    ),
    _lookup_tool(
        "tags-api",
        "Tags API JSON lookup for related domains from IP or attributes.",
        "tag1/api.json",
    ),
    _lookup_tool(
        "recommendations-api",
        "Recommendations API JSON lookup for technology recommendations by domain.",
        "rec1/api.json",
    ),
    _lookup_tool(
        "redirects-api",
        "Redirects API JSON lookup for live and historical redirects by domain.",
        "redirect1/api.json",
    ),
    _lookup_tool(
        "keywords-api",
        "Keywords API JSON lookup for keyword data by domain.",
        "kw2/api.json",
    ),
    ToolDefinition(
        name="trends-api",
        description="Trends API JSON lookup for technology trend data.",
        input_schema=InputSchema(param("tech")),
        path="trends/v6/api.json",
        build_params=lambda args: {"TECH": args["tech"]},
    ),
    ToolDefinition(
        name="product-api",
        description="Product API JSON lookup for ecommerce product searches.",
        input_schema=InputSchema(param("query")),
        path="productv1/api.json",
        build_params=lambda args: {"QUERY": args["query"]},
    ),
    _lookup_tool(
        "trust-api",
        "Trust API JSON lookup for trust scoring by domain.",
        "trustv1/api.json",
    ),
    _lookup_tool(
        "financial-api",
        "Financial API JSON lookup for financial data by domain.",
        "financial1/api.json",
    ),
    _lookup_tool(
        "social-api",
        "Social API JSON lookup for domains related to social profiles.",
        "social1/api.json",
    ),
]


def build_tool_registry(client: UpstreamClient) -> ToolRegistry:
    """Registry with every BuiltWith tool, in catalog order."""
    registry = ToolRegistry(client)
    for definition in BUILTWITH_TOOLS:
        registry.register(definition)
    return registry
