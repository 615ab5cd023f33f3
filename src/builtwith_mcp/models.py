"""
Result, catalog and HTTP response models

This module defines Pydantic models for upstream results, the tool/prompt
catalogs shown to clients, and the plain HTTP (discovery, health, error)
responses served next to the MCP endpoint.
"""

from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field


# ============================================================================
# Upstream Results
# ============================================================================

class ErrorKind(str, Enum):
    """Classification of every error the gateway can report."""
    AUTH_MISSING = "AuthMissing"
    NETWORK_ERROR = "NetworkError"
    BAD_UPSTREAM_RESPONSE = "BadUpstreamResponse"
    UPSTREAM_ERROR = "UpstreamError"
    INVALID_INPUT = "InvalidInput"
    UNKNOWN_TOOL = "UnknownTool"
    UNKNOWN_PROMPT = "UnknownPrompt"
    FORBIDDEN_ORIGIN = "ForbiddenOrigin"


class UpstreamOk(BaseModel):
    """Successful upstream call with the parsed JSON body."""
    ok: bool = Field(default=True, description="Always true")
    payload: Any = Field(None, description="Parsed JSON body")


class UpstreamFailure(BaseModel):
    """Failed call or rejected invocation, returned to the agent as data."""
    ok: bool = Field(default=False, description="Always false")
    kind: ErrorKind = Field(..., description="Error classification")
    message: str = Field(..., description="Human-readable error message")
    status: Optional[int] = Field(None, description="Upstream HTTP status, if any")
    details: Optional[Any] = Field(None, description="Extra diagnostics (exception text, validation errors)")
    data: Optional[Any] = Field(None, description="Parsed upstream body for UpstreamError")

    def to_payload(self) -> Dict[str, Any]:
        """Error-shaped payload that is JSON-encoded into the tool result."""
        payload: Dict[str, Any] = {"error": self.message, "kind": self.kind.value}
        if self.status is not None:
            payload["status"] = self.status
        if self.details is not None:
            payload["details"] = self.details
        if self.data is not None:
            payload["data"] = self.data
        return payload


UpstreamResult = Union[UpstreamOk, UpstreamFailure]


# ============================================================================
# Catalog Models
# ============================================================================

class ToolDescriptor(BaseModel):
    """Catalog entry for one tool."""
    name: str = Field(..., description="Tool name/identifier")
    description: str = Field(..., description="Tool description")
    inputSchema: Dict[str, Any] = Field(..., description="JSON schema for tool inputs")


class PromptArgument(BaseModel):
    """Prompt argument definition."""
    name: str = Field(..., description="Argument name")
    description: Optional[str] = Field(None, description="Argument description")
    required: bool = Field(default=True, description="Whether argument is required")


class PromptDescriptor(BaseModel):
    """Catalog entry for one prompt."""
    name: str = Field(..., description="Prompt name/identifier")
    description: Optional[str] = Field(None, description="Prompt description")
    arguments: List[PromptArgument] = Field(default_factory=list, description="Prompt arguments")


class PromptMessage(BaseModel):
    """One rendered prompt message."""
    role: str = Field(..., description="'user' or 'assistant'")
    text: str = Field(..., description="Message text")


class RenderedPrompt(BaseModel):
    """Result of rendering a prompt."""
    description: Optional[str] = Field(None, description="Prompt description")
    messages: List[PromptMessage] = Field(..., description="Prompt messages")


# ============================================================================
# HTTP Models
# ============================================================================

class AuthenticationHint(BaseModel):
    """How HTTP callers supply their BuiltWith key."""
    type: str = Field(default="bearer")
    header: str = Field(default="Authorization")
    format: str = Field(default="Bearer <BUILTWITH_API_KEY>")
    fallback: str = Field(
        default="Server-side BUILTWITH_API_KEY environment variable, if configured"
    )


class DiscoveryResponse(BaseModel):
    """Response for GET / in HTTP mode."""
    name: str
    version: str
    description: str
    authentication: AuthenticationHint = Field(default_factory=AuthenticationHint)
    transport: str = Field(default="streamable-http")
    endpoints: Dict[str, str]
    tools: List[ToolDescriptor]
    prompts: List[PromptDescriptor]


class HealthResponse(BaseModel):
    """Liveness response."""
    status: str = Field(default="ok")


class MCPError(BaseModel):
    """Error body for HTTP-level failures."""
    code: int = Field(..., description="HTTP status code")
    message: str = Field(..., description="Error message")
    data: Optional[Dict[str, Any]] = Field(None, description="Additional error data")
