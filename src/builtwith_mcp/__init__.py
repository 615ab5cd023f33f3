"""
BuiltWith Model Context Protocol (MCP) Server

This package implements an MCP gateway that exposes:
- Tools: BuiltWith API endpoints (domain-lookup, relationships-api, trends-api, ...)
- Prompts: Reusable research prompts that tell the agent which tools to call

The same registries are served over a single stdio session or over a
multi-tenant streamable HTTP endpoint where each request brings its own key.
"""

__version__ = "1.2.0"

SERVER_NAME = "builtwith"
