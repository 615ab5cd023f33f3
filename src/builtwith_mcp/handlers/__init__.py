"""
MCP Endpoint Handlers

This package contains the registries behind the MCP endpoints:
- tools: BuiltWith tool catalog and dispatch
- prompts: Research prompt catalog and rendering
"""

from .tools import DuplicateRegistrationError, ToolDefinition, ToolRegistry, build_tool_registry
from .prompts import PromptDefinition, PromptRegistry, build_prompt_registry

__all__ = [
    "DuplicateRegistrationError",
    "ToolDefinition",
    "ToolRegistry",
    "build_tool_registry",
    "PromptDefinition",
    "PromptRegistry",
    "build_prompt_registry",
]
