"""
MCP Prompt Handlers

Research prompts that instruct the calling agent which BuiltWith tools to
invoke. Rendering is pure text generation and never touches the network.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from ..models import ErrorKind, PromptArgument, PromptDescriptor, PromptMessage, RenderedPrompt, UpstreamFailure
from ..schema import InputSchema, InputValidationError, param
from .tools import DuplicateRegistrationError

logger = logging.getLogger(__name__)

PromptRenderer = Callable[[Dict[str, Any]], List[PromptMessage]]


@dataclass(frozen=True)
class PromptDefinition:
    """One prompt template and the tools its text refers to."""
    name: str
    description: str
    input_schema: InputSchema
    render: PromptRenderer
    tools: Tuple[str, ...] = ()

    def describe(self) -> PromptDescriptor:
        return PromptDescriptor(
            name=self.name,
            description=self.description,
            arguments=[PromptArgument(**arg) for arg in self.input_schema.to_prompt_arguments()],
        )


class PromptRegistry:
    """Ordered prompt catalog."""

    def __init__(self, known_tools: Optional[Iterable[str]] = None):
        self._prompts: Dict[str, PromptDefinition] = {}
        self._known_tools = set(known_tools) if known_tools is not None else None

    def register(self, definition: PromptDefinition) -> PromptDefinition:
        if definition.name in self._prompts:
            raise DuplicateRegistrationError(f"Prompt '{definition.name}' is already registered")
        if self._known_tools is not None:
            missing = [t for t in definition.tools if t not in self._known_tools]
            if missing:
                raise ValueError(f"Prompt '{definition.name}' refers to unknown tools: {missing}")
        self._prompts[definition.name] = definition
        return definition

    def get(self, name: str) -> Optional[PromptDefinition]:
        return self._prompts.get(name)

    def names(self) -> List[str]:
        return list(self._prompts)

    def catalog(self) -> List[PromptDescriptor]:
        return [prompt.describe() for prompt in self._prompts.values()]

    def __len__(self) -> int:
        return len(self._prompts)

    def render(self, name: str, arguments: Optional[Dict[str, Any]]) -> RenderedPrompt:
        """
        Render a prompt with its arguments.

        Unknown names and invalid arguments produce a single message whose
        text is the JSON error payload, mirroring tool dispatch.
        """
        prompt = self._prompts.get(name)
        if prompt is None:
            logger.info(f"Unknown prompt requested: {name}")
            return _error_prompt(UpstreamFailure(
                kind=ErrorKind.UNKNOWN_PROMPT,
                message=f"Prompt '{name}' not found.",
                details={"available_prompts": self.names()},
            ))

        try:
            validated = prompt.input_schema.validate(arguments)
        except InputValidationError as e:
            return _error_prompt(UpstreamFailure(
                kind=ErrorKind.INVALID_INPUT,
                message=str(e),
                details=e.errors,
            ))

        return RenderedPrompt(description=prompt.description, messages=prompt.render(validated))


def _error_prompt(failure: UpstreamFailure) -> RenderedPrompt:
    return RenderedPrompt(
        description=failure.message,
        messages=[PromptMessage(role="user", text=json.dumps(failure.to_payload()))],
    )


def _user(text: str) -> List[PromptMessage]:
    return [PromptMessage(role="user", text=text)]


# ============================================================================
# Prompt templates
# ============================================================================

def _website_technology_profile(args: Dict[str, Any]) -> List[PromptMessage]:
    domain = args["domain"]
    return _user(
        f"Build a technology profile for {domain}.\n\n"
        f"1. Call the `domain-lookup` tool with domain=\"{domain}\" to list the live technologies.\n"
        f"2. Group the technologies by their Tag (analytics, cms, ecommerce, hosting, ...) "
        f"and summarize each group in one or two sentences.\n"
        f"3. Call the `recommendations-api` tool with lookup=\"{domain}\" and list the most "
        f"relevant technologies the site does not use yet.\n\n"
        f"If a tool result contains an \"error\" field, report it instead of guessing."
    )


def _company_domain_discovery(args: Dict[str, Any]) -> List[PromptMessage]:
    company = args["company"]
    return _user(
        f"Find the websites owned by the company \"{company}\".\n\n"
        f"1. Call the `company-to-url` tool with company=\"{company}\".\n"
        f"2. Pick the domain that best matches the company's main website.\n"
        f"3. Call the `domain-lookup` tool on that domain and summarize its technology stack.\n\n"
        f"List every other domain you found with one line explaining how it relates to {company}."
    )


def _technology_adoption_trends(args: Dict[str, Any]) -> List[PromptMessage]:
    tech = args["tech"]
    return _user(
        f"Describe the adoption of the technology \"{tech}\".\n\n"
        f"Call the `trends-api` tool with tech=\"{tech}\" and report the current usage, "
        f"how it has changed over time, and any notable trend in the data. "
        f"Quote the numbers returned by the tool."
    )


def _competitor_stack_comparison(args: Dict[str, Any]) -> List[PromptMessage]:
    domain = args["domain"]
    competitor = args["competitor"]
    return _user(
        f"Compare the technology stacks of {domain} and {competitor}.\n\n"
        f"1. Call the `domain-lookup` tool with domain=\"{domain}\".\n"
        f"2. Call the `domain-lookup` tool with domain=\"{competitor}\".\n"
        f"3. Produce a table of shared technologies, technologies only {domain} uses, "
        f"and technologies only {competitor} uses.\n"
        f"4. Finish with three observations about where the stacks differ most."
    )


def _domain_due_diligence(args: Dict[str, Any]) -> List[PromptMessage]:
    domain = args["domain"]
    return _user(
        f"Prepare a due-diligence brief for {domain}.\n\n"
        f"Call each of these tools with lookup=\"{domain}\":\n"
        f"- `trust-api` for trust scoring\n"
        f"- `financial-api` for financial data\n"
        f"- `relationships-api` for related websites\n"
        f"- `redirects-api` for live and historical redirects\n\n"
        f"Summarize the findings under the headings Trust, Financials, Related Sites and "
        f"Redirects, and flag anything that looks risky."
    )


BUILTWITH_PROMPTS: List[PromptDefinition] = [
    PromptDefinition(
        name="website-technology-profile",
        description="Profile the technologies a website uses and suggest additions.",
        input_schema=InputSchema(param("domain", description="Root domain, e.g. example.com")),
        render=_website_technology_profile,
        tools=("domain-lookup", "recommendations-api"),
    ),
    PromptDefinition(
        name="company-domain-discovery",
        description="Find a company's websites and profile the main one.",
        input_schema=InputSchema(param("company", description="Company name")),
        render=_company_domain_discovery,
        tools=("company-to-url", "domain-lookup"),
    ),
    PromptDefinition(
        name="technology-adoption-trends",
        description="Summarize adoption trends for one technology.",
        input_schema=InputSchema(param("tech", description="Technology name, e.g. Shopify")),
        render=_technology_adoption_trends,
        tools=("trends-api",),
    ),
    PromptDefinition(
        name="competitor-stack-comparison",
        description="Compare the technology stacks of two websites.",
        input_schema=InputSchema(
            param("domain", description="Your domain"),
            param("competitor", description="Competitor domain"),
        ),
        render=_competitor_stack_comparison,
        tools=("domain-lookup",),
    ),
    PromptDefinition(
        name="domain-due-diligence",
        description="Trust, financial, relationship and redirect checks for a domain.",
        input_schema=InputSchema(param("domain", description="Root domain to investigate")),
        render=_domain_due_diligence,
        tools=("trust-api", "financial-api", "relationships-api", "redirects-api"),
    ),
]


def build_prompt_registry(known_tools: Optional[Iterable[str]] = None) -> PromptRegistry:
    """Registry with every research prompt, in catalog order."""
    registry = PromptRegistry(known_tools)
    for definition in BUILTWITH_PROMPTS:
        registry.register(definition)
    return registry
