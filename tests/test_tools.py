"""
Tests for the BuiltWith tool registry, upstream client and normalizer

Tests cover:
- Tool catalog contents and rendering
- Dispatch: unknown tools, invalid input, missing key, upstream failures
- Upstream query construction
- domain-lookup technology flattening
- Credential isolation between concurrent invocations
"""

import asyncio
import json
import time
from unittest.mock import MagicMock

import pytest
import requests

from builtwith_mcp.config import Settings
from builtwith_mcp.context import InvocationContext, with_credential
from builtwith_mcp.handlers import (
    DuplicateRegistrationError,
    ToolDefinition,
    ToolRegistry,
    build_tool_registry,
)
from builtwith_mcp.models import ErrorKind, UpstreamFailure, UpstreamOk
from builtwith_mcp.normalizers import NO_TECHNOLOGIES_FOUND, extract_technologies, normalize_domain_lookup
from builtwith_mcp.schema import InputSchema, InputValidationError, optional, param
from builtwith_mcp.upstream import UpstreamClient, build_query


# ============================================================================
# Fixtures
# ============================================================================

def make_response(status_code=200, data=None, json_error=False):
    """Build a fake requests.Response."""
    response = MagicMock()
    response.status_code = status_code
    if json_error:
        response.json.side_effect = ValueError("Expecting value")
    else:
        response.json.return_value = data
    return response


@pytest.fixture
def session():
    """requests.Session stand-in that returns an empty JSON object."""
    fake = MagicMock()
    fake.get.return_value = make_response(data={})
    return fake


@pytest.fixture
def registry(session):
    return build_tool_registry(UpstreamClient("api.builtwith.com", session=session))


@pytest.fixture
def context():
    return InvocationContext(credential="request-key-123")


EXPECTED_TOOLS = [
    ("domain-lookup", "v22/api.json"),
    ("domain-api", "v22/api.json"),
    ("relationships-api", "rv4/api.json"),
    ("free-api", "free1/api.json"),
    ("company-to-url", "ctu3/api.json"),
    ("tags-api", "tag1/api.json"),
    ("recommendations-api", "rec1/api.json"),
    ("redirects-api", "redirect1/api.json"),
    ("keywords-api", "kw2/api.json"),
    ("trends-api", "trends/v6/api.json"),
    ("product-api", "productv1/api.json"),
    ("trust-api", "trustv1/api.json"),
    ("financial-api", "financial1/api.json"),
    ("social-api", "social1/api.json"),
]


# ============================================================================
# Catalog Tests
# ============================================================================

def test_catalog_lists_all_tools_in_order(registry):
    """All 14 tools are registered in catalog order with their upstream paths."""
    assert len(registry) == 14
    assert registry.names() == [name for name, _ in EXPECTED_TOOLS]
    for name, path in EXPECTED_TOOLS:
        assert registry.get(name).path == path


def test_catalog_renders_input_schema(registry):
    """Catalog entries carry name, description and the required/optional shape."""
    catalog = {tool.name: tool for tool in registry.catalog()}

    lookup = catalog["domain-lookup"]
    assert lookup.description == "Returns the live web technologies use on the root domain name."
    assert lookup.inputSchema["type"] == "object"
    assert lookup.inputSchema["properties"]["domain"] == {"type": "string"}
    assert lookup.inputSchema["properties"]["liveOnly"] == {"type": "boolean"}
    assert lookup.inputSchema["required"] == ["domain"]

    assert catalog["trends-api"].inputSchema["required"] == ["tech"]
    assert catalog["company-to-url"].inputSchema["required"] == ["company"]
    assert catalog["product-api"].inputSchema["required"] == ["query"]


def test_register_then_discover_round_trip(session):
    """A registered tool is surfaced exactly as declared."""
    registry = ToolRegistry(UpstreamClient("api.builtwith.com", session=session))
    registry.register(ToolDefinition(
        name="custom-tool",
        description="Custom lookup.",
        input_schema=InputSchema(
            param("site", description="Site to inspect"),
            optional("limit", "integer"),
        ),
        path="custom/api.json",
        build_params=lambda args: {"LOOKUP": args["site"], "LIMIT": args["limit"]},
    ))

    [descriptor] = registry.catalog()
    assert descriptor.name == "custom-tool"
    assert descriptor.description == "Custom lookup."
    assert descriptor.inputSchema == {
        "type": "object",
        "properties": {
            "site": {"type": "string", "description": "Site to inspect"},
            "limit": {"type": "integer"},
        },
        "required": ["site"],
    }


def test_number_params_accept_integers_and_floats():
    """JSON numbers may be written without a fractional part."""
    schema = InputSchema(param("score", "number"), optional("weight", "number"))

    assert schema.validate({"score": 5}) == {"score": 5, "weight": None}
    assert schema.validate({"score": 2.5, "weight": 1}) == {"score": 2.5, "weight": 1}
    with pytest.raises(InputValidationError):
        schema.validate({"score": "5"})
    with pytest.raises(InputValidationError):
        schema.validate({"score": True})


def test_duplicate_tool_name_rejected(registry):
    """Registering a name twice is a startup error."""
    with pytest.raises(DuplicateRegistrationError):
        registry.register(registry.get("domain-api"))


# ============================================================================
# Dispatch Tests
# ============================================================================

@pytest.mark.asyncio
async def test_unknown_tool_makes_no_network_call(registry, session, context):
    result = await registry.dispatch("no-such-tool", {"lookup": "example.com"}, context)

    assert result["kind"] == ErrorKind.UNKNOWN_TOOL.value
    assert "no-such-tool" in result["error"]
    session.get.assert_not_called()


@pytest.mark.asyncio
async def test_invalid_input_makes_no_network_call(registry, session, context):
    result = await registry.dispatch("domain-api", {}, context)

    assert result["kind"] == ErrorKind.INVALID_INPUT.value
    assert result["details"][0]["field"] == "lookup"
    session.get.assert_not_called()


@pytest.mark.asyncio
async def test_wrong_type_is_invalid_input(registry, session, context):
    result = await registry.dispatch("domain-lookup", {"domain": "example.com", "liveOnly": "no"}, context)

    assert result["kind"] == ErrorKind.INVALID_INPUT.value
    session.get.assert_not_called()


@pytest.mark.asyncio
@pytest.mark.parametrize("name,_path", EXPECTED_TOOLS)
async def test_missing_key_for_every_tool(registry, session, name, _path):
    """With no per-request and no fallback key, every tool reports AuthMissing."""
    arguments = {"lookup": "x", "domain": "x", "company": "x", "tech": "x", "query": "x"}
    result = await registry.dispatch(name, arguments, InvocationContext())

    assert result == {"error": "Missing BUILTWITH_API_KEY.", "kind": "AuthMissing"}
    session.get.assert_not_called()


@pytest.mark.asyncio
async def test_dispatch_maps_params_and_passes_payload_through(registry, session, context):
    session.get.return_value = make_response(data={"Relationships": [{"Domain": "example.com"}]})

    result = await registry.dispatch("relationships-api", {"lookup": "example.com"}, context)

    assert result == {"Relationships": [{"Domain": "example.com"}]}
    session.get.assert_called_once()
    args, kwargs = session.get.call_args
    assert args[0] == "https://api.builtwith.com/rv4/api.json"
    assert kwargs["params"] == {"KEY": "request-key-123", "LOOKUP": "example.com"}


@pytest.mark.asyncio
@pytest.mark.parametrize("name,arguments,expected", [
    ("company-to-url", {"company": "Acme"}, {"COMPANY": "Acme"}),
    ("trends-api", {"tech": "Shopify"}, {"TECH": "Shopify"}),
    ("product-api", {"query": "red shoes"}, {"QUERY": "red shoes"}),
    ("keywords-api", {"lookup": "example.com"}, {"LOOKUP": "example.com"}),
])
async def test_uppercase_upstream_params(registry, session, context, name, arguments, expected):
    await registry.dispatch(name, arguments, context)

    _, kwargs = session.get.call_args
    assert kwargs["params"] == {"KEY": "request-key-123", **expected}


@pytest.mark.asyncio
async def test_domain_lookup_live_only_defaults_to_yes(registry, session, context):
    await registry.dispatch("domain-lookup", {"domain": "example.com"}, context)
    _, kwargs = session.get.call_args
    assert kwargs["params"] == {"KEY": "request-key-123", "LOOKUP": "example.com", "LIVEONLY": "yes"}

    await registry.dispatch("domain-lookup", {"domain": "example.com", "liveOnly": True}, context)
    _, kwargs = session.get.call_args
    assert kwargs["params"]["LIVEONLY"] == "yes"


@pytest.mark.asyncio
async def test_domain_lookup_live_only_false_omits_param(registry, session, context):
    await registry.dispatch("domain-lookup", {"domain": "example.com", "liveOnly": False}, context)

    _, kwargs = session.get.call_args
    assert "LIVEONLY" not in kwargs["params"]


@pytest.mark.asyncio
async def test_upstream_failure_is_returned_as_payload(registry, session, context):
    session.get.return_value = make_response(status_code=401, data={"Errors": ["bad key"]})

    text = await registry.call_tool_text("trust-api", {"lookup": "example.com"}, context)

    assert json.loads(text) == {
        "error": "BuiltWith API error.",
        "kind": "UpstreamError",
        "status": 401,
        "data": {"Errors": ["bad key"]},
    }


# ============================================================================
# Upstream Client Tests
# ============================================================================

def test_build_query_drops_empty_values():
    query = build_query("secret-key", {"LOOKUP": "example.com", "EMPTY": "", "NONE": None, "FLAG": True, "N": 0})

    assert query == {"KEY": "secret-key", "LOOKUP": "example.com", "FLAG": "true", "N": "0"}


@pytest.mark.asyncio
async def test_client_uses_fallback_key(session):
    client = UpstreamClient("api.example.test", session=session)
    context = with_credential(None, Settings(api_key="fallback-key-1"))

    result = await client.call("free1/api.json", {"LOOKUP": "example.com"}, context)

    assert isinstance(result, UpstreamOk)
    args, kwargs = session.get.call_args
    assert args[0] == "https://api.example.test/free1/api.json"
    assert kwargs["params"]["KEY"] == "fallback-key-1"


@pytest.mark.asyncio
async def test_request_key_wins_over_fallback(session):
    client = UpstreamClient("api.builtwith.com", session=session)
    context = with_credential("request-key-999", Settings(api_key="fallback-key-1"))

    await client.call("free1/api.json", {}, context)

    _, kwargs = session.get.call_args
    assert kwargs["params"]["KEY"] == "request-key-999"


@pytest.mark.asyncio
async def test_client_network_error(session, context):
    session.get.side_effect = requests.ConnectionError("DNS failure")
    client = UpstreamClient("api.builtwith.com", session=session)

    result = await client.call("free1/api.json", {}, context)

    assert isinstance(result, UpstreamFailure)
    assert result.kind == ErrorKind.NETWORK_ERROR
    assert result.details == "DNS failure"
    assert session.get.call_count == 1


@pytest.mark.asyncio
async def test_client_non_json_body(session, context):
    session.get.return_value = make_response(status_code=502, json_error=True)
    client = UpstreamClient("api.builtwith.com", session=session)

    result = await client.call("free1/api.json", {}, context)

    assert result.kind == ErrorKind.BAD_UPSTREAM_RESPONSE
    assert result.status == 502
    assert result.to_payload() == {
        "error": "BuiltWith API did not return JSON.",
        "kind": "BadUpstreamResponse",
        "status": 502,
    }


@pytest.mark.asyncio
async def test_client_passes_timeout(session, context):
    client = UpstreamClient("api.builtwith.com", timeout=7.5, session=session)

    await client.call("free1/api.json", {}, context)

    _, kwargs = session.get.call_args
    assert kwargs["timeout"] == 7.5


# ============================================================================
# domain-lookup Normalizer Tests
# ============================================================================

def lookup_payload(paths):
    return {"Results": [{"Result": {"Paths": paths}}]}


def test_extract_technologies_flattens_in_order():
    data = lookup_payload([
        {"Technologies": [
            {"Name": "nginx", "Description": "Web server", "Tag": "Web Server", "Link": "https://nginx.org"},
            {"Name": "React", "Tag": "javascript"},
        ]},
        {"Technologies": []},
        {"Technologies": [{"Name": "Stripe", "Description": "Payments", "Tag": "payment", "Link": "https://stripe.com", "FirstDetected": 1}]},
    ])

    assert extract_technologies(data) == [
        {"Name": "nginx", "Description": "Web server", "Tag": "Web Server", "Link": "https://nginx.org"},
        {"Name": "React", "Description": "", "Tag": "javascript", "Link": ""},
        {"Name": "Stripe", "Description": "Payments", "Tag": "payment", "Link": "https://stripe.com"},
    ]


def test_extract_technologies_skips_paths_without_list():
    data = lookup_payload([{"Domain": "a.com"}, {"Technologies": "oops"}, {"Technologies": [{"Name": "Vue"}]}])

    assert extract_technologies(data) == [{"Name": "Vue", "Description": "", "Tag": "", "Link": ""}]


@pytest.mark.parametrize("data", [
    {"Results": [{"Result": {}}]},
    lookup_payload([]),
    lookup_payload("not-a-list"),
    lookup_payload(None),
    {"Results": []},
    {"Errors": [{"Message": "domain not found"}]},
    [],
    None,
])
def test_no_technologies_marker(data):
    assert normalize_domain_lookup(data) == NO_TECHNOLOGIES_FOUND


@pytest.mark.asyncio
async def test_domain_lookup_returns_flattened_records(registry, session, context):
    session.get.return_value = make_response(data=lookup_payload([
        {"Technologies": [{"Name": "WordPress", "Tag": "cms"}]},
    ]))

    result = await registry.dispatch("domain-lookup", {"domain": "example.com"}, context)

    assert result == [{"Name": "WordPress", "Description": "", "Tag": "cms", "Link": ""}]


@pytest.mark.asyncio
async def test_domain_lookup_empty_result_is_marker_not_error(registry, session, context):
    session.get.return_value = make_response(data=lookup_payload([]))

    result = await registry.dispatch("domain-lookup", {"domain": "example.com"}, context)

    assert result == {"error": "No technologies found"}
    assert "kind" not in result


# ============================================================================
# Credential Isolation Tests
# ============================================================================

@pytest.mark.asyncio
async def test_concurrent_invocations_keep_their_own_key():
    """Two overlapping calls each send only their own key upstream."""
    seen = []

    def slow_get(url, params=None, timeout=None):
        seen.append(params["KEY"])
        time.sleep(0.05)
        return make_response(data={"echo": params["KEY"]})

    fake = MagicMock()
    fake.get.side_effect = slow_get
    registry = build_tool_registry(UpstreamClient("api.builtwith.com", session=fake))
    settings = Settings(api_key="fallback-key-1")

    keys = [f"tenant-key-{i:04d}" for i in range(8)]
    results = await asyncio.gather(*[
        registry.dispatch("domain-api", {"lookup": "example.com"}, with_credential(key, settings))
        for key in keys
    ])

    assert [r["echo"] for r in results] == keys
    assert sorted(seen) == sorted(keys)
