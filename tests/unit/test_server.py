"""
Unit tests for maas_mcp/server.py request handling.
"""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock

import pytest
from mcp.shared.exceptions import McpError
from mcp.types import INTERNAL_ERROR, INVALID_PARAMS, TextContent

from maas_mcp.config import load_settings
from maas_mcp.errors import ErrorCode, MaasApiError
from maas_mcp.formatters import _err
from maas_mcp.resources.registry import ResourceRouter, build_handlers
from maas_mcp.server import build_components, create_server, dispatch_tool, read_resource_contents, to_mcp_error
from tests.conftest import MACHINE_JSON, sample


@pytest.fixture
def router(client, cache, audit):
    return ResourceRouter(build_handlers(client, cache, audit))


# ---------------------------------------------------------------------------
# Resources
# ---------------------------------------------------------------------------

async def test_read_resource_contents(router, client):
    client.get.return_value = sample(MACHINE_JSON)
    contents = await read_resource_contents(router, "maas://machine/abc123/details", request_id="7")
    assert len(contents) == 1
    assert contents[0].mime_type == "application/json"
    assert '"system_id": "abc123"' in contents[0].content


async def test_read_resource_xml(router, client):
    client.get.return_value = sample(MACHINE_JSON)
    contents = await read_resource_contents(router, "maas://machine/abc123/details?format=xml")
    assert contents[0].mime_type == "application/xml"


async def test_read_resource_error_becomes_mcp_error(router, client):
    client.get.side_effect = MaasApiError("Not Found", 404, ErrorCode.RESOURCE_NOT_FOUND)
    with pytest.raises(McpError) as exc_info:
        await read_resource_contents(router, "maas://machine/abc123/details")
    data = exc_info.value.error
    assert data.code == INVALID_PARAMS
    assert data.data["error_code"] == "resource_not_found"
    assert data.data["status_code"] == 404


async def test_read_resource_deadline_aborts(router, client):
    async def slow_get(*args, **kwargs):
        await asyncio.sleep(30)

    client.get.side_effect = slow_get
    with pytest.raises(McpError) as exc_info:
        await asyncio.wait_for(
            read_resource_contents(router, "maas://machine/abc123/details", deadline=0.01), timeout=1
        )
    assert exc_info.value.error.data["error_code"] == "request_aborted"


@pytest.mark.parametrize(
    "status, code",
    [(400, INVALID_PARAMS), (404, INVALID_PARAMS), (499, INTERNAL_ERROR), (503, INTERNAL_ERROR)],
)
def test_to_mcp_error_codes(status, code):
    err = to_mcp_error(MaasApiError("x", status))
    assert err.error.code == code
    assert err.error.message == "x"


# ---------------------------------------------------------------------------
# Tools
# ---------------------------------------------------------------------------

async def test_dispatch_unknown_tool():
    result = await dispatch_tool({}, "nope", {})
    assert result.isError
    assert "Unknown tool" in result.content[0].text


async def test_dispatch_marks_tool_errors():
    handler = AsyncMock(return_value=_err("bad input"))
    result = await dispatch_tool({"maas_cache_status": handler}, "maas_cache_status", None)
    assert result.isError
    handler.assert_awaited_once_with({})


async def test_dispatch_wraps_exceptions():
    handler = AsyncMock(side_effect=RuntimeError("kaboom"))
    result = await dispatch_tool({"maas_cache_status": handler}, "maas_cache_status", {})
    assert result.isError
    assert "kaboom" in result.content[0].text


async def test_dispatch_audits_write_tools(audit):
    handler = AsyncMock(return_value=[TextContent(type="text", text="done")])
    result = await dispatch_tool(
        {"maas_invalidate_cache": handler},
        "maas_invalidate_cache",
        {"resource": "Machine", "resource_id": "abc"},
        audit,
    )
    assert not result.isError
    audit.log_resource_access.assert_called_once()
    assert audit.log_resource_access.call_args.kwargs["action"] == "maas_invalidate_cache"


async def test_dispatch_does_not_audit_reads(audit):
    handler = AsyncMock(return_value=[TextContent(type="text", text="ok")])
    await dispatch_tool({"maas_cache_status": handler}, "maas_cache_status", {}, audit)
    audit.log_resource_access.assert_not_called()


# ---------------------------------------------------------------------------
# Wiring
# ---------------------------------------------------------------------------

async def test_build_components_from_settings():
    settings = load_settings(
        environ={
            "MAAS_API_URL": "http://maas:5240/MAAS",
            "MAAS_API_KEY": "a:b:c",
            "CACHE_STRATEGY": "lru",
            "CACHE_RESOURCE_SPECIFIC_TTL": '{"Zone": 5}',
        }
    )
    client, cache, audit, router = build_components(settings)
    try:
        assert cache.strategy == "lru"
        assert cache.get_resource_ttl("Zone") == 5
        assert len(router.handlers) == 13
        assert all(h.client is client and h.cache is cache for h in router.handlers)
    finally:
        await client.aclose()


def test_create_server(router, cache, audit):
    assert create_server(router, cache, audit).name == "maas"
    assert create_server(router, cache, audit, read_only=True).name == "maas"
