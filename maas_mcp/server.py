"""
MAAS MCP server.

Exposes MAAS inventory as MCP resources over stdio transport:
  • Machines  : maas://machine/{system_id}/details, maas://machines/list
  • Devices   : maas://device/{system_id}/details, maas://devices/list
  • Subnets   : maas://subnet/{subnet_id}/details, maas://subnets/list
  • Zones     : maas://zone/{zone_id}/details, maas://zones/list
  • Domains   : maas://domain/{domain_id}/details, maas://domains/list
  • Tags      : maas://tag/{tag_name}/details, maas://tags/list,
                maas://tag/{tag_name}/machines

plus cache administration tools (maas_cache_status, maas_invalidate_cache,
maas_set_cache_options). List resources accept filters and pagination as
query parameters; ``format=xml`` switches the body to XML.

Configuration is documented in ``maas_mcp.config``.

Run with:
    maas-mcp
    python -m maas_mcp.server
"""

from __future__ import annotations

import asyncio
import sys
from typing import Any

import structlog
from mcp.server import Server
from mcp.server.lowlevel.helper_types import ReadResourceContents
from mcp.server.stdio import stdio_server
from mcp.shared.exceptions import McpError
from mcp.types import (
    INTERNAL_ERROR,
    INVALID_PARAMS,
    CallToolResult,
    ErrorData,
    ListToolsResult,
    Resource,
    ResourceTemplate,
    TextContent,
)

from maas_mcp.audit import AuditLogger
from maas_mcp.cache import CacheManager
from maas_mcp.cancellation import CancellationToken
from maas_mcp.client import MaasApiClient
from maas_mcp.config import ConfigError, Settings, load_settings
from maas_mcp.errors import MaasApiError
from maas_mcp.formatters import ToolError
from maas_mcp.logs import configure_logging
from maas_mcp.resources.base import RequestContext
from maas_mcp.resources.registry import RESOURCE_TEMPLATES, STATIC_RESOURCES, ResourceRouter, build_handlers
from maas_mcp.tools.cache_admin import (
    CACHE_ADMIN_TOOLS,
    CACHE_STATUS_TOOL,
    CACHE_WRITE_TOOLS,
    make_cache_admin_handlers,
)

log = structlog.get_logger(__name__)

WRITE_TOOLS = {t.name for t in CACHE_WRITE_TOOLS}


# ---------------------------------------------------------------------------
# Error translation
# ---------------------------------------------------------------------------

def to_mcp_error(error: MaasApiError) -> McpError:
    code = INVALID_PARAMS if 400 <= error.status_code < 500 and error.status_code != 499 else INTERNAL_ERROR
    return McpError(ErrorData(code=code, message=error.message, data=error.to_dict()))


# ---------------------------------------------------------------------------
# Request handling
# ---------------------------------------------------------------------------

async def read_resource_contents(
    router: ResourceRouter,
    uri: str,
    request_id: str | None = None,
    deadline: float | None = None,
) -> list[ReadResourceContents]:
    token = CancellationToken()
    timer = token.cancel_after(deadline) if deadline else None
    try:
        envelope = await router.read(uri, None, RequestContext(token=token, request_id=request_id))
    except MaasApiError as e:
        raise to_mcp_error(e) from e
    finally:
        if timer is not None:
            timer.cancel()
    return [ReadResourceContents(content=c.text, mime_type=c.mime_type) for c in envelope.contents]


async def dispatch_tool(
    handlers: dict[str, Any],
    name: str,
    arguments: dict | None,
    audit: AuditLogger | None = None,
) -> CallToolResult:
    args = arguments or {}

    handler = handlers.get(name)
    if handler is None:
        return CallToolResult(
            content=[TextContent(type="text", text=f"Unknown tool: {name}")],
            isError=True,
        )

    if name in WRITE_TOOLS and audit is not None:
        audit.log_resource_access(
            str(args.get("resource", "cache")),
            args.get("resource_id"),
            action=name,
            details={k: v for k, v in args.items() if k not in ("resource", "resource_id")},
        )

    try:
        content = await handler(args)
    except Exception as exc:  # noqa: BLE001
        log.exception("tool_failed", tool=name)
        return CallToolResult(
            content=[TextContent(type="text", text=f"Unexpected error: {exc}")],
            isError=True,
        )
    return CallToolResult(content=content, isError=isinstance(content, ToolError))


# ---------------------------------------------------------------------------
# Server setup
# ---------------------------------------------------------------------------

def create_server(
    router: ResourceRouter,
    cache: CacheManager,
    audit: AuditLogger,
    read_only: bool = False,
    deadline: float | None = None,
) -> Server:
    server = Server("maas")

    all_handlers = make_cache_admin_handlers(router, cache)
    if read_only:
        tools = [CACHE_STATUS_TOOL]
        handlers = {CACHE_STATUS_TOOL.name: all_handlers[CACHE_STATUS_TOOL.name]}
    else:
        tools = CACHE_ADMIN_TOOLS
        handlers = all_handlers

    @server.list_resources()
    async def list_resources() -> list[Resource]:
        return STATIC_RESOURCES

    @server.list_resource_templates()
    async def list_resource_templates() -> list[ResourceTemplate]:
        return RESOURCE_TEMPLATES

    @server.read_resource()
    async def read_resource(uri) -> list[ReadResourceContents]:
        try:
            request_id = str(server.request_context.request_id)
        except LookupError:
            request_id = None
        return await read_resource_contents(router, str(uri), request_id, deadline)

    @server.list_tools()
    async def list_tools() -> ListToolsResult:
        return ListToolsResult(tools=tools)

    @server.call_tool()
    async def call_tool(name: str, arguments: dict) -> CallToolResult:
        return await dispatch_tool(handlers, name, arguments, audit)

    return server


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def build_components(settings: Settings) -> tuple[MaasApiClient, CacheManager, AuditLogger, ResourceRouter]:
    client = MaasApiClient(
        settings.maas_api_url,
        settings.maas_api_key,
        timeout=settings.request_timeout,
        max_retries=settings.max_retries,
    )
    cache = CacheManager(
        enabled=settings.cache_enabled,
        default_ttl=settings.cache_max_age,
        resource_ttl=settings.cache_resource_ttl,
        max_size=settings.cache_max_size,
        strategy=settings.cache_strategy,
    )
    audit = AuditLogger(
        enabled=settings.audit_log_enabled,
        sensitive_fields=settings.audit_log_sensitive_fields,
    )
    router = ResourceRouter(build_handlers(client, cache, audit))
    return client, cache, audit, router


async def _run(settings: Settings) -> None:
    client, cache, audit, router = build_components(settings)
    server = create_server(router, cache, audit, read_only=settings.read_only)
    mode = "read-only" if settings.read_only else "full"
    log.info(
        "server_starting",
        resources=len(router.handlers),
        mode=mode,
        maas_api_url=settings.maas_api_url,
        cache_enabled=settings.cache_enabled,
    )
    try:
        async with stdio_server() as (read_stream, write_stream):
            await server.run(
                read_stream,
                write_stream,
                server.create_initialization_options(),
            )
    finally:
        await client.aclose()


def main() -> None:
    try:
        settings = load_settings()
    except ConfigError as e:
        print(f"FATAL: {e}", file=sys.stderr)
        sys.exit(1)
    configure_logging(settings.log_level)
    asyncio.run(_run(settings))


if __name__ == "__main__":
    main()
