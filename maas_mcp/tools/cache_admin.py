"""
Cache administration tools.

Tools:
  maas_cache_status       : cache statistics and per-resource options (read-only)
  maas_invalidate_cache   : drop cached responses for a resource, or one id
  maas_set_cache_options  : change a resource's TTL or switch its caching off
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable

from mcp.types import TextContent, Tool, ToolAnnotations

from maas_mcp.cache import CacheManager
from maas_mcp.errors import MaasApiError
from maas_mcp.formatters import _err, kv_table, section
from maas_mcp.resources.registry import ALL_DESCRIPTORS, ResourceRouter

ToolHandler = Callable[[dict], Awaitable[list[TextContent]]]

_RESOURCE_NAMES = [d.name for d in ALL_DESCRIPTORS]


# ---------------------------------------------------------------------------
# Tool definitions
# ---------------------------------------------------------------------------

CACHE_STATUS_TOOL = Tool(
    name="maas_cache_status",
    description="Show response cache statistics (hits, misses, evictions, size) and the cache options of every resource.",
    inputSchema={"type": "object", "properties": {}},
    annotations=ToolAnnotations(readOnlyHint=True, openWorldHint=False),
)

CACHE_WRITE_TOOLS: list[Tool] = [
    Tool(
        name="maas_invalidate_cache",
        description=(
            "Invalidate cached MAAS responses for a resource type. With resource_id, only "
            "entries for that id are dropped (e.g. one machine's system_id)."
        ),
        inputSchema={
            "type": "object",
            "required": ["resource"],
            "properties": {
                "resource": {
                    "type": "string",
                    "enum": _RESOURCE_NAMES,
                    "description": "Resource label, e.g. 'Machine' or 'Machines'.",
                },
                "resource_id": {"type": "string", "description": "Only invalidate entries for this id."},
            },
        },
        annotations=ToolAnnotations(readOnlyHint=False, destructiveHint=False, idempotentHint=True, openWorldHint=False),
    ),
    Tool(
        name="maas_set_cache_options",
        description="Change the cache TTL of a resource type, or enable/disable caching for it.",
        inputSchema={
            "type": "object",
            "required": ["resource"],
            "properties": {
                "resource": {"type": "string", "enum": _RESOURCE_NAMES},
                "ttl": {"type": "integer", "minimum": 0, "description": "Time to live in seconds."},
                "enabled": {"type": "boolean"},
            },
        },
        annotations=ToolAnnotations(readOnlyHint=False, destructiveHint=False, idempotentHint=True, openWorldHint=False),
    ),
]

CACHE_ADMIN_TOOLS: list[Tool] = [CACHE_STATUS_TOOL] + CACHE_WRITE_TOOLS


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------

def make_cache_admin_handlers(router: ResourceRouter, cache: CacheManager) -> dict[str, ToolHandler]:
    async def handle_cache_status(args: dict) -> list[TextContent]:
        stats = cache.stats()
        lines = [section("Cache", kv_table(list(stats.items()), indent=2))]
        rows = []
        for handler in router.handlers:
            opts = handler.cache_options
            ttl = handler.effective_ttl(opts)
            state = "on" if opts.enabled else "off"
            rows.append((handler.name, f"{state}  ttl={ttl}s  {opts.cache_control.header_value(ttl)}"))
        lines.append(section("Resources", kv_table(rows, indent=2)))
        return [TextContent(type="text", text="\n\n".join(lines))]

    async def handle_invalidate_cache(args: dict) -> list[TextContent]:
        try:
            handler = router.get(args["resource"])
        except MaasApiError as e:
            return _err(e.message)
        resource_id = args.get("resource_id")
        if resource_id:
            count = handler.invalidate_cache_by_id(str(resource_id))
            scope = f"{handler.name} '{resource_id}'"
        else:
            count = handler.invalidate_cache()
            scope = handler.name
        return [TextContent(type="text", text=f"Invalidated {count} cache entries for {scope}.")]

    async def handle_set_cache_options(args: dict) -> list[TextContent]:
        try:
            handler = router.get(args["resource"])
        except MaasApiError as e:
            return _err(e.message)
        changes: dict[str, Any] = {}
        if args.get("ttl") is not None:
            ttl = int(args["ttl"])
            if ttl < 0:
                return _err("ttl must be a non-negative number of seconds")
            changes["ttl"] = ttl
        if args.get("enabled") is not None:
            changes["enabled"] = bool(args["enabled"])
        if not changes:
            return _err("Nothing to change: pass ttl and/or enabled")
        opts = handler.set_cache_options(**changes)
        if "ttl" in changes or changes.get("enabled") is False:
            handler.invalidate_cache()
        state = "enabled" if opts.enabled else "disabled"
        return [
            TextContent(
                type="text",
                text=f"{handler.name} cache {state}, ttl={handler.effective_ttl(opts)}s.",
            )
        ]

    return {
        "maas_cache_status": handle_cache_status,
        "maas_invalidate_cache": handle_invalidate_cache,
        "maas_set_cache_options": handle_set_cache_options,
    }
