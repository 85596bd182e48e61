"""
Resource registry: every descriptor, the handlers built from them, and the
router that dispatches a concrete URI to the handler whose pattern matches.
"""

from __future__ import annotations

from typing import Any, Mapping

from mcp.types import Resource, ResourceTemplate

from maas_mcp.audit import AuditLogger
from maas_mcp.cache import CacheManager
from maas_mcp.errors import ErrorCode, MaasApiError
from maas_mcp.formatters import JSON_MIME, ResponseEnvelope
from maas_mcp.resources.base import RequestContext, ResourceDescriptor, ResourceHandler
from maas_mcp.resources.devices import DEVICE_RESOURCES
from maas_mcp.resources.domains import DOMAIN_RESOURCES
from maas_mcp.resources.machines import MACHINE_RESOURCES
from maas_mcp.resources.subnets import SUBNET_RESOURCES
from maas_mcp.resources.tags import TAG_RESOURCES
from maas_mcp.resources.zones import ZONE_RESOURCES
from maas_mcp.uri_patterns import matches, placeholders

ALL_DESCRIPTORS: list[ResourceDescriptor] = (
    MACHINE_RESOURCES
    + DEVICE_RESOURCES
    + SUBNET_RESOURCES
    + ZONE_RESOURCES
    + DOMAIN_RESOURCES
    + TAG_RESOURCES
)


# ---------------------------------------------------------------------------
# MCP metadata
# ---------------------------------------------------------------------------

RESOURCE_TEMPLATES: list[ResourceTemplate] = [
    ResourceTemplate(
        uriTemplate=d.uri_pattern,
        name=d.mcp_name,
        description=d.description,
        mimeType=JSON_MIME,
    )
    for d in ALL_DESCRIPTORS
]

# Collections without placeholders are directly readable.
STATIC_RESOURCES: list[Resource] = [
    Resource(
        uri=d.uri_pattern,
        name=d.mcp_name,
        description=d.description,
        mimeType=JSON_MIME,
    )
    for d in ALL_DESCRIPTORS
    if not placeholders(d.uri_pattern)
]


# ---------------------------------------------------------------------------
# Router
# ---------------------------------------------------------------------------

def build_handlers(client: Any, cache: CacheManager, audit: AuditLogger) -> list[ResourceHandler]:
    return [ResourceHandler(d, client, cache, audit) for d in ALL_DESCRIPTORS]


class ResourceRouter:
    def __init__(self, handlers: list[ResourceHandler]) -> None:
        self.handlers = handlers
        self._by_name = {h.name: h for h in handlers}

    def handler_for(self, uri: str) -> ResourceHandler | None:
        bare = uri.split("?", 1)[0].split("#", 1)[0]
        for handler in self.handlers:
            if matches(bare, handler.descriptor.uri_pattern):
                return handler
        return None

    def get(self, resource: str) -> ResourceHandler:
        """Look a handler up by resource label (``Machine``) or MCP name (``maas_machine_details``)."""
        handler = self._by_name.get(resource)
        if handler is None:
            for h in self.handlers:
                if h.descriptor.mcp_name == resource:
                    return h
            known = ", ".join(sorted(self._by_name))
            raise MaasApiError(
                f"Unknown resource '{resource}'. Known resources: {known}",
                404,
                ErrorCode.RESOURCE_NOT_FOUND,
            )
        return handler

    async def read(
        self,
        uri: str,
        raw_params: Mapping[str, Any] | None = None,
        context: RequestContext | None = None,
    ) -> ResponseEnvelope:
        handler = self.handler_for(uri)
        if handler is None:
            raise MaasApiError(f"Unknown resource URI: {uri}", 404, ErrorCode.RESOURCE_NOT_FOUND)
        return await handler.handle(uri, raw_params, context)
