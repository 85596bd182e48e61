"""
Availability zone resources.

  maas://zone/{zone_id}/details  : GET /zones/{zone_id}/
  maas://zones/list              : GET /zones
"""

from __future__ import annotations

from maas_mcp.cache import CacheOptions
from maas_mcp.resources.base import ResourceDescriptor
from maas_mcp.schemas import Zone, ZoneParams, ZoneQuery
from maas_mcp.uri_patterns import ZONE_DETAILS_URI_PATTERN, ZONES_LIST_URI_PATTERN

ZONE_DETAILS = ResourceDescriptor(
    name="Zone",
    uri_pattern=ZONE_DETAILS_URI_PATTERN,
    kind="detail",
    entity_schema=Zone,
    params_schema=ZoneParams,
    backend_path="/zones/{zone_id}/",
    id_param="zone_id",
    mcp_name="maas_zone_details",
    description="Details of a single MAAS availability zone.",
)

ZONES_LIST = ResourceDescriptor(
    name="Zones",
    uri_pattern=ZONES_LIST_URI_PATTERN,
    kind="list",
    entity_schema=Zone,
    params_schema=ZoneQuery,
    backend_path="/zones",
    filter_fields=("name",),
    cache_options=CacheOptions(include_query_params=True),
    mcp_name="maas_zones_list",
    description="List MAAS availability zones, optionally filtered by name.",
)

ZONE_RESOURCES = [ZONE_DETAILS, ZONES_LIST]
