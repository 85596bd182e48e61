"""
Subnet resources.

  maas://subnet/{subnet_id}/details  : GET /subnets/{subnet_id}/
  maas://subnets/list                : GET /subnets
"""

from __future__ import annotations

from maas_mcp.cache import CacheOptions
from maas_mcp.resources.base import ResourceDescriptor
from maas_mcp.schemas import Subnet, SubnetParams, SubnetQuery
from maas_mcp.uri_patterns import SUBNET_DETAILS_URI_PATTERN, SUBNETS_LIST_URI_PATTERN

SUBNET_DETAILS = ResourceDescriptor(
    name="Subnet",
    uri_pattern=SUBNET_DETAILS_URI_PATTERN,
    kind="detail",
    entity_schema=Subnet,
    params_schema=SubnetParams,
    backend_path="/subnets/{subnet_id}/",
    id_param="subnet_id",
    mcp_name="maas_subnet_details",
    description="Details of a single MAAS subnet: CIDR, VLAN, space, gateway and DNS servers.",
)

SUBNETS_LIST = ResourceDescriptor(
    name="Subnets",
    uri_pattern=SUBNETS_LIST_URI_PATTERN,
    kind="list",
    entity_schema=Subnet,
    params_schema=SubnetQuery,
    backend_path="/subnets",
    filter_fields=("cidr", "name", "vlan", "space", "vlan_vid"),
    cache_options=CacheOptions(include_query_params=True),
    mcp_name="maas_subnets_list",
    description="List MAAS subnets, optionally filtered by cidr, name, vlan, space or vlan_vid.",
)

SUBNET_RESOURCES = [SUBNET_DETAILS, SUBNETS_LIST]
