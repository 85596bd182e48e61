"""
DNS domain resources.

  maas://domain/{domain_id}/details  : GET /domains/{domain_id}/
  maas://domains/list                : GET /domains
"""

from __future__ import annotations

from maas_mcp.cache import CacheOptions
from maas_mcp.resources.base import ResourceDescriptor
from maas_mcp.schemas import Domain, DomainParams, DomainQuery
from maas_mcp.uri_patterns import DOMAIN_DETAILS_URI_PATTERN, DOMAINS_LIST_URI_PATTERN

DOMAIN_DETAILS = ResourceDescriptor(
    name="Domain",
    uri_pattern=DOMAIN_DETAILS_URI_PATTERN,
    kind="detail",
    entity_schema=Domain,
    params_schema=DomainParams,
    backend_path="/domains/{domain_id}/",
    id_param="domain_id",
    mcp_name="maas_domain_details",
    description="Details of a single MAAS DNS domain: authority, TTL and record count.",
)

DOMAINS_LIST = ResourceDescriptor(
    name="Domains",
    uri_pattern=DOMAINS_LIST_URI_PATTERN,
    kind="list",
    entity_schema=Domain,
    params_schema=DomainQuery,
    backend_path="/domains",
    filter_fields=("name", "authoritative"),
    cache_options=CacheOptions(include_query_params=True),
    mcp_name="maas_domains_list",
    description="List MAAS DNS domains, optionally filtered by name or authoritative.",
)

DOMAIN_RESOURCES = [DOMAIN_DETAILS, DOMAINS_LIST]
