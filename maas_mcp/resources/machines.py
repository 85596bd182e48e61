"""
Machine resources.

  maas://machine/{system_id}/details  : one machine, GET /machines/{system_id}/
  maas://machines/list                : machine collection, GET /machines

Machines change state often (commissioning, deploying, releasing), so both
resources carry short TTLs and must-revalidate.
"""

from __future__ import annotations

from maas_mcp.cache import CacheControl, CacheOptions
from maas_mcp.resources.base import ResourceDescriptor
from maas_mcp.schemas import Machine, MachineParams, MachineQuery
from maas_mcp.uri_patterns import MACHINE_DETAILS_URI_PATTERN, MACHINES_LIST_URI_PATTERN

MACHINE_FILTER_FIELDS = ("hostname", "status", "zone", "pool", "tags", "owner", "architecture")

# Every accepted query field is forwarded to MAAS, so every one must key the cache.
MACHINE_QUERY_FIELDS = tuple(MachineQuery.model_fields)

MACHINE_DETAILS = ResourceDescriptor(
    name="Machine",
    uri_pattern=MACHINE_DETAILS_URI_PATTERN,
    kind="detail",
    entity_schema=Machine,
    params_schema=MachineParams,
    backend_path="/machines/{system_id}/",
    id_param="system_id",
    cache_options=CacheOptions(
        ttl=60,
        cache_control=CacheControl(max_age=60, must_revalidate=True),
    ),
    mcp_name="maas_machine_details",
    description="Details of a single MAAS machine: status, hardware, network addresses, zone, pool and tags.",
)

MACHINES_LIST = ResourceDescriptor(
    name="Machines",
    uri_pattern=MACHINES_LIST_URI_PATTERN,
    kind="list",
    entity_schema=Machine,
    params_schema=MachineQuery,
    backend_path="/machines",
    filter_fields=MACHINE_FILTER_FIELDS,
    cache_options=CacheOptions(
        ttl=30,
        cache_control=CacheControl(max_age=30, must_revalidate=True),
        include_query_params=True,
        include_query_params_list=MACHINE_QUERY_FIELDS,
    ),
    mcp_name="maas_machines_list",
    description=(
        "List MAAS machines. Filter with query parameters such as hostname, status, zone, "
        "pool, tags, owner or architecture; paginate with limit/offset or page/per_page."
    ),
)

MACHINE_RESOURCES = [MACHINE_DETAILS, MACHINES_LIST]
