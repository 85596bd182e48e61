"""
Device resources (non-deployable hosts MAAS tracks for IP/DNS purposes).

  maas://device/{system_id}/details  : GET /devices/{system_id}/
  maas://devices/list                : GET /devices
"""

from __future__ import annotations

from maas_mcp.cache import CacheOptions
from maas_mcp.resources.base import ResourceDescriptor
from maas_mcp.schemas import Device, DeviceParams, DeviceQuery
from maas_mcp.uri_patterns import DEVICE_DETAILS_URI_PATTERN, DEVICES_LIST_URI_PATTERN

DEVICE_DETAILS = ResourceDescriptor(
    name="Device",
    uri_pattern=DEVICE_DETAILS_URI_PATTERN,
    kind="detail",
    entity_schema=Device,
    params_schema=DeviceParams,
    backend_path="/devices/{system_id}/",
    id_param="system_id",
    mcp_name="maas_device_details",
    description="Details of a single MAAS device: hostname, MAC and IP addresses, zone and parent.",
)

DEVICES_LIST = ResourceDescriptor(
    name="Devices",
    uri_pattern=DEVICES_LIST_URI_PATTERN,
    kind="list",
    entity_schema=Device,
    params_schema=DeviceQuery,
    backend_path="/devices",
    filter_fields=("hostname", "mac_address", "zone", "owner"),
    cache_options=CacheOptions(include_query_params=True),
    mcp_name="maas_devices_list",
    description="List MAAS devices, optionally filtered by hostname, mac_address, zone or owner.",
)

DEVICE_RESOURCES = [DEVICE_DETAILS, DEVICES_LIST]
