"""
pydantic models for MAAS entities, URI path parameters and collection queries.

Entity models keep unknown fields (MAAS adds fields between releases) and
only insist on the handful every consumer relies on. Collection query models
are strict: an unrecognised query key is a client error.
"""

from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, NonNegativeInt, PositiveInt, field_validator


# ---------------------------------------------------------------------------
# Shared pieces
# ---------------------------------------------------------------------------

class _Entity(BaseModel):
    model_config = ConfigDict(extra="allow")


class NamedRef(_Entity):
    """``{id, name}`` references embedded in machines and devices."""

    id: Optional[int] = None
    name: str


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------

class Machine(_Entity):
    system_id: str
    hostname: str
    domain: NamedRef
    architecture: str
    status: int
    status_name: str
    owner: Optional[str] = None
    owner_data: Optional[dict[str, Any]] = None
    ip_addresses: Optional[list[str]] = None
    cpu_count: Optional[int] = None
    memory: Optional[int] = None
    zone: NamedRef
    pool: NamedRef
    tags: list[str] = Field(default_factory=list)


class Device(_Entity):
    system_id: str
    hostname: str
    domain: Optional[NamedRef] = None
    owner: Optional[str] = None
    owner_data: Optional[dict[str, Any]] = None
    ip_addresses: Optional[list[str]] = None
    mac_addresses: Optional[list[str]] = None
    zone: Optional[NamedRef] = None
    parent: Optional[str] = None
    tags: list[str] = Field(default_factory=list)


class Subnet(_Entity):
    id: int
    name: str
    cidr: str
    vlan: Optional[dict[str, Any]] = None
    space: Optional[str] = None
    gateway_ip: Optional[str] = None
    dns_servers: Optional[list[str]] = None
    managed: Optional[bool] = None


class Zone(_Entity):
    id: int
    name: str
    description: Optional[str] = None


class Domain(_Entity):
    id: int
    name: str
    authoritative: Optional[bool] = None
    ttl: Optional[int] = None
    resource_record_count: Optional[int] = None


class Tag(_Entity):
    name: str
    definition: Optional[str] = None
    comment: Optional[str] = None
    kernel_opts: Optional[str] = None


# ---------------------------------------------------------------------------
# Path parameters
# ---------------------------------------------------------------------------

class _PathParams(BaseModel):
    # Query parameters reach detail handlers too (format=xml); ignore them.
    model_config = ConfigDict(extra="ignore")


class MachineParams(_PathParams):
    system_id: str = Field(min_length=1)


class DeviceParams(_PathParams):
    system_id: str = Field(min_length=1)


class SubnetParams(_PathParams):
    subnet_id: str = Field(min_length=1)


class ZoneParams(_PathParams):
    zone_id: str = Field(min_length=1)


class DomainParams(_PathParams):
    domain_id: str = Field(min_length=1)


class TagParams(_PathParams):
    tag_name: str = Field(min_length=1)


# ---------------------------------------------------------------------------
# Collection query parameters
# ---------------------------------------------------------------------------

class CollectionQuery(BaseModel):
    """Pagination and sorting accepted by every list resource."""

    model_config = ConfigDict(extra="forbid")

    limit: Optional[PositiveInt] = None
    offset: Optional[NonNegativeInt] = None
    page: Optional[PositiveInt] = None
    per_page: Optional[PositiveInt] = None
    sort: Optional[str] = None
    order: Optional[Literal["asc", "desc"]] = None


class MachineQuery(CollectionQuery):
    hostname: Optional[str] = None
    status: Optional[str] = None
    zone: Optional[str] = None
    pool: Optional[str] = None
    tags: Optional[str] = None
    owner: Optional[str] = None
    architecture: Optional[str] = None
    not_tags: Optional[str] = None
    tag_names: Optional[list[str]] = None
    not_tag_names: Optional[list[str]] = None
    mac_addresses: Optional[list[str]] = None
    agent_name: Optional[str] = None
    domain: Optional[str] = None
    id: Optional[str] = None
    not_id: Optional[str] = None
    parent: Optional[str] = None
    arch: Optional[str] = None
    not_arch: Optional[str] = None
    cpu_count: Optional[PositiveInt] = None
    memory: Optional[PositiveInt] = None
    pod: Optional[str] = None
    not_pod: Optional[str] = None
    pod_type: Optional[str] = None
    not_status: Optional[str] = None
    not_pool: Optional[str] = None
    locked: Optional[bool] = None
    vlans: Optional[str] = None
    not_vlans: Optional[str] = None
    fabrics: Optional[str] = None
    not_fabrics: Optional[str] = None
    osystem: Optional[str] = None
    power_state: Optional[str] = None
    power_type: Optional[str] = None
    gpu_count: Optional[NonNegativeInt] = None
    is_virtual_machine: Optional[bool] = None
    comment: Optional[str] = None

    @field_validator("tag_names", "not_tag_names", "mac_addresses", mode="before")
    @classmethod
    def split_csv(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        return value


class DeviceQuery(CollectionQuery):
    hostname: Optional[str] = None
    mac_address: Optional[str] = None
    zone: Optional[str] = None
    owner: Optional[str] = None


class SubnetQuery(CollectionQuery):
    cidr: Optional[str] = None
    name: Optional[str] = None
    vlan: Optional[str] = None
    space: Optional[str] = None
    vlan_vid: Optional[int] = Field(default=None, ge=0, le=4095)


class ZoneQuery(CollectionQuery):
    name: Optional[str] = None


class DomainQuery(CollectionQuery):
    name: Optional[str] = None
    authoritative: Optional[Literal["true", "false"]] = None


class TagQuery(CollectionQuery):
    name: Optional[str] = None
    definition: Optional[str] = None
    kernel_opts: Optional[str] = None


class TagMachinesParams(CollectionQuery):
    """Path parameter of ``maas://tag/{tag_name}/machines`` plus pagination."""

    tag_name: str = Field(min_length=1)
