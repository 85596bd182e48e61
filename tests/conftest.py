"""
Shared fixtures for the test suite.
"""

from __future__ import annotations

import copy
from unittest.mock import AsyncMock, MagicMock

import pytest

from maas_mcp.audit import AuditLogger
from maas_mcp.cache import CacheManager
from maas_mcp.resources.base import ResourceHandler


# ---------------------------------------------------------------------------
# Fake clock
# ---------------------------------------------------------------------------

class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return CacheManager(enabled=True, default_ttl=300, max_size=100, clock=clock)


@pytest.fixture
def audit():
    return MagicMock(spec=AuditLogger)


@pytest.fixture
def client():
    """Backend client double; queue return values on ``client.get``."""
    backend = MagicMock()
    backend.get = AsyncMock()
    backend.post = AsyncMock()
    backend.put = AsyncMock()
    backend.delete = AsyncMock()
    return backend


@pytest.fixture
def make_handler(client, cache, audit):
    def factory(descriptor, cache_manager=None):
        return ResourceHandler(descriptor, client, cache_manager or cache, audit)

    return factory


def sample(payload):
    """Fresh copy of a sample payload so tests can mutate it."""
    return copy.deepcopy(payload)


# ---------------------------------------------------------------------------
# Sample MAAS API payloads
# ---------------------------------------------------------------------------

MACHINE_JSON = {
    "system_id": "abc123",
    "hostname": "test-machine-1",
    "domain": {"id": 1, "name": "maas"},
    "architecture": "amd64/generic",
    "status": 4,
    "status_name": "Ready",
    "owner": "admin",
    "owner_data": {"key": "value"},
    "ip_addresses": ["192.168.1.100"],
    "cpu_count": 4,
    "memory": 8192,
    "zone": {"id": 1, "name": "default"},
    "pool": {"id": 1, "name": "default"},
    "tags": ["tag1", "tag2"],
}

SECOND_MACHINE_JSON = {
    **MACHINE_JSON,
    "system_id": "def456",
    "hostname": "test-machine-2",
    "status": 6,
    "status_name": "Deployed",
    "tags": ["web"],
}

# Missing every required field except system_id and hostname.
INVALID_MACHINE_JSON = {
    "system_id": "abc123",
    "hostname": "test-machine-1",
}

DEVICE_JSON = {
    "system_id": "dev001",
    "hostname": "printer-1",
    "domain": {"id": 1, "name": "maas"},
    "mac_addresses": ["00:16:3e:aa:bb:cc"],
    "ip_addresses": ["192.168.1.50"],
    "zone": {"id": 1, "name": "default"},
    "owner": "admin",
    "tags": [],
}

SUBNET_JSON = {
    "id": 10,
    "name": "test-subnet",
    "cidr": "192.168.1.0/24",
    "vid": 0,
    "vlan": {"id": 5001, "name": "untagged", "vid": 0, "fabric": "fabric-0"},
    "space": "default",
    "gateway_ip": "192.168.1.1",
    "dns_servers": ["8.8.8.8"],
    "managed": True,
}

ZONE_JSON = {"id": 1, "name": "default", "description": "Default zone"}

DOMAIN_JSON = {
    "id": 0,
    "name": "maas",
    "authoritative": True,
    "ttl": None,
    "resource_record_count": 5,
}

TAG_JSON = {
    "name": "virtual",
    "definition": "//node[@virtual]",
    "kernel_opts": "",
    "comment": "Virtual machines",
}
