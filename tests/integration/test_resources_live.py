"""
Integration tests for the resource pipeline against a live MAAS.
"""

from __future__ import annotations

import json

import pytest

from maas_mcp.config import load_settings
from maas_mcp.errors import ErrorCode, MaasApiError
from maas_mcp.server import build_components
from tests.integration.conftest import skip_no_maas

pytestmark = [pytest.mark.integration, skip_no_maas]


@pytest.fixture
async def live():
    client, cache, audit, router = build_components(load_settings())
    yield router, cache
    await client.aclose()


async def test_zones_list_live(live):
    router, _ = live
    envelope = await router.read("maas://zones/list")
    zones = json.loads(envelope.contents[0].text)
    assert any(z["name"] == "default" for z in zones)


async def test_machines_list_is_cached_live(live):
    router, cache = live
    await router.read("maas://machines/list?limit=1")
    envelope = await router.read("maas://machines/list?limit=1")
    assert "Age" in envelope.contents[0].headers
    assert cache.stats()["hits"] >= 1


async def test_machine_details_live(live):
    router, _ = live
    machines = json.loads((await router.read("maas://machines/list?limit=1")).contents[0].text)
    if not machines:
        pytest.skip("no machines enrolled")
    system_id = machines[0]["system_id"]
    envelope = await router.read(f"maas://machine/{system_id}/details")
    assert json.loads(envelope.contents[0].text)["system_id"] == system_id


async def test_unknown_machine_live(live):
    router, _ = live
    with pytest.raises(MaasApiError) as exc_info:
        await router.read("maas://machine/doesnotexist/details")
    assert exc_info.value.error_code == ErrorCode.RESOURCE_NOT_FOUND


async def test_unknown_tag_machines_live(live):
    router, _ = live
    with pytest.raises(MaasApiError) as exc_info:
        await router.read("maas://tag/no-such-tag-xyz/machines")
    assert exc_info.value.message == "Tag 'no-such-tag-xyz' not found"
