"""
Integration test fixtures: requires a reachable MAAS server.

Set MAAS_API_URL and MAAS_API_KEY to run these.
"""

from __future__ import annotations

import os

import httpx
import pytest


def _maas_reachable() -> bool:
    url = os.environ.get("MAAS_API_URL")
    if not url or not os.environ.get("MAAS_API_KEY"):
        return False
    try:
        response = httpx.get(f"{url.rstrip('/')}/api/2.0/version/", timeout=5)
        return response.status_code < 500
    except httpx.HTTPError:
        return False


skip_no_maas = pytest.mark.skipif(
    not _maas_reachable(),
    reason="MAAS not reachable (set MAAS_API_URL / MAAS_API_KEY) - skipping integration tests",
)
