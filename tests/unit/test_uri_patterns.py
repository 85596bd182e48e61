"""
Unit tests for maas_mcp/uri_patterns.py.
"""

from __future__ import annotations

import pytest

from maas_mcp.uri_patterns import (
    MACHINE_DETAILS_URI_PATTERN,
    MACHINES_LIST_URI_PATTERN,
    TAG_MACHINES_URI_PATTERN,
    extract_params_from_uri,
    matches,
    placeholders,
    query_params,
    uri_path,
)


# ---------------------------------------------------------------------------
# extract_params_from_uri
# ---------------------------------------------------------------------------

def test_extracts_single_placeholder():
    assert extract_params_from_uri("maas://machine/abc123/details", MACHINE_DETAILS_URI_PATTERN) == {
        "system_id": "abc123"
    }


def test_extracts_multiple_placeholders_in_order():
    pattern = "maas://fabric/{fabric_id}/vlan/{vid}/details"
    params = extract_params_from_uri("maas://fabric/3/vlan/100/details", pattern)
    assert params == {"fabric_id": "3", "vid": "100"}
    assert list(params) == ["fabric_id", "vid"]


@pytest.mark.parametrize(
    "uri",
    [
        "maas://machine/abc123",
        "maas://machine/abc123/details/extra",
        "maas://machine",
    ],
)
def test_segment_count_mismatch_returns_empty(uri):
    assert extract_params_from_uri(uri, MACHINE_DETAILS_URI_PATTERN) == {}


def test_empty_id_segment_returns_empty():
    assert extract_params_from_uri("maas://machine//details", MACHINE_DETAILS_URI_PATTERN) == {}


def test_literal_mismatch_returns_empty():
    assert extract_params_from_uri("maas://device/abc123/details", MACHINE_DETAILS_URI_PATTERN) == {}
    assert extract_params_from_uri("maas://machine/abc123/summary", MACHINE_DETAILS_URI_PATTERN) == {}


def test_scheme_mismatch_returns_empty():
    assert extract_params_from_uri("http://machine/abc123/details", MACHINE_DETAILS_URI_PATTERN) == {}


def test_values_are_case_preserved():
    params = extract_params_from_uri("maas://tag/Web-Servers/machines", TAG_MACHINES_URI_PATTERN)
    assert params == {"tag_name": "Web-Servers"}


def test_query_string_is_not_extracted():
    params = extract_params_from_uri("maas://machine/abc123/details?format=xml", MACHINE_DETAILS_URI_PATTERN)
    assert params == {"system_id": "abc123"}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def test_matches_static_pattern():
    assert matches("maas://machines/list", MACHINES_LIST_URI_PATTERN)
    assert not matches("maas://devices/list", MACHINES_LIST_URI_PATTERN)
    assert not matches("maas://machines/list/extra", MACHINES_LIST_URI_PATTERN)


def test_matches_templated_pattern():
    assert matches("maas://machine/x/details", MACHINE_DETAILS_URI_PATTERN)
    assert not matches("maas://machine//details", MACHINE_DETAILS_URI_PATTERN)


def test_placeholders():
    assert placeholders(MACHINE_DETAILS_URI_PATTERN) == ["system_id"]
    assert placeholders(MACHINES_LIST_URI_PATTERN) == []


def test_query_params_and_path():
    uri = "maas://machines/list?hostname=web01&limit=5&empty="
    assert query_params(uri) == {"hostname": "web01", "limit": "5", "empty": ""}
    assert uri_path(uri) == "machines/list"
