"""
Unit tests for maas_mcp/formatters.py: pure functions, no mocking needed.
"""

import json
import xml.etree.ElementTree as ET

from maas_mcp.cache import CacheControl
from maas_mcp.formatters import (
    ResourceContent,
    ResponseEnvelope,
    ToolError,
    _err,
    build_headers,
    etag,
    kv_table,
    render_body,
    section,
    to_xml,
)


# ---------------------------------------------------------------------------
# render_body()
# ---------------------------------------------------------------------------

def test_render_json_by_default():
    text, mime = render_body({"a": 1})
    assert mime == "application/json"
    assert json.loads(text) == {"a": 1}


def test_render_xml_case_insensitive():
    text, mime = render_body({"a": 1}, "XML", root="zone")
    assert mime == "application/xml"
    assert text == "<zone><a>1</a></zone>"


def test_unsupported_format_falls_back_to_json():
    _, mime = render_body([1, 2], "csv")
    assert mime == "application/json"


# ---------------------------------------------------------------------------
# to_xml()
# ---------------------------------------------------------------------------

def test_xml_lists_nested_and_scalars():
    root = ET.fromstring(to_xml({"tags": ["a", "b"], "zone": {"name": "z"}, "locked": False, "owner": None}))
    assert [t.text for t in root.find("tags")] == ["a", "b"]
    assert root.find("zone/name").text == "z"
    assert root.find("locked").text == "false"
    assert root.find("owner").get("nil") == "true"


def test_xml_sanitizes_tag_names():
    root = ET.fromstring(to_xml({"1st key": "v", "a:b": "w"}))
    assert [child.tag for child in root] == ["_1st_key", "a_b"]


def test_xml_list_root():
    root = ET.fromstring(to_xml([{"id": 1}, {"id": 2}], root="zones"))
    assert root.tag == "zones"
    assert [item.find("id").text for item in root] == ["1", "2"]


# ---------------------------------------------------------------------------
# Headers and envelope
# ---------------------------------------------------------------------------

def test_headers_for_fresh_response():
    headers = build_headers("{}", "application/json", CacheControl(must_revalidate=True), ttl=30)
    assert headers["Content-Type"] == "application/json"
    assert headers["Cache-Control"] == "max-age=30, must-revalidate"
    assert "Age" not in headers
    assert headers["ETag"] == etag("{}")


def test_headers_for_cache_hit_include_age():
    headers = build_headers("{}", "application/json", CacheControl(), ttl=300, age=12)
    assert headers["Age"] == "12"


def test_headers_without_cache_control():
    headers = build_headers("{}", "application/json")
    assert set(headers) == {"Content-Type", "ETag"}


def test_etag_is_stable_and_content_sensitive():
    assert etag("a") == etag("a")
    assert etag("a") != etag("b")


def test_envelope_wire_shape():
    content = ResourceContent(uri="maas://zones/list", text="[]", headers={"Content-Type": "application/json"})
    assert ResponseEnvelope(contents=[content]).to_dict() == {
        "contents": [
            {
                "uri": "maas://zones/list",
                "text": "[]",
                "mimeType": "application/json",
                "headers": {"Content-Type": "application/json"},
            }
        ]
    }


# ---------------------------------------------------------------------------
# Tool output helpers
# ---------------------------------------------------------------------------

def test_err_is_tool_error():
    result = _err("bad")
    assert isinstance(result, ToolError)
    assert result[0].text == "Error: bad"


def test_section_format():
    lines = section("Cache", "body").splitlines()
    assert lines == ["Cache", "─────", "body"]


def test_kv_table_alignment():
    lines = kv_table([("short", "v1"), ("a-longer-key", "v2")]).splitlines()
    assert lines[0].index("v1") == lines[1].index("v2")


def test_kv_table_empty():
    assert kv_table([]) == ""
