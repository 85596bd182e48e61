"""Response envelope, freshness headers, XML rendering and tool output helpers."""

from __future__ import annotations

import hashlib
import json
import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from typing import Any

import structlog
from mcp.types import TextContent

from maas_mcp.cache import CacheControl

log = structlog.get_logger(__name__)

JSON_MIME = "application/json"
XML_MIME = "application/xml"


# ---------------------------------------------------------------------------
# Envelope
# ---------------------------------------------------------------------------

@dataclass
class ResourceContent:
    uri: str
    text: str
    mime_type: str = JSON_MIME
    headers: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "uri": self.uri,
            "text": self.text,
            "mimeType": self.mime_type,
            "headers": dict(self.headers),
        }


@dataclass
class ResponseEnvelope:
    contents: list[ResourceContent]

    def to_dict(self) -> dict[str, Any]:
        return {"contents": [c.to_dict() for c in self.contents]}


# ---------------------------------------------------------------------------
# Headers
# ---------------------------------------------------------------------------

def etag(text: str) -> str:
    return '"' + hashlib.sha256(text.encode()).hexdigest()[:32] + '"'


def build_headers(
    text: str,
    mime_type: str,
    cache_control: CacheControl | None = None,
    ttl: int | None = None,
    age: int | None = None,
) -> dict[str, str]:
    """Headers for one response.

    ``Age`` is only present for cache hits. ``Cache-Control`` is only present
    when the resource is cacheable.
    """
    headers = {"Content-Type": mime_type}
    if cache_control is not None and ttl is not None:
        headers["Cache-Control"] = cache_control.header_value(ttl)
    if age is not None:
        headers["Age"] = str(age)
    headers["ETag"] = etag(text)
    return headers


# ---------------------------------------------------------------------------
# Body rendering
# ---------------------------------------------------------------------------

_BAD_TAG_CHARS = re.compile(r"[^A-Za-z0-9_.-]")


def _tag(name: Any) -> str:
    tag = _BAD_TAG_CHARS.sub("_", str(name)) or "_"
    if not (tag[0].isalpha() or tag[0] == "_"):
        tag = f"_{tag}"
    return tag


def _to_element(tag: str, value: Any) -> ET.Element:
    elem = ET.Element(_tag(tag))
    if isinstance(value, dict):
        for k, v in value.items():
            elem.append(_to_element(k, v))
    elif isinstance(value, list):
        for item in value:
            elem.append(_to_element("item", item))
    elif value is None:
        elem.set("nil", "true")
    elif isinstance(value, bool):
        elem.text = "true" if value else "false"
    else:
        elem.text = str(value)
    return elem


def to_xml(payload: Any, root: str = "response") -> str:
    return ET.tostring(_to_element(root, payload), encoding="unicode")


def render_body(payload: Any, fmt: str | None = None, root: str = "response") -> tuple[str, str]:
    """Serialize ``payload``; returns ``(text, mime_type)``.

    Only ``xml`` is recognised besides JSON. Anything else, or an XML
    rendering failure, yields JSON.
    """
    if fmt and fmt.lower() == "xml":
        try:
            return to_xml(payload, root), XML_MIME
        except (TypeError, ValueError) as e:
            log.warning("xml_render_failed", error=str(e))
    return json.dumps(payload), JSON_MIME


# ---------------------------------------------------------------------------
# Tool output
# ---------------------------------------------------------------------------

class ToolError(list):
    """Sentinel list subclass returned by tool handlers to indicate an error.

    ``server.py`` detects it with ``isinstance()`` and sets ``isError=True``.
    """


def _err(msg: str) -> list[TextContent]:
    return ToolError([TextContent(type="text", text=f"Error: {msg}")])


def section(title: str, body: str) -> str:
    bar = "─" * len(title)
    return f"{title}\n{bar}\n{body}"


def kv_table(pairs: list[tuple[str, Any]], indent: int = 0) -> str:
    if not pairs:
        return ""
    max_key = max(len(str(k)) for k, _ in pairs)
    pad = " " * indent
    return "\n".join(f"{pad}{str(k).ljust(max_key)}  {v}" for k, v in pairs)
