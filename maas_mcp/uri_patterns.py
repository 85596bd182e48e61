"""
URI patterns for MAAS resources and the matcher that extracts their parameters.

Patterns look like ``maas://machine/{system_id}/details``: a fixed scheme,
then ``/``-separated segments that are either literals or ``{name}``
placeholders.

  maas://machine/{system_id}/details  : one machine
  maas://machines/list                : machine collection
  maas://device/{system_id}/details   : one device
  maas://devices/list                 : device collection
  maas://subnet/{subnet_id}/details   : one subnet
  maas://subnets/list                 : subnet collection
  maas://zone/{zone_id}/details       : one zone
  maas://zones/list                   : zone collection
  maas://domain/{domain_id}/details   : one domain
  maas://domains/list                 : domain collection
  maas://tag/{tag_name}/details       : one tag
  maas://tags/list                    : tag collection
  maas://tag/{tag_name}/machines      : machines carrying a tag
"""

from __future__ import annotations

import re
from urllib.parse import parse_qsl, urlsplit

SCHEME = "maas"

MACHINE_DETAILS_URI_PATTERN = "maas://machine/{system_id}/details"
MACHINES_LIST_URI_PATTERN = "maas://machines/list"
DEVICE_DETAILS_URI_PATTERN = "maas://device/{system_id}/details"
DEVICES_LIST_URI_PATTERN = "maas://devices/list"
SUBNET_DETAILS_URI_PATTERN = "maas://subnet/{subnet_id}/details"
SUBNETS_LIST_URI_PATTERN = "maas://subnets/list"
ZONE_DETAILS_URI_PATTERN = "maas://zone/{zone_id}/details"
ZONES_LIST_URI_PATTERN = "maas://zones/list"
DOMAIN_DETAILS_URI_PATTERN = "maas://domain/{domain_id}/details"
DOMAINS_LIST_URI_PATTERN = "maas://domains/list"
TAG_DETAILS_URI_PATTERN = "maas://tag/{tag_name}/details"
TAGS_LIST_URI_PATTERN = "maas://tags/list"
TAG_MACHINES_URI_PATTERN = "maas://tag/{tag_name}/machines"

_PLACEHOLDER = re.compile(r"^\{([A-Za-z_][A-Za-z0-9_]*)\}$")


def _segments(uri: str) -> tuple[str, list[str]]:
    """Split a URI into its scheme and path segments (authority included)."""
    parts = urlsplit(uri)
    path = f"{parts.netloc}{parts.path}".strip("/")
    return parts.scheme, path.split("/") if path else []


def uri_path(uri: str) -> str:
    """Return the ``netloc/path`` part of a URI with query and fragment removed."""
    _, segments = _segments(uri)
    return "/".join(segments)


def query_params(uri: str) -> dict[str, str]:
    """Return the query component as a flat mapping (last value wins)."""
    return dict(parse_qsl(urlsplit(uri).query, keep_blank_values=True))


def placeholders(pattern: str) -> list[str]:
    """Placeholder names of a pattern, in document order."""
    _, segments = _segments(pattern)
    names = []
    for segment in segments:
        m = _PLACEHOLDER.match(segment)
        if m:
            names.append(m.group(1))
    return names


def extract_params_from_uri(uri: str, pattern: str) -> dict[str, str]:
    """Match ``uri`` against ``pattern`` and return the placeholder values.

    Returns an empty mapping when the scheme differs, the segment count
    differs, a literal segment differs, or any placeholder would bind to an
    empty segment. Values are taken verbatim and case is preserved.
    """
    uri_scheme, uri_segments = _segments(uri)
    pattern_scheme, pattern_segments = _segments(pattern)

    if uri_scheme != pattern_scheme:
        return {}
    if len(uri_segments) != len(pattern_segments):
        return {}

    params: dict[str, str] = {}
    for actual, expected in zip(uri_segments, pattern_segments):
        m = _PLACEHOLDER.match(expected)
        if m:
            if actual == "":
                return {}
            params[m.group(1)] = actual
        elif actual != expected:
            return {}
    return params


def matches(uri: str, pattern: str) -> bool:
    """True when ``uri`` has the same shape as ``pattern``."""
    uri_scheme, uri_segments = _segments(uri)
    pattern_scheme, pattern_segments = _segments(pattern)
    if uri_scheme != pattern_scheme or len(uri_segments) != len(pattern_segments):
        return False
    if placeholders(pattern):
        return bool(extract_params_from_uri(uri, pattern))
    return uri_segments == pattern_segments
