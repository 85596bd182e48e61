"""
Tag resources.

  maas://tag/{tag_name}/details   : GET /tags/{tag_name}/
  maas://tags/list                : GET /tags
  maas://tag/{tag_name}/machines  : GET /machines?tags=<tag_name>

Tag names are restricted to letters, digits, ``_`` and ``-``. The
tag-machines resource confirms the tag exists first so that an unknown tag
reads as "tag not found" rather than an empty machine list.
"""

from __future__ import annotations

import re
from typing import Any
from urllib.parse import quote

import structlog
from pydantic import BaseModel

from maas_mcp.cache import CacheOptions
from maas_mcp.cancellation import CancellationToken
from maas_mcp.errors import ErrorCode, MaasApiError, RequestAborted
from maas_mcp.resources.base import ResourceDescriptor, backend_value
from maas_mcp.schemas import Machine, Tag, TagMachinesParams, TagParams, TagQuery
from maas_mcp.uri_patterns import TAG_DETAILS_URI_PATTERN, TAG_MACHINES_URI_PATTERN, TAGS_LIST_URI_PATTERN

log = structlog.get_logger(__name__)

TAG_NAME_RE = re.compile(r"^[a-zA-Z0-9_-]+$")


def check_tag_name(params: BaseModel) -> None:
    name = getattr(params, "tag_name")
    if not TAG_NAME_RE.match(name):
        raise MaasApiError(
            f"Invalid tag name format: '{name}'. Tag names may only contain letters, numbers, "
            "underscores and hyphens",
            400,
            ErrorCode.INVALID_PARAMETER_FORMAT,
        )


async def require_tag(client: Any, params: BaseModel, token: CancellationToken | None) -> None:
    """Fail with 404 when the tag is unknown. Other lookup failures only warn."""
    name = getattr(params, "tag_name")
    try:
        await client.get(f"/tags/{quote(name, safe='')}/", None, token)
    except RequestAborted:
        raise
    except MaasApiError as e:
        if e.status_code == 404:
            raise MaasApiError(f"Tag '{name}' not found", 404, ErrorCode.RESOURCE_NOT_FOUND) from e
        log.warning("tag_precheck_failed", tag=name, status=e.status_code, error=e.message)
    except Exception as e:
        log.warning("tag_precheck_failed", tag=name, error=str(e), error_type=type(e).__name__)


def tag_machines_query(params: BaseModel) -> dict[str, Any]:
    dumped = params.model_dump(exclude_none=True, exclude={"tag_name"})
    query = {k: backend_value(v) for k, v in dumped.items()}
    query["tags"] = getattr(params, "tag_name")
    return query


TAG_DETAILS = ResourceDescriptor(
    name="Tag",
    uri_pattern=TAG_DETAILS_URI_PATTERN,
    kind="detail",
    entity_schema=Tag,
    params_schema=TagParams,
    backend_path="/tags/{tag_name}/",
    id_param="tag_name",
    validate_params=check_tag_name,
    mcp_name="maas_tag_details",
    description="Details of a single MAAS tag: definition, comment and kernel options.",
)

TAGS_LIST = ResourceDescriptor(
    name="Tags",
    uri_pattern=TAGS_LIST_URI_PATTERN,
    kind="list",
    entity_schema=Tag,
    params_schema=TagQuery,
    backend_path="/tags",
    filter_fields=("name", "definition", "kernel_opts"),
    cache_options=CacheOptions(include_query_params=True),
    mcp_name="maas_tags_list",
    description="List MAAS tags, optionally filtered by name, definition or kernel_opts.",
)

TAG_MACHINES = ResourceDescriptor(
    name="Tag Machines",
    uri_pattern=TAG_MACHINES_URI_PATTERN,
    kind="list",
    entity_schema=Machine,
    params_schema=TagMachinesParams,
    backend_path="/machines",
    id_param="tag_name",
    cache_options=CacheOptions(include_query_params=True),
    build_query=tag_machines_query,
    validate_params=check_tag_name,
    pre_check=require_tag,
    mcp_name="maas_tag_machines",
    description="List the MAAS machines carrying a given tag. Fails with not found when the tag does not exist.",
)

TAG_RESOURCES = [TAG_DETAILS, TAGS_LIST, TAG_MACHINES]
