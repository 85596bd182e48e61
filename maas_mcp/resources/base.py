"""
Generic resource pipeline.

Every MAAS resource is one ``ResourceDescriptor`` (label, URI pattern,
schemas, backend path, cache options and a few optional hooks) served by a
single ``ResourceHandler``. Per request the handler:

  1. extracts and validates path + query parameters
  2. answers from the cache when it can
  3. otherwise runs the optional pre-check and fetches from MAAS
  4. validates the payload and stores it in the cache
  5. renders the response envelope with freshness headers

Every error leaving ``handle`` is a ``MaasApiError`` and is audited exactly
once. Cache faults are logged and bypassed, never surfaced.
"""

from __future__ import annotations

import asyncio
import threading
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Literal, Mapping, Optional
from urllib.parse import quote

import httpx
import structlog
from pydantic import BaseModel

from maas_mcp.audit import AuditLogger
from maas_mcp.cache import CacheEntry, CacheManager, CacheOptions
from maas_mcp.cancellation import CancellationToken
from maas_mcp.errors import ErrorCode, MaasApiError
from maas_mcp.formatters import ResourceContent, ResponseEnvelope, build_headers, render_body
from maas_mcp.uri_patterns import extract_params_from_uri, placeholders, query_params
from maas_mcp.validation import (
    extract_and_validate_params,
    validate_resource_data,
    validate_resource_list,
)

log = structlog.get_logger(__name__)

# Request parameters that steer rendering and auditing, never filtering.
CONTROL_PARAMS = ("format", "userId", "ipAddress")

QueryBuilder = Callable[[BaseModel], dict[str, Any]]
ParamCheck = Callable[[BaseModel], None]
PreCheck = Callable[[Any, BaseModel, Optional[CancellationToken]], Awaitable[None]]


# ---------------------------------------------------------------------------
# Descriptor and request context
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ResourceDescriptor:
    name: str
    uri_pattern: str
    kind: Literal["detail", "list"]
    entity_schema: type[BaseModel]
    params_schema: type[BaseModel]
    backend_path: str
    id_param: str | None = None
    filter_fields: tuple[str, ...] = ()
    cache_options: CacheOptions = field(default_factory=CacheOptions)
    mcp_name: str = ""
    description: str = ""
    build_query: QueryBuilder | None = None
    validate_params: ParamCheck | None = None
    pre_check: PreCheck | None = None

    @property
    def path_params(self) -> tuple[str, ...]:
        return tuple(placeholders(self.uri_pattern))

    @property
    def xml_root(self) -> str:
        return self.name.lower().replace(" ", "_")


@dataclass
class RequestContext:
    token: CancellationToken | None = None
    request_id: str | None = None


def backend_value(value: Any) -> Any:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return [backend_value(v) for v in value]
    return value


def default_query(descriptor: ResourceDescriptor, params: BaseModel) -> dict[str, Any]:
    """Every validated non-path parameter, as MAAS query values."""
    dumped = params.model_dump(exclude_none=True, exclude=set(descriptor.path_params))
    return {k: backend_value(v) for k, v in dumped.items()}


# ---------------------------------------------------------------------------
# Handler
# ---------------------------------------------------------------------------

class ResourceHandler:
    def __init__(
        self,
        descriptor: ResourceDescriptor,
        client: Any,
        cache: CacheManager,
        audit: AuditLogger,
    ) -> None:
        self.descriptor = descriptor
        self.client = client
        self.cache = cache
        self.audit = audit
        self._cache_options = descriptor.cache_options
        self._options_lock = threading.Lock()

    @property
    def name(self) -> str:
        return self.descriptor.name

    # -- cache control ------------------------------------------------------

    @property
    def cache_options(self) -> CacheOptions:
        return self._cache_options

    def set_cache_options(self, **changes: Any) -> CacheOptions:
        with self._options_lock:
            self._cache_options = self._cache_options.with_changes(**changes)
            options = self._cache_options
        self.audit.log_cache_operation(
            self.name,
            "update_options",
            f"{self.name}:*",
            meta={k: str(v) for k, v in changes.items()},
        )
        return options

    def invalidate_cache(self) -> int:
        count = self.cache.invalidate_resource(self.name)
        self.audit.log_cache_operation(self.name, "invalidate_all", f"{self.name}:*", meta={"removed": count})
        return count

    def invalidate_cache_by_id(self, resource_id: str) -> int:
        count = self.cache.invalidate_resource(self.name, resource_id)
        self.audit.log_cache_operation(
            self.name,
            "invalidate_by_id",
            f"{self.name}:*:{resource_id}",
            resource_id=resource_id,
            meta={"removed": count},
        )
        return count

    def effective_ttl(self, options: CacheOptions) -> int:
        return options.ttl if options.ttl is not None else self.cache.get_resource_ttl(self.name)

    # -- request entry point -------------------------------------------------

    async def handle(
        self,
        uri: str,
        raw_params: Mapping[str, Any] | None = None,
        context: RequestContext | None = None,
    ) -> ResponseEnvelope:
        ctx = context or RequestContext()
        d = self.descriptor

        query = {**query_params(uri), **{k: str(v) for k, v in (raw_params or {}).items() if v is not None}}
        control = {k: query.pop(k) for k in CONTROL_PARAMS if k in query}
        resource_id = extract_params_from_uri(uri, d.uri_pattern).get(d.id_param) if d.id_param else None

        try:
            return await self._process(uri, query, control, ctx)
        except MaasApiError as e:
            self.audit.log_resource_access_failure(self.name, resource_id, e, request_id=ctx.request_id)
            raise
        except Exception as e:  # noqa: BLE001
            log.exception("resource_unexpected_error", resource=self.name, uri=uri)
            error = MaasApiError(
                f"Unexpected error while handling {self.name} request: {e}",
                500,
                ErrorCode.UNEXPECTED_ERROR,
                {"error_type": type(e).__name__},
            )
            self.audit.log_resource_access_failure(self.name, resource_id, error, request_id=ctx.request_id)
            raise error from e

    async def _process(
        self,
        uri: str,
        query: dict[str, str],
        control: dict[str, str],
        ctx: RequestContext,
    ) -> ResponseEnvelope:
        d = self.descriptor
        params = extract_and_validate_params(uri, d.uri_pattern, d.params_schema, self.name, extra=query)
        if d.validate_params is not None:
            d.validate_params(params)
        resource_id = getattr(params, d.id_param) if d.id_param else None

        options = self._cache_options
        use_cache = self.cache.is_enabled() and options.enabled
        key = None
        if use_cache:
            key = self.cache.generate_cache_key(self.name, uri, query, options, resource_id)
            entry = self._cache_lookup(key, resource_id)
            if entry is not None:
                self._audit_access(resource_id, control, ctx, cached=True)
                return self._envelope(
                    uri, entry.value, control, options, age=entry.age(self.cache.now()), ttl=entry.ttl
                )

        if use_cache and d.kind == "list":
            self._invalidate_on_filter(params)

        payload = await self._fetch(params, resource_id, ctx.token)
        data = self._validate(payload, resource_id)

        if use_cache and key is not None:
            self._cache_store(key, data, options, resource_id)

        self._audit_access(resource_id, control, ctx, cached=False)
        return self._envelope(uri, data, control, options if use_cache else None)

    # -- pipeline steps ------------------------------------------------------

    def _cache_lookup(self, key: str, resource_id: str | None) -> CacheEntry | None:
        try:
            entry = self.cache.get_entry(key)
        except Exception as e:  # noqa: BLE001
            log.warning("cache_get_failed", resource=self.name, cache_key=key, error=str(e))
            return None
        self.audit.log_cache_operation(self.name, "hit" if entry is not None else "miss", key, resource_id)
        return entry

    def _cache_store(self, key: str, data: Any, options: CacheOptions, resource_id: str | None) -> None:
        try:
            self.cache.set(key, data, self.name, options)
        except Exception as e:  # noqa: BLE001
            log.warning("cache_set_failed", resource=self.name, cache_key=key, error=str(e))
            return
        self.audit.log_cache_operation(
            self.name, "set", key, resource_id, meta={"ttl": self.effective_ttl(options)}
        )

    def _invalidate_on_filter(self, params: BaseModel) -> None:
        present = sorted(set(self.descriptor.filter_fields) & params.model_fields_set)
        if not present:
            return
        try:
            count = self.cache.invalidate_resource(self.name)
        except Exception as e:  # noqa: BLE001
            log.warning("cache_invalidate_failed", resource=self.name, error=str(e))
            return
        self.audit.log_cache_operation(
            self.name,
            "invalidate_all",
            f"{self.name}:*",
            meta={"reason": "filter", "filters": ",".join(present), "removed": count},
        )

    def backend_path(self, params: BaseModel) -> str:
        values = {
            name: quote(str(getattr(params, name)), safe="")
            for name in self.descriptor.path_params
        }
        return self.descriptor.backend_path.format(**values)

    def backend_query(self, params: BaseModel) -> dict[str, Any]:
        if self.descriptor.build_query is not None:
            return self.descriptor.build_query(params)
        return default_query(self.descriptor, params)

    async def _fetch(
        self,
        params: BaseModel,
        resource_id: str | None,
        token: CancellationToken | None,
    ) -> Any:
        if token is not None:
            token.raise_if_cancelled()
        if self.descriptor.pre_check is not None:
            await self.descriptor.pre_check(self.client, params, token)

        path = self.backend_path(params)
        query = self.backend_query(params)
        try:
            call = self.client.get(path, query or None, token)
            payload = await (token.guard(call) if token is not None else call)
        except MaasApiError as e:
            if e.error_code == ErrorCode.RESOURCE_NOT_FOUND and resource_id and self.descriptor.kind == "detail":
                raise MaasApiError(
                    f"{self.name} '{resource_id}' not found", 404, ErrorCode.RESOURCE_NOT_FOUND, e.details
                ) from e
            raise
        except (httpx.TimeoutException, asyncio.TimeoutError) as e:
            raise MaasApiError(
                f"Request to MAAS timed out while fetching {self.name}", 504, ErrorCode.REQUEST_TIMEOUT
            ) from e
        except (httpx.TransportError, OSError) as e:
            raise MaasApiError(
                f"Network error while fetching {self.name}: {e}", 503, ErrorCode.NETWORK_ERROR
            ) from e

        if self.descriptor.kind == "detail" and payload is None:
            raise MaasApiError(f"{self.name} '{resource_id}' not found", 404, ErrorCode.RESOURCE_NOT_FOUND)
        log.debug("resource_fetched", resource=self.name, resource_id=resource_id, path=path)
        return payload

    def _validate(self, payload: Any, resource_id: str | None) -> Any:
        schema = self.descriptor.entity_schema
        if self.descriptor.kind == "list":
            return validate_resource_list(payload, schema, self.name)
        return validate_resource_data(payload, schema, self.name, resource_id)

    def _audit_access(
        self,
        resource_id: str | None,
        control: Mapping[str, str],
        ctx: RequestContext,
        cached: bool,
    ) -> None:
        details = {"cache": "hit" if cached else "miss"}
        if "userId" in control:
            details["user_id"] = control["userId"]
        if "ipAddress" in control:
            details["ip_address"] = control["ipAddress"]
        self.audit.log_resource_access(self.name, resource_id, request_id=ctx.request_id, details=details)

    def _envelope(
        self,
        uri: str,
        data: Any,
        control: Mapping[str, str],
        options: CacheOptions | None,
        age: int | None = None,
        ttl: int | None = None,
    ) -> ResponseEnvelope:
        text, mime_type = render_body(data, control.get("format"), root=self.descriptor.xml_root)
        headers = build_headers(
            text,
            mime_type,
            cache_control=options.cache_control if options is not None else None,
            ttl=ttl if ttl is not None else (self.effective_ttl(options) if options is not None else None),
            age=age,
        )
        return ResponseEnvelope(contents=[ResourceContent(uri=uri, text=text, mime_type=mime_type, headers=headers)])
