"""
Audit sink for resource access.

Every terminal outcome of a resource request lands here: successful reads,
cache hits/misses/writes and failures. Events go through structlog with
``audit=True`` bound, so they can be split from ordinary diagnostics
downstream. Detail payloads are masked before logging.
"""

from __future__ import annotations

from typing import Any, Iterable, Mapping

import structlog

from maas_mcp.errors import MaasApiError

MASK = "********"
DEFAULT_SENSITIVE_FIELDS = ("password", "token", "secret", "key", "credential")
CACHE_OPERATIONS = ("hit", "miss", "set", "invalidate_all", "invalidate_by_id", "update_options")

# Logged verbatim even though the name contains "key".
_UNMASKED = frozenset({"cache_key"})


def mask_sensitive(value: Any, sensitive_fields: Iterable[str] = DEFAULT_SENSITIVE_FIELDS) -> Any:
    """Return a copy of ``value`` with sensitive mapping values masked, recursively."""
    needles = tuple(f.lower() for f in sensitive_fields)
    return _mask(value, needles)


def _mask(value: Any, needles: tuple[str, ...]) -> Any:
    if isinstance(value, Mapping):
        masked = {}
        for k, v in value.items():
            name = str(k)
            if name not in _UNMASKED and any(n in name.lower() for n in needles):
                masked[k] = MASK
            else:
                masked[k] = _mask(v, needles)
        return masked
    if isinstance(value, (list, tuple)):
        return [_mask(v, needles) for v in value]
    return value


class AuditLogger:
    def __init__(
        self,
        enabled: bool = True,
        sensitive_fields: Iterable[str] = DEFAULT_SENSITIVE_FIELDS,
        logger: Any = None,
    ) -> None:
        self.enabled = enabled
        self.sensitive_fields = tuple(sensitive_fields)
        self._log = logger if logger is not None else structlog.get_logger("maas_mcp.audit").bind(audit=True)

    def _emit(self, level: str, event: str, **fields: Any) -> None:
        if not self.enabled:
            return
        clean = {k: v for k, v in fields.items() if v is not None}
        getattr(self._log, level)(event, **mask_sensitive(clean, self.sensitive_fields))

    def log_resource_access(
        self,
        resource: str,
        resource_id: str | None = None,
        action: str = "read",
        request_id: str | None = None,
        details: Mapping[str, Any] | None = None,
    ) -> None:
        self._emit(
            "info",
            "resource_access",
            resource=resource,
            resource_id=resource_id,
            action=action,
            request_id=request_id,
            details=dict(details) if details else None,
        )

    def log_cache_operation(
        self,
        resource: str,
        operation: str,
        key: str,
        resource_id: str | None = None,
        meta: Mapping[str, Any] | None = None,
    ) -> None:
        if operation not in CACHE_OPERATIONS:
            raise ValueError(f"Unknown cache operation '{operation}'")
        self._emit(
            "debug" if operation in ("hit", "miss") else "info",
            "cache_operation",
            resource=resource,
            operation=operation,
            cache_key=key,
            resource_id=resource_id,
            meta=dict(meta) if meta else None,
        )

    def log_resource_access_failure(
        self,
        resource: str,
        resource_id: str | None,
        error: BaseException,
        request_id: str | None = None,
        details: Mapping[str, Any] | None = None,
    ) -> None:
        if isinstance(error, MaasApiError):
            error_fields = {"error_code": error.error_code.value, "status_code": error.status_code}
        else:
            error_fields = {"error_type": type(error).__name__}
        self._emit(
            "warning",
            "resource_access_failure",
            resource=resource,
            resource_id=resource_id,
            error=str(error),
            request_id=request_id,
            details=dict(details) if details else None,
            **error_fields,
        )
