"""
Async MAAS REST client.

Talks to ``<MAAS_API_URL>/api/2.0`` with OAuth 1.0 PLAINTEXT signing. The
resource pipeline only relies on the narrow ``get/post/put/delete`` surface
below, so tests substitute an ``AsyncMock`` or an ``httpx.MockTransport``.

Retry policy:
  - 429, 502, 503, 504 responses and transport errors are retried
  - backoff doubles from ``backoff_base`` (1s, 2s, 4s ...), or follows a
    longer ``Retry-After`` header
  - backoff sleeps wake up early when the cancellation token fires
"""

from __future__ import annotations

import asyncio
import json
import secrets
import time
from typing import Any, Mapping
from urllib.parse import quote

import httpx
import structlog

from maas_mcp.cancellation import CancellationToken
from maas_mcp.errors import ErrorCode, MaasApiError, from_upstream_status

log = structlog.get_logger(__name__)

API_PREFIX = "/api/2.0"
RETRYABLE_STATUS_CODES = frozenset({429, 502, 503, 504})


def parse_api_key(api_key: str) -> tuple[str, str, str]:
    parts = api_key.split(":")
    if len(parts) != 3 or not all(parts):
        raise ValueError("Invalid MAAS API key format. Expected <consumer_key>:<token_key>:<token_secret>")
    return parts[0], parts[1], parts[2]


def _retry_after(value: str | None) -> float | None:
    if not value:
        return None
    try:
        seconds = float(value)
    except ValueError:
        return None
    return seconds if seconds > 0 else None


class MaasApiClient:
    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout: float = 30.0,
        max_retries: int = 3,
        transport: httpx.AsyncBaseTransport | None = None,
        backoff_base: float = 1.0,
    ) -> None:
        self._consumer_key, self._token_key, self._token_secret = parse_api_key(api_key)
        self.base_url = base_url.rstrip("/")
        self.max_retries = max_retries
        self.backoff_base = backoff_base
        self._http = httpx.AsyncClient(
            base_url=f"{self.base_url}{API_PREFIX}",
            timeout=timeout,
            transport=transport,
            headers={"Accept": "application/json, text/plain, */*"},
        )

    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> "MaasApiClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    def authorization_header(self) -> str:
        """Fresh OAuth PLAINTEXT header. Nonce and timestamp change per call."""
        params = {
            "oauth_consumer_key": self._consumer_key,
            "oauth_token": self._token_key,
            "oauth_signature_method": "PLAINTEXT",
            "oauth_timestamp": str(int(time.time())),
            "oauth_nonce": secrets.token_hex(16),
            "oauth_version": "1.0",
            "oauth_signature": f"&{quote(self._token_secret, safe='')}",
        }
        pairs = sorted(f'{quote(k, safe="")}="{quote(v, safe="")}"' for k, v in params.items())
        return "OAuth " + ", ".join(pairs)

    # ------------------------------------------------------------------
    # Verbs
    # ------------------------------------------------------------------

    async def get(
        self,
        path: str,
        params: Mapping[str, Any] | None = None,
        token: CancellationToken | None = None,
    ) -> Any:
        return await self._request("GET", path, params=params, token=token)

    async def post(
        self,
        path: str,
        params: Mapping[str, Any] | None = None,
        token: CancellationToken | None = None,
        data: Mapping[str, Any] | None = None,
    ) -> Any:
        return await self._request("POST", path, params=params, token=token, data=data)

    async def put(
        self,
        path: str,
        params: Mapping[str, Any] | None = None,
        token: CancellationToken | None = None,
        data: Mapping[str, Any] | None = None,
    ) -> Any:
        return await self._request("PUT", path, params=params, token=token, data=data)

    async def delete(
        self,
        path: str,
        params: Mapping[str, Any] | None = None,
        token: CancellationToken | None = None,
    ) -> Any:
        return await self._request("DELETE", path, params=params, token=token)

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    async def _request(
        self,
        method: str,
        path: str,
        params: Mapping[str, Any] | None = None,
        token: CancellationToken | None = None,
        data: Mapping[str, Any] | None = None,
    ) -> Any:
        if not path.startswith("/"):
            path = f"/{path}"
        query = {k: v if isinstance(v, list) else str(v) for k, v in (params or {}).items() if v is not None}

        attempt = 0
        while True:
            if token is not None:
                token.raise_if_cancelled()
            try:
                call = self._http.request(
                    method,
                    path,
                    params=query or None,
                    data=dict(data) if data else None,
                    headers={"Authorization": self.authorization_header()},
                )
                response = await (token.guard(call) if token is not None else call)
            except httpx.TransportError as e:
                if attempt >= self.max_retries:
                    log.error("maas_request_failed", method=method, path=path, error=str(e), attempts=attempt + 1)
                    raise
                delay = self.backoff_base * (2 ** attempt)
                log.warning("maas_request_retry", method=method, path=path, error=str(e), attempt=attempt + 1, delay=delay)
                await self._sleep(delay, token)
                attempt += 1
                continue

            if response.status_code in RETRYABLE_STATUS_CODES and attempt < self.max_retries:
                delay = self.backoff_base * (2 ** attempt)
                retry_after = _retry_after(response.headers.get("Retry-After"))
                if retry_after is not None and retry_after > delay:
                    delay = retry_after
                log.warning(
                    "maas_request_retry",
                    method=method,
                    path=path,
                    status=response.status_code,
                    attempt=attempt + 1,
                    delay=delay,
                )
                await self._sleep(delay, token)
                attempt += 1
                continue

            return self._decode(method, path, response)

    async def _sleep(self, delay: float, token: CancellationToken | None) -> None:
        if token is not None:
            await token.sleep(delay)
        else:
            await asyncio.sleep(delay)

    def _decode(self, method: str, path: str, response: httpx.Response) -> Any:
        if response.status_code == 204:
            return None

        text = response.text
        if response.is_error:
            body: Any = text
            message = None
            maas_code = None
            try:
                body = json.loads(text)
            except json.JSONDecodeError:
                message = text[:200] or None
            else:
                if isinstance(body, dict):
                    message = body.get("message") or body.get("error_description") or body.get("detail")
                    maas_code = body.get("code") or body.get("error_code")
            if not message:
                message = f"MAAS API request failed: {response.status_code} {response.reason_phrase}"
            log.warning("maas_request_error", method=method, path=path, status=response.status_code)
            details: dict[str, Any] = {"body": body}
            if maas_code is not None:
                details["maas_code"] = maas_code
            raise from_upstream_status(response.status_code, message, details)

        log.debug("maas_request_ok", method=method, path=path, status=response.status_code)
        if "application/json" in response.headers.get("content-type", ""):
            try:
                return json.loads(text)
            except json.JSONDecodeError as e:
                raise MaasApiError(
                    f"Failed to parse JSON response from {path}: {e}",
                    502,
                    ErrorCode.INVALID_RESPONSE_FORMAT,
                    {"response_text": text[:1000]},
                ) from e
        return text

