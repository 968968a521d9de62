"""
Short-lived cache for outbound JSON GETs (the ETH price feed today).

Every outbound call and every cache hit is written to ``external_api_logs``
so the price used for a payment quote can be traced afterwards.
"""

import logging
import threading
import time
from typing import Any
from urllib.parse import urlencode

import anyio
import httpx
from sqlalchemy.exc import SQLAlchemyError

from fruitflow.database import SessionLocal
from fruitflow.models.external_api_log import ExternalApiLog

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 600


class CachedResponse:
    """The subset of ``httpx.Response`` callers read, backed by a stored body."""

    def __init__(self, status_code: int, data: dict | list):
        self.status_code = status_code
        self._data = data

    def json(self) -> dict | list:
        return self._data

    def raise_for_status(self) -> None:
        return None


class _TtlStore:
    def __init__(self):
        self._entries: dict[str, tuple[float, int, Any]] = {}
        self._guard = threading.Lock()

    def get(self, key: str) -> tuple[int, Any] | None:
        with self._guard:
            entry = self._entries.get(key)
            if entry is None:
                return None
            expires_at, status_code, body = entry
            if time.monotonic() >= expires_at:
                del self._entries[key]
                return None
            return status_code, body

    def put(self, key: str, status_code: int, body: Any, ttl: float) -> None:
        with self._guard:
            self._entries[key] = (time.monotonic() + ttl, status_code, body)

    def clear(self) -> None:
        with self._guard:
            self._entries.clear()


_store = _TtlStore()


def clear_cache() -> None:
    _store.clear()


def request_key(url: str, params: dict | None) -> str:
    if not params:
        return url
    return f"{url}?{urlencode(sorted(params.items()), doseq=True)}"


def _write_log_row(fields: dict) -> None:
    db = SessionLocal()
    try:
        db.add(ExternalApiLog(**fields))
        db.commit()
    except SQLAlchemyError:
        logger.exception("Failed to log external API call to %s", fields.get("url"))
        db.rollback()
    finally:
        db.close()


async def log_external_call(
    *,
    service: str | None,
    method: str,
    url: str,
    params: dict | list | None = None,
    status_code: int | None = None,
    from_cache: bool = False,
    elapsed_ms: int | None = None,
    response_body: dict | list | None = None,
    error_message: str | None = None,
) -> None:
    """Record one outbound call. Storage failures are logged, not raised."""
    fields = {
        "service": service,
        "method": method,
        "url": url,
        "params": params,
        "status_code": status_code,
        "from_cache": from_cache,
        "elapsed_ms": elapsed_ms,
        "response_body": response_body,
        "error_message": error_message,
    }
    await anyio.to_thread.run_sync(_write_log_row, fields)


async def cached_get(
    client: httpx.AsyncClient,
    url: str,
    *,
    params: dict | None = None,
    service: str | None = None,
    ttl: float = DEFAULT_TTL_SECONDS,
    **kwargs: Any,
) -> httpx.Response | CachedResponse:
    """
    GET ``url`` through the cache.

    A successful JSON body is reused for ``ttl`` seconds. Transport errors
    are logged and re-raised; non-JSON or error responses are returned
    as-is and never cached.
    """
    key = request_key(url, params)
    logged = {"service": service, "method": "GET", "url": url, "params": params}

    hit = _store.get(key)
    if hit is not None:
        status_code, body = hit
        logger.debug("External cache hit service=%s key=%s", service, key[:80])
        await log_external_call(
            **logged, status_code=status_code, from_cache=True, response_body=body
        )
        return CachedResponse(status_code, body)

    started = time.monotonic()
    try:
        response = await client.get(url, params=params, **kwargs)
    except httpx.HTTPError as exc:
        elapsed_ms = int((time.monotonic() - started) * 1000)
        logger.warning("External call failed service=%s url=%s: %s", service, url, exc)
        await log_external_call(**logged, elapsed_ms=elapsed_ms, error_message=str(exc))
        raise
    elapsed_ms = int((time.monotonic() - started) * 1000)

    try:
        body = response.json()
    except ValueError:
        body = None
    if body is not None and response.status_code < 400:
        _store.put(key, response.status_code, body, ttl)

    await log_external_call(
        **logged,
        status_code=response.status_code,
        elapsed_ms=elapsed_ms,
        response_body=body,
    )
    return response
