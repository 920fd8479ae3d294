"""
上游请求头构造与 StreamChat 转发。从 router 拆出，便于维护与单测。
"""

from __future__ import annotations

import asyncio
import random
from typing import Any, AsyncGenerator, Mapping

import httpx

from cursorgate.config.settings import settings
from cursorgate.core.errors import UpstreamError
from cursorgate.core.ids import Charset, IdGenerator, random_id, uuid4_id
from cursorgate.util.logger import logger

CHECKSUM_HEADER = "x-cursor-checksum"
_TOKEN_SEPARATOR = "%3A%3A"

_upstream_async_client: httpx.AsyncClient | None = None
_upstream_client_lock: Any = None


def _upstream_http_limits() -> httpx.Limits:
    return httpx.Limits(
        max_connections=max(10, int(settings.upstream_max_connections)),
        max_keepalive_connections=max(5, int(settings.upstream_max_keepalive_connections)),
    )


def _upstream_http_timeout() -> httpx.Timeout:
    timeout = float(settings.upstream_timeout_seconds)
    return httpx.Timeout(connect=timeout, read=timeout, write=timeout, pool=timeout)


async def _get_upstream_async_client() -> httpx.AsyncClient:
    global _upstream_async_client, _upstream_client_lock
    if _upstream_async_client is not None:
        return _upstream_async_client
    if _upstream_client_lock is None:
        _upstream_client_lock = asyncio.Lock()
    async with _upstream_client_lock:
        if _upstream_async_client is None:
            _upstream_async_client = httpx.AsyncClient(
                http2=False,
                timeout=_upstream_http_timeout(),
                limits=_upstream_http_limits(),
            )
    return _upstream_async_client


async def close_upstream_async_client() -> None:
    global _upstream_async_client
    if _upstream_async_client is not None:
        await _upstream_async_client.aclose()
        _upstream_async_client = None


def _header_value(headers: Mapping[str, str], target: str) -> str:
    for key, value in headers.items():
        if key.lower() == target.lower():
            return value
    return ""


def _extract_auth_token(headers: Mapping[str, str]) -> str:
    """取 Authorization 中的第一个 key；``user%3A%3Atoken`` 形式只保留 token 部分。"""
    raw = _header_value(headers, "authorization").strip()
    if raw.lower().startswith("bearer "):
        raw = raw[len("bearer ") :]
    keys = [key.strip() for key in raw.split(",")]
    token = keys[0] if keys else ""
    if _TOKEN_SEPARATOR in token:
        token = token.split(_TOKEN_SEPARATOR)[1]
    return token.strip()


def _generate_checksum(rng: random.Random | None = None) -> str:
    return (
        f"zo{random_id(6, Charset.MAX, rng)}{random_id(64, Charset.MAX, rng)}"
        f"/{random_id(64, Charset.MAX, rng)}"
    )


def _resolve_checksum(headers: Mapping[str, str], rng: random.Random | None = None) -> str:
    presented = _header_value(headers, CHECKSUM_HEADER).strip()
    if presented:
        return presented
    if settings.checksum.strip():
        return settings.checksum.strip()
    return _generate_checksum(rng)


def _build_upstream_headers(token: str, checksum: str, ids: IdGenerator = uuid4_id) -> dict[str, str]:
    return {
        "Content-Type": "application/connect+proto",
        "authorization": f"Bearer {token}",
        "connect-accept-encoding": "gzip,br",
        "connect-protocol-version": "1",
        "user-agent": "connect-es/1.4.0",
        "x-amzn-trace-id": f"Root={ids()}",
        CHECKSUM_HEADER: checksum,
        "x-cursor-client-version": settings.client_version,
        "x-cursor-timezone": settings.client_timezone,
        "x-ghost-mode": "true" if settings.ghost_mode else "false",
        "x-request-id": ids(),
    }


def _safe_error_detail(body: bytes) -> str:
    text = body.decode("utf-8", errors="replace").strip()
    return text[:600] or "empty_body"


async def _forward_stream_chunks(
    url: str,
    body: bytes,
    headers: Mapping[str, str],
) -> AsyncGenerator[bytes, None]:
    logger.debug("forward_stream start url=%s payload_bytes=%d", url, len(body))
    client = await _get_upstream_async_client()
    try:
        async with client.stream("POST", url=url, content=body, headers=dict(headers)) as resp:
            logger.debug("forward_stream connected url=%s status=%s", url, resp.status_code)
            if resp.status_code >= 400:
                detail = _safe_error_detail(await resp.aread())
                raise UpstreamError("upstream_http_error", detail, status_code=resp.status_code)
            async for chunk in resp.aiter_bytes():
                yield chunk
    except httpx.HTTPError as exc:
        detail = (str(exc) or "").strip() or "connection_failed_or_timeout"
        logger.warning("forward_stream http_error url=%s error=%s", url, detail)
        raise UpstreamError("upstream_unreachable", detail) from exc
