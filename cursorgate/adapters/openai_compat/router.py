"""OpenAI-compatible routes."""

from __future__ import annotations

import json
import logging
import time
from typing import Any, AsyncGenerator, Mapping

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, StreamingResponse

from cursorgate.adapters.openai_compat.mapper import (
    clean_completion_text,
    to_chat_chunk,
    to_chat_request,
    to_chat_response,
    to_model_list,
)
from cursorgate.adapters.openai_compat.stream_utils import (
    _build_streaming_response,
    _sse_event,
    _stream_done_sse_chunk,
    _stream_error_sse_chunk,
)
from cursorgate.adapters.openai_compat.upstream import (
    _build_upstream_headers,
    _extract_auth_token,
    _forward_stream_chunks,
    _resolve_checksum,
)
from cursorgate.codec.framing import wrap_payload
from cursorgate.codec.message_codec import MessageCodec
from cursorgate.codec.stream_parser import StreamParser
from cursorgate.config.settings import settings
from cursorgate.core.errors import SchemaValidationError, UpstreamError
from cursorgate.core.ids import uuid4_id
from cursorgate.observability.logging import log_event
from cursorgate.util.logger import logger


router = APIRouter()
codec = MessageCodec()
stream_parser = StreamParser(codec=codec)

_NO_STREAM_MODEL_PREFIX = "o1-"
# 调试时完整请求内容最大输出长度，避免日志过长
_DEBUG_REQUEST_BODY_MAX_CHARS = 32000
_DEBUG_HEADERS_REDACT = frozenset({"authorization", "x-cursor-checksum", "cookie"})


def _should_stream(payload: dict[str, Any]) -> bool:
    return bool(payload.get("stream") is True)


def _log_request_if_debug(request: Request, payload: dict[str, Any], route: str) -> None:
    if not logger.isEnabledFor(logging.DEBUG):
        return
    headers_safe = {}
    for k, v in request.headers.items():
        key_lower = k.lower()
        if key_lower in _DEBUG_HEADERS_REDACT or "key" in key_lower or "token" in key_lower:
            headers_safe[k] = "***"
        else:
            headers_safe[k] = v
    try:
        body_str = json.dumps(payload, ensure_ascii=False, indent=2)
    except (TypeError, ValueError):
        body_str = str(payload)
    logger.debug(
        "incoming request method=%s path=%s route=%s headers=%s body_size=%d",
        request.method,
        request.url.path,
        route,
        headers_safe,
        len(body_str),
    )
    if settings.log_full_request_body:
        logger.debug("incoming request body:\n%s", body_str[:_DEBUG_REQUEST_BODY_MAX_CHARS])


def _error_response(status_code: int, reason: str, detail: str) -> JSONResponse:
    detail_str = (detail or "").strip() or reason
    return JSONResponse(
        status_code=status_code,
        content={
            "error": {
                "message": detail_str,
                "type": "cursorgate_error",
                "code": reason,
            },
        },
    )


def _validate_chat_payload(payload: dict[str, Any], token: str) -> tuple[bool, int, str, str]:
    model = str(payload.get("model") or "")
    if model.startswith(_NO_STREAM_MODEL_PREFIX) and _should_stream(payload):
        return False, 400, "model_not_supported_stream", f"model {model} does not support stream"

    messages = payload.get("messages")
    if not isinstance(messages, list) or not messages or not token:
        return (
            False,
            400,
            "invalid_request",
            "Invalid request. Messages should be a non-empty array and authorization is required",
        )
    if len(messages) > settings.max_messages_count:
        return False, 400, "too_many_messages", f"messages exceeds limit {settings.max_messages_count}"
    return True, 200, "", ""


def _stream_runtime_reason(exc: Exception) -> str:
    if isinstance(exc, UpstreamError):
        return exc.reason
    return "upstream_stream_error"


async def _execute_chat_stream_once(
    *,
    model: str,
    body: bytes,
    upstream_headers: Mapping[str, str],
) -> StreamingResponse:
    completion_id = f"chatcmpl-{uuid4_id()}"

    async def generator() -> AsyncGenerator[bytes, None]:
        chunk_count = 0
        try:
            chunks = _forward_stream_chunks(settings.upstream_url, body, upstream_headers)
            async for text in stream_parser.decode_stream(chunks):
                chunk_count += 1
                yield _sse_event(to_chat_chunk(completion_id, model, text))
            yield _stream_done_sse_chunk()
        except UpstreamError as exc:
            reason = _stream_runtime_reason(exc)
            logger.error("chat stream upstream failure id=%s error=%s", completion_id, exc)
            log_event("chat_stream_failed", completion_id=completion_id, reason=reason)
            yield _stream_error_sse_chunk(str(exc), code=reason)
            yield _stream_done_sse_chunk()
        except Exception as exc:
            reason = _stream_runtime_reason(exc)
            logger.exception("chat stream unexpected failure id=%s", completion_id)
            log_event("chat_stream_failed", completion_id=completion_id, reason=reason)
            yield _stream_error_sse_chunk(f"{reason}: {exc}", code=reason)
            yield _stream_done_sse_chunk()
        else:
            log_event("chat_stream_done", completion_id=completion_id, model=model, chunks=chunk_count)

    return _build_streaming_response(generator())


async def _execute_chat_once(
    *,
    model: str,
    body: bytes,
    upstream_headers: Mapping[str, str],
) -> dict[str, Any] | JSONResponse:
    completion_id = f"chatcmpl-{uuid4_id()}"
    parts: list[str] = []
    try:
        chunks = _forward_stream_chunks(settings.upstream_url, body, upstream_headers)
        async for text in stream_parser.decode_stream(chunks):
            parts.append(text)
    except UpstreamError as exc:
        logger.error("chat upstream failure id=%s error=%s", completion_id, exc)
        log_event("chat_failed", completion_id=completion_id, reason=exc.reason)
        return _error_response(status_code=502, reason=exc.reason, detail=str(exc))

    text = clean_completion_text("".join(parts))
    log_event("chat_done", completion_id=completion_id, model=model, chars=len(text))
    return to_chat_response(completion_id, model, text)


@router.post("/chat/completions")
async def chat_completions(payload: dict, request: Request):
    _log_request_if_debug(request, payload, "/v1/chat/completions")
    token = _extract_auth_token(request.headers)
    ok, status_code, reason, detail = _validate_chat_payload(payload, token)
    if not ok:
        logger.warning("chat request rejected reason=%s", reason)
        return _error_response(status_code=status_code, reason=reason, detail=detail)

    model = str(payload.get("model") or "")
    try:
        chat_request = to_chat_request(payload)
        body = wrap_payload(codec.encode(chat_request))
    except SchemaValidationError as exc:
        logger.warning("chat request schema validation failed error=%s", exc)
        return _error_response(status_code=400, reason="schema_validation_failed", detail=str(exc))

    upstream_headers = _build_upstream_headers(token, _resolve_checksum(request.headers))
    logger.info(
        "chat request model=%s messages=%d stream=%s request_id=%s",
        model,
        len(chat_request.messages),
        _should_stream(payload),
        chat_request.request_id,
    )

    if _should_stream(payload):
        return await _execute_chat_stream_once(model=model, body=body, upstream_headers=upstream_headers)
    return await _execute_chat_once(model=model, body=body, upstream_headers=upstream_headers)


@router.get("/models")
async def list_models() -> dict:
    return to_model_list(created=int(time.time()))
