"""OpenAI <-> internal model mapping."""

from __future__ import annotations

import re
import time

from pydantic import ValidationError

from cursorgate.config.settings import settings
from cursorgate.core.errors import SchemaValidationError
from cursorgate.core.ids import IdGenerator, uuid4_id
from cursorgate.core.models import ChatRequest, Message, ModelDescriptor, Role


_IMAGE_PLACEHOLDER = "[IMAGE_CONTENT]"
_NON_TEXT_PLACEHOLDER = "[NON_TEXT_PART]"
_LEADING_SCAFFOLDING_RE = re.compile(r"^.*<\|END_USER\|>", re.DOTALL)
_LEADING_NEWLINE_LETTER_RE = re.compile(r"^\n[a-zA-Z]?")


def _flatten_part(part: object) -> str:
    if isinstance(part, dict):
        ptype = str(part.get("type", "")).lower()
        if "image" in ptype or "image_url" in part:
            return _IMAGE_PLACEHOLDER

        text = part.get("text")
        if isinstance(text, str):
            return text

        content = part.get("content")
        if isinstance(content, str):
            return content
        if isinstance(content, list):
            merged = " ".join(_flatten_part(item) for item in content).strip()
            return merged or _NON_TEXT_PLACEHOLDER
        return _NON_TEXT_PLACEHOLDER

    if isinstance(part, str):
        return part
    return str(part)


def _flatten_content(content: object) -> str:
    if content is None:
        return ""
    if isinstance(content, list):
        return "".join(_flatten_part(part) for part in content)
    if isinstance(content, dict):
        return _flatten_part(content)
    return str(content)


def to_chat_request(payload: dict, ids: IdGenerator = uuid4_id) -> ChatRequest:
    messages = [
        Message(
            role=Role.from_openai(item.get("role")),
            content=_flatten_content(item.get("content", "")),
            message_id=ids(),
        )
        for item in payload.get("messages", [])
        if isinstance(item, dict)
    ]
    try:
        return ChatRequest(
            messages=messages,
            instruction=settings.instruction,
            project_path=settings.project_path,
            model=ModelDescriptor(name=str(payload.get("model") or "")),
            request_id=ids(),
            conversation_id=ids(),
        )
    except ValidationError as exc:
        raise SchemaValidationError(str(exc)) from exc


def clean_completion_text(text: str) -> str:
    # 非流式回复里可能带着回显的提示模板，截掉最后一个 <|END_USER|> 之前的内容
    text = _LEADING_SCAFFOLDING_RE.sub("", text, count=1)
    text = _LEADING_NEWLINE_LETTER_RE.sub("", text, count=1)
    return text.strip()


def to_chat_response(completion_id: str, model: str, text: str, created: int | None = None) -> dict:
    return {
        "id": completion_id,
        "object": "chat.completion",
        "created": int(created if created is not None else time.time()),
        "model": model,
        "choices": [
            {
                "index": 0,
                "message": {"role": "assistant", "content": text},
                "finish_reason": "stop",
            }
        ],
        "usage": {"prompt_tokens": 0, "completion_tokens": 0, "total_tokens": 0},
    }


def to_chat_chunk(completion_id: str, model: str, text: str, created: int | None = None) -> dict:
    return {
        "id": completion_id,
        "object": "chat.completion.chunk",
        "created": int(created if created is not None else time.time()),
        "model": model,
        "choices": [{"index": 0, "delta": {"content": text}}],
    }


def to_model_list(created: int | None = None) -> dict:
    timestamp = int(created if created is not None else time.time())
    names = [name.strip() for name in settings.models.split(",") if name.strip()]
    return {
        "object": "list",
        "data": [{"id": name, "object": "model", "created": timestamp, "owned_by": "cursor"} for name in names],
    }
