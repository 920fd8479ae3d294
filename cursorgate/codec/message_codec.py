"""ChatRequest <-> protobuf payload codec."""

from __future__ import annotations

from types import MappingProxyType
from typing import Any, Mapping

from google.protobuf import json_format
from google.protobuf.message import DecodeError
from pydantic import ValidationError

from cursorgate.codec import schema
from cursorgate.core.errors import FrameDecodeError, SchemaValidationError
from cursorgate.core.models import ChatRequest, DecodedMessage, Role

DEFAULT_ROLE_CODES: Mapping[Role, int] = MappingProxyType({Role.USER: 1, Role.ASSISTANT: 2})


class MessageCodec:
    """Stateless encoder/decoder for the StreamChat payloads.

    ``role_codes`` maps each ``Role`` to the integer written on the wire; it
    is the only place where those integers exist.
    """

    def __init__(self, role_codes: Mapping[Role, int] | None = None) -> None:
        self.role_codes = MappingProxyType(dict(role_codes if role_codes is not None else DEFAULT_ROLE_CODES))

    def _role_code(self, role: Role) -> int:
        try:
            return self.role_codes[role]
        except KeyError:
            raise SchemaValidationError(f"messages.role: no wire code for role {role.value!r}") from None

    def to_wire_dict(self, request: ChatRequest) -> dict[str, Any]:
        return {
            "messages": [
                {
                    "content": msg.content,
                    "role": self._role_code(msg.role),
                    "message_id": msg.message_id,
                }
                for msg in request.messages
            ],
            "instructions": {"instruction": request.instruction},
            "projectPath": request.project_path,
            "model": {"name": request.model.name, "empty": request.model.empty},
            "requestId": request.request_id,
            "summary": request.summary,
            "conversationId": request.conversation_id,
        }

    def encode(self, request: ChatRequest | Mapping[str, Any]) -> bytes:
        if not isinstance(request, ChatRequest):
            try:
                request = ChatRequest.model_validate(request)
            except ValidationError as exc:
                raise SchemaValidationError(str(exc)) from exc
        if not request.messages:
            raise SchemaValidationError("messages: must be a non-empty list")

        try:
            message = json_format.ParseDict(self.to_wire_dict(request), schema.ChatMessage())
        except json_format.ParseError as exc:
            raise SchemaValidationError(str(exc)) from exc
        return message.SerializeToString()

    def decode(self, payload: bytes) -> DecodedMessage:
        try:
            message = schema.ResMessage.FromString(bytes(payload))
        except DecodeError as exc:
            raise FrameDecodeError(str(exc) or "invalid_res_message") from exc
        text = message.msg
        # proto2 string 字段遇到非法 UTF-8 时返回 bytes，按替换字符解码
        if isinstance(text, bytes):
            text = text.decode("utf-8", errors="replace")
        return DecodedMessage(text=text)
