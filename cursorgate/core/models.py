"""Internal transport models."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"

    @classmethod
    def from_openai(cls, raw: object) -> "Role":
        # 上游只区分用户与助手，system/tool 等一律按助手处理
        if raw == "user":
            return cls.USER
        return cls.ASSISTANT


class Message(BaseModel):
    role: Role
    content: str
    message_id: str


class ModelDescriptor(BaseModel):
    name: str
    empty: str = ""


class ChatRequest(BaseModel):
    messages: list[Message] = Field(min_length=1)
    instruction: str
    project_path: str
    model: ModelDescriptor
    request_id: str
    conversation_id: str
    summary: str = ""


class DecodedMessage(BaseModel):
    text: str = ""
