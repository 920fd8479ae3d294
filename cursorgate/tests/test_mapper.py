import itertools

import pytest

from cursorgate.adapters.openai_compat.mapper import (
    clean_completion_text,
    to_chat_chunk,
    to_chat_request,
    to_chat_response,
    to_model_list,
)
from cursorgate.config.settings import settings
from cursorgate.core.errors import SchemaValidationError
from cursorgate.core.models import Role


def _ids():
    counter = itertools.count(1)
    return lambda: f"id-{next(counter)}"


def test_role_mapping_is_user_or_assistant():
    assert Role.from_openai("user") is Role.USER
    assert Role.from_openai("USER") is Role.ASSISTANT
    assert Role.from_openai(" user") is Role.ASSISTANT
    assert Role.from_openai("assistant") is Role.ASSISTANT
    assert Role.from_openai("system") is Role.ASSISTANT
    assert Role.from_openai(None) is Role.ASSISTANT


def test_to_chat_request_stamps_ids_and_settings():
    req = to_chat_request(
        {
            "model": "gpt-4o",
            "messages": [
                {"role": "system", "content": "be brief"},
                {"role": "user", "content": "hi"},
            ],
        },
        ids=_ids(),
    )
    assert [m.message_id for m in req.messages] == ["id-1", "id-2"]
    assert req.request_id == "id-3"
    assert req.conversation_id == "id-4"
    assert [m.role for m in req.messages] == [Role.ASSISTANT, Role.USER]
    assert req.model.name == "gpt-4o"
    assert req.model.empty == ""
    assert req.summary == ""
    assert req.instruction == settings.instruction
    assert req.project_path == settings.project_path


def test_to_chat_request_flattens_content_parts():
    req = to_chat_request(
        {
            "model": "m",
            "messages": [
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": "look at "},
                        {"type": "image_url", "image_url": {"url": "data:image/png;base64,AAAA"}},
                    ],
                }
            ],
        },
        ids=_ids(),
    )
    assert req.messages[0].content == "look at [IMAGE_CONTENT]"


def test_to_chat_request_without_usable_messages_fails_validation():
    with pytest.raises(SchemaValidationError):
        to_chat_request({"model": "m", "messages": ["not a dict"]}, ids=_ids())


def test_clean_completion_text_strips_echoed_prompt():
    text = "<|BEGIN_USER|>q<|END_USER|>\nA<|END_USER|>\nxThe answer  "
    assert clean_completion_text(text) == "The answer"


def test_clean_completion_text_keeps_plain_reply():
    assert clean_completion_text("  plain reply\n") == "plain reply"


def test_chat_response_shapes():
    resp = to_chat_response("chatcmpl-1", "gpt-4o", "hello", created=100)
    assert resp["object"] == "chat.completion"
    assert resp["choices"][0]["message"] == {"role": "assistant", "content": "hello"}
    assert resp["choices"][0]["finish_reason"] == "stop"
    assert resp["usage"]["total_tokens"] == 0

    chunk = to_chat_chunk("chatcmpl-1", "gpt-4o", "he", created=100)
    assert chunk["object"] == "chat.completion.chunk"
    assert chunk["choices"][0]["delta"] == {"content": "he"}


def test_model_list_reads_settings(monkeypatch):
    monkeypatch.setattr(settings, "models", "a, b,,c")
    listing = to_model_list(created=1)
    assert [item["id"] for item in listing["data"]] == ["a", "b", "c"]
