import itertools

import pytest
from google.protobuf import json_format

from cursorgate.codec.framing import LENGTH_PREFIX_BYTES, split_frames, wrap_payload
from cursorgate.codec.message_codec import MessageCodec
from cursorgate.codec import schema
from cursorgate.core.errors import FrameDecodeError, SchemaValidationError
from cursorgate.core.models import ChatRequest, Message, ModelDescriptor, Role


def _decode_sent(payload: bytes) -> dict:
    return json_format.MessageToDict(schema.ChatMessage.FromString(payload), preserving_proto_field_name=True)


def _request(messages: list[Message] | None = None) -> ChatRequest:
    return ChatRequest(
        messages=messages or [Message(role=Role.USER, content="hi", message_id="m")],
        instruction="i",
        project_path="p",
        model=ModelDescriptor(name="g"),
        request_id="r",
        conversation_id="c",
    )


def test_encode_is_byte_exact():
    expected = bytes.fromhex(
        "12090a02686910016a016d"  # messages[0]: content=hi role=1 message_id=m
        "22030a0169"  # instructions.instruction=i
        "2a0170"  # projectPath=p
        "3a050a01672200"  # model.name=g model.empty=""
        "4a0172"  # requestId=r
        "5a00"  # summary=""
        "7a0163"  # conversationId=c
    )
    assert MessageCodec().encode(_request()) == expected


def test_encode_maps_roles_to_wire_codes():
    request = _request(
        [
            Message(role=Role.USER, content="q", message_id="1"),
            Message(role=Role.ASSISTANT, content="a", message_id="2"),
        ]
    )
    decoded = _decode_sent(MessageCodec().encode(request))
    assert [m["role"] for m in decoded["messages"]] == [1, 2]


def test_encode_accepts_injected_role_codes():
    codec = MessageCodec(role_codes={Role.USER: 7, Role.ASSISTANT: 9})
    decoded = _decode_sent(codec.encode(_request()))
    assert decoded["messages"][0]["role"] == 7


def test_round_trip_through_frame():
    counter = itertools.count(1)
    request = _request(
        [
            Message(role=Role.USER, content="你好", message_id=f"id-{next(counter)}"),
            Message(role=Role.ASSISTANT, content="hello", message_id=f"id-{next(counter)}"),
        ]
    )
    wire = wrap_payload(MessageCodec().encode(request))
    frames = split_frames(wire).frames
    assert len(frames) == 1

    decoded = _decode_sent(frames[0])
    assert decoded["messages"] == [
        {"content": "你好", "role": 1, "message_id": "id-1"},
        {"content": "hello", "role": 2, "message_id": "id-2"},
    ]
    assert decoded["instructions"] == {"instruction": "i"}
    assert decoded["projectPath"] == "p"
    assert decoded["model"] == {"name": "g", "empty": ""}
    assert decoded["requestId"] == "r"
    assert decoded["conversationId"] == "c"
    assert decoded["summary"] == ""


def test_encode_rejects_empty_messages_from_mapping():
    with pytest.raises(SchemaValidationError) as excinfo:
        MessageCodec().encode(
            {
                "messages": [],
                "instruction": "i",
                "project_path": "p",
                "model": {"name": "g"},
                "request_id": "r",
                "conversation_id": "c",
            }
        )
    assert "messages" in str(excinfo.value)


def test_encode_rejects_missing_fields_from_mapping():
    with pytest.raises(SchemaValidationError) as excinfo:
        MessageCodec().encode({"messages": [{"role": "user", "content": "x", "message_id": "m"}]})
    assert "instruction" in str(excinfo.value)


def test_encode_rejects_role_without_wire_code():
    codec = MessageCodec(role_codes={Role.USER: 1})
    request = _request([Message(role=Role.ASSISTANT, content="a", message_id="m")])
    with pytest.raises(SchemaValidationError):
        codec.encode(request)


def test_encode_reports_schema_engine_diagnostic():
    codec = MessageCodec(role_codes={Role.USER: 1.5, Role.ASSISTANT: 2})
    with pytest.raises(SchemaValidationError) as excinfo:
        codec.encode(_request())
    assert "role" in str(excinfo.value)


def test_decode_extracts_text():
    payload = schema.ResMessage(msg="hello world").SerializeToString()
    assert MessageCodec().decode(payload).text == "hello world"


def test_decode_ignores_unknown_fields():
    payload = schema.ResMessage(msg="ok").SerializeToString() + bytes.fromhex("1a0178")
    assert MessageCodec().decode(payload).text == "ok"


def test_decode_empty_payload_gives_empty_text():
    assert MessageCodec().decode(b"").text == ""


def test_decode_rejects_truncated_payload():
    with pytest.raises(FrameDecodeError):
        MessageCodec().decode(b"\x0a\x05ab")


def test_length_prefix_is_not_part_of_payload():
    wire = wrap_payload(MessageCodec().encode(_request()))
    assert _decode_sent(wire[LENGTH_PREFIX_BYTES:])["requestId"] == "r"


def test_decode_replaces_invalid_utf8():
    assert MessageCodec().decode(b"\x0a\x03ok\xff").text == "ok�"
