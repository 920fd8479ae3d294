"""Protobuf schema of the StreamChat wire messages.

Field numbers and types are fixed by the remote service. The descriptors are
built at import time into a private pool, so no generated ``_pb2`` module is
needed. Equivalent ``.proto``::

    syntax = "proto2";

    message ChatMessage {
      message UserMessage {
        optional string content = 1;
        optional int32 role = 2;
        optional string message_id = 13;
      }
      message Instructions { optional string instruction = 1; }
      message Model {
        optional string name = 1;
        optional string empty = 4;
      }
      repeated UserMessage messages = 2;
      optional Instructions instructions = 4;
      optional string projectPath = 5;
      optional Model model = 7;
      optional string requestId = 9;
      optional string summary = 11;
      optional string conversationId = 15;
    }

    message ResMessage { optional string msg = 1; }

Under proto2 presence, explicitly set empty strings (``summary``,
``model.empty``) are written to the wire.
"""

from __future__ import annotations

from google.protobuf import descriptor_pb2, descriptor_pool, message_factory

PACKAGE = "cursorgate.wire"

_Field = descriptor_pb2.FieldDescriptorProto


def _scalar(name: str, number: int, field_type: int) -> _Field:
    return _Field(name=name, number=number, type=field_type, label=_Field.LABEL_OPTIONAL)


def _message(name: str, number: int, type_name: str, repeated: bool = False) -> _Field:
    label = _Field.LABEL_REPEATED if repeated else _Field.LABEL_OPTIONAL
    return _Field(
        name=name,
        number=number,
        type=_Field.TYPE_MESSAGE,
        label=label,
        type_name=f".{PACKAGE}.{type_name}",
    )


def build_file_descriptor() -> descriptor_pb2.FileDescriptorProto:
    file_proto = descriptor_pb2.FileDescriptorProto(
        name="cursorgate/wire/message.proto",
        package=PACKAGE,
        syntax="proto2",
    )

    chat = file_proto.message_type.add(name="ChatMessage")
    user_message = chat.nested_type.add(name="UserMessage")
    user_message.field.extend(
        [
            _scalar("content", 1, _Field.TYPE_STRING),
            _scalar("role", 2, _Field.TYPE_INT32),
            _scalar("message_id", 13, _Field.TYPE_STRING),
        ]
    )
    instructions = chat.nested_type.add(name="Instructions")
    instructions.field.append(_scalar("instruction", 1, _Field.TYPE_STRING))
    model = chat.nested_type.add(name="Model")
    model.field.extend(
        [
            _scalar("name", 1, _Field.TYPE_STRING),
            _scalar("empty", 4, _Field.TYPE_STRING),
        ]
    )
    chat.field.extend(
        [
            _message("messages", 2, "ChatMessage.UserMessage", repeated=True),
            _message("instructions", 4, "ChatMessage.Instructions"),
            _scalar("projectPath", 5, _Field.TYPE_STRING),
            _message("model", 7, "ChatMessage.Model"),
            _scalar("requestId", 9, _Field.TYPE_STRING),
            _scalar("summary", 11, _Field.TYPE_STRING),
            _scalar("conversationId", 15, _Field.TYPE_STRING),
        ]
    )

    res = file_proto.message_type.add(name="ResMessage")
    res.field.append(_scalar("msg", 1, _Field.TYPE_STRING))
    return file_proto


_pool = descriptor_pool.DescriptorPool()
_pool.AddSerializedFile(build_file_descriptor().SerializeToString())

ChatMessage = message_factory.GetMessageClass(_pool.FindMessageTypeByName(f"{PACKAGE}.ChatMessage"))
ResMessage = message_factory.GetMessageClass(_pool.FindMessageTypeByName(f"{PACKAGE}.ResMessage"))
