"""Protocol Buffer schema for inbound chat socket frames.

The schema is declared as data and registered in a private descriptor pool at
import time, so no generated ``_pb2`` module is needed. Every top-level frame
message carries ``base`` (``Base{seq, cmd}``) as field 1, which is what lets
any frame message act as a generic envelope for probing the command name.

Equivalent .proto::

    syntax = "proto3";
    package wss;
    message Base { string seq = 1; string cmd = 2; }
    message heartbeat_ack_info { Base base = 1; }
    message push_message { Base base = 1; PushData data = 2; }
    ...
"""

from __future__ import annotations

from typing import NamedTuple

from google.protobuf import descriptor_pb2, descriptor_pool, message_factory
from google.protobuf.message import Message

PACKAGE = "wss"

_FieldProto = descriptor_pb2.FieldDescriptorProto

_SCALAR_TYPES: dict[str, int] = {
    "string": _FieldProto.TYPE_STRING,
    "int32": _FieldProto.TYPE_INT32,
    "int64": _FieldProto.TYPE_INT64,
    "bool": _FieldProto.TYPE_BOOL,
    "bytes": _FieldProto.TYPE_BYTES,
}


class _Field(NamedTuple):
    name: str
    number: int
    type: str
    repeated: bool = False


# Message definitions in dependency order. Non-scalar types refer to other
# entries in this table.
_MESSAGES: dict[str, tuple[_Field, ...]] = {
    "Base": (
        _Field("seq", 1, "string"),
        _Field("cmd", 2, "string"),
    ),
    "Sender": (
        _Field("chat_id", 1, "string"),
        _Field("chat_type", 2, "int32"),
        _Field("name", 3, "string"),
        _Field("avatar_url", 4, "string"),
    ),
    "Content": (
        _Field("text", 1, "string"),
        _Field("buttons", 2, "string"),
        _Field("image_url", 3, "string"),
        _Field("file_name", 4, "string"),
        _Field("file_url", 5, "string"),
        _Field("quote_msg_text", 6, "string"),
        _Field("sticker_url", 7, "string"),
        _Field("file_size", 8, "int64"),
        _Field("video_url", 9, "string"),
        _Field("audio_url", 10, "string"),
        _Field("audio_time", 11, "int64"),
    ),
    "ChatMessage": (
        _Field("msg_id", 1, "string"),
        _Field("sender", 2, "Sender"),
        _Field("recv_id", 3, "string"),
        _Field("chat_id", 4, "string"),
        _Field("chat_type", 5, "int32"),
        _Field("content", 6, "Content"),
        _Field("content_type", 7, "int32"),
        _Field("timestamp", 8, "int64"),
        _Field("msg_seq", 9, "int64"),
        _Field("quote_msg_id", 10, "string"),
    ),
    "PushData": (
        _Field("any", 1, "string"),
        _Field("msg", 2, "ChatMessage"),
    ),
    "Draft": (
        _Field("chat_id", 1, "string"),
        _Field("input", 2, "string"),
    ),
    "DraftData": (
        _Field("draft", 1, "Draft"),
    ),
    "FileShare": (
        _Field("file_name", 1, "string"),
        _Field("file_size", 2, "int64"),
        _Field("file_md5", 3, "string"),
        _Field("file_id", 4, "string"),
        _Field("file_url", 5, "string"),
    ),
    "FileSendData": (
        _Field("send_user_id", 1, "string"),
        _Field("user_id", 2, "string"),
        _Field("send_type", 3, "int32"),
        _Field("files", 4, "FileShare", repeated=True),
    ),
    "heartbeat_ack_info": (
        _Field("base", 1, "Base"),
    ),
    "push_message": (
        _Field("base", 1, "Base"),
        _Field("data", 2, "PushData"),
    ),
    "draft_input": (
        _Field("base", 1, "Base"),
        _Field("data", 2, "DraftData"),
    ),
    "file_send_message": (
        _Field("base", 1, "Base"),
        _Field("data", 2, "FileSendData"),
    ),
    "edit_message": (
        _Field("base", 1, "Base"),
        _Field("data", 2, "PushData"),
    ),
}


def _build_file() -> descriptor_pb2.FileDescriptorProto:
    file_proto = descriptor_pb2.FileDescriptorProto(
        name="nanoyunhu/wss.proto",
        package=PACKAGE,
        syntax="proto3",
    )
    for message_name, fields in _MESSAGES.items():
        message_proto = file_proto.message_type.add(name=message_name)
        for spec in fields:
            field_proto = message_proto.field.add(
                name=spec.name,
                number=spec.number,
                label=(
                    _FieldProto.LABEL_REPEATED
                    if spec.repeated
                    else _FieldProto.LABEL_OPTIONAL
                ),
            )
            if spec.type in _SCALAR_TYPES:
                field_proto.type = _SCALAR_TYPES[spec.type]  # type: ignore[assignment]
            else:
                field_proto.type = _FieldProto.TYPE_MESSAGE
                field_proto.type_name = f".{PACKAGE}.{spec.type}"
    return file_proto


_POOL = descriptor_pool.DescriptorPool()
_POOL.AddSerializedFile(_build_file().SerializeToString())


def message_class(name: str) -> type[Message]:
    """Return the message class for a schema message name (e.g. "push_message")."""
    descriptor = _POOL.FindMessageTypeByName(f"{PACKAGE}.{name}")
    return message_factory.GetMessageClass(descriptor)


HeartbeatAckInfo = message_class("heartbeat_ack_info")
PushMessage = message_class("push_message")
DraftInput = message_class("draft_input")
FileSendMessage = message_class("file_send_message")
EditMessage = message_class("edit_message")
