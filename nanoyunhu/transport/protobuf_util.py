"""Protocol Buffer helpers for chat socket frames.

Pure message parsing and conversion; command dispatch lives in
``nanoyunhu.decoder``.
"""

from __future__ import annotations

from typing import Any

from google.protobuf import json_format
from google.protobuf.message import Message


def deserialize_message(data: bytes, message_type: type[Message]) -> Message:
    """Deserialize binary data into a protobuf message.

    Args:
        data: Binary message data
        message_type: Message class to parse as

    Returns:
        Parsed protobuf message

    Raises:
        DecodeError: If data is invalid
    """
    message = message_type()
    message.ParseFromString(data)
    return message


def message_to_dict(message: Message) -> dict[str, Any]:
    """Convert a protobuf message into a plain dict.

    Field names are kept as declared in the schema; 64-bit integers become
    strings per the protobuf JSON mapping. Unset fields are omitted.
    """
    return json_format.MessageToDict(message, preserving_proto_field_name=True)
