"""Command-keyed decoding of inbound chat socket frames.

Decoding is two-phase. A probe parses the frame with the generic envelope
schema only to read ``base.cmd``; the command then selects the schema for the
full decode. Failures never propagate: a frame that no schema accepts degrades
to JSON, then to text, then to the raw bytes.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Any

from google.protobuf.message import Message

from .transport import wire_schema
from .transport.protobuf_util import deserialize_message, message_to_dict

_LOGGER = logging.getLogger(__name__)


class MessageKind(Enum):
    """Closed set of decoded message variants."""

    HEARTBEAT_ACK = "heartbeat_ack"
    PUSH_MESSAGE = "push_message"
    DRAFT_INPUT = "draft_input"
    FILE_SEND_MESSAGE = "file_send_message"
    EDIT_MESSAGE = "edit_message"
    # Unknown command, decoded with the generic envelope schema.
    ENVELOPE = "envelope"
    # No schema matched; payload is JSON, text or bytes.
    RAW = "raw"


# Lower-cased command name -> variant. Commands not listed decode as ENVELOPE.
COMMAND_KINDS: Mapping[str, MessageKind] = MappingProxyType(
    {
        "heartbeat_ack": MessageKind.HEARTBEAT_ACK,
        "heartbeat": MessageKind.HEARTBEAT_ACK,
        "pong": MessageKind.HEARTBEAT_ACK,
        "push_message": MessageKind.PUSH_MESSAGE,
        "draft_input": MessageKind.DRAFT_INPUT,
        "file_send_message": MessageKind.FILE_SEND_MESSAGE,
        "edit_message": MessageKind.EDIT_MESSAGE,
    }
)

ENVELOPE_SCHEMA: type[Message] = wire_schema.HeartbeatAckInfo


def schema_for(kind: MessageKind) -> type[Message]:
    """Return the protobuf schema used to decode ``kind``.

    Raises:
        ValueError: For RAW, which has no schema.
    """
    if kind is MessageKind.HEARTBEAT_ACK:
        return wire_schema.HeartbeatAckInfo
    if kind is MessageKind.PUSH_MESSAGE:
        return wire_schema.PushMessage
    if kind is MessageKind.DRAFT_INPUT:
        return wire_schema.DraftInput
    if kind is MessageKind.FILE_SEND_MESSAGE:
        return wire_schema.FileSendMessage
    if kind is MessageKind.EDIT_MESSAGE:
        return wire_schema.EditMessage
    if kind is MessageKind.ENVELOPE:
        return ENVELOPE_SCHEMA
    raise ValueError(f"No schema for message kind {kind.value}")


def kind_for_command(command: str | None) -> MessageKind:
    """Map a command name (case-insensitive) to its variant."""
    if not command:
        return MessageKind.ENVELOPE
    return COMMAND_KINDS.get(command.lower(), MessageKind.ENVELOPE)


@dataclass(frozen=True)
class DecodedMessage:
    """One decoded inbound frame.

    Attributes:
        kind: Variant tag.
        payload: Dict for protobuf and JSON decodes, otherwise str or bytes.
    """

    kind: MessageKind
    payload: Any

    @property
    def command(self) -> str | None:
        return command_of(self)


def command_of(decoded: DecodedMessage) -> str | None:
    """Read ``base.cmd`` from a decoded payload, whichever branch produced it."""
    payload = decoded.payload
    if not isinstance(payload, dict):
        return None
    base = payload.get("base")
    if not isinstance(base, dict):
        return None
    cmd = base.get("cmd")
    if isinstance(cmd, str) and cmd:
        return cmd
    return None


def is_heartbeat_ack(decoded: DecodedMessage) -> bool:
    """Return True when the message's command mentions heartbeat or pong."""
    cmd = command_of(decoded)
    if not cmd:
        return False
    cmd = cmd.lower()
    return "heartbeat" in cmd or "pong" in cmd


class MessageDecoder:
    """Decode inbound binary frames into ``DecodedMessage`` values."""

    def probe(self, raw: bytes) -> str | None:
        """Extract the command name with the generic envelope schema."""
        try:
            envelope = deserialize_message(raw, ENVELOPE_SCHEMA)
        except Exception:  # any parse failure means "unknown command"
            return None
        cmd = envelope.base.cmd  # type: ignore[attr-defined]
        return cmd or None

    def decode(self, raw: bytes) -> tuple[str | None, DecodedMessage]:
        """Decode one frame.

        Returns:
            The probed command name (None when unknown) and the decoded message.
        """
        command = self.probe(raw)
        kind = kind_for_command(command)
        _LOGGER.debug("Probed base.cmd=%r -> %s", command, kind.value)

        try:
            message = deserialize_message(raw, schema_for(kind))
            return command, DecodedMessage(kind, message_to_dict(message))
        except Exception as err:
            _LOGGER.warning(
                "Protobuf decode as %s failed, falling back to text: %s",
                kind.value,
                err,
            )
        return command, self._fallback(raw)

    @staticmethod
    def _fallback(raw: bytes) -> DecodedMessage:
        try:
            text = raw.decode("utf-8")
        except UnicodeDecodeError:
            return DecodedMessage(MessageKind.RAW, raw)
        try:
            return DecodedMessage(MessageKind.RAW, json.loads(text))
        except ValueError:
            return DecodedMessage(MessageKind.RAW, text)
