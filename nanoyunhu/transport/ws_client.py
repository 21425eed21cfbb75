"""WebSocket client wrapper for the YunHu chat transport."""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

from websockets.asyncio.client import ClientConnection
from websockets.exceptions import ConnectionClosed

from ..errors import YunhuConnectionError
from .ws import connect_websocket

if TYPE_CHECKING:
    from collections.abc import AsyncIterator


class ChatWsMessageType(Enum):
    """Normalized WebSocket message types."""

    TEXT = "text"
    BINARY = "binary"
    CLOSED = "closed"
    ERROR = "error"


@dataclass(frozen=True)
class ChatWsMessage:
    """Normalized WebSocket message payload."""

    type: ChatWsMessageType
    data: str | bytes | None = None


class ChatWsClient:
    """Wrapper around the websockets library for the chat socket."""

    def __init__(self) -> None:
        self._ws: ClientConnection | None = None

    @property
    def connected(self) -> bool:
        return self._ws is not None

    async def connect(
        self,
        url: str,
        *,
        ping_interval: float | None = None,
        timeout: float = 15.0,
    ) -> None:
        """Connect to the chat websocket."""
        self._ws = await connect_websocket(
            url,
            ping_interval=ping_interval,
            timeout=timeout,
        )

    async def close(self) -> None:
        """Close the websocket connection with a close handshake."""
        if self._ws is not None:
            await self._ws.close()

    def terminate(self) -> None:
        """Drop the connection immediately, skipping the close handshake.

        The pending iterator observes the loss and ends with CLOSED.
        """
        if self._ws is None:
            return
        transport = getattr(self._ws, "transport", None)
        if transport is not None:
            transport.abort()

    async def send_json(self, payload: dict[str, Any]) -> None:
        """Send a JSON payload as a text frame."""
        if self._ws is None:
            raise YunhuConnectionError("WebSocket is not connected")
        try:
            await self._ws.send(json.dumps(payload, ensure_ascii=False))
        except ConnectionClosed as err:
            raise YunhuConnectionError("WebSocket is closed") from err

    def __aiter__(self) -> AsyncIterator[ChatWsMessage]:
        if self._ws is None:
            raise YunhuConnectionError("WebSocket is not connected")
        return self._iter_messages()

    async def _iter_messages(self) -> AsyncIterator[ChatWsMessage]:
        if self._ws is None:
            raise YunhuConnectionError("WebSocket is not connected")

        try:
            async for msg in self._ws:
                yield self._normalize_message(msg)
        except ConnectionClosed:
            yield ChatWsMessage(type=ChatWsMessageType.CLOSED)
        except Exception:
            yield ChatWsMessage(type=ChatWsMessageType.ERROR)
        else:
            # Normal iteration completion means the peer closed gracefully.
            yield ChatWsMessage(type=ChatWsMessageType.CLOSED)

    @staticmethod
    def _normalize_message(msg: Any) -> ChatWsMessage:
        """Normalize a received frame into a ChatWsMessage."""
        if isinstance(msg, (bytes, bytearray, memoryview)):
            return ChatWsMessage(ChatWsMessageType.BINARY, bytes(msg))
        if isinstance(msg, str):
            return ChatWsMessage(ChatWsMessageType.TEXT, msg)
        # Fallback: treat unknown objects as text via their string repr
        return ChatWsMessage(ChatWsMessageType.TEXT, str(msg))
