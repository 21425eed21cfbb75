"""WebSocket helpers for the YunHu chat transport."""

from __future__ import annotations

import asyncio

import websockets
from websockets.asyncio.client import ClientConnection
from websockets.exceptions import (
    InvalidHandshake,
    InvalidURI,
    WebSocketException,
)

from ..errors import (
    YunhuConnectionError,
    YunhuHandshakeError,
    YunhuTimeout,
)


async def connect_websocket(
    url: str,
    *,
    ping_interval: float | None = None,
    timeout: float = 15.0,
) -> ClientConnection:
    """Connect to a WebSocket endpoint.

    Protocol-level pings are off by default; liveness is tracked by the
    application heartbeat instead.

    Args:
        url: ws:// or wss:// endpoint
        ping_interval: Interval for protocol ping frames, None to disable
        timeout: Opening handshake timeout
    """
    try:
        return await asyncio.wait_for(
            websockets.connect(
                url,
                ping_interval=ping_interval,
                close_timeout=5,
                max_size=None,
            ),
            timeout=timeout,
        )
    except TimeoutError as err:
        raise YunhuTimeout("WebSocket connection timed out") from err
    except (InvalidHandshake, InvalidURI) as err:
        raise YunhuHandshakeError("WebSocket handshake failed") from err
    except (OSError, WebSocketException) as err:
        raise YunhuConnectionError("WebSocket connection failed") from err
