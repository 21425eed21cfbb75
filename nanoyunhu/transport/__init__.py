"""Transport layer for the chat client.

This package contains all IO, wire protocol, and network handling.

Components:
- http: HTTP client for account endpoints and the shared retry primitive
- ws: WebSocket connection management
- ws_client: WebSocket message iteration
- protocol: Outbound JSON frame builders
- wire_schema: Protobuf schema for inbound frames
- protobuf_util: Protobuf serialization helpers
"""

from .http import (
    ApplicationRejection,
    ChatHttpClient,
    Outcome,
    RequestSpec,
    RetryableRequest,
    Success,
    TransportFailure,
)
from .protocol import build_frame, build_heartbeat_frame, build_login_frame, new_seq
from .ws import connect_websocket
from .ws_client import ChatWsClient, ChatWsMessage, ChatWsMessageType

__all__ = [
    "ApplicationRejection",
    "ChatHttpClient",
    "ChatWsClient",
    "ChatWsMessage",
    "ChatWsMessageType",
    "Outcome",
    "RequestSpec",
    "RetryableRequest",
    "Success",
    "TransportFailure",
    "build_frame",
    "build_heartbeat_frame",
    "build_login_frame",
    "connect_websocket",
    "new_seq",
]
