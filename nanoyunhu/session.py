"""Connection session for the chat socket.

This module owns the socket lifecycle. It handles:
- Connecting and sending the login frame
- Heartbeat liveness with forced reconnect
- Decoding inbound frames and delivering them in arrival order
- Fixed-delay reconnect after any close or error
- Terminal teardown via destroy()

State machine::

    IDLE -> CONNECTING -> OPEN -> RECONNECTING -> CONNECTING -> ...
    any state -> DESTROYED (terminal)

Callers consume an ``asyncio.Queue`` of ``SessionEvent`` rather than
registering callbacks.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from .decoder import DecodedMessage, MessageDecoder, is_heartbeat_ack
from .errors import (
    SessionDestroyedError,
    YunhuClientError,
    YunhuConnectionError,
    YunhuHandshakeError,
    YunhuTimeout,
)
from .heartbeat import HeartbeatMonitor
from .models import Credential
from .transport.protocol import build_heartbeat_frame, build_login_frame
from .transport.ws_client import ChatWsClient, ChatWsMessageType

if TYPE_CHECKING:
    from .config import AppConfig

_LOGGER = logging.getLogger(__name__)


class SessionState(Enum):
    """Connection session states."""

    IDLE = "idle"
    CONNECTING = "connecting"
    OPEN = "open"
    RECONNECTING = "reconnecting"
    DESTROYED = "destroyed"


class SessionEventType(Enum):
    """Kinds of notifications delivered to the session's consumer."""

    OPENED = "opened"
    MESSAGE = "message"
    CLOSED = "closed"
    ERROR = "error"


@dataclass(frozen=True)
class SessionEvent:
    """Notification emitted by the session.

    Attributes:
        type: Event kind.
        message: Decoded message for MESSAGE events.
        command: Probed command name for MESSAGE events.
        reason: Human readable cause for CLOSED and ERROR events.
    """

    type: SessionEventType
    message: DecodedMessage | None = None
    command: str | None = None
    reason: str | None = None


class ConnectionSession:
    """Persistent, self-healing chat socket session.

    Usage:
        session = ConnectionSession(credential, url="wss://chat-ws-go.jwzhd.com/ws")
        await session.connect()
        event = await session.events.get()
        await session.destroy()
    """

    def __init__(
        self,
        credential: Credential,
        *,
        url: str,
        heartbeat_interval: float = 30.0,
        reconnect_delay: float = 5.0,
        open_timeout: float = 15.0,
        decoder: MessageDecoder | None = None,
    ) -> None:
        """Initialize session.

        Args:
            credential: Account credential used for the login frame
            url: WebSocket endpoint
            heartbeat_interval: Seconds between heartbeat frames
            reconnect_delay: Fixed seconds to wait before reconnecting
            open_timeout: Opening handshake timeout (seconds)
            decoder: Inbound frame decoder
        """
        self.credential = credential
        self.url = url

        self._heartbeat_interval = heartbeat_interval
        self._reconnect_delay = reconnect_delay
        self._open_timeout = open_timeout
        self._decoder = decoder or MessageDecoder()

        # Connection state
        self._state = SessionState.IDLE
        self._ws: ChatWsClient | None = None
        self._listen_task: asyncio.Task[None] | None = None
        self._reconnect_task: asyncio.Task[None] | None = None
        self._destroyed = False

        self._heartbeat = HeartbeatMonitor(self._send_heartbeat, self.force_reconnect)

        self.events: asyncio.Queue[SessionEvent] = asyncio.Queue()

    @classmethod
    def from_config(cls, config: AppConfig, credential: Credential) -> ConnectionSession:
        """Build a session from application configuration."""
        return cls(
            credential,
            url=config.endpoints.websocket_url,
            heartbeat_interval=config.network.heartbeat_interval,
            reconnect_delay=config.network.reconnect_delay,
        )

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def heartbeat(self) -> HeartbeatMonitor:
        return self._heartbeat

    @property
    def destroyed(self) -> bool:
        return self._destroyed

    @property
    def is_open(self) -> bool:
        return self._state is SessionState.OPEN

    # -------------------------------------------------------------------------
    # Public API: Connection Management
    # -------------------------------------------------------------------------

    async def connect(self) -> bool:
        """Open the socket, send the login frame and arm the heartbeat.

        Failures are not raised; they schedule a reconnect.

        Returns:
            True if the socket opened, False otherwise

        Raises:
            SessionDestroyedError: If the session was destroyed
        """
        if self._destroyed:
            raise SessionDestroyedError("Session has been destroyed")

        reconnect_task = self._reconnect_task
        if reconnect_task is not None and reconnect_task is not asyncio.current_task():
            self._reconnect_task = None
            reconnect_task.cancel()

        self._set_state(SessionState.CONNECTING)
        self._drop_connection()

        _LOGGER.info("[%s] Connecting to %s", self.credential.user_id, self.url)
        ws_client = ChatWsClient()
        try:
            await ws_client.connect(self.url, timeout=self._open_timeout)
        except (YunhuTimeout, YunhuConnectionError, YunhuHandshakeError) as err:
            _LOGGER.warning("[%s] Connection failed: %s", self.credential.user_id, err)
            self._emit(SessionEvent(SessionEventType.ERROR, reason=str(err)))
            self._handle_disconnect(str(err))
            return False

        if self._destroyed:
            # destroy() ran while the handshake was in flight
            ws_client.terminate()
            return False

        self._ws = ws_client
        await self._on_open(ws_client)
        if ws_client is not self._ws:
            return False
        self._listen_task = asyncio.create_task(self._listen(ws_client))
        return True

    def force_reconnect(self, reason: str) -> None:
        """Abort the socket so the close path drives a reconnect.

        Invoked by the heartbeat monitor when liveness is lost.
        """
        if self._destroyed:
            return

        _LOGGER.warning("[%s] %s, reconnecting", self.credential.user_id, reason)
        self._heartbeat.stop()
        self._heartbeat.reset()

        if self._ws is None:
            self._set_state(SessionState.RECONNECTING)
            self._schedule_reconnect()
            return

        self._ws.terminate()

    async def destroy(self) -> None:
        """Tear the session down for good. No reconnect happens afterwards."""
        if self._destroyed:
            return

        self._destroyed = True
        self._set_state(SessionState.DESTROYED)
        self._heartbeat.stop()

        reconnect_task, self._reconnect_task = self._reconnect_task, None
        if reconnect_task is not None and reconnect_task is not asyncio.current_task():
            reconnect_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await reconnect_task

        ws, self._ws = self._ws, None
        if ws is not None:
            try:
                await asyncio.wait_for(ws.close(), timeout=2.0)
            except TimeoutError:
                _LOGGER.warning(
                    "[%s] WebSocket close timed out", self.credential.user_id
                )
                ws.terminate()

        listen_task, self._listen_task = self._listen_task, None
        if listen_task is not None and listen_task is not asyncio.current_task():
            listen_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await listen_task

        _LOGGER.info("[%s] Session destroyed", self.credential.user_id)

    # -------------------------------------------------------------------------
    # Internal: Connection State Machine
    # -------------------------------------------------------------------------

    def _set_state(self, state: SessionState) -> None:
        if self._state is not state:
            _LOGGER.debug(
                "[%s] State: %s → %s",
                self.credential.user_id,
                self._state.value,
                state.value,
            )
            self._state = state

    def _emit(self, event: SessionEvent) -> None:
        self.events.put_nowait(event)

    def _drop_connection(self) -> None:
        """Discard a previous socket without driving the close path."""
        ws, self._ws = self._ws, None
        if ws is not None:
            ws.terminate()

        listen_task, self._listen_task = self._listen_task, None
        if listen_task is not None and listen_task is not asyncio.current_task():
            listen_task.cancel()

    async def _on_open(self, ws_client: ChatWsClient) -> None:
        _LOGGER.info("[%s] Connected to %s", self.credential.user_id, self.url)
        self._heartbeat.reset()
        self._set_state(SessionState.OPEN)
        await self._send_login(ws_client)
        if ws_client is not self._ws:
            return
        self._heartbeat.start(self._heartbeat_interval)
        self._emit(SessionEvent(SessionEventType.OPENED))

    def _handle_disconnect(self, reason: str) -> None:
        """Common close/error path."""
        self._heartbeat.stop()
        self._heartbeat.reset()
        self._ws = None

        if self._destroyed:
            return

        self._emit(SessionEvent(SessionEventType.CLOSED, reason=reason))
        self._set_state(SessionState.RECONNECTING)
        self._schedule_reconnect()

    def _schedule_reconnect(self) -> None:
        """Schedule one reconnect attempt after the fixed delay."""
        if self._destroyed or self._reconnect_task is not None:
            return

        _LOGGER.info(
            "[%s] Reconnecting in %.1fs",
            self.credential.user_id,
            self._reconnect_delay,
        )
        self._reconnect_task = asyncio.create_task(
            self._reconnect_after_delay(self._reconnect_delay)
        )

    async def _reconnect_after_delay(self, delay: float) -> None:
        try:
            await asyncio.sleep(delay)
        except asyncio.CancelledError:
            _LOGGER.debug("[%s] Reconnect cancelled", self.credential.user_id)
            return

        self._reconnect_task = None
        if self._destroyed:
            return
        await self.connect()

    # -------------------------------------------------------------------------
    # Internal: Message Listener
    # -------------------------------------------------------------------------

    async def _listen(self, ws_client: ChatWsClient) -> None:
        """Listen for frames until the socket closes."""
        reason = "connection closed"
        message_count = 0

        try:
            async for msg in ws_client:
                if msg.type is ChatWsMessageType.BINARY and isinstance(msg.data, bytes):
                    message_count += 1
                    self._handle_frame(msg.data)
                elif msg.type is ChatWsMessageType.TEXT and isinstance(msg.data, str):
                    message_count += 1
                    self._handle_frame(msg.data.encode("utf-8"))
                elif msg.type is ChatWsMessageType.CLOSED:
                    _LOGGER.warning("[%s] WebSocket closed", self.credential.user_id)
                    break
                elif msg.type is ChatWsMessageType.ERROR:
                    _LOGGER.error("[%s] WebSocket error", self.credential.user_id)
                    reason = "connection error"
                    self._emit(SessionEvent(SessionEventType.ERROR, reason=reason))
                    break

        except asyncio.CancelledError:
            _LOGGER.debug(
                "[%s] Listener cancelled (%d messages)",
                self.credential.user_id,
                message_count,
            )
            raise
        except YunhuClientError as err:
            _LOGGER.warning("[%s] Client error: %s", self.credential.user_id, err)
            reason = str(err)
        except Exception as err:
            _LOGGER.exception("[%s] Unexpected error: %s", self.credential.user_id, err)
            reason = str(err)
        finally:
            if ws_client is self._ws:
                self._handle_disconnect(reason)

    def _handle_frame(self, raw: bytes) -> None:
        """Decode, feed liveness tracking, then deliver."""
        command, decoded = self._decoder.decode(raw)
        if is_heartbeat_ack(decoded):
            self._heartbeat.on_inbound_ack()
        _LOGGER.debug(
            "[%s] Received %s (cmd=%s)",
            self.credential.user_id,
            decoded.kind.value,
            command,
        )
        self._emit(
            SessionEvent(SessionEventType.MESSAGE, message=decoded, command=command)
        )

    # -------------------------------------------------------------------------
    # Internal: Outbound Frames
    # -------------------------------------------------------------------------

    async def _send_login(self, ws_client: ChatWsClient) -> None:
        credential = self.credential
        frame = build_login_frame(
            user_id=credential.user_id,
            token=credential.token,
            platform=credential.platform,
            device_id=credential.device_id,
        )
        try:
            await ws_client.send_json(frame)
            _LOGGER.info("[%s] Login frame sent", credential.user_id)
        except YunhuClientError as err:
            _LOGGER.error("[%s] Failed to send login: %s", credential.user_id, err)

    async def _send_heartbeat(self) -> None:
        if self._ws is None:
            return
        try:
            await self._ws.send_json(build_heartbeat_frame())
        except YunhuClientError as err:
            _LOGGER.warning(
                "[%s] Failed to send heartbeat: %s", self.credential.user_id, err
            )
