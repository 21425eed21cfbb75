"""Application-level heartbeat and liveness tracking."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

_LOGGER = logging.getLogger(__name__)

MISSED_HEARTBEAT_THRESHOLD = 2


class HeartbeatMonitor:
    """Send periodic heartbeat frames and report liveness loss.

    Every tick sends one heartbeat and counts it as unacknowledged. The owner
    resets the count whenever an inbound message is classified as a heartbeat
    acknowledgement. When the count reaches the threshold the failure callback
    fires at once, without waiting for the next tick.

    Usage:
        monitor = HeartbeatMonitor(send_heartbeat, session.force_reconnect)
        monitor.start(30.0)
        monitor.on_inbound_ack()
        monitor.stop()
    """

    def __init__(
        self,
        send: Callable[[], Awaitable[None]],
        on_liveness_failure: Callable[[str], None],
        *,
        threshold: int = MISSED_HEARTBEAT_THRESHOLD,
    ) -> None:
        self._send = send
        self._on_liveness_failure = on_liveness_failure
        self._threshold = threshold
        self._missed_count = 0
        self._task: asyncio.Task[None] | None = None

    @property
    def missed_count(self) -> int:
        return self._missed_count

    @property
    def threshold(self) -> int:
        return self._threshold

    @property
    def running(self) -> bool:
        return self._task is not None

    def start(self, interval: float) -> None:
        """Arm the heartbeat timer, replacing any running one."""
        self.stop()
        self._task = asyncio.create_task(self._run(interval))

    def stop(self) -> None:
        """Disarm the heartbeat timer. Safe to call from within a tick."""
        task, self._task = self._task, None
        if task is not None and task is not asyncio.current_task():
            task.cancel()

    def reset(self) -> None:
        self._missed_count = 0

    def on_inbound_ack(self) -> None:
        """Record an inbound heartbeat acknowledgement."""
        self._missed_count = 0

    def on_sent(self) -> None:
        """Record an outbound heartbeat awaiting acknowledgement."""
        self._missed_count += 1

    async def beat(self) -> None:
        """Run one tick: send, count, and check the threshold."""
        await self._send()
        self.on_sent()
        _LOGGER.debug("Heartbeat sent (%d unacknowledged)", self._missed_count)
        if self._missed_count >= self._threshold:
            _LOGGER.warning(
                "%d consecutive heartbeats unacknowledged", self._missed_count
            )
            self._on_liveness_failure(
                f"{self._missed_count} consecutive heartbeats unacknowledged"
            )

    async def _run(self, interval: float) -> None:
        """Heartbeat loop - one beat per interval until stopped."""
        current = asyncio.current_task()
        try:
            while self._task is current:
                await asyncio.sleep(interval)
                if self._task is not current:
                    break
                await self.beat()
        except asyncio.CancelledError:
            _LOGGER.debug("Heartbeat cancelled")
        except Exception as err:
            _LOGGER.exception("Heartbeat error: %s", err)
