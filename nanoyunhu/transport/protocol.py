"""Outbound frame builders for the chat socket.

Outbound frames are JSON text: ``{"seq": str, "cmd": str, "data": object}``.
"""

from __future__ import annotations

import random
import time
from typing import Any

CMD_LOGIN = "login"
CMD_HEARTBEAT = "heartbeat"

_SEQ_RANDOM_BOUND = 10**9


def new_seq() -> str:
    """Return a per-frame sequence id: epoch milliseconds followed by a random integer."""
    return f"{int(time.time() * 1000)}{random.randrange(_SEQ_RANDOM_BOUND)}"


def build_frame(
    cmd: str,
    data: dict[str, Any],
    *,
    seq: str | None = None,
) -> dict[str, Any]:
    """Build an outbound command frame.

    Args:
        cmd: Command name (e.g., "login", "heartbeat").
        data: JSON-serializable command payload.
        seq: Optional caller-supplied sequence id. Generated when omitted.
    """
    return {"seq": seq or new_seq(), "cmd": cmd, "data": data}


def build_login_frame(
    *,
    user_id: str,
    token: str,
    platform: str,
    device_id: str,
    seq: str | None = None,
) -> dict[str, Any]:
    """Construct the login frame sent right after the socket opens."""
    return build_frame(
        CMD_LOGIN,
        {
            "userId": user_id,
            "token": token,
            "platform": platform,
            "deviceId": device_id,
        },
        seq=seq,
    )


def build_heartbeat_frame(*, seq: str | None = None) -> dict[str, Any]:
    """Construct a liveness frame."""
    return build_frame(CMD_HEARTBEAT, {}, seq=seq)
