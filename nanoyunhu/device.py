"""Device identifier and platform label derivation."""

from __future__ import annotations

import hashlib
import os
import platform
import secrets
import socket
import sys
import time
import uuid

CHARSET = "abcdefghijklmnopqrstuvwxyz0123456789"
DEVICE_ID_LENGTH = 10

PLATFORMS: tuple[str, ...] = ("windows", "linux", "macos", "android", "ios", "web")


def _fingerprint() -> str:
    mac = f"{uuid.getnode():012x}"
    cpu = f"{platform.processor() or 'unknown-cpu'}-{os.cpu_count() or 0}"
    parts = [
        mac,
        cpu,
        str(int(time.time() * 1000)),
        socket.gethostname(),
        sys.platform,
        platform.machine(),
    ]
    return "::".join(p for p in parts if p)


def digest_to_id(digest: bytes, length: int = DEVICE_ID_LENGTH) -> str:
    """Render the low ``length`` base-36 digits of a big-endian digest."""
    value = int.from_bytes(digest, "big")
    chars: list[str] = []
    for _ in range(length):
        value, remainder = divmod(value, len(CHARSET))
        chars.append(CHARSET[remainder])
    return "".join(reversed(chars))


def generate_device_id() -> str:
    """Generate a 10 character lowercase alphanumeric device identifier."""
    digest = hashlib.sha256(_fingerprint().encode("utf-8")).digest()
    return digest_to_id(digest)


def detect_platform() -> str:
    """Map the running OS to a backend platform label."""
    if sys.platform == "win32":
        return "windows"
    if sys.platform.startswith("linux") or sys.platform == "cygwin":
        # Android reports "linux" on older interpreters.
        if hasattr(sys, "getandroidapilevel"):
            return "android"
        return "linux"
    if sys.platform == "android":
        return "android"
    if sys.platform == "darwin":
        return "macos"
    return secrets.choice(PLATFORMS)
