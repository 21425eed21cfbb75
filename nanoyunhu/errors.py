"""Client error types for the YunHu chat backend.

Owned by the nanoyunhu maintainers.
"""

from __future__ import annotations


class YunhuClientError(Exception):
    """Base error for YunHu client failures."""


class YunhuTimeout(YunhuClientError):
    """Timeout while communicating with the backend."""


class YunhuConnectionError(YunhuClientError):
    """Network connection to the backend failed."""


class YunhuHandshakeError(YunhuClientError):
    """WebSocket handshake failed."""


class RetryExhausted(YunhuClientError):
    """A logical request failed at the transport level on every attempt."""

    def __init__(self, last_cause: str, attempts: int) -> None:
        super().__init__(
            f"HTTP request failed {attempts} times, last failure: {last_cause}"
        )
        self.last_cause = last_cause
        self.attempts = attempts


class InvalidTokenError(YunhuClientError):
    """The token obtained by logging in was rejected by the identity endpoint."""

    def __init__(self, reason: str | None = None) -> None:
        message = "Token obtained at login is invalid"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.reason = reason


class UnknownLoginModeError(YunhuClientError):
    """The prompter returned a login mode that is not supported."""

    def __init__(self, mode: str) -> None:
        super().__init__(f"Unknown login mode: {mode}")
        self.mode = mode


class SessionDestroyedError(YunhuClientError):
    """Operation attempted on a session that has been destroyed."""


class ConfigValidationError(Exception):
    """Configuration content failed validation."""

    def __init__(self, problems: list[str]) -> None:
        super().__init__("Invalid configuration:\n" + "\n".join(f"- {p}" for p in problems))
        self.problems = problems
