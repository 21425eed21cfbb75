"""Value types shared by the auth flow and the session."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Identity:
    """A validated account identity.

    Attributes:
        user_id: Backend user id.
        display_name: Account nickname.
        token: The token that was validated.
    """

    user_id: str
    display_name: str
    token: str


@dataclass(frozen=True)
class InvalidCredential:
    """The backend declined a token. A normal outcome, not an error."""

    reason: str


@dataclass(frozen=True)
class Credential:
    """Everything the socket login frame needs."""

    user_id: str
    token: str
    device_id: str
    platform: str

    @classmethod
    def from_identity(cls, identity: Identity, device_id: str, platform: str) -> Credential:
        return cls(
            user_id=identity.user_id,
            token=identity.token,
            device_id=device_id,
            platform=platform,
        )


def mask_token(token: str | None) -> str:
    """Shorten a token for log output."""
    if not token:
        return "<none>"
    return f"{token[:4]}***"
