"""Token validation against the identity endpoint."""

from __future__ import annotations

import logging

from ..models import Identity, InvalidCredential, mask_token
from ..transport.http import ApplicationRejection, ChatHttpClient

_LOGGER = logging.getLogger(__name__)


class AuthTokenValidator:
    """Confirm that a token is accepted by the backend.

    Transport failures are retried by the underlying request primitive and
    surface as ``RetryExhausted``. A response without the success sentinel is
    an ``InvalidCredential`` result, never an exception.
    """

    def __init__(self, client: ChatHttpClient) -> None:
        self._client = client

    async def validate(self, token: str) -> Identity | InvalidCredential:
        """Validate ``token`` and return the identity behind it.

        Raises:
            RetryExhausted: If the identity endpoint stays unreachable.
        """
        outcome = await self._client.fetch_user_info(token)

        if isinstance(outcome, ApplicationRejection):
            _LOGGER.warning(
                "Token %s rejected (code %s): %s",
                mask_token(token),
                outcome.code,
                outcome.message,
            )
            return InvalidCredential(outcome.message)

        user = outcome.data.get("user")
        if not isinstance(user, dict) or not user.get("userId"):
            _LOGGER.warning("Token %s: identity response has no user", mask_token(token))
            return InvalidCredential("identity response has no user")

        identity = Identity(
            user_id=str(user["userId"]),
            display_name=str(user.get("nickname", "")),
            token=token,
        )
        _LOGGER.debug("Token %s belongs to %s", mask_token(token), identity.user_id)
        return identity
