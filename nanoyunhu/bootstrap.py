"""Startup credential resolution."""

from __future__ import annotations

import logging

from .auth.login import LoginCoordinator
from .auth.validator import AuthTokenValidator
from .config import CredentialStore
from .models import Identity, InvalidCredential, mask_token

_LOGGER = logging.getLogger(__name__)


async def authenticate(
    store: CredentialStore,
    validator: AuthTokenValidator,
    coordinator: LoginCoordinator,
) -> Identity:
    """Resolve a usable identity, logging in interactively when needed.

    A stored token that still validates is used as is and the store is left
    untouched. A stored token the backend declines is cleared before the
    login flow runs. A token obtained by logging in is persisted.

    Raises:
        RetryExhausted: If the backend stays unreachable.
        InvalidTokenError: If the token issued at login fails validation.
    """
    store.ensure_device()

    token = store.token
    if token:
        result = await validator.validate(token)
        if not isinstance(result, InvalidCredential):
            _LOGGER.info("Stored token is valid, logged in as %s", result.display_name)
            return result
        _LOGGER.warning(
            "Stored token %s is invalid (%s), logging in again",
            mask_token(token),
            result.reason,
        )
        store.clear_token()
    else:
        _LOGGER.info("No stored token, logging in")

    identity = await coordinator.login()
    store.set_token(identity.token)
    _LOGGER.info("Logged in as %s (%s)", identity.display_name, identity.user_id)
    return identity
