"""Interactive login flows that obtain a fresh token.

The coordinator loops over mode selection. A flow that the backend declines
(bad password, failed CAPTCHA or SMS step) returns to mode selection; only
exhausted retries and an invalid freshly issued token escape as errors.
"""

from __future__ import annotations

import base64
import binascii
import logging
import re
from pathlib import Path

from ..errors import InvalidTokenError, UnknownLoginModeError
from ..models import Identity, InvalidCredential
from ..transport.http import ApplicationRejection, ChatHttpClient, Success
from .captcha_server import CaptchaServer
from .prompts import Choice, Prompter
from .validator import AuthTokenValidator

_LOGGER = logging.getLogger(__name__)

MODE_EMAIL = "email"
MODE_PHONE = "phone"

LOGIN_MODES: tuple[Choice, ...] = (
    ("Email login", MODE_EMAIL),
    ("Phone login", MODE_PHONE),
)

_DATA_URL_PREFIX = re.compile(r"^data:image/\w+;base64,")


def decode_captcha_image(b64s: str) -> bytes:
    """Decode a CAPTCHA payload, with or without a data-URL prefix.

    Raises:
        binascii.Error: If the payload is not valid base64.
    """
    return base64.b64decode(_DATA_URL_PREFIX.sub("", b64s), validate=True)


class LoginCoordinator:
    """Drive email or phone login until a validated identity is obtained."""

    def __init__(
        self,
        client: ChatHttpClient,
        validator: AuthTokenValidator,
        prompter: Prompter,
        *,
        device_id: str,
        platform: str,
        captcha_server: CaptchaServer,
        captcha_path: Path,
    ) -> None:
        self._client = client
        self._validator = validator
        self._prompter = prompter
        self._device_id = device_id
        self._platform = platform
        self._captcha_server = captcha_server
        self._captcha_path = captcha_path

    async def login(self) -> Identity:
        """Prompt for a login mode and run it until one succeeds.

        Raises:
            RetryExhausted: If an endpoint stays unreachable.
            InvalidTokenError: If the token issued at login fails validation.
            UnknownLoginModeError: If the prompter returns an unsupported mode.
        """
        while True:
            mode = await self._prompter.select("Choose a login method", LOGIN_MODES)
            if mode == MODE_EMAIL:
                identity = await self._email_flow()
            elif mode == MODE_PHONE:
                identity = await self._phone_flow()
            else:
                raise UnknownLoginModeError(mode)

            if identity is not None:
                return identity
            _LOGGER.warning("Please choose a login method again")

    async def _email_flow(self) -> Identity | None:
        email = await self._prompter.ask("Email")
        password = await self._prompter.ask("Password", secret=True)

        outcome = await self._client.email_login(
            email, password, self._device_id, self._platform
        )
        if isinstance(outcome, ApplicationRejection):
            _LOGGER.error("Email login failed: %s", outcome.message)
            return None
        return await self._accept_token(outcome)

    async def _phone_flow(self) -> Identity | None:
        mobile = await self._prompter.ask("Phone number")

        captcha = await self._solve_captcha()
        if captcha is None:
            return None
        captcha_id, solution = captcha

        sent = await self._client.request_sms_code(
            mobile, solution, captcha_id, self._platform
        )
        if isinstance(sent, ApplicationRejection):
            _LOGGER.error("Failed to send verification code: %s", sent.message)
            return None

        code = await self._prompter.ask("SMS verification code")
        outcome = await self._client.verification_login(
            mobile, code, self._device_id, self._platform
        )
        if isinstance(outcome, ApplicationRejection):
            _LOGGER.error("Phone login failed: %s", outcome.message)
            return None
        return await self._accept_token(outcome)

    async def _solve_captcha(self) -> tuple[str, str] | None:
        """Fetch a CAPTCHA, show it to the operator and collect the answer.

        Returns:
            (captcha id, operator's answer), or None if the CAPTCHA could not
            be obtained.
        """
        outcome = await self._client.fetch_captcha()
        if isinstance(outcome, ApplicationRejection):
            _LOGGER.error("Failed to get CAPTCHA: %s", outcome.message)
            return None

        b64s = outcome.data.get("b64s")
        captcha_id = outcome.data.get("id")
        if not isinstance(b64s, str) or not captcha_id:
            _LOGGER.error("CAPTCHA response is missing image or id")
            return None
        try:
            image = decode_captcha_image(b64s)
        except binascii.Error as err:
            _LOGGER.error("CAPTCHA image is not valid base64: %s", err)
            return None

        saved = self._save_captcha(image)
        try:
            try:
                url = await self._captcha_server.start(image)
            except OSError as err:
                _LOGGER.warning("Could not serve CAPTCHA image: %s", err)
                if not saved:
                    _LOGGER.error("CAPTCHA image can be neither saved nor served")
                    return None
                _LOGGER.info("CAPTCHA image saved to %s", self._captcha_path.resolve())
            else:
                _LOGGER.info("CAPTCHA image: %s", url)
            solution = await self._prompter.ask("CAPTCHA text")
        finally:
            await self._captcha_server.stop()

        return str(captcha_id), solution

    def _save_captcha(self, image: bytes) -> bool:
        try:
            self._captcha_path.write_bytes(image)
        except OSError as err:
            _LOGGER.warning("Could not save CAPTCHA image to %s: %s", self._captcha_path, err)
            return False
        _LOGGER.debug("CAPTCHA image saved to %s", self._captcha_path.resolve())
        return True

    async def _accept_token(self, outcome: Success) -> Identity | None:
        token = outcome.data.get("token")
        if not isinstance(token, str) or not token:
            _LOGGER.error("Login response carries no token")
            return None

        result = await self._validator.validate(token)
        if isinstance(result, InvalidCredential):
            raise InvalidTokenError(result.reason)
        return result
