"""HTTP client for YunHu backend endpoints.

Every backend endpoint answers with a JSON object whose ``code`` field is ``1``
on success. One HTTP exchange is classified into exactly one outcome:

- ``Success``: 2xx and ``code == 1``.
- ``ApplicationRejection``: the endpoint answered with a JSON object but
  declined (any other ``code``, or a non-2xx status carrying a JSON body).
- ``TransportFailure``: connection error, timeout, or a body that is not a
  JSON object.

``RetryableRequest.run`` is the single bounded-retry loop shared by every
call site. Transport failures are retried immediately, rejections never.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Final

import aiohttp

from ..errors import RetryExhausted

_LOGGER = logging.getLogger(__name__)

SUCCESS_CODE: Final = 1
DEFAULT_TIMEOUT: Final = 8.0
MAX_ATTEMPTS: Final = 5


@dataclass(frozen=True)
class RequestSpec:
    """Description of one HTTP call."""

    method: str
    url: str
    json: dict[str, Any] | None = None
    headers: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class Success:
    """The endpoint accepted the request."""

    payload: dict[str, Any]

    @property
    def data(self) -> dict[str, Any]:
        data = self.payload.get("data")
        return data if isinstance(data, dict) else {}


@dataclass(frozen=True)
class ApplicationRejection:
    """The endpoint answered but declined the request."""

    message: str
    code: Any = None
    payload: dict[str, Any] | None = None


@dataclass(frozen=True)
class TransportFailure:
    """The exchange failed before a usable answer was obtained."""

    cause: str
    error: BaseException | None = None


Outcome = Success | ApplicationRejection | TransportFailure


def _rejection_message(body: dict[str, Any], fallback: str) -> str:
    msg = body.get("msg")
    if isinstance(msg, str) and msg:
        return msg
    return fallback


class RetryableRequest:
    """Execute HTTP calls with a fixed timeout and classify their outcome."""

    def __init__(
        self,
        session: aiohttp.ClientSession,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        max_attempts: int = MAX_ATTEMPTS,
    ) -> None:
        self._session = session
        self._timeout = timeout
        self._max_attempts = max_attempts

    @property
    def max_attempts(self) -> int:
        return self._max_attempts

    async def execute(self, spec: RequestSpec) -> Outcome:
        """Perform one HTTP exchange. Never raises for network problems."""
        try:
            async with self._session.request(
                spec.method,
                spec.url,
                json=spec.json,
                headers=spec.headers,
                timeout=aiohttp.ClientTimeout(total=self._timeout),
            ) as resp:
                status = resp.status
                body_bytes = await resp.read()
        except TimeoutError as err:
            cause = f"request timed out ({self._timeout}s)"
            _LOGGER.error("%s %s: %s", spec.method, spec.url, cause)
            return TransportFailure(cause, err)
        except aiohttp.ClientError as err:
            cause = str(err) or type(err).__name__
            _LOGGER.error("%s %s: request failed: %s", spec.method, spec.url, cause)
            return TransportFailure(cause, err)

        try:
            body = json.loads(body_bytes.decode("utf-8"))
        except ValueError as err:
            # UnicodeDecodeError included
            _LOGGER.error("HTTP %d %s: body is not UTF-8 JSON", status, spec.url)
            return TransportFailure(f"HTTP {status}: malformed body", err)

        if not isinstance(body, dict):
            _LOGGER.error("HTTP %d %s: body is not a JSON object", status, spec.url)
            return TransportFailure(f"HTTP {status}: malformed body")

        if not 200 <= status < 300:
            _LOGGER.error("HTTP %d %s: %s", status, spec.url, body)
            return ApplicationRejection(
                _rejection_message(body, f"HTTP {status}"), body.get("code"), body
            )

        _LOGGER.debug("HTTP %d: %s", status, spec.url)
        code = body.get("code")
        if code == SUCCESS_CODE and not isinstance(code, bool):
            return Success(body)
        return ApplicationRejection(
            _rejection_message(body, f"code {code}"), code, body
        )

    async def run(self, spec: RequestSpec) -> Success | ApplicationRejection:
        """Execute with bounded retries on transport failures.

        Raises:
            RetryExhausted: After ``max_attempts`` consecutive transport failures.
        """
        attempt = 0
        while True:
            outcome = await self.execute(spec)
            if not isinstance(outcome, TransportFailure):
                return outcome

            attempt += 1
            if attempt >= self._max_attempts:
                raise RetryExhausted(outcome.cause, attempt) from outcome.error

            _LOGGER.warning(
                "%s failed, retrying (%d/%d): %s",
                spec.url,
                attempt,
                self._max_attempts,
                outcome.cause,
            )


class ChatHttpClient:
    """HTTP client wrapper for YunHu account endpoints."""

    def __init__(
        self,
        request: RetryableRequest,
        *,
        api_base: str,
        web_api_base: str,
    ) -> None:
        self._request = request
        self._api_base = api_base.rstrip("/")
        self._web_api_base = web_api_base.rstrip("/")

    def _url(self, path: str) -> str:
        return f"{self._api_base}{path}"

    async def email_login(
        self, email: str, password: str, device_id: str, platform: str
    ) -> Success | ApplicationRejection:
        """Log in with email and password. Success data carries ``token``."""
        return await self._request.run(
            RequestSpec(
                "POST",
                self._url("/user/email-login"),
                json={
                    "email": email,
                    "password": password,
                    "deviceId": device_id,
                    "platform": platform,
                },
            )
        )

    async def verification_login(
        self, mobile: str, captcha: str, device_id: str, platform: str
    ) -> Success | ApplicationRejection:
        """Log in with a phone number and SMS code. Success data carries ``token``."""
        return await self._request.run(
            RequestSpec(
                "POST",
                self._url("/user/verification-login"),
                json={
                    "mobile": mobile,
                    "captcha": captcha,
                    "deviceId": device_id,
                    "platform": platform,
                },
            )
        )

    async def fetch_captcha(self) -> Success | ApplicationRejection:
        """Request a CAPTCHA image. Success data carries ``b64s`` and ``id``."""
        return await self._request.run(RequestSpec("POST", self._url("/user/captcha")))

    async def request_sms_code(
        self, mobile: str, code: str, captcha_id: str, platform: str
    ) -> Success | ApplicationRejection:
        """Ask the backend to text a verification code to ``mobile``."""
        return await self._request.run(
            RequestSpec(
                "POST",
                self._url("/verification/get-verification-code"),
                json={
                    "mobile": mobile,
                    "code": code,
                    "id": captcha_id,
                    "platform": platform,
                },
            )
        )

    async def fetch_user_info(self, token: str) -> Success | ApplicationRejection:
        """Look up the identity behind ``token``."""
        return await self._request.run(
            RequestSpec(
                "GET",
                f"{self._web_api_base}/user/info",
                headers={"token": token},
            )
        )
