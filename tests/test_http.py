"""Tests for outcome classification, bounded retry and the endpoint client."""

from __future__ import annotations

from unittest.mock import MagicMock

import aiohttp
import pytest

from nanoyunhu.errors import RetryExhausted
from nanoyunhu.transport.http import (
    ApplicationRejection,
    ChatHttpClient,
    RequestSpec,
    RetryableRequest,
    Success,
    TransportFailure,
)

from .conftest import create_mock_response

SPEC = RequestSpec("POST", "https://chat-go.jwzhd.com/v1/user/email-login", json={"a": 1})


class TestExecuteClassification:
    """One HTTP exchange maps to exactly one outcome."""

    async def test_success_code(self, mock_session: MagicMock) -> None:
        body = {"code": 1, "data": {"token": "t"}, "msg": "ok"}
        mock_session.request.return_value = create_mock_response(json_data=body)

        outcome = await RetryableRequest(mock_session).execute(SPEC)

        assert outcome == Success(body)
        assert outcome.data == {"token": "t"}

    async def test_other_code_is_rejection(self, mock_session: MagicMock) -> None:
        body = {"code": -1, "msg": "wrong password"}
        mock_session.request.return_value = create_mock_response(json_data=body)

        outcome = await RetryableRequest(mock_session).execute(SPEC)

        assert isinstance(outcome, ApplicationRejection)
        assert outcome.message == "wrong password"
        assert outcome.code == -1

    async def test_boolean_true_code_is_not_success(self, mock_session: MagicMock) -> None:
        mock_session.request.return_value = create_mock_response(json_data={"code": True})

        outcome = await RetryableRequest(mock_session).execute(SPEC)

        assert isinstance(outcome, ApplicationRejection)

    async def test_non_2xx_with_json_body_is_rejection(self, mock_session: MagicMock) -> None:
        mock_session.request.return_value = create_mock_response(
            status=403, json_data={"code": 1002, "msg": "forbidden"}
        )

        outcome = await RetryableRequest(mock_session).execute(SPEC)

        assert isinstance(outcome, ApplicationRejection)
        assert outcome.message == "forbidden"

    async def test_rejection_without_msg_uses_fallback(self, mock_session: MagicMock) -> None:
        mock_session.request.return_value = create_mock_response(
            status=500, json_data={"error": "x"}
        )

        outcome = await RetryableRequest(mock_session).execute(SPEC)

        assert isinstance(outcome, ApplicationRejection)
        assert outcome.message == "HTTP 500"

    async def test_non_json_body_is_transport_failure(self, mock_session: MagicMock) -> None:
        mock_session.request.return_value = create_mock_response(
            status=502, text_data="<html>Bad Gateway</html>"
        )

        outcome = await RetryableRequest(mock_session).execute(SPEC)

        assert isinstance(outcome, TransportFailure)

    async def test_non_utf8_body_is_transport_failure(
        self, mock_session: MagicMock
    ) -> None:
        mock_session.request.return_value = create_mock_response(
            read_data=b'{"code":1,"x":"\xff\xfe"}'
        )

        outcome = await RetryableRequest(mock_session).execute(SPEC)

        assert isinstance(outcome, TransportFailure)
        assert isinstance(outcome.error, UnicodeDecodeError)

    async def test_non_utf8_body_is_retried(self, mock_session: MagicMock) -> None:
        mock_session.request.side_effect = [
            create_mock_response(read_data=b"\xff"),
            create_mock_response(json_data={"code": 1, "data": {}}),
        ]

        outcome = await RetryableRequest(mock_session).run(SPEC)

        assert isinstance(outcome, Success)
        assert mock_session.request.call_count == 2

    async def test_json_array_body_is_transport_failure(self, mock_session: MagicMock) -> None:
        mock_session.request.return_value = create_mock_response(json_data=[1, 2])

        outcome = await RetryableRequest(mock_session).execute(SPEC)

        assert isinstance(outcome, TransportFailure)

    async def test_connection_error_is_transport_failure(
        self, mock_session: MagicMock
    ) -> None:
        error = aiohttp.ClientConnectionError("refused")
        mock_session.request.side_effect = error

        outcome = await RetryableRequest(mock_session).execute(SPEC)

        assert isinstance(outcome, TransportFailure)
        assert outcome.error is error

    async def test_timeout_is_transport_failure(self, mock_session: MagicMock) -> None:
        mock_session.request.side_effect = TimeoutError()

        outcome = await RetryableRequest(mock_session, timeout=2.0).execute(SPEC)

        assert isinstance(outcome, TransportFailure)
        assert "timed out" in outcome.cause

    async def test_request_arguments(self, mock_session: MagicMock) -> None:
        mock_session.request.return_value = create_mock_response(json_data={"code": 1})
        spec = RequestSpec("GET", "https://x/user/info", headers={"token": "abc"})

        await RetryableRequest(mock_session, timeout=3.0).execute(spec)

        call = mock_session.request.call_args
        assert call.args == ("GET", "https://x/user/info")
        assert call.kwargs["headers"] == {"token": "abc"}
        assert call.kwargs["json"] is None
        assert call.kwargs["timeout"].total == 3.0


class TestRetry:
    """Bounded retry on transport failures only."""

    async def test_four_failures_then_success(self, mock_session: MagicMock) -> None:
        failures = [aiohttp.ClientConnectionError("down")] * 4
        ok = create_mock_response(json_data={"code": 1, "data": {}})
        mock_session.request.side_effect = [*failures, ok]

        outcome = await RetryableRequest(mock_session).run(SPEC)

        assert isinstance(outcome, Success)
        assert mock_session.request.call_count == 5

    async def test_five_failures_raise(self, mock_session: MagicMock) -> None:
        mock_session.request.side_effect = aiohttp.ClientConnectionError("down")

        with pytest.raises(RetryExhausted, match="failed 5 times") as exc_info:
            await RetryableRequest(mock_session).run(SPEC)

        assert exc_info.value.attempts == 5
        assert exc_info.value.last_cause == "down"
        assert isinstance(exc_info.value.__cause__, aiohttp.ClientConnectionError)
        assert mock_session.request.call_count == 5

    async def test_rejection_is_not_retried(self, mock_session: MagicMock) -> None:
        mock_session.request.return_value = create_mock_response(
            json_data={"code": 0, "msg": "nope"}
        )

        outcome = await RetryableRequest(mock_session).run(SPEC)

        assert isinstance(outcome, ApplicationRejection)
        assert mock_session.request.call_count == 1

    async def test_failure_counter_is_per_call(self, mock_session: MagicMock) -> None:
        request = RetryableRequest(mock_session, max_attempts=2)
        ok = create_mock_response(json_data={"code": 1})
        mock_session.request.side_effect = [
            aiohttp.ClientConnectionError("down"),
            ok,
            aiohttp.ClientConnectionError("down"),
            ok,
        ]

        assert isinstance(await request.run(SPEC), Success)
        assert isinstance(await request.run(SPEC), Success)


class TestChatHttpClient:
    """Endpoint URLs and request bodies."""

    @pytest.fixture
    def client(self, mock_session: MagicMock) -> ChatHttpClient:
        mock_session.request.return_value = create_mock_response(
            json_data={"code": 1, "data": {}}
        )
        return ChatHttpClient(
            RetryableRequest(mock_session),
            api_base="https://chat-go.jwzhd.com/v1/",
            web_api_base="https://chat-web-go.jwzhd.com/v1",
        )

    async def test_email_login(self, client: ChatHttpClient, mock_session: MagicMock) -> None:
        await client.email_login("a@b.c", "pw", "dev123", "linux")

        call = mock_session.request.call_args
        assert call.args == ("POST", "https://chat-go.jwzhd.com/v1/user/email-login")
        assert call.kwargs["json"] == {
            "email": "a@b.c",
            "password": "pw",
            "deviceId": "dev123",
            "platform": "linux",
        }

    async def test_verification_login(
        self, client: ChatHttpClient, mock_session: MagicMock
    ) -> None:
        await client.verification_login("13800000000", "654321", "dev123", "windows")

        call = mock_session.request.call_args
        assert call.args[1] == "https://chat-go.jwzhd.com/v1/user/verification-login"
        assert call.kwargs["json"] == {
            "mobile": "13800000000",
            "captcha": "654321",
            "deviceId": "dev123",
            "platform": "windows",
        }

    async def test_fetch_captcha(self, client: ChatHttpClient, mock_session: MagicMock) -> None:
        await client.fetch_captcha()

        call = mock_session.request.call_args
        assert call.args == ("POST", "https://chat-go.jwzhd.com/v1/user/captcha")

    async def test_request_sms_code(
        self, client: ChatHttpClient, mock_session: MagicMock
    ) -> None:
        await client.request_sms_code("13800000000", "ab12", "cid", "android")

        call = mock_session.request.call_args
        assert call.args[1] == (
            "https://chat-go.jwzhd.com/v1/verification/get-verification-code"
        )
        assert call.kwargs["json"] == {
            "mobile": "13800000000",
            "code": "ab12",
            "id": "cid",
            "platform": "android",
        }

    async def test_fetch_user_info(
        self, client: ChatHttpClient, mock_session: MagicMock
    ) -> None:
        await client.fetch_user_info("tok")

        call = mock_session.request.call_args
        assert call.args == ("GET", "https://chat-web-go.jwzhd.com/v1/user/info")
        assert call.kwargs["headers"] == {"token": "tok"}
