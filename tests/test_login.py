"""Tests for the interactive login flows."""

from __future__ import annotations

import base64
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from nanoyunhu.auth.login import LOGIN_MODES, LoginCoordinator, decode_captcha_image
from nanoyunhu.errors import InvalidTokenError, RetryExhausted, UnknownLoginModeError
from nanoyunhu.models import Identity
from nanoyunhu.transport.http import ApplicationRejection, Success

from .conftest import FakePrompter

PNG = b"\x89PNG\r\n\x1a\nfake"


def _coordinator(
    client: AsyncMock,
    validator: AsyncMock,
    prompter: FakePrompter,
    tmp_path: Path,
    captcha_server: AsyncMock | None = None,
) -> LoginCoordinator:
    if captcha_server is None:
        captcha_server = AsyncMock()
        captcha_server.start.return_value = "http://127.0.0.1:40000/captcha.png"
    return LoginCoordinator(
        client,
        validator,
        prompter,
        device_id="dev123",
        platform="linux",
        captcha_server=captcha_server,
        captcha_path=tmp_path / "captcha.png",
    )


def _captcha_success() -> Success:
    b64s = "data:image/png;base64," + base64.b64encode(PNG).decode()
    return Success({"code": 1, "data": {"b64s": b64s, "id": "cap-1"}})


def test_login_modes() -> None:
    assert [value for _, value in LOGIN_MODES] == ["email", "phone"]


class TestDecodeCaptchaImage:
    def test_strips_data_url_prefix(self) -> None:
        encoded = base64.b64encode(PNG).decode()
        assert decode_captcha_image("data:image/png;base64," + encoded) == PNG

    def test_plain_base64(self) -> None:
        assert decode_captcha_image(base64.b64encode(PNG).decode()) == PNG


class TestEmailFlow:
    async def test_email_login_success(
        self, validator: AsyncMock, identity: Identity, tmp_path: Path
    ) -> None:
        client = AsyncMock()
        client.email_login.return_value = Success(
            {"code": 1, "data": {"token": identity.token}}
        )
        prompter = FakePrompter(["email"], ["a@b.c", "pw"])

        result = await _coordinator(client, validator, prompter, tmp_path).login()

        assert result == identity
        client.email_login.assert_awaited_once_with("a@b.c", "pw", "dev123", "linux")
        assert prompter.asked[1] == ("Password", True)

    async def test_rejection_returns_to_mode_selection(
        self, validator: AsyncMock, identity: Identity, tmp_path: Path
    ) -> None:
        client = AsyncMock()
        client.email_login.side_effect = [
            ApplicationRejection("wrong password", code=-1),
            Success({"code": 1, "data": {"token": identity.token}}),
        ]
        prompter = FakePrompter(["email", "email"], ["a@b.c", "bad", "a@b.c", "pw"])

        result = await _coordinator(client, validator, prompter, tmp_path).login()

        assert result == identity
        assert prompter.select_count == 2
        assert client.email_login.await_count == 2

    async def test_invalid_fresh_token_raises(
        self, validator: AsyncMock, tmp_path: Path
    ) -> None:
        client = AsyncMock()
        client.email_login.return_value = Success({"code": 1, "data": {"token": "stale"}})
        prompter = FakePrompter(["email"], ["a@b.c", "pw"])

        with pytest.raises(InvalidTokenError, match="token expired"):
            await _coordinator(client, validator, prompter, tmp_path).login()

    async def test_retry_exhaustion_propagates(
        self, validator: AsyncMock, tmp_path: Path
    ) -> None:
        client = AsyncMock()
        client.email_login.side_effect = RetryExhausted("down", 5)
        prompter = FakePrompter(["email"], ["a@b.c", "pw"])

        with pytest.raises(RetryExhausted):
            await _coordinator(client, validator, prompter, tmp_path).login()


class TestPhoneFlow:
    async def test_phone_login_success(
        self, validator: AsyncMock, identity: Identity, tmp_path: Path
    ) -> None:
        client = AsyncMock()
        client.fetch_captcha.return_value = _captcha_success()
        client.request_sms_code.return_value = Success({"code": 1, "data": {}})
        client.verification_login.return_value = Success(
            {"code": 1, "data": {"token": identity.token}}
        )
        server = AsyncMock()
        server.start.return_value = "http://127.0.0.1:40000/captcha.png"
        prompter = FakePrompter(["phone"], ["13800000000", "x7k2", "654321"])

        result = await _coordinator(client, validator, prompter, tmp_path, server).login()

        assert result == identity
        client.request_sms_code.assert_awaited_once_with(
            "13800000000", "x7k2", "cap-1", "linux"
        )
        client.verification_login.assert_awaited_once_with(
            "13800000000", "654321", "dev123", "linux"
        )
        assert (tmp_path / "captcha.png").read_bytes() == PNG
        server.start.assert_awaited_once_with(PNG)
        server.stop.assert_awaited_once()

    async def test_captcha_rejection_returns_to_mode_selection(
        self, validator: AsyncMock, identity: Identity, tmp_path: Path
    ) -> None:
        client = AsyncMock()
        client.fetch_captcha.return_value = ApplicationRejection("busy")
        client.email_login.return_value = Success(
            {"code": 1, "data": {"token": identity.token}}
        )
        prompter = FakePrompter(["phone", "email"], ["13800000000", "a@b.c", "pw"])

        result = await _coordinator(client, validator, prompter, tmp_path).login()

        assert result == identity
        client.request_sms_code.assert_not_awaited()
        assert prompter.select_count == 2

    async def test_sms_rejection_returns_to_mode_selection(
        self, validator: AsyncMock, identity: Identity, tmp_path: Path
    ) -> None:
        client = AsyncMock()
        client.fetch_captcha.return_value = _captcha_success()
        client.request_sms_code.return_value = ApplicationRejection("wrong captcha")
        client.email_login.return_value = Success(
            {"code": 1, "data": {"token": identity.token}}
        )
        prompter = FakePrompter(
            ["phone", "email"], ["13800000000", "bad", "a@b.c", "pw"]
        )

        result = await _coordinator(client, validator, prompter, tmp_path).login()

        assert result == identity
        client.verification_login.assert_not_awaited()

    async def test_captcha_server_stopped_when_prompt_fails(
        self, validator: AsyncMock, tmp_path: Path
    ) -> None:
        client = AsyncMock()
        client.fetch_captcha.return_value = _captcha_success()
        server = AsyncMock()
        server.start.return_value = "http://127.0.0.1:40000/captcha.png"
        prompter = AsyncMock()
        prompter.select.return_value = "phone"
        prompter.ask.side_effect = ["13800000000", EOFError()]

        with pytest.raises(EOFError):
            await _coordinator(client, validator, prompter, tmp_path, server).login()

        server.stop.assert_awaited_once()

    async def test_captcha_server_bind_failure_still_prompts(
        self, validator: AsyncMock, identity: Identity, tmp_path: Path
    ) -> None:
        client = AsyncMock()
        client.fetch_captcha.return_value = _captcha_success()
        client.request_sms_code.return_value = Success({"code": 1, "data": {}})
        client.verification_login.return_value = Success(
            {"code": 1, "data": {"token": identity.token}}
        )
        server = AsyncMock()
        server.start.side_effect = OSError("address in use")
        prompter = FakePrompter(["phone"], ["13800000000", "x7k2", "654321"])

        result = await _coordinator(client, validator, prompter, tmp_path, server).login()

        assert result == identity

    async def test_captcha_save_failure_still_serves(
        self, validator: AsyncMock, identity: Identity, tmp_path: Path
    ) -> None:
        client = AsyncMock()
        client.fetch_captcha.return_value = _captcha_success()
        client.request_sms_code.return_value = Success({"code": 1, "data": {}})
        client.verification_login.return_value = Success(
            {"code": 1, "data": {"token": identity.token}}
        )
        server = AsyncMock()
        server.start.return_value = "http://127.0.0.1:40000/captcha.png"
        prompter = FakePrompter(["phone"], ["13800000000", "x7k2", "654321"])
        missing_dir = tmp_path / "missing_dir"

        result = await _coordinator(
            client, validator, prompter, missing_dir, server
        ).login()

        assert result == identity
        assert not missing_dir.exists()
        server.start.assert_awaited_once_with(PNG)
        server.stop.assert_awaited_once()

    async def test_captcha_neither_saved_nor_served_returns_to_mode_selection(
        self, validator: AsyncMock, identity: Identity, tmp_path: Path
    ) -> None:
        client = AsyncMock()
        client.fetch_captcha.return_value = _captcha_success()
        client.email_login.return_value = Success(
            {"code": 1, "data": {"token": identity.token}}
        )
        server = AsyncMock()
        server.start.side_effect = OSError("address in use")
        prompter = FakePrompter(["phone", "email"], ["13800000000", "a@b.c", "pw"])

        result = await _coordinator(
            client, validator, prompter, tmp_path / "missing_dir", server
        ).login()

        assert result == identity
        assert prompter.select_count == 2
        client.request_sms_code.assert_not_awaited()
        server.stop.assert_awaited_once()


async def test_unknown_mode_raises(validator: AsyncMock, tmp_path: Path) -> None:
    prompter = FakePrompter(["qr"], [])

    with pytest.raises(UnknownLoginModeError, match="qr"):
        await _coordinator(AsyncMock(), validator, prompter, tmp_path).login()
