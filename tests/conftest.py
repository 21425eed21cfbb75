"""Pytest configuration and fixtures for nanoyunhu tests."""

from __future__ import annotations

import json
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from nanoyunhu.models import Identity, InvalidCredential


@pytest.fixture
def mock_session() -> MagicMock:
    """Create a mock aiohttp ClientSession."""
    import aiohttp

    return MagicMock(spec=aiohttp.ClientSession)


def create_mock_response(
    status: int = 200,
    json_data: dict[str, Any] | list[Any] | None = None,
    text_data: str | None = None,
    read_data: bytes | None = None,
) -> AsyncMock:
    """Create a configured mock response.

    Args:
        status: HTTP status code
        json_data: Body to serve as UTF-8 JSON from read()
        text_data: Body served UTF-8 encoded from read() (wins over json_data)
        read_data: Raw body bytes returned from read() (wins over both)

    Returns:
        Configured AsyncMock response usable as an async context manager
    """
    response = AsyncMock()
    response.status = status

    if read_data is not None:
        response.read.return_value = read_data
    elif text_data is not None:
        response.read.return_value = text_data.encode("utf-8")
    elif json_data is not None:
        response.read.return_value = json.dumps(json_data).encode("utf-8")
    else:
        response.read.return_value = b""

    response.__aenter__.return_value = response
    response.__aexit__.return_value = None

    return response


class FakePrompter:
    """Prompter replaying scripted answers.

    ``selections`` answer ``select`` calls in order, ``answers`` answer
    ``ask`` calls in order. Every prompt is recorded in ``asked``.
    """

    def __init__(self, selections: list[str], answers: list[str]) -> None:
        self._selections = list(selections)
        self._answers = list(answers)
        self.asked: list[tuple[str, bool]] = []
        self.select_count = 0

    async def select(self, message, choices) -> str:
        self.select_count += 1
        return self._selections.pop(0)

    async def ask(self, message: str, *, secret: bool = False) -> str:
        self.asked.append((message, secret))
        return self._answers.pop(0)


@pytest.fixture
def identity() -> Identity:
    return Identity(user_id="7058262", display_name="Nano", token="tok-abcdef")


@pytest.fixture
def validator(identity: Identity) -> AsyncMock:
    """Validator accepting ``identity.token`` and declining anything else."""

    async def _validate(token: str):
        if token == identity.token:
            return identity
        return InvalidCredential("token expired")

    mock = AsyncMock()
    mock.validate.side_effect = _validate
    return mock
