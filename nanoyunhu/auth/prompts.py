"""Operator prompt interface used by the login flow."""

from __future__ import annotations

import asyncio
import getpass
from collections.abc import Sequence
from typing import Protocol

from aioconsole import ainput

Choice = tuple[str, str]


class Prompter(Protocol):
    """Interactive operator I/O."""

    async def select(self, message: str, choices: Sequence[Choice]) -> str:
        """Ask the operator to pick one of ``(label, value)`` choices; return the value."""
        ...

    async def ask(self, message: str, *, secret: bool = False) -> str:
        """Ask the operator for free text."""
        ...


class ConsolePrompter:
    """Prompter reading from the terminal without blocking the event loop."""

    async def select(self, message: str, choices: Sequence[Choice]) -> str:
        lines = [message]
        lines.extend(f"  {idx}. {label}" for idx, (label, _) in enumerate(choices, 1))
        menu = "\n".join(lines) + "\n> "
        while True:
            answer = (await ainput(menu)).strip()
            if answer.isdigit() and 1 <= int(answer) <= len(choices):
                return choices[int(answer) - 1][1]
            for label, value in choices:
                if answer in (label, value):
                    return value

    async def ask(self, message: str, *, secret: bool = False) -> str:
        while True:
            if secret:
                answer = await asyncio.to_thread(getpass.getpass, f"{message}: ")
            else:
                answer = await ainput(f"{message}: ")
            answer = answer.strip()
            if answer:
                return answer
