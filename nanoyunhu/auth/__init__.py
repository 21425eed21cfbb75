"""Credential lifecycle: token validation and interactive login."""

from .captcha_server import CaptchaServer
from .login import LOGIN_MODES, LoginCoordinator, decode_captcha_image
from .prompts import ConsolePrompter, Prompter
from .validator import AuthTokenValidator

__all__ = [
    "LOGIN_MODES",
    "AuthTokenValidator",
    "CaptchaServer",
    "ConsolePrompter",
    "LoginCoordinator",
    "Prompter",
    "decode_captcha_image",
]
