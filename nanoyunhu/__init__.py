"""YunHu chat backend client.

Authenticates an account over HTTP and keeps a self-healing WebSocket
session open, delivering decoded inbound messages in arrival order.
"""

from .auth import AuthTokenValidator, LoginCoordinator
from .bootstrap import authenticate
from .config import AppConfig, CredentialStore, load_config, save_config
from .decoder import DecodedMessage, MessageDecoder, MessageKind
from .errors import (
    ConfigValidationError,
    InvalidTokenError,
    RetryExhausted,
    SessionDestroyedError,
    UnknownLoginModeError,
    YunhuClientError,
)
from .heartbeat import HeartbeatMonitor
from .models import Credential, Identity, InvalidCredential
from .session import ConnectionSession, SessionEvent, SessionEventType, SessionState
from .transport import ChatHttpClient, RetryableRequest

__version__ = "0.1.0"

__all__ = [
    "AppConfig",
    "AuthTokenValidator",
    "ChatHttpClient",
    "ConfigValidationError",
    "ConnectionSession",
    "Credential",
    "CredentialStore",
    "DecodedMessage",
    "HeartbeatMonitor",
    "Identity",
    "InvalidCredential",
    "InvalidTokenError",
    "LoginCoordinator",
    "MessageDecoder",
    "MessageKind",
    "RetryExhausted",
    "RetryableRequest",
    "SessionDestroyedError",
    "SessionEvent",
    "SessionEventType",
    "SessionState",
    "UnknownLoginModeError",
    "YunhuClientError",
    "authenticate",
    "load_config",
    "save_config",
]
