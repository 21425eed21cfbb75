"""Application configuration and the persisted credential store.

The configuration is loaded once at startup into an ``AppConfig`` value and
handed to every component that needs it. Nothing reads configuration from a
module-level global.

The on-disk format is YAML. A missing file is created with defaults.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .device import detect_platform, generate_device_id
from .errors import ConfigValidationError

_LOGGER = logging.getLogger(__name__)

LOG_LEVELS: tuple[str, ...] = ("debug", "info", "warning", "error")

DEFAULT_CONFIG_PATH = Path("config.yaml")


@dataclass
class LoggingConfig:
    """Logging options.

    Attributes:
        level: Root log level name.
    """

    level: str = "info"


@dataclass
class NetworkConfig:
    """Network timing options (seconds).

    Attributes:
        http_timeout: Total timeout for one HTTP request.
        heartbeat_interval: Interval between outbound heartbeat frames.
        reconnect_delay: Fixed delay before reconnecting after a close.
        max_attempts: Transport failures tolerated per logical request.
    """

    http_timeout: float = 8.0
    heartbeat_interval: float = 30.0
    reconnect_delay: float = 5.0
    max_attempts: int = 5


@dataclass
class EndpointConfig:
    """Backend endpoint locations."""

    api_base: str = "https://chat-go.jwzhd.com/v1"
    web_api_base: str = "https://chat-web-go.jwzhd.com/v1"
    websocket_url: str = "wss://chat-ws-go.jwzhd.com/ws"


@dataclass
class AccountConfig:
    """Persisted account credential.

    Attributes:
        token: Session token, absent until a login succeeds.
        device: Device identifier derived from the machine fingerprint.
        platform: Platform label sent with every login.
    """

    token: str | None = None
    device: str | None = None
    platform: str | None = None


@dataclass
class AppConfig:
    """Complete application configuration."""

    host: str = "127.0.0.1"
    port: int = 3000
    captcha_path: str = "captcha.png"
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    network: NetworkConfig = field(default_factory=NetworkConfig)
    endpoints: EndpointConfig = field(default_factory=EndpointConfig)
    account: AccountConfig = field(default_factory=AccountConfig)

    def to_dict(self) -> dict[str, Any]:
        """Return a YAML-serializable dict, omitting unset account fields."""
        data = asdict(self)
        data["account"] = {k: v for k, v in data["account"].items() if v is not None}
        return data


def _section(data: dict[str, Any], key: str, problems: list[str]) -> dict[str, Any]:
    value = data.get(key, {})
    if value is None:
        return {}
    if not isinstance(value, dict):
        problems.append(f"{key} must be a mapping")
        return {}
    return value


def _check_positive(value: Any, name: str, problems: list[str]) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        problems.append(f"{name} must be a number")
    elif value <= 0:
        problems.append(f"{name} must be > 0")


def _check_text(value: Any, name: str, problems: list[str], *, optional: bool) -> None:
    if value is None and optional:
        return
    if not isinstance(value, str):
        problems.append(f"{name} must be a string")
    elif not value:
        problems.append(f"{name} must not be empty")


def validate_config(config: AppConfig) -> None:
    """Validate a configuration value.

    Raises:
        ConfigValidationError: Listing every problem found.
    """
    problems: list[str] = []

    _check_text(config.host, "host", problems, optional=False)
    if isinstance(config.port, bool) or not isinstance(config.port, int):
        problems.append("port must be an integer")
    elif not 1 <= config.port <= 65535:
        problems.append("port must be between 1 and 65535")
    _check_text(config.captcha_path, "captcha_path", problems, optional=False)

    if config.logging.level not in LOG_LEVELS:
        problems.append(f"logging.level must be one of {' | '.join(LOG_LEVELS)}")

    network = config.network
    _check_positive(network.http_timeout, "network.http_timeout", problems)
    _check_positive(network.heartbeat_interval, "network.heartbeat_interval", problems)
    _check_positive(network.reconnect_delay, "network.reconnect_delay", problems)
    if isinstance(network.max_attempts, bool) or not isinstance(network.max_attempts, int):
        problems.append("network.max_attempts must be an integer")
    elif network.max_attempts < 1:
        problems.append("network.max_attempts must be >= 1")

    for name in ("api_base", "web_api_base", "websocket_url"):
        _check_text(getattr(config.endpoints, name), f"endpoints.{name}", problems, optional=False)

    for name in ("token", "device", "platform"):
        _check_text(getattr(config.account, name), f"account.{name}", problems, optional=True)

    if problems:
        raise ConfigValidationError(problems)


def config_from_dict(data: dict[str, Any]) -> AppConfig:
    """Build and validate an ``AppConfig`` from parsed YAML data.

    Unknown keys are ignored.

    Raises:
        ConfigValidationError: If the data is malformed.
    """
    problems: list[str] = []
    logging_data = _section(data, "logging", problems)
    network_data = _section(data, "network", problems)
    endpoint_data = _section(data, "endpoints", problems)
    account_data = _section(data, "account", problems)
    if problems:
        raise ConfigValidationError(problems)

    defaults = AppConfig()
    config = AppConfig(
        host=data.get("host", defaults.host),
        port=data.get("port", defaults.port),
        captcha_path=data.get("captcha_path", defaults.captcha_path),
        logging=LoggingConfig(level=logging_data.get("level", defaults.logging.level)),
        network=NetworkConfig(
            http_timeout=network_data.get("http_timeout", defaults.network.http_timeout),
            heartbeat_interval=network_data.get(
                "heartbeat_interval", defaults.network.heartbeat_interval
            ),
            reconnect_delay=network_data.get(
                "reconnect_delay", defaults.network.reconnect_delay
            ),
            max_attempts=network_data.get("max_attempts", defaults.network.max_attempts),
        ),
        endpoints=EndpointConfig(
            api_base=endpoint_data.get("api_base", defaults.endpoints.api_base),
            web_api_base=endpoint_data.get("web_api_base", defaults.endpoints.web_api_base),
            websocket_url=endpoint_data.get("websocket_url", defaults.endpoints.websocket_url),
        ),
        account=AccountConfig(
            token=account_data.get("token"),
            device=account_data.get("device"),
            platform=account_data.get("platform"),
        ),
    )
    validate_config(config)
    return config


def load_config(path: Path = DEFAULT_CONFIG_PATH) -> AppConfig:
    """Load configuration from a YAML file, creating it with defaults if missing.

    Args:
        path: Location of the YAML file.

    Returns:
        Validated configuration.

    Raises:
        ConfigValidationError: If the file content is invalid.
        yaml.YAMLError: If the file is not parseable YAML.
    """
    if not path.exists():
        config = AppConfig()
        save_config(path, config)
        _LOGGER.info("Config file not found, created defaults at %s", path)
        return config

    with path.open(encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ConfigValidationError(["top level must be a mapping"])

    config = config_from_dict(data)
    _LOGGER.info("Loaded config from %s", path)
    return config


def save_config(path: Path, config: AppConfig) -> None:
    """Validate and write configuration. Nothing is written if invalid."""
    validate_config(config)
    with path.open("w", encoding="utf-8") as f:
        yaml.safe_dump(config.to_dict(), f, sort_keys=False, allow_unicode=True)
    _LOGGER.debug("Config saved to %s", path)


class CredentialStore:
    """Persisted credential store backed by the configuration file."""

    def __init__(self, path: Path, config: AppConfig) -> None:
        self.path = path
        self.config = config

    @property
    def token(self) -> str | None:
        return self.config.account.token

    @property
    def device_id(self) -> str:
        return self.ensure_device()[0]

    @property
    def platform(self) -> str:
        return self.ensure_device()[1]

    def ensure_device(self) -> tuple[str, str]:
        """Return (device_id, platform), generating and persisting them once."""
        account = self.config.account
        if account.device and account.platform:
            return account.device, account.platform

        account.device = account.device or generate_device_id()
        account.platform = account.platform or detect_platform()
        _LOGGER.debug("Device %s on platform %s", account.device, account.platform)
        self.persist()
        return account.device, account.platform

    def set_token(self, token: str) -> None:
        self.config.account.token = token
        self.persist()

    def clear_token(self) -> None:
        self.config.account.token = None
        self.persist()

    def persist(self) -> bool:
        """Write the configuration, logging instead of raising on failure."""
        try:
            save_config(self.path, self.config)
        except (OSError, ConfigValidationError) as err:
            _LOGGER.error("Failed to save config to %s: %s", self.path, err)
            return False
        return True
