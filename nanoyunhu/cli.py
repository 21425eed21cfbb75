"""Command line entry point for the YunHu chat client."""

from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path

import aiohttp
import click
import yaml

from .auth import AuthTokenValidator, CaptchaServer, ConsolePrompter, LoginCoordinator, Prompter
from .bootstrap import authenticate
from .config import DEFAULT_CONFIG_PATH, AppConfig, CredentialStore, load_config
from .errors import ConfigValidationError, YunhuClientError
from .models import Credential
from .session import ConnectionSession, SessionEvent, SessionEventType
from .transport.http import ChatHttpClient, RetryableRequest

_LOGGER = logging.getLogger(__name__)

EXIT_FATAL = 255

LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"


def setup_logging(level: str) -> None:
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)


def _load(config_path: Path) -> AppConfig:
    try:
        return load_config(config_path)
    except (ConfigValidationError, yaml.YAMLError, OSError) as err:
        click.echo(f"Error: failed to load {config_path}: {err}", err=True)
        sys.exit(EXIT_FATAL)


def _log_event(event: SessionEvent) -> None:
    if event.type is SessionEventType.OPENED:
        _LOGGER.info("Session open")
    elif event.type is SessionEventType.MESSAGE and event.message is not None:
        _LOGGER.info("%s: %s", event.command or event.message.kind.value, event.message.payload)
    elif event.type is SessionEventType.CLOSED:
        _LOGGER.warning("Session closed: %s", event.reason)
    elif event.type is SessionEventType.ERROR:
        _LOGGER.error("Session error: %s", event.reason)


async def serve(
    config_path: Path, config: AppConfig, prompter: Prompter | None = None
) -> None:
    """Authenticate, then keep the chat session alive until cancelled."""
    store = CredentialStore(config_path, config)
    device_id, platform = store.ensure_device()

    async with aiohttp.ClientSession() as http:
        request = RetryableRequest(
            http,
            timeout=config.network.http_timeout,
            max_attempts=config.network.max_attempts,
        )
        client = ChatHttpClient(
            request,
            api_base=config.endpoints.api_base,
            web_api_base=config.endpoints.web_api_base,
        )
        validator = AuthTokenValidator(client)
        coordinator = LoginCoordinator(
            client,
            validator,
            prompter or ConsolePrompter(),
            device_id=device_id,
            platform=platform,
            captcha_server=CaptchaServer(config.host),
            captcha_path=Path(config.captcha_path),
        )
        identity = await authenticate(store, validator, coordinator)

    session = ConnectionSession.from_config(
        config, Credential.from_identity(identity, device_id, platform)
    )
    try:
        await session.connect()
        while True:
            _log_event(await session.events.get())
    finally:
        await session.destroy()


@click.group()
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=DEFAULT_CONFIG_PATH,
    show_default=True,
    help="YAML configuration file",
)
@click.pass_context
def cli(ctx: click.Context, config_path: Path) -> None:
    """YunHu chat client."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path


@cli.command()
@click.pass_context
def run(ctx: click.Context) -> None:
    """Log in and keep the chat session connected."""
    config_path: Path = ctx.obj["config_path"]
    config = _load(config_path)
    setup_logging(config.logging.level)

    try:
        asyncio.run(serve(config_path, config))
    except KeyboardInterrupt:
        _LOGGER.info("Interrupted, shutting down")
    except YunhuClientError as err:
        _LOGGER.error("%s", err)
        sys.exit(EXIT_FATAL)
    except Exception as err:
        _LOGGER.exception("Fatal error: %s", err)
        sys.exit(EXIT_FATAL)


@cli.command()
@click.pass_context
def logout(ctx: click.Context) -> None:
    """Forget the stored token."""
    config_path: Path = ctx.obj["config_path"]
    store = CredentialStore(config_path, _load(config_path))
    if store.token is None:
        click.echo("No stored token")
        return
    store.clear_token()
    click.echo("Stored token cleared")


def main() -> None:
    cli(prog_name="nanoyunhu")
