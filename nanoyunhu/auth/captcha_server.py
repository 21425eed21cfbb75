"""Transient local HTTP server exposing the current CAPTCHA image."""

from __future__ import annotations

import logging

from aiohttp import web

_LOGGER = logging.getLogger(__name__)

CAPTCHA_PATH = "/captcha.png"


class CaptchaServer:
    """Serve one PNG at ``/captcha.png`` until stopped."""

    def __init__(self, host: str, port: int = 0) -> None:
        self._host = host
        self._port = port
        self._image: bytes = b""
        self._runner: web.AppRunner | None = None

    @property
    def running(self) -> bool:
        return self._runner is not None

    async def _handle_captcha(self, request: web.Request) -> web.Response:
        return web.Response(body=self._image, content_type="image/png")

    async def start(self, image: bytes) -> str:
        """Publish ``image`` and return the URL it can be viewed at."""
        self._image = image
        if self._runner is None:
            app = web.Application()
            app.router.add_get(CAPTCHA_PATH, self._handle_captcha)
            runner = web.AppRunner(app)
            await runner.setup()
            site = web.TCPSite(runner, self._host, self._port)
            try:
                await site.start()
            except OSError:
                await runner.cleanup()
                raise
            self._runner = runner
            _LOGGER.debug("CAPTCHA server listening on %s", runner.addresses)

        return f"http://{self._host}:{self._bound_port()}{CAPTCHA_PATH}"

    def _bound_port(self) -> int:
        if self._runner is None:
            return self._port
        for address in self._runner.addresses:
            if isinstance(address, tuple) and len(address) >= 2:
                return int(address[1])
        return self._port

    async def stop(self) -> None:
        runner, self._runner = self._runner, None
        if runner is not None:
            await runner.cleanup()
            _LOGGER.debug("CAPTCHA server stopped")
