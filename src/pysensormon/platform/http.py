"""HTTP push bridge.

Lets a phone or sensor-logging app POST its readings to a running session::

    POST /events        {"messages": [{"name": "location", "values": {...}, "time": ...}]}
    GET  /snapshot      current snapshot plus derived metrics
    POST /peaks/reset   zero the peak-G maximum
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any

from aiohttp import web

from pysensormon.exceptions import BridgeError, SessionClosedError
from pysensormon.platform.push import PushPlatform, resolve_kind
from pysensormon.session import SensorSession
from pysensormon.state.events import Channel

_logger = logging.getLogger(__name__)

SESSION_KEY = web.AppKey("session", SensorSession)
PLATFORM_KEY = web.AppKey("platform", PushPlatform)


def _extract_messages(body: Any) -> list[Any]:
    if isinstance(body, list):
        return body
    if isinstance(body, Mapping):
        messages = body.get("messages")
        if isinstance(messages, list):
            return messages
        if "name" in body:
            return [body]
    raise BridgeError("expected a list of messages or {'messages': [...]}")


async def _post_events(request: web.Request) -> web.Response:
    platform = request.app[PLATFORM_KEY]
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise web.HTTPBadRequest(text="body is not valid JSON") from None
    try:
        messages = _extract_messages(body)
    except BridgeError as exc:
        raise web.HTTPBadRequest(text=str(exc)) from None

    accepted = 0
    ignored = 0
    for message in messages:
        name = message.get("name") if isinstance(message, Mapping) else None
        if not isinstance(name, str) or resolve_kind(name) is None:
            ignored += 1
            continue
        platform.dispatch_message(message)
        accepted += 1

    _logger.debug("HTTP bridge accepted=%d ignored=%d", accepted, ignored)
    return web.json_response({"accepted": accepted, "ignored": ignored})


async def _get_snapshot(request: web.Request) -> web.Response:
    session = request.app[SESSION_KEY]
    try:
        readout = session.read()
    except SessionClosedError as exc:
        raise web.HTTPServiceUnavailable(text=str(exc)) from None
    return web.json_response(readout.model_dump(mode="json"))


async def _post_reset_peaks(request: web.Request) -> web.Response:
    session = request.app[SESSION_KEY]
    try:
        session.reset_peaks()
        peak = session.snapshot().motion.peak_g
    except SessionClosedError as exc:
        raise web.HTTPServiceUnavailable(text=str(exc)) from None
    return web.json_response({Channel.MOTION.value: {"peak_g": peak}})


def create_app(session: SensorSession, platform: PushPlatform) -> web.Application:
    """Build the bridge application for *session* fed through *platform*."""
    app = web.Application()
    app[SESSION_KEY] = session
    app[PLATFORM_KEY] = platform
    app.router.add_post("/events", _post_events)
    app.router.add_get("/snapshot", _get_snapshot)
    app.router.add_post("/peaks/reset", _post_reset_peaks)
    return app


class SensorHttpBridge:
    """Runs :func:`create_app` on a TCP site inside the current event loop."""

    def __init__(
        self,
        session: SensorSession,
        platform: PushPlatform,
        *,
        host: str = "0.0.0.0",
        port: int = 8080,
    ) -> None:
        self._app = create_app(session, platform)
        self._host = host
        self._port = port
        self._runner: web.AppRunner | None = None

    @property
    def is_running(self) -> bool:
        return self._runner is not None

    async def start(self) -> None:
        if self._runner is not None:
            return
        runner = web.AppRunner(self._app)
        await runner.setup()
        try:
            await web.TCPSite(runner, self._host, self._port).start()
        except OSError as exc:
            await runner.cleanup()
            raise BridgeError(f"cannot listen on {self._host}:{self._port}: {exc}") from exc
        self._runner = runner
        _logger.info("HTTP bridge listening on %s:%d", self._host, self._port)

    async def stop(self) -> None:
        runner, self._runner = self._runner, None
        if runner is not None:
            await runner.cleanup()
            _logger.info("HTTP bridge stopped")
