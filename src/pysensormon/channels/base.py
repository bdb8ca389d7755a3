"""Shared channel producer machinery."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from typing import Any, ClassVar

from pysensormon._redact import redact_for_log
from pysensormon.config import SensorConfig
from pysensormon.exceptions import MalformedEventError, SensorUnsupportedError
from pysensormon.platform.base import Subscription
from pysensormon.state.events import Channel
from pysensormon.state.store import ChannelWriter
from pysensormon.state.throttle import ChannelThrottler

_logger = logging.getLogger(__name__)


class ChannelHandler:
    """Decode → accumulate → throttle → commit for one channel.

    The whole write path runs under one lock per channel, so a platform that
    re-enters the same callback from several threads is serialized against
    itself. Different channels never share a lock.
    """

    channel: ClassVar[Channel]

    def __init__(self, *, writer: ChannelWriter, throttler: ChannelThrottler, config: SensorConfig) -> None:
        if writer.channel != self.channel:
            raise ValueError(f"{type(self).__name__} needs a {self.channel} writer, got {writer.channel}")
        self._writer = writer
        self._throttler = throttler
        self._config = config
        self._lock = threading.Lock()
        self._subscriptions: list[Subscription] = []
        self._closed = False
        self.supported: bool | None = None
        self.received = 0
        self.malformed = 0

    @property
    def is_subscribed(self) -> bool:
        return bool(self._subscriptions)

    def handle(self, payload: Any) -> bool:
        """Process one raw platform event; returns whether the snapshot changed."""
        self.received += 1
        try:
            reading = self.decode(payload)
        except MalformedEventError as exc:
            self.malformed += 1
            _logger.debug("Dropping malformed %s event: %s payload=%s", self.channel, exc, redact_for_log(payload))
            return False
        with self._lock:
            return self.process(reading)

    def decode(self, payload: Any) -> Any:
        raise NotImplementedError

    def process(self, reading: Any) -> bool:
        """Apply a decoded reading. Called with the channel lock held."""
        raise NotImplementedError

    def now(self) -> float:
        return self._throttler.clock()

    def throttle_key(self, stream: str | None = None) -> str:
        return self.channel.value if stream is None else f"{self.channel.value}.{stream}"

    def throttle(self, *, stream: str | None = None, interval: float | None = None, now: float | None = None) -> bool:
        """Whether this (sub-)stream may commit now; records the commit if so."""
        period = self._config.throttle.primary if interval is None else interval
        return self._throttler.try_acquire(self.throttle_key(stream), period, now=now)

    def subscribe(self, opener: Callable[[], Subscription]) -> bool:
        """Open a platform subscription, leaving the channel unavailable on failure.

        A missing capability or a failing platform call is logged and
        reported as ``False``; it never propagates to the session.
        """
        try:
            subscription = opener()
        except SensorUnsupportedError as exc:
            self.supported = False
            _logger.info("%s not available: %s", self.channel, exc)
            return False
        except Exception:
            self.supported = False
            _logger.warning("Failed to start %s", self.channel, exc_info=True)
            return False
        self.supported = True
        return self.track(subscription)

    def track(self, subscription: Subscription) -> bool:
        """Keep *subscription* for release on close.

        A subscription that arrives after :meth:`close` is released at once.
        """
        if self._closed:
            subscription.close()
            _logger.debug("Released late %s subscription after close", self.channel)
            return False
        self._subscriptions.append(subscription)
        return True

    def close(self) -> None:
        """Release every platform subscription this channel opened."""
        self._closed = True
        subscriptions, self._subscriptions = self._subscriptions, []
        for subscription in subscriptions:
            try:
                subscription.close()
            except Exception:
                _logger.debug("Closing %s subscription failed", self.channel, exc_info=True)

    async def aclose(self) -> None:
        self.close()
