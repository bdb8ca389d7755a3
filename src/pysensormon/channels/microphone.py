"""Microphone channel: sound level sampled on a fixed tick."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import threading
from collections import deque
from typing import Any

from pysensormon._redact import redact_for_log
from pysensormon.channels.base import ChannelHandler
from pysensormon.derivations import sound_level_db
from pysensormon.exceptions import MalformedEventError
from pysensormon.ingestion.decoders import decode_audio_frame
from pysensormon.models.environment import AudioFrame
from pysensormon.platform.base import SensorPlatform
from pysensormon.state.events import Channel

_logger = logging.getLogger(__name__)


class AudioRingBuffer:
    """Bounded buffer of recent analyser frames.

    Frames are pushed from the capture callback and read by the sampling
    tick; the oldest frame is dropped when the buffer is full.
    """

    def __init__(self, maxlen: int) -> None:
        self._frames: deque[AudioFrame] = deque(maxlen=maxlen)
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._frames)

    def push(self, frame: AudioFrame) -> None:
        with self._lock:
            self._frames.append(frame)

    def latest(self) -> AudioFrame | None:
        with self._lock:
            return self._frames[-1] if self._frames else None

    def clear(self) -> None:
        with self._lock:
            self._frames.clear()


class MicrophoneChannel(ChannelHandler):
    channel = Channel.MICROPHONE

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._buffer = AudioRingBuffer(self._config.audio_buffer_frames)
        self._task: asyncio.Task[None] | None = None

    @property
    def buffer(self) -> AudioRingBuffer:
        return self._buffer

    @property
    def is_sampling(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self, platform: SensorPlatform) -> bool:
        """Open the capture stream and begin sampling.

        Raises whatever the platform raises when capture is refused; the
        caller decides how that affects permissions. Returns ``False`` when
        the channel was closed before capture opened.
        """
        subscription = await platform.open_microphone(self.on_frame)
        if not self.track(subscription):
            # Closed while capture was being opened.
            return False
        if self._task is None:
            self._task = asyncio.create_task(self._run(), name="pysensormon-microphone")
        return True

    def on_frame(self, payload: Any) -> None:
        """Capture callback: buffer the frame, nothing else."""
        self.received += 1
        try:
            frame = self.decode(payload)
        except MalformedEventError as exc:
            self.malformed += 1
            _logger.debug("Dropping malformed audio frame: %s payload=%s", exc, redact_for_log(payload))
            return
        self._buffer.push(frame)

    def decode(self, payload: Any) -> AudioFrame:
        return decode_audio_frame(payload)

    def sample(self) -> bool:
        """Derive the sound level from the newest buffered frame."""
        frame = self._buffer.latest()
        if frame is None:
            return False
        with self._lock:
            return self.process(frame)

    def process(self, reading: AudioFrame) -> bool:
        level = sound_level_db(reading.bins)
        if level is None:
            return False
        if not self.throttle():
            return False
        self._writer.commit({"sound_db": float(level)})
        return True

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._config.microphone_tick)
            try:
                self.sample()
            except Exception:
                _logger.warning("Microphone sample failed", exc_info=True)

    async def aclose(self) -> None:
        task, self._task = self._task, None
        if task is not None:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        self.close()
        self._buffer.clear()
