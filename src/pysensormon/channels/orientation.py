"""Orientation channel: one compass heading from either platform convention."""

from __future__ import annotations

import logging
from typing import Any

from pysensormon.channels.base import ChannelHandler
from pysensormon.ingestion.decoders import decode_orientation
from pysensormon.models.orientation import OrientationReading
from pysensormon.platform.base import SensorPlatform
from pysensormon.state.events import Channel

_logger = logging.getLogger(__name__)


class OrientationChannel(ChannelHandler):
    channel = Channel.ORIENTATION

    def start(self, platform: SensorPlatform) -> bool:
        return self.subscribe(lambda: platform.add_orientation_listener(self.handle))

    def decode(self, payload: Any) -> OrientationReading:
        return decode_orientation(payload)

    def process(self, reading: OrientationReading) -> bool:
        patch = {"heading": reading.heading, "source": reading.source, "accuracy": reading.accuracy}

        if not reading.has_heading:
            if self._writer.is_available():
                # Keep the last real heading instead of snapping to north.
                _logger.debug("Dropping orientation event without heading on a live channel")
                return False
            if not self.throttle():
                return False
            self._writer.commit(patch, genuine=False)
            return True

        if not self.throttle():
            return False
        self._writer.commit(patch)
        return True
