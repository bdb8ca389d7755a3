"""Motion channel: G-force, peak G and vibration."""

from __future__ import annotations

from typing import Any

from pysensormon.channels.base import ChannelHandler
from pysensormon.derivations import g_force
from pysensormon.ingestion.decoders import decode_motion
from pysensormon.models.motion import MotionSample
from pysensormon.platform.base import SensorPlatform
from pysensormon.state.events import Channel


class MotionChannel(ChannelHandler):
    channel = Channel.MOTION

    def start(self, platform: SensorPlatform) -> bool:
        return self.subscribe(lambda: platform.add_motion_listener(self.handle))

    def decode(self, payload: Any) -> MotionSample:
        return decode_motion(payload)

    def process(self, reading: MotionSample) -> bool:
        acc = reading.acceleration_including_gravity
        total = g_force(acc.x, acc.y, acc.z)

        # The peak sees every sample, committed or not.
        self._writer.accumulate_max("peak_g", total)

        now = self.now()
        patch: dict[str, Any] = {}
        if self.throttle(now=now):
            patch.update(x=acc.x, y=acc.y, z=acc.z, total_g=total)

        linear = reading.acceleration
        if linear is not None and self.throttle(
            stream="vibration", interval=self._config.throttle.vibration, now=now
        ):
            patch["vibration"] = linear.magnitude

        if patch:
            self._writer.commit(patch)
        return bool(patch)
