"""Channel identities and normalized channel updates.

Every channel converts its decoded readings into a :class:`ChannelUpdate`.
Only the state/store layer is allowed to merge them.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class Channel(StrEnum):
    LOCATION = "location"
    MOTION = "motion"
    ORIENTATION = "orientation"
    MAGNETOMETER = "magnetometer"
    BAROMETER = "barometer"
    AMBIENT_LIGHT = "ambient_light"
    MICROPHONE = "microphone"


class ChannelStatus(StrEnum):
    """Per-channel lifecycle. Only ever moves UNAVAILABLE → LIVE."""

    UNAVAILABLE = "unavailable"
    LIVE = "live"


class ChannelUpdate(BaseModel):
    """A normalized patch for one channel's snapshot subtree."""

    model_config = ConfigDict(frozen=True)

    channel: Channel
    data: dict[str, Any] = Field(default_factory=dict, description="Patch for the channel subtree")
    observed_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    genuine: bool = Field(
        default=True,
        description="Whether the patch came from a real hardware reading (flips availability).",
    )
