"""In-memory sensor snapshot store.

This is the only component allowed to mutate channel state. Producers get a
:class:`ChannelWriter` scoped to their own channel; everything else reads
frozen :class:`~pysensormon.models.snapshot.SensorSnapshot` copies.
"""

from __future__ import annotations

import copy
import threading
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from pysensormon.models.snapshot import ACCUMULATOR_FIELDS, SUBTREE_MODELS, SensorSnapshot
from pysensormon.state.events import Channel, ChannelUpdate
from pysensormon.state.policy import next_availability, raise_peak

StoreListener = Callable[[Channel], None]


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _owned_fields(channel: Channel) -> frozenset[str]:
    return frozenset(SUBTREE_MODELS[channel].model_fields)


class ChannelRecord(BaseModel):
    model_config = ConfigDict(extra="forbid")

    data: dict[str, Any] = Field(default_factory=dict)
    available: bool = False
    committed_at: datetime | None = None
    commits: int = 0


class SnapshotStore:
    """Holds the latest committed reading and availability flag per channel.

    Each channel record has its own lock, so producers on different channels
    never contend and a channel re-entered from several threads is
    serialized against itself.
    """

    def __init__(self, *, clock: Callable[[], datetime] = _utcnow) -> None:
        self._clock = clock
        self._records: dict[Channel, ChannelRecord] = {channel: ChannelRecord() for channel in Channel}
        self._locks: dict[Channel, threading.Lock] = {channel: threading.Lock() for channel in Channel}
        self._listeners: list[StoreListener] = []

    def add_listener(self, listener: StoreListener) -> Callable[[], None]:
        """Register a commit listener; returns a callable that removes it."""
        self._listeners.append(listener)

        def _remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _remove

    def writer(self, channel: Channel) -> ChannelWriter:
        """Write entry point restricted to *channel*'s subtree."""
        return ChannelWriter(self, channel)

    def apply(self, update: ChannelUpdate) -> None:
        """Apply a channel update.

        The patch may only name fields of the channel's own subtree and must
        validate against it; otherwise nothing is mutated.
        """
        channel = update.channel
        unknown = set(update.data) - _owned_fields(channel)
        if unknown:
            raise ValueError(f"{channel} does not own fields: {sorted(unknown)}")

        lock = self._locks[channel]
        with lock:
            record = self._records[channel]
            merged = {**record.data, **update.data}
            # Validate the whole subtree before touching the record.
            SUBTREE_MODELS[channel].model_validate(merged)
            record.data = copy.deepcopy(merged)
            record.available = next_availability(record.available, genuine=update.genuine)
            record.committed_at = update.observed_at
            record.commits += 1

        self._notify(channel)

    def accumulate_max(self, channel: Channel, field: str, value: float) -> float:
        """Raise a running-maximum field to *value*; returns the new maximum."""
        if field not in ACCUMULATOR_FIELDS.get(channel, frozenset()):
            raise ValueError(f"{field} is not an accumulator of {channel}")
        with self._locks[channel]:
            record = self._records[channel]
            current = float(record.data.get(field, 0.0))
            peak = raise_peak(current, value)
            record.data[field] = peak
            return peak

    def reset_accumulators(self) -> None:
        """Zero every accumulator field; no other field is touched."""
        for channel, fields in ACCUMULATOR_FIELDS.items():
            with self._locks[channel]:
                record = self._records[channel]
                for field in fields:
                    record.data[field] = 0.0
            self._notify(channel)

    def is_available(self, channel: Channel) -> bool:
        with self._locks[channel]:
            return self._records[channel].available

    def get_channel(self, channel: Channel) -> dict[str, Any]:
        """Committed fields of one channel (copy)."""
        with self._locks[channel]:
            return copy.deepcopy(self._records[channel].data)

    def commit_count(self, channel: Channel) -> int:
        with self._locks[channel]:
            return self._records[channel].commits

    def snapshot(self) -> SensorSnapshot:
        """Assemble a frozen snapshot of every channel."""
        subtrees: dict[str, Any] = {}
        availability: dict[Channel, bool] = {}
        committed_at: dict[Channel, datetime | None] = {}
        for channel in Channel:
            with self._locks[channel]:
                record = self._records[channel]
                subtrees[channel.value] = SUBTREE_MODELS[channel].model_validate(record.data)
                availability[channel] = record.available
                committed_at[channel] = record.committed_at
        return SensorSnapshot(
            **subtrees,
            availability=availability,
            committed_at=committed_at,
            taken_at=self._clock(),
        )

    def now(self) -> datetime:
        return self._clock()

    def _notify(self, channel: Channel) -> None:
        for listener in list(self._listeners):
            listener(channel)


class ChannelWriter:
    """Narrow write handle for a single channel's subtree."""

    def __init__(self, store: SnapshotStore, channel: Channel) -> None:
        self._store = store
        self._channel = channel

    @property
    def channel(self) -> Channel:
        return self._channel

    def commit(self, data: dict[str, Any], *, genuine: bool = True) -> None:
        self._store.apply(
            ChannelUpdate(
                channel=self._channel,
                data=data,
                observed_at=self._store.now(),
                genuine=genuine,
            )
        )

    def accumulate_max(self, field: str, value: float) -> float:
        return self._store.accumulate_max(self._channel, field, value)

    def is_available(self) -> bool:
        return self._store.is_available(self._channel)

    def current(self) -> dict[str, Any]:
        return self._store.get_channel(self._channel)
