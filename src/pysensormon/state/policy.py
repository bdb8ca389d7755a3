"""Deterministic commit and availability policy.

This module intentionally contains *no* payload parsing. The decoder
boundary is responsible for producing validated readings.
"""

from __future__ import annotations


def should_commit(*, now: float, last_commit: float | None, interval: float) -> bool:
    """Decide whether a decoded reading may mutate the snapshot.

    Policy:
    - The first reading for a throttle key always commits.
    - Later readings commit once at least *interval* seconds have passed.
    """
    if last_commit is None:
        return True
    return (now - last_commit) >= interval


def next_availability(current: bool, *, genuine: bool) -> bool:
    """Availability only moves false → true, and only on a genuine reading."""
    return current or genuine


def raise_peak(current: float, sample: float) -> float:
    """Running maximum used by accumulator fields."""
    return sample if sample > current else current
