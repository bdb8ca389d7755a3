"""Sensor platform interfaces and the in-process push hub.

The HTTP and MQTT bridges live in :mod:`pysensormon.platform.http` and
:mod:`pysensormon.platform.mqtt`.
"""

from pysensormon.platform.base import SensorPlatform, Subscription, WatchOptions
from pysensormon.platform.push import EventKind, HubSubscription, PushPlatform, resolve_kind

__all__ = [
    "EventKind",
    "HubSubscription",
    "PushPlatform",
    "SensorPlatform",
    "Subscription",
    "WatchOptions",
    "resolve_kind",
]
