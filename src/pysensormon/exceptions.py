"""Custom exception hierarchy for pysensormon."""

from __future__ import annotations


class SensorError(Exception):
    """Base exception for all pysensormon errors."""


class SensorConfigError(SensorError):
    """Invalid or missing configuration."""


class SessionClosedError(SensorError):
    """The session has ended; its snapshot and subscriptions are gone."""


class PermissionDeniedError(SensorError):
    """A permission-gated capability was refused.

    The affected channel stays unavailable for the rest of the session.
    The session never asks again.
    """

    def __init__(self, message: str, *, capability: str = "") -> None:
        self.capability = capability
        super().__init__(message)


class SensorUnsupportedError(SensorError):
    """The host has no such capability; the channel never becomes available."""

    def __init__(self, message: str, *, kind: str = "") -> None:
        self.kind = kind
        super().__init__(message)


class TransientFixError(SensorError):
    """A single location fix timed out or errored.

    Location channels ignore it and wait for the next fix. No backoff state
    is kept.
    """

    def __init__(self, message: str, *, timed_out: bool = False) -> None:
        self.timed_out = timed_out
        super().__init__(message)


class MalformedEventError(SensorError):
    """A platform event is missing a required field and was dropped."""

    def __init__(self, message: str, *, channel: str = "") -> None:
        self.channel = channel
        super().__init__(message)


class BridgeError(SensorError):
    """Transport-level failure in an HTTP or MQTT ingestion bridge."""
