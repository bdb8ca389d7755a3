"""pysensormon - Async sensor fusion and monitoring for phones and sensor boards."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pysensormon")
except PackageNotFoundError:
    __version__ = "0+local"
from pysensormon.config import SensorConfig, ThrottleIntervals
from pysensormon.derivations import derive_metrics
from pysensormon.exceptions import (
    BridgeError,
    MalformedEventError,
    PermissionDeniedError,
    SensorConfigError,
    SensorError,
    SensorUnsupportedError,
    SessionClosedError,
    TransientFixError,
)
from pysensormon.models import (
    DerivedMetrics,
    EmfLevel,
    FusedHeading,
    GenericSensorKind,
    HeadingReference,
    HeadingSource,
    ReadingOrigin,
    SensorReadout,
    SensorSnapshot,
    VerticalTrend,
)
from pysensormon.permissions import CapabilityGroup, PermissionState
from pysensormon.platform import PushPlatform, SensorPlatform, WatchOptions
from pysensormon.session import SensorSession
from pysensormon.state.events import Channel, ChannelStatus

__all__ = [
    "__version__",
    "BridgeError",
    "CapabilityGroup",
    "Channel",
    "ChannelStatus",
    "DerivedMetrics",
    "EmfLevel",
    "FusedHeading",
    "GenericSensorKind",
    "HeadingReference",
    "HeadingSource",
    "MalformedEventError",
    "PermissionDeniedError",
    "PermissionState",
    "PushPlatform",
    "ReadingOrigin",
    "SensorConfig",
    "SensorConfigError",
    "SensorError",
    "SensorPlatform",
    "SensorReadout",
    "SensorSession",
    "SensorSnapshot",
    "SensorUnsupportedError",
    "SessionClosedError",
    "ThrottleIntervals",
    "TransientFixError",
    "VerticalTrend",
    "WatchOptions",
    "derive_metrics",
]
