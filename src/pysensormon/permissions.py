"""Capability permission tracking.

Permissions gate whole capability groups, not single channels: motion and
orientation share one grant, the microphone has its own. Each group moves
from ``pending`` to ``granted`` or ``denied`` exactly once per session.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from enum import StrEnum

from pysensormon.exceptions import PermissionDeniedError, SensorUnsupportedError

_logger = logging.getLogger(__name__)


class CapabilityGroup(StrEnum):
    MOTION = "motion"
    MICROPHONE = "microphone"


class PermissionState(StrEnum):
    PENDING = "pending"
    GRANTED = "granted"
    DENIED = "denied"


class PermissionGate:
    def __init__(self) -> None:
        self._states: dict[CapabilityGroup, PermissionState] = {
            group: PermissionState.PENDING for group in CapabilityGroup
        }

    def state(self, group: CapabilityGroup) -> PermissionState:
        return self._states[group]

    def states(self) -> dict[CapabilityGroup, PermissionState]:
        return dict(self._states)

    def is_granted(self, group: CapabilityGroup) -> bool:
        return self._states[group] == PermissionState.GRANTED

    def resolve(self, group: CapabilityGroup, granted: bool) -> PermissionState:
        """Settle a pending group. Already-settled groups keep their state."""
        current = self._states[group]
        if current != PermissionState.PENDING:
            return current
        resolved = PermissionState.GRANTED if granted else PermissionState.DENIED
        self._states[group] = resolved
        _logger.debug("Permission %s -> %s", group, resolved)
        return resolved

    async def request(self, group: CapabilityGroup, requester: Callable[[], Awaitable[bool]]) -> PermissionState:
        """Ask for *group* through *requester* if it is still pending.

        A refusal, a missing capability or a failing request all settle the
        group as denied; none of them propagate.
        """
        if self._states[group] != PermissionState.PENDING:
            return self._states[group]
        try:
            granted = bool(await requester())
        except PermissionDeniedError as exc:
            _logger.warning("%s permission denied: %s", group, exc)
            granted = False
        except SensorUnsupportedError as exc:
            _logger.info("%s not supported: %s", group, exc)
            granted = False
        except Exception:
            _logger.warning("%s permission request failed", group, exc_info=True)
            granted = False
        return self.resolve(group, granted)
