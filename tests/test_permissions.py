from __future__ import annotations

import pytest

from pysensormon.exceptions import PermissionDeniedError, SensorUnsupportedError
from pysensormon.permissions import CapabilityGroup, PermissionGate, PermissionState


def test_groups_start_pending() -> None:
    gate = PermissionGate()

    assert gate.states() == {group: PermissionState.PENDING for group in CapabilityGroup}
    assert not gate.is_granted(CapabilityGroup.MOTION)


def test_resolve_settles_once() -> None:
    gate = PermissionGate()

    assert gate.resolve(CapabilityGroup.MOTION, True) == PermissionState.GRANTED
    assert gate.resolve(CapabilityGroup.MOTION, False) == PermissionState.GRANTED
    assert gate.is_granted(CapabilityGroup.MOTION)
    assert gate.state(CapabilityGroup.MICROPHONE) == PermissionState.PENDING


def test_states_is_a_copy() -> None:
    gate = PermissionGate()
    states = gate.states()
    states[CapabilityGroup.MOTION] = PermissionState.GRANTED

    assert gate.state(CapabilityGroup.MOTION) == PermissionState.PENDING


@pytest.mark.asyncio
async def test_request_skips_settled_groups() -> None:
    gate = PermissionGate()
    calls: list[int] = []

    async def _grant() -> bool:
        calls.append(1)
        return True

    assert await gate.request(CapabilityGroup.MICROPHONE, _grant) == PermissionState.GRANTED
    assert await gate.request(CapabilityGroup.MICROPHONE, _grant) == PermissionState.GRANTED
    assert calls == [1]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error",
    [
        PermissionDeniedError("no", capability="microphone"),
        SensorUnsupportedError("absent", kind="microphone"),
        RuntimeError("audio graph failed"),
    ],
)
async def test_request_failures_settle_as_denied(error: Exception) -> None:
    gate = PermissionGate()

    async def _fail() -> bool:
        raise error

    assert await gate.request(CapabilityGroup.MICROPHONE, _fail) == PermissionState.DENIED
    assert not gate.is_granted(CapabilityGroup.MICROPHONE)
