#!/usr/bin/env python3
"""Live sensor monitor.

Starts a sensor session fed by the HTTP push bridge (and optionally an MQTT
broker), then prints a readout line at a fixed interval:

    python scripts/monitor.py --port 8080 --mqtt-host localhost

Point a phone sensor-logging app at ``http://<host>:<port>/events``.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

# Allow running from repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from pysensormon import (  # noqa: E402
    Channel,
    PermissionState,
    PushPlatform,
    SensorConfig,
    SensorReadout,
    SensorSession,
)
from pysensormon.derivations import compass_direction  # noqa: E402
from pysensormon.exceptions import BridgeError  # noqa: E402
from pysensormon.platform.http import SensorHttpBridge  # noqa: E402
from pysensormon.platform.mqtt import MqttBridgeSettings, SensorMqttRuntime  # noqa: E402

_LOG = logging.getLogger("monitor")


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Live sensor monitor with HTTP/MQTT push bridges.")
    parser.add_argument("--host", default="0.0.0.0", help="HTTP bridge bind address.")
    parser.add_argument("--port", type=int, default=8080, help="HTTP bridge port.")
    parser.add_argument("--mqtt-host", default=None, help="MQTT broker host (bridge disabled when omitted).")
    parser.add_argument("--mqtt-port", type=int, default=1883, help="MQTT broker port.")
    parser.add_argument("--topic-prefix", default="sensors", help="MQTT topic prefix.")
    parser.add_argument("--interval", type=float, default=1.0, help="Seconds between printed readouts.")
    parser.add_argument("--duration", type=float, default=0, help="Maximum runtime in seconds (0 = until Ctrl+C).")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logs.")
    return parser.parse_args()


def _fmt(value: float | None, fmt: str = ".1f") -> str:
    return "--" if value is None else format(value, fmt)


def _print_readout(readout: SensorReadout) -> None:
    snap = readout.snapshot
    derived = readout.derived
    parts = []
    if snap.is_available(Channel.LOCATION):
        loc = snap.location
        parts.append(f"pos={loc.latitude:.5f},{loc.longitude:.5f} alt={loc.altitude:.0f}m")
        parts.append(f"spd={loc.speed * 3.6:.1f}km/h vs={loc.vertical_speed:+.1f}m/s ({derived.vertical_trend})")
    heading = derived.heading
    parts.append(f"hdg={heading.value:.0f} {compass_direction(heading.value)} [{heading.reference}]")
    if snap.is_available(Channel.MOTION):
        parts.append(f"g={snap.motion.total_g:.2f} peak={snap.motion.peak_g:.2f}")
    parts.append(f"p={snap.barometer.pressure_hpa:.1f}hPa[{snap.barometer.origin}]")
    parts.append(f"rho={_fmt(derived.air_density, '.3f')} da={_fmt(derived.density_altitude_ft, '.0f')}ft")
    if derived.emf_level is not None:
        parts.append(f"emf={snap.magnetometer.field_strength:.1f}uT ({derived.emf_level})")
    if snap.is_available(Channel.AMBIENT_LIGHT):
        parts.append(f"lux={_fmt(snap.ambient_light.illuminance, '.0f')}")
    if snap.is_available(Channel.MICROPHONE):
        parts.append(f"snd={_fmt(snap.microphone.sound_db, '.0f')}dB")
    print("[monitor] " + " ".join(parts))


async def _run(args: argparse.Namespace) -> int:
    loop = asyncio.get_running_loop()
    platform = PushPlatform()
    config = SensorConfig.from_env()

    async with SensorSession(platform, config) as session:
        permissions = await session.request_permissions()
        for group, state in permissions.items():
            if state != PermissionState.GRANTED:
                print(f"[monitor] {group} {state}")

        bridge = SensorHttpBridge(session, platform, host=args.host, port=args.port)
        try:
            await bridge.start()
        except BridgeError as exc:
            print(f"[monitor] HTTP bridge failed: {exc}", file=sys.stderr)
            return 2
        print(f"[monitor] POST readings to http://{args.host}:{args.port}/events")

        mqtt_runtime: SensorMqttRuntime | None = None
        if args.mqtt_host:
            settings = MqttBridgeSettings(host=args.mqtt_host, port=args.mqtt_port, topic_prefix=args.topic_prefix)
            mqtt_runtime = SensorMqttRuntime(loop=loop, platform=platform, settings=settings, logger=_LOG)
            try:
                await loop.run_in_executor(None, mqtt_runtime.start)
                print(f"[monitor] Subscribed to {settings.subscription} on {args.mqtt_host}:{args.mqtt_port}")
            except BridgeError as exc:
                print(f"[monitor] MQTT bridge failed: {exc}", file=sys.stderr)
                mqtt_runtime = None

        started = loop.time()
        try:
            while args.duration <= 0 or loop.time() - started < args.duration:
                await asyncio.sleep(args.interval)
                _print_readout(session.read())
                stale = session.stale_channels()
                if stale:
                    print(f"[monitor] stale: {', '.join(stale)}")
        finally:
            if mqtt_runtime is not None:
                mqtt_runtime.stop()
            await bridge.stop()
    return 0


def _main() -> int:
    args = _parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )
    try:
        return asyncio.run(_run(args))
    except KeyboardInterrupt:
        return 0


if __name__ == "__main__":
    raise SystemExit(_main())
