#!/usr/bin/env python3
"""Run the fleet simulation from the command line.

Drives the default route catalog with a generated fleet, prints every
published update as a JSON envelope line and a trip summary per vehicle at
the end. With ``--hub-url`` the hub also connects to a real-time backend and
forwards the updates to it.

Examples::

    python scripts/run_simulation.py --vehicles 3 --ticks 20 --fast --seed 7
    python scripts/run_simulation.py --hub-url wss://localhost:7162/RealTime --duration 60
"""

from __future__ import annotations

import argparse
import asyncio
import dataclasses
import logging
import random
import sys
from collections import defaultdict
from pathlib import Path

# Allow running from repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from fleetsim import (  # noqa: E402
    DistributionHub,
    FleetSimConfig,
    RouteCatalog,
    SimulationEngine,
    TelemetrySample,
    Vehicle,
    summarize_trip,
)
from fleetsim.realtime import ConnectionState, Subscription, dumps_update  # noqa: E402

_LOG = logging.getLogger("run_simulation")


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run the fleet telemetry simulation.")
    parser.add_argument("--vehicles", type=int, default=3, help="Number of simulated vehicles.")
    parser.add_argument("--ticks", type=int, default=20, help="Ticks to run in --fast mode.")
    parser.add_argument(
        "--duration",
        type=float,
        default=30.0,
        help="Wall-clock seconds to run in timer mode.",
    )
    parser.add_argument(
        "--fast",
        action="store_true",
        help="Drive ticks directly without sleeping (uses the configured tick interval as elapsed time).",
    )
    parser.add_argument("--seed", type=int, default=None, help="Seed for reproducible runs.")
    parser.add_argument("--hub-url", default=None, help="Connect the hub to this WebSocket endpoint.")
    parser.add_argument("--quiet", action="store_true", help="Do not print envelopes.")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logs.")
    return parser.parse_args()


def _build_fleet(count: int, catalog: RouteCatalog) -> list[Vehicle]:
    fleet: list[Vehicle] = []
    for index in range(count):
        route = catalog.for_index(index)
        fleet.append(
            Vehicle(
                vehicle_id=f"veh-{index + 1:03d}",
                name=f"Vehicle {index + 1}",
                plate=f"SIM{index + 1:03d}",
                route_name=route.name,
            )
        )
    return fleet


async def _print_updates(subscription: Subscription, quiet: bool) -> None:
    async for update in subscription:
        if not quiet:
            print(dumps_update(update))


async def _run(args: argparse.Namespace) -> int:
    config = FleetSimConfig.from_env()
    if args.hub_url:
        config = dataclasses.replace(
            config,
            hub=dataclasses.replace(config.hub, url=args.hub_url, forward_published=True),
        )

    catalog = RouteCatalog.default()
    hub = DistributionHub(config.hub)
    engine = SimulationEngine(hub, catalog=catalog, config=config, rng=random.Random(args.seed))
    fleet = _build_fleet(args.vehicles, catalog)

    printer_sub = hub.subscribe()
    printer = asyncio.create_task(_print_updates(printer_sub, args.quiet))

    if args.hub_url:
        await hub.connect()
        try:
            await hub.wait_for_state(ConnectionState.CONNECTED, timeout=config.hub.connect_timeout)
        except TimeoutError:
            _LOG.warning("Hub not connected yet; continuing with local fan-out only")

    history: dict[str, list[TelemetrySample]] = defaultdict(list)
    try:
        if args.fast:
            await engine.start(fleet, autotick=False)
            for _ in range(args.ticks):
                for sample in engine.step(config.simulation.tick_interval):
                    history[sample.vehicle_id].append(sample)
                await asyncio.sleep(0)
        else:
            await engine.start(fleet)
            loop = asyncio.get_running_loop()
            deadline = loop.time() + args.duration
            while loop.time() < deadline:
                await asyncio.sleep(config.simulation.tick_interval)
                for state in engine.states().values():
                    history[state.vehicle_id].append(state.to_sample())
        status = engine.status()
        _LOG.info("Simulation status running=%s vehicles=%d", status.is_running, status.vehicle_count)
    finally:
        await engine.stop()
        await hub.disconnect()
        hub.unsubscribe(printer_sub)
        await printer

    for vehicle_id, samples in sorted(history.items()):
        if len(samples) < 2:
            continue
        summary = summarize_trip(samples)
        print(
            f"[summary] {vehicle_id}: distance={summary.total_distance_km:.3f} km "
            f"avg={summary.average_speed_kmh:.1f} km/h fuel_used={summary.fuel_consumed:.2f}% "
            f"stops={summary.stops}",
            file=sys.stderr,
        )
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
        return 130


if __name__ == "__main__":
    raise SystemExit(_main())
