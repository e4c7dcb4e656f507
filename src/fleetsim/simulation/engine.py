"""Simulation engine.

Drives every vehicle of a fleet from one shared asyncio timer so fleet-wide
updates stay temporally coherent. Each tick runs the movement simulator per
vehicle, feeds the sample to the fuel predictor and the alert synthesizer,
then publishes location, sensor and alert updates to the distribution hub.
Publishing never waits on the transport, so a slow or dead backend cannot
stall the tick.
"""

from __future__ import annotations

import asyncio
import contextlib
import dataclasses
import logging
import random
from collections.abc import Callable, Iterable, Mapping
from datetime import datetime
from types import MappingProxyType

from fleetsim.alerts import AlertSynthesizer
from fleetsim.config import FleetSimConfig
from fleetsim.models._base import utcnow
from fleetsim.models.prediction import FuelPrediction
from fleetsim.models.realtime import RealtimeUpdate
from fleetsim.models.telemetry import TelemetrySample
from fleetsim.models.vehicle import Vehicle
from fleetsim.prediction import FuelPredictionEngine
from fleetsim.realtime.hub import DistributionHub
from fleetsim.routes import RouteCatalog
from fleetsim.simulation.movement import MovementSimulator
from fleetsim.simulation.state import VehicleSimState

_logger = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True)
class SimulationStatus:
    is_running: bool
    vehicle_count: int
    last_update: datetime | None


class SimulationEngine:
    """Start/stop surface over the per-vehicle movement simulation.

    Parameters
    ----------
    hub : DistributionHub
        Destination of every location, sensor and alert update.
    catalog : RouteCatalog or None
        Routes vehicles are placed on. Defaults to the built-in catalog.
    config : FleetSimConfig or None
        Movement, prediction and alert settings.
    rng : random.Random or None
        Source of all randomness. Pass a seeded instance for reproducible
        runs.
    predictor, synthesizer
        Override the fuel predictor or alert synthesizer.
    clock : callable or None
        Returns the wall-clock time used to stamp the start of a run.
    """

    def __init__(
        self,
        hub: DistributionHub,
        catalog: RouteCatalog | None = None,
        config: FleetSimConfig | None = None,
        rng: random.Random | None = None,
        predictor: FuelPredictionEngine | None = None,
        synthesizer: AlertSynthesizer | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._hub = hub
        self._config = config or FleetSimConfig()
        self._catalog = catalog or RouteCatalog.default()
        self._rng = rng or random.Random()
        self._simulator = MovementSimulator(self._catalog, self._config.simulation, rng=self._rng)
        self._predictor = predictor or FuelPredictionEngine(self._config.prediction)
        self._synthesizer = synthesizer or AlertSynthesizer(self._config.alerts)
        self._clock = clock or utcnow

        self._states: dict[str, VehicleSimState] = {}
        self._running = False
        self._task: asyncio.Task[None] | None = None
        self._last_update: datetime | None = None

    @property
    def catalog(self) -> RouteCatalog:
        return self._catalog

    @property
    def predictor(self) -> FuelPredictionEngine:
        return self._predictor

    @property
    def is_running(self) -> bool:
        return self._running

    def status(self) -> SimulationStatus:
        return SimulationStatus(
            is_running=self._running,
            vehicle_count=len(self._states),
            last_update=self._last_update,
        )

    def states(self) -> Mapping[str, VehicleSimState]:
        """Read-only view of the current per-vehicle states."""
        return MappingProxyType(dict(self._states))

    def predictions(self) -> dict[str, FuelPrediction]:
        return self._predictor.predictions()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self, fleet: Iterable[Vehicle], *, autotick: bool = True) -> bool:
        """Place *fleet* on its routes and start ticking.

        Vehicles naming a route are placed on it; the others are assigned
        catalog routes round-robin. Returns ``False`` when already running.
        With ``autotick=False`` no timer is started and the caller drives
        the run with :meth:`step`.

        Raises
        ------
        RouteValidationError
            A vehicle names a route missing from the catalog.
        ValueError
            Two vehicles share an id.
        """
        if self._running:
            return False

        now = self._clock()
        states: dict[str, VehicleSimState] = {}
        for index, vehicle in enumerate(fleet):
            if vehicle.vehicle_id in states:
                raise ValueError(f"Duplicate vehicle id {vehicle.vehicle_id!r}")
            route = self._catalog.get(vehicle.route_name) if vehicle.route_name else self._catalog.for_index(index)
            states[vehicle.vehicle_id] = self._simulator.initial_state(vehicle, route, now)

        self._states = states
        self._predictor.reset()
        self._last_update = now
        self._running = True
        if autotick:
            self._task = asyncio.create_task(self._run(), name="fleetsim-simulation")
        _logger.info(
            "Simulation started vehicles=%d interval=%.1fs",
            len(states),
            self._config.simulation.tick_interval,
        )
        return True

    async def stop(self) -> bool:
        """Stop ticking and discard the per-vehicle state.

        Idempotent. Once this returns no further tick fires.
        """
        if not self._running:
            return False
        self._running = False
        task = self._task
        self._task = None
        if task is not None and not task.done():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        vehicle_count = len(self._states)
        self._states = {}
        self._predictor.reset()
        _logger.info("Simulation stopped vehicles=%d", vehicle_count)
        return True

    async def _run(self) -> None:
        loop = asyncio.get_running_loop()
        interval = self._config.simulation.tick_interval
        last = loop.time()
        while self._running:
            await asyncio.sleep(interval)
            current = loop.time()
            elapsed, last = current - last, current
            self.step(elapsed)

    # ------------------------------------------------------------------
    # Tick
    # ------------------------------------------------------------------

    def step(self, elapsed_seconds: float) -> list[TelemetrySample]:
        """Advance every vehicle by *elapsed_seconds* and publish the results.

        A vehicle whose tick fails is logged and skipped; the others still
        advance.
        """
        samples: list[TelemetrySample] = []
        for vehicle_id, state in list(self._states.items()):
            try:
                new_state, sample = self._simulator.tick(state, elapsed_seconds)
            except Exception:
                _logger.exception("Tick failed for vehicle %s", vehicle_id)
                continue
            self._states[vehicle_id] = new_state
            samples.append(sample)
            self._publish(new_state, sample)
        if samples:
            self._last_update = samples[-1].timestamp
        return samples

    def _publish(self, state: VehicleSimState, sample: TelemetrySample) -> None:
        hub = self._hub
        prediction = self._predictor.update(sample)
        hub.publish(RealtimeUpdate.location_from(sample))
        hub.publish(RealtimeUpdate.sensor_from(sample))
        for alert in self._synthesizer.synthesize(sample, prediction, state.vehicle):
            _logger.debug("Alert vehicle=%s kind=%s severity=%s", alert.vehicle_id, alert.kind, alert.severity)
            hub.publish(RealtimeUpdate.alert_from(alert))
