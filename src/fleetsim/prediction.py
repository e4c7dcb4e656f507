"""Fuel autonomy prediction.

Keeps a bounded, time-ordered window of recent samples per vehicle and
recomputes the vehicle's :class:`FuelPrediction` whenever a new sample
arrives. Updates for one vehicle are serialized; different vehicles never
contend for the same lock.
"""

from __future__ import annotations

import logging
import threading
from collections import deque

from fleetsim.config import PredictionConfig
from fleetsim.models.prediction import AlertLevel, FuelPrediction
from fleetsim.models.telemetry import TelemetrySample

_logger = logging.getLogger(__name__)


class _Window:
    __slots__ = ("lock", "samples", "prediction")

    def __init__(self, size: int) -> None:
        self.lock = threading.Lock()
        self.samples: deque[TelemetrySample] = deque(maxlen=size)
        self.prediction: FuelPrediction | None = None


class FuelPredictionEngine:
    """Per-vehicle consumption rate and autonomy estimator."""

    def __init__(self, config: PredictionConfig | None = None) -> None:
        self._config = config or PredictionConfig()
        self._windows: dict[str, _Window] = {}
        self._registry_lock = threading.Lock()

    @property
    def config(self) -> PredictionConfig:
        return self._config

    def _window(self, vehicle_id: str) -> _Window:
        with self._registry_lock:
            window = self._windows.get(vehicle_id)
            if window is None:
                window = _Window(self._config.window_size)
                self._windows[vehicle_id] = window
            return window

    def update(self, sample: TelemetrySample) -> FuelPrediction | None:
        """Add *sample* to its vehicle's window and recompute the prediction.

        Returns ``None`` while fewer than two samples are known. Samples
        older than the newest one in the window are dropped and the
        previous prediction is returned unchanged.
        """
        window = self._window(sample.vehicle_id)
        with window.lock:
            samples = window.samples
            if samples and sample.timestamp < samples[-1].timestamp:
                _logger.debug(
                    "Dropping out-of-order sample vehicle=%s ts=%s newest=%s",
                    sample.vehicle_id,
                    sample.timestamp.isoformat(),
                    samples[-1].timestamp.isoformat(),
                )
                return window.prediction
            samples.append(sample)
            if len(samples) < 2:
                return None
            window.prediction = self._predict(sample.vehicle_id, samples)
            return window.prediction

    def consumption_rate(self, samples: deque[TelemetrySample] | list[TelemetrySample]) -> float:
        """Fuel percentage consumed per hour between the oldest and newest sample.

        Floored at ``min_rate_per_hour`` so refuels and flat readings never
        produce a zero or negative rate. A window spanning no time uses
        ``default_rate_per_hour``.
        """
        oldest, newest = samples[0], samples[-1]
        hours = (newest.timestamp - oldest.timestamp).total_seconds() / 3600.0
        if hours <= 0:
            return self._config.default_rate_per_hour
        drained = oldest.fuel_level - newest.fuel_level
        return max(drained / hours, self._config.min_rate_per_hour)

    def classify(self, autonomy_hours: float) -> AlertLevel:
        if autonomy_hours < self._config.critical_hours:
            return AlertLevel.CRITICAL
        if autonomy_hours < self._config.warning_hours:
            return AlertLevel.WARNING
        return AlertLevel.NORMAL

    def _predict(self, vehicle_id: str, samples: deque[TelemetrySample]) -> FuelPrediction:
        newest = samples[-1]
        rate = self.consumption_rate(samples)
        autonomy = newest.fuel_level / rate
        level = self.classify(autonomy)
        if level != AlertLevel.NORMAL:
            _logger.debug(
                "Low autonomy vehicle=%s fuel=%.2f rate=%.3f/h autonomy=%.2fh level=%s",
                vehicle_id,
                newest.fuel_level,
                rate,
                autonomy,
                level,
            )
        return FuelPrediction(
            vehicle_id=vehicle_id,
            current_fuel_level=newest.fuel_level,
            consumption_rate_per_hour=rate,
            estimated_autonomy_hours=autonomy,
            alert_level=level,
            last_updated=newest.timestamp,
            sample_count=len(samples),
        )

    def get(self, vehicle_id: str) -> FuelPrediction | None:
        with self._registry_lock:
            window = self._windows.get(vehicle_id)
        if window is None:
            return None
        with window.lock:
            return window.prediction

    def predictions(self) -> dict[str, FuelPrediction]:
        with self._registry_lock:
            windows = dict(self._windows)
        result: dict[str, FuelPrediction] = {}
        for vehicle_id, window in windows.items():
            with window.lock:
                if window.prediction is not None:
                    result[vehicle_id] = window.prediction
        return result

    def reset(self, vehicle_id: str | None = None) -> None:
        """Forget one vehicle's window, or every window when *vehicle_id* is ``None``."""
        with self._registry_lock:
            if vehicle_id is None:
                self._windows.clear()
            else:
                self._windows.pop(vehicle_id, None)
