from __future__ import annotations

import math
import threading
from datetime import UTC, datetime, timedelta

import pytest

from fleetsim.config import PredictionConfig
from fleetsim.exceptions import FleetSimConfigError
from fleetsim.models import AlertLevel, Coordinate, TelemetrySample
from fleetsim.prediction import FuelPredictionEngine

_T0 = datetime(2026, 1, 1, 8, 0, tzinfo=UTC)


def _sample(minutes: float, fuel: float, vehicle_id: str = "veh-1") -> TelemetrySample:
    return TelemetrySample(
        vehicle_id=vehicle_id,
        timestamp=_T0 + timedelta(minutes=minutes),
        position=Coordinate(latitude=4.6, longitude=-74.08),
        speed_kmh=30.0,
        fuel_level=fuel,
    )


def test_needs_two_samples() -> None:
    engine = FuelPredictionEngine()
    assert engine.update(_sample(0, 50.0)) is None
    assert engine.get("veh-1") is None
    assert engine.update(_sample(1, 49.0)) is not None


def test_constant_fuel_gives_large_finite_autonomy() -> None:
    engine = FuelPredictionEngine()
    prediction = None
    for minute in range(10):
        prediction = engine.update(_sample(minute, 40.0))
    assert prediction is not None
    assert prediction.consumption_rate_per_hour == pytest.approx(0.01)
    assert math.isfinite(prediction.estimated_autonomy_hours)
    assert prediction.estimated_autonomy_hours == pytest.approx(4000.0)
    assert prediction.alert_level == AlertLevel.NORMAL


def test_refuel_is_floored_to_minimum_rate() -> None:
    engine = FuelPredictionEngine()
    engine.update(_sample(0, 20.0))
    prediction = engine.update(_sample(30, 90.0))
    assert prediction is not None
    assert prediction.consumption_rate_per_hour == pytest.approx(0.01)


def test_zero_time_span_uses_default_rate() -> None:
    engine = FuelPredictionEngine()
    engine.update(_sample(0, 50.0))
    prediction = engine.update(_sample(0, 49.0))
    assert prediction is not None
    assert prediction.consumption_rate_per_hour == pytest.approx(0.1)
    assert prediction.estimated_autonomy_hours == pytest.approx(490.0)


def test_faster_drain_gives_shorter_autonomy() -> None:
    slow = FuelPredictionEngine()
    fast = FuelPredictionEngine()
    for minute in range(0, 60, 10):
        slow_prediction = slow.update(_sample(minute, 50.0 - minute * 0.1))
        fast_prediction = fast.update(_sample(minute, 50.0 - minute * 0.5))
    assert slow_prediction is not None and fast_prediction is not None
    assert math.isfinite(slow_prediction.estimated_autonomy_hours)
    assert fast_prediction.estimated_autonomy_hours < slow_prediction.estimated_autonomy_hours


def test_classification_thresholds() -> None:
    engine = FuelPredictionEngine()
    # 10 % per hour drain.
    engine.update(_sample(0, 25.0))
    prediction = engine.update(_sample(60, 15.0))
    assert prediction is not None
    assert prediction.estimated_autonomy_hours == pytest.approx(1.5)
    assert prediction.alert_level == AlertLevel.WARNING
    assert prediction.is_low_fuel

    prediction = engine.update(_sample(120, 5.0))
    assert prediction is not None
    assert prediction.alert_level == AlertLevel.CRITICAL

    assert engine.classify(2.0) == AlertLevel.NORMAL
    assert engine.classify(1.0) == AlertLevel.WARNING
    assert engine.classify(0.99) == AlertLevel.CRITICAL


def test_thresholds_are_configurable() -> None:
    engine = FuelPredictionEngine(PredictionConfig(critical_hours=5.0, warning_hours=10.0))
    assert engine.classify(4.0) == AlertLevel.CRITICAL
    assert engine.classify(8.0) == AlertLevel.WARNING


def test_invalid_thresholds_are_rejected() -> None:
    with pytest.raises(FleetSimConfigError):
        PredictionConfig(critical_hours=3.0, warning_hours=2.0)


def test_window_is_bounded() -> None:
    engine = FuelPredictionEngine(PredictionConfig(window_size=5))
    prediction = None
    for minute in range(20):
        prediction = engine.update(_sample(minute, 80.0 - minute))
    assert prediction is not None
    assert prediction.sample_count == 5
    # Rate over the last 4 minutes: 4 % in 4 minutes.
    assert prediction.consumption_rate_per_hour == pytest.approx(60.0)


def test_out_of_order_sample_is_dropped() -> None:
    engine = FuelPredictionEngine()
    engine.update(_sample(0, 50.0))
    current = engine.update(_sample(10, 49.0))
    late = engine.update(_sample(5, 10.0))
    assert late == current
    assert engine.get("veh-1") == current


def test_vehicles_are_independent_and_reset() -> None:
    engine = FuelPredictionEngine()
    engine.update(_sample(0, 50.0, "a"))
    engine.update(_sample(60, 45.0, "a"))
    engine.update(_sample(0, 50.0, "b"))
    engine.update(_sample(60, 30.0, "b"))

    predictions = engine.predictions()
    assert predictions["a"].consumption_rate_per_hour == pytest.approx(5.0)
    assert predictions["b"].consumption_rate_per_hour == pytest.approx(20.0)

    engine.reset("a")
    assert engine.get("a") is None
    assert engine.get("b") is not None
    engine.reset()
    assert engine.predictions() == {}


def test_concurrent_updates_for_many_vehicles() -> None:
    engine = FuelPredictionEngine()

    def feed(vehicle_id: str) -> None:
        for minute in range(50):
            engine.update(_sample(minute, 90.0 - minute * 0.5, vehicle_id))

    threads = [threading.Thread(target=feed, args=(f"veh-{i}",)) for i in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    predictions = engine.predictions()
    assert len(predictions) == 8
    assert all(p.sample_count == 20 for p in predictions.values())
    assert all(p.consumption_rate_per_hour == pytest.approx(30.0) for p in predictions.values())
