"""Tests for the decision engine: classification, scoring, trend, insights and actions."""

from datetime import timedelta

import pytest

from conservebot.core.numeric import QuietSource
from conservebot.domain.engine import (
    STABLE_MESSAGE,
    DecisionEngine,
    band_status,
    risk_from_band,
    risk_from_max,
    risk_linear,
)
from conservebot.domain.models import (
    ActionType,
    ArtifactType,
    DemoMode,
    DoorState,
    Metric,
    MetricStatus,
    RiskLevel,
)
from conservebot.domain.standards import get_standards
from conservebot.drivers.simulator import ReadingSimulator

from tests.helpers import BASE, make_reading

FOSSILS = get_standards(ArtifactType.FOSSILS)


def _types(assessment) -> list[ActionType]:
    return [a.action_type for a in assessment.actions]


class TestRiskLevel:
    @pytest.mark.parametrize(
        "score, level",
        [
            (0, RiskLevel.LOW),
            (29, RiskLevel.LOW),
            (30, RiskLevel.MEDIUM),
            (59, RiskLevel.MEDIUM),
            (60, RiskLevel.HIGH),
            (79, RiskLevel.HIGH),
            (80, RiskLevel.CRITICAL),
            (100, RiskLevel.CRITICAL),
        ],
    )
    def test_boundaries(self, score: int, level: RiskLevel) -> None:
        assert RiskLevel.from_score(score) is level

    def test_status_colors(self) -> None:
        assert MetricStatus.SAFE.color == "green"
        assert MetricStatus.WARN.color == "yellow"
        assert MetricStatus.DANGER.color == "red"


class TestContributions:
    def test_band_classification_is_closed(self) -> None:
        band = FOSSILS.temperature_c
        assert band_status(16, band) is MetricStatus.SAFE
        assert band_status(22, band) is MetricStatus.SAFE
        assert band_status(15, band) is MetricStatus.WARN
        assert band_status(23, band) is MetricStatus.WARN
        assert band_status(14.99, band) is MetricStatus.DANGER

    def test_band_risk(self) -> None:
        band = FOSSILS.temperature_c
        assert risk_from_band(19, band) == 0
        assert risk_from_band(22.5, band) == pytest.approx(42.5)
        assert risk_from_band(23, band) == pytest.approx(60)
        assert risk_from_band(24, band) == pytest.approx(76)
        assert risk_from_band(40, band) == pytest.approx(100)
        assert risk_from_band(15.5, band) == pytest.approx(42.5)

    def test_max_risk(self) -> None:
        limit = FOSSILS.moisture_pct
        assert risk_from_max(5, limit) == 0
        assert risk_from_max(5.5, limit) == pytest.approx(42.5)
        assert risk_from_max(6, limit) == pytest.approx(60)
        assert risk_from_max(7.5, limit) == pytest.approx(85)
        assert risk_from_max(12, limit) == pytest.approx(100)

    def test_linear_risk_only_capped_by_clamp(self) -> None:
        assert risk_linear(2, 4, 1) == pytest.approx(30)
        assert risk_linear(4, 4, 1) == pytest.approx(60)
        assert risk_linear(8, 4, 1) == 100
        assert risk_linear(1.0, 0.5, 0.01) == 100


class TestEvaluate:
    def test_all_safe(self, engine: DecisionEngine) -> None:
        a = engine.evaluate(make_reading(), FOSSILS)
        assert a.risk_score == 0
        assert a.risk_level is RiskLevel.LOW
        assert all(s is MetricStatus.SAFE for s in a.statuses.values())
        assert a.insights == (STABLE_MESSAGE,)
        assert a.actions == ()

    def test_statuses_are_read_only(self, engine: DecisionEngine) -> None:
        a = engine.evaluate(make_reading(), FOSSILS)
        with pytest.raises(TypeError):
            a.statuses[Metric.HUMIDITY] = MetricStatus.DANGER
        assert a.statuses[Metric.HUMIDITY] is MetricStatus.SAFE

    def test_missing_standards_is_a_programming_error(self, engine: DecisionEngine) -> None:
        with pytest.raises(ValueError):
            engine.evaluate(make_reading(), None)

    def test_door_and_lock_amplifiers(self, engine: DecisionEngine) -> None:
        assert engine.evaluate(make_reading(door_state=DoorState.OPEN), FOSSILS).risk_score == 4
        both = make_reading(door_state=DoorState.OPEN, access_locked=True)
        assert engine.evaluate(both, FOSSILS).risk_score == 1
        assert engine.evaluate(make_reading(access_locked=True), FOSSILS).risk_score == 0

    def test_score_is_clamped_to_100(self, engine: DecisionEngine) -> None:
        for i in range(11):
            engine.ingest(make_reading(ts_utc=BASE + timedelta(minutes=i), humidity_pct=70 + i))
        worst = make_reading(
            ts_utc=BASE + timedelta(minutes=10),
            temperature_c=35,
            humidity_pct=80,
            moisture_pct=20,
            opens_per_hour=20,
            vibration=1.0,
            door_state=DoorState.OPEN,
        )
        a = engine.evaluate(worst, FOSSILS)
        assert a.risk_score == 100
        assert a.risk_level is RiskLevel.CRITICAL

    def test_idempotent_with_unchanged_window(self, engine: DecisionEngine) -> None:
        for i in range(5):
            engine.ingest(make_reading(ts_utc=BASE + timedelta(minutes=i), humidity_pct=56 + i * 0.5))
        r = make_reading(ts_utc=BASE + timedelta(minutes=4), humidity_pct=58.0, temperature_c=23.5)
        assert engine.evaluate(r, FOSSILS) == engine.evaluate(r, FOSSILS)

    @pytest.mark.parametrize(
        "field, values",
        [
            ("temperature_c", [22 + 0.25 * i for i in range(40)]),
            ("temperature_c", [16 - 0.25 * i for i in range(40)]),
            ("humidity_pct", [55 + 0.5 * i for i in range(40)]),
            ("moisture_pct", [5 + 0.2 * i for i in range(40)]),
            ("opens_per_hour", list(range(12))),
            ("vibration", [0.05 * i for i in range(21)]),
        ],
    )
    def test_monotonic_in_each_metric(self, engine: DecisionEngine, field: str, values: list) -> None:
        scores = [engine.evaluate(make_reading(**{field: v}), FOSSILS).risk_score for v in values]
        assert scores == sorted(scores)
        assert all(0 <= s <= 100 for s in scores)


class TestTrend:
    def _ingest_ramp(self, engine: DecisionEngine, per_minute: float):
        last = None
        for i in range(11):
            last = make_reading(ts_utc=BASE + timedelta(minutes=i), humidity_pct=45 + per_minute * i)
            engine.ingest(last)
        return last

    def test_single_point_is_flat(self, engine: DecisionEngine) -> None:
        r = make_reading()
        engine.ingest(r)
        assert engine.evaluate(r, FOSSILS).humidity_slope_per_min == 0.0

    def test_fast_rise_adds_eight(self, engine: DecisionEngine) -> None:
        last = self._ingest_ramp(engine, 0.1)
        a = engine.evaluate(last, FOSSILS)
        assert a.humidity_slope_per_min == pytest.approx(0.1)
        assert a.risk_score == 8

    def test_very_fast_rise_adds_twenty(self, engine: DecisionEngine) -> None:
        last = self._ingest_ramp(engine, 0.2)
        assert engine.evaluate(last, FOSSILS).risk_score == 20

    def test_window_prunes_after_fifteen_minutes(self, engine: DecisionEngine) -> None:
        engine.ingest(make_reading(ts_utc=BASE))
        engine.ingest(make_reading(ts_utc=BASE + timedelta(minutes=15)))
        assert engine.window_size == 2
        engine.ingest(make_reading(ts_utc=BASE + timedelta(minutes=15, seconds=1)))
        assert engine.window_size == 2

    def test_reset_clears_window(self, engine: DecisionEngine) -> None:
        engine.ingest(make_reading())
        engine.reset()
        assert engine.window_size == 0


class TestInsights:
    def test_order_follows_metrics(self, engine: DecisionEngine) -> None:
        r = make_reading(temperature_c=22.5, vibration=0.9)
        a = engine.evaluate(r, FOSSILS)
        assert len(a.insights) == 2
        assert a.insights[0].startswith("Temperature is WARN (22.5°C)")
        assert a.insights[1].startswith("Vibration is DANGER (level 0.9)")

    def test_high_humidity_prediction_comes_first(self, engine: DecisionEngine) -> None:
        a = engine.evaluate(make_reading(humidity_pct=62.0), FOSSILS)
        assert a.insights[0] == "High humidity: mold risk increases over the next day."
        assert a.insights[1].startswith("Humidity is DANGER (62.0%)")

    def test_rising_warn_humidity_prediction(self, engine: DecisionEngine) -> None:
        last = None
        for i in range(11):
            last = make_reading(ts_utc=BASE + timedelta(minutes=i), humidity_pct=55.5 + 0.1 * i)
            engine.ingest(last)
        a = engine.evaluate(last, FOSSILS)
        assert a.statuses[Metric.HUMIDITY] is MetricStatus.WARN
        assert a.insights[0].startswith("Humidity trending upward")

    def test_access_insight(self, engine: DecisionEngine) -> None:
        a = engine.evaluate(make_reading(opens_per_hour=3), FOSSILS)
        assert a.insights == ("Repeated access detected (3 opens/hour). Exposure risk increased.",)


class TestActions:
    def test_gate_suppresses_single_warn(self, engine: DecisionEngine) -> None:
        a = engine.evaluate(make_reading(humidity_pct=58.0), FOSSILS)
        assert a.statuses[Metric.HUMIDITY] is MetricStatus.WARN
        assert a.risk_score < 45
        assert a.actions == ()

    def test_gate_suppresses_even_danger(self, engine: DecisionEngine) -> None:
        a = engine.evaluate(make_reading(humidity_pct=70.0), FOSSILS)
        assert a.statuses[Metric.HUMIDITY] is MetricStatus.DANGER
        assert a.risk_score == 28
        assert a.actions == ()

    def test_cold_enclosure_warms(self, engine: DecisionEngine) -> None:
        r = make_reading(temperature_c=10.0, moisture_pct=9.0, door_state=DoorState.OPEN)
        a = engine.evaluate(r, FOSSILS)
        assert a.risk_score == 48
        assert _types(a) == [ActionType.ADJUST_TEMP_UP]

    def test_dry_warn_humidifies(self, engine: DecisionEngine) -> None:
        r = make_reading(humidity_pct=37.0, temperature_c=10.0, moisture_pct=9.0)
        a = engine.evaluate(r, FOSSILS)
        assert a.risk_score == 57
        assert _types(a) == [ActionType.HUMIDIFY, ActionType.ADJUST_TEMP_UP]

    def test_crowded_access_locks(self, engine: DecisionEngine) -> None:
        r = make_reading(opens_per_hour=5, temperature_c=30.0, moisture_pct=9.0)
        a = engine.evaluate(r, FOSSILS)
        assert a.risk_score == 56
        assert _types(a) == [ActionType.ADJUST_TEMP_DOWN, ActionType.LOCK_ACCESS_10_MIN]

    def test_metallic_remediation_first_cycle(self, engine: DecisionEngine) -> None:
        sim = ReadingSimulator(ArtifactType.METALLIC, DemoMode.REMEDIATION, source=QuietSource(fraction=1.0))
        assert sim.state.humidity_pct == pytest.approx(sim.standards.humidity_pct.safe[1] + 10)

        reading = sim.tick(BASE)
        engine.ingest(reading)
        a = engine.evaluate(reading, sim.standards)

        assert a.statuses[Metric.HUMIDITY] is MetricStatus.DANGER
        assert a.risk_score == 60
        assert a.risk_level is RiskLevel.HIGH
        assert _types(a) == [
            ActionType.DEHUMIDIFY,
            ActionType.TRIGGER_AIRFLOW,
            ActionType.ADJUST_TEMP_DOWN,
        ]
