from __future__ import annotations
import logging
from collections import deque
from datetime import datetime, timedelta
from typing import Deque, Optional, Tuple

from ..core.numeric import clamp, slope
from .models import (
    ActionType,
    Assessment,
    DoorState,
    Metric,
    MetricStatus,
    Reading,
    RemediationAction,
    RiskLevel,
)
from .standards import Band, MaxLimit, StandardsEntry

logger = logging.getLogger(__name__)

TREND_WINDOW = timedelta(minutes=15)

WEIGHTS = {
    Metric.TEMPERATURE: 0.22,
    Metric.HUMIDITY: 0.28,
    Metric.MOISTURE: 0.22,
    Metric.ACCESS: 0.16,
    Metric.VIBRATION: 0.12,
}

# Humidity slope thresholds, %/min
SLOPE_RISING = 0.05
SLOPE_FAST = 0.08
SLOPE_VERY_FAST = 0.15

ACTION_GATE = 45

STABLE_MESSAGE = "All conditions look stable. ConserveBot is just monitoring."


def band_status(x: float, band: Band) -> MetricStatus:
    if band.safe[0] <= x <= band.safe[1]:
        return MetricStatus.SAFE
    if band.warn[0] <= x <= band.warn[1]:
        return MetricStatus.WARN
    return MetricStatus.DANGER


def max_status(x: float, limit: MaxLimit) -> MetricStatus:
    if x <= limit.safe_max:
        return MetricStatus.SAFE
    if x <= limit.warn_max:
        return MetricStatus.WARN
    return MetricStatus.DANGER


def risk_from_band(x: float, band: Band) -> float:
    """0 in safe, 25..60 across the warn buffer, 70..100 within 5 units past warn."""
    s0, s1 = band.safe
    w0, w1 = band.warn
    if s0 <= x <= s1:
        return 0.0
    if w0 <= x <= w1:
        if x < s0:
            d, max_d = s0 - x, s0 - w0
        else:
            d, max_d = x - s1, w1 - s1
        t = clamp(d / max_d, 0.0, 1.0) if max_d > 0 else 1.0
        return 25 + 35 * t
    d = w0 - x if x < w0 else x - w1
    return 70 + 30 * clamp(d / 5, 0.0, 1.0)


def risk_from_max(x: float, limit: MaxLimit) -> float:
    """0 at or under safe_max, 25..60 up to warn_max, 70..100 within 3 units past it."""
    if x <= limit.safe_max:
        return 0.0
    if x <= limit.warn_max:
        t = clamp((x - limit.safe_max) / max(0.001, limit.warn_max - limit.safe_max), 0.0, 1.0)
        return 25 + 35 * t
    return 70 + 30 * clamp((x - limit.warn_max) / 3, 0.0, 1.0)


def risk_linear(x: float, warn_max: float, floor: float) -> float:
    # Reaches 60 at warn_max; only the clamp caps it at 100.
    return clamp(x / max(floor, warn_max) * 60, 0.0, 100.0)


def humidity_prediction(
    humidity_pct: float, status: MetricStatus, slope_per_min: float
) -> Optional[str]:
    if status is MetricStatus.DANGER and humidity_pct >= 60:
        if slope_per_min > SLOPE_RISING:
            return "Humidity rising fast: risk of mold formation within ~6 hours."
        return "High humidity: mold risk increases over the next day."
    if status is MetricStatus.WARN and slope_per_min > SLOPE_RISING:
        return "Humidity trending upward: keep an eye on mold/corrosion risk."
    return None


class DecisionEngine:
    """
    Explainable rules and scoring over a single enclosure.

    Holds a 15 minute window of readings for the humidity trend; everything
    else in `evaluate` is a pure function of the reading and its standards.
    """

    def __init__(self, window: timedelta = TREND_WINDOW) -> None:
        self._window = window
        self._recent: Deque[Tuple[datetime, Reading]] = deque()

    @property
    def window_size(self) -> int:
        return len(self._recent)

    def reset(self) -> None:
        self._recent.clear()

    def ingest(self, reading: Reading) -> None:
        self._recent.append((reading.ts_utc, reading))
        cutoff = reading.ts_utc - self._window
        self._recent = deque(p for p in self._recent if p[0] >= cutoff)

    def humidity_slope_per_min(self) -> float:
        if not self._recent:
            return 0.0
        t0 = self._recent[0][0]
        points = [((ts - t0).total_seconds(), r.humidity_pct) for ts, r in self._recent]
        return slope(points) * 60

    def evaluate(self, reading: Reading, standards: Optional[StandardsEntry]) -> Assessment:
        if standards is None:
            raise ValueError("evaluate() requires a standards entry")

        statuses = {
            Metric.TEMPERATURE: band_status(reading.temperature_c, standards.temperature_c),
            Metric.HUMIDITY: band_status(reading.humidity_pct, standards.humidity_pct),
            Metric.MOISTURE: max_status(reading.moisture_pct, standards.moisture_pct),
            Metric.ACCESS: max_status(reading.opens_per_hour, standards.access),
            Metric.VIBRATION: max_status(reading.vibration, standards.vibration),
        }

        slope_per_min = self.humidity_slope_per_min()

        risks = {
            Metric.TEMPERATURE: risk_from_band(reading.temperature_c, standards.temperature_c),
            Metric.HUMIDITY: risk_from_band(reading.humidity_pct, standards.humidity_pct),
            Metric.MOISTURE: risk_from_max(reading.moisture_pct, standards.moisture_pct),
            Metric.ACCESS: risk_linear(reading.opens_per_hour, standards.access.warn_max, 1),
            Metric.VIBRATION: risk_linear(reading.vibration, standards.vibration.warn_max, 0.01),
        }
        score = sum(risks[m] * w for m, w in WEIGHTS.items())

        # Trend and exposure amplifiers
        if slope_per_min > SLOPE_FAST:
            score += 8
        if slope_per_min > SLOPE_VERY_FAST:
            score += 12
        if reading.door_state is DoorState.OPEN:
            score += 4
        if reading.access_locked:
            score -= 3

        risk_score = int(clamp(round(score), 0, 100))

        insights = self._insights(reading, standards, statuses, slope_per_min)
        proposed = self._propose_actions(reading, standards, statuses)

        # Don't over-act: a single warn metric on a calm enclosure is left alone.
        actions = proposed if risk_score >= ACTION_GATE else []

        logger.debug(
            "evaluate: score=%d slope=%.3f statuses=%s proposed=%s applied=%d",
            risk_score, slope_per_min,
            {m.value: s.value for m, s in statuses.items()},
            [a.action_type.value for a in proposed], len(actions),
        )

        return Assessment(
            statuses=statuses,
            risk_score=risk_score,
            risk_level=RiskLevel.from_score(risk_score),
            humidity_slope_per_min=round(slope_per_min, 3),
            insights=tuple(insights),
            actions=tuple(actions),
        )

    def _insights(
        self,
        reading: Reading,
        standards: StandardsEntry,
        statuses: dict[Metric, MetricStatus],
        slope_per_min: float,
    ) -> list[str]:
        out: list[str] = []
        prediction = humidity_prediction(
            reading.humidity_pct, statuses[Metric.HUMIDITY], slope_per_min
        )
        if prediction:
            out.append(prediction)

        temp = statuses[Metric.TEMPERATURE]
        if temp is not MetricStatus.SAFE:
            lo, hi = standards.temperature_c.safe
            out.append(
                f"Temperature is {temp.value.upper()} ({reading.temperature_c}°C). "
                f"Target {lo:g}-{hi:g}°C."
            )
        hum = statuses[Metric.HUMIDITY]
        if hum is not MetricStatus.SAFE:
            lo, hi = standards.humidity_pct.safe
            out.append(
                f"Humidity is {hum.value.upper()} ({reading.humidity_pct}%). "
                f"Target {lo:g}-{hi:g}%."
            )
        moist = statuses[Metric.MOISTURE]
        if moist is not MetricStatus.SAFE:
            out.append(
                f"Moisture content is {moist.value.upper()} ({reading.moisture_pct}%). "
                f"Goal <{standards.moisture_pct.safe_max:g}%."
            )
        if statuses[Metric.ACCESS] is not MetricStatus.SAFE:
            out.append(
                f"Repeated access detected ({reading.opens_per_hour} opens/hour). "
                "Exposure risk increased."
            )
        vib = statuses[Metric.VIBRATION]
        if vib is not MetricStatus.SAFE:
            out.append(
                f"Vibration is {vib.value.upper()} (level {reading.vibration}). "
                "Movement can chip or crack fragile material."
            )

        if not out:
            out.append(STABLE_MESSAGE)
        return out

    def _propose_actions(
        self,
        reading: Reading,
        standards: StandardsEntry,
        statuses: dict[Metric, MetricStatus],
    ) -> list[RemediationAction]:
        actions: list[RemediationAction] = []
        hum = statuses[Metric.HUMIDITY]
        safe_lo, safe_hi = standards.humidity_pct.safe

        if hum is MetricStatus.DANGER or (
            hum is MetricStatus.WARN and reading.humidity_pct > safe_hi
        ):
            actions.append(RemediationAction(
                ActionType.DEHUMIDIFY,
                "Trigger dehumidification",
                f"Humidity {reading.humidity_pct}% above target.",
            ))
            actions.append(RemediationAction(
                ActionType.TRIGGER_AIRFLOW,
                "Increase airflow",
                "Airflow helps stabilize humidity and moisture.",
            ))
        elif hum is MetricStatus.WARN and reading.humidity_pct < safe_lo:
            actions.append(RemediationAction(
                ActionType.HUMIDIFY,
                "Add gentle humidification",
                f"Humidity {reading.humidity_pct}% below target.",
            ))

        if statuses[Metric.TEMPERATURE] is not MetricStatus.SAFE:
            reason = f"Temperature {reading.temperature_c}°C outside ideal zone."
            if reading.temperature_c > standards.temperature_c.midpoint:
                actions.append(RemediationAction(
                    ActionType.ADJUST_TEMP_DOWN, "Cool internal temperature", reason
                ))
            else:
                actions.append(RemediationAction(
                    ActionType.ADJUST_TEMP_UP, "Warm internal temperature", reason
                ))

        if statuses[Metric.ACCESS] is MetricStatus.DANGER:
            actions.append(RemediationAction(
                ActionType.LOCK_ACCESS_10_MIN,
                "Lock access for 10 minutes",
                "Too many door opens. Reduce exposure while conditions stabilize.",
            ))

        return actions
