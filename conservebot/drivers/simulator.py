from __future__ import annotations
import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Deque, Optional, Union

from ..core.numeric import RandomSource, clamp
from ..core.timeutil import now_utc
from ..domain.models import ActionType, ArtifactType, DemoMode, DoorState, Reading
from ..domain.standards import StandardsEntry, get_standards, resolve_artifact_type

logger = logging.getLogger(__name__)

TEMP_BOUNDS = (5.0, 35.0)
HUMIDITY_BOUNDS = (5.0, 95.0)
MOISTURE_BOUNDS = (0.0, 20.0)

DOOR_MIN_TOGGLE = timedelta(seconds=10)
OPENS_WINDOW = timedelta(hours=1)
LOCK_DURATION = timedelta(minutes=10)

# Starting offsets (uniform ranges) from baseline, per mode: (temp, humidity, moisture)
START_OFFSETS = {
    DemoMode.NORMAL: ((-0.4, 0.4), (-1.5, 1.5), (-0.3, 0.3)),
    DemoMode.AT_RISK: ((0.5, 1.5), (3.0, 6.0), (0.5, 1.2)),
    DemoMode.REMEDIATION: ((2.5, 4.0), (8.0, 15.0), (1.5, 3.0)),
}

# Per-tick drift (temp, humidity). Remediation drifts down so actions can pull it back.
DRIFT = {
    DemoMode.NORMAL: (0.0, 0.0),
    DemoMode.AT_RISK: (0.004, 0.02),
    DemoMode.REMEDIATION: (-0.002, -0.01),
}

DOOR_OPEN_CHANCE = {
    DemoMode.NORMAL: 0.01,
    DemoMode.AT_RISK: 0.03,
    DemoMode.REMEDIATION: 0.05,
}
DOOR_CLOSE_CHANCE = 0.08

BUMP_CHANCE = {
    DemoMode.NORMAL: 0.01,
    DemoMode.AT_RISK: 0.02,
    DemoMode.REMEDIATION: 0.03,
}
BUMP_RANGE = (0.3, 0.9)
VIBRATION_DECAY = 0.85


@dataclass
class SimulatorState:
    temperature_c: float
    humidity_pct: float
    moisture_pct: float
    door_state: DoorState = DoorState.CLOSED
    last_door_toggle: Optional[datetime] = None
    door_open_times: Deque[datetime] = field(default_factory=deque)
    vibration: float = 0.0


@dataclass
class ControlBiases:
    """Actuator effects; only remediation actions and resets change these."""
    temp_bias_c: float = 0.0
    humidity_bias_pct: float = 0.0
    airflow_boost: float = 0.0  # 0..1
    access_locked_until: Optional[datetime] = None

    def is_locked(self, now: datetime) -> bool:
        return self.access_locked_until is not None and now < self.access_locked_until


class ReadingSimulator:
    """
    Enclosure telemetry simulator.

    Temperature and humidity are random walks with a per-mode drift, moisture
    follows humidity slowly, access is event based (door open/close) and
    vibration is usually low with occasional bumps.
    """

    def __init__(
        self,
        artifact_type: Union[ArtifactType, str] = ArtifactType.FOSSILS,
        demo_mode: DemoMode = DemoMode.NORMAL,
        source: Optional[RandomSource] = None,
    ) -> None:
        self._rng = source or RandomSource()
        self.artifact_type = resolve_artifact_type(artifact_type)
        self.demo_mode = DemoMode(demo_mode)
        self.controls = ControlBiases()
        self.state = self._initial_state()

    @property
    def standards(self) -> StandardsEntry:
        return get_standards(self.artifact_type)

    def set_artifact_type(self, artifact_type: Union[ArtifactType, str]) -> None:
        self.artifact_type = resolve_artifact_type(artifact_type)
        self.reset()

    def set_demo_mode(self, demo_mode: DemoMode) -> None:
        self.demo_mode = DemoMode(demo_mode)
        self.reset()

    def configure(self, artifact_type: Union[ArtifactType, str], demo_mode: DemoMode) -> None:
        self.artifact_type = resolve_artifact_type(artifact_type)
        self.demo_mode = DemoMode(demo_mode)
        self.reset()

    def reset(self) -> None:
        self.controls = ControlBiases()
        self.state = self._initial_state()
        logger.info(
            "Simulator reset (artifact=%s mode=%s) T=%.2f H=%.1f M=%.2f",
            self.artifact_type.value, self.demo_mode.value,
            self.state.temperature_c, self.state.humidity_pct, self.state.moisture_pct,
        )

    def _initial_state(self) -> SimulatorState:
        std = self.standards
        base_t = std.temperature_c.midpoint
        base_h = std.humidity_pct.midpoint
        base_m = std.moisture_pct.safe_max - 0.5

        t_rng, h_rng, m_rng = START_OFFSETS[self.demo_mode]
        return SimulatorState(
            temperature_c=base_t + self._rng.uniform(*t_rng),
            humidity_pct=base_h + self._rng.uniform(*h_rng),
            moisture_pct=base_m + self._rng.uniform(*m_rng),
        )

    def apply_action(self, action_type: Union[ActionType, str], now: Optional[datetime] = None) -> None:
        try:
            action = ActionType(action_type)
        except ValueError:
            logger.debug("Ignoring unknown action %r", action_type)
            return

        c = self.controls
        if action is ActionType.ADJUST_TEMP_DOWN:
            c.temp_bias_c -= 0.15
        elif action is ActionType.ADJUST_TEMP_UP:
            c.temp_bias_c += 0.15
        elif action is ActionType.DEHUMIDIFY:
            c.humidity_bias_pct -= 0.4
            c.airflow_boost = clamp(c.airflow_boost + 0.2, 0.0, 1.0)
        elif action is ActionType.HUMIDIFY:
            c.humidity_bias_pct += 0.4
        elif action is ActionType.TRIGGER_AIRFLOW:
            c.airflow_boost = clamp(c.airflow_boost + 0.25, 0.0, 1.0)
        elif action is ActionType.LOCK_ACCESS_10_MIN:
            until = (now or now_utc()) + LOCK_DURATION
            # Never shorten a lock that is already in place
            if c.access_locked_until is None or until > c.access_locked_until:
                c.access_locked_until = until

    def status(self) -> dict:
        s, c = self.state, self.controls
        return {
            "artifact_type": self.artifact_type.value,
            "demo_mode": self.demo_mode.value,
            "state": {
                "temperature_c": s.temperature_c,
                "humidity_pct": s.humidity_pct,
                "moisture_pct": s.moisture_pct,
                "door_state": s.door_state.value,
                "last_door_toggle": s.last_door_toggle.isoformat() if s.last_door_toggle else None,
                "opens_in_window": len(s.door_open_times),
                "vibration": s.vibration,
            },
            "controls": {
                "temp_bias_c": c.temp_bias_c,
                "humidity_bias_pct": c.humidity_bias_pct,
                "airflow_boost": c.airflow_boost,
                "access_locked_until": (
                    c.access_locked_until.isoformat() if c.access_locked_until else None
                ),
            },
        }

    def _can_toggle(self, now: datetime) -> bool:
        last = self.state.last_door_toggle
        if last is None or now < last:
            # never toggled, or a back-dated history series started over
            return True
        return now - last >= DOOR_MIN_TOGGLE

    def tick(self, now: Optional[datetime] = None) -> Reading:
        now = now or now_utc()
        std = self.standards
        s, c = self.state, self.controls
        drift_t, drift_h = DRIFT[self.demo_mode]

        s.temperature_c += self._rng.gauss() * 0.03 + drift_t + c.temp_bias_c * 0.02
        s.humidity_pct += (
            self._rng.gauss() * 0.10 + drift_h + c.humidity_bias_pct * 0.03 - c.airflow_boost * 0.03
        )

        # Moisture follows humidity slowly
        target = (s.humidity_pct - std.humidity_pct.midpoint) * 0.04 + (std.moisture_pct.safe_max - 0.8)
        s.moisture_pct += (target - s.moisture_pct) * 0.02 + self._rng.gauss() * 0.02

        s.temperature_c = clamp(s.temperature_c, *TEMP_BOUNDS)
        s.humidity_pct = clamp(s.humidity_pct, *HUMIDITY_BOUNDS)
        s.moisture_pct = clamp(s.moisture_pct, *MOISTURE_BOUNDS)

        locked = c.is_locked(now)
        if locked:
            if s.door_state is DoorState.OPEN:
                s.door_state = DoorState.CLOSED
                s.last_door_toggle = now
        elif self._can_toggle(now):
            if s.door_state is DoorState.CLOSED:
                chance = DOOR_OPEN_CHANCE[self.demo_mode]
            else:
                chance = DOOR_CLOSE_CHANCE
            if self._rng.chance(chance):
                if s.door_state is DoorState.CLOSED:
                    s.door_state = DoorState.OPEN
                    s.door_open_times.append(now)
                else:
                    s.door_state = DoorState.CLOSED
                s.last_door_toggle = now

        cutoff = now - OPENS_WINDOW
        s.door_open_times = deque(t for t in s.door_open_times if cutoff <= t <= now)

        bump = self._rng.uniform(*BUMP_RANGE) if self._rng.chance(BUMP_CHANCE[self.demo_mode]) else 0.0
        s.vibration = clamp(s.vibration * VIBRATION_DECAY + bump + self._rng.gauss() * 0.01, 0.0, 1.0)

        return Reading(
            ts_utc=now,
            temperature_c=round(s.temperature_c, 2),
            humidity_pct=round(s.humidity_pct, 1),
            moisture_pct=round(s.moisture_pct, 2),
            door_state=s.door_state,
            opens_per_hour=len(s.door_open_times),
            vibration=round(s.vibration, 2),
            access_locked=locked,
        )

    def generate_history(self, now: Optional[datetime] = None) -> tuple[list[Reading], list[Reading]]:
        """
        Pre-bake 24h @ 1 min and 7d @ 30 min of readings ending at `now`.

        Advances the live state, so call it before live ticking starts or
        right after a reset.
        """
        now = now or now_utc()
        history_24h = [self.tick(now - timedelta(minutes=i)) for i in range(24 * 60, -1, -1)]
        history_7d = [self.tick(now - timedelta(minutes=30 * i)) for i in range(7 * 48, -1, -1)]
        return history_24h, history_7d
