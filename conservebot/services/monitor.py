from __future__ import annotations
import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Optional
from uuid import uuid4

from ..core.timeutil import now_utc
from ..domain.engine import DecisionEngine
from ..domain.interfaces import Broadcaster, Repository
from ..domain.models import (
    ActionType,
    ArtifactType,
    DemoMode,
    LogEntry,
    LogKind,
    MonitorConfig,
    Reading,
    TickSnapshot,
)
from ..domain.standards import get_standards
from ..drivers.simulator import ReadingSimulator
from ..storage.memory_store import LiveStore

logger = logging.getLogger(__name__)

HISTORY_STEPS = {
    "24h": timedelta(minutes=1),
    "7d": timedelta(minutes=30),
}


@dataclass(frozen=True)
class CycleResult:
    snapshot: TickSnapshot
    logs: list[LogEntry] = field(default_factory=list)
    # set when the reading was rolled into the minute history
    journal_reading: Optional[Reading] = None


class MonitorService:
    """
    Drives the feedback loop: simulator -> engine -> actions -> simulator.

    `run_cycle`, `reconfigure` and `apply_manual_action` are synchronous and
    only ever called from the event loop, so a cycle never interleaves with a
    request handler. Persistence and broadcast happen afterwards and cannot
    touch simulator or engine state.
    """

    def __init__(
        self,
        simulator: ReadingSimulator,
        engine: DecisionEngine,
        store: LiveStore,
        repo: Optional[Repository] = None,
        broadcaster: Optional[Broadcaster] = None,
        config: Optional[MonitorConfig] = None,
        tick_seconds: float = 1.0,
    ) -> None:
        self._sim = simulator
        self._engine = engine
        self._store = store
        self._repo = repo
        self._broadcaster = broadcaster
        self.config = config or MonitorConfig(simulator.artifact_type, simulator.demo_mode)
        self._tick_seconds = tick_seconds

        self._task: Optional[asyncio.Task] = None
        self._stop = asyncio.Event()

    @property
    def simulator(self) -> ReadingSimulator:
        return self._sim

    @property
    def store(self) -> LiveStore:
        return self._store

    def standards(self):
        return get_standards(self.config.artifact_type)

    # --- configuration ---

    def bootstrap(self, now: Optional[datetime] = None) -> None:
        """Align the simulator with the config and pre-bake history."""
        self._sim.configure(self.config.artifact_type, self.config.demo_mode)
        self._engine.reset()
        self._store.set_history(*self._sim.generate_history(now))

    def reconfigure(
        self,
        artifact_type: Optional[ArtifactType] = None,
        demo_mode: Optional[DemoMode] = None,
        now: Optional[datetime] = None,
    ) -> LogEntry:
        now = now or now_utc()
        if artifact_type is not None:
            self.config.artifact_type = ArtifactType(artifact_type)
        if demo_mode is not None:
            self.config.demo_mode = DemoMode(demo_mode)

        self.bootstrap(now)

        entry = LogEntry(
            id=uuid4().hex,
            ts_utc=now,
            kind=LogKind.CONFIG,
            message=(
                f"Config updated: artifact_type={self.config.artifact_type.value}, "
                f"demo_mode={self.config.demo_mode.value}"
            ),
        )
        self._store.push_log(entry)
        logger.info("%s", entry.message)
        return entry

    def apply_manual_action(
        self, action_type: ActionType, now: Optional[datetime] = None
    ) -> LogEntry:
        now = now or now_utc()
        self._sim.apply_action(action_type, now)
        live = self._store.live
        entry = LogEntry(
            id=uuid4().hex,
            ts_utc=now,
            kind=LogKind.MANUAL_ACTION,
            action_type=ActionType(action_type),
            label=f"Manual {ActionType(action_type).value}",
            reason="Requested by operator",
            context=live.reading.key_fields() if live else {},
        )
        self._store.push_log(entry)
        logger.info("Manual action applied: %s", entry.action_type.value)
        return entry

    # --- feedback loop ---

    def run_cycle(self, now: Optional[datetime] = None) -> CycleResult:
        now = now or now_utc()
        reading = self._sim.tick(now)
        self._engine.ingest(reading)
        standards = self.standards()
        assessment = self._engine.evaluate(reading, standards)

        logs: list[LogEntry] = []
        for action in assessment.actions:
            self._sim.apply_action(action.action_type, now)
            entry = LogEntry(
                id=uuid4().hex,
                ts_utc=now,
                kind=LogKind.AUTO_REMEDIATION,
                action_type=action.action_type,
                label=action.label,
                reason=action.reason,
                context=reading.key_fields(),
            )
            self._store.push_log(entry)
            logs.append(entry)
            logger.info(
                "Auto-remediation %s (risk=%d): %s",
                action.action_type.value, assessment.risk_score, action.reason,
            )

        snapshot = TickSnapshot(
            ts_utc=reading.ts_utc,
            artifact_type=self.config.artifact_type,
            demo_mode=self.config.demo_mode,
            reading=reading,
            standards=standards,
            assessment=assessment,
        )
        self._store.set_live(snapshot)

        journal_reading = None
        for range_key, step in HISTORY_STEPS.items():
            last = self._store.last_history_point(range_key)
            if last is None or reading.ts_utc - last.ts_utc >= step:
                self._store.append_to_history(range_key, reading)
                if range_key == "24h":
                    journal_reading = reading

        return CycleResult(snapshot=snapshot, logs=logs, journal_reading=journal_reading)

    async def publish(self, result: CycleResult) -> None:
        if self._repo is not None:
            if result.journal_reading is not None:
                try:
                    await self._repo.insert_reading(result.journal_reading)
                except Exception as e:
                    logger.exception("Journal write failed for reading %s: %s", result.journal_reading.ts_utc, e)
            for entry in result.logs:
                await self._journal_log(entry)

        if self._broadcaster is not None:
            try:
                await self._broadcaster.broadcast_json({"type": "tick", "data": result.snapshot.to_dict()})
                for entry in result.logs:
                    await self._broadcaster.broadcast_json({"type": "log", "data": entry.to_dict()})
            except Exception as e:
                logger.exception("Broadcast failed: %s", e)

    async def publish_log(self, entry: LogEntry) -> None:
        """Persist and broadcast a log entry raised outside the loop."""
        if self._repo is not None:
            await self._journal_log(entry)
        if self._broadcaster is not None:
            try:
                await self._broadcaster.broadcast_json({"type": "log", "data": entry.to_dict()})
            except Exception as e:
                logger.exception("Broadcast failed: %s", e)

    async def _journal_log(self, entry: LogEntry) -> None:
        try:
            await self._repo.insert_log(entry)
        except Exception as e:
            logger.exception("Journal write failed for log %s: %s", entry.id, e)

    async def start(self) -> None:
        self._stop.clear()
        self._task = asyncio.create_task(self._run(), name="monitor_loop")

    async def stop(self) -> None:
        self._stop.set()
        if self._task:
            await self._task
            self._task = None

    async def _run(self) -> None:
        logger.info(
            "Monitor loop started (tick_seconds=%s artifact=%s mode=%s)",
            self._tick_seconds,
            self.config.artifact_type.value,
            self.config.demo_mode.value,
        )

        while not self._stop.is_set():
            try:
                result = self.run_cycle()
                await self.publish(result)
            except Exception as e:
                logger.exception("Monitor loop error: %s", e)

            # sleep with cancellation awareness
            try:
                await asyncio.wait_for(self._stop.wait(), timeout=self._tick_seconds)
            except asyncio.TimeoutError:
                pass

        logger.info("Monitor loop stopped")
