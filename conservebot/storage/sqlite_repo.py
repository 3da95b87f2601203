from __future__ import annotations
import json
import aiosqlite
from datetime import datetime
from typing import List, Optional
from ..domain.models import ActionType, DoorState, LogEntry, LogKind, Reading


class SQLiteRepository:
    def __init__(self, path: str) -> None:
        self._path = path

    async def init(self) -> None:
        async with aiosqlite.connect(self._path) as db:
            await db.execute(
                """
                CREATE TABLE IF NOT EXISTS readings (
                    ts_utc TEXT NOT NULL,
                    temperature_c REAL NOT NULL,
                    humidity_pct REAL NOT NULL,
                    moisture_pct REAL NOT NULL,
                    door_state TEXT NOT NULL,
                    opens_per_hour INTEGER NOT NULL,
                    vibration REAL NOT NULL,
                    access_locked INTEGER NOT NULL
                )
                """
            )
            await db.execute(
                """
                CREATE TABLE IF NOT EXISTS logs (
                    id TEXT PRIMARY KEY,
                    ts_utc TEXT NOT NULL,
                    kind TEXT NOT NULL,
                    action_type TEXT,
                    label TEXT,
                    reason TEXT,
                    context TEXT,
                    message TEXT
                )
                """
            )
            await db.execute("CREATE INDEX IF NOT EXISTS idx_readings_ts ON readings(ts_utc)")
            await db.execute("CREATE INDEX IF NOT EXISTS idx_logs_ts ON logs(ts_utc)")
            await db.commit()

    async def insert_reading(self, r: Reading) -> None:
        async with aiosqlite.connect(self._path) as db:
            await db.execute(
                "INSERT INTO readings(ts_utc,temperature_c,humidity_pct,moisture_pct,door_state,"
                "opens_per_hour,vibration,access_locked) VALUES (?,?,?,?,?,?,?,?)",
                (
                    r.ts_utc.isoformat(),
                    r.temperature_c,
                    r.humidity_pct,
                    r.moisture_pct,
                    r.door_state.value,
                    r.opens_per_hour,
                    r.vibration,
                    1 if r.access_locked else 0,
                ),
            )
            await db.commit()

    async def insert_log(self, e: LogEntry) -> None:
        async with aiosqlite.connect(self._path) as db:
            await db.execute(
                "INSERT INTO logs(id,ts_utc,kind,action_type,label,reason,context,message) VALUES (?,?,?,?,?,?,?,?)",
                (
                    e.id,
                    e.ts_utc.isoformat(),
                    e.kind.value,
                    e.action_type.value if e.action_type else None,
                    e.label,
                    e.reason,
                    json.dumps(dict(e.context)) if e.context is not None else None,
                    e.message,
                ),
            )
            await db.commit()

    async def query_readings(self, start_ts: str, end_ts: str, limit: int) -> List[Reading]:
        async with aiosqlite.connect(self._path) as db:
            cur = await db.execute(
                """
                SELECT ts_utc,temperature_c,humidity_pct,moisture_pct,door_state,opens_per_hour,vibration,access_locked
                FROM readings
                WHERE ts_utc >= ? AND ts_utc <= ?
                ORDER BY ts_utc DESC
                LIMIT ?
                """,
                (start_ts, end_ts, limit),
            )
            rows = await cur.fetchall()
        out: list[Reading] = []
        for ts, t, h, m, door, opens, vib, locked in rows:
            out.append(
                Reading(
                    ts_utc=datetime.fromisoformat(ts),
                    temperature_c=float(t),
                    humidity_pct=float(h),
                    moisture_pct=float(m),
                    door_state=DoorState(door),
                    opens_per_hour=int(opens),
                    vibration=float(vib),
                    access_locked=bool(locked),
                )
            )
        return list(reversed(out))

    async def query_logs(self, start_ts: str, end_ts: str, limit: int) -> List[LogEntry]:
        async with aiosqlite.connect(self._path) as db:
            cur = await db.execute(
                """
                SELECT id,ts_utc,kind,action_type,label,reason,context,message
                FROM logs
                WHERE ts_utc >= ? AND ts_utc <= ?
                ORDER BY ts_utc DESC
                LIMIT ?
                """,
                (start_ts, end_ts, limit),
            )
            rows = await cur.fetchall()
        out: list[LogEntry] = []
        for eid, ts, kind, action, label, reason, ctx, msg in rows:
            context: Optional[dict] = json.loads(ctx) if ctx else None
            out.append(
                LogEntry(
                    id=eid,
                    ts_utc=datetime.fromisoformat(ts),
                    kind=LogKind(kind),
                    action_type=ActionType(action) if action else None,
                    label=label,
                    reason=reason,
                    context=context,
                    message=msg,
                )
            )
        return list(reversed(out))
