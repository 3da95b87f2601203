from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, WebSocket, WebSocketDisconnect

from ..core.config import settings
from ..core.timeutil import now_utc, now_local
from ..domain.models import ArtifactType, DemoMode
from ..domain.standards import STANDARDS_BY_TYPE, get_standards
from ..services.connection_manager import ConnectionManager
from ..services.monitor import MonitorService
from ..storage.sqlite_repo import SQLiteRepository
from .schemas import ConfigUpdateRequest, ManualActionRequest

logger = logging.getLogger(__name__)

router = APIRouter()
ws_router = APIRouter()


# --- Dependency getters ---
# main.py points these at the real singletons via app.dependency_overrides.
def get_monitor() -> MonitorService:  # overridden in main
    raise RuntimeError("Monitor dependency not configured")

def get_repo() -> SQLiteRepository:  # overridden in main
    raise RuntimeError("Repo dependency not configured")

def get_connections() -> ConnectionManager:  # overridden in main
    raise RuntimeError("Connection manager dependency not configured")


HISTORY_RANGES = ("24h", "7d")


@router.get("/health")
async def health(connections: ConnectionManager = Depends(get_connections)):
    return {
        "ok": True,
        "app": settings.app_name,
        "now_utc": now_utc().isoformat(),
        "now_local": now_local(settings.timezone).isoformat(),
        "dashboard_clients": connections.active_count,
    }


@router.get("/artifact-types")
async def artifact_types():
    return {
        "artifact_types": [
            {"id": t.value, "label": entry.label} for t, entry in STANDARDS_BY_TYPE.items()
        ],
        "demo_modes": [m.value for m in DemoMode],
    }


@router.get("/standards")
async def standards(
    artifact_type: Optional[ArtifactType] = None,
    mon: MonitorService = Depends(get_monitor),
):
    key = artifact_type or mon.config.artifact_type
    return {"artifact_type": key.value, "standards": get_standards(key).to_dict()}


@router.get("/status")
async def status(mon: MonitorService = Depends(get_monitor)):
    live = mon.store.live
    return {
        "config": mon.config.to_dict(),
        "live": live.to_dict() if live else None,
        "standards": mon.standards().to_dict(),
    }


@router.get("/history")
async def history(
    range_key: str = Query("24h", alias="range"),
    mon: MonitorService = Depends(get_monitor),
):
    if range_key not in HISTORY_RANGES:
        raise HTTPException(status_code=400, detail=f"Unknown range: {range_key}, expected 24h or 7d")
    return {"range": range_key, "points": [r.to_dict() for r in mon.store.get_history(range_key)]}


@router.get("/logs")
async def logs(limit: int = 50, mon: MonitorService = Depends(get_monitor)):
    return {"logs": [e.to_dict() for e in mon.store.get_logs(limit)]}


@router.post("/config")
async def update_config(req: ConfigUpdateRequest, mon: MonitorService = Depends(get_monitor)):
    entry = mon.reconfigure(artifact_type=req.artifact_type, demo_mode=req.demo_mode)
    await mon.publish_log(entry)
    return {"ok": True, "config": mon.config.to_dict()}


# --- Simulation endpoints ---
@router.get("/sim/status")
async def sim_status(mon: MonitorService = Depends(get_monitor)):
    return mon.simulator.status()


@router.post("/sim/action")
async def sim_action(req: ManualActionRequest, mon: MonitorService = Depends(get_monitor)):
    entry = mon.apply_manual_action(req.action_type)
    await mon.publish_log(entry)
    return {"ok": True, "log": entry.to_dict(), "controls": mon.simulator.status()["controls"]}


# --- Journal ---
def _journal_window(minutes: int) -> tuple[datetime, datetime]:
    end = now_utc()
    return end - timedelta(minutes=max(1, minutes)), end


@router.get("/readings")
async def readings(
    minutes: int = 60,
    limit: int = 5000,
    repo: SQLiteRepository = Depends(get_repo),
):
    start, end = _journal_window(minutes)
    rows = await repo.query_readings(start.isoformat(), end.isoformat(), limit=min(limit, 20000))
    return {
        "start_utc": start.isoformat(),
        "end_utc": end.isoformat(),
        "rows": [r.to_dict() for r in rows],
    }


@router.get("/journal/logs")
async def journal_logs(
    minutes: int = 24 * 60,
    limit: int = 1000,
    repo: SQLiteRepository = Depends(get_repo),
):
    start, end = _journal_window(minutes)
    rows = await repo.query_logs(start.isoformat(), end.isoformat(), limit=min(limit, 20000))
    return {
        "start_utc": start.isoformat(),
        "end_utc": end.isoformat(),
        "logs": [e.to_dict() for e in rows],
    }


# --- Dashboard stream ---
@ws_router.websocket("/ws")
async def stream(
    websocket: WebSocket,
    mon: MonitorService = Depends(get_monitor),
    connections: ConnectionManager = Depends(get_connections),
):
    await websocket.accept()
    registered = False
    try:
        # hello and the current tick go out before the loop can push to this client
        await websocket.send_json({
            "type": "hello",
            "data": {"config": mon.config.to_dict(), "standards": mon.standards().to_dict()},
        })
        live = mon.store.live
        if live is not None:
            await websocket.send_json({"type": "tick", "data": live.to_dict()})

        await connections.register(websocket)
        registered = True

        while True:
            # Inbound frames of any kind are ignored; ticks are pushed by the monitor loop
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break
    except WebSocketDisconnect:
        pass
    finally:
        if registered:
            await connections.disconnect(websocket)
