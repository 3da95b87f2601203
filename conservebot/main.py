from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from .core.config import settings
from .core.log import configure_logging
from .core.numeric import RandomSource

from .api.routes import router as api_router, ws_router
import conservebot.api.routes as routes_module

from .domain.engine import DecisionEngine
from .domain.models import DemoMode, MonitorConfig
from .domain.standards import resolve_artifact_type
from .drivers.simulator import ReadingSimulator
from .services.connection_manager import ConnectionManager
from .services.monitor import MonitorService
from .storage.memory_store import LiveStore
from .storage.sqlite_repo import SQLiteRepository


logger = logging.getLogger(__name__)


def _initial_config() -> MonitorConfig:
    try:
        mode = DemoMode(settings.demo_mode)
    except ValueError:
        logger.warning("Unknown demo_mode %r in settings, using normal", settings.demo_mode)
        mode = DemoMode.NORMAL
    return MonitorConfig(artifact_type=resolve_artifact_type(settings.artifact_type), demo_mode=mode)


# --- Singletons ---
config = _initial_config()
simulator = ReadingSimulator(
    artifact_type=config.artifact_type,
    demo_mode=config.demo_mode,
    source=RandomSource(settings.sim_seed),
)
engine = DecisionEngine()
store = LiveStore(
    log_limit=settings.log_limit,
    history_24h_limit=settings.history_24h_limit,
    history_7d_limit=settings.history_7d_limit,
)
repo = SQLiteRepository(settings.sqlite_path)
connections = ConnectionManager()

monitor = MonitorService(
    simulator=simulator,
    engine=engine,
    store=store,
    repo=repo,
    broadcaster=connections,
    config=config,
    tick_seconds=settings.tick_seconds,
)
monitor.bootstrap()


def get_monitor() -> MonitorService:
    return monitor


def get_repo() -> SQLiteRepository:
    return repo


def get_connections() -> ConnectionManager:
    return connections


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(settings.log_path)
    logger.info(
        "Starting %s (artifact=%s mode=%s)",
        settings.app_name, config.artifact_type.value, config.demo_mode.value,
    )

    await repo.init()
    await monitor.start()

    try:
        yield
    finally:
        await monitor.stop()
        logger.info("Shutdown complete")


app = FastAPI(title=settings.app_name, lifespan=lifespan)

# Make the dependency functions in routes resolve to the real ones
app.dependency_overrides[routes_module.get_monitor] = get_monitor
app.dependency_overrides[routes_module.get_repo] = get_repo
app.dependency_overrides[routes_module.get_connections] = get_connections

app.include_router(api_router, prefix="/api")
app.include_router(ws_router)
