from __future__ import annotations
from typing import Any, Protocol, runtime_checkable
from .models import LogEntry, Reading


@runtime_checkable
class Repository(Protocol):
    async def init(self) -> None:
        ...

    async def insert_reading(self, reading: Reading) -> None:
        ...

    async def insert_log(self, entry: LogEntry) -> None:
        ...

    async def query_readings(self, start_ts: str, end_ts: str, limit: int) -> list[Reading]:
        ...

    async def query_logs(self, start_ts: str, end_ts: str, limit: int) -> list[LogEntry]:
        ...


@runtime_checkable
class Broadcaster(Protocol):
    async def broadcast_json(self, data: dict[str, Any]) -> None:
        ...
