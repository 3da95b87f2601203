"""Tracks dashboard WebSocket clients and fans out tick/log messages."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class ConnectionManager:
    def __init__(self) -> None:
        self._connections: set[WebSocket] = set()
        self._lock = asyncio.Lock()

    async def register(self, websocket: WebSocket) -> None:
        """Add an already-accepted socket to the broadcast set."""
        async with self._lock:
            self._connections.add(websocket)
        logger.info("Dashboard client connected (%d total)", len(self._connections))

    async def disconnect(self, websocket: WebSocket) -> None:
        async with self._lock:
            self._connections.discard(websocket)
        logger.info("Dashboard client disconnected (%d remaining)", len(self._connections))

    @property
    def active_count(self) -> int:
        return len(self._connections)

    async def broadcast_json(self, data: dict[str, Any]) -> None:
        """Send a JSON payload to every client; a failed send drops that client only."""
        async with self._lock:
            clients = list(self._connections)

        dead: list[WebSocket] = []
        for ws in clients:
            try:
                await ws.send_json(data)
            except Exception as e:
                logger.warning("Dropping dashboard client after send failure: %s", e)
                dead.append(ws)

        if dead:
            async with self._lock:
                for ws in dead:
                    self._connections.discard(ws)
