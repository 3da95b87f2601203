from __future__ import annotations
from collections import deque
from typing import Deque, Optional

from ..core.numeric import clamp
from ..domain.models import LogEntry, Reading, TickSnapshot


class LiveStore:
    """
    In-memory state shared with the API layer.

    `live` is replaced wholesale once per cycle, so readers always see a
    complete snapshot. History series and the log are bounded.
    """

    def __init__(
        self,
        log_limit: int = 500,
        history_24h_limit: int = 2000,
        history_7d_limit: int = 400,
    ) -> None:
        self.live: Optional[TickSnapshot] = None
        self._log_limit = log_limit
        self._logs: Deque[LogEntry] = deque(maxlen=log_limit)
        self._history = {
            "24h": deque(maxlen=history_24h_limit),
            "7d": deque(maxlen=history_7d_limit),
        }

    def set_live(self, snapshot: TickSnapshot) -> None:
        self.live = snapshot

    def set_history(self, history_24h: list[Reading], history_7d: list[Reading]) -> None:
        self._history["24h"].clear()
        self._history["24h"].extend(history_24h)
        self._history["7d"].clear()
        self._history["7d"].extend(history_7d)

    def get_history(self, range_key: str) -> list[Reading]:
        # Anything but "7d" means the 24h series
        return list(self._history["7d" if range_key == "7d" else "24h"])

    def last_history_point(self, range_key: str) -> Optional[Reading]:
        series = self._history[range_key]
        return series[-1] if series else None

    def append_to_history(self, range_key: str, reading: Reading) -> None:
        self._history[range_key].append(reading)

    def push_log(self, entry: LogEntry) -> None:
        self._logs.append(entry)

    def get_logs(self, limit: int = 50) -> list[LogEntry]:
        """Newest first."""
        n = int(clamp(limit, 1, self._log_limit))
        return list(self._logs)[-n:][::-1]
