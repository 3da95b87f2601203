"""SQLite journal: schema creation, JSON context and time-range queries."""

from datetime import timedelta

import pytest

from conservebot.domain.models import ActionType, LogEntry, LogKind
from conservebot.storage.sqlite_repo import SQLiteRepository

from tests.helpers import BASE, make_reading


@pytest.fixture
def repo(tmp_path) -> SQLiteRepository:
    return SQLiteRepository(str(tmp_path / "journal.db"))


def _window(minutes_before: int, minutes_after: int) -> tuple[str, str]:
    return (
        (BASE - timedelta(minutes=minutes_before)).isoformat(),
        (BASE + timedelta(minutes=minutes_after)).isoformat(),
    )


class TestReadings:
    @pytest.mark.asyncio
    async def test_round_trip_oldest_first(self, repo: SQLiteRepository) -> None:
        await repo.init()
        rows = [make_reading(ts_utc=BASE + timedelta(minutes=i), humidity_pct=47.5 + i) for i in range(3)]
        for r in reversed(rows):
            await repo.insert_reading(r)

        start, end = _window(1, 10)
        assert await repo.query_readings(start, end, limit=10) == rows

    @pytest.mark.asyncio
    async def test_window_and_limit_keep_newest(self, repo: SQLiteRepository) -> None:
        await repo.init()
        for i in range(5):
            await repo.insert_reading(make_reading(ts_utc=BASE + timedelta(minutes=i)))

        start, end = _window(0, 3)
        got = await repo.query_readings(start, end, limit=2)
        assert [r.ts_utc for r in got] == [BASE + timedelta(minutes=2), BASE + timedelta(minutes=3)]

    @pytest.mark.asyncio
    async def test_init_is_repeatable(self, repo: SQLiteRepository) -> None:
        await repo.init()
        await repo.insert_reading(make_reading(access_locked=True))
        await repo.init()
        start, end = _window(1, 1)
        (row,) = await repo.query_readings(start, end, limit=10)
        assert row.access_locked is True


class TestLogs:
    @pytest.mark.asyncio
    async def test_action_entry_keeps_context(self, repo: SQLiteRepository) -> None:
        await repo.init()
        reading = make_reading(humidity_pct=58.0)
        entry = LogEntry(
            id="a1",
            ts_utc=BASE,
            kind=LogKind.AUTO_REMEDIATION,
            action_type=ActionType.DEHUMIDIFY,
            label="Trigger dehumidification",
            reason="Humidity 58.0% above target.",
            context=reading.key_fields(),
        )
        await repo.insert_log(entry)

        start, end = _window(1, 1)
        (got,) = await repo.query_logs(start, end, limit=10)
        assert got == entry
        assert got.context["humidity_pct"] == 58.0

    @pytest.mark.asyncio
    async def test_config_entry_without_action(self, repo: SQLiteRepository) -> None:
        await repo.init()
        entry = LogEntry(
            id="c1", ts_utc=BASE, kind=LogKind.CONFIG,
            message="Config updated: artifact_type=STONE, demo_mode=normal",
        )
        await repo.insert_log(entry)

        start, end = _window(1, 1)
        (got,) = await repo.query_logs(start, end, limit=10)
        assert got.action_type is None
        assert got.context is None
        assert got.message == entry.message

    @pytest.mark.asyncio
    async def test_out_of_window_entries_excluded(self, repo: SQLiteRepository) -> None:
        await repo.init()
        for i, minutes in enumerate((-90, -5, 0)):
            await repo.insert_log(LogEntry(
                id=str(i), ts_utc=BASE + timedelta(minutes=minutes), kind=LogKind.CONFIG, message="m",
            ))
        start, end = _window(60, 0)
        assert [e.id for e in await repo.query_logs(start, end, limit=10)] == ["1", "2"]
