from datetime import datetime, timezone
from zoneinfo import ZoneInfo


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def now_local(tz_name: str) -> datetime:
    return now_utc().astimezone(ZoneInfo(tz_name))
