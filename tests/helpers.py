from datetime import datetime, timezone

from conservebot.domain.models import DoorState, Reading

BASE = datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


def make_reading(**overrides) -> Reading:
    """A FOSSILS-safe reading unless overridden."""
    fields = dict(
        ts_utc=BASE,
        temperature_c=19.0,
        humidity_pct=47.5,
        moisture_pct=4.5,
        door_state=DoorState.CLOSED,
        opens_per_hour=0,
        vibration=0.0,
        access_locked=False,
    )
    fields.update(overrides)
    return Reading(**fields)
