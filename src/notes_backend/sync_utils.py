from __future__ import annotations

from datetime import datetime, timedelta, timezone

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_ONE_MS = timedelta(milliseconds=1)


def now_ms() -> int:
    return to_epoch_ms(datetime.now(timezone.utc))


def to_epoch_ms(value: datetime) -> int:
    # SQLite hands back naive datetimes; everything is stored in UTC.
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return (value - _EPOCH) // _ONE_MS


def from_epoch_ms(value: int) -> datetime:
    # Integer arithmetic keeps the millisecond exact (no float rounding).
    return _EPOCH + timedelta(milliseconds=int(value))
