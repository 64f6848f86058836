import math
from datetime import datetime, timezone

def now_utc() -> datetime:
    return datetime.now(timezone.utc)

# sqlite hands back naive datetimes; everything is stored as utc
def as_utc(dt: datetime | None) -> datetime | None:
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)

def days_until(dt: datetime | None, now: datetime | None = None) -> int | None:
    if dt is None:
        return None
    now = now or now_utc()
    return math.ceil((as_utc(dt) - now).total_seconds() / 86400)

def month_start(now: datetime | None = None) -> datetime:
    now = now or now_utc()
    return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)

def day_start(now: datetime | None = None) -> datetime:
    now = now or now_utc()
    return now.replace(hour=0, minute=0, second=0, microsecond=0)
