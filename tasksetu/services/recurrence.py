"""
Next-occurrence arithmetic for recurring tasks.

A recurrence pattern is a plain dict stored on the task:

    {
        "frequency": "daily" | "weekly" | "monthly" | "yearly" | "custom",
        "interval": 1,
        "days_of_week": [1, 3],        # weekly only, 0 = Sunday
        "day_of_month": 31,            # monthly only, clamped to month end
        "custom_pattern": {"type": "every_n_days", "days": 10},
        "anchor_field": "start_date" | "completion_date",
        "skip_weekends": false,
        "end_date": "2026-12-31T00:00:00Z",
    }
"""

import calendar
from datetime import datetime, timedelta

from tasksetu.time_utils import as_utc

FREQUENCIES = ("daily", "weekly", "monthly", "yearly", "custom")
CUSTOM_TYPES = ("every_n_days", "first_and_fifteenth", "last_day_of_month")

class InvalidPattern(ValueError):
    pass

def _parse_dt(value) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return as_utc(value)
    try:
        return as_utc(datetime.fromisoformat(str(value).replace("Z", "+00:00")))
    except ValueError:
        raise InvalidPattern(f"invalid date: {value!r}")

def validate_pattern(pattern: dict | None) -> dict:
    """Return a normalized copy of `pattern` or raise InvalidPattern."""
    if not isinstance(pattern, dict):
        raise InvalidPattern("recurrence pattern is required")

    frequency = pattern.get("frequency")
    if frequency not in FREQUENCIES:
        raise InvalidPattern(f"unknown frequency: {frequency!r}")

    interval = pattern.get("interval", 1)
    if not isinstance(interval, int) or isinstance(interval, bool) or interval < 1:
        raise InvalidPattern("interval must be a positive integer")

    out = dict(pattern)
    out["interval"] = interval

    days = pattern.get("days_of_week")
    if days:
        if not all(isinstance(d, int) and 0 <= d <= 6 for d in days):
            raise InvalidPattern("days_of_week must be integers 0..6")
        out["days_of_week"] = sorted(set(days))

    dom = pattern.get("day_of_month")
    if dom is not None and not (isinstance(dom, int) and 1 <= dom <= 31):
        raise InvalidPattern("day_of_month must be 1..31")

    if frequency == "custom":
        custom = pattern.get("custom_pattern") or {}
        if custom.get("type") not in CUSTOM_TYPES:
            raise InvalidPattern("custom_pattern.type is required for custom frequency")

    anchor = pattern.get("anchor_field", "start_date")
    if anchor not in ("start_date", "completion_date"):
        raise InvalidPattern("anchor_field must be start_date or completion_date")
    out["anchor_field"] = anchor

    end = _parse_dt(pattern.get("end_date"))
    out["end_date"] = end.isoformat() if end else None
    return out

def _js_weekday(dt: datetime) -> int:
    # 0 = Sunday, as the clients send it
    return (dt.weekday() + 1) % 7

def add_months(dt: datetime, months: int, day: int | None = None) -> datetime:
    idx = dt.month - 1 + months
    year, month = dt.year + idx // 12, idx % 12 + 1
    last = calendar.monthrange(year, month)[1]
    return dt.replace(year=year, month=month, day=min(day or dt.day, last))

def _next_weekly(base: datetime, days: list[int], interval: int) -> datetime:
    current = _js_weekday(base)
    for d in days:
        if d > current:
            return base + timedelta(days=d - current)
    # wrap into the next active week
    return base + timedelta(days=7 * interval - current + days[0])

def _next_custom(custom: dict, base: datetime) -> datetime | None:
    kind = custom.get("type")
    if kind == "every_n_days":
        return base + timedelta(days=int(custom.get("days") or 1))
    if kind == "first_and_fifteenth":
        if base.day < 15:
            return base.replace(day=15)
        return add_months(base, 1, day=1)
    if kind == "last_day_of_month":
        last = calendar.monthrange(base.year, base.month)[1]
        if base.day < last:
            return base.replace(day=last)
        return add_months(base, 1, day=31)
    return None

def _skip_weekend(dt: datetime) -> datetime:
    wd = dt.weekday()
    if wd == 5:
        return dt + timedelta(days=2)
    if wd == 6:
        return dt + timedelta(days=1)
    return dt

def next_due_date(
    pattern: dict | None,
    current_due: datetime | None,
    anchor: str | None = None,
    completion: datetime | None = None,
) -> datetime | None:
    """Due date of the occurrence after `current_due`, or None once the series has ended."""
    if not pattern or current_due is None:
        return None

    anchor = anchor or pattern.get("anchor_field") or "start_date"
    base = as_utc(completion) if anchor == "completion_date" and completion else as_utc(current_due)

    frequency = pattern.get("frequency")
    interval = int(pattern.get("interval") or 1)

    if frequency == "daily":
        nxt = base + timedelta(days=interval)
    elif frequency == "weekly":
        days = pattern.get("days_of_week")
        nxt = _next_weekly(base, sorted(days), interval) if days else base + timedelta(days=7 * interval)
    elif frequency == "monthly":
        nxt = add_months(base, interval, day=pattern.get("day_of_month"))
    elif frequency == "yearly":
        # add_months clamps feb 29 to feb 28 in common years
        nxt = add_months(base, 12 * interval)
    elif frequency == "custom":
        nxt = _next_custom(pattern.get("custom_pattern") or {}, base)
    else:
        return None

    if nxt is None:
        return None

    if pattern.get("skip_weekends") or pattern.get("skip_holidays"):
        nxt = _skip_weekend(nxt)

    end = _parse_dt(pattern.get("end_date"))
    if end is not None and nxt > end:
        return None
    return nxt
