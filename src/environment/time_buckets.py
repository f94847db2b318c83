"""Recurring office-time buckets used to key door observations."""

from __future__ import annotations

from datetime import datetime
from zoneinfo import ZoneInfo

WEEKDAYS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")


def office_time_bucket(timestamp: float, bucket_minutes: int = 60, tz: str = "UTC") -> str:
    """Map an epoch timestamp to its weekly bucket, e.g. "Tue-09:30".

    Args:
        timestamp: Seconds since the epoch.
        bucket_minutes: Bucket width; must divide a day evenly.
        tz: IANA timezone of the office.

    Returns:
        "<weekday>-<HH:MM>" where HH:MM is the start of the bucket.
    """
    if bucket_minutes <= 0 or (24 * 60) % bucket_minutes != 0:
        raise ValueError(f"bucket_minutes must divide a day evenly, got {bucket_minutes}")

    local = datetime.fromtimestamp(timestamp, ZoneInfo(tz))
    minute_of_day = local.hour * 60 + local.minute
    start = minute_of_day - minute_of_day % bucket_minutes
    return f"{WEEKDAYS[local.weekday()]}-{start // 60:02d}:{start % 60:02d}"
