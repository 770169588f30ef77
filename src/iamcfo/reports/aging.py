"""Days outstanding and aging buckets for A/R and A/P."""

import math
from datetime import date, datetime
from enum import Enum

SECONDS_PER_DAY = 86400


class AgingBucket(str, Enum):
    CURRENT = "current"
    DAYS_31_60 = "31-60"
    DAYS_61_90 = "61-90"
    DAYS_91_120 = "91-120"
    OVER_120 = "120+"


# Drill-down filter that groups everything past 90 days
OVER_90 = "90+"

BUCKET_LABELS = {
    AgingBucket.CURRENT.value: "Current (0-30 Days)",
    AgingBucket.DAYS_31_60.value: "31-60 Days",
    AgingBucket.DAYS_61_90.value: "61-90 Days",
    OVER_90: "90+ Days",
}


def days_outstanding(due: date | datetime, today: date | datetime | None = None) -> int:
    """``max(0, ceil((today - due) / 1 day))``.

    Calendar dates compare whole days; datetimes count partial days up.
    """
    today = today or date.today()
    if isinstance(due, datetime) or isinstance(today, datetime):
        due_dt = due if isinstance(due, datetime) else datetime.combine(due, datetime.min.time())
        today_dt = (
            today if isinstance(today, datetime)
            else datetime.combine(today, datetime.min.time())
        )
        if (due_dt.tzinfo is None) != (today_dt.tzinfo is None):
            due_dt = due_dt.replace(tzinfo=None)
            today_dt = today_dt.replace(tzinfo=None)
        days = math.ceil((today_dt - due_dt).total_seconds() / SECONDS_PER_DAY)
    else:
        days = (today - due).days
    return max(0, days)


def aging_bucket(days: int) -> AgingBucket:
    """Bucket for a days-outstanding count; boundaries go to the lower bucket."""
    if days <= 30:
        return AgingBucket.CURRENT
    if days <= 60:
        return AgingBucket.DAYS_31_60
    if days <= 90:
        return AgingBucket.DAYS_61_90
    if days <= 120:
        return AgingBucket.DAYS_91_120
    return AgingBucket.OVER_120


def matches_bucket_filter(days: int, selected: str) -> bool:
    """Whether a days count falls in a selected bucket or the 90+ group."""
    bucket = aging_bucket(days)
    if selected == OVER_90:
        return bucket in (AgingBucket.DAYS_91_120, AgingBucket.OVER_120)
    return bucket.value == selected
