"""Single source of "now" so date-dependent fee logic can be pinned in tests."""

from datetime import date, datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def today() -> date:
    return date.today()
