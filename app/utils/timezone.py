from datetime import date, datetime, time, timezone
import pytz

from app.core.config import settings


def utc_now():
    """Returns the current time in UTC as an aware datetime object."""
    return datetime.now(timezone.utc)


def resolve_timezone(tz_name: str | None = None):
    """pytz zone for `tz_name`, falling back to the configured default."""
    try:
        return pytz.timezone(tz_name or settings.DEFAULT_TIMEZONE)
    except pytz.UnknownTimeZoneError:
        return pytz.timezone(settings.DEFAULT_TIMEZONE)


def day_window(day: date, tz_name: str | None = None):
    """
    Aware UTC bounds of a calendar day in the given zone.

    00:00:00.000000 to 23:59:59.999999 local wall-clock time, both inclusive.
    """
    tz = resolve_timezone(tz_name)
    local_start = tz.localize(datetime.combine(day, time.min))
    local_end = tz.localize(datetime.combine(day, time.max))
    return local_start.astimezone(timezone.utc), local_end.astimezone(timezone.utc)


def local_date(value: datetime, tz_name: str | None = None) -> date:
    """Calendar day of an instant as seen in the given zone."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(resolve_timezone(tz_name)).date()


def ensure_utc(value: datetime | None):
    """Naive datetimes are treated as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
