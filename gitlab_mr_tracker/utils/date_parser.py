"""Date helpers for merge request discovery windows and display."""

from datetime import date, datetime, timedelta, timezone

UNIT_SECONDS = {
    "days": 24 * 60 * 60,
    "weeks": 7 * 24 * 60 * 60,
}


def utcnow() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_aware(dt: datetime) -> datetime:
    """Treat naive datetimes as UTC so they compare with API timestamps."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def relative_date_to_absolute(
    value: int, unit: str, now: datetime | None = None
) -> datetime:
    """Convert a relative time window to the instant at its start.

    Args:
        value: Number of units back from now (positive)
        unit: 'days' or 'weeks'
        now: Reference instant (defaults to the current UTC time)

    Returns:
        Timezone-aware datetime ``now - value * unit``

    Raises:
        ValueError: If the unit is unknown or the value is not positive
    """
    if unit not in UNIT_SECONDS:
        raise ValueError(
            f"Unknown time unit '{unit}'. Supported units: "
            f"{', '.join(sorted(UNIT_SECONDS))}"
        )
    if value <= 0:
        raise ValueError(f"{unit.capitalize()} must be a positive integer")

    reference = ensure_aware(now) if now is not None else utcnow()
    return reference - timedelta(seconds=value * UNIT_SECONDS[unit])


def truncate_to_date(dt: datetime) -> date:
    """Calendar date of an instant, evaluated in UTC."""
    return ensure_aware(dt).astimezone(timezone.utc).date()


def format_date_for_gitlab(d: date) -> str:
    """Format a date for GitLab API ``created_after`` parameters.

    Args:
        d: Date to format

    Returns:
        ISO formatted date string (YYYY-MM-DD)
    """
    return d.strftime("%Y-%m-%d")


def format_absolute_time(dt: datetime | None) -> str:
    """Format an instant as 'Jan 5, 2024 14:03' or 'Unknown'."""
    if dt is None:
        return "Unknown"
    return f"{dt.strftime('%b')} {dt.day}, {dt.year} {dt.strftime('%H:%M')}"


def format_time_ago(dt: datetime | None, now: datetime | None = None) -> str:
    """Format an instant relative to now.

    Instants within the last seven days read like '5 minutes ago'; older ones
    fall back to an absolute date such as 'Mar 3, 2024'.
    """
    if dt is None:
        return "Unknown"

    reference = ensure_aware(now) if now is not None else utcnow()
    delta = reference - ensure_aware(dt)
    seconds = int(delta.total_seconds())

    if delta > timedelta(days=7):
        return f"{dt.strftime('%b')} {dt.day}, {dt.year}"
    if seconds < 0:
        return "just now"
    if seconds < 60:
        return "less than a minute ago"

    if seconds >= 86400:
        count, label = seconds // 86400, "day"
    elif seconds >= 3600:
        count, label = seconds // 3600, "hour"
    else:
        count, label = seconds // 60, "minute"

    plural = "" if count == 1 else "s"
    return f"{count} {label}{plural} ago"
