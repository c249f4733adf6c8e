"""Date parsing and server-local clock helpers."""
import os
from datetime import date, datetime, time, timedelta

import pytz
from flask import current_app, has_app_context

from ..exceptions import ValidationError

DATE_FMT = "%Y-%m-%d"


def server_timezone():
    """The configured wall-clock timezone (``TIMEZONE``), UTC by default."""
    if has_app_context():
        name = current_app.config.get("TIMEZONE") or "UTC"
    else:
        name = os.getenv("TIMEZONE", "UTC")
    return pytz.timezone(name)


def local_now() -> datetime:
    """
    Current server-local wall-clock time as a naive datetime.
    All datetimes are stored naive in server-local time.
    """
    return datetime.now(server_timezone()).replace(tzinfo=None, microsecond=0)


def today_bounds(now: datetime | None = None) -> tuple[datetime, datetime]:
    """Return [today 00:00, tomorrow 00:00) in server-local time."""
    now = now or local_now()
    start = datetime.combine(now.date(), time.min)
    return start, start + timedelta(days=1)


def parse_datetime(value, field: str = "date") -> datetime:
    """
    Parse an ISO-8601 date or datetime into a naive server-local datetime.
    Supports:
      - 'YYYY-MM-DD'
      - 'YYYY-MM-DDTHH:MM[:SS]' and 'YYYY-MM-DD HH:MM[:SS]'
      - Above with 'Z' or offsets like '+00:00' (converted to server-local time)
    Raises ValidationError on anything else.
    """
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        return datetime.combine(value, time.min)
    elif isinstance(value, str) and value.strip():
        s = value.strip()
        if s.endswith("Z"):
            s = s[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(s)
        except ValueError:
            raise ValidationError(f"Invalid {field}: {value!r}") from None
    else:
        raise ValidationError(f"Missing {field}")

    if dt.tzinfo is not None:
        dt = dt.astimezone(server_timezone()).replace(tzinfo=None)
    return dt


def parse_optional_datetime(value, field: str = "date") -> datetime | None:
    if value in (None, ""):
        return None
    return parse_datetime(value, field)


def to_iso(value) -> str | None:
    """JSON-friendly ISO string for date/datetime values; None stays None."""
    if value is None:
        return None
    return value.isoformat()
