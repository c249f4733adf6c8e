"""Shared service helpers: money math, input coercion, pagination args."""

import math
from datetime import datetime

from flask import current_app, has_app_context

from ..exceptions import ValidationError
from ..utils.constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from ..utils.dates import local_now

SECONDS_PER_DAY = 24 * 60 * 60


def round2(x: float) -> float:
    return round(float(x), 2)


def to_float(value, field: str, default: float | None = None) -> float:
    """Coerce a request value to float; raise ValidationError if invalid."""
    if value in (None, ""):
        if default is None:
            raise ValidationError(f"{field} is required")
        return default
    try:
        result = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be a number") from None
    if math.isnan(result) or math.isinf(result):
        raise ValidationError(f"{field} must be a number")
    return result


def to_int(value, field: str, default: int | None = None) -> int | None:
    if value in (None, ""):
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be an integer") from None


def page_args(args) -> tuple[int, int]:
    """Read ?page=&limit= with sane bounds."""
    page = to_int(args.get("page"), "page", 1)
    default = current_app.config.get("DEFAULT_PAGE_SIZE", DEFAULT_PAGE_SIZE) if has_app_context() else DEFAULT_PAGE_SIZE
    limit = to_int(args.get("limit"), "limit", default)
    return max(page, 1), min(max(limit, 1), MAX_PAGE_SIZE)


def total_days(start: datetime, end: datetime) -> int:
    """
    Whole rental days, rounding any part day up.
    A same-day booking (start == end) counts as one day.
    """
    seconds = (end - start).total_seconds()
    return max(math.ceil(seconds / SECONDS_PER_DAY), 1)


def booking_number(now: datetime | None = None, millis: int | None = None) -> str:
    """'BK-YYYYMM-XXXXXX': current month plus the last six digits of the millisecond clock."""
    now = now or local_now()
    if millis is None:
        millis = int(datetime.now().timestamp() * 1000)
    return f"BK-{now.year}{now.month:02d}-{millis % 1_000_000:06d}"
