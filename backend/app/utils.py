"""Shared utility helpers used across services."""
import logging
import time
from datetime import date, datetime, time as dt_time, timezone
from zoneinfo import ZoneInfo

from dateutil.relativedelta import relativedelta
from django.conf import settings
from django.db import InterfaceError, OperationalError

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    """Return timezone-aware UTC now. Replaces deprecated datetime.utcnow()."""
    return datetime.now(timezone.utc)


def care_time_zone(name: str | None = None) -> ZoneInfo:
    """The calendar used for day-level comparisons (principal override, else CARE_TIME_ZONE)."""
    return ZoneInfo(name or settings.CARE_TIME_ZONE)


def local_day(value: date | datetime, tz: ZoneInfo | None = None) -> date:
    """Calendar day of a date or datetime in the care time zone. Naive datetimes are taken as-is."""
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.date()
        return value.astimezone(tz or care_time_zone()).date()
    return value


def start_of_local_day(day: date, tz: ZoneInfo | None = None) -> datetime:
    """Aware datetime for local midnight of `day`."""
    return datetime.combine(day, dt_time.min, tzinfo=tz or care_time_zone())


def add_months(value: datetime, months: int) -> datetime:
    """Calendar-month offset; Jan 31 + 1 month lands on the last day of February."""
    return value + relativedelta(months=months)


def run_with_store_retry(func, *args, attempts: int | None = None, **kwargs):
    """
    Call func, retrying transient database failures a bounded number of times.

    Only backend errors are retried. Validation and not-found errors raised by
    the services propagate on the first attempt.
    """
    attempts = attempts or settings.CARE_STORE_RETRY_ATTEMPTS
    delay = settings.CARE_STORE_RETRY_DELAY_SECONDS
    for attempt in range(1, attempts + 1):
        try:
            return func(*args, **kwargs)
        except (OperationalError, InterfaceError) as exc:
            if attempt == attempts:
                raise
            logger.warning(
                "Store error on %s (attempt %d/%d): %s",
                getattr(func, "__name__", func), attempt, attempts, exc,
            )
            time.sleep(delay * attempt)
