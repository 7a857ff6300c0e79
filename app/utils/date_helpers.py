# app/utils/date_helpers.py
import logging
import re
from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from app.core.config import DEFAULT_TIMEZONE

logger = logging.getLogger(__name__)

_YMD = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def is_ymd(value) -> bool:
    return bool(_YMD.match(str(value or "")))


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def utc_now_iso() -> str:
    return utc_now().isoformat()


def local_today(tz_name: str = DEFAULT_TIMEZONE) -> date:
    """Calendar date in the business time zone (UTC if the zone is unknown)."""
    try:
        return datetime.now(ZoneInfo(tz_name)).date()
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown time zone %r, using UTC", tz_name)
        return utc_now().date()


def ymd(value: date) -> str:
    return value.isoformat()


def ymd_plus_days(start: date, days: int) -> str:
    return (start + timedelta(days=days)).isoformat()
