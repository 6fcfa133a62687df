"""Legacy date string detection and UTC conversion.

Older items store timestamps as local wall-clock strings such as
``01/15/2021 02:30 PM``. This module detects them, converts them to UTC,
and recognizes strings that are already canonical UTC ISO-8601.
"""

from __future__ import annotations

import re
from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from core.constants import DEFAULT_LEGACY_TIMEZONE
from core.errors import MigrateConfigError

LEGACY_DATE_PATTERN = re.compile(
    r"^(\d+)/(\d+)/(\d+) (\d+):(\d+)(?::(\d+))? (AM|PM)$",
    re.IGNORECASE,
)
ISO_UTC_DATE_PATTERN = re.compile(r"^\d+-\d+-\d+T\d+:\d+:\d+\.?\d*Z$")


def try_parse_legacy_date(text: str, tz: str = DEFAULT_LEGACY_TIMEZONE) -> datetime | None:
    """Detect a legacy date string and convert it to an aware UTC datetime.

    Minutes and seconds past their range roll over into the next hour or
    minute. Strings whose calendar date does not exist, or whose UTC time falls
    outside the representable range, are not dates.

    Args:
        text: A string that may or may not be a legacy date.
        tz: IANA timezone the wall-clock time was recorded in.

    Returns:
        UTC datetime, or None if the string is not a legacy date.
    """
    match = LEGACY_DATE_PATTERN.match(text.strip())
    if match is None:
        return None
    month, day, year, hours, minutes = (int(group) for group in match.groups()[:5])
    seconds = int(match.group(6)) if match.group(6) is not None else 0
    hours = _to_24_hour(hours, match.group(7).upper())
    try:
        local_midnight = datetime(year, month, day, tzinfo=ZoneInfo(tz))
    except (ValueError, OverflowError):
        return None
    try:
        local_time = local_midnight.replace(tzinfo=None) + timedelta(
            hours=hours, minutes=minutes, seconds=seconds
        )
        return local_time.replace(tzinfo=ZoneInfo(tz)).astimezone(timezone.utc)
    except OverflowError:
        return None


def is_iso_utc_date(text: str) -> bool:
    """Return whether a string is already a canonical UTC ISO-8601 timestamp."""
    return ISO_UTC_DATE_PATTERN.match(text) is not None


def format_utc_iso(moment: datetime) -> str:
    """Render a datetime as ``YYYY-MM-DDTHH:MM:SS.mmmZ`` in UTC.

    Naive datetimes are assumed to already be UTC.
    """
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc)
    milliseconds = moment.microsecond // 1000
    return f"{moment.strftime('%Y-%m-%dT%H:%M:%S')}.{milliseconds:03d}Z"


def _to_24_hour(hours: int, meridiem: str) -> int:
    # 12 AM is midnight, 12 PM is noon
    if hours == 12:
        hours = 0
    return hours + 12 if meridiem == "PM" else hours


def validate_timezone(tz: str) -> str:
    """Check that an IANA timezone name resolves.

    Args:
        tz: Timezone name, e.g. ``America/New_York``.

    Returns:
        The validated timezone name.

    Raises:
        MigrateConfigError: If the zone is unknown.
    """
    try:
        ZoneInfo(tz)
    except (ZoneInfoNotFoundError, ValueError) as error:
        raise MigrateConfigError(
            f"Unknown legacy timezone '{tz}'. Use an IANA name such as America/New_York."
        ) from error
    return tz


def normalize_utc_timestamp(text: str) -> str:
    """Validate a configured timestamp and render it in canonical UTC form.

    Args:
        text: ISO-8601 timestamp with a ``Z`` suffix or an explicit offset.

    Returns:
        Canonical ``YYYY-MM-DDTHH:MM:SS.mmmZ`` string.

    Raises:
        MigrateConfigError: If the value is not an offset-aware ISO-8601 timestamp.
    """
    candidate = text.strip()
    if candidate.endswith("Z"):
        candidate = candidate[:-1] + "+00:00"
    try:
        moment = datetime.fromisoformat(candidate)
    except ValueError as error:
        raise MigrateConfigError(
            f"Invalid timestamp override '{text}': expected ISO-8601, "
            "e.g. 2022-05-10T18:00:00Z."
        ) from error
    if moment.tzinfo is None:
        raise MigrateConfigError(
            f"Invalid timestamp override '{text}': include a UTC offset or a Z suffix."
        )
    return format_utc_iso(moment)
