"""
Timestamp helpers shared by the parsers, the cache and the uploader.
"""

import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from email.utils import parsedate_to_datetime
from typing import Optional

from .exceptions import TimestampError

OFFSET_PATTERN = re.compile(r"^(Z|[+-]\d{2}:?\d{2})$")

# One millisecond: the resolution of uploaded phenomenonTime values
INSTANT = timedelta(milliseconds=1)


@dataclass(frozen=True)
class Interval:
    """Closed-open UTC time window ``[start, end)``."""

    start: datetime
    end: datetime

    def __contains__(self, moment: datetime) -> bool:
        return self.start <= moment < self.end

    def __str__(self) -> str:
        return f"{to_iso8601(self.start)}/{to_iso8601(self.end)}"


def parse_offset(zone_offset: Optional[str]) -> timezone:
    """Convert an ISO-8601 offset such as ``-06:00`` or ``Z`` to a tzinfo."""
    if not zone_offset or not OFFSET_PATTERN.match(zone_offset.strip()):
        raise TimestampError(
            f"Invalid or missing time zone offset: {zone_offset!r}. "
            "Set an explicit offset such as '-06:00' on the station metadata."
        )

    value = zone_offset.strip()
    if value == "Z":
        return timezone.utc

    sign = -1 if value[0] == "-" else 1
    digits = value[1:].replace(":", "")
    delta = timedelta(hours=int(digits[:2]), minutes=int(digits[2:]))
    return timezone(sign * delta)


def parse_local_timestamp(value: str, fmt: str, zone_offset: Optional[str]) -> datetime:
    """
    Parse a zone-less source timestamp and normalize it to UTC.

    The offset is mandatory: a timestamp without one is never assumed to be
    in local time.
    """
    tz = parse_offset(zone_offset)
    try:
        naive = datetime.strptime(value.strip(), fmt)
    except ValueError as e:
        raise TimestampError(f"Invalid timestamp {value!r}: {e}") from e
    return naive.replace(tzinfo=tz).astimezone(timezone.utc)


def parse_iso8601(value: str) -> datetime:
    """Parse an ISO-8601 datetime that carries ``Z`` or an explicit offset."""
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"

    try:
        moment = datetime.fromisoformat(text)
    except ValueError as e:
        raise TimestampError(f"Invalid ISO-8601 timestamp {value!r}") from e

    if moment.tzinfo is None:
        raise TimestampError(f"Timestamp {value!r} has no time zone offset")
    return moment.astimezone(timezone.utc)


def parse_last_modified(value: Optional[str]) -> Optional[datetime]:
    """Convert a ``Last-Modified`` header to a UTC datetime."""
    if not value:
        return None
    try:
        return parsedate_to_datetime(value).astimezone(timezone.utc)
    except (TypeError, ValueError):
        return None


def to_iso8601(moment: datetime) -> str:
    """Format as ISO-8601 UTC with millisecond precision."""
    utc = moment.astimezone(timezone.utc)
    return utc.strftime("%Y-%m-%dT%H:%M:%S.") + f"{utc.microsecond // 1000:03d}Z"


def _parse_bound(value: str) -> datetime:
    if "T" not in value:
        try:
            day = date.fromisoformat(value.strip())
        except ValueError as e:
            raise TimestampError(f"Invalid ISO-8601 date {value!r}") from e
        return datetime(day.year, day.month, day.day, tzinfo=timezone.utc)
    return parse_iso8601(value)


def parse_interval(value: str, latest: Optional[datetime] = None) -> Interval:
    """
    Parse an upload window.

    Accepted forms:

    - ``start/end``: ISO-8601 datetimes (with offset) or dates
    - a bare date: that whole UTC day
    - a single zoned datetime: the instant itself
    - ``latest``: the instant of ``latest``, the newest cached observation
    """
    if value is None or not value.strip():
        raise TimestampError("Missing date or interval")

    text = value.strip()

    if text.lower() == "latest":
        if latest is None:
            raise TimestampError("No cached observations to resolve 'latest'")
        moment = latest.astimezone(timezone.utc)
        return Interval(moment, moment + INSTANT)

    if "/" in text:
        start_text, _, end_text = text.partition("/")
        start = _parse_bound(start_text)
        end = _parse_bound(end_text)
    elif "T" in text:
        start = parse_iso8601(text)
        end = start + INSTANT
    else:
        start = _parse_bound(text)
        end = start + timedelta(days=1)

    if end <= start:
        raise TimestampError(f"Interval end must be after its start: {value!r}")
    return Interval(start, end)
