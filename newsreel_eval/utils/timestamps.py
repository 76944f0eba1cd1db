"""
Tolerant timestamp parsing for the contest log formats

The online and offline logs disagree on how dates are written. Supported:
  - epoch milliseconds ("1462060800008")
  - "2013-10-20T00:00:00+0200", "2016-05-01 00:00:00,008" and similar, with any
    single character between date and time. Milliseconds and zone suffixes are
    ignored; the wall time is read as UTC.
"""

import re
from datetime import datetime, timezone
from typing import Union

_DATE_PATTERN = re.compile(
    r"([0-9]{4})-([0-9]{1,2})-([0-9]{1,2}).([0-9]{1,2}):([0-9]{1,2}):([0-9]{1,2})(.*)"
)
_EPOCH_PATTERN = re.compile(r"-?[0-9]+")


def parse_date_millis(value: str) -> int:
    """Parse a contest date string into epoch milliseconds"""
    match = _DATE_PATTERN.search(value)
    if match is None:
        raise ValueError(f"invalid date string: {value!r}")

    year, month, day, hour, minute, second = (int(group) for group in match.groups()[:6])
    try:
        moment = datetime(year, month, day, hour, minute, second, tzinfo=timezone.utc)
    except ValueError as e:
        raise ValueError(f"invalid date string: {value!r} ({e})") from e

    return int(moment.timestamp()) * 1000


def parse_timestamp(value: Union[str, int]) -> int:
    """Parse either epoch milliseconds or a contest date string"""
    if isinstance(value, int):
        return value

    text = value.strip()
    if _EPOCH_PATTERN.fullmatch(text):
        return int(text)
    return parse_date_millis(text)
