
from __future__ import annotations
import re
from datetime import datetime, timezone

from .errors import MalformedTimestamp

# HTTP dates are English regardless of LC_TIME, so names are matched here
# instead of through strptime's %a / %b.
_WEEKDAYS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")
_MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")

# e.g. "Mon, 16 Apr 2018 04:33:50 GMT"
_LAYOUT = re.compile(
    r"(?P<wday>[A-Za-z]{3}), (?P<day>\d{1,2}) (?P<mon>[A-Za-z]{3}) (?P<year>\d{4}) "
    r"(?P<hh>\d{2}):(?P<mm>\d{2}):(?P<ss>\d{2})"
)


def parse_timespec(raw: str) -> datetime:
    """Parse an HTTP-date style timestamp into an aware UTC datetime."""
    if not isinstance(raw, str):
        raise MalformedTimestamp(raw)

    text = raw
    while text.endswith(" GMT"):
        text = text[:-len(" GMT")]

    m = _LAYOUT.fullmatch(text)
    if m is None or m["wday"] not in _WEEKDAYS or m["mon"] not in _MONTHS:
        raise MalformedTimestamp(raw)
    try:
        parsed = datetime(
            int(m["year"]), _MONTHS.index(m["mon"]) + 1, int(m["day"]),
            int(m["hh"]), int(m["mm"]), int(m["ss"]),
            tzinfo=timezone.utc,
        )
    except ValueError as e:
        raise MalformedTimestamp(raw) from e
    if parsed.weekday() != _WEEKDAYS.index(m["wday"]):
        raise MalformedTimestamp(raw)
    return parsed
