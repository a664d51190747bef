"""Client timestamp parsing.

Every log line starts with ``[Sat Mar 23 20:03:36 2024]`` in the player's
local wall-clock time.  A malformed stamp must never abort a scan, so
:func:`parse_log_timestamp` substitutes "now" instead of raising.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import UTC, datetime

_TIMESTAMP_RE = re.compile(
    r"^\w+\s+(?P<mon>\w+)\s+(?P<day>\d+)\s+"
    r"(?P<hh>\d{2}):(?P<mm>\d{2}):(?P<ss>\d{2})\s+(?P<year>\d{4})$"
)

_MONTHS = {
    "jan": 1,
    "feb": 2,
    "mar": 3,
    "apr": 4,
    "may": 5,
    "jun": 6,
    "jul": 7,
    "aug": 8,
    "sep": 9,
    "oct": 10,
    "nov": 11,
    "dec": 12,
}


@dataclass(frozen=True)
class LogTimestamp:
    """A parsed log timestamp.

    Attributes:
        when:      Naive local datetime, used for window arithmetic.
        utc_iso:   ISO-8601 UTC string stored on derived facts.
        local_iso: ISO-8601 local string stored alongside for display.
        parsed:    ``False`` when the "now" fallback was used.
    """

    when: datetime
    utc_iso: str
    local_iso: str
    parsed: bool = True

    @classmethod
    def from_local(cls, when: datetime, *, parsed: bool = True) -> LogTimestamp:
        when = when.replace(microsecond=0)
        return cls(
            when=when,
            utc_iso=when.astimezone(UTC).isoformat(),
            local_iso=when.isoformat(),
            parsed=parsed,
        )

    @classmethod
    def now(cls) -> LogTimestamp:
        return cls.from_local(datetime.now(), parsed=False)


def parse_log_timestamp(text: str | None) -> LogTimestamp:
    """Parse the bracketed client timestamp text (without the brackets)."""
    m = _TIMESTAMP_RE.match((text or "").strip())
    if not m:
        return LogTimestamp.now()
    month = _MONTHS.get(m["mon"][:3].lower())
    if month is None:
        return LogTimestamp.now()
    try:
        when = datetime(
            int(m["year"]), month, int(m["day"]), int(m["hh"]), int(m["mm"]), int(m["ss"])
        )
    except ValueError:
        return LogTimestamp.now()
    return LogTimestamp.from_local(when)

