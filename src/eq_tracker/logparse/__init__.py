"""Log line parsing: name normalization, timestamps, standings and the classifier.

Public surface
--------------
- :func:`normalize_name`  : canonical form used for every entity-name comparison.
- :func:`classify_line`   : first-match-wins classification of one log line.
- :class:`LogEvent`       : typed result of :func:`classify_line`.
- :class:`EventKind`      : the event kinds, in priority order.
- :class:`Standing`       : the nine consider dispositions and their scores.
- :func:`parse_log_timestamp`: client timestamp parsing with a "now" fallback.
"""

from eq_tracker.logparse.classifier import (
    RULES,
    EventKind,
    LogEvent,
    classify_line,
    classify_lines,
    has_attack_marker,
    has_invis_marker,
)
from eq_tracker.logparse.normalize import normalize_name, simple_stem
from eq_tracker.logparse.standings import (
    HOSTILE_STANDINGS,
    MAX_SCORE,
    Standing,
    standing_from_line,
)
from eq_tracker.logparse.timestamps import LogTimestamp, parse_log_timestamp

__all__ = [
    "RULES",
    "EventKind",
    "LogEvent",
    "classify_line",
    "classify_lines",
    "has_attack_marker",
    "has_invis_marker",
    "normalize_name",
    "simple_stem",
    "HOSTILE_STANDINGS",
    "MAX_SCORE",
    "Standing",
    "standing_from_line",
    "LogTimestamp",
    "parse_log_timestamp",
]
