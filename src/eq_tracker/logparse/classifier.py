"""Line classifier: the ordered rule table.

One log line produces at most one :class:`LogEvent`.  Rules are tried
strictly in the order of :data:`RULES` and the first structural match wins,
so a line that could satisfy two patterns always resolves to the
higher-priority kind.  Lines that match nothing are ignored: the classifier
is a filter, not a validator.

Priority (highest first)::

    ZONE_CHANGE
    INVIS_ON, INVIS_OFF                      (self only)
    MELEE_HIT, MELEE_MISS
    AUTO_ATTACK_ON
    MOB_HITS_YOU, MOB_TRIES_TO_HIT_YOU
    NON_MELEE_DAMAGE, THORNS_DAMAGE
    SPELL_YOUR_HITS, SPELL_YOU_HIT, SPELL_DOT_TICK
    CONSIDER

The module also exposes two loose marker checks used by the standing
tracker's line-window heuristic.  They deliberately match more than the
rules do (other players fading, sneak messages, any melee swing).
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum

from eq_tracker.logparse.standings import PHRASE_ALTERNATION, Standing, standing_from_line
from eq_tracker.logparse.timestamps import LogTimestamp, parse_log_timestamp


class EventKind(Enum):
    """Typed event kinds, declared in classifier priority order."""

    ZONE_CHANGE = "zone_change"
    INVIS_ON = "invis_on"
    INVIS_OFF = "invis_off"
    MELEE_HIT = "melee_hit"
    MELEE_MISS = "melee_miss"
    AUTO_ATTACK_ON = "auto_attack_on"
    MOB_HITS_YOU = "mob_hits_you"
    MOB_TRIES_TO_HIT_YOU = "mob_tries_to_hit_you"
    NON_MELEE_DAMAGE = "non_melee_damage"
    THORNS_DAMAGE = "thorns_damage"
    SPELL_YOUR_HITS = "spell_your_hits"
    SPELL_YOU_HIT = "spell_you_hit"
    SPELL_DOT_TICK = "spell_dot_tick"
    CONSIDER = "consider"

    @property
    def is_combat(self) -> bool:
        return self in _COMBAT_KINDS


_COMBAT_KINDS = frozenset(
    {
        EventKind.MELEE_HIT,
        EventKind.MELEE_MISS,
        EventKind.AUTO_ATTACK_ON,
        EventKind.MOB_HITS_YOU,
        EventKind.MOB_TRIES_TO_HIT_YOU,
        EventKind.NON_MELEE_DAMAGE,
        EventKind.THORNS_DAMAGE,
        EventKind.SPELL_YOUR_HITS,
        EventKind.SPELL_YOU_HIT,
        EventKind.SPELL_DOT_TICK,
    }
)


@dataclass(frozen=True)
class LogEvent:
    """One classified log line.

    Attributes:
        kind:      Which rule matched.
        timestamp: Parsed line timestamp ("now" if the stamp was malformed).
        raw:       The original line.
        zone:      Zone name for ``ZONE_CHANGE``.
        target:    Entity name for combat and consider events, as printed.
        standing:  Disposition for ``CONSIDER``.
    """

    kind: EventKind
    timestamp: LogTimestamp
    raw: str
    zone: str | None = None
    target: str | None = None
    standing: Standing | None = None


@dataclass(frozen=True)
class Rule:
    """One row of the classifier table."""

    kind: EventKind
    pattern: re.Pattern[str]


_TS = r"^\[(?P<ts>[^\]]+)\]\s+"
_MELEE_VERBS = r"(?:slash|pierce|bash|crush|kick|hit|smash|backstab|strike)"
_MISS_VERBS = r"(?:slash|pierce|punch|bash|crush|kick|hit|smash|backstab|strike)"
_SPELL_VERBS = r"(?:blast|smite|burn|shock|freeze|immolate|incinerate|strike|hit)"


def _rule(kind: EventKind, body: str) -> Rule:
    return Rule(kind, re.compile(_TS + body, re.IGNORECASE))


#: The classifier table.  Order is priority; do not sort.
RULES: tuple[Rule, ...] = (
    _rule(EventKind.ZONE_CHANGE, r"You have entered (?P<zone>.+?)\."),
    _rule(EventKind.INVIS_ON, r"(?:You vanish\.|You gather shadows about you\.)"),
    _rule(EventKind.INVIS_OFF, r"(?:You appear\.|Your shadows fade\.)"),
    _rule(
        EventKind.MELEE_HIT,
        rf"You\s+{_MELEE_VERBS}\s+(?P<target>.+?)\s+for\s+\d+\s+points of damage\.",
    ),
    _rule(EventKind.MELEE_MISS, rf"You\s+try to\s+{_MISS_VERBS}\s+(?P<target>.+?),\s+but\s+miss!$"),
    _rule(EventKind.AUTO_ATTACK_ON, r"Auto attack on\."),
    _rule(EventKind.MOB_HITS_YOU, r"(?P<target>.+?)\s+(?:hits|kicks|bashes)\s+YOU\b"),
    _rule(EventKind.MOB_TRIES_TO_HIT_YOU, r"(?P<target>.+?)\s+tries to\s+(?:hit|bash)\s+YOU\b"),
    _rule(EventKind.NON_MELEE_DAMAGE, r"(?P<target>.+?)\s+was hit by non-melee\b"),
    _rule(EventKind.THORNS_DAMAGE, r"(?P<target>.+?)\s+was pierced by thorns\b"),
    _rule(
        EventKind.SPELL_YOUR_HITS,
        r"Your\s+.+?\s+hits\s+(?P<target>.+?)\s+for\s+\d+\s+points? of (?:\w+\s+)?damage\.",
    ),
    _rule(
        EventKind.SPELL_YOU_HIT,
        rf"You\s+{_SPELL_VERBS}\s+(?P<target>.+?)\s+for\s+\d+\s+points? of (?:\w+\s+)?damage\.",
    ),
    _rule(EventKind.SPELL_DOT_TICK, r"(?P<target>.+?)\s+has taken\s+\d+\s+damage from your\s+.+?\."),
    _rule(EventKind.CONSIDER, rf"(?P<target>.+?)\s+(?:{PHRASE_ALTERNATION}).*?$"),
)


# ---------------------------------------------------------------------------
# Loose markers for the tracker's line-window heuristic
# ---------------------------------------------------------------------------

_INVIS_MARKER_RE = re.compile(
    r"(You vanish\.|Someone fades away\.|You gather shadows about you\.|"
    r"Someone steps into the shadows and disappears\.|You appear\.|Your shadows fade\.)",
    re.IGNORECASE,
)
_SNEAK_MARKER_RE = re.compile(
    r"(You are as quiet as a cat stalking it'?s prey|"
    r"You are as quiet as a herd of stampeding elephants)",
    re.IGNORECASE,
)
_ATTACK_MARKER_RE = re.compile(rf"^.*\]\s+You\s+{_MELEE_VERBS}\b", re.IGNORECASE)


def has_invis_marker(line: str) -> bool:
    """True for any invisibility on/off or sneak message, self or otherwise."""
    return bool(_INVIS_MARKER_RE.search(line) or _SNEAK_MARKER_RE.search(line))


def has_attack_marker(line: str) -> bool:
    """True for any melee swing by the player."""
    return bool(_ATTACK_MARKER_RE.search(line))


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------


def classify_line(line: str) -> LogEvent | None:
    """Classify one raw log line.

    Returns:
        The :class:`LogEvent` for the first matching rule, or ``None``.
    """
    if not line or not line.startswith("["):
        return None
    for rule in RULES:
        m = rule.pattern.match(line)
        if m is None:
            continue
        groups = m.groupdict()
        return LogEvent(
            kind=rule.kind,
            timestamp=parse_log_timestamp(groups.get("ts")),
            raw=line,
            zone=groups.get("zone"),
            target=groups.get("target"),
            standing=standing_from_line(line) if rule.kind is EventKind.CONSIDER else None,
        )
    return None


def classify_lines(lines: Iterable[str]) -> list[tuple[str, LogEvent | None]]:
    """Classify lines in order, keeping unmatched lines for the window heuristic."""
    return [(line, classify_line(line)) for line in lines]
