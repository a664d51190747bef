"""Consider dispositions.

The client reports standing through a fixed set of phrases.  Each maps to one
of nine :class:`Standing` levels with a fixed numeric score; these scores are
the only values a Standing Record ever carries.
"""

from __future__ import annotations

import re
from enum import Enum


class Standing(Enum):
    """The nine consider levels, most favourable first.

    The value is the fixed numeric score for the level.
    """

    ALLY = 1450
    WARMLY = 875
    KINDLY = 575
    AMIABLE = 250
    INDIFFERENT = 0
    APPREHENSIVE = -250
    DUBIOUS = -575
    THREATENING = -875
    SCOWLS = -1450

    @property
    def score(self) -> int:
        return self.value

    @property
    def label(self) -> str:
        """Display name, e.g. ``"Ally"``."""
        return self.name.capitalize()

    @classmethod
    def from_label(cls, label: str) -> Standing:
        return cls[label.strip().upper()]


#: Phrase table, checked in order.
STANDING_PHRASES: tuple[tuple[Standing, str], ...] = (
    (Standing.ALLY, "regards you as an ally"),
    (Standing.WARMLY, "looks upon you warmly"),
    (Standing.KINDLY, "kindly considers you"),
    (Standing.AMIABLE, "judges you amiably"),
    (Standing.INDIFFERENT, "regards you indifferently"),
    (Standing.APPREHENSIVE, "looks your way apprehensively"),
    (Standing.DUBIOUS, "glowers at you dubiously"),
    (Standing.THREATENING, "glares at you threateningly"),
    (Standing.SCOWLS, "scowls at you"),
)

_PHRASE_RES: tuple[tuple[Standing, re.Pattern[str]], ...] = tuple(
    (standing, re.compile(re.escape(phrase), re.IGNORECASE))
    for standing, phrase in STANDING_PHRASES
)

#: Alternation used by the consider rule of the line classifier.
PHRASE_ALTERNATION = "|".join(re.escape(phrase) for _, phrase in STANDING_PHRASES)

MAX_SCORE = Standing.ALLY.score

#: Readings that are suspect right after attacking the same target.
HOSTILE_STANDINGS: frozenset[Standing] = frozenset(
    {Standing.THREATENING, Standing.DUBIOUS, Standing.APPREHENSIVE}
)


def standing_from_line(line: str) -> Standing:
    """Return the standing named by a consider line; Indifferent if none matches."""
    for standing, pattern in _PHRASE_RES:
        if pattern.search(line or ""):
            return standing
    return Standing.INDIFFERENT
