"""Merge recomputed candidates into the durable standings.

A candidate replaces the current record only when it is at least as good:
a strictly higher score always wins, an equal score wins when it is the
same age or newer, and a lower score never does.  A standing therefore never
drops because a later, worse reading turned up in the tail window.

A candidate for the very reading the stream already recorded (same standing,
entity and time) leaves the existing record alone, so rationale tags the
stream attached survive the untagged recomputation.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping

from eq_tracker.ingest.types import StandingRecord
from eq_tracker.logparse.normalize import normalize_name

logger = logging.getLogger(__name__)


def _same_reading(existing: StandingRecord, candidate: StandingRecord) -> bool:
    return (
        candidate.standing is existing.standing
        and candidate.detected_utc == existing.detected_utc
        and normalize_name(candidate.entity) == normalize_name(existing.entity)
    )


def reconcile(
    existing: StandingRecord | None, candidate: StandingRecord | None
) -> StandingRecord | None:
    """Return the record to keep for one character."""
    if candidate is None:
        return existing
    if existing is None:
        return candidate
    if _same_reading(existing, candidate):
        return existing
    if candidate.score > existing.score:
        return candidate
    if candidate.score == existing.score and candidate.detected_utc >= existing.detected_utc:
        return candidate
    return existing


def reconcile_all(
    standings: dict[str, StandingRecord], candidates: Mapping[str, StandingRecord]
) -> list[str]:
    """Apply :func:`reconcile` per character, updating ``standings`` in place.

    Returns:
        Names of the characters whose record changed.
    """
    changed: list[str] = []
    for character, candidate in candidates.items():
        existing = standings.get(character)
        kept = reconcile(existing, candidate)
        if kept is None or kept == existing:
            continue
        standings[character] = kept
        changed.append(character)
        logger.debug(
            "reconcile: %s %s -> %s",
            character,
            existing.display_label if existing else "(none)",
            kept.display_label,
        )
    return changed
