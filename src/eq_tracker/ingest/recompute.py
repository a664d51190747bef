"""Tail recomputation pass.

An independent second opinion on each character's standing.  It re-reads a
bounded window at the end of the character's representative log and walks it
newest-first, keeping the best consider reading taken while the player was
visible.  The streaming tracker can only ever see lines once; this pass
catches a high-value reading that the tracker rejected or that arrived before
the tracker had a baseline.

The pass is read-only with respect to tracker state; the reconciler decides
whether its candidate replaces the current record.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from pathlib import Path

from eq_tracker.entities.builder import matches_entity
from eq_tracker.ingest.tail import split_lines
from eq_tracker.ingest.types import StandingRecord
from eq_tracker.logparse.classifier import EventKind, classify_line
from eq_tracker.logparse.normalize import normalize_name
from eq_tracker.logparse.standings import MAX_SCORE

logger = logging.getLogger(__name__)

#: Bytes re-read from the end of the representative log.
RECOMPUTE_WINDOW_BYTES = 200 * 1024


def _read_tail(path: Path, window_bytes: int) -> list[str]:
    with path.open("rb") as fh:
        fh.seek(0, 2)
        size = fh.tell()
        start = max(0, size - max(0, window_bytes))
        fh.seek(start)
        return split_lines(fh.read(size - start))


def recompute_standing(
    path: Path | str,
    entity_set: frozenset[str],
    *,
    accept_all: bool = False,
    window_bytes: int = RECOMPUTE_WINDOW_BYTES,
) -> StandingRecord | None:
    """Best visible consider reading in the tail of ``path``.

    Args:
        path:         Representative log for one character.
        entity_set:   Normalized Entity Set snapshot.
        accept_all:   Track every consider target, not only Entity Set members.
        window_bytes: Size of the tail window.

    Returns:
        The highest-scoring candidate (the most recent on ties), or ``None``
        when the window holds no usable consider or the file cannot be read.
    """
    path = Path(path)
    try:
        lines = _read_tail(path, window_bytes)
    except OSError:
        logger.exception("recompute: cannot read %s", path)
        return None

    events = [classify_line(line) for line in lines]

    # Walking backward, an INVIS_OFF line means the player was invisible
    # before it; an INVIS_ON line means they were visible before it.  The
    # walk starts in whatever state the last marker in the window left.
    invisible = False
    for event in reversed(events):
        if event is not None and event.kind in (EventKind.INVIS_ON, EventKind.INVIS_OFF):
            invisible = event.kind is EventKind.INVIS_ON
            break

    best: StandingRecord | None = None
    for event in reversed(events):
        if event is None:
            continue
        if event.kind is EventKind.INVIS_OFF:
            invisible = True
            continue
        if event.kind is EventKind.INVIS_ON:
            invisible = False
            continue
        if event.kind is not EventKind.CONSIDER or invisible or event.standing is None:
            continue

        target = event.target or ""
        norm = normalize_name(target)
        tracked = bool(norm) if accept_all else matches_entity(norm, entity_set)
        if not tracked:
            continue

        if best is None or event.standing.score > best.score:
            best = StandingRecord.from_reading(event.standing, target, event.timestamp)
            if best.score >= MAX_SCORE:
                break

    return best


def recompute_all(
    characters: Iterable[str],
    source_for: Callable[[str], Path | None],
    entity_set: frozenset[str],
    *,
    accept_all: bool = False,
    window_bytes: int = RECOMPUTE_WINDOW_BYTES,
) -> dict[str, StandingRecord]:
    """Run :func:`recompute_standing` for each character.

    Args:
        characters: Character names to recompute.
        source_for: Returns the representative log path for a character,
                    or ``None`` when it has none.

    Returns:
        Character -> candidate, for characters that produced one.
    """
    candidates: dict[str, StandingRecord] = {}
    for character in characters:
        path = source_for(character)
        if path is None:
            continue
        candidate = recompute_standing(
            path, entity_set, accept_all=accept_all, window_bytes=window_bytes
        )
        if candidate is not None:
            candidates[character] = candidate
    return candidates
