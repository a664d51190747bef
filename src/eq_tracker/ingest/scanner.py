"""Per-source log scanning.

For every ``eqlog_*.txt`` in the log directory one pass does::

    tail read -> classify -> zone facts -> standing tracker -> backscan schedule

Each source is isolated: a failure on one file is logged and the pass moves
on to the next, leaving that file's offset where the failure left it.

Backscan scheduling
-------------------
A source with no zone line in the freshly read text is a backscan candidate
when the file was seen for the first time or has no Zone Fact at all.
First-sight candidates are scanned at once; others wait for their
``backscan_next_at`` time.  A miss schedules the next try ``retry_minutes``
later (once a day when retry is disabled); a hit clears the schedule.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from eq_tracker.config import TrackerConfig
from eq_tracker.ingest.backscan import find_last_zone
from eq_tracker.ingest.sources import LogSource, discover_sources
from eq_tracker.ingest.tail import read_appended
from eq_tracker.ingest.tracker import StandingDecision, StandingTracker
from eq_tracker.ingest.types import TrackerState, ZoneFact
from eq_tracker.logparse.classifier import EventKind, LogEvent, classify_lines

logger = logging.getLogger(__name__)

#: Retry delay used when ``retry_minutes`` is 0.
DAILY_RETRY_SECONDS = 24 * 60 * 60.0


@dataclass
class ScanReport:
    """Summary of one :meth:`LogScanner.scan_logs` pass."""

    sources: int = 0
    lines: int = 0
    zones_updated: list[str] = field(default_factory=list)
    decisions: list[StandingDecision] = field(default_factory=list)
    backscanned: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


def _zone_fact(source: LogSource, event: LogEvent) -> ZoneFact:
    return ZoneFact(
        character=source.character,
        zone=(event.zone or "").strip(),
        detected_utc=event.timestamp.utc_iso,
        detected_local=event.timestamp.local_iso,
        source=source.key,
    )


class LogScanner:
    """Drive the ingestion pipeline over every source in a log directory.

    Args:
        state:    State arena, mutated in place.
        settings: Tracker configuration (consider and backscan sections).
        clock:    Epoch-seconds clock used for backscan scheduling.
    """

    def __init__(
        self,
        state: TrackerState,
        settings: TrackerConfig,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.state = state
        self.settings = settings
        self._clock = clock

    def scan_logs(self, log_dir: Path | str, entity_set: frozenset[str]) -> ScanReport:
        """Process newly appended text of every source in ``log_dir``."""
        report = ScanReport()
        tracker = StandingTracker(entity_set, self.settings.consider)

        for source in discover_sources(log_dir):
            report.sources += 1
            try:
                self._scan_source(source, tracker, report)
            except Exception:
                logger.exception("scan: failed on %s", source.path.name)
                report.errors.append(source.key)

        return report

    def force_backscan(self, log_dir: Path | str) -> list[str]:
        """Backscan every source that still has no Zone Fact, ignoring the schedule.

        Returns:
            Keys of the sources that gained a Zone Fact.
        """
        found: list[str] = []
        for source in discover_sources(log_dir):
            if source.key in self.state.zones_by_source:
                continue
            if self._backscan(source):
                found.append(source.key)
        return found

    # ── Internals ─────────────────────────────────────────────────────────────

    def _scan_source(
        self, source: LogSource, tracker: StandingTracker, report: ScanReport
    ) -> None:
        read = read_appended(source.path, self.state.offsets, key=source.key)
        classified = classify_lines(read.lines)
        report.lines += len(classified)

        zone_seen = False
        for _, event in classified:
            if event is not None and event.kind is EventKind.ZONE_CHANGE and event.zone:
                self.state.zones_by_source[source.key] = _zone_fact(source, event)
                zone_seen = True
        if zone_seen:
            report.zones_updated.append(source.key)
            self.state.backscan_next_at.pop(source.key, None)

        char_state = self.state.character(source.character)
        report.decisions.extend(tracker.consume(source.character, char_state, classified))
        if char_state.standing is not None:
            self.state.standings[source.character] = char_state.standing

        if zone_seen:
            return
        if not read.first_sight and source.key in self.state.zones_by_source:
            return
        if not read.first_sight:
            next_at = self.state.backscan_next_at.get(source.key)
            if next_at is not None and self._clock() < next_at:
                return
        if self._backscan(source):
            report.backscanned.append(source.key)

    def _backscan(self, source: LogSource) -> bool:
        budget = self.settings.backscan.budget_bytes
        try:
            result = find_last_zone(source.path, budget)
        except OSError:
            logger.exception("backscan: cannot read %s", source.path.name)
            result = None

        if result is not None and result.event is not None and result.event.zone:
            self.state.zones_by_source[source.key] = _zone_fact(source, result.event)
            self.state.backscan_next_at.pop(source.key, None)
            logger.info(
                "backscan: %s -> %r (%d bytes read)",
                source.path.name,
                result.event.zone,
                result.bytes_read,
            )
            return True

        retry = self.settings.backscan.retry_seconds or DAILY_RETRY_SECONDS
        self.state.backscan_next_at[source.key] = self._clock() + retry
        logger.info(
            "backscan: no zone in %s (%s); next try in %.0f min",
            source.path.name,
            "unbounded" if budget == 0 else f"{budget // (1024 * 1024)} MB budget",
            retry / 60,
        )
        return False
