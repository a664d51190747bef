"""Ingestion engine: tail reading, zone facts, standing tracking and recomputation.

Public surface
--------------
- :class:`LogScanner`        : one pass over every source in a log directory.
- :class:`StandingTracker`   : streaming consider/invis/combat state machine.
- :func:`recompute_standing` : best visible consider in a log's tail window.
- :func:`reconcile`          : keep-the-better merge of a recomputed candidate.
- :func:`read_appended`      : incremental tail read with offset bookkeeping.
- :func:`find_last_zone`     : reverse block search for the latest zone line.
- :class:`TrackerState`      : the state arena every scan mutates.

Usage example
-------------
::

    from eq_tracker.ingest import LogScanner, TrackerState

    state = TrackerState()
    report = LogScanner(state, config).scan_logs(log_dir, entity_set)
    for key, fact in state.zones_by_source.items():
        print(fact.character, fact.zone)
"""

from eq_tracker.ingest.backscan import BackscanResult, find_last_zone
from eq_tracker.ingest.recompute import recompute_all, recompute_standing
from eq_tracker.ingest.reconcile import reconcile, reconcile_all
from eq_tracker.ingest.scanner import LogScanner, ScanReport
from eq_tracker.ingest.sources import (
    LogSource,
    discover_sources,
    parse_log_name,
    sources_for_character,
)
from eq_tracker.ingest.tail import TailRead, read_appended
from eq_tracker.ingest.tracker import StandingDecision, StandingTracker
from eq_tracker.ingest.types import (
    CharacterState,
    StandingRecord,
    TrackerState,
    TransientContext,
    ZoneFact,
    latest_zone_for,
)

__all__ = [
    "BackscanResult",
    "find_last_zone",
    "recompute_all",
    "recompute_standing",
    "reconcile",
    "reconcile_all",
    "LogScanner",
    "ScanReport",
    "LogSource",
    "discover_sources",
    "parse_log_name",
    "sources_for_character",
    "TailRead",
    "read_appended",
    "StandingDecision",
    "StandingTracker",
    "CharacterState",
    "StandingRecord",
    "TrackerState",
    "TransientContext",
    "ZoneFact",
    "latest_zone_for",
]
