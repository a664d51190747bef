"""Scan cycle orchestration.

One cycle runs, in order:

1. build an Entity Set snapshot,
2. scan the logs (tail, zones, standings, backscans),
3. recompute standings from each character's log tail and reconcile,
4. parse inventory dumps,
5. save the state snapshot,
6. write the CSV sheets,
7. deliver the webhook payload.

Every step is isolated: a failure is logged and the remaining steps still
run, so one bad file or an unreachable endpoint never stops tracking.
:class:`ScanLoop` runs cycles back to back, starting the next one only after
the previous has finished.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from eq_tracker.config import TrackerConfig
from eq_tracker.entities.builder import build_entity_set
from eq_tracker.export.sheets import write_sheets
from eq_tracker.export.webhook import DeliveryResult, build_payload, deliver
from eq_tracker.ingest.recompute import recompute_all
from eq_tracker.ingest.reconcile import reconcile_all
from eq_tracker.ingest.scanner import LogScanner, ScanReport
from eq_tracker.ingest.sources import sources_for_character
from eq_tracker.ingest.types import TrackerState, latest_zone_for
from eq_tracker.inventory.parser import scan_inventory
from eq_tracker.state.store import StateWriteError, save_state

logger = logging.getLogger(__name__)


@dataclass
class CycleReport:
    """What one :func:`run_scan_cycle` call did."""

    entities: int = 0
    scan: ScanReport | None = None
    reconciled: list[str] = field(default_factory=list)
    inventories: int = 0
    saved: bool = False
    sheets: list[Path] = field(default_factory=list)
    delivery: DeliveryResult | None = None
    failed_steps: list[str] = field(default_factory=list)


def representative_source(
    state: TrackerState, log_dir: Path | str | None, character: str
) -> Path | None:
    """Log used for a character's tail recomputation.

    The source of its most recent Zone Fact, else the first
    ``eqlog_<character>_*.txt`` in the log directory.
    """
    fact = latest_zone_for(state, character)
    if fact is not None and fact.source:
        return Path(fact.source)
    if not log_dir:
        return None
    sources = sources_for_character(log_dir, character)
    return sources[0].path if sources else None


def run_scan_cycle(
    state: TrackerState,
    cfg: TrackerConfig,
    *,
    clock: Callable[[], float] = time.time,
) -> CycleReport:
    """Run one full cycle against ``state`` using ``cfg``."""
    report = CycleReport()
    log_dir = cfg.paths.logs_dir.strip()

    entity_set: frozenset[str] = frozenset()
    try:
        entity_set = build_entity_set(cfg.entity_settings())
        report.entities = len(entity_set)
    except Exception:
        logger.exception("cycle: entity set build failed")
        report.failed_steps.append("entities")

    if log_dir:
        try:
            report.scan = LogScanner(state, cfg, clock=clock).scan_logs(log_dir, entity_set)
        except Exception:
            logger.exception("cycle: log scan failed")
            report.failed_steps.append("scan")

    try:
        candidates = recompute_all(
            state.known_characters(),
            lambda character: representative_source(state, log_dir, character),
            entity_set,
            accept_all=cfg.consider.accept_all_considers,
        )
        report.reconciled = reconcile_all(state.standings, candidates)
    except Exception:
        logger.exception("cycle: standing recomputation failed")
        report.failed_steps.append("recompute")

    base_dir = cfg.paths.base_dir.strip()
    if base_dir:
        try:
            snapshots = scan_inventory(base_dir)
            for character, snapshot in snapshots.items():
                state.inventory[character] = snapshot.to_dict()
            report.inventories = len(snapshots)
        except Exception:
            logger.exception("cycle: inventory scan failed")
            report.failed_steps.append("inventory")

    try:
        save_state(state, cfg.paths.state_file)
        report.saved = True
    except StateWriteError:
        logger.warning("cycle: state save failed; tracking continues in memory", exc_info=True)
        report.failed_steps.append("save")

    if cfg.export.local_sheets_enabled:
        try:
            report.sheets = write_sheets(state, cfg.sheets_dir, cfg.export)
        except Exception:
            logger.exception("cycle: sheet export failed")
            report.failed_steps.append("sheets")

    if cfg.webhook.enabled and cfg.webhook.url.strip():
        payload = build_payload(state, cfg.webhook.secret.strip())
        report.delivery = deliver(payload, cfg.webhook, last_hash=state.delivery_hash)
        if report.delivery.ok:
            state.delivery_hash = report.delivery.payload_hash

    return report


class ScanLoop:
    """Run scan cycles sequentially at the configured interval.

    The wait starts after a cycle finishes, so cycles never overlap.
    :meth:`stop` may be called from another thread (or a signal handler).
    """

    def __init__(
        self,
        state: TrackerState,
        cfg: TrackerConfig,
        *,
        clock: Callable[[], float] = time.time,
        on_cycle: Callable[[CycleReport], None] | None = None,
    ) -> None:
        self.state = state
        self.cfg = cfg
        self._clock = clock
        self._on_cycle = on_cycle
        self._stop = threading.Event()

    @property
    def interval(self) -> float:
        return self.cfg.scan.interval_seconds

    def stop(self) -> None:
        self._stop.set()

    def run(self, max_cycles: int | None = None) -> int:
        """Run until stopped (or ``max_cycles`` cycles). Returns cycles run."""
        cycles = 0
        while not self._stop.is_set():
            try:
                report = run_scan_cycle(self.state, self.cfg, clock=self._clock)
            except Exception:
                logger.exception("loop: scan cycle failed")
            else:
                if self._on_cycle is not None:
                    self._on_cycle(report)
            cycles += 1
            if max_cycles is not None and cycles >= max_cycles:
                break
            self._stop.wait(self.interval)
        return cycles
