"""Local CSV "sheets".

Writes the tracker tables into a directory a spreadsheet program can open:

- ``Zone Tracker.csv``               last zone per log file
- ``Faction.csv``                    current standing per character
- ``Inventory Summary.csv``          raid kit check per character
- ``Inventory Items - <char>.csv``   full inventory rows per character

Each file is rewritten in full every cycle.  A file that cannot be written
is logged and skipped; the others are still written.
"""

from __future__ import annotations

import csv
import logging
from collections.abc import Iterable, Sequence
from pathlib import Path
from typing import Any

from eq_tracker.config import ExportSettings
from eq_tracker.export.rows import (
    apply_favorites,
    faction_rows,
    inventory_rows,
    inventory_snapshots,
    log_id,
    zone_rows,
)
from eq_tracker.ingest.types import TrackerState
from eq_tracker.inventory.raid_kit import DEFAULT_RAID_KIT, RaidKitRule

logger = logging.getLogger(__name__)

ZONE_HEADER = [
    "Character",
    "Last Zone",
    "Zone Time (UTC)",
    "Zone Time (Local)",
    "Device TZ",
    "Source Log File",
]
FACTION_HEADER = [
    "Character",
    "Standing",
    "Score",
    "Entity",
    "Consider Time (UTC)",
    "Consider Time (Local)",
    "Notes",
]
ITEM_HEADER = [
    "Character",
    "Inventory File",
    "Created (UTC)",
    "Modified (UTC)",
    "Location",
    "Name",
    "ID",
    "Count",
    "Slots",
]


def write_csv(path: Path, header: Sequence[str], rows: Iterable[Sequence[Any]]) -> Path:
    """Write one CSV file, creating its directory.

    Raises:
        OSError: If the file cannot be written.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8", newline="") as fh:
        writer = csv.writer(fh)
        writer.writerow(header)
        for row in rows:
            writer.writerow(["" if value is None else value for value in row])
    return path


def _safe_file_part(name: str) -> str:
    return "".join(ch if ch.isalnum() or ch in " -_'" else "_" for ch in name).strip() or "_"


def build_tables(
    state: TrackerState,
    settings: ExportSettings,
    kit: Sequence[RaidKitRule] = DEFAULT_RAID_KIT,
) -> dict[str, tuple[list[str], list[list[Any]]]]:
    """File name -> (header, rows) for every sheet."""
    favorites, only = settings.favorites, settings.favorites_only

    zones = [
        [r["character"], r["zone"], r["utc"], r["local"], r["tz"], r["source"]]
        for r in apply_favorites(zone_rows(state), favorites, only)
    ]
    factions = [
        [r["character"], r["standing"], r["score"], r["mob"], r["utc"], r["local"], r["notes"]]
        for r in apply_favorites(faction_rows(state), favorites, only)
    ]

    kit = list(kit)
    summary_header = [
        "Character",
        "Log ID",
        "Inventory File",
        "Source Log File",
        "Created (UTC)",
        "Modified (UTC)",
        *(rule.name for rule in kit),
        "Suggested Sheet Name",
    ]
    summary = [
        [
            r["character"],
            log_id(r["file"]),
            r["file"],
            r["logFile"],
            r["created"],
            r["modified"],
            *(r["raidKit"].get(rule.name, "") for rule in kit),
            f"Inventory - {r['character']}",
        ]
        for r in apply_favorites(inventory_rows(state, kit), favorites, only)
    ]

    tables = {
        "Zone Tracker.csv": (ZONE_HEADER, zones),
        "Faction.csv": (FACTION_HEADER, factions),
        "Inventory Summary.csv": (summary_header, summary),
    }
    wanted = {row[0] for row in summary}
    for character, snapshot in inventory_snapshots(state).items():
        if character not in wanted:
            continue
        rows = [
            [
                character,
                snapshot.file,
                snapshot.created,
                snapshot.modified,
                item.location,
                item.name,
                item.item_id,
                item.count,
                item.slots,
            ]
            for item in snapshot.items
        ]
        tables[f"Inventory Items - {_safe_file_part(character)}.csv"] = (ITEM_HEADER, rows)
    return tables


def write_sheets(
    state: TrackerState,
    out_dir: Path | str,
    settings: ExportSettings,
    kit: Sequence[RaidKitRule] = DEFAULT_RAID_KIT,
) -> list[Path]:
    """Write every sheet into ``out_dir``.

    Returns:
        Paths written successfully.
    """
    out_dir = Path(out_dir)
    written: list[Path] = []
    for name, (header, rows) in build_tables(state, settings, kit).items():
        try:
            written.append(write_csv(out_dir / name, header, rows))
        except OSError:
            logger.exception("sheets: cannot write %s", out_dir / name)
    logger.debug("sheets: wrote %d file(s) to %s", len(written), out_dir)
    return written
