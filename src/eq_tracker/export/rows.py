"""Flat row projections of the tracker state.

The CSV sheets and the webhook payload show the same three tables; both are
built from these row dicts so the two outputs never disagree.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import datetime
from pathlib import Path
from typing import Any

from eq_tracker.ingest.types import TrackerState, latest_zone_for
from eq_tracker.inventory.parser import InventorySnapshot
from eq_tracker.inventory.raid_kit import RaidKitRule, raid_kit_summary


def device_timezone() -> str:
    return datetime.now().astimezone().tzname() or "UTC"


def zone_rows(state: TrackerState) -> list[dict[str, Any]]:
    """One row per source file, so a name reused across servers stays distinct."""
    tz = device_timezone()
    rows = [
        {
            "character": fact.character,
            "zone": fact.zone,
            "utc": fact.detected_utc,
            "local": fact.detected_local,
            "tz": tz,
            "source": fact.source,
        }
        for fact in state.zones_by_source.values()
    ]
    return sorted(rows, key=lambda r: (r["character"].lower(), r["source"]))


def faction_rows(state: TrackerState) -> list[dict[str, Any]]:
    rows = []
    for character in sorted(state.standings, key=str.lower):
        record = state.standings[character]
        rows.append(
            {
                "character": character,
                "standing": record.standing.label,
                "standingDisplay": record.display_label,
                "score": record.score,
                "mob": record.entity,
                "utc": record.detected_utc,
                "local": record.detected_local,
                "notes": "; ".join(record.tags),
            }
        )
    return rows


def inventory_snapshots(state: TrackerState) -> dict[str, InventorySnapshot]:
    return {
        character: InventorySnapshot.from_dict(data)
        for character, data in sorted(state.inventory.items(), key=lambda kv: kv[0].lower())
        if isinstance(data, dict)
    }


def inventory_rows(
    state: TrackerState, kit: Sequence[RaidKitRule] | None = None
) -> list[dict[str, Any]]:
    rows = []
    for character, snapshot in inventory_snapshots(state).items():
        zone = latest_zone_for(state, character)
        rows.append(
            {
                "character": character,
                "file": snapshot.file,
                "logFile": zone.source if zone else "",
                "created": snapshot.created,
                "modified": snapshot.modified,
                "raidKit": raid_kit_summary(snapshot.items, kit),
            }
        )
    return rows


def inventory_detail_rows(state: TrackerState) -> list[dict[str, Any]]:
    return [
        {
            "character": character,
            "file": snapshot.file,
            "created": snapshot.created,
            "modified": snapshot.modified,
            "items": [item.to_dict() for item in snapshot.items],
        }
        for character, snapshot in inventory_snapshots(state).items()
    ]


def log_id(file_path: str) -> str:
    return Path(file_path.strip()).name if file_path else ""


def apply_favorites(
    rows: Iterable[dict[str, Any]], favorites: Sequence[str], favorites_only: bool
) -> list[dict[str, Any]]:
    """Put favourite characters first; with ``favorites_only`` drop the rest.

    Matching is case-insensitive on the ``character`` field.  An empty
    favourites list leaves the rows untouched.
    """
    rows = list(rows)
    wanted = {name.strip().lower() for name in favorites if name.strip()}
    if not wanted:
        return rows
    favs = [r for r in rows if str(r.get("character", "")).lower() in wanted]
    if favorites_only:
        return favs
    others = [r for r in rows if str(r.get("character", "")).lower() not in wanted]
    return favs + others
