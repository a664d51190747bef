"""Inventory dump parsing.

The client's ``/outputfile inventory`` command writes
``<Character>-Inventory.txt`` into the game directory: a header row followed
by one tab-separated row per slot::

    Location    Name                    ID      Count   Slots
    General1    Vial of Velium Vapors   9532    1       0
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

_INVENTORY_NAME_RE = re.compile(r"^(?P<character>.+?)-Inventory\.txt$", re.IGNORECASE)


def _to_int(value: str) -> int:
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return 0


@dataclass(frozen=True)
class InventoryItem:
    location: str
    name: str
    item_id: str
    count: int
    slots: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "location": self.location,
            "name": self.name,
            "id": self.item_id,
            "count": self.count,
            "slots": self.slots,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> InventoryItem:
        return cls(
            location=str(data.get("location", "")),
            name=str(data.get("name", "")),
            item_id=str(data.get("id", "")),
            count=_to_int(data.get("count", 0)),
            slots=_to_int(data.get("slots", 0)),
        )


@dataclass(frozen=True)
class InventorySnapshot:
    """One parsed inventory file.

    Attributes:
        file:      Path of the dump.
        created:   ISO-8601 UTC creation time of the file.
        modified:  ISO-8601 UTC modification time of the file.
        items:     Rows in file order.
    """

    file: str
    created: str
    modified: str
    items: tuple[InventoryItem, ...]

    def to_dict(self) -> dict[str, Any]:
        return {
            "file": self.file,
            "created": self.created,
            "modified": self.modified,
            "items": [item.to_dict() for item in self.items],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> InventorySnapshot:
        return cls(
            file=str(data.get("file", "")),
            created=str(data.get("created", "")),
            modified=str(data.get("modified", "")),
            items=tuple(
                InventoryItem.from_dict(item)
                for item in data.get("items", ())
                if isinstance(item, dict)
            ),
        )


def _iso(epoch: float) -> str:
    return datetime.fromtimestamp(epoch, UTC).isoformat()


def parse_inventory_file(path: Path | str) -> InventorySnapshot:
    """Parse one ``<Character>-Inventory.txt`` dump.

    Raises:
        OSError: If the file cannot be read.
    """
    path = Path(path)
    text = path.read_text(encoding="utf-8", errors="replace").replace("\r\n", "\n")
    rows = [line for line in text.split("\n") if line]

    items = []
    for line in rows[1:]:  # header
        parts = line.split("\t")
        parts += [""] * (5 - len(parts))
        items.append(
            InventoryItem(
                location=parts[0],
                name=parts[1],
                item_id=parts[2],
                count=_to_int(parts[3]),
                slots=_to_int(parts[4]),
            )
        )

    st = path.stat()
    created = getattr(st, "st_birthtime", None) or st.st_ctime
    return InventorySnapshot(
        file=str(path),
        created=_iso(created),
        modified=_iso(st.st_mtime),
        items=tuple(items),
    )


def inventory_character(file_name: str) -> str | None:
    """Character name from an inventory dump file name, or ``None``."""
    m = _INVENTORY_NAME_RE.match(Path(file_name).name)
    return m["character"].strip() if m else None


def scan_inventory(base_dir: Path | str) -> dict[str, InventorySnapshot]:
    """Parse every inventory dump in ``base_dir``.

    Unreadable files are logged and skipped.

    Returns:
        Character -> snapshot.
    """
    directory = Path(base_dir)
    if not directory.is_dir():
        return {}

    snapshots: dict[str, InventorySnapshot] = {}
    for path in sorted(directory.iterdir()):
        character = inventory_character(path.name)
        if not character or not path.is_file():
            continue
        try:
            snapshots[character] = parse_inventory_file(path)
        except OSError:
            logger.exception("inventory: cannot parse %s", path.name)
    return snapshots
