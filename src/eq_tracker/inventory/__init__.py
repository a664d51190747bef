"""Inventory dumps and raid kit checks."""

from eq_tracker.inventory.parser import (
    InventoryItem,
    InventorySnapshot,
    parse_inventory_file,
    scan_inventory,
)
from eq_tracker.inventory.raid_kit import (
    DEFAULT_RAID_KIT,
    RaidKitCount,
    RaidKitRule,
    count_raid_kit,
    merged_raid_kit,
    raid_kit_summary,
)

__all__ = [
    "InventoryItem",
    "InventorySnapshot",
    "parse_inventory_file",
    "scan_inventory",
    "DEFAULT_RAID_KIT",
    "RaidKitCount",
    "RaidKitRule",
    "count_raid_kit",
    "merged_raid_kit",
    "raid_kit_summary",
]
