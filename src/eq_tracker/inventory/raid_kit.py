"""Raid kit rules: which items a raider should carry, and how many.

Each rule matches item names with a case-insensitive regex and is either a
``present`` rule (Y/N) or a ``count`` rule (summed stack counts).  Users may
hide default rules and add their own; a user item without a pattern matches
its name exactly.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any, Literal

from eq_tracker.inventory.parser import InventoryItem

Mode = Literal["present", "count"]


@dataclass(frozen=True)
class RaidKitRule:
    name: str
    mode: Mode
    pattern: str

    def matches(self, item_name: str) -> bool:
        return re.search(self.pattern, item_name or "", re.IGNORECASE) is not None


@dataclass(frozen=True)
class RaidKitCount:
    name: str
    mode: Mode
    present: bool
    count: int

    @property
    def display(self) -> str:
        if self.mode == "count":
            return str(self.count)
        return "Y" if self.present else "N"


def _exact(name: str) -> str:
    return "^" + re.escape(name) + "$"


DEFAULT_RAID_KIT: tuple[RaidKitRule, ...] = (
    RaidKitRule("Vial of Velium Vapors", "present", _exact("Vial of Velium Vapors")),
    RaidKitRule("Leatherfoot Raider Skullcap", "present", _exact("Leatherfoot Raider Skullcap")),
    RaidKitRule("Shiny Brass Idol", "present", _exact("Shiny Brass Idol")),
    RaidKitRule("Ring of Shadows", "count", _exact("Ring of Shadows")),
    RaidKitRule("Reaper of the Dead", "present", _exact("Reaper of the Dead")),
    RaidKitRule("Pearl", "count", _exact("Pearl")),
    RaidKitRule("Peridot", "count", _exact("Peridot")),
    RaidKitRule("Mana Battery - Class Five", "count", _exact("Mana Battery - Class Five")),
    RaidKitRule("Mana Battery - Class Four", "count", _exact("Mana Battery - Class Four")),
    RaidKitRule("Mana Battery - Class Three", "count", _exact("Mana Battery - Class Three")),
    RaidKitRule("Mana Battery - Class Two", "count", _exact("Mana Battery - Class Two")),
    RaidKitRule("Mana Battery - Class One", "count", _exact("Mana Battery - Class One")),
    RaidKitRule(
        "10 Dose Potion of Stinging Wort", "count", _exact("10 Dose Potion of Stinging Wort")
    ),
    RaidKitRule("Pegasus Feather Cloak", "present", _exact("Pegasus Feather Cloak")),
    RaidKitRule("Larrikan's Mask", "present", r"^Larrikan'?s Mask$"),
)


def _user_rules(user_items: Iterable[Mapping[str, Any]]) -> list[RaidKitRule]:
    # Last definition of a name wins.
    rules: dict[str, RaidKitRule] = {}
    for item in user_items:
        if not item:
            continue
        name = str(item.get("name") or "").strip()
        if not name:
            continue
        mode: Mode = "count" if item.get("mode") == "count" else "present"
        pattern = str(item.get("pattern") or _exact(name))
        rules.pop(name, None)
        rules[name] = RaidKitRule(name, mode, pattern)
    return list(rules.values())


def merged_raid_kit(
    hidden: Iterable[str] = (), user_items: Iterable[Mapping[str, Any]] = ()
) -> list[RaidKitRule]:
    """Default rules minus ``hidden`` names, followed by the user's own rules."""
    hidden_set = {str(name) for name in hidden}
    merged = [rule for rule in DEFAULT_RAID_KIT if rule.name not in hidden_set]
    merged.extend(_user_rules(user_items))
    return merged


def count_raid_kit(
    kit: Iterable[RaidKitRule], items: Iterable[InventoryItem]
) -> list[RaidKitCount]:
    """Evaluate each rule against an inventory."""
    items = list(items)
    results = []
    for rule in kit:
        matched = [item for item in items if rule.matches(item.name)]
        results.append(
            RaidKitCount(
                name=rule.name,
                mode=rule.mode,
                present=bool(matched),
                count=sum(item.count for item in matched),
            )
        )
    return results


def raid_kit_summary(
    items: Iterable[InventoryItem], kit: Iterable[RaidKitRule] | None = None
) -> dict[str, str]:
    """Rule name -> ``"Y"``/``"N"`` or a count, in rule order."""
    rules = DEFAULT_RAID_KIT if kit is None else kit
    return {result.name: result.display for result in count_raid_kit(rules, items)}
