"""Derived facts and the in-process state arena.

Zone Facts and Standing Records are the durable output of the engine; they
are frozen and replaced wholesale on every update.  The Transient Context
and per-target caches are mutable working state owned by the standing
tracker.  :class:`TrackerState` gathers every map the scan cycle touches so
it can be injected, persisted and rebuilt in tests without any filesystem.

All timestamps on records are ISO-8601 strings (``detected_utc`` is
UTC-offset aware, so string comparison orders them correctly).
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any

from eq_tracker.logparse.standings import Standing
from eq_tracker.logparse.timestamps import LogTimestamp


def _tag_reason(tag: str) -> str:
    return tag.split(";", 1)[0].strip().rstrip("?")


@dataclass(frozen=True)
class ZoneFact:
    """Latest zone seen in one source file.

    Attributes:
        character:      Character the source belongs to.
        zone:           Zone name as printed by the client.
        detected_utc:   ISO-8601 UTC time of the zone line.
        detected_local: ISO-8601 local time of the zone line.
        source:         Path of the log file the fact came from.
    """

    character: str
    zone: str
    detected_utc: str
    detected_local: str
    source: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "character": self.character,
            "zone": self.zone,
            "detected_utc": self.detected_utc,
            "detected_local": self.detected_local,
            "source": self.source,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ZoneFact:
        return cls(
            character=str(data.get("character", "")),
            zone=str(data.get("zone", "")),
            detected_utc=str(data.get("detected_utc", "")),
            detected_local=str(data.get("detected_local", "")),
            source=str(data.get("source", "")),
        )


@dataclass(frozen=True)
class StandingRecord:
    """The durable faction standing for one character.

    ``tags`` holds rationale annotations such as ``"invis?"`` or
    ``"combat; prev=Ally"``.  They are kept unique and in first-seen order;
    :attr:`display_label` renders them after the standing name.

    Attributes:
        standing:       One of the nine consider levels.
        entity:         Name of the entity whose consider produced the value.
        detected_utc:   ISO-8601 UTC time of the consider line.
        detected_local: ISO-8601 local time of the consider line.
        tags:           Deduplicated rationale tags.
    """

    standing: Standing
    entity: str
    detected_utc: str
    detected_local: str
    tags: tuple[str, ...] = ()

    @property
    def score(self) -> int:
        return self.standing.score

    @property
    def display_label(self) -> str:
        return self.standing.label + "".join(f" ({tag})" for tag in self.tags)

    @property
    def is_tentative(self) -> bool:
        """True when the value was accepted as a guess during invis/combat."""
        return any(tag.split(";", 1)[0].endswith("?") for tag in self.tags)

    def with_tag(self, tag: str) -> StandingRecord:
        """Return a copy carrying ``tag``, replacing any tag with the same reason.

        The reason is the part before ``;`` without the trailing ``?``, so
        ``"invis; prev=Warmly"`` replaces ``"invis; prev=Ally"`` in place.
        """
        if tag in self.tags:
            return self
        reason = _tag_reason(tag)
        if any(_tag_reason(t) == reason for t in self.tags):
            tags = tuple(tag if _tag_reason(t) == reason else t for t in self.tags)
        else:
            tags = (*self.tags, tag)
        return replace(self, tags=tags)

    def restamped(self, ts: LogTimestamp, entity: str | None = None) -> StandingRecord:
        """Return a copy moved to a newer detection time."""
        return replace(
            self,
            detected_utc=ts.utc_iso,
            detected_local=ts.local_iso,
            entity=entity if entity is not None else self.entity,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "standing": self.standing.label,
            "display": self.display_label,
            "score": self.score,
            "entity": self.entity,
            "detected_utc": self.detected_utc,
            "detected_local": self.detected_local,
            "tags": list(self.tags),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> StandingRecord:
        return cls(
            standing=Standing.from_label(str(data["standing"])),
            entity=str(data.get("entity", "")),
            detected_utc=str(data.get("detected_utc", "")),
            detected_local=str(data.get("detected_local", "")),
            tags=tuple(str(t) for t in data.get("tags", ())),
        )

    @classmethod
    def from_reading(
        cls, standing: Standing, entity: str, ts: LogTimestamp, tags: tuple[str, ...] = ()
    ) -> StandingRecord:
        return cls(
            standing=standing,
            entity=entity,
            detected_utc=ts.utc_iso,
            detected_local=ts.local_iso,
            tags=tags,
        )


def _dt_to_str(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _dt_from_str(value: Any) -> datetime | None:
    if not value:
        return None
    try:
        return datetime.fromisoformat(str(value))
    except ValueError:
        return None


def _record_from(data: Any) -> StandingRecord | None:
    if not isinstance(data, dict):
        return None
    try:
        return StandingRecord.from_dict(data)
    except (KeyError, ValueError):
        return None


@dataclass
class TransientContext:
    """Invisibility and combat context for one character.

    Heuristic only: rebuilt by replaying log lines and never exposed to
    consumers of the derived facts.  Times are naive local datetimes taken
    from the log lines themselves.
    """

    invis_on_at: datetime | None = None
    invis_off_at: datetime | None = None
    last_combat_at: datetime | None = None
    attacks_by_target: dict[str, datetime] = field(default_factory=dict)
    standing_before_invis: StandingRecord | None = None
    standing_before_combat: StandingRecord | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "invis_on_at": _dt_to_str(self.invis_on_at),
            "invis_off_at": _dt_to_str(self.invis_off_at),
            "last_combat_at": _dt_to_str(self.last_combat_at),
            "attacks_by_target": {k: v.isoformat() for k, v in self.attacks_by_target.items()},
            "standing_before_invis": (
                self.standing_before_invis.to_dict() if self.standing_before_invis else None
            ),
            "standing_before_combat": (
                self.standing_before_combat.to_dict() if self.standing_before_combat else None
            ),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TransientContext:
        attacks: dict[str, datetime] = {}
        for key, value in (data.get("attacks_by_target") or {}).items():
            parsed = _dt_from_str(value)
            if parsed is not None:
                attacks[str(key)] = parsed
        return cls(
            invis_on_at=_dt_from_str(data.get("invis_on_at")),
            invis_off_at=_dt_from_str(data.get("invis_off_at")),
            last_combat_at=_dt_from_str(data.get("last_combat_at")),
            attacks_by_target=attacks,
            standing_before_invis=_record_from(data.get("standing_before_invis")),
            standing_before_combat=_record_from(data.get("standing_before_combat")),
        )


@dataclass
class CharacterState:
    """Everything the standing tracker keeps for one character.

    Attributes:
        context:      Invisibility/combat context.
        standing:     Current Standing Record (the tracker's view).
        last_stable:  Last stable reading per normalized target name.
    """

    context: TransientContext = field(default_factory=TransientContext)
    standing: StandingRecord | None = None
    last_stable: dict[str, StandingRecord] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "context": self.context.to_dict(),
            "last_stable": {k: v.to_dict() for k, v in self.last_stable.items()},
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CharacterState:
        last_stable = {}
        for key, value in (data.get("last_stable") or {}).items():
            record = _record_from(value)
            if record is not None:
                last_stable[str(key)] = record
        return cls(
            context=TransientContext.from_dict(data.get("context") or {}),
            last_stable=last_stable,
        )


@dataclass
class TrackerState:
    """The state arena injected into every scan.

    Attributes:
        offsets:           Source path -> last-read byte length.
        zones_by_source:   Source path -> latest Zone Fact.
        standings:         Character -> durable Standing Record.
        characters:        Character -> tracker working state.
        backscan_next_at:  Source path -> epoch seconds of the next backscan try.
        inventory:         Character -> parsed inventory snapshot (plain dict).
        delivery_hash:     Hash of the last payload the webhook accepted.
    """

    offsets: dict[str, int] = field(default_factory=dict)
    zones_by_source: dict[str, ZoneFact] = field(default_factory=dict)
    standings: dict[str, StandingRecord] = field(default_factory=dict)
    characters: dict[str, CharacterState] = field(default_factory=dict)
    backscan_next_at: dict[str, float] = field(default_factory=dict)
    inventory: dict[str, dict[str, Any]] = field(default_factory=dict)
    delivery_hash: str | None = None

    def character(self, name: str) -> CharacterState:
        """Return the working state for ``name``, creating it on first use.

        The current Standing Record is always read from :attr:`standings` so
        that a reconciled value is what the next stream sees.
        """
        state = self.characters.get(name)
        if state is None:
            state = CharacterState()
            self.characters[name] = state
        state.standing = self.standings.get(name)
        return state

    def known_characters(self) -> list[str]:
        names = set(self.standings) | {z.character for z in self.zones_by_source.values()}
        return sorted(n for n in names if n)

    def to_dict(self) -> dict[str, Any]:
        return {
            "offsets": dict(self.offsets),
            "zones_by_source": {k: v.to_dict() for k, v in self.zones_by_source.items()},
            "standings": {k: v.to_dict() for k, v in self.standings.items()},
            "characters": {k: v.to_dict() for k, v in self.characters.items()},
            "backscan_next_at": dict(self.backscan_next_at),
            "inventory": dict(self.inventory),
            "delivery_hash": self.delivery_hash,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TrackerState:
        standings = {}
        for name, value in (data.get("standings") or {}).items():
            record = _record_from(value)
            if record is not None:
                standings[str(name)] = record
        return cls(
            offsets={str(k): int(v) for k, v in (data.get("offsets") or {}).items()},
            zones_by_source={
                str(k): ZoneFact.from_dict(v)
                for k, v in (data.get("zones_by_source") or {}).items()
                if isinstance(v, dict)
            },
            standings=standings,
            characters={
                str(k): CharacterState.from_dict(v)
                for k, v in (data.get("characters") or {}).items()
                if isinstance(v, dict)
            },
            backscan_next_at={
                str(k): float(v) for k, v in (data.get("backscan_next_at") or {}).items()
            },
            inventory=dict(data.get("inventory") or {}),
            delivery_hash=data.get("delivery_hash"),
        )


def latest_zone_for(state: TrackerState, character: str) -> ZoneFact | None:
    """Latest Zone Fact for ``character`` across all of its sources."""
    best: ZoneFact | None = None
    for fact in state.zones_by_source.values():
        if fact.character != character or not fact.zone:
            continue
        if best is None or fact.detected_utc > best.detected_utc:
            best = fact
    return best
