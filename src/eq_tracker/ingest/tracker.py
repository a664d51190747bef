"""Streaming standing tracker.

Consumes the classified lines of one source strictly in file order and turns
consider events against Entity Set members into Standing Records.  The hard
part is deciding whether a reading can be trusted: while the player is
invisible the client reports "indifferently" for almost everything, and right
after a fight a target may glare back at you regardless of faction.

State machine per character (see :class:`~eq_tracker.ingest.types.TransientContext`):

- ``INVIS_ON``   snapshot the current confirmed record, remember when invis started.
- ``INVIS_OFF``  remember when invis ended.
- combat         snapshot the current confirmed record, remember the fight and, when
                 the line names one, the normalized target.
- ``CONSIDER``   classify the reading as stable or unstable and commit it or
                 fall back to a better-known value.

A reading is unstable when invisibility is active (within
``invis_max_minutes``), when the same target was fought within
``combat_recent_minutes``, or when the few lines right before the consider
carry an invisibility/sneak/attack marker.  Combat instability is checked
first.  Two cases are known-biased and always overridden: "Indifferent"
while invisible, and a hostile reading right after attacking that target.

Fallback order for an unstable reading:

1. the last stable reading for that same target,
2. the character's current record, if it was itself a confirmed reading,
3. the raw reading, kept as a tentative baseline (tag ends in ``?``).
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Literal

from eq_tracker.config import ConsiderSettings
from eq_tracker.entities.builder import matches_entity
from eq_tracker.ingest.types import CharacterState, StandingRecord
from eq_tracker.logparse.classifier import (
    EventKind,
    LogEvent,
    has_attack_marker,
    has_invis_marker,
)
from eq_tracker.logparse.normalize import normalize_name
from eq_tracker.logparse.standings import HOSTILE_STANDINGS, Standing

logger = logging.getLogger(__name__)

Fallback = Literal["none", "target", "character", "baseline"]


@dataclass(frozen=True)
class StandingDecision:
    """What the tracker did with one consider event.

    Attributes:
        character: Character whose log produced the consider.
        target:    Entity name as printed.
        reading:   Raw standing from the consider line.
        record:    Record written as the character's current standing.
        stable:    ``True`` when the raw reading was committed as-is.
        reason:    ``"combat"`` or ``"invis"`` for unstable readings.
        biased:    ``True`` for the known-biased override cases.
        fallback:  Which value replaced the raw reading.
    """

    character: str
    target: str
    reading: Standing
    record: StandingRecord
    stable: bool
    reason: str | None = None
    biased: bool = False
    fallback: Fallback = "none"


def _confirmed(record: StandingRecord | None) -> bool:
    # Only confirmed readings are worth restoring; a guess is never a snapshot.
    return record is not None and not record.is_tentative


class StandingTracker:
    """Apply consider events to per-character state.

    One tracker is built per scan pass with a snapshot of the Entity Set.
    It holds no per-character data itself; everything lives in the
    :class:`CharacterState` passed to :meth:`consume`.
    """

    def __init__(self, entity_set: frozenset[str], settings: ConsiderSettings) -> None:
        self._entities = entity_set
        self._settings = settings

    def is_tracked(self, normalized_target: str) -> bool:
        if self._settings.accept_all_considers:
            return bool(normalized_target)
        return matches_entity(normalized_target, self._entities)

    def consume(
        self,
        character: str,
        state: CharacterState,
        classified: Sequence[tuple[str, LogEvent | None]],
    ) -> list[StandingDecision]:
        """Feed one source's lines, in file order, through the state machine.

        Args:
            character:  Character the source belongs to.
            state:      Working state; mutated in place.
            classified: ``(raw_line, event_or_None)`` pairs in file order.
                        Unmatched lines are kept for the line-window check.

        Returns:
            One :class:`StandingDecision` per tracked consider event.
        """
        ctx = state.context
        decisions: list[StandingDecision] = []

        for index, (_, event) in enumerate(classified):
            if event is None:
                continue
            kind = event.kind
            when = event.timestamp.when

            if kind is EventKind.INVIS_ON:
                if _confirmed(state.standing):
                    ctx.standing_before_invis = state.standing
                ctx.invis_on_at = when
            elif kind is EventKind.INVIS_OFF:
                ctx.invis_off_at = when
            elif kind.is_combat:
                if _confirmed(state.standing):
                    ctx.standing_before_combat = state.standing
                ctx.last_combat_at = when
                if event.target:
                    ctx.attacks_by_target[normalize_name(event.target)] = when
            elif kind is EventKind.CONSIDER:
                decision = self._consider(character, state, classified, index, event)
                if decision is not None:
                    decisions.append(decision)

        return decisions

    # ── Consider handling ─────────────────────────────────────────────────────

    def _consider(
        self,
        character: str,
        state: CharacterState,
        classified: Sequence[tuple[str, LogEvent | None]],
        index: int,
        event: LogEvent,
    ) -> StandingDecision | None:
        target = event.target or ""
        norm = normalize_name(target)
        if not self.is_tracked(norm):
            return None

        ctx = state.context
        reading = event.standing or Standing.INDIFFERENT
        ts = event.timestamp
        now = ts.when

        invis_active = (
            ctx.invis_on_at is not None
            and (ctx.invis_off_at is None or ctx.invis_on_at > ctx.invis_off_at)
            and (now - ctx.invis_on_at).total_seconds() <= self._settings.invis_max_seconds
        )
        last_attack = ctx.attacks_by_target.get(norm)
        attacked_recently = (
            last_attack is not None
            and (now - last_attack).total_seconds() <= self._settings.combat_recent_seconds
        )

        start = max(0, index - self._settings.lookbehind_lines)
        window = [raw for raw, _ in classified[start : index + 1]]
        unstable_invis = invis_active or any(has_invis_marker(line) for line in window)
        unstable_combat = attacked_recently or any(has_attack_marker(line) for line in window)

        biased_invis = invis_active and reading is Standing.INDIFFERENT
        biased_combat = attacked_recently and reading in HOSTILE_STANDINGS

        if biased_combat or unstable_combat:
            return self._fall_back(
                character, state, event, norm, reading, "combat", biased_combat,
                ctx.standing_before_combat,
            )
        if biased_invis or unstable_invis:
            return self._fall_back(
                character, state, event, norm, reading, "invis", biased_invis,
                ctx.standing_before_invis,
            )

        record = StandingRecord.from_reading(reading, target, ts)
        state.standing = record
        state.last_stable[norm] = record
        return StandingDecision(
            character=character, target=target, reading=reading, record=record, stable=True
        )

    def _fall_back(
        self,
        character: str,
        state: CharacterState,
        event: LogEvent,
        norm: str,
        reading: Standing,
        reason: str,
        biased: bool,
        snapshot: StandingRecord | None,
    ) -> StandingDecision:
        target = event.target or ""
        ts = event.timestamp
        prev = f"; prev={snapshot.standing.label}" if snapshot is not None else ""
        last_for_target = state.last_stable.get(norm)
        current = state.standing

        fallback: Fallback
        if last_for_target is not None:
            record = StandingRecord.from_reading(
                last_for_target.standing, target, ts, tags=(f"{reason}{prev}",)
            )
            fallback = "target"
        elif current is not None and not current.is_tentative:
            record = current.restamped(ts, entity=current.entity or target).with_tag(
                f"{reason}{prev}"
            )
            fallback = "character"
        else:
            record = StandingRecord.from_reading(reading, target, ts, tags=(f"{reason}?{prev}",))
            fallback = "baseline"

        state.standing = record
        logger.info(
            "%s %s consider for %s on %r: read %s, kept %s (%s fallback)",
            "bias override:" if biased else "unstable:",
            reason,
            character,
            target,
            reading.label,
            record.display_label,
            fallback,
        )
        return StandingDecision(
            character=character,
            target=target,
            reading=reading,
            record=record,
            stable=False,
            reason=reason,
            biased=biased,
            fallback=fallback,
        )
