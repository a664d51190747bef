"""Tests for the ordered line classifier and its marker helpers."""

import pytest

from eq_tracker.logparse.classifier import (
    RULES,
    EventKind,
    classify_line,
    classify_lines,
    has_attack_marker,
    has_invis_marker,
)
from eq_tracker.logparse.standings import Standing
from tests.constants import log_line


@pytest.mark.unit
class TestRuleTable:
    def test_rules_are_in_priority_order(self):
        assert [rule.kind for rule in RULES] == list(EventKind)

    def test_combat_kinds(self):
        assert EventKind.MELEE_HIT.is_combat
        assert EventKind.SPELL_DOT_TICK.is_combat
        assert not EventKind.CONSIDER.is_combat
        assert not EventKind.INVIS_ON.is_combat


@pytest.mark.unit
class TestClassifyLine:
    def test_zone_change(self):
        event = classify_line(log_line(0, "You have entered Plane of Sky."))
        assert event is not None
        assert event.kind is EventKind.ZONE_CHANGE
        assert event.zone == "Plane of Sky"
        assert event.timestamp.parsed

    @pytest.mark.parametrize(
        ("text", "kind"),
        [
            ("You vanish.", EventKind.INVIS_ON),
            ("You gather shadows about you.", EventKind.INVIS_ON),
            ("You appear.", EventKind.INVIS_OFF),
            ("Your shadows fade.", EventKind.INVIS_OFF),
            ("Auto attack on.", EventKind.AUTO_ATTACK_ON),
        ],
    )
    def test_self_state_lines(self, text, kind):
        event = classify_line(log_line(0, text))
        assert event is not None
        assert event.kind is kind
        assert event.target is None

    def test_other_player_fading_is_not_self_invis(self):
        assert classify_line(log_line(0, "Someone fades away.")) is None

    def test_starting_to_appear_is_not_invis_off(self):
        assert classify_line(log_line(0, "You feel yourself starting to appear.")) is None

    @pytest.mark.parametrize(
        ("text", "kind", "target"),
        [
            (
                "You slash a cobalt drake for 50 points of damage.",
                EventKind.MELEE_HIT,
                "a cobalt drake",
            ),
            ("You try to slash Sontalak, but miss!", EventKind.MELEE_MISS, "Sontalak"),
            (
                "A cobalt drake hits YOU for 30 points of damage.",
                EventKind.MOB_HITS_YOU,
                "A cobalt drake",
            ),
            (
                "A cobalt drake tries to hit YOU, but misses!",
                EventKind.MOB_TRIES_TO_HIT_YOU,
                "A cobalt drake",
            ),
            (
                "A cobalt drake was hit by non-melee for 20 points of damage.",
                EventKind.NON_MELEE_DAMAGE,
                "A cobalt drake",
            ),
            (
                "A cobalt drake was pierced by thorns for 4 points of non-melee damage.",
                EventKind.THORNS_DAMAGE,
                "A cobalt drake",
            ),
            (
                "Your Ice Comet hits a cobalt drake for 200 points of damage.",
                EventKind.SPELL_YOUR_HITS,
                "a cobalt drake",
            ),
            (
                "You blast a cobalt drake for 120 points of cold damage.",
                EventKind.SPELL_YOU_HIT,
                "a cobalt drake",
            ),
            (
                "A cobalt drake has taken 30 damage from your Scorching Skin.",
                EventKind.SPELL_DOT_TICK,
                "A cobalt drake",
            ),
        ],
    )
    def test_combat_lines(self, text, kind, target):
        event = classify_line(log_line(0, text))
        assert event is not None
        assert event.kind is kind
        assert event.target == target

    def test_melee_hit_wins_over_spell_hit(self):
        # "hit" is both a melee and a spell verb; melee has priority.
        event = classify_line(log_line(0, "You hit a cobalt drake for 12 points of damage."))
        assert event is not None
        assert event.kind is EventKind.MELEE_HIT

    def test_consider(self):
        line = log_line(
            0, "Sontalak regards you as an ally -- looks like he would wipe the floor with you!"
        )
        event = classify_line(line)
        assert event is not None
        assert event.kind is EventKind.CONSIDER
        assert event.target == "Sontalak"
        assert event.standing is Standing.ALLY
        assert event.raw == line

    def test_consider_hostile(self):
        event = classify_line(
            log_line(0, "a cobalt drake glares at you threateningly -- what would you like?")
        )
        assert event is not None
        assert event.standing is Standing.THREATENING
        assert event.target == "a cobalt drake"

    @pytest.mark.parametrize(
        "line",
        [
            "",
            "You have entered Plane of Sky.",
            "[Sat Mar 23 20:00:00 2024] Zeke tells the guild, 'hello'",
            "[Sat Mar 23 20:00:00 2024] You say, 'Hail, Sontalak'",
        ],
    )
    def test_unmatched_lines_ignored(self, line):
        assert classify_line(line) is None

    def test_malformed_timestamp_falls_back_to_now(self):
        event = classify_line("[not a time] You have entered Plane of Sky.")
        assert event is not None
        assert event.kind is EventKind.ZONE_CHANGE
        assert event.timestamp.parsed is False

    def test_classify_lines_keeps_unmatched(self):
        lines = [log_line(0, "chatter"), log_line(1, "You vanish.")]
        result = classify_lines(lines)
        assert [raw for raw, _ in result] == lines
        assert result[0][1] is None
        assert result[1][1].kind is EventKind.INVIS_ON


@pytest.mark.unit
class TestMarkers:
    @pytest.mark.parametrize(
        "text",
        [
            "You vanish.",
            "Someone fades away.",
            "Someone steps into the shadows and disappears.",
            "You are as quiet as a cat stalking its prey.",
            "You are as quiet as a herd of stampeding elephants.",
        ],
    )
    def test_invis_markers(self, text):
        assert has_invis_marker(log_line(0, text))

    def test_attack_marker(self):
        assert has_attack_marker(log_line(0, "You slash a cobalt drake for 5 points of damage."))
        assert has_attack_marker(log_line(0, "You kick Sontalak for 3 points of damage."))

    def test_no_markers_in_chatter(self):
        line = log_line(0, "You say, 'slash'")
        assert not has_invis_marker(line)
        assert not has_attack_marker(line)
