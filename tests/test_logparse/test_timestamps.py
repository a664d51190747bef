"""Tests for client timestamp parsing and the standing table."""

from datetime import UTC, datetime

import pytest

from eq_tracker.logparse.standings import (
    HOSTILE_STANDINGS,
    MAX_SCORE,
    Standing,
    standing_from_line,
)
from eq_tracker.logparse.timestamps import LogTimestamp, parse_log_timestamp


@pytest.mark.unit
class TestParseLogTimestamp:
    def test_valid_stamp(self):
        ts = parse_log_timestamp("Sat Mar 23 20:03:36 2024")
        assert ts.parsed
        assert ts.when == datetime(2024, 3, 23, 20, 3, 36)
        assert ts.local_iso == "2024-03-23T20:03:36"
        assert ts.utc_iso == datetime(2024, 3, 23, 20, 3, 36).astimezone(UTC).isoformat()

    def test_single_digit_day(self):
        ts = parse_log_timestamp("Mon Apr 1 08:00:00 2024")
        assert ts.parsed
        assert ts.when == datetime(2024, 4, 1, 8, 0, 0)

    @pytest.mark.parametrize(
        "text",
        [None, "", "garbage", "Sat Foo 23 20:03:36 2024", "Fri Feb 30 10:00:00 2024"],
    )
    def test_malformed_falls_back_to_now(self, text):
        before = datetime.now().replace(microsecond=0)
        ts = parse_log_timestamp(text)
        assert ts.parsed is False
        assert ts.when >= before

    def test_utc_strings_order_like_times(self):
        earlier = LogTimestamp.from_local(datetime(2024, 3, 23, 20, 0, 0))
        later = LogTimestamp.from_local(datetime(2024, 3, 23, 21, 0, 0))
        assert earlier.utc_iso < later.utc_iso


@pytest.mark.unit
class TestStandings:
    def test_scores(self):
        assert [s.score for s in Standing] == [
            1450, 875, 575, 250, 0, -250, -575, -875, -1450,
        ]
        assert MAX_SCORE == 1450

    def test_labels_round_trip(self):
        for standing in Standing:
            assert Standing.from_label(standing.label) is standing
        assert Standing.ALLY.label == "Ally"

    def test_hostile_set(self):
        assert HOSTILE_STANDINGS == {
            Standing.THREATENING,
            Standing.DUBIOUS,
            Standing.APPREHENSIVE,
        }

    @pytest.mark.parametrize(
        ("phrase", "standing"),
        [
            ("regards you as an ally", Standing.ALLY),
            ("looks upon you warmly", Standing.WARMLY),
            ("kindly considers you", Standing.KINDLY),
            ("judges you amiably", Standing.AMIABLE),
            ("regards you indifferently", Standing.INDIFFERENT),
            ("looks your way apprehensively", Standing.APPREHENSIVE),
            ("glowers at you dubiously", Standing.DUBIOUS),
            ("glares at you threateningly", Standing.THREATENING),
            ("scowls at you", Standing.SCOWLS),
        ],
    )
    def test_phrases(self, phrase, standing):
        assert standing_from_line(f"Sontalak {phrase} -- ready?") is standing

    def test_unknown_phrase_is_indifferent(self):
        assert standing_from_line("Sontalak waves at you") is Standing.INDIFFERENT
