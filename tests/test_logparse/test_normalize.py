"""Tests for entity name normalization."""

import pytest

from eq_tracker.logparse.normalize import normalize_name, simple_stem


@pytest.mark.unit
class TestSimpleStem:
    @pytest.mark.parametrize(
        ("word", "expected"),
        [
            ("bus", "bus"),
            ("ladies", "lady"),
            ("boxes", "box"),
            ("drakes", "drak"),
            ("glass", "glass"),
            ("status", "status"),
            ("Giants", "giant"),
        ],
    )
    def test_stem_rules(self, word, expected):
        assert simple_stem(word) == expected

    def test_short_words_unchanged(self):
        assert simple_stem("its") == "its"
        assert simple_stem("as") == "as"


@pytest.mark.unit
class TestNormalizeName:
    def test_leading_article_stripped(self):
        assert normalize_name("The Lord Yelinak") == normalize_name("lord yelinak")
        assert normalize_name("The Lord Yelinak") == "lord yelinak"

    def test_parenthetical_removed(self):
        assert normalize_name("Pearl (map item)") == normalize_name("pearl") == "pearl"

    def test_apostrophes_removed(self):
        assert normalize_name("Kelorek`Dar") == "kelorekdar"
        assert normalize_name("Larrikan's Mask") == normalize_name("Larrikan’s Mask")

    def test_punctuation_collapsed(self):
        assert normalize_name("  Sontalak -- the  Wise!! ") == "sontalak the wise"

    def test_leading_articles_stripped(self):
        assert normalize_name("a cobalt drake") == "cobalt drake"
        assert normalize_name("the a gnoll") == "gnoll"
        assert normalize_name("Thes Guardian") == "guardian"
        assert normalize_name("An Ancient Cyclops") == "ancient cyclop"

    def test_plural_matches_singular(self):
        assert normalize_name("Frost Giants") == normalize_name("a frost giant")

    @pytest.mark.parametrize("empty", [None, "", "   ", "(note)", "'"])
    def test_empty_inputs(self, empty):
        assert normalize_name(empty) == ""

    @pytest.mark.parametrize(
        "name",
        [
            "The Lord Yelinak",
            "Pearl (map item)",
            "Horses of the Sky",
            "Kelorek`Dar",
            "Ladies",
            "the a gnoll",
            "Thes Guardian",
            "an the drake",
        ],
    )
    def test_idempotent(self, name):
        once = normalize_name(name)
        assert normalize_name(once) == once
