"""Tests for relevance ranking."""

from hemoglobin.card_store import CardCollection
from hemoglobin.cards import Card, Keyword
from hemoglobin.ranker import (
    KIN_WEIGHT,
    NAME_WEIGHT,
    best_similarity,
    rank,
    score,
    similarity,
)


class TestSimilarity:
    """Test the normalized similarity helpers."""

    def test_identical(self):
        """Identical strings score 1."""
        assert similarity("Storm Dragon", "storm dragon") == 1.0

    def test_empty(self):
        """Empty input scores 0."""
        assert similarity("", "dragon") == 0.0
        assert similarity("dragon", "") == 0.0

    def test_range(self):
        """Scores stay within 0..1."""
        value = similarity("drgon", "dragon")

        assert 0.0 < value < 1.0

    def test_best_of_none(self):
        """No values contribute nothing."""
        assert best_similarity("beast", []) == 0.0

    def test_best_takes_maximum(self):
        """The best element wins."""
        assert best_similarity("beast", ["Undead", "Beast"]) == 1.0


class TestScore:
    """Test card scores."""

    def test_exact_name_beats_unrelated(self, storm_dragon: Card):
        """An exact name query outscores a card sharing no text with it."""
        unrelated = Card(id="q", name="Quixx", type="Bulb", kins=("Lux",))

        assert score(storm_dragon, "Storm Dragon") > score(unrelated, "Storm Dragon")

    def test_exact_name_contributes_name_weight(self, storm_dragon: Card):
        """A perfect name match adds at least the full name weight."""
        assert score(storm_dragon, "Storm Dragon") >= NAME_WEIGHT

    def test_kin_match(self):
        """A kin equal to the query adds the kin weight."""
        bare = Card(id="b", name="Zzz", type="Zzz", kins=("Undead",))

        assert score(bare, "undead") == KIN_WEIGHT

    def test_keyword_match(self):
        """Keyword names add to the score."""
        plain = Card(id="p", name="Zzz", type="Zzz")
        flier = Card(id="f", name="Zzz", type="Zzz", keywords=(Keyword("Flying"),))

        assert score(flier, "flying") > score(plain, "flying")


class TestRank:
    """Test ordering."""

    def test_descending(self, collection: CardCollection):
        """The best match comes first."""
        ranked = rank(list(collection), "Storm Dragon")

        assert ranked[0].id == "card-002"

    def test_ties_keep_input_order(self):
        """Equal scores keep their input order."""
        first = Card(id="1", name="Twin", type="Unit")
        second = Card(id="2", name="Twin", type="Unit")

        assert [c.id for c in rank([first, second], "twin")] == ["1", "2"]
        assert [c.id for c in rank([second, first], "twin")] == ["2", "1"]

    def test_empty(self):
        """Ranking nothing gives nothing."""
        assert rank([], "anything") == []
