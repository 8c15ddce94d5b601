"""Relevance ranking for free-text queries.

Scores are weighted sums of rapidfuzz similarities (normalized to 0..1)
between the query text and a card's name, type, description, best kin and
best keyword name.
"""

from typing import Iterable, Sequence

from rapidfuzz import fuzz, utils

from hemoglobin.cards import Card

# Fixed weights per field
NAME_WEIGHT = 2.0
TYPE_WEIGHT = 1.8
DESCRIPTION_WEIGHT = 1.6
KIN_WEIGHT = 1.5
KEYWORD_WEIGHT = 1.2


def similarity(query: str, text: str, partial: bool = False) -> float:
    """Similarity between two strings in 0..1; empty input scores 0."""
    query = utils.default_process(query)
    text = utils.default_process(text)
    if not query or not text:
        return 0.0
    scorer = fuzz.partial_ratio if partial else fuzz.ratio
    return scorer(query, text) / 100.0


def best_similarity(query: str, values: Iterable[str]) -> float:
    """Highest similarity across values (0 when there are none)."""
    return max((similarity(query, value) for value in values), default=0.0)


def score(card: Card, query_text: str) -> float:
    """Compute the relevance of a card to the query text."""
    return (
        NAME_WEIGHT * similarity(query_text, card.name)
        + TYPE_WEIGHT * similarity(query_text, card.type)
        + DESCRIPTION_WEIGHT * similarity(query_text, card.description, partial=True)
        + KIN_WEIGHT * best_similarity(query_text, card.kins)
        + KEYWORD_WEIGHT * best_similarity(query_text, (kw.name for kw in card.keywords))
    )


def rank(cards: Sequence[Card], query_text: str) -> list[Card]:
    """Order cards by descending score; ties keep their input order."""
    scores = [score(card, query_text) for card in cards]
    order = sorted(range(len(cards)), key=lambda i: -scores[i])
    return [cards[i] for i in order]
