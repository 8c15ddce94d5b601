"""Search entry points.

``search`` parses a query, filters a snapshot and ranks the result.
``lookup`` fetches a single card by id.

Parse failures are not guessed at here: ``search`` raises QueryError and
the caller chooses what to do. The MCP server degrades to
``fuzzy_fallback`` (the whole raw text as one free-text term) and reports
the parse error next to the results; the CLI reports the error and exits.

Ranking policy: results are ranked only when the query has at least one
free-text term, using those terms joined by spaces. Purely structural
queries return cards in collection order.
"""

import logging
from dataclasses import dataclass, field
from typing import Any

from hemoglobin.card_store import CardCollection
from hemoglobin.cards import Card
from hemoglobin.evaluator import apply_restrictions
from hemoglobin.query_parser import Fuzzy, ParsedQuery, QueryParser
from hemoglobin.ranker import rank

logger = logging.getLogger(__name__)

_parser = QueryParser()


@dataclass
class SearchResult:
    """Cards matching a query, in result order."""

    cards: list[Card] = field(default_factory=list)
    query: str = ""
    ranked: bool = False

    @property
    def total_count(self) -> int:
        return len(self.cards)

    def to_dict(self, limit: int | None = None, offset: int = 0) -> dict[str, Any]:
        """Convert a page of results to a dictionary for JSON serialization."""
        end = None if limit is None else offset + limit
        return {
            "cards": [card.to_dict() for card in self.cards[offset:end]],
            "total_count": self.total_count,
            "query": self.query,
            "ranked": self.ranked,
            "offset": offset,
        }


def execute_query(parsed: ParsedQuery, snapshot: CardCollection) -> SearchResult:
    """Filter and rank a snapshot with an already parsed query."""
    cards = apply_restrictions(parsed.restrictions, snapshot)
    ranked = parsed.has_fuzzy
    if ranked:
        cards = rank(cards, parsed.fuzzy_text)

    logger.debug(
        "Query %r: %d restrictions, %d of %d cards matched",
        parsed.raw_query, parsed.filter_count, len(cards), len(snapshot),
    )
    return SearchResult(cards=cards, query=str(parsed), ranked=ranked)


def search(query_text: str, snapshot: CardCollection) -> SearchResult:
    """Parse, filter and rank.

    Args:
        query_text: Raw query text
        snapshot: Collection to search

    Returns:
        SearchResult with matching cards

    Raises:
        QueryError: If the query cannot be parsed
    """
    return execute_query(_parser.parse(query_text), snapshot)


def fuzzy_fallback(query_text: str, snapshot: CardCollection) -> SearchResult:
    """Search with the whole raw text as a single free-text term."""
    text = query_text.strip()
    restrictions = [Fuzzy(text)] if text else []
    logger.debug("Falling back to free-text search for %r", text)
    return execute_query(ParsedQuery(restrictions=restrictions, raw_query=text), snapshot)


def lookup(card_id: str, snapshot: CardCollection) -> Card | None:
    """Get a card by id, or None when no card has that id."""
    return snapshot.get_card_by_id(card_id)
