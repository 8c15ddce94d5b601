"""Restriction evaluation against cards.

A card passes a query when it satisfies every restriction. Keywords whose
data is a CardPattern are resolved against the other cards of the same
collection, one level deep.
"""

import logging
import operator
from typing import Any, Sequence

from hemoglobin.cards import Card, CardPattern, Keyword
from hemoglobin.query_parser import (
    Comparison,
    Contains,
    Equals,
    Field,
    Fuzzy,
    KeywordNameContains,
    LegalIn,
    Restriction,
    SetContains,
)
from hemoglobin.ranker import best_similarity

logger = logging.getLogger(__name__)

# Keyword patterns are expanded this many levels; deeper keywords match by name only
MAX_REFERENCE_DEPTH = 1

COMPARATORS = {
    "=": operator.eq,
    "!=": operator.ne,
    ">": operator.gt,
    "<": operator.lt,
    ">=": operator.ge,
    "<=": operator.le,
}

LEGAL_STATUS = "legal"

# Minimum similarity (0..1) for a free-text term to match a name, type, kin or keyword
FUZZY_MATCH_THRESHOLD = 0.8


def pattern_restrictions(pattern: CardPattern) -> list[Restriction]:
    """Translate a keyword's card pattern into restrictions.

    Name and type use equality, description uses containment, stats use
    numeric equality, list fields require every listed element, and
    nested keywords require a keyword with that name.
    """
    restrictions: list[Restriction] = []
    if pattern.name is not None:
        restrictions.append(Equals(Field.NAME, pattern.name))
    if pattern.type is not None:
        restrictions.append(Equals(Field.TYPE, pattern.type))
    if pattern.description is not None:
        restrictions.append(Contains(Field.DESCRIPTION, pattern.description))
    for stat in (Field.COST, Field.HEALTH, Field.DEFENSE, Field.POWER):
        value = getattr(pattern, stat.value)
        if value is not None:
            restrictions.append(Comparison(stat, "=", value))
    for set_field in (Field.KINS, Field.ABILITIES, Field.FUNCTIONS):
        for value in getattr(pattern, set_field.value) or ():
            restrictions.append(SetContains(set_field, value))
    for keyword in pattern.keywords or ():
        restrictions.append(KeywordNameContains(keyword.name))
    return restrictions


def _text(card: Card, field: Field) -> str:
    return str(getattr(card, field.value, "") or "")


def _values(card: Card, field: Field) -> Sequence[Any]:
    return getattr(card, field.value, ()) or ()


def _fuzzy_matches(card: Card, text: str) -> bool:
    """Approximate match of free text against the card's searchable fields.

    A term matches when it is a case-insensitive substring of the name,
    type, description, a kin or a keyword name, or when it is spelled
    close enough to one of the short fields or one of their words.
    """
    needle = text.lower()
    short_fields = [card.name, card.type, *card.kins, *(kw.name for kw in card.keywords)]
    if any(needle in h.lower() for h in [*short_fields, card.description]):
        return True

    candidates = set(short_fields)
    for value in short_fields:
        candidates.update(value.split())
    return best_similarity(text, candidates) >= FUZZY_MATCH_THRESHOLD


def _reference_resolves(
    keyword: Keyword,
    card: Card,
    collection: Sequence[Card],
    depth: int,
) -> bool:
    """Check that a keyword's pattern (if any) points at another card."""
    pattern = keyword.pattern
    if pattern is None or depth >= MAX_REFERENCE_DEPTH:
        return True

    restrictions = pattern_restrictions(pattern)
    for other in collection:
        if other is card or other.id == card.id:
            continue
        if matches(other, restrictions, collection, depth=depth + 1):
            return True
    return False


def _keyword_matches(
    card: Card,
    value: str,
    collection: Sequence[Card],
    depth: int,
) -> bool:
    needle = value.lower()
    return any(
        needle in kw.name.lower() and _reference_resolves(kw, card, collection, depth)
        for kw in card.keywords
    )


def check_restriction(
    card: Card,
    restriction: Restriction,
    collection: Sequence[Card] = (),
    depth: int = 0,
) -> bool:
    """Evaluate a single restriction against a card."""
    if isinstance(restriction, Fuzzy):
        return _fuzzy_matches(card, restriction.text)

    if isinstance(restriction, Comparison):
        compare = COMPARATORS.get(restriction.operator)
        if compare is None:
            return False
        return compare(getattr(card, restriction.field.value), restriction.value)

    if isinstance(restriction, Contains):
        return restriction.value.lower() in _text(card, restriction.field).lower()

    if isinstance(restriction, Equals):
        return restriction.value.lower() == _text(card, restriction.field).lower()

    if isinstance(restriction, SetContains):
        return restriction.value in _values(card, restriction.field)

    if isinstance(restriction, KeywordNameContains):
        return _keyword_matches(card, restriction.value, collection, depth)

    if isinstance(restriction, LegalIn):
        wanted = restriction.format.lower()
        return any(
            fmt.lower() == wanted and status.lower() == LEGAL_STATUS
            for fmt, status in card.legality.items()
        )

    logger.debug("Ignoring unknown restriction %r", restriction)
    return False


def matches(
    card: Card,
    restrictions: Sequence[Restriction],
    collection: Sequence[Card] = (),
    depth: int = 0,
) -> bool:
    """Check whether a card satisfies every restriction.

    Args:
        card: Card to test
        restrictions: Restrictions, combined with logical AND
        collection: Cards that keyword patterns are resolved against
        depth: Current keyword reference depth

    Returns:
        True if all restrictions hold (always True for no restrictions)
    """
    return all(check_restriction(card, r, collection, depth) for r in restrictions)


def apply_restrictions(
    restrictions: Sequence[Restriction],
    collection: Sequence[Card],
) -> list[Card]:
    """Filter a collection, preserving its order."""
    if not restrictions:
        return list(collection)
    return [card for card in collection if matches(card, restrictions, collection)]
