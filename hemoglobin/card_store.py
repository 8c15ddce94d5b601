"""In-memory card storage.

A CardCollection is an immutable snapshot of every card. The CardStore
holds the current snapshot and replaces it as a whole on refresh; readers
keep whatever snapshot they already obtained.
"""

import logging
import threading
from typing import Any, Iterable, Iterator, Sequence

from hemoglobin.cards import Card, CardDataError

logger = logging.getLogger(__name__)


class CardCollection(Sequence[Card]):
    """Immutable, ordered set of cards with id lookup."""

    def __init__(self, cards: Iterable[Card] = ()):
        """Initialize collection.

        Args:
            cards: Cards in scan order

        Raises:
            CardDataError: If two cards share an id
        """
        self._cards: tuple[Card, ...] = tuple(cards)
        self._by_id: dict[str, Card] = {}
        for card in self._cards:
            if card.id in self._by_id:
                raise CardDataError(f"Duplicate card id: {card.id}")
            self._by_id[card.id] = card

    @classmethod
    def from_dicts(cls, documents: Iterable[dict[str, Any]]) -> "CardCollection":
        """Build a collection from card documents."""
        return cls(Card.from_dict(doc) for doc in documents)

    def __getitem__(self, index):
        return self._cards[index]

    def __len__(self) -> int:
        return len(self._cards)

    def __iter__(self) -> Iterator[Card]:
        return iter(self._cards)

    def __repr__(self) -> str:
        return f"CardCollection({len(self._cards)} cards)"

    def get_card_by_id(self, card_id: str) -> Card | None:
        """Get card by id, or None if absent."""
        return self._by_id.get(card_id)

    def get_card_by_name(self, name: str) -> Card | None:
        """Get the first card with this name (case-insensitive)."""
        wanted = name.lower()
        for card in self._cards:
            if card.name.lower() == wanted:
                return card
        return None


def _as_collection(cards: Iterable[Card]) -> CardCollection:
    return cards if isinstance(cards, CardCollection) else CardCollection(cards)


class CardStore:
    """Handle on the current card snapshot.

    Reads never lock: ``snapshot()`` returns the current immutable
    collection. ``replace()`` builds the new collection first and swaps
    the reference under a lock, so concurrent readers see either the old
    or the new snapshot in full.
    """

    def __init__(self, cards: Iterable[Card] = ()):
        self._snapshot = _as_collection(cards)
        self._write_lock = threading.Lock()

    def snapshot(self) -> CardCollection:
        """Get the current collection."""
        return self._snapshot

    def replace(self, cards: Iterable[Card]) -> CardCollection:
        """Swap in a new collection.

        Args:
            cards: Complete new card set

        Returns:
            The new snapshot
        """
        collection = _as_collection(cards)
        with self._write_lock:
            previous = self._snapshot
            self._snapshot = collection
        logger.info("Replaced card collection: %d -> %d cards", len(previous), len(collection))
        return collection

    def get_card_count(self) -> int:
        """Get number of cards in the current snapshot."""
        return len(self._snapshot)
