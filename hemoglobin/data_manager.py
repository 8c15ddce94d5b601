"""Data manager for loading card data from disk.

Handles streaming the card file, keeping load metadata, and deciding
whether the loaded data is stale compared to the file on disk.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Iterator

import ijson

from hemoglobin.card_store import CardCollection, CardStore
from hemoglobin.cards import Card

logger = logging.getLogger(__name__)


@dataclass
class DataStatus:
    """Status of the loaded card data."""

    last_updated: datetime | None
    card_count: int
    source: str
    is_stale: bool

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "last_updated": self.last_updated.isoformat() if self.last_updated else None,
            "card_count": self.card_count,
            "source": self.source,
            "stale": self.is_stale,
        }


def iter_card_documents(json_file: Path) -> Iterator[dict[str, Any]]:
    """Stream card documents from a JSON array file.

    ijson.items walks the top-level array one item at a time.
    """
    with open(json_file, "rb") as f:
        yield from ijson.items(f, "item")


def load_cards(
    json_file: Path,
    progress_callback: Callable[[int], None] | None = None,
    batch_size: int = 1000,
) -> CardCollection:
    """Load every card from a JSON file into a collection.

    Args:
        json_file: Path to the JSON file containing the card array
        progress_callback: Optional callback(card_count) called every batch
        batch_size: Number of cards between progress callbacks

    Returns:
        CardCollection in file order

    Raises:
        FileNotFoundError: If json_file does not exist
        CardDataError: If a card document is invalid or ids repeat
    """
    cards: list[Card] = []
    for document in iter_card_documents(json_file):
        cards.append(Card.from_dict(document))
        if progress_callback and len(cards) % batch_size == 0:
            progress_callback(len(cards))

    if progress_callback:
        progress_callback(len(cards))

    return CardCollection(cards)


class DataManager:
    """Manages loading of the card file and its metadata."""

    def __init__(self, cards_path: Path):
        """Initialize data manager.

        Args:
            cards_path: JSON file holding the card array
        """
        self.cards_path = cards_path
        self._metadata: dict[str, Any] | None = None

    def _file_signature(self) -> tuple[float, int] | None:
        """Modification time and size of the card file, or None if missing."""
        try:
            stat = self.cards_path.stat()
        except OSError:
            return None
        return stat.st_mtime, stat.st_size

    def load_cards(self, progress_callback: Callable[[int], None] | None = None) -> CardCollection:
        """Load the card file and record metadata.

        Returns:
            Freshly loaded CardCollection
        """
        signature = self._file_signature()
        collection = load_cards(self.cards_path, progress_callback)

        self._metadata = {
            "loaded_at": datetime.now(timezone.utc),
            "signature": signature,
            "card_count": len(collection),
        }
        logger.info("Loaded %d cards from %s", len(collection), self.cards_path)
        return collection

    def refresh(self, store: CardStore) -> int:
        """Reload the card file into a store.

        Returns:
            Number of cards loaded
        """
        collection = self.load_cards()
        store.replace(collection)
        return len(collection)

    def is_cache_stale(self) -> bool:
        """Check if the loaded data is older than the file on disk.

        Returns:
            True if nothing was loaded yet or the file changed since
        """
        if not self._metadata:
            return True

        current = self._file_signature()
        if current is None:
            # Keep serving what was loaded
            return False

        return current != self._metadata["signature"]

    def get_status(self) -> DataStatus:
        """Get status of the loaded card data."""
        if not self._metadata:
            return DataStatus(
                last_updated=None,
                card_count=0,
                source=str(self.cards_path),
                is_stale=True,
            )

        return DataStatus(
            last_updated=self._metadata["loaded_at"],
            card_count=self._metadata["card_count"],
            source=str(self.cards_path),
            is_stale=self.is_cache_stale(),
        )
