"""CLI for searching and inspecting a card file."""

import argparse
import json
import logging
import sys
from pathlib import Path

import ijson

from hemoglobin.card_store import CardCollection
from hemoglobin.cards import Card, CardDataError
from hemoglobin.data_manager import DataManager
from hemoglobin.query_parser import QueryError
from hemoglobin.search import lookup, search
from hemoglobin.server import DEFAULT_LIMIT, default_cards_path


def format_card(card: Card) -> str:
    """Format a card as a single summary line."""
    stats = f"{card.cost}/{card.health}/{card.defense}/{card.power}"
    kins = f" [{', '.join(card.kins)}]" if card.kins else ""
    return f"{card.id}  {card.name} ({card.type}) {stats}{kins}"


def _load(manager: DataManager) -> CardCollection | None:
    """Load the card file, printing an error on failure."""
    if not manager.cards_path.exists():
        print(f"Error: File not found: {manager.cards_path}")
        return None

    try:
        return manager.load_cards()
    except (CardDataError, ijson.JSONError) as e:
        print(f"Error: Invalid card data: {e}")
        return None


def run_search(manager: DataManager, query: str, limit: int = DEFAULT_LIMIT) -> int:
    """Search the card file and print matching cards.

    Returns:
        Process exit code
    """
    snapshot = _load(manager)
    if snapshot is None:
        return 1

    try:
        result = search(query, snapshot)
    except QueryError as e:
        print(f"Error: {e.message}")
        print(f"  Hint: {e.hint}")
        return 1

    for card in result.cards[:limit]:
        print(format_card(card))

    print()
    shown = min(limit, result.total_count)
    print(f"{result.total_count:,} card(s) matched, showing {shown}.")
    if result.query:
        print(f"Query: {result.query}")
    return 0


def show_card(manager: DataManager, card_id: str) -> int:
    """Print a single card as JSON.

    Returns:
        Process exit code
    """
    snapshot = _load(manager)
    if snapshot is None:
        return 1

    card = lookup(card_id, snapshot)
    if card is None:
        print(f"Card not found: {card_id}")
        return 1

    print(json.dumps(card.to_dict(), indent=2))
    return 0


def show_status(manager: DataManager) -> int:
    """Show current data status.

    Returns:
        Process exit code
    """
    snapshot = _load(manager)

    status = manager.get_status()

    print("Hemoglobin Card Data Status")
    print("-" * 40)
    print(f"  Source:       {status.source}")

    if status.last_updated:
        print(f"  Last loaded:  {status.last_updated}")
    else:
        print("  Last loaded:  Never")

    print(f"  Card count:   {status.card_count:,}")
    return 0 if snapshot is not None else 1


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Hemoglobin - Search a card collection",
    )

    parser.add_argument(
        "--cards",
        type=Path,
        default=default_cards_path(),
        help="Card JSON file (default: $HEMOGLOBIN_CARDS or ./cards.json)",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Search command
    search_parser = subparsers.add_parser(
        "search",
        help="Search cards with a query",
    )
    search_parser.add_argument("query", help="Query text, e.g. 'kins:Beast cost<=3'")
    search_parser.add_argument(
        "--limit",
        type=int,
        default=DEFAULT_LIMIT,
        help=f"Maximum cards to print (default: {DEFAULT_LIMIT})",
    )

    # Card command
    card_parser = subparsers.add_parser(
        "card",
        help="Show a single card by id",
    )
    card_parser.add_argument("id", help="Card id")

    # Status command
    subparsers.add_parser(
        "status",
        help="Show current data status",
    )

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    manager = DataManager(args.cards)

    if args.command == "search":
        return run_search(manager, args.query, args.limit)
    elif args.command == "card":
        return show_card(manager, args.id)
    elif args.command == "status":
        return show_status(manager)
    else:
        parser.print_help()
        return 0


if __name__ == "__main__":
    sys.exit(main())
