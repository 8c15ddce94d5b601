"""Shared test fixtures for hemoglobin."""

import json
from pathlib import Path
from typing import Any

import pytest

from hemoglobin.card_store import CardCollection
from hemoglobin.cards import Card


@pytest.fixture
def sample_cards() -> list[dict[str, Any]]:
    """Sample card documents - covers stats, kins, keywords and legality.

    Design: Two spells carry a "Summon" keyword whose data is a card
    pattern. Summoning Circle's pattern (Unit with power 5) is satisfied by
    Storm Dragon; Empty Call's pattern (Unit with power 9) matches nothing.
    """
    return [
        {
            "id": "card-001",
            "name": "Grave Beast",
            "img": ["grave-beast.png"],
            "description": "A hungry beast that rises from the grave.",
            "cost": 3,
            "health": 4,
            "defense": 1,
            "power": 2,
            "type": "Unit",
            "keywords": [{"name": "Devour", "data": "Destroy a unit you control"}],
            "kins": ["Beast", "Undead"],
            "abilities": ["Trample"],
            "artists": ["Lena Ortiz"],
            "set": "core",
            "legality": {"standard": "legal", "legacy": "legal"},
        },
        {
            "id": "card-002",
            "name": "Storm Dragon",
            "img": [],
            "description": "Deals 2 damage to each other unit when it enters.",
            "cost": 6,
            "health": 5,
            "defense": 2,
            "power": 5,
            "type": "Unit",
            "keywords": [{"name": "Flying"}],
            "kins": ["Dragon"],
            "functions": ["removal"],
            "artists": ["Ana Ruiz"],
            "set": "core",
            "legality": {"standard": "banned", "legacy": "legal"},
        },
        {
            "id": "card-003",
            "name": "Summoning Circle",
            "description": "Call forth a mighty unit.",
            "cost": 2,
            "health": 0,
            "defense": 0,
            "power": 0,
            "type": "Spell",
            "keywords": [{"name": "Summon", "data": {"type": "Unit", "power": 5}}],
            "other": ["ritual"],
            "set": "core",
            "legality": {"standard": "legal"},
        },
        {
            "id": "card-004",
            "name": "Empty Call",
            "description": "Call forth a unit that never comes.",
            "cost": 1,
            "health": 0,
            "defense": 0,
            "power": 0,
            "type": "Spell",
            "keywords": [{"name": "Summon", "data": {"type": "Unit", "power": 9}}],
            "set": "core",
            "legality": {"standard": "legal"},
        },
        {
            "id": "card-042",
            "name": "Iron Sentinel",
            "description": "Cannot be targeted by spells.",
            "cost": 4,
            "health": 6,
            "defense": 3,
            "power": 0,
            "type": "Artifact",
            "kins": ["Construct"],
            "set": "forge",
            "legality": {"Standard": "Legal"},
        },
    ]


@pytest.fixture
def collection(sample_cards: list[dict[str, Any]]) -> CardCollection:
    """Collection built from the sample cards, in fixture order."""
    return CardCollection.from_dicts(sample_cards)


@pytest.fixture
def grave_beast(collection: CardCollection) -> Card:
    """Single card fixture for Grave Beast (cost 3, kins Beast/Undead)."""
    return collection.get_card_by_id("card-001")


@pytest.fixture
def storm_dragon(collection: CardCollection) -> Card:
    """Single card fixture for Storm Dragon (Unit, power 5)."""
    return collection.get_card_by_id("card-002")


@pytest.fixture
def summoning_circle(collection: CardCollection) -> Card:
    """Single card fixture for Summoning Circle (resolvable Summon pattern)."""
    return collection.get_card_by_id("card-003")


@pytest.fixture
def empty_call(collection: CardCollection) -> Card:
    """Single card fixture for Empty Call (unresolvable Summon pattern)."""
    return collection.get_card_by_id("card-004")


@pytest.fixture
def cards_file(tmp_path: Path, sample_cards: list[dict[str, Any]]) -> Path:
    """Sample cards written to a JSON file."""
    path = tmp_path / "cards.json"
    path.write_text(json.dumps(sample_cards))
    return path
