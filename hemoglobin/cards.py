"""Card model.

Cards are immutable once loaded. ``Card.from_dict`` accepts the external
JSON document shape (including ``Decimal`` numbers from the ijson streaming
parser) and ``Card.to_dict`` writes it back, so a card survives a
dict round-trip unchanged.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from types import MappingProxyType
from typing import Any, Mapping, Union


class CardDataError(ValueError):
    """A card document is missing required data or holds invalid values."""


# Set-valued fields, in document order
COLLECTION_FIELDS = ("kins", "abilities", "other", "functions", "artists", "img")

STAT_FIELDS = ("cost", "health", "defense", "power")

# Tag the original serde encoding puts on pattern-valued keyword data
PATTERN_TAG = "CardID"


def _to_int(value: Any, field_name: str) -> int:
    """Coerce a numeric document value to a non-negative int."""
    if isinstance(value, bool):
        raise CardDataError(f"{field_name} must be a number, got {value!r}")
    if isinstance(value, (int, float, Decimal)):
        try:
            number = int(value)
        except (ValueError, OverflowError):
            raise CardDataError(f"{field_name} must be a number, got {value!r}") from None
        if number != value:
            raise CardDataError(f"{field_name} must be a whole number, got {value!r}")
    elif isinstance(value, str) and value.strip().isdigit():
        number = int(value.strip())
    else:
        raise CardDataError(f"{field_name} must be a number, got {value!r}")
    if number < 0:
        raise CardDataError(f"{field_name} must not be negative, got {number}")
    return number


def _to_strings(value: Any, field_name: str) -> tuple[str, ...]:
    """Coerce an optional list of strings to a tuple."""
    if value is None:
        return ()
    if isinstance(value, str) or not isinstance(value, (list, tuple)):
        raise CardDataError(f"{field_name} must be a list of strings, got {value!r}")
    return tuple(str(item) for item in value)


@dataclass(frozen=True)
class CardPattern:
    """Partial card description carried by a keyword.

    Every field is optional. A keyword holding a pattern refers to the
    other cards in the collection that satisfy it.
    """

    name: str | None = None
    description: str | None = None
    type: str | None = None
    kins: tuple[str, ...] | None = None
    cost: int | None = None
    health: int | None = None
    defense: int | None = None
    power: int | None = None
    abilities: tuple[str, ...] | None = None
    functions: tuple[str, ...] | None = None
    keywords: tuple["Keyword", ...] | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CardPattern":
        values: dict[str, Any] = {}
        for key in ("name", "description", "type"):
            if data.get(key) is not None:
                values[key] = str(data[key])
        for key in STAT_FIELDS:
            if data.get(key) is not None:
                values[key] = _to_int(data[key], key)
        for key in ("kins", "abilities", "functions"):
            if data.get(key) is not None:
                values[key] = _to_strings(data[key], key)
        if data.get("keywords") is not None:
            values["keywords"] = tuple(Keyword.from_dict(kw) for kw in data["keywords"])
        return cls(**values)

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {}
        for key in ("name", "description", "type", "kins", "cost", "health",
                    "defense", "power", "abilities", "functions"):
            value = getattr(self, key)
            if value is None:
                continue
            result[key] = list(value) if isinstance(value, tuple) else value
        if self.keywords is not None:
            result["keywords"] = [kw.to_dict() for kw in self.keywords]
        return result

    @property
    def is_empty(self) -> bool:
        """Check if the pattern constrains nothing."""
        return not self.to_dict()


# Literal reminder text, a pattern over other cards, or nothing
KeywordData = Union[str, CardPattern, None]


@dataclass(frozen=True)
class Keyword:
    """Named keyword with optional data."""

    name: str
    data: KeywordData = None

    @classmethod
    def from_dict(cls, data: Any) -> "Keyword":
        if isinstance(data, str):
            return cls(name=data)
        if not isinstance(data, dict) or not data.get("name"):
            raise CardDataError(f"Keyword must have a name, got {data!r}")

        raw = data.get("data")
        if raw is None or isinstance(raw, str):
            keyword_data: KeywordData = raw
        elif isinstance(raw, dict):
            if raw.get("type") == PATTERN_TAG:
                raw = {k: v for k, v in raw.items() if k != "type"}
            keyword_data = CardPattern.from_dict(raw)
        else:
            raise CardDataError(f"Keyword data must be a string or an object, got {raw!r}")

        return cls(name=str(data["name"]), data=keyword_data)

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"name": self.name}
        if isinstance(self.data, CardPattern):
            result["data"] = self.data.to_dict()
        elif self.data is not None:
            result["data"] = self.data
        return result

    @property
    def pattern(self) -> CardPattern | None:
        """The card pattern this keyword refers to, if any."""
        return self.data if isinstance(self.data, CardPattern) else None


@dataclass(frozen=True)
class Card:
    """A single card record."""

    id: str
    name: str
    type: str
    description: str = ""
    cost: int = 0
    health: int = 0
    defense: int = 0
    power: int = 0
    kins: tuple[str, ...] = ()
    abilities: tuple[str, ...] = ()
    other: tuple[str, ...] = ()
    functions: tuple[str, ...] = ()
    artists: tuple[str, ...] = ()
    keywords: tuple[Keyword, ...] = ()
    set: str = ""
    legality: Mapping[str, str] = field(default_factory=dict, hash=False)
    img: tuple[str, ...] = ()

    def __post_init__(self):
        # legality is exposed read-only
        if not isinstance(self.legality, MappingProxyType):
            object.__setattr__(self, "legality", MappingProxyType(dict(self.legality)))

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Card":
        """Build a card from its JSON document.

        Args:
            data: Card document as decoded from JSON

        Returns:
            Card instance

        Raises:
            CardDataError: If required fields are missing or values are invalid
        """
        if not isinstance(data, dict):
            raise CardDataError(f"Card must be an object, got {type(data).__name__}")

        for required in ("id", "name", "type"):
            if data.get(required) is None:
                raise CardDataError(f"Card is missing required field '{required}'")

        legality = data.get("legality") or {}
        if not isinstance(legality, dict):
            raise CardDataError(f"legality must be an object, got {legality!r}")

        values: dict[str, Any] = {
            "id": str(data["id"]),
            "name": str(data["name"]),
            "type": str(data["type"]),
            "description": str(data.get("description") or ""),
            "set": str(data.get("set") or ""),
            "legality": {str(k): str(v) for k, v in legality.items()},
            "keywords": tuple(Keyword.from_dict(kw) for kw in data.get("keywords") or ()),
        }
        for key in STAT_FIELDS:
            values[key] = _to_int(data.get(key, 0), key)
        for key in COLLECTION_FIELDS:
            values[key] = _to_strings(data.get(key), key)

        return cls(**values)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "name": self.name,
            "img": list(self.img),
            "description": self.description,
            "cost": self.cost,
            "health": self.health,
            "defense": self.defense,
            "power": self.power,
            "type": self.type,
            "keywords": [kw.to_dict() for kw in self.keywords],
            "kins": list(self.kins),
            "abilities": list(self.abilities),
            "artists": list(self.artists),
            "set": self.set,
            "legality": dict(self.legality),
            "other": list(self.other),
            "functions": list(self.functions),
        }
