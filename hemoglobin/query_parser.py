"""Card query syntax parser.

Parses free-text queries into an ordered list of typed restrictions.
Supports: numeric stat comparisons, text containment and equality, set
membership, keyword names, legality, and free-text (fuzzy) terms.
All restrictions are ANDed together.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Union


# Supported syntax for error messages
SUPPORTED_SYNTAX = [
    'free text: dragon, "ancient dragon" (matched against name, type, description, kins, keywords)',
    "stats: cost>2, health>=4, defense=1, power!=0, cost<=3, power:5",
    'text: name:bolt, type:unit, description:"draw a card", name="Exact Name", set:core',
    "kins: kins:Beast, kin:Undead",
    "abilities / functions / other / artists: abilities:flying, functions:removal, artist:Someone",
    "keywords: keyword:flying, kw:summon",
    "legality: legal:standard",
    "boolean: implicit AND between all terms",
]

SYNTAX_SUMMARY = (
    "Terms are ANDed. Use field:value or field<op>value "
    "(ops: > < = != >= <=) on cost, health, defense, power, name, type, "
    "description, set, kins, abilities, functions, other, artists, keyword, legal. "
    "Anything else is free text."
)


class Field(Enum):
    """Card attributes a restriction can read. Values are Card attribute names."""

    NAME = "name"
    TYPE = "type"
    DESCRIPTION = "description"
    SET = "set"
    COST = "cost"
    HEALTH = "health"
    DEFENSE = "defense"
    POWER = "power"
    KINS = "kins"
    ABILITIES = "abilities"
    FUNCTIONS = "functions"
    OTHER = "other"
    ARTISTS = "artists"


NUMERIC_FIELDS = frozenset({Field.COST, Field.HEALTH, Field.DEFENSE, Field.POWER})
TEXT_FIELDS = frozenset({Field.NAME, Field.TYPE, Field.DESCRIPTION, Field.SET})
SET_FIELDS = frozenset({Field.KINS, Field.ABILITIES, Field.FUNCTIONS, Field.OTHER, Field.ARTISTS})

# Pseudo-fields that do not read a single attribute
KEYWORD_FIELD = "keyword"
LEGAL_FIELD = "legal"

# Query field name (and aliases) to canonical field
FIELD_ALIASES: dict[str, Union[Field, str]] = {
    "name": Field.NAME, "n": Field.NAME,
    "type": Field.TYPE, "t": Field.TYPE,
    "description": Field.DESCRIPTION, "desc": Field.DESCRIPTION, "d": Field.DESCRIPTION,
    "set": Field.SET, "s": Field.SET,
    "cost": Field.COST, "c": Field.COST,
    "health": Field.HEALTH, "h": Field.HEALTH,
    "defense": Field.DEFENSE, "def": Field.DEFENSE,
    "power": Field.POWER, "pow": Field.POWER, "p": Field.POWER,
    "kins": Field.KINS, "kin": Field.KINS, "k": Field.KINS,
    "abilities": Field.ABILITIES, "ability": Field.ABILITIES,
    "functions": Field.FUNCTIONS, "function": Field.FUNCTIONS,
    "other": Field.OTHER,
    "artists": Field.ARTISTS, "artist": Field.ARTISTS,
    "keyword": KEYWORD_FIELD, "keywords": KEYWORD_FIELD, "kw": KEYWORD_FIELD,
    "legal": LEGAL_FIELD, "legality": LEGAL_FIELD, "format": LEGAL_FIELD, "f": LEGAL_FIELD,
}

COMPARISON_OPERATORS = (">=", "<=", "!=", ">", "<", "=")


class QueryError(Exception):
    """Error parsing a query with helpful hints."""

    kind = "query_error"

    def __init__(
        self,
        message: str,
        hint: str | None = None,
        token: str | None = None,
        supported_syntax: list[str] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.hint = hint or "Check the query syntax"
        self.token = token
        self.supported_syntax = supported_syntax or SUPPORTED_SYNTAX

    def __str__(self) -> str:
        return f"{self.message}. Hint: {self.hint}"


class UnknownFieldError(QueryError):
    """A restriction names an attribute the query language does not support."""

    kind = "unknown_field"


class InvalidNumberError(QueryError):
    """A numeric comparison's value is not a non-negative integer."""

    kind = "invalid_number"


class MalformedTokenError(QueryError):
    """A token names a known field but fits none of its accepted shapes."""

    kind = "malformed_token"


@dataclass(frozen=True)
class Fuzzy:
    """Free-text term."""

    text: str


@dataclass(frozen=True)
class Comparison:
    """Numeric comparison on a stat field."""

    field: Field
    operator: str
    value: int


@dataclass(frozen=True)
class Contains:
    """Case-insensitive substring test on a text field."""

    field: Field
    value: str


@dataclass(frozen=True)
class Equals:
    """Case-insensitive whole-value equality on a text field."""

    field: Field
    value: str


@dataclass(frozen=True)
class SetContains:
    """Case-sensitive membership test on a set field."""

    field: Field
    value: str


@dataclass(frozen=True)
class KeywordNameContains:
    """Some keyword on the card has a name containing the value."""

    value: str


@dataclass(frozen=True)
class LegalIn:
    """The card is legal in the given format."""

    format: str


Restriction = Union[Fuzzy, Comparison, Contains, Equals, SetContains, KeywordNameContains, LegalIn]


# Contiguous non-space text, where quoted segments may contain spaces.
# An unterminated quote runs to the end of the query.
TOKEN_PATTERN = re.compile(r'(?:[^\s"]+|"[^"]*"|"[^"]*$)+')

# field, operator, value (value may be empty; checked later)
FIELD_TOKEN_PATTERN = re.compile(r"([A-Za-z]+)(>=|<=|!=|>|<|=|:)(.*)", re.DOTALL)

_NEEDS_QUOTES = re.compile(r'[\s"]')


def _quote(value: str) -> str:
    """Quote a value if it would not survive tokenization bare."""
    if not value or _NEEDS_QUOTES.search(value):
        return f'"{value}"'
    return value


def render_restriction(restriction: Restriction) -> str:
    """Render a single restriction in canonical query syntax."""
    if isinstance(restriction, Fuzzy):
        text = restriction.text
        # A bare term that looks like a field token would reparse as one
        if FIELD_TOKEN_PATTERN.fullmatch(text):
            return f'"{text}"'
        return _quote(text)
    if isinstance(restriction, Comparison):
        return f"{restriction.field.value}{restriction.operator}{restriction.value}"
    if isinstance(restriction, Contains):
        return f"{restriction.field.value}:{_quote(restriction.value)}"
    if isinstance(restriction, Equals):
        return f"{restriction.field.value}={_quote(restriction.value)}"
    if isinstance(restriction, SetContains):
        return f"{restriction.field.value}:{_quote(restriction.value)}"
    if isinstance(restriction, KeywordNameContains):
        return f"{KEYWORD_FIELD}:{_quote(restriction.value)}"
    if isinstance(restriction, LegalIn):
        return f"{LEGAL_FIELD}:{_quote(restriction.format)}"
    raise TypeError(f"Unknown restriction: {restriction!r}")


def render_query(restrictions: list[Restriction]) -> str:
    """Render restrictions back to canonical query text."""
    return " ".join(render_restriction(r) for r in restrictions)


@dataclass
class ParsedQuery:
    """Structured representation of a parsed query."""

    restrictions: list[Restriction] = field(default_factory=list)
    raw_query: str = ""

    @property
    def is_empty(self) -> bool:
        """Check if query has no restrictions."""
        return len(self.restrictions) == 0

    @property
    def filter_count(self) -> int:
        """Count total number of restrictions."""
        return len(self.restrictions)

    @property
    def fuzzy_terms(self) -> list[str]:
        """Free-text terms in query order."""
        return [r.text for r in self.restrictions if isinstance(r, Fuzzy)]

    @property
    def has_fuzzy(self) -> bool:
        """Check if the query has a free-text component."""
        return any(isinstance(r, Fuzzy) for r in self.restrictions)

    @property
    def fuzzy_text(self) -> str:
        """Free-text terms joined into the text used for ranking."""
        return " ".join(self.fuzzy_terms)

    def __str__(self) -> str:
        """Canonical query text."""
        return render_query(self.restrictions)


class QueryParser:
    """Parser for card queries using regex tokenization."""

    def parse(self, query: str) -> ParsedQuery:
        """Parse a query string into a ParsedQuery object.

        Args:
            query: Raw query text

        Returns:
            ParsedQuery with restrictions in query order

        Raises:
            QueryError: If any token is invalid; the whole query fails
        """
        query = query.strip()

        # Handle empty query
        if not query:
            return ParsedQuery(raw_query=query)

        restrictions = [self._parse_token(token) for token in self._tokenize(query)]
        return ParsedQuery(restrictions=restrictions, raw_query=query)

    def _tokenize(self, query: str) -> list[tuple[str, bool]]:
        """Split query into (text, quoted) tokens with quote characters removed."""
        tokens = []
        for match in TOKEN_PATTERN.finditer(query):
            raw = match.group(0)
            text = raw.replace('"', "")
            quoted = raw.startswith('"')
            # A lone pair of quotes carries nothing
            if not text and quoted:
                continue
            tokens.append((text, quoted))
        return tokens

    def _parse_token(self, token: tuple[str, bool]) -> Restriction:
        """Classify a single token."""
        text, quoted = token

        if quoted:
            return Fuzzy(text)

        match = FIELD_TOKEN_PATTERN.fullmatch(text)
        if not match:
            return Fuzzy(text)

        name, operator, value = match.groups()
        target = FIELD_ALIASES.get(name.lower())
        if target is None:
            raise UnknownFieldError(
                f"Unknown field '{name}'",
                hint=f"Supported fields: {', '.join(sorted(f.value for f in Field))}, "
                f"{KEYWORD_FIELD}, {LEGAL_FIELD}",
                token=text,
            )

        if isinstance(target, Field) and target in NUMERIC_FIELDS:
            return self._parse_comparison(target, operator, value, text)

        if not value:
            raise MalformedTokenError(
                f"Missing value for '{name}'",
                hint=f"Write it as {name}:value",
                token=text,
            )

        if target in TEXT_FIELDS:
            if operator == ":":
                return Contains(target, value)
            if operator == "=":
                return Equals(target, value)
        elif target in SET_FIELDS:
            if operator in (":", "="):
                return SetContains(target, value)
        elif target == KEYWORD_FIELD:
            if operator == ":":
                return KeywordNameContains(value)
        elif target == LEGAL_FIELD:
            if operator == ":":
                return LegalIn(value.lower())

        raise MalformedTokenError(
            f"Operator '{operator}' is not supported for '{name}'",
            hint=f"Use {name}:value",
            token=text,
        )

    def _parse_comparison(self, target: Field, operator: str, value: str, text: str) -> Comparison:
        """Build a numeric comparison, normalizing ':' to '='."""
        if not value.isascii() or not value.isdigit():
            raise InvalidNumberError(
                f"'{value}' is not a valid number for {target.value}",
                hint=f"Use a non-negative whole number, e.g. {target.value}>=3",
                token=text,
            )
        if operator == ":":
            operator = "="
        return Comparison(target, operator, int(value))
