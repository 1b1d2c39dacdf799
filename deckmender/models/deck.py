from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from typing import Any, Literal

from deckmender.models.card import CardRecord, normalize_name, sort_colors

Dialect = Literal["lines", "table"]
CommanderSource = Literal["section", "position", "none"]


@dataclass(frozen=True, slots=True)
class DeckEntry:
    """
    A card line in a deck list.

    Attributes:
        name: Card name as written in the list (canonical once enriched)
        quantity: Number of copies (>= 1)
        set_code: Set code of the printing, if the line named one
        collector_number: Collector number of the printing, if given
        card: Resolved card data; None until enriched or when lookup missed
    """

    name: str
    quantity: int
    set_code: str | None = None
    collector_number: str | None = None
    card: CardRecord | None = None

    @property
    def name_key(self) -> str:
        return normalize_name(self.name)

    @property
    def card_id(self) -> str | None:
        return self.card.card_id if self.card else None

    @property
    def not_found(self) -> bool:
        return self.card is None

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "quantity": self.quantity,
            "set_code": self.set_code,
            "collector_number": self.collector_number,
            "card": self.card.to_dict() if self.card else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DeckEntry":
        card_data = data.get("card")
        return cls(
            name=data["name"],
            quantity=int(data["quantity"]),
            set_code=data.get("set_code"),
            collector_number=data.get("collector_number"),
            card=CardRecord.from_dict(card_data) if card_data else None,
        )


@dataclass(frozen=True, slots=True)
class LineError:
    """An input line the parser could not read."""

    line: str
    reason: str


@dataclass
class ParsedDeck:
    """
    Result of parsing a deck list.

    Attributes:
        commander: Commander entries (section marker or positional rule)
        cards: Main entries, merged by name
        errors: Lines that matched no known pattern
        dialect: "lines" for text lists, "table" for CSV exports
        commander_source: How the commander was decided
    """

    commander: list[DeckEntry] = field(default_factory=list)
    cards: list[DeckEntry] = field(default_factory=list)
    errors: list[LineError] = field(default_factory=list)
    dialect: Dialect = "lines"
    commander_source: CommanderSource = "none"

    @property
    def ok(self) -> bool:
        """True if at least one entry was parsed."""
        return bool(self.commander or self.cards)

    def all_entries(self) -> list[DeckEntry]:
        return [*self.commander, *self.cards]


@dataclass
class EnrichedDeck:
    """Parsed deck joined with lookup results."""

    commander: list[DeckEntry] = field(default_factory=list)
    cards: list[DeckEntry] = field(default_factory=list)
    not_found: list[str] = field(default_factory=list)
    errors: list[LineError] = field(default_factory=list)
    commander_source: CommanderSource = "none"

    @property
    def resolved_commanders(self) -> list[DeckEntry]:
        return [e for e in self.commander if not e.not_found]

    @property
    def resolved_cards(self) -> list[DeckEntry]:
        return [e for e in self.cards if not e.not_found]


@dataclass(frozen=True)
class Deck:
    """
    A saved Commander deck.

    Decks are values: card edits return a new Deck with a replaced card list.
    """

    id: str
    name: str
    commander: tuple[DeckEntry, ...] = ()
    cards: tuple[DeckEntry, ...] = ()
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def color_identity(self) -> tuple[str, ...]:
        """Union of the resolved commanders' color identities, WUBRG order."""
        colors: set[str] = set()
        for entry in self.commander:
            if entry.card:
                colors.update(entry.card.color_identity)
        return sort_colors(colors)

    def all_entries(self) -> list[DeckEntry]:
        return [*self.commander, *self.cards]

    def card_count(self) -> int:
        """Total copies including commanders."""
        return sum(e.quantity for e in self.all_entries())

    def with_card_added(self, entry: DeckEntry) -> "Deck":
        """Return a deck with `entry` added, merging by name."""
        cards = list(self.cards)
        for i, existing in enumerate(cards):
            if existing.name_key == entry.name_key:
                cards[i] = replace(existing, quantity=existing.quantity + entry.quantity)
                break
        else:
            cards.append(entry)
        return replace(self, cards=tuple(cards))

    def with_card_removed(self, name: str, quantity: int | None = None) -> "Deck":
        """
        Return a deck with copies of `name` removed from the main list.

        Removes the entry entirely when quantity is None or covers every copy.
        """
        key = normalize_name(name)
        cards: list[DeckEntry] = []
        for existing in self.cards:
            if existing.name_key != key:
                cards.append(existing)
                continue
            if quantity is not None and quantity < existing.quantity:
                cards.append(replace(existing, quantity=existing.quantity - quantity))
        return replace(self, cards=tuple(cards))
