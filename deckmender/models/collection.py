from dataclasses import dataclass, field

from deckmender.models.card import CardRecord


@dataclass(frozen=True, slots=True)
class CollectionEntry:
    """Owned copies of one printing, keyed by Scryfall card id."""

    card: CardRecord
    quantity: int

    @property
    def card_id(self) -> str:
        return self.card.card_id

    @property
    def name(self) -> str:
        return self.card.name


@dataclass
class Collection:
    """
    A user's card collection.

    At most one entry per card id. Adding a card that is already owned
    increments its quantity.
    """

    entries: dict[str, CollectionEntry] = field(default_factory=dict)

    def add_card(self, card: CardRecord, quantity: int = 1) -> CollectionEntry:
        """Add copies of a card, merging with an existing entry."""
        existing = self.entries.get(card.card_id)
        total = quantity + (existing.quantity if existing else 0)
        entry = CollectionEntry(card=card, quantity=total)
        self.entries[card.card_id] = entry
        return entry

    def remove_card(self, card_id: str, quantity: int | None = None) -> bool:
        """
        Remove copies of a card.

        Removes the entry when quantity is None or covers every copy.
        Returns False if the card is not owned.
        """
        existing = self.entries.get(card_id)
        if existing is None:
            return False
        if quantity is None or quantity >= existing.quantity:
            del self.entries[card_id]
        else:
            self.entries[card_id] = CollectionEntry(
                card=existing.card, quantity=existing.quantity - quantity
            )
        return True

    def get_quantity(self, card_id: str) -> int:
        """Get quantity owned of a specific printing."""
        entry = self.entries.get(card_id)
        return entry.quantity if entry else 0

    def total_cards(self) -> int:
        """Total number of cards in collection."""
        return sum(e.quantity for e in self.entries.values())

    def unique_cards(self) -> int:
        """Number of unique printings in collection."""
        return len(self.entries)

    def as_list(self) -> list[CollectionEntry]:
        return list(self.entries.values())


@dataclass(frozen=True, slots=True)
class AvailableCard:
    """A collection entry annotated with how many copies are free."""

    entry: CollectionEntry
    in_use: int
    available: int

    @property
    def card(self) -> CardRecord:
        return self.entry.card

    @property
    def quantity(self) -> int:
        return self.entry.quantity

    @property
    def card_id(self) -> str:
        return self.entry.card_id

    @property
    def is_available(self) -> bool:
        return self.available > 0
