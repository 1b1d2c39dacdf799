"""
Availability Calculator.

For every collection entry, subtract the copies committed to decks:

    available = owned quantity - sum(quantity of the same card_id in every deck)

Matching is by card_id (Scryfall id), never by display name, so two
printings of the same card are counted separately. Results are computed
fresh on every call; nothing here is cached.
"""

from collections import Counter
from collections.abc import Iterable

from deckmender.models.collection import AvailableCard, Collection, CollectionEntry
from deckmender.models.deck import Deck


def count_in_use(decks: Iterable[Deck]) -> Counter[str]:
    """Copies of each card_id committed across decks (commanders included)."""
    in_use: Counter[str] = Counter()
    for deck in decks:
        for entry in deck.all_entries():
            if entry.card_id is not None:
                in_use[entry.card_id] += entry.quantity
    return in_use


def compute_availability(
    collection: Collection | Iterable[CollectionEntry],
    decks: Iterable[Deck],
) -> list[AvailableCard]:
    """
    Annotate every collection entry with in-use and available counts.

    Args:
        collection: The user's collection (or its entries)
        decks: Every saved deck of the user

    Returns:
        One AvailableCard per collection entry, in collection order.
        `available` may be zero or negative when decks use more copies
        than are owned.
    """
    entries = collection.as_list() if isinstance(collection, Collection) else list(collection)
    in_use = count_in_use(decks)

    return [
        AvailableCard(
            entry=entry,
            in_use=in_use[entry.card_id],
            available=entry.quantity - in_use[entry.card_id],
        )
        for entry in entries
    ]


def available_cards(
    collection: Collection | Iterable[CollectionEntry],
    decks: Iterable[Deck],
) -> list[AvailableCard]:
    """Only the entries with at least one free copy."""
    return [card for card in compute_availability(collection, decks) if card.is_available]
