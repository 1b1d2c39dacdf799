"""
Database CRUD operations.

Provides async functions for creating, reading, updating, and deleting
collections, decks and cached card records, plus conversions to the
domain models. Callers own the transaction; these functions only flush.
"""

import uuid
from collections.abc import Iterable, Sequence
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from deckmender.models.card import CardRecord
from deckmender.models.collection import Collection, CollectionEntry
from deckmender.models.db import CardCacheDB, CollectionCardDB, DeckDB, UserCollectionDB
from deckmender.models.deck import Deck, DeckEntry

# --- Collection Operations ---


async def get_collection(session: AsyncSession, user_id: str) -> UserCollectionDB | None:
    """
    Get a user's collection by user_id.

    Returns None if no collection exists for this user.
    """
    result = await session.execute(
        select(UserCollectionDB)
        .where(UserCollectionDB.user_id == user_id)
        .options(selectinload(UserCollectionDB.cards))
    )
    return result.scalar_one_or_none()


async def create_collection(session: AsyncSession, user_id: str) -> UserCollectionDB:
    """
    Create a new collection for a user.

    Raises IntegrityError if collection already exists.
    """
    collection = UserCollectionDB(user_id=user_id, cards=[])
    session.add(collection)
    await session.flush()
    return collection


async def get_or_create_collection(
    session: AsyncSession, user_id: str
) -> tuple[UserCollectionDB, bool]:
    """
    Get existing collection or create new one.

    Returns:
        Tuple of (collection, created) where created is True if new.
    """
    collection = await get_collection(session, user_id)
    if collection:
        return collection, False

    collection = await create_collection(session, user_id)
    return collection, True


async def add_collection_cards(
    session: AsyncSession,
    user_id: str,
    cards: Iterable[tuple[CardRecord, int]],
) -> UserCollectionDB:
    """
    Add copies to a user's collection.

    A card already owned (same card_id) has its quantity increased and its
    stored card data refreshed; new cards get a new row.
    """
    collection, _ = await get_or_create_collection(session, user_id)
    rows = {row.card_id: row for row in collection.cards}

    for card, quantity in cards:
        row = rows.get(card.card_id)
        if row is None:
            row = CollectionCardDB(
                card_id=card.card_id,
                card_name=card.name,
                quantity=quantity,
                card_data=card.to_dict(),
            )
            collection.cards.append(row)
            rows[card.card_id] = row
        else:
            row.quantity += quantity
            row.card_data = card.to_dict()

    await session.flush()
    return collection


async def remove_collection_card(
    session: AsyncSession,
    user_id: str,
    card_id: str,
    quantity: int | None = None,
) -> bool:
    """
    Remove copies of a card from a user's collection.

    Deletes the row when quantity is None or covers every copy.
    Returns False if the user does not own the card.
    """
    collection = await get_collection(session, user_id)
    if not collection:
        return False

    row = next((r for r in collection.cards if r.card_id == card_id), None)
    if row is None:
        return False

    if quantity is None or quantity >= row.quantity:
        collection.cards.remove(row)
    else:
        row.quantity -= quantity

    await session.flush()
    return True


def collection_to_model(collection: UserCollectionDB) -> Collection:
    """Convert a database collection to a domain model."""
    entries = {
        row.card_id: CollectionEntry(
            card=CardRecord.from_dict(row.card_data), quantity=row.quantity
        )
        for row in collection.cards
    }
    return Collection(entries=entries)


async def delete_collection(session: AsyncSession, user_id: str) -> bool:
    """
    Delete a user's collection.

    Returns True if deleted, False if not found.
    """
    collection = await get_collection(session, user_id)
    if not collection:
        return False

    await session.delete(collection)
    return True


# --- Deck Operations ---


def _entries_to_json(entries: Iterable[DeckEntry]) -> list[dict[str, Any]]:
    return [entry.to_dict() for entry in entries]


async def create_deck(
    session: AsyncSession,
    user_id: str,
    name: str,
    commander: Sequence[DeckEntry],
    cards: Sequence[DeckEntry],
) -> DeckDB:
    """Save a new deck and return its row."""
    db_deck = DeckDB(
        id=uuid.uuid4().hex,
        user_id=user_id,
        name=name,
        commander=_entries_to_json(commander),
        cards=_entries_to_json(cards),
    )
    session.add(db_deck)
    await session.flush()
    await session.refresh(db_deck)
    return db_deck


async def get_deck(session: AsyncSession, user_id: str, deck_id: str) -> DeckDB | None:
    """Get one of a user's decks. Returns None if absent or owned by someone else."""
    result = await session.execute(
        select(DeckDB).where(DeckDB.id == deck_id, DeckDB.user_id == user_id)
    )
    return result.scalar_one_or_none()


async def list_decks(session: AsyncSession, user_id: str) -> list[DeckDB]:
    """All decks of a user, oldest first."""
    result = await session.execute(
        select(DeckDB).where(DeckDB.user_id == user_id).order_by(DeckDB.created_at, DeckDB.id)
    )
    return list(result.scalars().all())


async def update_deck_cards(session: AsyncSession, db_deck: DeckDB, deck: Deck) -> DeckDB:
    """Store a deck's current commander and card lists on its row."""
    # Assign new lists so the JSON columns are marked dirty
    db_deck.commander = _entries_to_json(deck.commander)
    db_deck.cards = _entries_to_json(deck.cards)
    await session.flush()
    return db_deck


async def delete_deck(session: AsyncSession, user_id: str, deck_id: str) -> bool:
    """
    Delete a user's deck.

    Returns True if deleted, False if not found.
    """
    result = await session.execute(
        delete(DeckDB).where(DeckDB.id == deck_id, DeckDB.user_id == user_id)
    )
    # rowcount is available on DELETE results; type stubs incomplete for async
    return int(result.rowcount) > 0  # type: ignore[attr-defined]


def deck_to_model(db_deck: DeckDB) -> Deck:
    """Convert a database deck to a domain model."""
    return Deck(
        id=db_deck.id,
        name=db_deck.name,
        commander=tuple(DeckEntry.from_dict(e) for e in db_deck.commander),
        cards=tuple(DeckEntry.from_dict(e) for e in db_deck.cards),
        created_at=db_deck.created_at,
    )


async def load_user_decks(session: AsyncSession, user_id: str) -> list[Deck]:
    """Every deck of a user as domain models."""
    return [deck_to_model(db_deck) for db_deck in await list_decks(session, user_id)]


# --- Card Cache Operations ---


async def get_cached_cards(
    session: AsyncSession, name_keys: Iterable[str]
) -> dict[str, CardRecord]:
    """
    Look up cached records by lower-cased card name.

    Returns a mapping of name key -> record for the names in the cache.
    """
    keys = set(name_keys)
    if not keys:
        return {}
    result = await session.execute(select(CardCacheDB).where(CardCacheDB.name_key.in_(keys)))
    cached: dict[str, CardRecord] = {}
    for row in result.scalars().all():
        cached.setdefault(row.name_key, CardRecord.from_dict(row.card_data))
    return cached


def printing_key(set_code: str | None, collector_number: str | None) -> tuple[str, str] | None:
    """Cache key of an exact printing; None unless both parts are present."""
    if not set_code or not collector_number:
        return None
    return set_code.upper(), collector_number


async def get_cached_printings(
    session: AsyncSession, printings: Iterable[tuple[str, str]]
) -> dict[tuple[str, str], CardRecord]:
    """
    Look up cached records by exact printing.

    Keys are (upper-cased set code, collector number) pairs as built by
    printing_key. Returns a mapping of printing -> record for the
    printings in the cache.
    """
    wanted = set(printings)
    if not wanted:
        return {}
    result = await session.execute(
        select(CardCacheDB).where(CardCacheDB.set_code.in_(sorted({s for s, _ in wanted})))
    )
    cached: dict[tuple[str, str], CardRecord] = {}
    for row in result.scalars().all():
        key = printing_key(row.set_code, row.collector_number)
        if key is not None and key in wanted:
            cached.setdefault(key, CardRecord.from_dict(row.card_data))
    return cached


async def cache_cards(session: AsyncSession, cards: Iterable[CardRecord]) -> int:
    """
    Insert or refresh cached card records.

    Returns the number of records written.
    """
    count = 0
    for card in cards:
        row = await session.get(CardCacheDB, card.card_id)
        if row is None:
            session.add(
                CardCacheDB(
                    card_id=card.card_id,
                    name_key=card.name_key,
                    set_code=card.set_code.upper() if card.set_code else None,
                    collector_number=card.collector_number,
                    card_data=card.to_dict(),
                )
            )
        else:
            row.name_key = card.name_key
            row.set_code = card.set_code.upper() if card.set_code else None
            row.collector_number = card.collector_number
            row.card_data = card.to_dict()
        count += 1

    await session.flush()
    return count
