"""Tests for database CRUD operations."""

from sqlalchemy.ext.asyncio import AsyncSession

from deckmender.db.operations import (
    add_collection_cards,
    cache_cards,
    collection_to_model,
    create_collection,
    create_deck,
    deck_to_model,
    delete_collection,
    delete_deck,
    get_cached_cards,
    get_cached_printings,
    get_collection,
    get_deck,
    get_or_create_collection,
    list_decks,
    load_user_decks,
    remove_collection_card,
    update_deck_cards,
)
from deckmender.models.deck import DeckEntry


class TestCollectionOperations:
    async def test_create_collection(self, session: AsyncSession) -> None:
        """Can create a new collection."""
        collection = await create_collection(session, "user-123")

        assert collection.id is not None
        assert collection.user_id == "user-123"

    async def test_get_collection(self, session: AsyncSession) -> None:
        """Can retrieve an existing collection."""
        await create_collection(session, "user-123")
        await session.commit()

        collection = await get_collection(session, "user-123")

        assert collection is not None
        assert collection.user_id == "user-123"

    async def test_get_nonexistent_collection(self, session: AsyncSession) -> None:
        """Returns None for nonexistent collection."""
        assert await get_collection(session, "nonexistent") is None

    async def test_get_or_create(self, session: AsyncSession) -> None:
        """Creates once, then returns the existing collection."""
        first, created = await get_or_create_collection(session, "user-123")
        second, created_again = await get_or_create_collection(session, "user-123")

        assert created
        assert not created_again
        assert first.id == second.id

    async def test_add_cards_merges_by_card_id(self, session: AsyncSession, make_card) -> None:
        """Re-adding an owned printing increases its quantity."""
        sol_ring = make_card("Sol Ring")
        await add_collection_cards(session, "user-123", [(sol_ring, 2)])
        await add_collection_cards(
            session, "user-123", [(sol_ring, 1), (make_card("Arcane Signet"), 1)]
        )
        await session.commit()

        collection = collection_to_model(await get_collection(session, "user-123"))

        assert collection.get_quantity(sol_ring.card_id) == 3
        assert collection.unique_cards() == 2
        assert collection.entries[sol_ring.card_id].card == sol_ring

    async def test_remove_card_partial(self, session: AsyncSession, make_card) -> None:
        """Removing some copies keeps the row."""
        sol_ring = make_card("Sol Ring")
        await add_collection_cards(session, "user-123", [(sol_ring, 3)])

        assert await remove_collection_card(session, "user-123", sol_ring.card_id, 2)
        await session.commit()

        collection = collection_to_model(await get_collection(session, "user-123"))
        assert collection.get_quantity(sol_ring.card_id) == 1

    async def test_remove_card_all(self, session: AsyncSession, make_card) -> None:
        """Removing without a quantity deletes the row."""
        sol_ring = make_card("Sol Ring")
        await add_collection_cards(session, "user-123", [(sol_ring, 3)])

        assert await remove_collection_card(session, "user-123", sol_ring.card_id)
        await session.commit()

        collection = collection_to_model(await get_collection(session, "user-123"))
        assert collection.unique_cards() == 0

    async def test_remove_unowned_card(self, session: AsyncSession) -> None:
        """Removing from a missing collection or card reports False."""
        assert not await remove_collection_card(session, "nobody", "id-sol-ring")

        await create_collection(session, "user-123")
        assert not await remove_collection_card(session, "user-123", "id-sol-ring")

    async def test_delete_collection(self, session: AsyncSession, make_card) -> None:
        """Deleting removes the collection and its cards."""
        await add_collection_cards(session, "user-123", [(make_card("Sol Ring"), 1)])
        await session.commit()

        assert await delete_collection(session, "user-123")
        await session.commit()

        assert await get_collection(session, "user-123") is None
        assert not await delete_collection(session, "user-123")


class TestDeckOperations:
    async def test_create_and_get_deck(self, session: AsyncSession, make_entry) -> None:
        """A saved deck round-trips through its row."""
        commander = [make_entry("Atraxa", color_identity=["W", "U", "B", "G"])]
        cards = [make_entry("Sol Ring"), DeckEntry(name="Sol Rnig", quantity=1)]

        db_deck = await create_deck(session, "user-123", "Atraxa", commander, cards)
        await session.commit()

        loaded = await get_deck(session, "user-123", db_deck.id)
        assert loaded is not None
        deck = deck_to_model(loaded)
        assert deck.name == "Atraxa"
        assert deck.commander == tuple(commander)
        assert deck.cards == tuple(cards)
        assert deck.color_identity == ("W", "U", "B", "G")
        assert deck.created_at is not None

    async def test_deck_is_scoped_to_user(self, session: AsyncSession) -> None:
        """Another user's deck id is not found."""
        db_deck = await create_deck(session, "user-123", "Mine", [], [])
        await session.commit()

        assert await get_deck(session, "user-456", db_deck.id) is None

    async def test_list_decks(self, session: AsyncSession) -> None:
        """Lists only the user's decks."""
        await create_deck(session, "user-123", "First", [], [])
        await create_deck(session, "user-123", "Second", [], [])
        await create_deck(session, "user-456", "Other", [], [])
        await session.commit()

        decks = await list_decks(session, "user-123")

        assert sorted(d.name for d in decks) == ["First", "Second"]
        assert len(await load_user_decks(session, "user-123")) == 2

    async def test_update_deck_cards(self, session: AsyncSession, make_entry) -> None:
        """Edited card lists are stored."""
        db_deck = await create_deck(session, "user-123", "Deck", [], [make_entry("Forest", 10)])
        await session.commit()

        deck = deck_to_model(db_deck).with_card_added(make_entry("Sol Ring"))
        await update_deck_cards(session, db_deck, deck)
        await session.commit()

        loaded = deck_to_model(await get_deck(session, "user-123", db_deck.id))
        assert [(e.name, e.quantity) for e in loaded.cards] == [("Forest", 10), ("Sol Ring", 1)]

    async def test_delete_deck(self, session: AsyncSession) -> None:
        """Deleting reports whether a deck was removed."""
        db_deck = await create_deck(session, "user-123", "Deck", [], [])
        await session.commit()

        assert not await delete_deck(session, "user-456", db_deck.id)
        assert await delete_deck(session, "user-123", db_deck.id)
        await session.commit()

        assert await get_deck(session, "user-123", db_deck.id) is None


class TestCardCache:
    async def test_cache_and_lookup_by_name(self, session: AsyncSession, make_card) -> None:
        """Cached records are found by lower-cased name."""
        sol_ring = make_card("Sol Ring", type_line="Artifact")

        assert await cache_cards(session, [sol_ring]) == 1
        await session.commit()

        cached = await get_cached_cards(session, ["sol ring", "arcane signet"])

        assert cached == {"sol ring": sol_ring}

    async def test_cache_refreshes_existing(self, session: AsyncSession, make_card) -> None:
        """Caching the same card id again updates its data."""
        await cache_cards(session, [make_card("Sol Ring", oracle_text="old")])
        await cache_cards(session, [make_card("Sol Ring", oracle_text="{T}: Add {C}{C}.")])
        await session.commit()

        cached = await get_cached_cards(session, ["sol ring"])

        assert cached["sol ring"].oracle_text == "{T}: Add {C}{C}."

    async def test_empty_lookup(self, session: AsyncSession) -> None:
        """No names means no query and no results."""
        assert await get_cached_cards(session, []) == {}

    async def test_lookup_by_printing(self, session: AsyncSession, make_card) -> None:
        """Each printing of a name is found under its own set and number."""
        c21 = make_card("Sol Ring", card_id="c21", set_code="C21", collector_number="263")
        ltc = make_card("Sol Ring", card_id="ltc", set_code="LTC", collector_number="301")
        await cache_cards(session, [c21, ltc])
        await session.commit()

        cached = await get_cached_printings(session, [("LTC", "301"), ("LTC", "999")])

        assert cached == {("LTC", "301"): ltc}

    async def test_printing_set_code_case(self, session: AsyncSession, make_card) -> None:
        """Set codes are stored upper-cased."""
        await cache_cards(
            session,
            [make_card("Sol Ring", card_id="c21", set_code="c21", collector_number="263")],
        )
        await session.commit()

        cached = await get_cached_printings(session, [("C21", "263")])

        assert cached[("C21", "263")].card_id == "c21"
