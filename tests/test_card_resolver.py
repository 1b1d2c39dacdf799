"""Tests for resolving parsed decks through the card cache."""

from unittest.mock import AsyncMock

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from deckmender.db.operations import cache_cards
from deckmender.models.collection import Collection
from deckmender.models.deck import Deck
from deckmender.parsers.deck_list import parse_deck_list
from deckmender.services.availability import compute_availability
from deckmender.services.card_lookup import LookupResult
from deckmender.services.card_resolver import resolve_parsed_deck


@pytest.fixture
def c21(make_card):
    return make_card("Sol Ring", card_id="c21", set_code="C21", collector_number="263")


@pytest.fixture
def ltc(make_card):
    return make_card("Sol Ring", card_id="ltc", set_code="LTC", collector_number="301")


@pytest.fixture
def lookup() -> AsyncMock:
    lookup = AsyncMock()
    lookup.lookup_entries.return_value = LookupResult()
    return lookup


class TestResolveParsedDeck:
    async def test_cached_printing_kept(
        self, session: AsyncSession, lookup: AsyncMock, c21, ltc
    ) -> None:
        """A line naming a printing resolves to that printing's card id."""
        await cache_cards(session, [c21, ltc])
        parsed = parse_deck_list("1 Sol Ring (LTC) 301", positional_commander=False)

        enriched = await resolve_parsed_deck(session, parsed, lookup)

        assert [e.card_id for e in enriched.cards] == ["ltc"]
        lookup.lookup_entries.assert_not_awaited()

    async def test_deck_copy_counted_against_its_printing(
        self, session: AsyncSession, lookup: AsyncMock, c21, ltc
    ) -> None:
        """The owned LTC copy is in use; the C21 copy stays free."""
        await cache_cards(session, [c21, ltc])
        parsed = parse_deck_list("1 Sol Ring (LTC) 301", positional_commander=False)
        enriched = await resolve_parsed_deck(session, parsed, lookup)
        deck = Deck(id="d1", name="Deck", cards=tuple(enriched.cards))
        collection = Collection()
        collection.add_card(c21, 1)
        collection.add_card(ltc, 1)

        availability = {a.card_id: a.available for a in compute_availability(collection, [deck])}

        assert availability == {"c21": 1, "ltc": 0}

    async def test_uncached_printing_looked_up(
        self, session: AsyncSession, lookup: AsyncMock, c21, ltc
    ) -> None:
        """Another printing of a cached name still goes to the lookup."""
        await cache_cards(session, [c21])
        lookup.lookup_entries.return_value = LookupResult(found=[ltc])
        parsed = parse_deck_list("1 Sol Ring (LTC) 301", positional_commander=False)

        enriched = await resolve_parsed_deck(session, parsed, lookup)

        [requested] = lookup.lookup_entries.await_args.args[0]
        assert (requested.set_code, requested.collector_number) == ("LTC", "301")
        assert [e.card_id for e in enriched.cards] == ["ltc"]

    async def test_plain_name_uses_name_cache(
        self, session: AsyncSession, lookup: AsyncMock, c21
    ) -> None:
        """A line without a printing is served by any cached card of that name."""
        await cache_cards(session, [c21])
        parsed = parse_deck_list("1 Sol Ring", positional_commander=False)

        enriched = await resolve_parsed_deck(session, parsed, lookup)

        assert [e.card_id for e in enriched.cards] == ["c21"]
        lookup.lookup_entries.assert_not_awaited()

    async def test_fetched_cards_cached(
        self, session: AsyncSession, lookup: AsyncMock, ltc
    ) -> None:
        """Records the lookup returns are served from the cache next time."""
        lookup.lookup_entries.return_value = LookupResult(found=[ltc])
        parsed = parse_deck_list("1 Sol Ring (LTC) 301", positional_commander=False)
        await resolve_parsed_deck(session, parsed, lookup)
        lookup.lookup_entries.reset_mock()

        enriched = await resolve_parsed_deck(session, parsed, lookup)

        assert [e.card_id for e in enriched.cards] == ["ltc"]
        lookup.lookup_entries.assert_not_awaited()
