"""
Resolve parsed decks against the card cache, then Scryfall.

Cached cards skip the network entirely. Lines that name a printing are
matched against that exact printing; other lines by name. Everything
Scryfall resolves is written back to the cache for the next import.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from deckmender.db.operations import (
    cache_cards,
    get_cached_cards,
    get_cached_printings,
    printing_key,
)
from deckmender.models.card import CardRecord, normalize_name
from deckmender.models.deck import DeckEntry, EnrichedDeck, ParsedDeck
from deckmender.parsers.scryfall import front_face_name
from deckmender.services.card_lookup import CardLookup, LookupResult
from deckmender.services.enrichment import merge_lookup_results

logger = logging.getLogger(__name__)


def _answers_to(card: CardRecord) -> set[str]:
    return {card.name_key, normalize_name(front_face_name(card.name))}


async def resolve_parsed_deck(
    session: AsyncSession,
    parsed: ParsedDeck,
    lookup: CardLookup,
) -> EnrichedDeck:
    """
    Enrich a parsed deck with card records.

    Args:
        session: Database session for the card cache
        parsed: Parser output
        lookup: Scryfall client for names the cache does not hold

    Returns:
        EnrichedDeck; names nothing resolved are listed in not_found

    Raises:
        CardLookupError: Scryfall failed with anything other than 404
    """
    entries = parsed.all_entries()
    keyed = [(e, printing_key(e.set_code, e.collector_number)) for e in entries]

    # A line naming a printing only hits the cache for that exact printing
    by_printing = await get_cached_printings(session, {k for _, k in keyed if k is not None})
    by_name = await get_cached_cards(session, {e.name_key for e, k in keyed if k is None})

    missing: list[DeckEntry] = []
    for entry, key in keyed:
        card = by_printing.get(key) if key is not None else by_name.get(entry.name_key)
        if card is None or entry.name_key not in _answers_to(card):
            missing.append(entry)

    fetched = await lookup.lookup_entries(missing) if missing else LookupResult()
    if fetched.found:
        await cache_cards(session, fetched.found)

    logger.debug(
        "Resolved %d entries: %d from cache, %d fetched",
        len(entries),
        len(entries) - len(missing),
        len(fetched.found),
    )

    combined = LookupResult(
        found=[*by_name.values(), *by_printing.values(), *fetched.found],
        not_found=fetched.not_found,
        aliases=fetched.aliases,
    )
    return merge_lookup_results(parsed, combined)
