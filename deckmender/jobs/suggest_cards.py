"""
Rank collection cards for a deck from the command line.

Runs parse -> Scryfall lookup -> candidate pool -> relevance scoring
without a database. The collection is treated as entirely free except for
the copies the deck itself uses.

Usage:
    python -m deckmender.jobs.suggest_cards deck.txt collection.csv --needs needs.json
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from deckmender.config import MAX_CANDIDATES
from deckmender.filtering.candidate_pool import build_candidate_pool
from deckmender.filtering.relevance import (
    ScoredCandidate,
    score_and_filter,
    summarize_candidates,
)
from deckmender.models.collection import Collection
from deckmender.models.deck import Deck
from deckmender.models.failure import DeckImportError, KnownError
from deckmender.models.needs import NeedSpecification
from deckmender.parsers.deck_list import parse_deck_list
from deckmender.services.availability import compute_availability
from deckmender.services.card_lookup import CardLookup
from deckmender.services.enrichment import merge_lookup_results, promote_partner_commander

logger = logging.getLogger(__name__)


def load_needs(path: Path | None) -> NeedSpecification:
    """Read a need specification JSON file; no file means no preferences."""
    if path is None:
        return NeedSpecification()
    with open(path, encoding="utf-8") as f:
        return NeedSpecification.from_payload(json.load(f))


async def run_suggest(
    deck_text: str,
    collection_text: str,
    needs: NeedSpecification,
    limit: int = MAX_CANDIDATES,
    lookup: CardLookup | None = None,
) -> list[ScoredCandidate]:
    """
    Score a collection against a deck.

    Raises:
        DeckImportError: The deck or collection text holds no cards
        CardLookupError: Scryfall failed
    """
    parsed_deck = parse_deck_list(deck_text)
    if not parsed_deck.ok:
        raise DeckImportError("No cards found in deck list")
    parsed_collection = parse_deck_list(collection_text, positional_commander=False)
    if not parsed_collection.ok:
        raise DeckImportError("No cards found in collection")

    client = lookup or CardLookup()
    try:
        deck_lookup = await client.lookup_entries(parsed_deck.all_entries())
        collection_lookup = await client.lookup_entries(parsed_collection.all_entries())
    finally:
        if lookup is None:
            await client.aclose()

    enriched_deck = promote_partner_commander(merge_lookup_results(parsed_deck, deck_lookup))
    enriched_collection = merge_lookup_results(parsed_collection, collection_lookup)

    for name in [*enriched_deck.not_found, *enriched_collection.not_found]:
        logger.warning("Card not found on Scryfall: %s", name)

    deck = Deck(
        id="cli",
        name="cli",
        commander=tuple(enriched_deck.commander),
        cards=tuple(enriched_deck.cards),
    )
    collection = Collection()
    for entry in enriched_collection.resolved_cards:
        if entry.card is not None:
            collection.add_card(entry.card, entry.quantity)

    pool = build_candidate_pool(compute_availability(collection, [deck]), deck.color_identity)
    return score_and_filter(pool.cards, needs, deck.all_entries(), limit=limit)


def format_candidates(candidates: list[ScoredCandidate]) -> str:
    """Render a ranking as aligned text lines."""
    lines = [summarize_candidates(candidates)]
    for rank, candidate in enumerate(candidates, start=1):
        lines.append(
            f"{rank:>3}. [{candidate.relevance_score:>3}] {candidate.name} "
            f"({candidate.available} free) - {candidate.card.type_line}"
        )
    return "\n".join(lines)


def main(argv: list[str] | None = None) -> int:
    """CLI entry point."""
    parser = argparse.ArgumentParser(description="Rank collection cards for a Commander deck")
    parser.add_argument("deck", type=Path, help="Deck list file")
    parser.add_argument("collection", type=Path, help="Collection list or CSV export")
    parser.add_argument("--needs", type=Path, default=None, help="Need specification JSON")
    parser.add_argument(
        "--limit",
        type=int,
        default=MAX_CANDIDATES,
        help=f"Maximum candidates to print (default {MAX_CANDIDATES})",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        needs = load_needs(args.needs)
        candidates = asyncio.run(
            run_suggest(
                args.deck.read_text(encoding="utf-8"),
                args.collection.read_text(encoding="utf-8"),
                needs,
                limit=max(1, min(args.limit, MAX_CANDIDATES)),
            )
        )
    except KnownError as e:
        logger.error("%s: %s", e.message, e.detail or "")
        return 1

    print(format_candidates(candidates))
    return 0


if __name__ == "__main__":
    sys.exit(main())
