"""
DeckMender services.

Card lookup, enrichment, availability and Claude-backed deck analysis.
"""

from deckmender.services.availability import (
    AvailableCard,
    available_cards,
    compute_availability,
)
from deckmender.services.card_lookup import CardLookup, CardLookupError, LookupResult
from deckmender.services.deck_analyst import (
    AnalysisResponseError,
    AnalysisUnavailableError,
    DeckAnalyst,
)
from deckmender.services.deck_stats import DeckStats, compute_deck_stats
from deckmender.services.enrichment import (
    commander_color_identity,
    merge_lookup_results,
    promote_partner_commander,
)

__all__ = [
    # Availability
    "AvailableCard",
    "available_cards",
    "compute_availability",
    # Scryfall lookup
    "CardLookup",
    "CardLookupError",
    "LookupResult",
    # Enrichment
    "commander_color_identity",
    "merge_lookup_results",
    "promote_partner_commander",
    # Deck analysis
    "AnalysisResponseError",
    "AnalysisUnavailableError",
    "DeckAnalyst",
    "DeckStats",
    "compute_deck_stats",
]
