"""
Candidate Pool Builder - availability and color-identity filtering.

Reduces a user's collection to the cards that may legally and physically
be added to a deck, before relevance scoring.

INVARIANTS:
- Filtering is monotonic (only removes cards, never adds)
- Input order is preserved (the scorer breaks ties by it)
- Same availability + identity -> same pool (deterministic)
- Colorless cards (empty identity) are legal in every deck
"""

import logging
from collections import deque
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from deckmender.config import METRICS_HISTORY_SIZE
from deckmender.models.collection import AvailableCard

logger = logging.getLogger(__name__)


@dataclass
class CandidatePoolMetrics:
    """Metrics recorded per candidate pool build."""

    total_cards: int = 0
    after_availability_filter: int = 0
    after_color_filter: int = 0
    final_pool_size: int = 0


# Module-level metrics accumulator, oldest records dropped first
_metrics_history: deque[CandidatePoolMetrics] = deque(maxlen=METRICS_HISTORY_SIZE)


def get_pool_metrics() -> list[CandidatePoolMetrics]:
    """Get all recorded metrics."""
    return list(_metrics_history)


def reset_pool_metrics() -> None:
    """Reset metrics history (for testing)."""
    _metrics_history.clear()


@dataclass
class CandidatePool:
    """
    Free, identity-legal collection cards for one deck.

    Attributes:
        cards: Surviving cards in collection order
        deck_identity: The deck's color identity, WUBRG order
        unavailable_count: Entries dropped for having no free copy
        illegal_count: Free entries dropped for color identity
    """

    cards: list[AvailableCard] = field(default_factory=list)
    deck_identity: tuple[str, ...] = ()
    unavailable_count: int = 0
    illegal_count: int = 0

    @property
    def size(self) -> int:
        return len(self.cards)


def is_color_identity_legal(card_identity: Iterable[str], deck_identity: Iterable[str]) -> bool:
    """
    Check a card's color identity against a deck's.

    Colorless cards are always legal; otherwise every color of the card
    must belong to the deck identity.
    """
    identity = set(card_identity)
    if not identity:
        return True
    return identity <= set(deck_identity)


def _filter_by_availability(cards: Sequence[AvailableCard]) -> list[AvailableCard]:
    return [card for card in cards if card.available > 0]


def _filter_by_color(
    cards: Sequence[AvailableCard],
    deck_identity: tuple[str, ...],
) -> list[AvailableCard]:
    """Keep cards whose color identity fits inside the deck identity."""
    return [
        card for card in cards if is_color_identity_legal(card.card.color_identity, deck_identity)
    ]


def build_candidate_pool(
    availability: Sequence[AvailableCard],
    deck_identity: Iterable[str],
) -> CandidatePool:
    """
    Build the candidate pool for a deck.

    Applies filters in order:
    1. Availability (at least one free copy)
    2. Color identity (subset of the deck identity)

    Args:
        availability: Output of compute_availability for the user
        deck_identity: Color identity of the deck's commanders

    Returns:
        CandidatePool with the surviving cards and drop counts
    """
    identity = tuple(deck_identity)
    metrics = CandidatePoolMetrics(total_cards=len(availability))

    free = _filter_by_availability(availability)
    metrics.after_availability_filter = len(free)

    legal = _filter_by_color(free, identity)
    metrics.after_color_filter = len(legal)

    metrics.final_pool_size = len(legal)
    _metrics_history.append(metrics)

    logger.info(
        "candidate_pool_built",
        extra={
            "total": metrics.total_cards,
            "after_availability": metrics.after_availability_filter,
            "after_color": metrics.after_color_filter,
            "final": metrics.final_pool_size,
            "deck_identity": "".join(identity) or "C",
            "reduction_pct": (
                round(100 * (1 - metrics.final_pool_size / metrics.total_cards), 1)
                if metrics.total_cards > 0
                else 0
            ),
        },
    )

    return CandidatePool(
        cards=legal,
        deck_identity=identity,
        unavailable_count=len(availability) - len(free),
        illegal_count=len(free) - len(legal),
    )
