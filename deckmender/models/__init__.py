from deckmender.models.card import COLOR_ORDER, CardRecord, normalize_name, sort_colors
from deckmender.models.collection import AvailableCard, Collection, CollectionEntry
from deckmender.models.deck import (
    Deck,
    DeckEntry,
    EnrichedDeck,
    LineError,
    ParsedDeck,
)
from deckmender.models.failure import (
    DeckImportError,
    FailureDetail,
    FailureKind,
    FailureResponse,
    KnownError,
)
from deckmender.models.needs import NeedSpecification, NeedSpecificationError

__all__ = [
    "COLOR_ORDER",
    "AvailableCard",
    "CardRecord",
    "Collection",
    "CollectionEntry",
    "Deck",
    "DeckEntry",
    "DeckImportError",
    "EnrichedDeck",
    "FailureDetail",
    "FailureKind",
    "FailureResponse",
    "KnownError",
    "LineError",
    "NeedSpecification",
    "NeedSpecificationError",
    "ParsedDeck",
    "normalize_name",
    "sort_colors",
]
