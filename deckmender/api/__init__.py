from deckmender.api.analysis import router as analysis_router
from deckmender.api.collection import router as collection_router
from deckmender.api.decks import router as decks_router
from deckmender.api.health import router as health_router

__all__ = [
    "analysis_router",
    "collection_router",
    "decks_router",
    "health_router",
]
