from deckmender.db.database import get_session, init_db
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

__all__ = [
    "add_collection_cards",
    "cache_cards",
    "collection_to_model",
    "create_collection",
    "create_deck",
    "deck_to_model",
    "delete_collection",
    "delete_deck",
    "get_cached_cards",
    "get_cached_printings",
    "get_collection",
    "get_deck",
    "get_or_create_collection",
    "get_session",
    "init_db",
    "list_decks",
    "load_user_decks",
    "remove_collection_card",
    "update_deck_cards",
]
