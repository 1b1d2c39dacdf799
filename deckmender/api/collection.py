"""
Collection API endpoints.

Import, browse and trim a user's card collection. Every listing reports
how many copies are committed to the user's decks and how many are free.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from deckmender.db import (
    add_collection_cards,
    collection_to_model,
    delete_collection,
    get_collection,
    load_user_decks,
    remove_collection_card,
)
from deckmender.db.database import get_session
from deckmender.models.collection import AvailableCard, Collection
from deckmender.models.deck import LineError
from deckmender.models.failure import DeckImportError
from deckmender.parsers.deck_list import parse_deck_list
from deckmender.services.availability import compute_availability
from deckmender.services.card_lookup import CardLookup, get_card_lookup
from deckmender.services.card_resolver import resolve_parsed_deck

router = APIRouter(prefix="/collection", tags=["collection"])


class CollectionCardResponse(BaseModel):
    """One owned printing with its availability."""

    card_id: str
    name: str
    quantity: int
    in_use: int = 0
    available: int = 0
    type_line: str = ""
    mana_value: float = 0.0
    color_identity: list[str] = Field(default_factory=list)
    set_code: str | None = None
    collector_number: str | None = None
    image_url: str | None = None

    @classmethod
    def from_available(cls, card: AvailableCard) -> "CollectionCardResponse":
        record = card.card
        return cls(
            card_id=record.card_id,
            name=record.name,
            quantity=card.quantity,
            in_use=card.in_use,
            available=card.available,
            type_line=record.type_line,
            mana_value=record.mana_value,
            color_identity=list(record.color_identity),
            set_code=record.set_code,
            collector_number=record.collector_number,
            image_url=record.image_url,
        )


class CollectionResponse(BaseModel):
    """Response model for collection data."""

    user_id: str
    cards: list[CollectionCardResponse] = Field(default_factory=list)
    total_cards: int = 0
    unique_cards: int = 0


class CollectionImportRequest(BaseModel):
    """Request model for importing a collection from text."""

    text: str = Field(
        ...,
        description="Deck-list lines or a CSV export (ManaBox and similar)",
        examples=["1 Sol Ring (C21) 263\n4x Lightning Bolt"],
    )


class LineErrorResponse(BaseModel):
    """An input line that could not be read."""

    line: str
    reason: str

    @classmethod
    def from_error(cls, error: LineError) -> "LineErrorResponse":
        return cls(line=error.line, reason=error.reason)


class ImportResponse(BaseModel):
    """Response model for collection import."""

    user_id: str
    cards_added: int = Field(..., description="Distinct printings added or increased")
    copies_added: int = Field(..., description="Total copies added")
    total_cards: int
    unique_cards: int
    not_found: list[str] = Field(
        default_factory=list,
        description="Names Scryfall could not resolve; not added",
    )
    errors: list[LineErrorResponse] = Field(
        default_factory=list,
        description="Lines that could not be parsed; not added",
    )


class DeleteResponse(BaseModel):
    """Response model for delete operations."""

    user_id: str
    deleted: bool
    message: str = Field(
        default="",
        description="User-friendly message about the deletion",
    )


async def _collection_response(
    session: AsyncSession,
    user_id: str,
    collection: Collection,
    only_available: bool = False,
) -> CollectionResponse:
    decks = await load_user_decks(session, user_id)
    cards = compute_availability(collection, decks)
    if only_available:
        cards = [card for card in cards if card.is_available]

    return CollectionResponse(
        user_id=user_id,
        cards=[CollectionCardResponse.from_available(card) for card in cards],
        total_cards=collection.total_cards(),
        unique_cards=collection.unique_cards(),
    )


@router.get("/{user_id}", response_model=CollectionResponse)
async def get_user_collection(
    user_id: str,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> CollectionResponse:
    """
    Get a user's card collection.

    Every entry carries in_use (copies in the user's decks) and available.
    A user with no collection gets an empty one.
    """
    db_collection = await get_collection(session, user_id)
    if db_collection is None:
        return CollectionResponse(user_id=user_id)

    return await _collection_response(session, user_id, collection_to_model(db_collection))


@router.get("/{user_id}/available", response_model=CollectionResponse)
async def get_available_cards(
    user_id: str,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> CollectionResponse:
    """
    Get the cards with at least one copy not committed to any deck.

    total_cards and unique_cards still describe the whole collection.
    """
    db_collection = await get_collection(session, user_id)
    if db_collection is None:
        return CollectionResponse(user_id=user_id)

    return await _collection_response(
        session, user_id, collection_to_model(db_collection), only_available=True
    )


@router.post("/{user_id}/import", response_model=ImportResponse)
async def import_user_collection(
    user_id: str,
    request: CollectionImportRequest,
    session: Annotated[AsyncSession, Depends(get_session)],
    lookup: Annotated[CardLookup, Depends(get_card_lookup)],
) -> ImportResponse:
    """
    Add cards from text to a user's collection.

    Supported formats (auto-detected):
    - Lines: "1 Sol Ring (C21) 263", "Sol Ring (C21) 263 1", "4x Lightning Bolt"
    - CSV: any export with a Name column (ManaBox: Name, Set code,
      Collector number, Quantity)

    Cards already owned are increased, never duplicated. Unreadable lines
    and unknown names are reported and skipped.
    """
    if not request.text or not request.text.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Import text cannot be empty",
        )

    parsed = parse_deck_list(request.text, positional_commander=False)
    if not parsed.ok:
        raise DeckImportError(
            "No cards found in import text",
            detail=parsed.errors[0].reason if parsed.errors else None,
        )

    enriched = await resolve_parsed_deck(session, parsed, lookup)
    resolved = [*enriched.resolved_commanders, *enriched.resolved_cards]

    db_collection = await add_collection_cards(
        session,
        user_id,
        [(entry.card, entry.quantity) for entry in resolved if entry.card is not None],
    )
    model = collection_to_model(db_collection)

    return ImportResponse(
        user_id=user_id,
        cards_added=len({entry.card_id for entry in resolved}),
        copies_added=sum(entry.quantity for entry in resolved),
        total_cards=model.total_cards(),
        unique_cards=model.unique_cards(),
        not_found=enriched.not_found,
        errors=[LineErrorResponse.from_error(e) for e in enriched.errors],
    )


@router.delete("/{user_id}/cards/{card_id}", response_model=CollectionResponse)
async def remove_card_from_collection(
    user_id: str,
    card_id: str,
    session: Annotated[AsyncSession, Depends(get_session)],
    quantity: Annotated[int | None, Query(ge=1)] = None,
) -> CollectionResponse:
    """
    Remove copies of one printing from a user's collection.

    Without quantity, every copy is removed.
    """
    removed = await remove_collection_card(session, user_id, card_id, quantity)
    if not removed:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Card '{card_id}' is not in the collection",
        )

    db_collection = await get_collection(session, user_id)
    if db_collection is None:
        return CollectionResponse(user_id=user_id)
    return await _collection_response(session, user_id, collection_to_model(db_collection))


@router.delete("/{user_id}", response_model=DeleteResponse)
async def delete_user_collection(
    user_id: str,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> DeleteResponse:
    """
    Delete a user's card collection.

    Decks are kept; they simply stop drawing on any owned copies.
    """
    deleted = await delete_collection(session, user_id)

    if deleted:
        message = "Your collection has been deleted. You can import a new collection at any time."
    else:
        message = "No collection found to delete."

    return DeleteResponse(user_id=user_id, deleted=deleted, message=message)
