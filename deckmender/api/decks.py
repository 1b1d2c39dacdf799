"""
Deck API endpoints.

Import a deck list, then keep it in sync with the user's edits. Imported
decks are enriched with Scryfall data so their commander color identity
and card roles are known to the analysis endpoints.
"""

from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from deckmender.api.collection import LineErrorResponse
from deckmender.config import MAX_COMMANDERS
from deckmender.db import (
    create_deck,
    deck_to_model,
    delete_deck,
    get_deck,
    list_decks,
    update_deck_cards,
)
from deckmender.db.database import get_session
from deckmender.models.deck import Deck, DeckEntry, ParsedDeck
from deckmender.models.failure import DeckImportError
from deckmender.parsers.deck_list import parse_deck_list
from deckmender.services.card_lookup import CardLookup, get_card_lookup
from deckmender.services.card_resolver import resolve_parsed_deck
from deckmender.services.enrichment import promote_partner_commander

router = APIRouter(prefix="/decks", tags=["decks"])


class DeckEntryResponse(BaseModel):
    """A deck line, with card data when the lookup resolved it."""

    name: str
    quantity: int
    set_code: str | None = None
    collector_number: str | None = None
    card_id: str | None = None
    not_found: bool = False
    type_line: str = ""
    mana_value: float = 0.0
    color_identity: list[str] = Field(default_factory=list)
    image_url: str | None = None

    @classmethod
    def from_entry(cls, entry: DeckEntry) -> "DeckEntryResponse":
        card = entry.card
        return cls(
            name=entry.name,
            quantity=entry.quantity,
            set_code=entry.set_code,
            collector_number=entry.collector_number,
            card_id=entry.card_id,
            not_found=entry.not_found,
            type_line=card.type_line if card else "",
            mana_value=card.mana_value if card else 0.0,
            color_identity=list(card.color_identity) if card else [],
            image_url=card.image_url if card else None,
        )


class DeckResponse(BaseModel):
    """Response model for a single deck."""

    id: str
    name: str
    commander: list[DeckEntryResponse] = Field(default_factory=list)
    cards: list[DeckEntryResponse] = Field(default_factory=list)
    color_identity: list[str] = Field(default_factory=list)
    card_count: int = 0
    created_at: datetime | None = None

    @classmethod
    def from_deck(cls, deck: Deck) -> "DeckResponse":
        return cls(
            id=deck.id,
            name=deck.name,
            commander=[DeckEntryResponse.from_entry(e) for e in deck.commander],
            cards=[DeckEntryResponse.from_entry(e) for e in deck.cards],
            color_identity=list(deck.color_identity),
            card_count=deck.card_count(),
            created_at=deck.created_at,
        )


class DeckListResponse(BaseModel):
    """Response model for a list of decks."""

    user_id: str
    decks: list[DeckResponse]
    count: int


class DeckImportRequest(BaseModel):
    """Request model for importing a deck list."""

    name: str = Field(..., min_length=1, max_length=255)
    text: str = Field(
        ...,
        description="Deck list; '// Commander' and '// Deck' markers are optional",
        examples=["// Commander\n1 Atraxa, Praetors' Voice (C16) 28\n// Deck\n1 Sol Ring"],
    )


class DeckImportResponse(BaseModel):
    """Response model for deck import."""

    deck: DeckResponse
    not_found: list[str] = Field(
        default_factory=list,
        description="Names Scryfall could not resolve; kept but unscored",
    )
    errors: list[LineErrorResponse] = Field(default_factory=list)


class AddCardRequest(BaseModel):
    """Request model for adding a card to a deck."""

    name: str = Field(..., min_length=1)
    quantity: int = Field(default=1, ge=1)


async def load_deck_or_404(session: AsyncSession, user_id: str, deck_id: str) -> Deck:
    db_deck = await get_deck(session, user_id, deck_id)
    if db_deck is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Deck '{deck_id}' not found",
        )
    return deck_to_model(db_deck)


@router.post("/{user_id}/import", response_model=DeckImportResponse)
async def import_deck(
    user_id: str,
    request: DeckImportRequest,
    session: Annotated[AsyncSession, Depends(get_session)],
    lookup: Annotated[CardLookup, Depends(get_card_lookup)],
) -> DeckImportResponse:
    """
    Import and save a deck list.

    Without section markers the first card is the commander; a legendary
    creature right after it becomes a partner commander.
    """
    parsed = parse_deck_list(request.text)
    if not parsed.ok:
        raise DeckImportError(
            "No cards found in deck list",
            detail=parsed.errors[0].reason if parsed.errors else None,
        )

    enriched = promote_partner_commander(await resolve_parsed_deck(session, parsed, lookup))

    if len(enriched.commander) > MAX_COMMANDERS:
        raise DeckImportError(
            f"A deck has at most {MAX_COMMANDERS} commanders",
            detail=", ".join(e.name for e in enriched.commander),
        )

    db_deck = await create_deck(
        session, user_id, request.name.strip(), enriched.commander, enriched.cards
    )

    return DeckImportResponse(
        deck=DeckResponse.from_deck(deck_to_model(db_deck)),
        not_found=enriched.not_found,
        errors=[LineErrorResponse.from_error(e) for e in enriched.errors],
    )


@router.get("/{user_id}", response_model=DeckListResponse)
async def get_user_decks(
    user_id: str,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> DeckListResponse:
    """Get every deck of a user, oldest first."""
    decks = [deck_to_model(db_deck) for db_deck in await list_decks(session, user_id)]
    return DeckListResponse(
        user_id=user_id,
        decks=[DeckResponse.from_deck(deck) for deck in decks],
        count=len(decks),
    )


@router.get("/{user_id}/{deck_id}", response_model=DeckResponse)
async def get_user_deck(
    user_id: str,
    deck_id: str,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> DeckResponse:
    """Get a single deck."""
    return DeckResponse.from_deck(await load_deck_or_404(session, user_id, deck_id))


@router.delete("/{user_id}/{deck_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user_deck(
    user_id: str,
    deck_id: str,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> None:
    """Delete a deck. Its cards become available again."""
    if not await delete_deck(session, user_id, deck_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Deck '{deck_id}' not found",
        )


@router.post("/{user_id}/{deck_id}/cards", response_model=DeckResponse)
async def add_card_to_deck(
    user_id: str,
    deck_id: str,
    request: AddCardRequest,
    session: Annotated[AsyncSession, Depends(get_session)],
    lookup: Annotated[CardLookup, Depends(get_card_lookup)],
) -> DeckResponse:
    """
    Add copies of a card to a deck's main list.

    The name is resolved like an imported line; adding a card already in
    the deck increases its quantity.
    """
    parsed = ParsedDeck(cards=[DeckEntry(name=request.name.strip(), quantity=request.quantity)])
    enriched = await resolve_parsed_deck(session, parsed, lookup)
    if not enriched.resolved_cards:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Card '{request.name}' not found",
        )

    db_deck = await get_deck(session, user_id, deck_id)
    if db_deck is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Deck '{deck_id}' not found",
        )

    deck = deck_to_model(db_deck).with_card_added(enriched.resolved_cards[0])
    await update_deck_cards(session, db_deck, deck)
    return DeckResponse.from_deck(deck)


@router.delete("/{user_id}/{deck_id}/cards/{card_name}", response_model=DeckResponse)
async def remove_card_from_deck(
    user_id: str,
    deck_id: str,
    card_name: str,
    session: Annotated[AsyncSession, Depends(get_session)],
    quantity: Annotated[int | None, Query(ge=1)] = None,
) -> DeckResponse:
    """
    Remove copies of a card from a deck's main list (case-insensitive name).

    Without quantity, every copy is removed.
    """
    db_deck = await get_deck(session, user_id, deck_id)
    if db_deck is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Deck '{deck_id}' not found",
        )

    deck = deck_to_model(db_deck)
    updated = deck.with_card_removed(card_name, quantity)
    if updated.cards == deck.cards:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Card '{card_name}' is not in the deck",
        )

    await update_deck_cards(session, db_deck, updated)
    return DeckResponse.from_deck(updated)
