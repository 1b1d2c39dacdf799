"""
Deck analysis API endpoints.

Pipeline for one deck:
    collection + all decks -> availability -> candidate pool (free copies,
    legal color identity) -> relevance scoring against the deck's needs.

/candidates runs the pipeline against needs supplied by the caller.
/needs asks Claude to describe what the deck is missing.
/suggestions feeds the ranked candidates to Claude for concrete swaps.
"""

from typing import Annotated, Any

from fastapi import APIRouter, Body, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from deckmender.api.decks import load_deck_or_404
from deckmender.config import MAX_CANDIDATES
from deckmender.db import collection_to_model, get_collection, load_user_decks
from deckmender.db.database import get_session
from deckmender.filtering.candidate_pool import CandidatePool, build_candidate_pool
from deckmender.filtering.relevance import (
    ScoredCandidate,
    score_and_filter,
    summarize_candidates,
)
from deckmender.models.collection import Collection
from deckmender.models.deck import Deck
from deckmender.models.needs import NeedSpecification
from deckmender.services.availability import compute_availability
from deckmender.services.deck_analyst import DeckAnalyst, get_deck_analyst
from deckmender.services.deck_stats import compute_deck_stats

router = APIRouter(prefix="/analysis", tags=["analysis"])

NeedsBody = Annotated[
    dict[str, Any] | None,
    Body(
        description="Need specification (camelCase or snake_case keys)",
        examples=[{"needsCardDraw": True, "synergyOracleTerms": ["wall", "defender"]}],
    ),
]


class CandidateResponse(BaseModel):
    """A ranked collection card."""

    card_id: str
    name: str
    relevance_score: int
    quantity: int | None = None
    available: int | None = None
    type_line: str = ""
    mana_value: float = 0.0
    color_identity: list[str] = Field(default_factory=list)
    oracle_text: str = ""
    breakdown: dict[str, int] = Field(default_factory=dict)

    @classmethod
    def from_candidate(cls, candidate: ScoredCandidate) -> "CandidateResponse":
        card = candidate.card
        return cls(
            card_id=card.card_id,
            name=card.name,
            relevance_score=candidate.relevance_score,
            quantity=candidate.quantity,
            available=candidate.available,
            type_line=card.type_line,
            mana_value=card.mana_value,
            color_identity=list(card.color_identity),
            oracle_text=card.oracle_text,
            breakdown=candidate.breakdown,
        )


class CandidatesResponse(BaseModel):
    """Ranked candidates for a deck."""

    deck_id: str
    deck_identity: list[str] = Field(default_factory=list)
    candidates: list[CandidateResponse] = Field(default_factory=list)
    summary: str = ""
    pool_size: int = Field(0, description="Free, identity-legal cards considered")
    illegal_count: int = Field(0, description="Free cards outside the color identity")


class NeedsResponse(BaseModel):
    """What Claude thinks the deck needs."""

    deck_id: str
    needs: NeedSpecification


class SuggestionsResponse(CandidatesResponse):
    """Claude's swap suggestions plus the candidates it was shown."""

    needs: NeedSpecification
    suggestions: str


async def _load_collection(session: AsyncSession, user_id: str) -> Collection:
    db_collection = await get_collection(session, user_id)
    return collection_to_model(db_collection) if db_collection else Collection()


async def _rank_candidates(
    session: AsyncSession,
    user_id: str,
    deck: Deck,
    needs: NeedSpecification,
    limit: int,
) -> tuple[CandidatePool, list[ScoredCandidate]]:
    collection = await _load_collection(session, user_id)
    decks = await load_user_decks(session, user_id)

    pool = build_candidate_pool(compute_availability(collection, decks), deck.color_identity)
    candidates = score_and_filter(pool.cards, needs, deck.all_entries(), limit=limit)
    return pool, candidates


def _candidates_fields(
    deck: Deck, pool: CandidatePool, candidates: list[ScoredCandidate]
) -> dict[str, Any]:
    return {
        "deck_id": deck.id,
        "deck_identity": list(pool.deck_identity),
        "candidates": [CandidateResponse.from_candidate(c) for c in candidates],
        "summary": summarize_candidates(candidates),
        "pool_size": pool.size,
        "illegal_count": pool.illegal_count,
    }


@router.post("/{user_id}/{deck_id}/candidates", response_model=CandidatesResponse)
async def rank_candidates(
    user_id: str,
    deck_id: str,
    session: Annotated[AsyncSession, Depends(get_session)],
    needs_payload: NeedsBody = None,
    limit: Annotated[int, Query(ge=1, le=MAX_CANDIDATES)] = MAX_CANDIDATES,
) -> CandidatesResponse:
    """
    Rank the user's free, identity-legal cards against the deck's needs.

    An empty needs object is valid and yields no candidates.
    """
    needs = NeedSpecification.from_payload(needs_payload)
    deck = await load_deck_or_404(session, user_id, deck_id)
    pool, candidates = await _rank_candidates(session, user_id, deck, needs, limit)
    return CandidatesResponse(**_candidates_fields(deck, pool, candidates))


@router.post("/{user_id}/{deck_id}/needs", response_model=NeedsResponse)
async def derive_needs(
    user_id: str,
    deck_id: str,
    session: Annotated[AsyncSession, Depends(get_session)],
    analyst: Annotated[DeckAnalyst, Depends(get_deck_analyst)],
) -> NeedsResponse:
    """Ask Claude what the deck is missing."""
    deck = await load_deck_or_404(session, user_id, deck_id)
    needs = await analyst.request_needs(deck)
    return NeedsResponse(deck_id=deck.id, needs=needs)


@router.post("/{user_id}/{deck_id}/suggestions", response_model=SuggestionsResponse)
async def suggest_changes(
    user_id: str,
    deck_id: str,
    session: Annotated[AsyncSession, Depends(get_session)],
    analyst: Annotated[DeckAnalyst, Depends(get_deck_analyst)],
    needs_payload: NeedsBody = None,
    limit: Annotated[int, Query(ge=1, le=MAX_CANDIDATES)] = MAX_CANDIDATES,
) -> SuggestionsResponse:
    """
    Ask Claude for additions and cuts drawn from the ranked candidates.

    Without a needs body, the needs are derived through Claude first.
    """
    deck = await load_deck_or_404(session, user_id, deck_id)
    if needs_payload is None:
        needs = await analyst.request_needs(deck)
    else:
        needs = NeedSpecification.from_payload(needs_payload)

    pool, candidates = await _rank_candidates(session, user_id, deck, needs, limit)
    text = await analyst.request_suggestions(
        deck, compute_deck_stats(deck), needs, pool, candidates
    )

    return SuggestionsResponse(
        **_candidates_fields(deck, pool, candidates),
        needs=needs,
        suggestions=text,
    )
