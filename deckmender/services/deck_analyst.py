"""
Deck analyst backed by Claude.

Two requests:
1. request_needs: read the deck and answer with a NeedSpecification JSON
   object, which drives the relevance scorer.
2. request_suggestions: given deck stats and the ranked candidates, write
   concrete additions and cuts.

The model only ever sees candidates the scorer already selected, so every
suggested addition is a free, identity-legal card from the collection.
"""

import json
import logging
import re
from collections import deque
from collections.abc import Sequence
from typing import Any

import anthropic
from anthropic.types import MessageParam, TextBlock

from deckmender.config import METRICS_HISTORY_SIZE, settings
from deckmender.filtering.candidate_pool import CandidatePool
from deckmender.filtering.relevance import ScoredCandidate, summarize_candidates
from deckmender.models.card import CardRecord
from deckmender.models.deck import Deck, DeckEntry
from deckmender.models.failure import FailureKind, KnownError
from deckmender.models.needs import NeedSpecification
from deckmender.services.deck_stats import (
    TARGET_AIR_DEFENSE,
    TARGET_CARD_DRAW,
    TARGET_RAMP,
    TARGET_REMOVAL,
    DeckStats,
)

logger = logging.getLogger(__name__)

# First {...} span of the reply; the model sometimes wraps JSON in prose
JSON_OBJECT_PATTERN = re.compile(r"\{[\s\S]*\}")


class AnalysisUnavailableError(KnownError):
    """No API key is configured."""

    def __init__(self) -> None:
        super().__init__(
            kind=FailureKind.SERVICE_UNAVAILABLE,
            message="Deck analysis is not available",
            detail="Anthropic API key not configured",
            suggestion="Set ANTHROPIC_API_KEY, or score candidates with your own needs.",
            status_code=503,
        )


class AnalysisResponseError(KnownError):
    """Claude failed or answered with something unusable."""

    def __init__(self, detail: str):
        super().__init__(
            kind=FailureKind.EXTERNAL_API_ERROR,
            message="Deck analysis failed",
            detail=detail,
            suggestion="Try again, or score candidates with your own needs.",
            status_code=502,
        )


# =============================================================================
# TOKEN METRICS
# =============================================================================

_token_metrics: deque[dict[str, Any]] = deque(maxlen=METRICS_HISTORY_SIZE)


def get_token_metrics() -> list[dict[str, Any]]:
    """Get recorded token metrics."""
    return list(_token_metrics)


def reset_token_metrics() -> None:
    """Reset token metrics (for testing)."""
    _token_metrics.clear()


def _record_token_usage(request: str, input_tokens: int, output_tokens: int) -> None:
    _token_metrics.append(
        {
            "request": request,
            "input_tokens": input_tokens,
            "output_tokens": output_tokens,
            "total_tokens": input_tokens + output_tokens,
        }
    )
    logger.info(
        "analysis_token_usage",
        extra={
            "request": request,
            "input_tokens": input_tokens,
            "output_tokens": output_tokens,
        },
    )


# =============================================================================
# PROMPTS
# =============================================================================

NEEDS_PROMPT = """You are a Magic: The Gathering Commander deck analyst.

COMMANDER:
{commander}

CURRENT DECK ({card_count} cards):
{deck_list}

Analyze this deck thoroughly and return ONLY a JSON object (no other text) with this exact structure:

{{
  "deckStrategy": "2-3 sentence summary of what this deck is trying to do",
  "gaps": ["specific gap 1", "specific gap 2"],
  "wantedKeywords": ["Flying", "Lifelink"],
  "synergyOracleTerms": ["wall", "defender", "toughness"],
  "wantedCreatureTypes": ["Wall", "Wizard"],
  "wantBigCreatures": false,
  "minPower": null,
  "needsRemoval": true,
  "needsRamp": true,
  "needsCardDraw": true,
  "needsBoardWipes": false,
  "needsCounterspells": false,
  "needsProtection": false,
  "needsLandFetch": false,
  "needsGraveyard": false,
  "needsTokens": false,
  "needsTutor": false,
  "removalCount": 4,
  "rampCount": 8,
  "cardDrawCount": 5,
  "idealRemovalCount": 8,
  "idealRampCount": 10,
  "idealCardDrawCount": 10,
  "additionalOracleTerms": ["other relevant term"],
  "cmcCurveNote": "curve is top-heavy, needs more 2-3 drops"
}}

Be precise and specific. The wantedKeywords, synergyOracleTerms and wantedCreatureTypes \
are used to search the player's collection, so include ALL relevant terms for this \
deck's strategy."""

SUGGESTIONS_PROMPT = """ANALYZE COMMANDER DECK

COMMANDER: {commander}
COLOR IDENTITY: {identity}

DECK STRATEGY: {strategy}
KNOWN GAPS: {gaps}

CURRENT DECK ({card_count} cards):
{deck_list}

CURRENT STATS:
- Card Draw: {draw} (need {target_draw}+, fewer if the commander draws)
- Ramp: {ramp} (need {target_ramp}+, fewer if the commander makes mana)
- Removal: {removal} (need {target_removal}+, fewer if the commander removes threats)
- Flying: {flying} | Reach: {reach} | Combined Air Defense: {air} (need {target_air}+ total)
- Mana Curve: {curve}

CANDIDATES FROM COLLECTION ({summary}):
{candidates}{illegal_note}

INSTRUCTIONS:
1. Read what the commander does each turn. If it already draws, ramps or removes, \
the deck needs less of that role.
2. If a role count is excessive, cut only that role and add DIFFERENT roles.
3. Check the deck's composition before suggesting payoffs (tribal payoffs need 15+ \
of the type, spell payoffs need 20+ instants and sorceries).
4. Only suggest additions from the candidates above; none of them are in the deck.
5. Keep exactly 100 cards: remove as many cards as you add.

RESPONSE FORMAT:
**1. COMMANDER STRATEGY**
- Core strategy in 2-3 sentences

**2. CRITICAL GAPS**
- What's missing, mana curve issues

**3. TOP ADDITIONS**
- 5-10 cards from the candidates with a brief reason

**4. RECOMMENDED CUTS**
- The same number of cards to remove, with a brief reason

**5. SUMMARY**
- Net change and key improvements"""


def _card_line(card: CardRecord) -> str:
    return (
        f"{card.name} | {card.type_line} | {card.mana_value:g}CMC | "
        f"{', '.join(card.keywords)} | {card.oracle_text}"
    )


def _commander_text(commanders: Sequence[DeckEntry]) -> str:
    lines = [_card_line(e.card) if e.card else e.name for e in commanders]
    return "\n".join(lines) or "(none)"


def _deck_list(deck: Deck) -> str:
    return "\n".join(
        f"{e.quantity}x {_card_line(e.card)}" if e.card else f"{e.quantity}x {e.name}"
        for e in deck.cards
    )


def _candidate_list(candidates: Sequence[ScoredCandidate]) -> str:
    if not candidates:
        return "(no relevant cards are free in this color identity)"
    return "\n".join(
        f"[{c.relevance_score}] {c.card.name} | {c.card.type_line} | "
        f"{c.card.mana_value:g}CMC | {c.card.oracle_text}"
        for c in candidates
    )


def extract_json_object(text: str) -> dict[str, Any]:
    """
    Parse the JSON object in a model reply.

    Raises:
        AnalysisResponseError: No object found or it does not parse
    """
    match = JSON_OBJECT_PATTERN.search(text)
    if not match:
        raise AnalysisResponseError("Response did not contain a JSON object")
    try:
        payload = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        raise AnalysisResponseError(f"Response JSON did not parse: {e}") from e
    if not isinstance(payload, dict):
        raise AnalysisResponseError("Response JSON is not an object")
    return payload


class DeckAnalyst:
    """Claude-backed deck analysis."""

    def __init__(self, client: anthropic.AsyncAnthropic | None = None):
        if client is None:
            if not settings.anthropic_api_key:
                raise AnalysisUnavailableError()
            client = anthropic.AsyncAnthropic(api_key=settings.anthropic_api_key)
        self._client = client

    async def _complete(self, request: str, prompt: str, max_tokens: int) -> str:
        messages: list[MessageParam] = [{"role": "user", "content": prompt}]
        try:
            response = await self._client.messages.create(
                model=settings.anthropic_model,
                max_tokens=max_tokens,
                messages=messages,
            )
        except anthropic.APIError as e:
            logger.warning("Anthropic request %s failed: %s", request, e)
            raise AnalysisResponseError(str(e)) from e

        if response.usage:
            _record_token_usage(
                request=request,
                input_tokens=response.usage.input_tokens,
                output_tokens=response.usage.output_tokens,
            )

        text = "".join(block.text for block in response.content if isinstance(block, TextBlock))
        return text.strip()

    async def request_needs(self, deck: Deck) -> NeedSpecification:
        """
        Ask Claude what the deck needs.

        Raises:
            AnalysisResponseError: Claude failed or returned no JSON object
            NeedSpecificationError: The JSON has fields of the wrong shape
        """
        prompt = NEEDS_PROMPT.format(
            commander=_commander_text(deck.commander),
            card_count=len(deck.cards),
            deck_list=_deck_list(deck),
        )
        text = await self._complete("needs", prompt, settings.needs_max_tokens)
        return NeedSpecification.from_payload(extract_json_object(text))

    async def request_suggestions(
        self,
        deck: Deck,
        stats: DeckStats,
        needs: NeedSpecification,
        pool: CandidatePool,
        candidates: Sequence[ScoredCandidate],
    ) -> str:
        """Ask Claude for additions and cuts drawn from the candidates."""
        illegal_note = (
            f"\n\nNOTE: {pool.illegal_count} free cards in the collection are outside "
            "the commander's color identity and are not shown."
            if pool.illegal_count
            else ""
        )
        prompt = SUGGESTIONS_PROMPT.format(
            commander=_commander_text(deck.commander),
            identity="".join(stats.color_identity) or "Colorless",
            strategy=needs.deck_strategy or "(not analyzed)",
            gaps="; ".join(needs.gaps) or "(none listed)",
            card_count=stats.total_cards,
            deck_list=_deck_list(deck),
            draw=stats.draw_count,
            ramp=stats.ramp_count,
            removal=stats.removal_count,
            flying=stats.flying_count,
            reach=stats.reach_count,
            air=stats.air_defense,
            target_draw=TARGET_CARD_DRAW,
            target_ramp=TARGET_RAMP,
            target_removal=TARGET_REMOVAL,
            target_air=TARGET_AIR_DEFENSE,
            curve=stats.curve_label(),
            summary=summarize_candidates(candidates),
            candidates=_candidate_list(candidates),
            illegal_note=illegal_note,
        )
        return await self._complete("suggestions", prompt, settings.suggestions_max_tokens)


def get_deck_analyst() -> DeckAnalyst:
    """
    Dependency that provides a DeckAnalyst.

    Raises AnalysisUnavailableError when no API key is configured.
    """
    return DeckAnalyst()
