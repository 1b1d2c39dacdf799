"""
Relevance Scorer - rank free collection cards against a deck's needs.

INVARIANTS:
- Pure: same inputs (same order) -> same output, ties included
- Cards already in the deck (case-insensitive name) never appear
- Only cards with score > 0 appear; an empty result is valid
- At most MAX_CANDIDATES results, scores non-increasing

Scoring is an integer sum over independent signal families:

    Curated term lists (reward every match):
        synergy oracle term in oracle text or name   +15 each
        wanted keyword in keyword set (exact)        +10 each
        wanted creature type in type line            +12 each
        additional oracle term in oracle text         +8 each

    Role rules (flat per card, see ROLE_RULES)       +10 .. +15
    Big creature (power >= min_power)                 +8
    Curve correction (per cmc_curve_note)             +5

Text matching is case-insensitive substring containment unless noted.
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Protocol

from deckmender.config import MAX_CANDIDATES
from deckmender.models.card import CardRecord, normalize_name
from deckmender.models.deck import DeckEntry
from deckmender.models.needs import NeedSpecification

logger = logging.getLogger(__name__)

SYNERGY_TERM_POINTS = 15
KEYWORD_POINTS = 10
CREATURE_TYPE_POINTS = 12
ORACLE_TERM_POINTS = 8
BIG_CREATURE_POINTS = 8
CURVE_POINTS = 5

# Score at or above which a candidate counts as high-synergy in summaries
HIGH_SYNERGY_SCORE = 15

# cmc_curve_note phrases: (phrases, predicate on mana value)
LOW_CURVE_PHRASES = ("top-heavy", "expensive")
HIGH_CURVE_PHRASES = ("too low", "needs threats")
LOW_CURVE_MAX_MANA_VALUE = 3
HIGH_CURVE_MIN_MANA_VALUE = 5


@dataclass(frozen=True, slots=True)
class RoleRule:
    """
    A fixed phrase vocabulary for one deck role.

    A card matches when its oracle text contains ANY of `any_of` (if set)
    AND ALL of `all_of` (if set) AND its type line contains any of
    `type_any` (if set). With `match_keywords`, an `any_of` phrase equal to
    one of the card's keywords also counts.
    """

    role: str
    need_flag: str
    points: int
    any_of: tuple[str, ...] = ()
    all_of: tuple[str, ...] = ()
    type_any: tuple[str, ...] = ()
    match_keywords: bool = False

    def matches(self, oracle: str, type_line: str, keywords: Sequence[str]) -> bool:
        if self.type_any and not any(t in type_line for t in self.type_any):
            return False
        if self.all_of and not all(p in oracle for p in self.all_of):
            return False
        if self.any_of:
            in_text = any(p in oracle for p in self.any_of)
            in_keywords = self.match_keywords and any(p in keywords for p in self.any_of)
            if not (in_text or in_keywords):
                return False
        return True


# Role vocabularies. Each rule scores at most once per card, however many
# of its phrases appear. Ramp has two rules that stack: any ramp piece, and
# artifact mana rocks on top.
ROLE_RULES: tuple[RoleRule, ...] = (
    RoleRule(
        role="removal",
        need_flag="needs_removal",
        points=12,
        any_of=(
            "destroy target",
            "exile target",
            "return target",
            "-x/-x",
            "deals damage to target",
        ),
    ),
    RoleRule(
        role="ramp",
        need_flag="needs_ramp",
        points=10,
        any_of=("add {", "search your library for a", "land", "mana", "tap: add"),
        type_any=("artifact", "creature", "enchantment"),
    ),
    RoleRule(
        role="mana_rock",
        need_flag="needs_ramp",
        points=12,
        all_of=("{t}: add",),
        type_any=("artifact",),
    ),
    RoleRule(
        role="card_draw",
        need_flag="needs_card_draw",
        points=12,
        any_of=("draw a card", "draw two", "draw three", "draw cards", "draws a card"),
    ),
    RoleRule(
        role="board_wipe",
        need_flag="needs_board_wipes",
        points=15,
        any_of=("destroy all", "exile all", "each creature gets", "all creatures"),
    ),
    RoleRule(
        role="counterspell",
        need_flag="needs_counterspells",
        points=15,
        any_of=("counter target spell", "counter target creature"),
    ),
    RoleRule(
        role="protection",
        need_flag="needs_protection",
        points=10,
        any_of=("hexproof", "indestructible", "protection from", "shroud", "regenerate"),
        match_keywords=True,
    ),
    RoleRule(
        role="graveyard",
        need_flag="needs_graveyard",
        points=10,
        any_of=("graveyard", "return from", "from your graveyard", "dies", "when ~ dies"),
    ),
    RoleRule(
        role="tokens",
        need_flag="needs_tokens",
        points=12,
        all_of=("create", "token"),
    ),
    RoleRule(
        role="tutor",
        need_flag="needs_tutor",
        points=15,
        all_of=("search your library", "put it into your hand"),
    ),
    RoleRule(
        role="land_fetch",
        need_flag="needs_land_fetch",
        points=12,
        all_of=("search your library for a", "land"),
    ),
)


class HasCard(Protocol):
    """A collection row carrying card data and ownership counts."""

    @property
    def card(self) -> CardRecord: ...

    @property
    def quantity(self) -> int: ...

    @property
    def available(self) -> int: ...


@dataclass(frozen=True, slots=True)
class ScoredCandidate:
    """
    A collection card with its relevance score.

    Higher scores = more relevant to the deck's needs.
    """

    card: CardRecord
    relevance_score: int
    quantity: int | None = None
    available: int | None = None
    breakdown: dict[str, int] = field(default_factory=dict)

    @property
    def name(self) -> str:
        return self.card.name


# =============================================================================
# SCORING FUNCTIONS
# =============================================================================


def _score_terms(
    terms: Sequence[str],
    haystacks: Sequence[str],
    points: int,
    label: str,
    breakdown: dict[str, int],
) -> int:
    """Add `points` per term found in any haystack; returns the sum."""
    total = 0
    for term in terms:
        term_lower = term.lower()
        if any(term_lower in text for text in haystacks):
            key = f"{label}:{term}"
            breakdown[key] = breakdown.get(key, 0) + points
            total += points
    return total


def _score_curve(mana_value: float, note: str, breakdown: dict[str, int]) -> int:
    note_lower = note.lower()
    total = 0
    if any(p in note_lower for p in LOW_CURVE_PHRASES) and mana_value <= LOW_CURVE_MAX_MANA_VALUE:
        breakdown["curve:low"] = CURVE_POINTS
        total += CURVE_POINTS
    if any(p in note_lower for p in HIGH_CURVE_PHRASES) and mana_value >= HIGH_CURVE_MIN_MANA_VALUE:
        breakdown["curve:high"] = CURVE_POINTS
        total += CURVE_POINTS
    return total


def score_card(card: CardRecord, needs: NeedSpecification) -> tuple[int, dict[str, int]]:
    """
    Score a card against every signal in the need specification.

    Returns:
        (score, breakdown) where breakdown maps "signal:detail" to points
    """
    breakdown: dict[str, int] = {}
    name = card.name.lower()
    oracle = card.oracle_text.lower()
    type_line = card.type_line.lower()
    keywords = [k.lower() for k in card.keywords]

    score = _score_terms(
        needs.synergy_oracle_terms, (oracle, name), SYNERGY_TERM_POINTS, "synergy", breakdown
    )

    # Keywords match exactly, not by substring
    for keyword in needs.wanted_keywords:
        if keyword.lower() in keywords:
            key = f"keyword:{keyword}"
            breakdown[key] = breakdown.get(key, 0) + KEYWORD_POINTS
            score += KEYWORD_POINTS

    score += _score_terms(
        needs.wanted_creature_types, (type_line,), CREATURE_TYPE_POINTS, "type", breakdown
    )
    score += _score_terms(
        needs.additional_oracle_terms, (oracle,), ORACLE_TERM_POINTS, "oracle", breakdown
    )

    for rule in ROLE_RULES:
        if getattr(needs, rule.need_flag) and rule.matches(oracle, type_line, keywords):
            breakdown[f"role:{rule.role}"] = rule.points
            score += rule.points

    if needs.want_big_creatures and needs.min_power:
        power = card.power_value
        if power is not None and power >= needs.min_power:
            breakdown["big_creature"] = BIG_CREATURE_POINTS
            score += BIG_CREATURE_POINTS

    if needs.cmc_curve_note:
        score += _score_curve(card.mana_value, needs.cmc_curve_note, breakdown)

    return score, breakdown


def _unpack(item: CardRecord | HasCard) -> tuple[CardRecord, int | None, int | None]:
    if isinstance(item, CardRecord):
        return item, None, None
    return item.card, item.quantity, item.available


def score_and_filter(
    available_collection: Sequence[CardRecord | HasCard],
    needs: NeedSpecification,
    deck_cards: Sequence[DeckEntry],
    limit: int = MAX_CANDIDATES,
) -> list[ScoredCandidate]:
    """
    Rank free collection cards for a deck.

    Args:
        available_collection: Cards already filtered to free copies and a
            legal color identity; CardRecords or rows with .card/.quantity/
            .available (e.g. AvailableCard)
        needs: Validated need specification
        deck_cards: Entries already in the deck (commanders included)
        limit: Maximum candidates returned

    Returns:
        Candidates with score > 0, highest first. Ties keep input order.
    """
    in_deck = {entry.name_key for entry in deck_cards}

    scored: list[ScoredCandidate] = []
    excluded = 0
    for item in available_collection:
        card, quantity, available = _unpack(item)
        if normalize_name(card.name) in in_deck:
            excluded += 1
            continue

        score, breakdown = score_card(card, needs)
        if score <= 0:
            continue

        scored.append(
            ScoredCandidate(
                card=card,
                relevance_score=score,
                quantity=quantity,
                available=available,
                breakdown=breakdown,
            )
        )

    # list.sort is stable: equal scores keep the caller's order
    scored.sort(key=lambda c: c.relevance_score, reverse=True)
    candidates = scored[:limit]

    logger.info(
        "relevance_scored",
        extra={
            "input_cards": len(available_collection),
            "excluded_in_deck": excluded,
            "relevant": len(scored),
            "returned": len(candidates),
            "top_scores": [(c.name, c.relevance_score) for c in candidates[:10]],
        },
    )

    return candidates


def summarize_candidates(candidates: Sequence[ScoredCandidate]) -> str:
    """
    One-line human summary of a candidate list.

    Counts are by oracle text, independent of which role flags were set.
    """
    high_synergy = removal = ramp = draw = 0
    for candidate in candidates:
        oracle = candidate.card.oracle_text.lower()
        if candidate.relevance_score >= HIGH_SYNERGY_SCORE:
            high_synergy += 1
        if "destroy target" in oracle or "exile target" in oracle:
            removal += 1
        if "{t}: add" in oracle or ("search your library for a" in oracle and "land" in oracle):
            ramp += 1
        if "draw a card" in oracle or "draw two cards" in oracle:
            draw += 1

    return (
        f"Found {len(candidates)} relevant cards: {high_synergy} high-synergy, "
        f"{removal} removal, {ramp} ramp, {draw} card draw"
    )
