"""
Deck statistics for the analysis prompts.

Role counts are rough oracle-text heuristics over the main list (one
count per entry); the mana curve ignores lands.
"""

from dataclasses import dataclass

from deckmender.models.card import CardRecord
from deckmender.models.deck import Deck

# Mana curve buckets: low 0-2, mid 3-4, high 5+
CURVE_MID_MIN = 3
CURVE_HIGH_MIN = 5

# Commander staples used in prompts as reference targets
TARGET_CARD_DRAW = 10
TARGET_RAMP = 10
TARGET_REMOVAL = 8
TARGET_AIR_DEFENSE = 8


@dataclass(frozen=True, slots=True)
class DeckStats:
    """Summary numbers for one deck."""

    total_cards: int
    creature_count: int
    removal_count: int
    ramp_count: int
    draw_count: int
    flying_count: int
    reach_count: int
    curve_low: int
    curve_mid: int
    curve_high: int
    color_identity: tuple[str, ...]

    @property
    def air_defense(self) -> int:
        """Flying and reach both block flyers."""
        return self.flying_count + self.reach_count

    def curve_label(self) -> str:
        return (
            f"{self.curve_low} low (0-2), {self.curve_mid} mid (3-4), "
            f"{self.curve_high} high (5+)"
        )


def _is_removal(card: CardRecord) -> bool:
    oracle = card.oracle_text.lower()
    return "destroy" in oracle or "exile" in oracle


def _is_ramp(card: CardRecord) -> bool:
    oracle = card.oracle_text.lower()
    return ("add" in oracle and "mana" in oracle) or "{t}: add" in oracle


def compute_deck_stats(deck: Deck) -> DeckStats:
    """
    Count roles, creatures and the mana curve of a deck's main list.

    Entries whose lookup missed are skipped.
    """
    cards = [entry.card for entry in deck.cards if entry.card is not None]
    non_land = [card for card in cards if not card.is_land]

    return DeckStats(
        total_cards=deck.card_count(),
        creature_count=sum(1 for c in non_land if "creature" in c.type_line.lower()),
        removal_count=sum(1 for c in cards if _is_removal(c)),
        ramp_count=sum(1 for c in cards if _is_ramp(c)),
        draw_count=sum(1 for c in cards if "draw" in c.oracle_text.lower()),
        flying_count=sum(1 for c in cards if "flying" in c.oracle_text.lower()),
        reach_count=sum(1 for c in cards if "reach" in c.oracle_text.lower()),
        curve_low=sum(1 for c in non_land if c.mana_value < CURVE_MID_MIN),
        curve_mid=sum(1 for c in non_land if CURVE_MID_MIN <= c.mana_value < CURVE_HIGH_MIN),
        curve_high=sum(1 for c in non_land if c.mana_value >= CURVE_HIGH_MIN),
        color_identity=deck.color_identity,
    )
