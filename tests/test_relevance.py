"""
Tests for the relevance scorer.

These tests verify:
- Each signal family adds its documented points
- Role rules score once per card, whatever the number of phrase matches
- Cards already in the deck never appear
- Results are positive, capped, sorted and deterministic
"""

import pytest

from deckmender.config import MAX_CANDIDATES
from deckmender.filtering.relevance import (
    ScoredCandidate,
    score_and_filter,
    score_card,
    summarize_candidates,
)
from deckmender.models.collection import AvailableCard, CollectionEntry
from deckmender.models.deck import DeckEntry
from deckmender.models.needs import NeedSpecification


@pytest.fixture
def wall_of_omens(make_card):
    return make_card(
        "Wall of Omens",
        type_line="Creature — Wall",
        oracle_text="Defender\nWhen Wall of Omens enters the battlefield, draw a card.",
        mana_value=2.0,
        keywords=["Defender"],
        power="0",
    )


@pytest.fixture
def sol_ring(make_card):
    return make_card("Sol Ring", type_line="Artifact", oracle_text="{T}: Add {C}{C}.")


class TestTermSignals:
    def test_synergy_term_scores_once(self, wall_of_omens) -> None:
        """'wall' in both name and oracle text scores 15, not 30."""
        needs = NeedSpecification(synergy_oracle_terms=["wall"])

        score, breakdown = score_card(wall_of_omens, needs)

        assert score == 15
        assert breakdown == {"synergy:wall": 15}

    def test_repeated_term_breakdown_sums(self, wall_of_omens) -> None:
        """A term listed twice scores twice and the breakdown still adds up."""
        needs = NeedSpecification(
            synergy_oracle_terms=["wall", "wall"], wanted_keywords=["defender"]
        )

        score, breakdown = score_card(wall_of_omens, needs)

        assert breakdown == {"synergy:wall": 30, "keyword:defender": 10}
        assert score == sum(breakdown.values()) == 40

    def test_each_synergy_term_counts(self, wall_of_omens) -> None:
        """Distinct matching terms each add their points."""
        needs = NeedSpecification(synergy_oracle_terms=["wall", "defender", "lifelink"])

        score, _ = score_card(wall_of_omens, needs)

        assert score == 30

    def test_keyword_is_exact(self, make_card) -> None:
        """Keywords match whole keywords, case-insensitive."""
        needs = NeedSpecification(wanted_keywords=["flying"])

        assert score_card(make_card("Serra Angel", keywords=["Flying"]), needs)[0] == 10
        assert score_card(make_card("Cavalry", keywords=["Flanking"]), needs)[0] == 0

    def test_creature_type(self, make_card) -> None:
        """Creature types are searched in the type line."""
        elf = make_card("Llanowar Elves", type_line="Creature — Elf Druid")

        score, breakdown = score_card(elf, NeedSpecification(wanted_creature_types=["Elf"]))

        assert score == 12
        assert breakdown == {"type:Elf": 12}

    def test_additional_oracle_term(self, make_card) -> None:
        """Additional terms search oracle text only."""
        card = make_card("Hardened Scales", oracle_text="put one or more +1/+1 counters")
        needs = NeedSpecification(additional_oracle_terms=["+1/+1 counter", "Hardened"])

        score, breakdown = score_card(card, needs)

        assert score == 8
        assert breakdown == {"oracle:+1/+1 counter": 8}


class TestRoleRules:
    def test_flat_role_bonus(self, make_card) -> None:
        """'Draw a card. Draw a card.' adds exactly +12."""
        card = make_card(
            "Double Draw", type_line="Sorcery", oracle_text="Draw a card. Draw a card."
        )

        score, breakdown = score_card(card, NeedSpecification(needs_card_draw=True))

        assert score == 12
        assert breakdown == {"role:card_draw": 12}

    def test_role_needs_flag(self, make_card) -> None:
        """Without the flag the role scores nothing."""
        card = make_card("Divination", oracle_text="Draw two cards.")

        assert score_card(card, NeedSpecification(needs_removal=True))[0] == 0

    def test_mana_rock_stacks_with_ramp(self, sol_ring) -> None:
        """An artifact mana rock scores ramp and mana rock."""
        score, breakdown = score_card(sol_ring, NeedSpecification(needs_ramp=True))

        assert breakdown == {"role:ramp": 10, "role:mana_rock": 12}
        assert score == 22

    def test_ramp_requires_permanent_type(self, make_card) -> None:
        """Ramp phrases on a sorcery do not count as ramp."""
        rampant_growth = make_card(
            "Rampant Growth",
            type_line="Sorcery",
            oracle_text="Search your library for a basic land card, put it onto the battlefield.",
        )

        assert score_card(rampant_growth, NeedSpecification(needs_ramp=True))[0] == 0
        assert score_card(rampant_growth, NeedSpecification(needs_land_fetch=True))[0] == 12

    def test_removal(self, make_card) -> None:
        """Targeted removal phrases score 12."""
        swords = make_card("Swords to Plowshares", oracle_text="Exile target creature.")

        assert score_card(swords, NeedSpecification(needs_removal=True))[0] == 12

    def test_board_wipe(self, make_card) -> None:
        """Mass removal scores 15."""
        wrath = make_card("Wrath of God", oracle_text="Destroy all creatures.")

        assert score_card(wrath, NeedSpecification(needs_board_wipes=True))[0] == 15

    def test_graveyard(self, make_card) -> None:
        """Graveyard recursion scores 10."""
        raise_dead = make_card(
            "Raise Dead",
            type_line="Sorcery",
            oracle_text="Return target creature card from your graveyard to your hand.",
        )

        score, breakdown = score_card(raise_dead, NeedSpecification(needs_graveyard=True))

        assert score == 10
        assert breakdown == {"role:graveyard": 10}
        assert score_card(raise_dead, NeedSpecification(needs_removal=True))[0] == 0

    def test_protection_from_keywords(self, make_card) -> None:
        """Protection also matches the keyword list."""
        card = make_card("Sigarda", keywords=["Flying", "Hexproof"])

        assert score_card(card, NeedSpecification(needs_protection=True))[0] == 10

    def test_tokens_need_both_phrases(self, make_card) -> None:
        """Token makers must say 'create' and 'token'."""
        maker = make_card(
            "Raise the Alarm", oracle_text="Create two 1/1 white Soldier creature tokens."
        )
        copier = make_card("Clone", oracle_text="You may create a copy of any creature.")
        needs = NeedSpecification(needs_tokens=True)

        assert score_card(maker, needs)[0] == 12
        assert score_card(copier, needs)[0] == 0

    def test_tutor(self, make_card) -> None:
        """Tutors search the library and put the card into hand."""
        card = make_card(
            "Demonic Tutor",
            oracle_text="Search your library for a card, put it into your hand, then shuffle.",
        )

        assert score_card(card, NeedSpecification(needs_tutor=True))[0] == 15

    def test_counterspell(self, make_card) -> None:
        """Counterspells score 15."""
        card = make_card("Counterspell", oracle_text="Counter target spell.")

        assert score_card(card, NeedSpecification(needs_counterspells=True))[0] == 15


class TestBigCreatureAndCurve:
    def test_big_creature(self, make_card) -> None:
        """Power at or above min_power adds 8."""
        needs = NeedSpecification(want_big_creatures=True, min_power=5)

        assert score_card(make_card("Colossus", power="6"), needs)[0] == 8
        assert score_card(make_card("Exact", power="5"), needs)[0] == 8
        assert score_card(make_card("Bear", power="2"), needs)[0] == 0
        assert score_card(make_card("Variable", power="*"), needs)[0] == 0

    def test_big_creature_without_threshold(self, make_card) -> None:
        """No min_power means no big-creature bonus."""
        needs = NeedSpecification(want_big_creatures=True)

        assert score_card(make_card("Colossus", power="12"), needs)[0] == 0

    def test_low_curve_bonus(self, make_card) -> None:
        """A top-heavy deck rewards cheap cards."""
        needs = NeedSpecification(cmc_curve_note="Curve is top-heavy, needs 2-drops")

        assert score_card(make_card("Cheap", mana_value=3.0), needs)[1] == {"curve:low": 5}
        assert score_card(make_card("Pricey", mana_value=4.0), needs)[0] == 0

    def test_high_curve_bonus(self, make_card) -> None:
        """A deck that needs threats rewards expensive cards."""
        needs = NeedSpecification(cmc_curve_note="Curve too low; needs threats")

        assert score_card(make_card("Dragon", mana_value=6.0), needs)[1] == {"curve:high": 5}
        assert score_card(make_card("Bear", mana_value=2.0), needs)[0] == 0


class TestScoreAndFilter:
    def test_empty_needs_give_empty_result(self, sol_ring, wall_of_omens) -> None:
        """Nothing wanted means nothing relevant; that is not an error."""
        assert score_and_filter([sol_ring, wall_of_omens], NeedSpecification(), []) == []

    def test_deck_cards_excluded(self, sol_ring, wall_of_omens) -> None:
        """Cards in the deck are skipped by case-insensitive name."""
        needs = NeedSpecification(needs_ramp=True, synergy_oracle_terms=["wall"])
        deck = [DeckEntry(name="SOL RING", quantity=1)]

        result = score_and_filter([sol_ring, wall_of_omens], needs, deck)

        assert [c.name for c in result] == ["Wall of Omens"]

    def test_sorted_descending(self, sol_ring, wall_of_omens) -> None:
        """Higher scores come first."""
        needs = NeedSpecification(needs_ramp=True, synergy_oracle_terms=["wall"])

        result = score_and_filter([wall_of_omens, sol_ring], needs, [])

        assert [(c.name, c.relevance_score) for c in result] == [
            ("Sol Ring", 22),
            ("Wall of Omens", 15),
        ]

    def test_ties_keep_input_order(self, make_card) -> None:
        """Equal scores stay in collection order."""
        cards = [make_card(f"Wall {i}", type_line="Creature — Wall") for i in range(5)]
        needs = NeedSpecification(wanted_creature_types=["Wall"])

        result = score_and_filter(cards, needs, [])

        assert [c.name for c in result] == [f"Wall {i}" for i in range(5)]

    def test_capped_at_max_candidates(self, make_card) -> None:
        """At most MAX_CANDIDATES results, the highest kept."""
        cards = [
            make_card(f"Card {i}", oracle_text="draw a card" if i % 2 else "", keywords=["Flying"])
            for i in range(150)
        ]
        needs = NeedSpecification(needs_card_draw=True, wanted_keywords=["Flying"])

        result = score_and_filter(cards, needs, [])

        assert len(result) == MAX_CANDIDATES
        assert all(c.relevance_score > 0 for c in result)
        scores = [c.relevance_score for c in result]
        assert scores == sorted(scores, reverse=True)
        # All 75 drawing cards outrank the rest
        assert all(c.relevance_score == 22 for c in result[:75])

    def test_limit(self, make_card) -> None:
        """A smaller limit truncates the ranking."""
        cards = [make_card(f"Flyer {i}", keywords=["Flying"]) for i in range(10)]

        result = score_and_filter(cards, NeedSpecification(wanted_keywords=["Flying"]), [], limit=3)

        assert [c.name for c in result] == ["Flyer 0", "Flyer 1", "Flyer 2"]

    def test_deterministic(self, sol_ring, wall_of_omens) -> None:
        """The same inputs rank the same way."""
        needs = NeedSpecification(
            needs_ramp=True, needs_card_draw=True, synergy_oracle_terms=["wall"]
        )

        first = score_and_filter([sol_ring, wall_of_omens], needs, [])
        second = score_and_filter([sol_ring, wall_of_omens], needs, [])

        assert first == second

    def test_available_cards_carry_counts(self, sol_ring) -> None:
        """Rows from the availability calculator keep their counts."""
        row = AvailableCard(entry=CollectionEntry(card=sol_ring, quantity=3), in_use=1, available=2)

        result = score_and_filter([row], NeedSpecification(needs_ramp=True), [])

        assert result[0].quantity == 3
        assert result[0].available == 2


class TestSummarizeCandidates:
    def test_summary_counts(self, make_card, sol_ring) -> None:
        """Counts come from oracle text and scores."""
        candidates = [
            ScoredCandidate(card=sol_ring, relevance_score=22),
            ScoredCandidate(
                card=make_card("Swords to Plowshares", oracle_text="Exile target creature."),
                relevance_score=12,
            ),
            ScoredCandidate(
                card=make_card("Opt", oracle_text="Scry 1. Draw a card."),
                relevance_score=12,
            ),
        ]

        assert summarize_candidates(candidates) == (
            "Found 3 relevant cards: 1 high-synergy, 1 removal, 1 ramp, 1 card draw"
        )

    def test_empty_summary(self) -> None:
        """An empty ranking still summarizes."""
        assert summarize_candidates([]) == (
            "Found 0 relevant cards: 0 high-synergy, 0 removal, 0 ramp, 0 card draw"
        )
