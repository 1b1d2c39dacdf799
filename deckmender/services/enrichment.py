"""
Enrichment merge: join parsed entries to looked-up card records.

The join is by case-insensitive trimmed name through a map built once,
so merging n entries with m records costs O(n + m).
"""

from collections.abc import Iterable
from dataclasses import replace

from deckmender.config import MAX_COMMANDERS
from deckmender.models.card import CardRecord, normalize_name, sort_colors
from deckmender.models.deck import DeckEntry, EnrichedDeck, ParsedDeck
from deckmender.parsers.scryfall import front_face_name
from deckmender.services.card_lookup import LookupResult


def build_name_index(lookup: LookupResult) -> dict[str, CardRecord]:
    """
    Map every name an entry may use to its record.

    Keys: canonical names, front-face names of multi-faced cards
    ("Delver of Secrets" for "Delver of Secrets // Insectile Aberration")
    and the requested names the lookup resolved under another name.
    """
    index: dict[str, CardRecord] = {}
    for card in lookup.found:
        index.setdefault(card.name_key, card)
        index.setdefault(normalize_name(front_face_name(card.name)), card)
    for requested, canonical in lookup.aliases.items():
        card = index.get(normalize_name(canonical))
        if card is not None:
            index.setdefault(requested, card)
    return index


PrintingIndex = dict[tuple[str, str], CardRecord]


def _printing(set_code: str | None, collector_number: str | None) -> tuple[str, str]:
    return (set_code or "").upper(), collector_number or ""


def _enrich(entry: DeckEntry, index: dict[str, CardRecord], printings: PrintingIndex) -> DeckEntry:
    card = index.get(entry.name_key)
    if card is None:
        return entry

    # Prefer the exact printing the line named, when it was resolved
    if entry.set_code and entry.collector_number:
        printed = printings.get(_printing(entry.set_code, entry.collector_number))
        if printed is not None and printed.name_key == card.name_key:
            card = printed

    return replace(entry, name=card.name, card=card)


def merge_lookup_results(parsed: ParsedDeck, lookup: LookupResult) -> EnrichedDeck:
    """
    Attach card records to parsed entries.

    Entries with no matching record keep card=None and their names are
    listed in not_found. They stay in the deck for the import summary but
    are skipped by legality and scoring.
    """
    index = build_name_index(lookup)
    printings = {_printing(c.set_code, c.collector_number): c for c in lookup.found}

    commander = [_enrich(e, index, printings) for e in parsed.commander]
    cards = [_enrich(e, index, printings) for e in parsed.cards]

    not_found: list[str] = []
    for entry in [*commander, *cards]:
        if entry.not_found and entry.name not in not_found:
            not_found.append(entry.name)

    return EnrichedDeck(
        commander=commander,
        cards=cards,
        not_found=not_found,
        errors=list(parsed.errors),
        commander_source=parsed.commander_source,
    )


def promote_partner_commander(enriched: EnrichedDeck) -> EnrichedDeck:
    """
    Move a partner commander out of the main list.

    Applies only when the commander came from the positional rule: if the
    entry right after it (now the head of the main list) is a legendary
    creature, it becomes the second commander.
    """
    if enriched.commander_source != "position" or not enriched.cards:
        return enriched
    if len(enriched.commander) >= MAX_COMMANDERS:
        return enriched

    head = enriched.cards[0]
    if head.card is None or not head.card.is_legendary_creature:
        return enriched

    return replace(
        enriched,
        commander=[*enriched.commander, head],
        cards=enriched.cards[1:],
    )


def commander_color_identity(commanders: Iterable[DeckEntry]) -> tuple[str, ...]:
    """Union of resolved commanders' color identities, WUBRG order."""
    colors: set[str] = set()
    for entry in commanders:
        if entry.card is not None:
            colors.update(entry.card.color_identity)
    return sort_colors(colors)
