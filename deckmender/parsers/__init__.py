from deckmender.parsers.deck_list import (
    detect_dialect,
    extract_lookup_names,
    parse_card_line,
    parse_deck_list,
)
from deckmender.parsers.scryfall import card_record_from_scryfall, front_face_name

__all__ = [
    "card_record_from_scryfall",
    "detect_dialect",
    "extract_lookup_names",
    "front_face_name",
    "parse_card_line",
    "parse_deck_list",
]
