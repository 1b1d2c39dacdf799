"""
Scryfall card JSON normalisation.

Scryfall card objects: https://scryfall.com/docs/api/cards

Multi-faced cards (transform, modal DFC, adventure, split) keep some fields
only on their faces. The first face supplies oracle text, mana cost, colors
and image when the top-level object lacks them.
"""

from typing import Any

from deckmender.models.card import CardRecord, sort_colors


def _first_face(card: dict[str, Any]) -> dict[str, Any]:
    faces = card.get("card_faces") or []
    return faces[0] if faces else {}


def _image_url(card: dict[str, Any]) -> str | None:
    image_uris = card.get("image_uris") or _first_face(card).get("image_uris") or {}
    url = image_uris.get("normal")
    return str(url) if url else None


def card_record_from_scryfall(card: dict[str, Any]) -> CardRecord:
    """
    Build a CardRecord from a Scryfall card object.

    Args:
        card: Card JSON as returned by /cards/named, /cards/:set/:number
            or the data list of /cards/collection

    Returns:
        CardRecord with missing fields defaulted (empty text, mana value 0)
    """
    face = _first_face(card)

    return CardRecord(
        card_id=str(card["id"]),
        name=card["name"],
        type_line=card.get("type_line") or face.get("type_line") or "",
        oracle_text=card.get("oracle_text") or face.get("oracle_text") or "",
        mana_cost=card.get("mana_cost") or face.get("mana_cost") or "",
        mana_value=float(card.get("cmc") or 0.0),
        colors=sort_colors(card.get("colors") or face.get("colors") or []),
        color_identity=sort_colors(card.get("color_identity") or []),
        power=card.get("power") or face.get("power"),
        toughness=card.get("toughness") or face.get("toughness"),
        keywords=tuple(card.get("keywords") or []),
        image_url=_image_url(card),
        set_code=(card.get("set") or "").upper() or None,
        collector_number=card.get("collector_number"),
        rarity=card.get("rarity"),
    )


def front_face_name(name: str) -> str:
    """Name of the first face ("Fire // Ice" -> "Fire")."""
    return name.split("//")[0].strip()
