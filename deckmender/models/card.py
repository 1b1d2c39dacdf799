import re
from collections.abc import Iterable
from dataclasses import asdict, dataclass
from typing import Any

# Canonical WUBRG ordering for color identity display and comparison
COLOR_ORDER = ("W", "U", "B", "R", "G")

# Leading integer of a power value ("3", "-1", "1+*"); "*" has none
_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def sort_colors(colors: Iterable[str]) -> tuple[str, ...]:
    """Order color symbols as WUBRG, unknown symbols last in sorted order."""
    present = set(colors)
    known = [c for c in COLOR_ORDER if c in present]
    unknown = sorted(c for c in present if c not in COLOR_ORDER)
    return tuple(known + unknown)


def normalize_name(name: str) -> str:
    """Key used to match card names: lower-cased and trimmed."""
    return name.strip().lower()


@dataclass(frozen=True, slots=True)
class CardRecord:
    """
    Canonical card data resolved from Scryfall.

    Attributes:
        card_id: Scryfall card id (stable identity of a printing)
        name: Canonical card name
        type_line: Full type line (e.g., "Legendary Creature — Elf Druid")
        oracle_text: Rules text, first face for multi-faced cards
        mana_cost: Mana cost string (e.g., "{2}{G}")
        mana_value: Converted mana cost
        colors: Castable colors
        color_identity: Commander color identity; decides deck legality
        power: Raw power string, None for non-creatures
        toughness: Raw toughness string, None for non-creatures
        keywords: Keyword abilities (e.g., "Flying")
        image_url: Normal-size image URL, if any
        set_code: Printing set code
        collector_number: Printing collector number
        rarity: Printing rarity
    """

    card_id: str
    name: str
    type_line: str = ""
    oracle_text: str = ""
    mana_cost: str = ""
    mana_value: float = 0.0
    colors: tuple[str, ...] = ()
    color_identity: tuple[str, ...] = ()
    power: str | None = None
    toughness: str | None = None
    keywords: tuple[str, ...] = ()
    image_url: str | None = None
    set_code: str | None = None
    collector_number: str | None = None
    rarity: str | None = None

    @property
    def name_key(self) -> str:
        return normalize_name(self.name)

    @property
    def power_value(self) -> int | None:
        """Numeric power, or None when power is absent or not a number."""
        if self.power is None:
            return None
        match = _LEADING_INT.match(self.power)
        return int(match.group(1)) if match else None

    @property
    def is_land(self) -> bool:
        return "land" in self.type_line.lower()

    @property
    def is_legendary_creature(self) -> bool:
        type_line = self.type_line.lower()
        return "legendary" in type_line and "creature" in type_line

    def to_dict(self) -> dict[str, Any]:
        """Plain JSON-compatible form for storage."""
        data = asdict(self)
        for key in ("colors", "color_identity", "keywords"):
            data[key] = list(data[key])
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CardRecord":
        """Rebuild a record stored with to_dict()."""
        return cls(
            card_id=data["card_id"],
            name=data["name"],
            type_line=data.get("type_line") or "",
            oracle_text=data.get("oracle_text") or "",
            mana_cost=data.get("mana_cost") or "",
            mana_value=float(data.get("mana_value") or 0.0),
            colors=tuple(data.get("colors") or ()),
            color_identity=tuple(data.get("color_identity") or ()),
            power=data.get("power"),
            toughness=data.get("toughness"),
            keywords=tuple(data.get("keywords") or ()),
            image_url=data.get("image_url"),
            set_code=data.get("set_code"),
            collector_number=data.get("collector_number"),
            rarity=data.get("rarity"),
        )
