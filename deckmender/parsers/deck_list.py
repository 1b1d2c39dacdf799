"""
Parser for deck lists and collection exports.

Line dialects (one card per line):
    1 Sol Ring (C21) 263       quantity first, with printing
    1x Sol Ring (C21) 263      quantity first with 'x' suffix
    Sol Ring (C21) 263 1       quantity last, with printing
    1 Sol Ring / 1x Sol Ring   quantity and name only

Sections are switched by comment markers ("// Commander", "# Deck") or bare
headers ("Commander", "Deck", "Sideboard"). Only "commander" selects the
commander section; every other section name means the main deck.

Tabular dialect (ManaBox and similar CSV exports):
    Binder Name,Binder Type,Name,Set code,Set name,Collector number,Foil,Quantity
    Trade,binder,Sol Ring,C21,Commander 2021,263,normal,2

Commander rule: entries under a commander section are commanders. When a
line-dialect list has no section markers at all, the first parsed entry is
the commander (positional convention). Tabular input never has one.
"""

import csv
import logging
import re
from io import StringIO

from deckmender.models.card import normalize_name
from deckmender.models.deck import (
    CommanderSource,
    DeckEntry,
    Dialect,
    LineError,
    ParsedDeck,
)

logger = logging.getLogger(__name__)

# Pattern: "4 Lightning Bolt (LEB) 163" or "1x Fire // Ice (MH2) 290a"
# Groups: (quantity, card_name, set_code, collector_number)
QUANTITY_FIRST_PATTERN = re.compile(
    r"^(\d+)x?\s+(.+?)\s*\(([A-Za-z0-9]+)\)\s+(\S+)$", re.IGNORECASE
)

# Pattern: "Lightning Bolt (LEB) 163 4"
# Groups: (card_name, set_code, collector_number, quantity)
QUANTITY_LAST_PATTERN = re.compile(r"^(.+?)\s*\(([A-Za-z0-9]+)\)\s+(\S+)\s+(\d+)$")

# Pattern: "4 Lightning Bolt" or "4x Lightning Bolt"
# Groups: (quantity, card_name)
SIMPLE_PATTERN = re.compile(r"^(\d+)x?\s+(.+)$", re.IGNORECASE)

# Foil / etched markers some apps append ("1 Sol Ring (C21) 263 *F*")
FINISH_MARKER_PATTERN = re.compile(r"\s*\*[A-Za-z]\*\s*")

COMMENT_MARKERS = ("//", "#")

SECTION_HEADERS = frozenset(
    {"commander", "deck", "mainboard", "main", "sideboard", "companion", "maybeboard"}
)

# Header synonyms for the tabular dialect (lower-cased)
NAME_COLUMNS = ("name", "card name", "card")
SET_COLUMNS = ("set code", "set", "edition")

Section = str  # "commander" | "main"


def detect_dialect(text: str) -> Dialect:
    """
    Auto-detect the dialect of deck text.

    Returns "table" if the first non-empty line holds comma-separated
    header names (a "name" column or a ManaBox "binder" column), else "lines".
    """
    for line in text.splitlines():
        first_line = line.strip()
        if not first_line:
            continue
        lower_first = first_line.lower()
        if "," in first_line and ("name" in lower_first or "binder" in lower_first):
            return "table"
        return "lines"
    return "lines"


def parse_card_line(line: str) -> DeckEntry | None:
    """
    Parse a single card line.

    Tries, in order: quantity-first with printing, quantity-last with
    printing, quantity + name. Returns None if no pattern matches.
    """
    line = FINISH_MARKER_PATTERN.sub(" ", line).strip()

    match = QUANTITY_FIRST_PATTERN.match(line)
    if match:
        quantity, name, set_code, collector_num = match.groups()
        return DeckEntry(
            name=name.strip(),
            quantity=int(quantity),
            set_code=set_code.upper(),
            collector_number=collector_num,
        )

    match = QUANTITY_LAST_PATTERN.match(line)
    if match:
        name, set_code, collector_num, quantity = match.groups()
        return DeckEntry(
            name=name.strip(),
            quantity=int(quantity),
            set_code=set_code.upper(),
            collector_number=collector_num,
        )

    match = SIMPLE_PATTERN.match(line)
    if match:
        quantity, name = match.groups()
        name = name.strip()
        if name:
            return DeckEntry(name=name, quantity=int(quantity))

    return None


def _section_marker(line: str) -> Section | None:
    """Return the section a marker line selects, or None for card lines."""
    for marker in COMMENT_MARKERS:
        if line.startswith(marker):
            section = line[len(marker) :].strip().rstrip(":").strip().lower()
            return "commander" if section == "commander" else "main"

    header = line.rstrip(":").strip().lower()
    if header in SECTION_HEADERS:
        return "commander" if header == "commander" else "main"

    return None


def _merge_entry(bucket: dict[str, DeckEntry], key: str, entry: DeckEntry) -> None:
    existing = bucket.get(key)
    if existing is None:
        bucket[key] = entry
    else:
        bucket[key] = DeckEntry(
            name=existing.name,
            quantity=existing.quantity + entry.quantity,
            set_code=existing.set_code,
            collector_number=existing.collector_number,
        )


def parse_line_dialect(text: str, positional_commander: bool = True) -> ParsedDeck:
    """
    Parse a line-oriented deck list.

    Merges duplicate names (case-insensitive) within a section by summing
    quantities, so two printings of the same card become one entry.
    Unparsable lines are collected into errors, never raised.
    """
    buckets: dict[Section, dict[str, DeckEntry]] = {"commander": {}, "main": {}}
    errors: list[LineError] = []
    section: Section = "main"
    saw_marker = False

    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line:
            continue

        marker = _section_marker(line)
        if marker is not None:
            section = marker
            saw_marker = True
            continue

        entry = parse_card_line(line)
        if entry is None:
            errors.append(LineError(line=line, reason="Could not parse format"))
            continue
        if entry.quantity < 1:
            errors.append(LineError(line=line, reason="Quantity must be at least 1"))
            continue

        _merge_entry(buckets[section], entry.name_key, entry)

    commander = list(buckets["commander"].values())
    cards = list(buckets["main"].values())
    commander_source: CommanderSource = "section" if commander else "none"

    if not saw_marker and positional_commander and cards:
        commander = [cards.pop(0)]
        commander_source = "position"

    return ParsedDeck(
        commander=commander,
        cards=cards,
        errors=errors,
        dialect="lines",
        commander_source=commander_source,
    )


def _find_column(
    headers: list[str],
    exact: tuple[str, ...] = (),
    contains: tuple[str, ...] = (),
) -> int | None:
    for index, header in enumerate(headers):
        if header in exact or any(token in header for token in contains):
            return index
    return None


def _cell(row: list[str], index: int | None) -> str:
    if index is None or index >= len(row):
        return ""
    return row[index].strip()


def parse_table_dialect(text: str) -> ParsedDeck:
    """
    Parse a CSV collection export.

    Columns are located by header name (case-insensitive):
        - Name / Card Name / Card (required)
        - anything containing Quantity or Qty, or Count
        - Set Code / Set / Edition
        - anything containing Collector or Number

    Quantities in an export are owned totals per printing, so rows are kept
    per printing; only repeated rows of the same printing are summed.
    """
    rows = [row for row in csv.reader(StringIO(text.strip())) if any(c.strip() for c in row)]
    if not rows:
        return ParsedDeck(dialect="table", errors=[LineError(line="", reason="CSV file is empty")])

    header_row = rows[0]
    headers = [h.strip().lower() for h in header_row]

    name_idx = _find_column(headers, exact=NAME_COLUMNS)
    if name_idx is None:
        return ParsedDeck(
            dialect="table",
            errors=[
                LineError(
                    line=",".join(header_row),
                    reason=f'Could not find "Name" column in CSV. Found: {", ".join(headers)}',
                )
            ],
        )

    qty_idx = _find_column(headers, exact=("count",), contains=("quantity", "qty"))
    set_idx = _find_column(headers, exact=SET_COLUMNS)
    collector_idx = _find_column(headers, contains=("collector", "number"))

    entries: dict[str, DeckEntry] = {}
    for row in rows[1:]:
        name = _cell(row, name_idx)
        if not name:
            continue

        qty_str = _cell(row, qty_idx)
        try:
            quantity = int(qty_str) if qty_str else 1
        except ValueError:
            quantity = 1
        if quantity < 1:
            continue

        set_code = _cell(row, set_idx).upper() or None
        collector_number = _cell(row, collector_idx) or None

        key = f"{normalize_name(name)}|{set_code or ''}|{collector_number or ''}"
        _merge_entry(
            entries,
            key,
            DeckEntry(
                name=name,
                quantity=quantity,
                set_code=set_code,
                collector_number=collector_number,
            ),
        )

    return ParsedDeck(cards=list(entries.values()), dialect="table")


def parse_deck_list(text: str, positional_commander: bool = True) -> ParsedDeck:
    """
    Parse deck or collection text in any supported dialect.

    Args:
        text: Raw pasted or uploaded text
        positional_commander: Apply the first-entry-is-commander rule to
            line lists without section markers (disable for collections)

    Returns:
        ParsedDeck. On structural failure (no name column, or nothing
        parsed) the entry lists are empty and errors explain why;
        ParsedDeck.ok is False. Never raises for malformed lines.
    """
    if not text or not text.strip():
        return ParsedDeck(errors=[LineError(line="", reason="Input is empty")])

    dialect = detect_dialect(text)
    if dialect == "table":
        parsed = parse_table_dialect(text)
    else:
        parsed = parse_line_dialect(text, positional_commander=positional_commander)

    if not parsed.ok and not parsed.errors:
        parsed.errors.append(LineError(line="", reason="No card lines found"))

    logger.info(
        "deck_list_parsed",
        extra={
            "dialect": parsed.dialect,
            "commanders": len(parsed.commander),
            "cards": len(parsed.cards),
            "errors": len(parsed.errors),
            "commander_source": parsed.commander_source,
        },
    )

    return parsed


def extract_lookup_names(parsed: ParsedDeck) -> list[str]:
    """Unique card names to look up, in first-seen order."""
    seen: set[str] = set()
    names: list[str] = []
    for entry in parsed.all_entries():
        if entry.name_key not in seen:
            seen.add(entry.name_key)
            names.append(entry.name)
    return names
