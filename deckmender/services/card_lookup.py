"""
Scryfall card lookup.

Resolves parsed deck entries to CardRecords:

1. Batch every entry through POST /cards/collection (75 identifiers per
   request). Entries that carry a printing are looked up by
   {set, collector_number}, others by {name}.
2. Retry whatever the batch missed through GET /cards/named?fuzzy=...
   so small typos and partial names still resolve.

A 404 is a lookup miss and is reported as data. Any other failure of the
Scryfall API raises CardLookupError.
"""

import asyncio
import logging
import time
from collections.abc import AsyncGenerator, Sequence
from dataclasses import dataclass, field
from types import TracebackType
from typing import Any

import httpx

from deckmender.config import SCRYFALL_BATCH_SIZE, settings
from deckmender.models.card import CardRecord, normalize_name
from deckmender.models.deck import DeckEntry
from deckmender.models.failure import FailureKind, KnownError
from deckmender.parsers.scryfall import card_record_from_scryfall, front_face_name

logger = logging.getLogger(__name__)


class CardLookupError(KnownError):
    """Scryfall could not be reached or answered with an error."""

    def __init__(self, detail: str):
        super().__init__(
            kind=FailureKind.EXTERNAL_API_ERROR,
            message="Card lookup failed",
            detail=detail,
            suggestion="Scryfall may be down or rate limiting; try again shortly.",
            status_code=502,
        )


@dataclass
class LookupResult:
    """
    Outcome of a batch lookup.

    Attributes:
        found: Resolved records, one per distinct card id
        not_found: Requested names nothing resolved, in request order
        aliases: Requested name key -> canonical card name, for entries
            resolved under a different name (fuzzy match or printing)
    """

    found: list[CardRecord] = field(default_factory=list)
    not_found: list[str] = field(default_factory=list)
    aliases: dict[str, str] = field(default_factory=dict)


def _printing_key(set_code: str | None, collector_number: str | None) -> tuple[str, str] | None:
    if not set_code or not collector_number:
        return None
    return set_code.lower(), collector_number.lower()


def _identifier(entry: DeckEntry) -> dict[str, str]:
    if entry.set_code and entry.collector_number:
        return {"set": entry.set_code.lower(), "collector_number": entry.collector_number}
    return {"name": entry.name}


class CardLookup:
    """
    Async Scryfall client.

    Use as an async context manager, or pass a shared httpx.AsyncClient
    (which the caller then owns and closes).
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        base_url: str | None = None,
        request_delay: float | None = None,
    ):
        self._base_url = (base_url or settings.scryfall_api_url).rstrip("/")
        self._delay = settings.scryfall_request_delay if request_delay is None else request_delay
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=settings.scryfall_timeout,
            headers={
                "User-Agent": settings.scryfall_user_agent,
                "Accept": "application/json",
            },
        )
        self._last_request = 0.0

    async def __aenter__(self) -> "CardLookup":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _throttle(self) -> None:
        wait = self._last_request + self._delay - time.monotonic()
        if wait > 0:
            await asyncio.sleep(wait)
        self._last_request = time.monotonic()

    async def _request(self, method: str, path: str, **kwargs: Any) -> dict[str, Any] | None:
        """Send a request; returns the JSON body, or None on 404."""
        await self._throttle()
        url = f"{self._base_url}{path}"
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            raise CardLookupError(f"{method} {path}: {e}") from e

        if response.status_code == 404:
            return None
        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise CardLookupError(f"{method} {path}: HTTP {response.status_code}") from e

        data: dict[str, Any] = response.json()
        return data

    # =========================================================================
    # SINGLE-CARD ENDPOINTS
    # =========================================================================

    async def fetch_card_by_name(self, name: str) -> CardRecord | None:
        """Fuzzy name lookup ("sol rng" -> Sol Ring). None if unknown."""
        data = await self._request("GET", "/cards/named", params={"fuzzy": name})
        return card_record_from_scryfall(data) if data else None

    async def fetch_card_by_printing(
        self, set_code: str, collector_number: str
    ) -> CardRecord | None:
        """Exact printing lookup. None if unknown."""
        data = await self._request("GET", f"/cards/{set_code.lower()}/{collector_number}")
        return card_record_from_scryfall(data) if data else None

    async def fetch_collection(
        self, identifiers: Sequence[dict[str, str]]
    ) -> list[CardRecord]:
        """
        Resolve up to SCRYFALL_BATCH_SIZE identifiers in one request.

        Unresolved identifiers are simply absent from the result.
        """
        if len(identifiers) > SCRYFALL_BATCH_SIZE:
            raise ValueError(f"At most {SCRYFALL_BATCH_SIZE} identifiers per request")
        data = await self._request(
            "POST", "/cards/collection", json={"identifiers": list(identifiers)}
        )
        if not data:
            return []
        return [card_record_from_scryfall(card) for card in data.get("data", [])]

    # =========================================================================
    # BATCH LOOKUP
    # =========================================================================

    async def lookup_entries(self, entries: Sequence[DeckEntry]) -> LookupResult:
        """
        Resolve deck entries to card records.

        Args:
            entries: Parsed entries; duplicates are looked up once

        Returns:
            LookupResult with found records, missed names and aliases

        Raises:
            CardLookupError: Scryfall failed with anything other than 404
        """
        unique: dict[tuple[str, tuple[str, str] | None], DeckEntry] = {}
        for entry in entries:
            key = (entry.name_key, _printing_key(entry.set_code, entry.collector_number))
            unique.setdefault(key, entry)
        requested = list(unique.values())

        found: dict[str, CardRecord] = {}
        by_name: dict[str, CardRecord] = {}
        by_printing: dict[tuple[str, str], CardRecord] = {}

        def remember(card: CardRecord) -> None:
            found.setdefault(card.card_id, card)
            by_name.setdefault(card.name_key, card)
            by_name.setdefault(normalize_name(front_face_name(card.name)), card)
            printing = _printing_key(card.set_code, card.collector_number)
            if printing:
                by_printing.setdefault(printing, card)

        for start in range(0, len(requested), SCRYFALL_BATCH_SIZE):
            batch = requested[start : start + SCRYFALL_BATCH_SIZE]
            for card in await self.fetch_collection([_identifier(e) for e in batch]):
                remember(card)

        result = LookupResult()
        missed: list[DeckEntry] = []
        for entry in requested:
            printing = _printing_key(entry.set_code, entry.collector_number)
            card = (by_printing.get(printing) if printing else None) or by_name.get(
                entry.name_key
            )
            if card is None:
                missed.append(entry)
            elif card.name_key != entry.name_key:
                result.aliases[entry.name_key] = card.name

        fuzzy_hits = 0
        for entry in missed:
            # Already resolved by an earlier fuzzy call for the same name
            if entry.name_key in by_name or entry.name_key in result.aliases:
                continue
            card = await self.fetch_card_by_name(entry.name)
            if card is None:
                if entry.name not in result.not_found:
                    result.not_found.append(entry.name)
                continue
            fuzzy_hits += 1
            remember(card)
            if card.name_key != entry.name_key:
                result.aliases[entry.name_key] = card.name

        result.found = list(found.values())

        logger.info(
            "card_lookup_complete",
            extra={
                "requested": len(requested),
                "found": len(result.found),
                "fuzzy_hits": fuzzy_hits,
                "not_found": len(result.not_found),
            },
        )

        return result


async def get_card_lookup() -> AsyncGenerator[CardLookup, None]:
    """
    Dependency that provides a Scryfall client.

    Usage in FastAPI:
        @app.post("/import")
        async def import_deck(lookup: CardLookup = Depends(get_card_lookup)):
            ...
    """
    async with CardLookup() as lookup:
        yield lookup
