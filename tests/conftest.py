from collections.abc import Callable
from typing import Any

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from deckmender.db.database import get_session
from deckmender.filtering.candidate_pool import reset_pool_metrics
from deckmender.main import app
from deckmender.models.card import CardRecord
from deckmender.models.db import Base
from deckmender.models.deck import DeckEntry
from deckmender.services.card_lookup import LookupResult, get_card_lookup
from deckmender.services.deck_analyst import reset_token_metrics

CardFactory = Callable[..., CardRecord]


@pytest.fixture(autouse=True)
def clear_metrics():
    """Clear module-level metrics between tests."""
    reset_pool_metrics()
    reset_token_metrics()
    yield
    reset_pool_metrics()
    reset_token_metrics()


@pytest.fixture
def make_card() -> CardFactory:
    """Factory for CardRecords; card_id defaults to a slug of the name."""

    def _make(name: str, **fields: Any) -> CardRecord:
        fields.setdefault("card_id", "id-" + name.lower().replace(" ", "-"))
        for key in ("colors", "color_identity", "keywords"):
            if key in fields:
                fields[key] = tuple(fields[key])
        return CardRecord(name=name, **fields)

    return _make


@pytest.fixture
def make_entry(make_card: CardFactory) -> Callable[..., DeckEntry]:
    """Factory for resolved DeckEntries; extra keywords go to the card."""

    def _make(name: str, quantity: int = 1, **card_fields: Any) -> DeckEntry:
        return DeckEntry(name=name, quantity=quantity, card=make_card(name, **card_fields))

    return _make


@pytest.fixture
def scryfall_card() -> Callable[..., dict[str, Any]]:
    """Factory for Scryfall card JSON objects."""

    def _make(name: str, **fields: Any) -> dict[str, Any]:
        data: dict[str, Any] = {
            "object": "card",
            "id": "id-" + name.lower().replace(" ", "-"),
            "name": name,
            "type_line": "Artifact",
            "oracle_text": "",
            "mana_cost": "{1}",
            "cmc": 1.0,
            "colors": [],
            "color_identity": [],
            "keywords": [],
            "set": "c21",
            "collector_number": "1",
            "rarity": "common",
        }
        data.update(fields)
        return data

    return _make


@pytest.fixture
def sample_commander_deck() -> str:
    """Commander deck list with section markers."""
    return """// Commander
1 Atraxa, Praetors' Voice (C16) 28

// Deck
1 Sol Ring (C21) 263
1 Arcane Signet (C21) 236
1 Swords to Plowshares (C21) 100
30 Forest"""


@pytest.fixture
def sample_manabox_csv() -> str:
    """ManaBox collection export."""
    return """Binder Name,Binder Type,Name,Set code,Set name,Collector number,Foil,Quantity
Trade,binder,Sol Ring,C21,Commander 2021,263,normal,2
Trade,binder,Sol Ring,LTC,Tales of Middle-earth Commander,301,normal,1
Main,binder,Counterspell,CMM,Commander Masters,81,foil,3"""


@pytest.fixture
async def async_engine():
    """Create an in-memory SQLite engine for testing."""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def session(async_engine) -> AsyncSession:
    """Provide a database session for tests."""
    async_session = async_sessionmaker(async_engine, class_=AsyncSession, expire_on_commit=False)
    async with async_session() as session:
        yield session


class FakeCardLookup:
    """Resolves names from a fixed card list instead of calling Scryfall."""

    def __init__(self, cards: list[CardRecord]):
        self.cards = {card.name_key: card for card in cards}
        self.requested: list[str] = []

    async def lookup_entries(self, entries: list[DeckEntry]) -> LookupResult:
        found: dict[str, CardRecord] = {}
        not_found: list[str] = []
        for entry in entries:
            self.requested.append(entry.name)
            card = self.cards.get(entry.name_key)
            if card is not None:
                found[card.card_id] = card
            elif entry.name not in not_found:
                not_found.append(entry.name)
        return LookupResult(found=list(found.values()), not_found=not_found)

    async def aclose(self) -> None:
        pass


@pytest.fixture
def card_catalog(make_card: CardFactory) -> list[CardRecord]:
    """Cards the fake lookup knows about."""
    return [
        make_card(
            "Atraxa, Praetors' Voice",
            type_line="Legendary Creature — Phyrexian Angel Horror",
            oracle_text="Flying, vigilance, deathtouch, lifelink",
            mana_value=4.0,
            color_identity=["W", "U", "B", "G"],
            power="4",
        ),
        make_card(
            "Thrasios, Triton Hero",
            type_line="Legendary Creature — Merfolk Wizard",
            mana_value=2.0,
            color_identity=["G", "U"],
        ),
        make_card(
            "Tymna the Weaver",
            type_line="Legendary Creature — Human Cleric",
            mana_value=3.0,
            color_identity=["W", "B"],
        ),
        make_card(
            "Kenrith, the Returned King",
            type_line="Legendary Creature — Human Noble",
            mana_value=5.0,
            color_identity=["W", "U", "B", "R", "G"],
        ),
        make_card("Sol Ring", type_line="Artifact", oracle_text="{T}: Add {C}{C}.", mana_value=1.0),
        make_card(
            "Arcane Signet",
            type_line="Artifact",
            oracle_text="{T}: Add one mana of any color in your commander's color identity.",
            mana_value=2.0,
        ),
        make_card(
            "Swords to Plowshares",
            type_line="Instant",
            oracle_text="Exile target creature. Its controller gains life equal to its power.",
            mana_value=1.0,
            color_identity=["W"],
        ),
        make_card(
            "Counterspell",
            type_line="Instant",
            oracle_text="Counter target spell.",
            mana_value=2.0,
            color_identity=["U"],
        ),
        make_card(
            "Lightning Bolt",
            type_line="Instant",
            oracle_text="Lightning Bolt deals 3 damage to any target.",
            mana_value=1.0,
            color_identity=["R"],
        ),
        make_card(
            "Rampant Growth",
            type_line="Sorcery",
            oracle_text="Search your library for a basic land card, put that card onto the "
            "battlefield tapped, then shuffle.",
            mana_value=2.0,
            color_identity=["G"],
        ),
        make_card("Forest", type_line="Basic Land — Forest", color_identity=["G"]),
    ]


@pytest.fixture
def fake_lookup(card_catalog: list[CardRecord]) -> FakeCardLookup:
    return FakeCardLookup(card_catalog)


@pytest.fixture
async def client(async_engine, fake_lookup: FakeCardLookup):
    """Provide an async test client with overridden database session and card lookup."""
    async_session = async_sessionmaker(async_engine, class_=AsyncSession, expire_on_commit=False)

    async def override_get_session():
        async with async_session() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def override_get_card_lookup():
        yield fake_lookup

    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_card_lookup] = override_get_card_lookup

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
