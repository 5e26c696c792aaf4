"""Shared test fixtures for all tests."""
import asyncio
from collections import Counter
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Sequence, Set
import uuid

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.exc import OperationalError

from pantry.api.deps import ScanRegistry, get_inventory_store, get_scan_registry, get_scan_services
from pantry.core.config import Settings, settings
from pantry.core.database import Base, create_engine_for, create_session_factory
from pantry.main import app
from pantry.match import rank_candidates
from pantry.models import Product, ProductAlias, HouseInventory  # noqa: F401
from pantry.schemas.inventory import InventoryEntry, RowResult
from pantry.schemas.product import CatalogCandidate
from pantry.session import ScanServices
from pantry.stores import AliasStore, InventoryStore, ProductRegistry


def make_candidate(title: str, external_id: Optional[str] = None, cents: Optional[int] = None) -> CatalogCandidate:
    """Helper to create a catalog candidate."""
    return CatalogCandidate(
        external_id=external_id,
        title=title,
        image_url=f"https://img.example/{(external_id or title).replace(' ', '_')}.png",
        price=(Decimal(cents) / 100) if cents is not None else None,
    )


class FakeCatalog:
    """Catalog search backed by a dict of query -> candidates."""

    def __init__(self, results: Optional[Dict[str, List[CatalogCandidate]]] = None):
        self.results = results or {}
        self.queries: List[str] = []

    async def search(self, query: str) -> list[CatalogCandidate]:
        self.queries.append(query)
        return rank_candidates(query, self.results.get(query, []))


class CountingShelfLife:
    """Shelf-life source that counts calls per product name."""

    def __init__(self, days: Optional[Dict[str, Optional[int]]] = None, default: Optional[int] = 10):
        self.days = days or {}
        self.default = default
        self.calls: Counter = Counter()

    async def estimate(self, product_name: str) -> Optional[int]:
        self.calls[product_name] += 1
        # Give concurrent callers a chance to pile up
        await asyncio.sleep(0.01)
        return self.days.get(product_name, self.default)


class FlakyInventory:
    """Inventory writer that fails rows for chosen products until healed."""

    def __init__(self, inner: InventoryStore, failing: Iterable[uuid.UUID] = ()):
        self.inner = inner
        self.failing: Set[uuid.UUID] = set(failing)
        self.batches: List[int] = []

    async def insert_inventory_batch(self, entries: Sequence[InventoryEntry]) -> list[RowResult]:
        self.batches.append(len(entries))
        ok = [e for e in entries if e.product_id not in self.failing]
        stored = {id(r.entry): r for r in await self.inner.insert_inventory_batch(ok)}
        results = []
        for entry in entries:
            if entry.product_id in self.failing:
                results.append(RowResult(entry=entry, ok=False, error="disk I/O error"))
            else:
                results.append(stored[id(entry)])
        return results


class DownInventory:
    """Inventory writer whose database is unreachable."""

    async def insert_inventory_batch(self, entries: Sequence[InventoryEntry]) -> list[RowResult]:
        raise OperationalError("INSERT INTO house_inventories", {}, Exception("database is locked"))


@pytest.fixture(scope="function")
def db_url(tmp_path):
    """A fresh file-backed SQLite database with all tables created."""
    db_file = tmp_path / "pantry-test.db"
    sync_engine = create_engine(f"sqlite:///{db_file}")
    Base.metadata.create_all(sync_engine)
    sync_engine.dispose()
    return f"sqlite+aiosqlite:///{db_file}"


@pytest.fixture
def session_factory(db_url):
    return create_session_factory(create_engine_for(db_url))


@pytest.fixture
def aliases(session_factory):
    return AliasStore(session_factory)


@pytest.fixture
def products(session_factory):
    return ProductRegistry(session_factory)


@pytest.fixture
def inventory_store(session_factory):
    return InventoryStore(session_factory)


@pytest.fixture
def catalog():
    return FakeCatalog({
        "AH Halfvolle Melk": [
            make_candidate("Jumbo Verse Halfvolle Melk 1L", "123456PAK", 109),
            make_candidate("Albert Heijn Halfvolle Melk", "654321PAK", 115),
            make_candidate("Campina Karnemelk 1L", "777777PAK", 129),
        ],
        "Bread": [
            make_candidate("Jumbo Volkoren Brood", "900001STK", 220),
        ],
    })


@pytest.fixture
def shelf_life():
    return CountingShelfLife()


@pytest.fixture
def scan_settings():
    return Settings(DEFAULT_SHELF_LIFE_DAYS=7, COMMIT_CONCURRENCY=4, RESOLVE_CONCURRENCY=8)


@pytest.fixture
def services(aliases, products, inventory_store, catalog, shelf_life, scan_settings):
    return ScanServices(
        aliases=aliases,
        products=products,
        inventory=inventory_store,
        catalog=catalog,
        shelf_life=shelf_life,
        settings=scan_settings,
    )


@pytest.fixture
def house_id():
    return uuid.uuid4()


@pytest.fixture(scope="function")
def client(services, inventory_store, tmp_path, monkeypatch):
    """Create a test client with dependency overrides."""
    monkeypatch.setattr(settings, "log_dir", str(tmp_path / "logs"))
    registry = ScanRegistry()

    app.dependency_overrides[get_scan_services] = lambda: services
    app.dependency_overrides[get_scan_registry] = lambda: registry
    app.dependency_overrides[get_inventory_store] = lambda: inventory_store
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


RECEIPT_ROWS = [
    "Jumbo Supermarkten",
    "Omschrijving   Bedrag",
    "AH Halfvolle Melk",
    "1,15",
    "Bread",
    "2,20",
    "Statiegeld",
    "0,25",
    "TOTAAL  3.60",
    "PINNEN  3.60",
    "Bedankt voor uw bezoek",
]


@pytest.fixture
def receipt_rows():
    return list(RECEIPT_ROWS)
