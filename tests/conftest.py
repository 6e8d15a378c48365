"""
Pytest fixtures - per-test SQLite store and sample entities (TDD/BDD support).
Challenge: Isolated tests; every test gets a fresh database file.
"""

from typing import AsyncGenerator

import pytest
import pytest_asyncio

from recordstore.config import Settings
from recordstore.db.models import Address, Name, Product, Sample, User, Wallet
from recordstore.db.session import create_store
from recordstore.db.store import RecordStore


@pytest.fixture
def settings(tmp_path) -> Settings:
    # SQLite file per test; the same code runs against PostgreSQL via RECORDSTORE_DATABASE_URL
    return Settings(database_url=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", _env_file=None)


@pytest_asyncio.fixture
async def bare_store(settings: Settings) -> AsyncGenerator[RecordStore, None]:
    """Store over an empty database (no tables)."""
    store = create_store(settings)
    yield store
    await store.close()


@pytest_asyncio.fixture
async def store(bare_store: RecordStore) -> RecordStore:
    await bare_store.migrate()
    return bare_store


def make_user(id: str, first_name: str, **kwargs) -> User:
    return User(id=id, password="rahasia", name=Name(first_name=first_name, **kwargs))


@pytest_asyncio.fixture
async def samples(store: RecordStore) -> list[Sample]:
    rows = [Sample(id="1", name="Lingga"), Sample(id="2", name="Budi"), Sample(id="3", name="Joko"), Sample(id="4", name="Rully")]
    await store.insert(rows)
    return rows


@pytest_asyncio.fixture
async def lingga(store: RecordStore) -> User:
    """User with a wallet and two addresses, created in one call."""
    user = make_user("lingga", "Lingga", last_name="Pratama")
    user.wallet = Wallet(id="wallet-lingga", balance=1_000_000)
    user.addresses = [Address(address="Jalan Belum Ada"), Address(address="Jalan Sudirman")]
    await store.insert(user)
    return user


@pytest_asyncio.fixture
async def budi(store: RecordStore) -> User:
    """User without wallet or addresses."""
    user = make_user("budi", "Budi")
    await store.insert(user)
    return user


@pytest_asyncio.fixture
async def products(store: RecordStore) -> list[Product]:
    rows = [Product(id="p1", name="Contoh Product 1", price=100_000), Product(id="p2", name="Contoh Product 2", price=200_000)]
    await store.insert(rows)
    return rows
