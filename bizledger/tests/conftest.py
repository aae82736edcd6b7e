"""
Centralized Test Configuration.
"""

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import Pool

from bizledger.app.main import app
from bizledger.app.core.dependencies import get_store, get_field_resolver
from bizledger.app.core.jwt import create_owner_token
from bizledger.app.db.row_store import SqlRowStore, new_id
from bizledger.app.db.session import create_tables
from bizledger.app.domain.schema.field_resolver import FieldResolver

OWNER_ID = "owner-1"
OTHER_OWNER_ID = "owner-2"


@event.listens_for(Pool, "connect")
def set_sqlite_pragma(dbapi_conn, connection_record):
    """Enable foreign key constraints for SQLite."""
    if 'sqlite' in str(type(dbapi_conn)):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


# File-backed database per test: the dashboard summary reads on several
# connections at once, which an in-memory StaticPool cannot serve.
@pytest.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}")
    yield engine
    await engine.dispose()


@pytest.fixture
async def store(engine):
    await create_tables(engine)
    return SqlRowStore(engine)


@pytest.fixture
def resolver(store):
    return FieldResolver(store)


@pytest.fixture
async def client(store, resolver):
    """Async client wired to the test store and resolver."""
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_field_resolver] = lambda: resolver
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides = {}


def _headers(user_id: str, username: str) -> dict:
    token = create_owner_token(user_id, username)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers():
    return _headers(OWNER_ID, "owner1")


@pytest.fixture
def other_headers():
    return _headers(OTHER_OWNER_ID, "owner2")


@pytest.fixture
def make_product(store):
    """Insert a product with the given stock and return its id."""
    async def _make(stock: int, name: str = "Widget") -> str:
        product_id = new_id()
        await store.insert("products", {
            "id": product_id,
            "user_id": OWNER_ID,
            "name": name,
            "stock_quantity": stock,
            "stock": stock,
        })
        return product_id
    return _make
