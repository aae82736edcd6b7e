"""
The same sale flows against a deployment with the older column layout:
``owner_id`` on transactions and only ``stock`` on products.
"""

import pytest
from sqlalchemy import text

from bizledger.app.db.row_store import SqlRowStore, new_id
from bizledger.app.db.session import create_tables

LEGACY_DDL = [
    """
    CREATE TABLE products (
        id VARCHAR(36) PRIMARY KEY,
        owner_id VARCHAR(36),
        name VARCHAR(200) NOT NULL,
        stock INTEGER NOT NULL DEFAULT 0,
        created_at DATETIME DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE transactions (
        id VARCHAR(36) PRIMARY KEY,
        owner_id VARCHAR(36) NOT NULL,
        invoice_number VARCHAR(50) NOT NULL,
        transaction_date DATE NOT NULL,
        customer_name VARCHAR(200),
        subtotal NUMERIC(18, 2) NOT NULL,
        discount NUMERIC(18, 2) NOT NULL DEFAULT 0,
        total_amount NUMERIC(18, 2) NOT NULL,
        payment_method VARCHAR(50),
        status VARCHAR(20) NOT NULL,
        notes TEXT,
        created_at DATETIME DEFAULT CURRENT_TIMESTAMP
    )
    """,
]


@pytest.fixture
async def store(engine):
    async with engine.begin() as conn:
        for statement in LEGACY_DDL:
            await conn.execute(text(statement))
    # Remaining tables in their current shape
    await create_tables(engine)
    return SqlRowStore(engine)


@pytest.fixture
def make_product(store):
    async def _make(stock: int, name: str = "Widget") -> str:
        product_id = new_id()
        await store.insert("products", {"id": product_id, "owner_id": "owner-1", "name": name, "stock": stock})
        return product_id
    return _make


@pytest.mark.asyncio
async def test_sale_then_delete_round_trips_legacy_stock(client, auth_headers, store, resolver, make_product):
    product_id = await make_product(10)
    payload = {
        "transaction_date": "2026-03-10",
        "items": [{"product_id": product_id, "qty": 3, "price": "4.50"}],
    }

    created = await client.post("/v1/transactions", json=payload, headers=auth_headers)

    assert created.status_code == 201
    adjustment = created.json()["stock_adjustments"][0]
    assert adjustment["field"] == "stock"
    assert adjustment["mirrored_field"] is None
    assert (await store.select_one("products", {"id": product_id}))["stock"] == 7

    transaction_id = created.json()["transaction"]["id"]
    assert (await store.select_one("transactions", {"id": transaction_id}))["owner_id"] == "owner-1"
    assert await resolver.resolve("transactions", ["user_id", "owner_id"]) == "owner_id"

    deleted = await client.delete(f"/v1/transactions/{transaction_id}", headers=auth_headers)

    assert deleted.status_code == 200
    assert deleted.json()["stock_rollback"] == "complete"
    assert (await store.select_one("products", {"id": product_id}))["stock"] == 10


@pytest.mark.asyncio
async def test_legacy_owner_scoping(client, auth_headers, other_headers, make_product):
    product_id = await make_product(5)
    payload = {
        "transaction_date": "2026-03-10",
        "items": [{"product_id": product_id, "qty": 1, "price": "1"}],
    }
    await client.post("/v1/transactions", json=payload, headers=auth_headers)

    mine = await client.get("/v1/transactions", headers=auth_headers)
    theirs = await client.get("/v1/transactions", headers=other_headers)

    assert mine.json()["total"] == 1
    assert theirs.json()["total"] == 0
