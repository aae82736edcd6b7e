"""
Integration tests for sales transactions and their stock effects.
"""

import pytest

from bizledger.app.db.row_store import StoreError


def sale(product_id, qty, price="10.00", **extra):
    payload = {
        "transaction_date": "2026-03-10",
        "items": [{"product_id": product_id, "product_name": "Widget", "qty": qty, "price": price}],
    }
    payload.update(extra)
    return payload


async def stock_of(store, product_id):
    row = await store.select_one("products", {"id": product_id})
    return row["stock_quantity"], row["stock"]


@pytest.mark.asyncio
async def test_sale_deducts_stock(client, auth_headers, store, make_product):
    product_id = await make_product(10)

    response = await client.post("/v1/transactions", json=sale(product_id, 3), headers=auth_headers)

    assert response.status_code == 201
    body = response.json()
    assert body["transaction"]["invoice_number"] == "INV-20260310-0001"
    assert body["transaction"]["total_amount"] == pytest.approx(30)
    assert body["items"][0]["stock_deducted"] is True
    adjustment = body["stock_adjustments"][0]
    assert (adjustment["previous"], adjustment["current"], adjustment["delta"]) == (10, 7, -3)
    assert adjustment["mirrored_field"] == "stock"
    assert await stock_of(store, product_id) == (7, 7)


@pytest.mark.asyncio
async def test_invoice_numbers_count_per_day(client, auth_headers, make_product):
    product_id = await make_product(10)
    await client.post("/v1/transactions", json=sale(product_id, 1), headers=auth_headers)

    response = await client.post("/v1/transactions", json=sale(product_id, 1), headers=auth_headers)

    assert response.json()["transaction"]["invoice_number"] == "INV-20260310-0002"


@pytest.mark.asyncio
async def test_discount_is_capped_at_subtotal(client, auth_headers, make_product):
    product_id = await make_product(10)

    response = await client.post("/v1/transactions", json=sale(product_id, 2, discount="50"), headers=auth_headers)

    assert response.json()["transaction"]["subtotal"] == pytest.approx(20)
    assert response.json()["transaction"]["total_amount"] == pytest.approx(0)


@pytest.mark.asyncio
async def test_insufficient_stock_writes_nothing(client, auth_headers, store, make_product):
    product_id = await make_product(2)

    response = await client.post("/v1/transactions", json=sale(product_id, 5), headers=auth_headers)

    assert response.status_code == 400
    body = response.json()
    assert body["error_code"] == "ERR_STOCK_001"
    assert body["details"]["insufficient"] == [{"product_id": product_id, "available": 2, "requested": 5}]
    assert await store.count("transactions") == 0
    assert await stock_of(store, product_id) == (2, 2)


@pytest.mark.asyncio
async def test_unknown_product_is_not_found(client, auth_headers, store):
    response = await client.post("/v1/transactions", json=sale("no-such-product", 1), headers=auth_headers)

    assert response.status_code == 404
    assert await store.count("transactions") == 0


@pytest.mark.asyncio
async def test_items_without_product_skip_stock(client, auth_headers):
    payload = {
        "transaction_date": "2026-03-10",
        "items": [{"product_name": "Service fee", "qty": 1, "price": "15"}],
    }

    response = await client.post("/v1/transactions", json=payload, headers=auth_headers)

    assert response.status_code == 201
    assert response.json()["stock_adjustments"] == []
    assert response.json()["items"][0]["stock_deducted"] is False


@pytest.mark.asyncio
async def test_failed_stock_write_undoes_sale(client, auth_headers, store, make_product, mocker):
    first = await make_product(10, "First")
    second = await make_product(10, "Second")
    original_update = store.update

    async def update(table_name, values, filters):
        if table_name == "products" and filters.get("id") == second:
            raise StoreError("update", table_name, "injected failure")
        return await original_update(table_name, values, filters)

    mocker.patch.object(store, "update", side_effect=update)
    payload = {
        "transaction_date": "2026-03-10",
        "items": [
            {"product_id": first, "qty": 2, "price": "5"},
            {"product_id": second, "qty": 1, "price": "5"},
        ],
    }

    response = await client.post("/v1/transactions", json=payload, headers=auth_headers)

    assert response.status_code == 500
    body = response.json()
    assert body["error_code"] == "ERR_STORE_002"
    assert body["details"]["failed_step"] == f"stock:{second}"
    mocker.stopall()
    assert await store.count("transactions") == 0
    assert await store.count("transaction_items") == 0
    assert await stock_of(store, first) == (10, 10)


@pytest.mark.asyncio
async def test_delete_sale_restores_stock(client, auth_headers, store, make_product):
    product_id = await make_product(10)
    created = (await client.post("/v1/transactions", json=sale(product_id, 4), headers=auth_headers)).json()

    response = await client.delete(f"/v1/transactions/{created['transaction']['id']}", headers=auth_headers)

    assert response.status_code == 200
    body = response.json()
    assert body["deleted"] is True
    assert body["stock_rollback"] == "complete"
    assert body["warnings"] == []
    assert await stock_of(store, product_id) == (10, 10)
    assert await store.count("transaction_items") == 0


@pytest.mark.asyncio
async def test_delete_with_vanished_product_is_partial(client, auth_headers, store, make_product):
    product_id = await make_product(10)
    created = (await client.post("/v1/transactions", json=sale(product_id, 4), headers=auth_headers)).json()
    await store.delete("products", {"id": product_id})

    response = await client.delete(f"/v1/transactions/{created['transaction']['id']}", headers=auth_headers)

    assert response.status_code == 200
    body = response.json()
    assert body["stock_rollback"] == "partial"
    assert body["warnings"][0]["code"] == "STOCK_ROLLBACK_FAILED"
    assert await store.count("transactions") == 0


@pytest.mark.asyncio
async def test_other_owner_cannot_delete(client, auth_headers, other_headers, store, make_product):
    product_id = await make_product(10)
    created = (await client.post("/v1/transactions", json=sale(product_id, 4), headers=auth_headers)).json()

    response = await client.delete(f"/v1/transactions/{created['transaction']['id']}", headers=other_headers)

    assert response.status_code == 404
    assert await stock_of(store, product_id) == (6, 6)


@pytest.mark.asyncio
async def test_bulk_delete(client, auth_headers, store, make_product):
    product_id = await make_product(10)
    ids = []
    for qty in (1, 2):
        created = (await client.post("/v1/transactions", json=sale(product_id, qty), headers=auth_headers)).json()
        ids.append(created["transaction"]["id"])

    response = await client.post(
        "/v1/transactions/bulk-delete", json={"ids": ids + ["not-mine"]}, headers=auth_headers
    )

    assert response.status_code == 200
    assert response.json()["deleted"] == 2
    assert sorted(response.json()["ids"]) == sorted(ids)
    assert await stock_of(store, product_id) == (10, 10)


@pytest.mark.asyncio
async def test_edit_items_nets_stock_per_product(client, auth_headers, store, make_product):
    kept = await make_product(10, "Kept")
    dropped = await make_product(10, "Dropped")
    payload = {
        "transaction_date": "2026-03-10",
        "items": [
            {"product_id": kept, "qty": 2, "price": "5"},
            {"product_id": dropped, "qty": 3, "price": "5"},
        ],
    }
    created = (await client.post("/v1/transactions", json=payload, headers=auth_headers)).json()

    response = await client.put(
        f"/v1/transactions/{created['transaction']['id']}/items",
        json={"items": [{"product_id": kept, "qty": 5, "price": "5"}]},
        headers=auth_headers,
    )

    assert response.status_code == 200
    body = response.json()
    assert body["transaction"]["total_amount"] == pytest.approx(25)
    assert len(body["items"]) == 1
    assert await stock_of(store, kept) == (5, 5)
    assert await stock_of(store, dropped) == (10, 10)


@pytest.mark.asyncio
async def test_list_and_get(client, auth_headers, make_product):
    product_id = await make_product(10)
    created = (await client.post("/v1/transactions", json=sale(product_id, 1), headers=auth_headers)).json()

    response = await client.get(
        "/v1/transactions?start_date=2026-03-01&end_date=2026-03-31", headers=auth_headers
    )
    assert response.json()["total"] == 1

    response = await client.get("/v1/transactions?start_date=2026-04-01", headers=auth_headers)
    assert response.json()["total"] == 0

    response = await client.get(f"/v1/transactions/{created['transaction']['id']}", headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["items"][0]["product_id"] == product_id


@pytest.mark.asyncio
async def test_edit_with_vanished_product_keeps_the_edit(client, auth_headers, store, make_product):
    gone = await make_product(10, "Gone")
    kept = await make_product(10, "Kept")
    payload = {
        "transaction_date": "2026-03-10",
        "items": [
            {"product_id": gone, "qty": 2, "price": "5"},
            {"product_id": kept, "qty": 1, "price": "5"},
        ],
    }
    created = (await client.post("/v1/transactions", json=payload, headers=auth_headers)).json()
    transaction_id = created["transaction"]["id"]
    await store.delete("products", {"id": gone})

    response = await client.put(
        f"/v1/transactions/{transaction_id}/items",
        json={"items": [{"product_id": kept, "qty": 3, "price": "5"}]},
        headers=auth_headers,
    )

    assert response.status_code == 200
    body = response.json()
    assert body["stock_rollback"] == "partial"
    assert [w["code"] for w in body["warnings"]] == ["STOCK_ROLLBACK_FAILED"]
    assert body["warnings"][0]["context"]["product_id"] == gone
    assert body["transaction"]["total_amount"] == pytest.approx(15)
    assert [item["product_id"] for item in body["items"]] == [kept]
    assert await stock_of(store, kept) == (7, 7)


@pytest.mark.asyncio
async def test_edit_reports_complete_rollback(client, auth_headers, make_product):
    product_id = await make_product(10)
    created = (await client.post("/v1/transactions", json=sale(product_id, 4), headers=auth_headers)).json()

    response = await client.put(
        f"/v1/transactions/{created['transaction']['id']}/items",
        json={"items": [{"product_id": product_id, "qty": 1, "price": "10"}]},
        headers=auth_headers,
    )

    body = response.json()
    assert body["stock_rollback"] == "complete"
    assert body["warnings"] == []
    assert body["stock_adjustments"][0]["delta"] == 3


@pytest.mark.asyncio
async def test_failed_deduction_undoes_edit(client, auth_headers, store, make_product, mocker):
    old = await make_product(10, "Old")
    new = await make_product(10, "New")
    created = (await client.post("/v1/transactions", json=sale(old, 2), headers=auth_headers)).json()
    transaction_id = created["transaction"]["id"]
    original_update = store.update

    async def update(table_name, values, filters):
        if table_name == "products" and filters.get("id") == new:
            raise StoreError("update", table_name, "injected failure")
        return await original_update(table_name, values, filters)

    mocker.patch.object(store, "update", side_effect=update)

    response = await client.put(
        f"/v1/transactions/{transaction_id}/items",
        json={"items": [{"product_id": new, "qty": 1, "price": "5"}]},
        headers=auth_headers,
    )

    assert response.status_code == 500
    assert response.json()["error_code"] == "ERR_STORE_002"
    mocker.stopall()
    items = await store.select("transaction_items", filters={"transaction_id": transaction_id})
    assert [item["product_id"] for item in items] == [old]
    assert await stock_of(store, old) == (8, 8)
    assert await stock_of(store, new) == (10, 10)
