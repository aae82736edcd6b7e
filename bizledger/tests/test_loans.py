"""
Integration tests for loans and installment payments.
"""

import pytest
from datetime import date, timedelta

from bizledger.app.db.row_store import StoreError
from bizledger.tests.payloads import LOAN_PAYLOAD, pay


@pytest.fixture
async def loan(client, auth_headers):
    response = await client.post("/v1/loans", json=LOAN_PAYLOAD, headers=auth_headers)
    assert response.status_code == 201
    return response.json()


@pytest.mark.asyncio
async def test_create_loan_generates_schedule(loan):
    assert loan["status"] == "active"
    assert loan["installment_amount"] == pytest.approx(1066.19)
    assert loan["remaining_balance"] == pytest.approx(12000)
    assert len(loan["installments"]) == 12
    assert [i["installment_number"] for i in loan["installments"]] == list(range(1, 13))
    assert loan["installments"][0]["due_date"] == "2026-02-01"
    assert loan["installments"][-1]["due_date"] == "2027-01-01"
    assert sum(i["principal_amount"] for i in loan["installments"]) == pytest.approx(12000)


@pytest.mark.asyncio
async def test_create_loan_requires_auth(client):
    response = await client.post("/v1/loans", json=LOAN_PAYLOAD)
    assert response.status_code in (401, 403)


@pytest.mark.asyncio
async def test_create_loan_rejects_invalid_terms(client, auth_headers):
    response = await client.post("/v1/loans", json=dict(LOAN_PAYLOAD, loan_amount="0"), headers=auth_headers)
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_pay_installment_records_expense(client, auth_headers, store, loan):
    first = loan["installments"][0]

    response = await pay(client, auth_headers, first)

    assert response.status_code == 200
    body = response.json()
    assert body["installment"]["status"] == "paid"
    assert body["installment"]["expense_transaction_id"] == body["expense"]["id"]
    assert body["expense"]["category"] == "debt_payment"
    assert body["expense"]["subcategory"] == "loan_installment"
    assert body["expense"]["amount"] == pytest.approx(first["total_amount"])
    assert body["expense"]["source_type"] == "loan_installment"
    assert body["expense"]["source_id"] == first["id"]
    assert body["loan_status"] == "active"
    assert body["loan"]["total_paid"] == pytest.approx(first["total_amount"])
    assert body["loan"]["remaining_balance"] == pytest.approx(12000 - first["principal_amount"])
    assert body["warnings"] == []

    assert await store.count("expenses", {"user_id": "owner-1"}) == 1


@pytest.mark.asyncio
async def test_paying_twice_is_rejected_without_second_expense(client, auth_headers, store, loan):
    first = loan["installments"][0]
    assert (await pay(client, auth_headers, first)).status_code == 200

    response = await pay(client, auth_headers, first)

    assert response.status_code == 409
    assert response.json()["error_code"] == "ERR_IDEMPOTENCY_001"
    assert await store.count("expenses") == 1


@pytest.mark.asyncio
async def test_paying_every_installment_pays_off_loan(client, auth_headers, loan):
    for installment in loan["installments"]:
        response = await pay(client, auth_headers, installment)
        assert response.status_code == 200

    body = response.json()
    assert body["loan_status"] == "paid_off"
    assert body["loan"]["remaining_balance"] == pytest.approx(0)


@pytest.mark.asyncio
async def test_other_owner_cannot_pay(client, other_headers, store, loan):
    response = await pay(client, other_headers, loan["installments"][0])

    assert response.status_code == 404
    assert await store.count("expenses") == 0


@pytest.mark.asyncio
async def test_list_and_get_loans(client, auth_headers, other_headers, loan):
    response = await client.get("/v1/loans", headers=auth_headers)
    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 1
    assert body["loans"][0]["installment_count"] == 12

    response = await client.get("/v1/loans", headers=other_headers)
    assert response.json()["total"] == 0

    response = await client.get(f"/v1/loans/{loan['id']}", headers=auth_headers)
    assert response.status_code == 200
    assert len(response.json()["installments"]) == 12

    response = await client.get(f"/v1/loans/{loan['id']}", headers=other_headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_update_loan_descriptive_fields(client, auth_headers, loan):
    response = await client.patch(
        f"/v1/loans/{loan['id']}", json={"lender_name": "Second Bank", "status": "defaulted"}, headers=auth_headers
    )

    assert response.status_code == 200
    assert response.json()["lender_name"] == "Second Bank"
    assert response.json()["status"] == "defaulted"

    response = await client.patch(f"/v1/loans/{loan['id']}", json={}, headers=auth_headers)
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_delete_unpaid_loan_removes_schedule(client, auth_headers, store, loan):
    response = await client.delete(f"/v1/loans/{loan['id']}", headers=auth_headers)

    assert response.status_code == 200
    assert response.json() == {"deleted": True, "id": loan["id"], "installments_deleted": 12}
    assert await store.count("loan_installments") == 0
    assert await store.count("loans") == 0


@pytest.mark.asyncio
async def test_delete_loan_with_payment_is_blocked(client, auth_headers, store, loan):
    await pay(client, auth_headers, loan["installments"][0])

    response = await client.delete(f"/v1/loans/{loan['id']}", headers=auth_headers)

    assert response.status_code == 400
    assert response.json()["error_code"] == "ERR_LOAN_001"
    assert await store.count("loan_installments") == 12


@pytest.mark.asyncio
async def test_upcoming_installments_window(client, auth_headers):
    first_due = date.today() + timedelta(days=5)
    payload = dict(LOAN_PAYLOAD, loan_date=date.today().isoformat(), first_payment_date=first_due.isoformat())
    created = (await client.post("/v1/loans", json=payload, headers=auth_headers)).json()

    response = await client.get("/v1/loans/installments/upcoming?days=30", headers=auth_headers)

    assert response.status_code == 200
    upcoming = response.json()["installments"]
    assert len(upcoming) == 1
    assert upcoming[0]["id"] == created["installments"][0]["id"]
    assert upcoming[0]["loan"]["lender_name"] == "First Bank"


@pytest.mark.asyncio
async def test_failed_schedule_insert_removes_loan(client, auth_headers, store, mocker):
    original_insert = store.insert

    async def insert(table_name, rows):
        if table_name == "loan_installments":
            raise StoreError("insert", table_name, "injected failure")
        return await original_insert(table_name, rows)

    mocker.patch.object(store, "insert", side_effect=insert)

    response = await client.post("/v1/loans", json=LOAN_PAYLOAD, headers=auth_headers)

    assert response.status_code == 500
    body = response.json()
    assert body["error_code"] == "ERR_STORE_002"
    assert body["details"]["failed_step"] == "installments"
    assert body["details"]["rolled_back"] == ["loan"]
    mocker.stopall()
    assert await store.count("loans") == 0
    assert await store.count("loan_installments") == 0


@pytest.mark.asyncio
async def test_failed_installment_update_removes_expense(client, auth_headers, store, loan, mocker):
    first = loan["installments"][0]
    original_update = store.update

    async def update(table_name, values, filters):
        if table_name == "loan_installments":
            raise StoreError("update", table_name, "injected failure")
        return await original_update(table_name, values, filters)

    mocker.patch.object(store, "update", side_effect=update)

    response = await pay(client, auth_headers, first)

    assert response.status_code == 500
    body = response.json()
    assert body["error_code"] == "ERR_STORE_002"
    assert body["details"]["rolled_back"] == ["expense"]
    mocker.stopall()
    assert await store.count("expenses") == 0
    installment = await store.select_one("loan_installments", {"id": first["id"]})
    assert installment["status"] == "pending"
    assert installment["expense_transaction_id"] is None
