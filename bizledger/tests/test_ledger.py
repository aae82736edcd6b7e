"""
Deleting generated ledger entries reverses the event behind them.
"""

import pytest
from datetime import date

from bizledger.app.db.row_store import new_id
from bizledger.tests.payloads import LOAN_PAYLOAD, FUNDING_PAYLOAD, INVESTMENT_PAYLOAD, pay, period, record_return


@pytest.mark.asyncio
async def test_deleting_installment_expense_reopens_installment(client, auth_headers, store):
    loan = (await client.post("/v1/loans", json=LOAN_PAYLOAD, headers=auth_headers)).json()
    first = loan["installments"][0]
    paid = (await pay(client, auth_headers, first)).json()

    response = await client.delete(f"/v1/ledger/expenses/{paid['expense']['id']}", headers=auth_headers)

    assert response.status_code == 200
    body = response.json()
    assert body["reversed"] == {"source_type": "loan_installment", "id": first["id"]}
    assert body["warnings"] == []

    installment = await store.select_one("loan_installments", {"id": first["id"]})
    assert installment["status"] == "pending"
    assert installment["paid_date"] is None
    assert installment["expense_transaction_id"] is None
    refreshed = await store.select_one("loans", {"id": loan["id"]})
    assert float(refreshed["total_paid"]) == 0
    assert float(refreshed["remaining_balance"]) == 12000

    # The installment can be paid again
    assert (await pay(client, auth_headers, first)).status_code == 200


@pytest.mark.asyncio
async def test_deleting_profit_share_expense_reopens_payment(client, auth_headers, store):
    funding = (await client.post("/v1/investors", json=FUNDING_PAYLOAD, headers=auth_headers)).json()
    recorded = (await client.post(
        "/v1/investors/profit-sharing",
        json=period(funding_id=funding["id"], status="paid", paid_date="2026-04-10"),
        headers=auth_headers,
    )).json()

    response = await client.delete(f"/v1/ledger/expenses/{recorded['expense']['id']}", headers=auth_headers)

    assert response.json()["reversed"]["source_type"] == "profit_sharing_payment"
    payment = await store.select_one("profit_sharing_payments", {"id": recorded["payment"]["id"]})
    assert payment["status"] == "pending"
    funding_row = await store.select_one("investor_funding", {"id": funding["id"]})
    assert float(funding_row["total_profit_shared"]) == 0


@pytest.mark.asyncio
async def test_deleting_return_income_removes_return(client, auth_headers, store):
    investment = (await client.post("/v1/investments", json=INVESTMENT_PAYLOAD, headers=auth_headers)).json()
    investment_id = investment["investment"]["id"]
    recorded = (await record_return(client, auth_headers, investment_id, "300", "liquidation")).json()

    response = await client.delete(f"/v1/ledger/incomes/{recorded['income']['id']}", headers=auth_headers)

    assert response.status_code == 200
    assert response.json()["reversed"] == {"source_type": "investment_return", "id": recorded["investment_return"]["id"]}
    assert await store.count("investment_returns") == 0
    refreshed = await store.select_one("investments", {"id": investment_id})
    assert float(refreshed["total_returns"]) == 0
    assert float(refreshed["current_value"]) == 5000
    assert refreshed["status"] == "active"


@pytest.mark.asyncio
async def test_deleting_purchase_expense_unlinks_investment(client, auth_headers, store):
    payload = dict(INVESTMENT_PAYLOAD, create_expense=True, transaction_date="2026-01-05")
    created = (await client.post("/v1/investments", json=payload, headers=auth_headers)).json()

    response = await client.delete(f"/v1/ledger/expenses/{created['expense']['id']}", headers=auth_headers)

    assert response.json()["reversed"]["source_type"] == "investment"
    investment = await store.select_one("investments", {"id": created["investment"]["id"]})
    assert investment["expense_transaction_id"] is None


@pytest.mark.asyncio
async def test_manual_entry_deletes_without_reversal(client, auth_headers, store):
    expense_id = new_id()
    await store.insert("expenses", {
        "id": expense_id,
        "user_id": "owner-1",
        "expense_date": date(2026, 3, 1),
        "category": "rent",
        "amount": 800,
    })

    response = await client.delete(f"/v1/ledger/expenses/{expense_id}", headers=auth_headers)

    assert response.status_code == 200
    assert response.json()["reversed"] is None
    assert await store.count("expenses") == 0


@pytest.mark.asyncio
async def test_other_owner_entry_is_not_found(client, auth_headers, other_headers, store):
    loan = (await client.post("/v1/loans", json=LOAN_PAYLOAD, headers=auth_headers)).json()
    paid = (await pay(client, auth_headers, loan["installments"][0])).json()

    response = await client.delete(f"/v1/ledger/expenses/{paid['expense']['id']}", headers=other_headers)

    assert response.status_code == 404
    assert await store.count("expenses") == 1
