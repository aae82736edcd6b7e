"""
Compensating write coordinator: forward order, rollback and error surfacing.
"""

import pytest
from datetime import date

from bizledger.app.core.exceptions import DependentWriteError, PersistenceError, ValidationError
from bizledger.app.db.row_store import SqlRowStore, StoreError, new_id
from bizledger.app.domain.consistency.coordinator import CompensatingWriteCoordinator, CoordinatorState


class FailingStore(SqlRowStore):
    """Row store that rejects writes to chosen tables."""

    def __init__(self, engine, fail_insert=(), fail_update=(), fail_delete=()):
        super().__init__(engine)
        self.fail_insert = set(fail_insert)
        self.fail_update = set(fail_update)
        self.fail_delete = set(fail_delete)

    async def insert(self, table_name, rows):
        if table_name in self.fail_insert:
            raise StoreError("insert", table_name, "injected insert failure")
        return await super().insert(table_name, rows)

    async def update(self, table_name, values, filters):
        if table_name in self.fail_update:
            raise StoreError("update", table_name, "injected update failure")
        return await super().update(table_name, values, filters)

    async def delete(self, table_name, filters):
        if table_name in self.fail_delete:
            raise StoreError("delete", table_name, "injected delete failure")
        return await super().delete(table_name, filters)


def expense_row(**overrides):
    row = {
        "id": new_id(),
        "user_id": "owner-1",
        "expense_date": date(2026, 3, 1),
        "category": "debt_payment",
        "amount": 100,
    }
    row.update(overrides)
    return row


def loan_row(**overrides):
    row = {
        "id": new_id(),
        "user_id": "owner-1",
        "loan_amount": 1000,
        "interest_rate": 0,
        "loan_term_months": 1,
        "installment_amount": 1000,
        "installment_frequency": "monthly",
        "loan_date": date(2026, 1, 1),
        "first_payment_date": date(2026, 2, 1),
        "lender_name": "Bank",
        "status": "active",
        "total_paid": 0,
        "remaining_balance": 1000,
    }
    row.update(overrides)
    return row


@pytest.mark.asyncio
async def test_all_steps_commit_in_order(store):
    coordinator = CompensatingWriteCoordinator(store, "two_inserts")
    expense = expense_row()
    coordinator.insert("expense", "expenses", expense)
    coordinator.update(
        "annotate", "expenses",
        filters=lambda results: {"id": results["expense"]["id"]},
        values={"notes": "linked"},
    )

    results = await coordinator.execute()

    assert coordinator.committed
    assert results["expense"]["id"] == expense["id"]
    assert results["annotate"]["before"][0]["notes"] is None
    assert results["annotate"]["after"][0]["notes"] == "linked"


@pytest.mark.asyncio
async def test_first_step_failure_is_persistence_error(engine, store):
    failing = FailingStore(engine, fail_insert={"expenses"})
    coordinator = CompensatingWriteCoordinator(failing, "pay_installment")
    coordinator.insert("expense", "expenses", expense_row())

    with pytest.raises(PersistenceError) as exc_info:
        await coordinator.execute()

    assert exc_info.value.details["failed_step"] == "expense"
    assert coordinator.state == CoordinatorState.ROLLED_BACK
    assert await store.count("expenses") == 0


@pytest.mark.asyncio
async def test_later_failure_rolls_back_earlier_inserts(engine, store):
    failing = FailingStore(engine, fail_insert={"loan_installments"})
    loan = loan_row()
    coordinator = CompensatingWriteCoordinator(failing, "create_loan")
    coordinator.insert("loan", "loans", loan)
    coordinator.insert("installments", "loan_installments", [{"id": new_id(), "loan_id": loan["id"]}])

    with pytest.raises(DependentWriteError) as exc_info:
        await coordinator.execute()

    error = exc_info.value
    assert error.failed_step == "installments"
    assert error.rolled_back == ["loan"]
    assert error.compensation_failures == []
    assert error.status_code == 500
    assert await store.count("loans") == 0


@pytest.mark.asyncio
async def test_update_compensation_restores_pre_image(engine, store):
    expense = (await store.insert("expenses", expense_row(notes="original")))[0]
    failing = FailingStore(engine, fail_insert={"incomes"})

    coordinator = CompensatingWriteCoordinator(failing, "edit_then_fail")
    coordinator.update("note", "expenses", {"id": expense["id"]}, {"notes": "changed", "amount": 250})
    coordinator.insert("income", "incomes", {"id": new_id()})

    with pytest.raises(DependentWriteError):
        await coordinator.execute()

    restored = await store.select_one("expenses", {"id": expense["id"]})
    assert restored["notes"] == "original"
    assert float(restored["amount"]) == 100


@pytest.mark.asyncio
async def test_delete_compensation_reinserts_rows(engine, store):
    expense = (await store.insert("expenses", expense_row()))[0]
    failing = FailingStore(engine, fail_insert={"incomes"})

    coordinator = CompensatingWriteCoordinator(failing, "delete_then_fail")
    coordinator.delete("expense", "expenses", {"id": expense["id"]})
    coordinator.insert("income", "incomes", {"id": new_id()})

    with pytest.raises(DependentWriteError):
        await coordinator.execute()

    assert await store.select_one("expenses", {"id": expense["id"]}) is not None


@pytest.mark.asyncio
async def test_conditional_update_with_no_match_fails(store):
    expense = (await store.insert("expenses", expense_row()))[0]
    coordinator = CompensatingWriteCoordinator(store, "pay_twice")
    coordinator.insert("income", "incomes", {
        "id": new_id(), "user_id": "owner-1", "income_date": date(2026, 3, 1),
        "category": "other", "amount": 5,
    })
    coordinator.update("expense", "expenses", {"id": expense["id"], "category": "nope"}, {"notes": "x"})

    with pytest.raises(DependentWriteError):
        await coordinator.execute()

    assert await store.count("incomes") == 0


@pytest.mark.asyncio
async def test_failed_inverse_is_recorded_not_raised(engine, store):
    failing = FailingStore(engine, fail_insert={"incomes"}, fail_delete={"expenses"})
    coordinator = CompensatingWriteCoordinator(failing, "stuck")
    coordinator.insert("expense", "expenses", expense_row())
    coordinator.insert("income", "incomes", {"id": new_id()})

    with pytest.raises(DependentWriteError) as exc_info:
        await coordinator.execute()

    assert exc_info.value.rolled_back == []
    assert exc_info.value.compensation_failures[0]["step"] == "expense"
    # The orphan stays behind and is reported
    assert await store.count("expenses") == 1


@pytest.mark.asyncio
async def test_domain_errors_pass_through_unchanged(store):
    async def reject(results):
        raise ValidationError("nope")

    coordinator = CompensatingWriteCoordinator(store, "custom")
    coordinator.insert("expense", "expenses", expense_row())
    coordinator.step("check", reject)

    with pytest.raises(ValidationError):
        await coordinator.execute()

    assert await store.count("expenses") == 0


@pytest.mark.asyncio
async def test_coordinator_runs_once(store):
    coordinator = CompensatingWriteCoordinator(store, "once")
    coordinator.insert("expense", "expenses", expense_row())
    await coordinator.execute()

    with pytest.raises(RuntimeError):
        await coordinator.execute()
    with pytest.raises(RuntimeError):
        coordinator.insert("again", "expenses", expense_row())


def test_duplicate_step_names_rejected():
    coordinator = CompensatingWriteCoordinator(None, "dupes")
    coordinator.insert("expense", "expenses", expense_row())
    with pytest.raises(ValueError):
        coordinator.insert("expense", "expenses", expense_row())
