"""
Loan Service (Domain Logic).

Creates loans with their full installment schedule and records installment
payments as expense entries. Both are multi-record writes driven through
the compensating write coordinator; loan totals are recalculated from the
installments after every change.
"""

import logging
from datetime import date, timedelta
from decimal import Decimal
from typing import Any, Dict, List, Optional

from bizledger.app.core.config import settings
from bizledger.app.core.exceptions import (
    AlreadyPaidError, LoanHasPaymentsError, NotFoundError, PartialSideEffectWarning, ValidationError,
)
from bizledger.app.db.row_store import Range, new_id
from bizledger.app.domain.aggregates.recalculator import AggregateRecalculator, refresh_or_warn
from bizledger.app.domain.consistency.coordinator import CompensatingWriteCoordinator
from bizledger.app.domain.ledger.entry_factory import LedgerEntryFactory
from bizledger.app.domain.loans.amortization import build_schedule
from bizledger.app.domain.values import to_date, to_decimal, to_money
from bizledger.app.models.enums import InstallmentFrequency, InstallmentStatus, LoanStatus
from bizledger.app.models.loan import Loan
from bizledger.app.models.loan_installment import LoanInstallment
from bizledger.app.services.activity import ActivityAction, log_activity

logger = logging.getLogger("bizledger.loans")

LOANS = Loan.__tablename__
INSTALLMENTS = LoanInstallment.__tablename__

REQUIRED_LOAN_FIELDS = [
    "loan_amount",
    "interest_rate",
    "loan_term_months",
    "loan_date",
    "first_payment_date",
    "lender_name",
]

UPDATABLE_LOAN_FIELDS = ["lender_name", "lender_contact", "purpose", "notes", "status"]


def _require(data: Dict[str, Any], fields: List[str]) -> None:
    for field in fields:
        if data.get(field) is None or data.get(field) == "":
            raise ValidationError(f"Field '{field}' is required", details={"field": field})


class LoanService:

    def __init__(self, store, resolver):
        self.store = store
        self.resolver = resolver
        self.ledger = LedgerEntryFactory(resolver)
        self.aggregates = AggregateRecalculator(store)

    async def _owned_loan(self, owner_id: str, loan_id: str) -> Dict[str, Any]:
        loan = await self.store.select_one(LOANS, {"id": loan_id, "user_id": owner_id})
        if loan is None:
            raise NotFoundError("Loan", loan_id)
        return loan

    async def _installments(self, loan_id: str) -> List[Dict[str, Any]]:
        return await self.store.select(INSTALLMENTS, filters={"loan_id": loan_id}, order_by="installment_number")

    async def create_loan(self, owner_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Create a loan with its auto-generated installment schedule.

        Flow:
        1. Validate input and build the amortization schedule
        2. Insert the loan
        3. Bulk insert the installments (failure deletes the loan)

        Raises:
            ValidationError: Missing or invalid terms
            PersistenceError: Loan insert failed
            DependentWriteError: Installment insert failed; loan was removed
        """
        _require(data, REQUIRED_LOAN_FIELDS)
        schedule = build_schedule(
            data["loan_amount"],
            data["interest_rate"],
            data["loan_term_months"],
            to_date(data["first_payment_date"]),
        )

        loan_id = new_id()
        loan_row = {
            "id": loan_id,
            "user_id": owner_id,
            "loan_amount": schedule.principal,
            "interest_rate": to_decimal(data["interest_rate"]),
            "loan_term_months": len(schedule.installments),
            "installment_amount": schedule.level_payment,
            "installment_frequency": data.get("installment_frequency") or InstallmentFrequency.MONTHLY.value,
            "loan_date": to_date(data["loan_date"]),
            "first_payment_date": to_date(data["first_payment_date"]),
            "lender_name": data["lender_name"],
            "lender_contact": data.get("lender_contact"),
            "purpose": data.get("purpose"),
            "notes": data.get("notes"),
            "status": LoanStatus.ACTIVE.value,
            "total_paid": Decimal("0.00"),
            "remaining_balance": schedule.principal,
        }
        installment_rows = [
            {
                "id": new_id(),
                "loan_id": loan_id,
                "installment_number": item.installment_number,
                "due_date": item.due_date,
                "principal_amount": item.principal_component,
                "interest_amount": item.interest_component,
                "total_amount": item.total_due,
                "status": InstallmentStatus.PENDING.value,
                "paid_date": None,
                "paid_amount": None,
                "expense_transaction_id": None,
            }
            for item in schedule.installments
        ]

        coordinator = CompensatingWriteCoordinator(self.store, "create_loan")
        coordinator.insert("loan", LOANS, loan_row)
        coordinator.insert("installments", INSTALLMENTS, installment_rows)
        results = await coordinator.execute()

        loan = dict(results["loan"])
        loan["installments"] = await self._installments(loan_id)

        await log_activity(
            self.store, owner_id, ActivityAction.LOAN_CREATED, "loan", loan_id,
            {"lender_name": loan_row["lender_name"], "loan_amount": str(schedule.principal)}
        )
        logger.info("Loan %s created with %d installments", loan_id, len(installment_rows))
        return loan

    async def pay_installment(
        self,
        owner_id: str,
        installment_id: str,
        paid_date,
        paid_amount,
        payment_method: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Mark an installment as paid and record the payment as an expense.

        Flow:
        1. Load the installment and verify the loan belongs to the owner
        2. Idempotency check (already paid)
        3. Insert the expense entry
        4. Flip the installment pending -> paid, linking the expense
           (failure deletes the expense)
        5. Recalculate the loan totals

        Returns:
            {"installment", "expense", "loan_status", "loan", "warnings"}
        """
        if not installment_id:
            raise ValidationError("installment_id is required", details={"field": "installment_id"})
        paid_on = to_date(paid_date)
        if paid_on is None:
            raise ValidationError("paid_date is required", details={"field": "paid_date"})
        if paid_amount is None or to_money(paid_amount) <= 0:
            raise ValidationError("paid_amount must be greater than zero", details={"field": "paid_amount"})
        amount = to_money(paid_amount)

        installment = await self.store.select_one(INSTALLMENTS, {"id": installment_id})
        if installment is None:
            raise NotFoundError("Installment", installment_id)
        # Someone else's installment is indistinguishable from a missing one
        loan = await self.store.select_one(LOANS, {"id": installment["loan_id"], "user_id": owner_id})
        if loan is None:
            raise NotFoundError("Installment", installment_id)
        if installment["status"] == InstallmentStatus.PAID.value:
            raise AlreadyPaidError(installment_id)

        draft = await self.ledger.for_installment_payment(
            owner_id, loan, installment, paid_on, amount, payment_method, notes
        )

        coordinator = CompensatingWriteCoordinator(self.store, "pay_installment")
        coordinator.insert("expense", draft.table, draft.row)
        coordinator.update(
            "installment", INSTALLMENTS,
            filters={"id": installment_id, "status": InstallmentStatus.PENDING.value},
            values={
                "status": InstallmentStatus.PAID.value,
                "paid_date": paid_on,
                "paid_amount": amount,
                "expense_transaction_id": draft.id,
            },
        )
        results = await coordinator.execute()

        warnings: List[PartialSideEffectWarning] = []
        refreshed = await refresh_or_warn(self.aggregates.recalculate_loan, loan["id"], warnings)
        loan = refreshed or loan

        await log_activity(
            self.store, owner_id, ActivityAction.INSTALLMENT_PAID, "loan_installment", installment_id,
            {"loan_id": loan["id"], "amount": str(amount), "expense_id": draft.id}
        )
        return {
            "installment": results["installment"]["after"][0],
            "expense": results["expense"],
            "loan_status": loan["status"],
            "loan": loan,
            "warnings": warnings,
        }

    async def list_loans(
        self,
        owner_id: str,
        status: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Dict[str, Any]:
        filters = {"user_id": owner_id}
        if status:
            filters["status"] = LoanStatus(status).value

        total = await self.store.count(LOANS, filters)
        loans = await self.store.select(
            LOANS, filters=filters, order_by="loan_date", descending=True, limit=limit, offset=offset
        )
        counts: Dict[str, int] = {}
        if loans:
            for row in await self.store.select(
                INSTALLMENTS, columns=["loan_id"], filters={"loan_id": [loan["id"] for loan in loans]}
            ):
                counts[row["loan_id"]] = counts.get(row["loan_id"], 0) + 1
        for loan in loans:
            loan["installment_count"] = counts.get(loan["id"], 0)

        return {"loans": loans, "total": total, "limit": limit, "offset": offset}

    async def get_loan(self, owner_id: str, loan_id: str) -> Dict[str, Any]:
        loan = await self._owned_loan(owner_id, loan_id)
        loan["installments"] = await self._installments(loan_id)
        return loan

    async def update_loan(self, owner_id: str, loan_id: str, changes: Dict[str, Any]) -> Dict[str, Any]:
        """Patch descriptive fields and status; financial terms are immutable."""
        updates = {key: changes[key] for key in UPDATABLE_LOAN_FIELDS if changes.get(key) is not None}
        if not updates:
            raise ValidationError("No valid fields to update")
        if "status" in updates:
            try:
                updates["status"] = LoanStatus(updates["status"]).value
            except ValueError:
                raise ValidationError(f"Invalid loan status '{updates['status']}'", details={"field": "status"})

        await self._owned_loan(owner_id, loan_id)
        rows = await self.store.update(LOANS, updates, {"id": loan_id, "user_id": owner_id})
        if not rows:
            raise NotFoundError("Loan", loan_id)

        await log_activity(self.store, owner_id, ActivityAction.LOAN_UPDATED, "loan", loan_id, {"fields": sorted(updates)})
        return rows[0]

    async def delete_loan(self, owner_id: str, loan_id: str) -> Dict[str, Any]:
        """
        Hard delete a loan that has no payments yet.

        Raises:
            NotFoundError: Loan absent or not owned
            LoanHasPaymentsError: At least one installment is paid
        """
        await self._owned_loan(owner_id, loan_id)
        paid = await self.store.count(INSTALLMENTS, {"loan_id": loan_id, "status": InstallmentStatus.PAID.value})
        if paid:
            raise LoanHasPaymentsError(loan_id)

        coordinator = CompensatingWriteCoordinator(self.store, "delete_loan")
        coordinator.delete("installments", INSTALLMENTS, {"loan_id": loan_id})
        coordinator.delete("loan", LOANS, {"id": loan_id, "user_id": owner_id})
        results = await coordinator.execute()

        await log_activity(self.store, owner_id, ActivityAction.LOAN_DELETED, "loan", loan_id)
        return {"deleted": True, "id": loan_id, "installments_deleted": len(results["installments"])}

    async def upcoming_installments(
        self,
        owner_id: str,
        days: Optional[int] = None,
        status: str = InstallmentStatus.PENDING.value,
        today: Optional[date] = None,
    ) -> List[Dict[str, Any]]:
        """Installments due between today and today + ``days``, soonest first."""
        today = today or date.today()
        horizon = today + timedelta(days=settings.upcoming_installment_days if days is None else days)

        loans = await self.store.select(
            LOANS, columns=["id", "lender_name", "loan_amount"], filters={"user_id": owner_id}
        )
        if not loans:
            return []
        by_id = {loan["id"]: loan for loan in loans}

        installments = await self.store.select(
            INSTALLMENTS,
            filters={
                "loan_id": list(by_id),
                "status": InstallmentStatus(status).value,
                "due_date": Range(gte=today, lte=horizon),
            },
            order_by="due_date",
        )
        for installment in installments:
            loan = by_id[installment["loan_id"]]
            installment["loan"] = {"lender_name": loan["lender_name"], "loan_amount": loan["loan_amount"]}
        return installments
