"""
Investor Funding Service (Domain Logic).

Tracks capital received from investors and the profit share owed to them per
period. A payout is an expense entry; the funding's total_profit_shared is
recalculated from its paid payments after every change.
"""

import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional

from bizledger.app.core.exceptions import (
    AlreadyProcessedError, NegativeProfitError, NotFoundError, PartialSideEffectWarning, ValidationError,
)
from bizledger.app.db.row_store import new_id
from bizledger.app.domain.aggregates.recalculator import AggregateRecalculator, refresh_or_warn
from bizledger.app.domain.consistency.coordinator import CompensatingWriteCoordinator
from bizledger.app.domain.ledger.entry_factory import LedgerEntryFactory
from bizledger.app.domain.values import to_date, to_decimal, to_int, to_money
from bizledger.app.models.enums import FundingStatus, PaymentStatus
from bizledger.app.models.investor_funding import InvestorFunding, ProfitSharingPayment
from bizledger.app.services.activity import ActivityAction, log_activity

logger = logging.getLogger("bizledger.investors")

FUNDING = InvestorFunding.__tablename__
PAYMENTS = ProfitSharingPayment.__tablename__

REQUIRED_FUNDING_FIELDS = [
    "investment_amount",
    "profit_share_percentage",
    "payment_frequency",
    "start_date",
    "investor_name",
]

REQUIRED_PAYMENT_FIELDS = [
    "period_start",
    "period_end",
    "business_revenue",
    "business_expenses",
    "due_date",
]


def _require(data: Dict[str, Any], fields: List[str]) -> None:
    for field in fields:
        if data.get(field) is None or data.get(field) == "":
            raise ValidationError(f"Field '{field}' is required", details={"field": field})


class InvestorService:

    def __init__(self, store, resolver):
        self.store = store
        self.resolver = resolver
        self.ledger = LedgerEntryFactory(resolver)
        self.aggregates = AggregateRecalculator(store)

    async def _owned_funding(self, owner_id: str, funding_id: str) -> Dict[str, Any]:
        funding = await self.store.select_one(FUNDING, {"id": funding_id, "user_id": owner_id})
        if funding is None:
            raise NotFoundError("Investor funding", funding_id)
        return funding

    async def create_funding(self, owner_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        _require(data, REQUIRED_FUNDING_FIELDS)
        share = to_decimal(data["profit_share_percentage"])
        if share <= 0 or share > 100:
            raise ValidationError(
                "Profit share percentage must be between 0 and 100",
                details={"field": "profit_share_percentage"}
            )
        amount = to_money(data["investment_amount"])
        if amount <= 0:
            raise ValidationError("investment_amount must be greater than zero", details={"field": "investment_amount"})

        funding_id = new_id()
        rows = await self.store.insert(FUNDING, {
            "id": funding_id,
            "user_id": owner_id,
            "investor_name": data["investor_name"],
            "investor_contact": data.get("investor_contact"),
            "investment_amount": amount,
            "profit_share_percentage": share,
            "payment_frequency": data["payment_frequency"],
            "start_date": to_date(data["start_date"]),
            "end_date": to_date(data.get("end_date")),
            "duration_months": to_int(data["duration_months"]) if data.get("duration_months") else None,
            "agreement_number": data.get("agreement_number"),
            "status": FundingStatus.ACTIVE.value,
            "total_profit_shared": Decimal("0.00"),
            "notes": data.get("notes"),
        })

        await log_activity(
            self.store, owner_id, ActivityAction.FUNDING_CREATED, "investor_funding", funding_id,
            {"investor_name": data["investor_name"], "investment_amount": str(amount)}
        )
        return rows[0]

    async def list_funding(self, owner_id: str, status: Optional[str] = None) -> List[Dict[str, Any]]:
        filters = {"user_id": owner_id}
        if status:
            filters["status"] = FundingStatus(status).value
        return await self.store.select(FUNDING, filters=filters, order_by="start_date", descending=True)

    async def record_profit_sharing_payment(self, owner_id: str, funding_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Record the investor's profit share for one period.

        net_profit = revenue - expenses; share = net_profit * percentage / 100.
        When the payment is recorded as already paid, the payout expense is
        written first and the payment row links to it (a failed payment insert
        deletes the expense).

        Raises:
            ValidationError: Missing fields
            NotFoundError: Funding absent or not owned
            NegativeProfitError: The period closed with a loss

        Returns:
            {"payment", "expense" (or None), "funding", "warnings"}
        """
        if not funding_id:
            raise ValidationError("Field 'funding_id' is required", details={"field": "funding_id"})
        _require(data, REQUIRED_PAYMENT_FIELDS)
        funding = await self._owned_funding(owner_id, funding_id)

        revenue = to_money(data["business_revenue"])
        expenses = to_money(data["business_expenses"])
        net_profit = revenue - expenses
        if net_profit < 0:
            raise NegativeProfitError(net_profit)

        percentage = to_decimal(funding["profit_share_percentage"])
        share_amount = to_money(net_profit * percentage / Decimal(100))
        status = PaymentStatus(data.get("status") or PaymentStatus.PENDING.value).value
        paid_date = to_date(data.get("paid_date"))
        if status == PaymentStatus.PAID.value and paid_date is None:
            raise ValidationError("paid_date is required when status is paid", details={"field": "paid_date"})

        payment_id = new_id()
        period_start = to_date(data["period_start"])
        period_end = to_date(data["period_end"])

        coordinator = CompensatingWriteCoordinator(self.store, "record_profit_sharing_payment")
        expense_id = None
        if status == PaymentStatus.PAID.value:
            draft = await self.ledger.for_profit_sharing(
                owner_id, funding, payment_id, share_amount, paid_date, period_start, period_end,
                data.get("payment_method"), data.get("notes")
            )
            expense_id = draft.id
            coordinator.insert("expense", draft.table, draft.row)

        coordinator.insert("payment", PAYMENTS, {
            "id": payment_id,
            "funding_id": funding_id,
            "period_start": period_start,
            "period_end": period_end,
            "business_revenue": revenue,
            "business_expenses": expenses,
            "net_profit": net_profit,
            "share_percentage": percentage,
            "share_amount": share_amount,
            "due_date": to_date(data["due_date"]),
            "status": status,
            "paid_date": paid_date,
            "expense_transaction_id": expense_id,
            "notes": data.get("notes"),
        })
        results = await coordinator.execute()

        warnings: List[PartialSideEffectWarning] = []
        funding = await refresh_or_warn(self.aggregates.recalculate_funding, funding_id, warnings) or funding

        await log_activity(
            self.store, owner_id, ActivityAction.PROFIT_SHARING_RECORDED, "profit_sharing_payment", payment_id,
            {"funding_id": funding_id, "share_amount": str(share_amount), "status": status}
        )
        return {
            "payment": results["payment"],
            "expense": results.get("expense"),
            "funding": funding,
            "warnings": warnings,
        }

    async def mark_payment_paid(
        self,
        owner_id: str,
        payment_id: str,
        paid_date,
        payment_method: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Pay out a pending profit share: expense insert, then pending -> paid.

        Raises:
            NotFoundError: Payment absent or not owned
            AlreadyProcessedError: Payment already paid
        """
        paid_on = to_date(paid_date)
        if paid_on is None:
            raise ValidationError("paid_date is required", details={"field": "paid_date"})

        payment = await self.store.select_one(PAYMENTS, {"id": payment_id})
        if payment is None:
            raise NotFoundError("Profit sharing payment", payment_id)
        funding = await self.store.select_one(FUNDING, {"id": payment["funding_id"], "user_id": owner_id})
        if funding is None:
            raise NotFoundError("Profit sharing payment", payment_id)
        if payment["status"] == PaymentStatus.PAID.value:
            raise AlreadyProcessedError("Profit sharing payment", payment_id)

        draft = await self.ledger.for_profit_sharing(
            owner_id, funding, payment_id, payment["share_amount"], paid_on,
            to_date(payment["period_start"]), to_date(payment["period_end"]), payment_method, notes
        )

        coordinator = CompensatingWriteCoordinator(self.store, "mark_profit_sharing_paid")
        coordinator.insert("expense", draft.table, draft.row)
        coordinator.update(
            "payment", PAYMENTS,
            filters={"id": payment_id, "status": PaymentStatus.PENDING.value},
            values={
                "status": PaymentStatus.PAID.value,
                "paid_date": paid_on,
                "expense_transaction_id": draft.id,
            },
        )
        results = await coordinator.execute()

        warnings: List[PartialSideEffectWarning] = []
        funding = await refresh_or_warn(self.aggregates.recalculate_funding, funding["id"], warnings) or funding

        await log_activity(
            self.store, owner_id, ActivityAction.PROFIT_SHARING_PAID, "profit_sharing_payment", payment_id,
            {"funding_id": funding["id"], "expense_id": draft.id}
        )
        return {
            "payment": results["payment"]["after"][0],
            "expense": results["expense"],
            "funding": funding,
            "warnings": warnings,
        }

    async def list_payments(
        self,
        owner_id: str,
        funding_id: Optional[str] = None,
        status: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        filters = {"user_id": owner_id}
        if funding_id:
            filters["id"] = funding_id
        fundings = await self.store.select(FUNDING, columns=["id", "investor_name"], filters=filters)
        if not fundings:
            return []
        names = {funding["id"]: funding["investor_name"] for funding in fundings}

        payment_filters: Dict[str, Any] = {"funding_id": list(names)}
        if status:
            payment_filters["status"] = PaymentStatus(status).value
        payments = await self.store.select(PAYMENTS, filters=payment_filters, order_by="due_date", descending=True)
        for payment in payments:
            payment["investor_name"] = names[payment["funding_id"]]
        return payments
