"""
Investment Service (Domain Logic).

Investments may be bought with a linked expense entry; every return they pay
becomes an income entry. Current value and total returns are recalculated
from the full list of returns after each one is recorded.
"""

import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional

from bizledger.app.core.exceptions import NotFoundError, PartialSideEffectWarning, ValidationError
from bizledger.app.db.row_store import new_id
from bizledger.app.domain.aggregates.recalculator import AggregateRecalculator, refresh_or_warn
from bizledger.app.domain.consistency.coordinator import CompensatingWriteCoordinator
from bizledger.app.domain.ledger.entry_factory import LedgerEntryFactory
from bizledger.app.domain.values import to_date, to_decimal, to_int, to_money
from bizledger.app.models.enums import InvestmentStatus, InvestmentType, ReturnType
from bizledger.app.models.investment import Investment, InvestmentReturn
from bizledger.app.services.activity import ActivityAction, log_activity

logger = logging.getLogger("bizledger.investments")

INVESTMENTS = Investment.__tablename__
RETURNS = InvestmentReturn.__tablename__

REQUIRED_INVESTMENT_FIELDS = ["investment_type", "investment_name", "principal_amount", "start_date"]


def _require(data: Dict[str, Any], fields: List[str]) -> None:
    for field in fields:
        if data.get(field) is None or data.get(field) == "":
            raise ValidationError(f"Field '{field}' is required", details={"field": field})


def _enum_value(enum_cls, value, field: str) -> str:
    try:
        return enum_cls(value).value
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        raise ValidationError(f"Invalid {field}. Must be one of: {allowed}", details={"field": field})


class InvestmentService:

    def __init__(self, store, resolver):
        self.store = store
        self.resolver = resolver
        self.ledger = LedgerEntryFactory(resolver)
        self.aggregates = AggregateRecalculator(store)

    async def _owned_investment(self, owner_id: str, investment_id: str) -> Dict[str, Any]:
        investment = await self.store.select_one(INVESTMENTS, {"id": investment_id, "user_id": owner_id})
        if investment is None:
            raise NotFoundError("Investment", investment_id)
        return investment

    async def create_investment(self, owner_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Create an investment, optionally recording its purchase as an expense.

        With ``create_expense`` and a ``transaction_date`` the expense is
        written after the investment and linked back to it; if either of those
        writes fails the investment is removed again.
        """
        _require(data, REQUIRED_INVESTMENT_FIELDS)
        investment_type = _enum_value(InvestmentType, data["investment_type"], "investment_type")
        principal = to_money(data["principal_amount"])
        if principal <= 0:
            raise ValidationError("principal_amount must be greater than zero", details={"field": "principal_amount"})

        investment_id = new_id()
        row = {
            "id": investment_id,
            "user_id": owner_id,
            "investment_type": investment_type,
            "investment_name": data["investment_name"],
            "principal_amount": principal,
            "current_value": to_money(data["current_value"]) if data.get("current_value") else principal,
            "total_returns": Decimal("0.00"),
            "interest_rate": to_decimal(data["interest_rate"]) if data.get("interest_rate") is not None else None,
            "investment_term_months": to_int(data["investment_term_months"]) if data.get("investment_term_months") else None,
            "start_date": to_date(data["start_date"]),
            "maturity_date": to_date(data.get("maturity_date")),
            "bank_name": data.get("bank_name"),
            "status": InvestmentStatus.ACTIVE.value,
            "expense_transaction_id": None,
            "notes": data.get("notes"),
        }

        coordinator = CompensatingWriteCoordinator(self.store, "create_investment")
        coordinator.insert("investment", INVESTMENTS, row)

        transaction_date = to_date(data.get("transaction_date"))
        draft = None
        if data.get("create_expense") and transaction_date:
            draft = await self.ledger.for_investment_purchase(
                owner_id, row, transaction_date, data.get("payment_method"), data.get("notes")
            )
            coordinator.insert("expense", draft.table, draft.row)
            coordinator.update(
                "link", INVESTMENTS,
                filters={"id": investment_id},
                values={"expense_transaction_id": draft.id},
            )

        results = await coordinator.execute()
        investment = results["link"]["after"][0] if draft else results["investment"]

        await log_activity(
            self.store, owner_id, ActivityAction.INVESTMENT_CREATED, "investment", investment_id,
            {"investment_name": row["investment_name"], "principal_amount": str(principal)}
        )
        return {"investment": investment, "expense": results.get("expense")}

    async def list_investments(
        self,
        owner_id: str,
        status: Optional[str] = None,
        investment_type: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        filters = {"user_id": owner_id}
        if status:
            filters["status"] = _enum_value(InvestmentStatus, status, "status")
        if investment_type:
            filters["investment_type"] = _enum_value(InvestmentType, investment_type, "investment_type")
        return await self.store.select(INVESTMENTS, filters=filters, order_by="start_date", descending=True)

    async def record_return(
        self,
        owner_id: str,
        investment_id: str,
        return_date,
        return_amount,
        return_type: str,
        payment_method: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Record a cash return as an income entry plus a return record.

        Flow:
        1. Verify ownership, validate amount and type
        2. Insert the income entry
        3. Insert the return record (failure deletes the income)
        4. Recalculate total_returns / current_value / status

        Returns:
            {"investment_return", "income", "investment", "warnings"}
        """
        if not investment_id:
            raise ValidationError("investment_id is required", details={"field": "investment_id"})
        returned_on = to_date(return_date)
        if returned_on is None:
            raise ValidationError("return_date is required", details={"field": "return_date"})
        if return_amount is None or to_money(return_amount) <= 0:
            raise ValidationError("return_amount must be greater than zero", details={"field": "return_amount"})
        if not return_type:
            raise ValidationError("return_type is required", details={"field": "return_type"})
        kind = _enum_value(ReturnType, return_type, "return_type")
        amount = to_money(return_amount)

        investment = await self._owned_investment(owner_id, investment_id)

        return_id = new_id()
        draft = await self.ledger.for_investment_return(
            owner_id, investment, return_id, returned_on, amount, kind, payment_method, notes
        )

        coordinator = CompensatingWriteCoordinator(self.store, "record_investment_return")
        coordinator.insert("income", draft.table, draft.row)
        coordinator.insert("investment_return", RETURNS, {
            "id": return_id,
            "investment_id": investment_id,
            "return_date": returned_on,
            "return_amount": amount,
            "return_type": kind,
            "income_transaction_id": draft.id,
            "notes": notes,
        })
        results = await coordinator.execute()

        warnings: List[PartialSideEffectWarning] = []
        investment = await refresh_or_warn(self.aggregates.recalculate_investment, investment_id, warnings) or investment

        await log_activity(
            self.store, owner_id, ActivityAction.INVESTMENT_RETURN_RECORDED, "investment_return", return_id,
            {"investment_id": investment_id, "amount": str(amount), "return_type": kind}
        )
        return {
            "investment_return": results["investment_return"],
            "income": results["income"],
            "investment": investment,
            "warnings": warnings,
        }

    async def list_returns(
        self,
        owner_id: str,
        investment_id: Optional[str] = None,
        return_type: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """Returns across the owner's investments, most recent first."""
        filters = {"user_id": owner_id}
        if investment_id:
            filters["id"] = investment_id
        investments = await self.store.select(
            INVESTMENTS, columns=["id", "investment_name", "investment_type"], filters=filters
        )
        if not investments:
            return []
        by_id = {investment["id"]: investment for investment in investments}

        return_filters: Dict[str, Any] = {"investment_id": list(by_id)}
        if return_type:
            return_filters["return_type"] = _enum_value(ReturnType, return_type, "return_type")
        returns = await self.store.select(RETURNS, filters=return_filters, order_by="return_date", descending=True)
        for item in returns:
            parent = by_id[item["investment_id"]]
            item["investment"] = {
                "investment_name": parent["investment_name"],
                "investment_type": parent["investment_type"],
            }
        return returns
