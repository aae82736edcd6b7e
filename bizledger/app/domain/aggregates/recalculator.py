"""
Aggregate recalculation.

Parent records carry running totals (loan balance, investment value, profit
shared). Instead of incrementing them, every mutation re-reads the full set
of child records and rewrites the totals, so a missed increment can never
leave a total drifting. Recalculating twice in a row writes the same values.
"""

import logging
from decimal import Decimal
from typing import Any, Awaitable, Callable, Dict, List, Optional

from bizledger.app.core.exceptions import NotFoundError, PartialSideEffectWarning
from bizledger.app.db.row_store import StoreError
from bizledger.app.domain.values import to_money
from bizledger.app.models.enums import (
    InstallmentStatus, InvestmentStatus, LoanStatus, PaymentStatus, ReturnType,
)
from bizledger.app.models.investment import Investment, InvestmentReturn
from bizledger.app.models.investor_funding import InvestorFunding, ProfitSharingPayment
from bizledger.app.models.loan import Loan
from bizledger.app.models.loan_installment import LoanInstallment

logger = logging.getLogger("bizledger.aggregates")

ZERO = Decimal("0.00")


def loan_totals(loan: Dict[str, Any], installments: List[Dict[str, Any]]) -> Dict[str, Any]:
    paid = [i for i in installments if i.get("status") == InstallmentStatus.PAID.value]
    total_paid = sum((to_money(i.get("paid_amount")) for i in paid), ZERO)
    paid_principal = sum((to_money(i.get("principal_amount")) for i in paid), ZERO)

    if installments and len(paid) == len(installments):
        status = LoanStatus.PAID_OFF.value
    elif loan.get("status") == LoanStatus.DEFAULTED.value:
        status = LoanStatus.DEFAULTED.value
    else:
        status = LoanStatus.ACTIVE.value

    return {
        "total_paid": total_paid,
        "remaining_balance": to_money(loan.get("loan_amount")) - paid_principal,
        "status": status,
    }


def investment_totals(investment: Dict[str, Any], returns: List[Dict[str, Any]]) -> Dict[str, Any]:
    total_returns = sum((to_money(r.get("return_amount")) for r in returns), ZERO)
    totals = {
        "total_returns": total_returns,
        "current_value": to_money(investment.get("principal_amount")) + total_returns,
    }
    if any(r.get("return_type") == ReturnType.LIQUIDATION.value for r in returns):
        totals["status"] = InvestmentStatus.LIQUIDATED.value
    elif investment.get("status") == InvestmentStatus.LIQUIDATED.value:
        totals["status"] = InvestmentStatus.ACTIVE.value
    return totals


def funding_totals(payments: List[Dict[str, Any]]) -> Dict[str, Any]:
    paid = [p for p in payments if p.get("status") == PaymentStatus.PAID.value]
    return {"total_profit_shared": sum((to_money(p.get("share_amount")) for p in paid), ZERO)}


class AggregateRecalculator:

    def __init__(self, store):
        self.store = store

    async def _parent(self, table_name: str, resource: str, parent_id: str) -> Dict[str, Any]:
        row = await self.store.select_one(table_name, {"id": parent_id})
        if row is None:
            raise NotFoundError(resource, parent_id)
        return row

    async def _write(self, table_name: str, parent_id: str, totals: Dict[str, Any]) -> Dict[str, Any]:
        rows = await self.store.update(table_name, totals, {"id": parent_id})
        return rows[0]

    async def recalculate_loan(self, loan_id: str) -> Dict[str, Any]:
        """Refresh total_paid, remaining_balance and status from the installments."""
        loan = await self._parent(Loan.__tablename__, "Loan", loan_id)
        installments = await self.store.select(LoanInstallment.__tablename__, filters={"loan_id": loan_id})
        return await self._write(Loan.__tablename__, loan_id, loan_totals(loan, installments))

    async def recalculate_investment(self, investment_id: str) -> Dict[str, Any]:
        investment = await self._parent(Investment.__tablename__, "Investment", investment_id)
        returns = await self.store.select(InvestmentReturn.__tablename__, filters={"investment_id": investment_id})
        return await self._write(Investment.__tablename__, investment_id, investment_totals(investment, returns))

    async def recalculate_funding(self, funding_id: str) -> Dict[str, Any]:
        await self._parent(InvestorFunding.__tablename__, "Investor funding", funding_id)
        payments = await self.store.select(ProfitSharingPayment.__tablename__, filters={"funding_id": funding_id})
        return await self._write(InvestorFunding.__tablename__, funding_id, funding_totals(payments))


async def refresh_or_warn(
    recalculate: Callable[[str], Awaitable[Dict[str, Any]]],
    parent_id: str,
    warnings: List[PartialSideEffectWarning],
) -> Optional[Dict[str, Any]]:
    """
    Run a recalculation after an operation has committed.

    The operation's writes stand either way; a failed refresh, or a parent
    removed in the meantime, leaves stale totals that the next recalculation
    repairs, so it is reported as a warning.
    """
    try:
        return await recalculate(parent_id)
    except (StoreError, NotFoundError) as e:
        logger.warning("Aggregate refresh for %s failed: %s", parent_id, e.message)
        warnings.append(PartialSideEffectWarning(
            code="AGGREGATE_REFRESH_FAILED",
            message="Totals could not be refreshed and may be stale",
            context={"parent_id": parent_id, "error": e.message},
        ))
        return None
