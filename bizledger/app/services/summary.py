"""
Dashboard summary service.

Every figure comes from an independent read, so they are fetched
concurrently and combined at the end.
"""

import asyncio
from datetime import date, timedelta
from decimal import Decimal
from typing import Any, Dict, Optional

from bizledger.app.core.config import settings
from bizledger.app.db.row_store import Range
from bizledger.app.domain.values import to_money
from bizledger.app.models.enums import InstallmentStatus, InvestmentStatus, LoanStatus
from bizledger.app.models.investment import Investment
from bizledger.app.models.investor_funding import InvestorFunding
from bizledger.app.models.loan import Loan
from bizledger.app.models.loan_installment import LoanInstallment
from bizledger.app.models.transaction import Transaction

ZERO = Decimal("0.00")


def _total(rows, field: str) -> Decimal:
    return sum((to_money(row.get(field)) for row in rows), ZERO)


class SummaryService:

    def __init__(self, store, resolver):
        self.store = store
        self.resolver = resolver

    async def _loans(self, owner_id: str) -> Dict[str, Any]:
        loans = await self.store.select(
            Loan.__tablename__, columns=["id", "remaining_balance", "status"], filters={"user_id": owner_id}
        )
        active = [loan for loan in loans if loan["status"] != LoanStatus.PAID_OFF.value]
        return {"active_loans": len(active), "outstanding_loan_balance": _total(active, "remaining_balance")}

    async def _upcoming(self, owner_id: str, today: date) -> Dict[str, Any]:
        loans = await self.store.select(Loan.__tablename__, columns=["id"], filters={"user_id": owner_id})
        if not loans:
            return {"upcoming_installments": 0, "upcoming_installment_amount": ZERO}
        installments = await self.store.select(
            LoanInstallment.__tablename__,
            columns=["total_amount"],
            filters={
                "loan_id": [loan["id"] for loan in loans],
                "status": InstallmentStatus.PENDING.value,
                "due_date": Range(gte=today, lte=today + timedelta(days=settings.upcoming_installment_days)),
            },
        )
        return {
            "upcoming_installments": len(installments),
            "upcoming_installment_amount": _total(installments, "total_amount"),
        }

    async def _investments(self, owner_id: str) -> Dict[str, Any]:
        investments = await self.store.select(
            Investment.__tablename__,
            columns=["current_value", "total_returns"],
            filters={"user_id": owner_id, "status": InvestmentStatus.ACTIVE.value},
        )
        return {
            "investment_value": _total(investments, "current_value"),
            "investment_returns": _total(investments, "total_returns"),
        }

    async def _funding(self, owner_id: str) -> Dict[str, Any]:
        funding = await self.store.select(
            InvestorFunding.__tablename__,
            columns=["investment_amount", "total_profit_shared"],
            filters={"user_id": owner_id},
        )
        return {
            "investor_capital": _total(funding, "investment_amount"),
            "profit_shared": _total(funding, "total_profit_shared"),
        }

    async def _sales(self, owner_id: str) -> Dict[str, Any]:
        owner_col = await self.resolver.resolve(Transaction.__tablename__, settings.owner_column_candidates)
        sales = await self.store.select(
            Transaction.__tablename__, columns=["total_amount"], filters={owner_col: owner_id}
        )
        return {"sales_count": len(sales), "sales_total": _total(sales, "total_amount")}

    async def summary(self, owner_id: str, today: Optional[date] = None) -> Dict[str, Any]:
        today = today or date.today()
        parts = await asyncio.gather(
            self._loans(owner_id),
            self._upcoming(owner_id, today),
            self._investments(owner_id),
            self._funding(owner_id),
            self._sales(owner_id),
        )
        result: Dict[str, Any] = {}
        for part in parts:
            result.update(part)
        return result
