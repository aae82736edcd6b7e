"""
Ledger entry construction.

Turns a domain event (installment paid, investment return received, profit
share paid out, investment purchased) into the expense or income row that
records it. The factory only builds rows; writing them is the coordinator's
job. Column names for ownership and date are resolved per deployment.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Dict, Optional, Tuple

from bizledger.app.core.config import settings
from bizledger.app.db.row_store import new_id
from bizledger.app.domain.values import to_money
from bizledger.app.models.enums import LedgerKind, LedgerSource, ReturnType
from bizledger.app.models.ledger_entry import Expense, Income

LEDGER_TABLES = {
    LedgerKind.EXPENSE: Expense.__tablename__,
    LedgerKind.INCOME: Income.__tablename__,
}

RETURN_LABELS = {
    ReturnType.INTEREST.value: "Interest",
    ReturnType.DIVIDEND.value: "Dividend",
    ReturnType.CAPITAL_GAIN.value: "Capital gain",
    ReturnType.LIQUIDATION.value: "Liquidation",
}


@dataclass
class LedgerEntryDraft:
    """A ledger row ready to insert, plus where it goes."""
    kind: LedgerKind
    table: str
    row: Dict[str, Any]

    @property
    def id(self) -> str:
        return self.row["id"]

    @property
    def amount(self) -> Decimal:
        return self.row["amount"]


def ledger_table(kind: LedgerKind) -> str:
    return LEDGER_TABLES[LedgerKind(kind)]


def _date_candidates(kind: LedgerKind):
    if LedgerKind(kind) == LedgerKind.EXPENSE:
        return settings.expense_date_candidates
    return settings.income_date_candidates


class LedgerEntryFactory:

    def __init__(self, resolver):
        self.resolver = resolver

    async def columns_for(self, kind: LedgerKind) -> Tuple[str, str]:
        """Resolve (owner column, date column) for the ledger table of ``kind``."""
        table_name = ledger_table(kind)
        owner_col = await self.resolver.resolve(table_name, settings.owner_column_candidates)
        date_col = await self.resolver.resolve(table_name, _date_candidates(kind))
        return owner_col, date_col

    async def build(
        self,
        kind: LedgerKind,
        owner_id: str,
        entry_date: date,
        category: str,
        amount,
        subcategory: Optional[str] = None,
        description: Optional[str] = None,
        payment_method: Optional[str] = None,
        notes: Optional[str] = None,
        source_type: Optional[LedgerSource] = None,
        source_id: Optional[str] = None,
    ) -> LedgerEntryDraft:
        table_name = ledger_table(kind)
        owner_col, date_col = await self.columns_for(kind)
        row = {
            "id": new_id(),
            owner_col: owner_id,
            date_col: entry_date,
            "category": category,
            "subcategory": subcategory,
            "amount": to_money(amount),
            "description": description,
            "payment_method": payment_method,
            "notes": notes,
        }
        # Legacy ledger tables predate the back-reference columns; the domain
        # record's forward link is then the only reference.
        if source_id and await self.resolver.has_column(table_name, "source_id"):
            row["source_type"] = LedgerSource(source_type).value if source_type else None
            row["source_id"] = source_id
        return LedgerEntryDraft(kind=LedgerKind(kind), table=ledger_table(kind), row=row)

    async def for_installment_payment(
        self,
        owner_id: str,
        loan: Dict[str, Any],
        installment: Dict[str, Any],
        paid_date: date,
        paid_amount,
        payment_method: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> LedgerEntryDraft:
        return await self.build(
            LedgerKind.EXPENSE,
            owner_id,
            paid_date,
            category="debt_payment",
            subcategory="loan_installment",
            amount=paid_amount,
            description=f"Installment #{installment['installment_number']} payment to {loan['lender_name']}",
            payment_method=payment_method or "cash",
            notes=notes,
            source_type=LedgerSource.LOAN_INSTALLMENT,
            source_id=installment["id"],
        )

    async def for_investment_purchase(
        self,
        owner_id: str,
        investment: Dict[str, Any],
        transaction_date: date,
        payment_method: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> LedgerEntryDraft:
        return await self.build(
            LedgerKind.EXPENSE,
            owner_id,
            transaction_date,
            category="investment",
            subcategory=investment["investment_type"],
            amount=investment["principal_amount"],
            description=f"Investment in {investment['investment_name']}",
            payment_method=payment_method or "transfer",
            notes=notes,
            source_type=LedgerSource.INVESTMENT,
            source_id=investment["id"],
        )

    async def for_investment_return(
        self,
        owner_id: str,
        investment: Dict[str, Any],
        return_id: str,
        return_date: date,
        return_amount,
        return_type: str,
        payment_method: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> LedgerEntryDraft:
        label = RETURN_LABELS.get(return_type, "Return")
        return await self.build(
            LedgerKind.INCOME,
            owner_id,
            return_date,
            category="investment_return",
            subcategory=return_type,
            amount=return_amount,
            description=f"{label} from {investment['investment_name']}",
            payment_method=payment_method or "transfer",
            notes=notes,
            source_type=LedgerSource.INVESTMENT_RETURN,
            source_id=return_id,
        )

    async def for_profit_sharing(
        self,
        owner_id: str,
        funding: Dict[str, Any],
        payment_id: str,
        share_amount,
        paid_date: date,
        period_start: date,
        period_end: date,
        payment_method: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> LedgerEntryDraft:
        return await self.build(
            LedgerKind.EXPENSE,
            owner_id,
            paid_date,
            category="investor_payment",
            subcategory="profit_sharing",
            amount=share_amount,
            description=f"Profit sharing to {funding['investor_name']} - {period_start} to {period_end}",
            payment_method=payment_method or "transfer",
            notes=notes,
            source_type=LedgerSource.PROFIT_SHARING,
            source_id=payment_id,
        )
