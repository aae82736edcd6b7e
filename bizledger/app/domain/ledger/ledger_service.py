"""
Ledger Entry Service (Domain Logic).

Deleting an expense or income entry that a domain event produced must also
undo that event's link: the installment goes back to pending, the profit
share back to pending, the investment return disappears. The unlink and the
entry delete run through the coordinator; the parent totals are recalculated
afterwards.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from bizledger.app.core.config import settings
from bizledger.app.core.exceptions import NotFoundError, PartialSideEffectWarning
from bizledger.app.domain.aggregates.recalculator import AggregateRecalculator, refresh_or_warn
from bizledger.app.domain.consistency.coordinator import CompensatingWriteCoordinator
from bizledger.app.domain.ledger.entry_factory import ledger_table
from bizledger.app.models.enums import InstallmentStatus, LedgerKind, LedgerSource, PaymentStatus
from bizledger.app.models.investment import Investment, InvestmentReturn
from bizledger.app.models.investor_funding import ProfitSharingPayment
from bizledger.app.models.loan_installment import LoanInstallment
from bizledger.app.services.activity import ActivityAction, log_activity

logger = logging.getLogger("bizledger.ledger")


@dataclass(frozen=True)
class LinkedSource:
    """Where a generated ledger entry's forward link lives."""
    source: LedgerSource
    table: str
    link_column: str


LINKS = {
    LedgerKind.EXPENSE: [
        LinkedSource(LedgerSource.LOAN_INSTALLMENT, LoanInstallment.__tablename__, "expense_transaction_id"),
        LinkedSource(LedgerSource.PROFIT_SHARING, ProfitSharingPayment.__tablename__, "expense_transaction_id"),
        LinkedSource(LedgerSource.INVESTMENT, Investment.__tablename__, "expense_transaction_id"),
    ],
    LedgerKind.INCOME: [
        LinkedSource(LedgerSource.INVESTMENT_RETURN, InvestmentReturn.__tablename__, "income_transaction_id"),
    ],
}


class LedgerService:

    def __init__(self, store, resolver):
        self.store = store
        self.resolver = resolver
        self.aggregates = AggregateRecalculator(store)

    async def _linked(self, kind: LedgerKind, entry: Dict[str, Any]):
        """
        Find the domain record pointing at ``entry``.

        The entry's own back-reference narrows the search when the table has
        one; legacy entries are matched by the forward link alone.
        """
        candidates = LINKS[kind]
        if entry.get("source_type"):
            candidates = [link for link in candidates if link.source.value == entry["source_type"]] or candidates
        for link in candidates:
            row = await self.store.select_one(link.table, {link.link_column: entry["id"]})
            if row is not None:
                return link, row
        return None, None

    async def delete_entry(self, owner_id: str, kind: LedgerKind, entry_id: str) -> Dict[str, Any]:
        """
        Delete an expense or income entry, reversing the event that produced it.

        Returns:
            {"deleted": True, "id", "reversed": {"source_type", "id"} or None, "warnings"}
        """
        kind = LedgerKind(kind)
        table_name = ledger_table(kind)
        owner_col = await self.resolver.resolve(table_name, settings.owner_column_candidates)
        entry = await self.store.select_one(table_name, {"id": entry_id, owner_col: owner_id})
        if entry is None:
            raise NotFoundError(kind.value.capitalize(), entry_id)

        link, record = await self._linked(kind, entry)

        coordinator = CompensatingWriteCoordinator(self.store, f"delete_{kind.value}")
        if link is not None:
            self._unlink(coordinator, link, record, entry_id)
        coordinator.delete("entry", table_name, {"id": entry_id, owner_col: owner_id})
        await coordinator.execute()

        warnings: List[PartialSideEffectWarning] = []
        if link is not None:
            await self._refresh_parent(link, record, warnings)

        action = ActivityAction.EXPENSE_DELETED if kind == LedgerKind.EXPENSE else ActivityAction.INCOME_DELETED
        reversed_source: Optional[Dict[str, Any]] = None
        if link is not None:
            reversed_source = {"source_type": link.source.value, "id": record["id"]}
        await log_activity(self.store, owner_id, action, kind.value, entry_id, {"reversed": reversed_source})
        logger.info("Deleted %s %s (reversed: %s)", kind.value, entry_id, reversed_source)
        return {"deleted": True, "id": entry_id, "reversed": reversed_source, "warnings": warnings}

    @staticmethod
    def _unlink(coordinator, link: LinkedSource, record: Dict[str, Any], entry_id: str) -> None:
        """Register the step that detaches the domain record from the entry."""
        if link.source == LedgerSource.LOAN_INSTALLMENT:
            coordinator.update(
                "unlink", link.table,
                filters={"id": record["id"], link.link_column: entry_id},
                values={
                    "status": InstallmentStatus.PENDING.value,
                    "paid_date": None,
                    "paid_amount": None,
                    link.link_column: None,
                },
            )
        elif link.source == LedgerSource.PROFIT_SHARING:
            coordinator.update(
                "unlink", link.table,
                filters={"id": record["id"], link.link_column: entry_id},
                values={"status": PaymentStatus.PENDING.value, "paid_date": None, link.link_column: None},
            )
        elif link.source == LedgerSource.INVESTMENT:
            coordinator.update(
                "unlink", link.table,
                filters={"id": record["id"], link.link_column: entry_id},
                values={link.link_column: None},
            )
        else:
            coordinator.delete("unlink", link.table, {"id": record["id"]})

    async def _refresh_parent(self, link: LinkedSource, record: Dict[str, Any], warnings: List[PartialSideEffectWarning]) -> None:
        if link.source == LedgerSource.LOAN_INSTALLMENT:
            await refresh_or_warn(self.aggregates.recalculate_loan, record["loan_id"], warnings)
        elif link.source == LedgerSource.PROFIT_SHARING:
            await refresh_or_warn(self.aggregates.recalculate_funding, record["funding_id"], warnings)
        elif link.source == LedgerSource.INVESTMENT_RETURN:
            await refresh_or_warn(self.aggregates.recalculate_investment, record["investment_id"], warnings)
