"""
Sales Transaction Service (Domain Logic).

A sale is a header row, its line items and one stock movement per product.
Creation and item edits run through the compensating write coordinator so a
failed stock write puts back everything before it. Deletion removes the rows
first and then restores stock best-effort; a product that cannot be restored
is reported as a warning and never blocks the deletion or an item edit.
"""

import logging
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional

from bizledger.app.core.config import settings
from bizledger.app.core.exceptions import InsufficientStockError, NotFoundError, ValidationError
from bizledger.app.db.row_store import Range, new_id
from bizledger.app.domain.consistency.coordinator import CompensatingWriteCoordinator
from bizledger.app.domain.inventory.stock_reconciler import StockMovement, StockReconciler, movements_for
from bizledger.app.domain.values import to_date, to_int, to_money
from bizledger.app.models.enums import StockDirection, TransactionStatus
from bizledger.app.models.transaction import Transaction, TransactionItem
from bizledger.app.services.activity import ActivityAction, log_activity

logger = logging.getLogger("bizledger.sales")

TRANSACTIONS = Transaction.__tablename__
ITEMS = TransactionItem.__tablename__

ZERO = Decimal("0.00")


def _normalize_items(items: Optional[List[Dict[str, Any]]]) -> List[Dict[str, Any]]:
    if not items:
        raise ValidationError("At least one item is required", details={"field": "items"})
    normalized = []
    for index, item in enumerate(items):
        qty = to_int(item.get("qty", item.get("quantity")))
        price = to_money(item.get("price"))
        if qty <= 0:
            raise ValidationError("Item quantity must be greater than zero", details={"item": index})
        if price < 0:
            raise ValidationError("Item price cannot be negative", details={"item": index})
        normalized.append({
            "product_id": item.get("product_id") or None,
            "product_name": item.get("product_name"),
            "qty": qty,
            "price": price,
            "subtotal": to_money(price * qty),
        })
    return normalized


def _net_movements(restore: List[StockMovement], apply: List[StockMovement], reason: str) -> List[StockMovement]:
    """Combine restorations of old items and deductions for new items per product."""
    net: Dict[str, int] = {}
    for movement in restore + apply:
        net[movement.product_id] = net.get(movement.product_id, 0) + movement.quantity_delta
    return [StockMovement(pid, delta, reason) for pid, delta in net.items() if delta]


class TransactionService:

    def __init__(self, store, resolver):
        self.store = store
        self.resolver = resolver
        self.stock = StockReconciler(store, resolver)

    async def owner_column(self) -> str:
        return await self.resolver.resolve(TRANSACTIONS, settings.owner_column_candidates)

    async def _owned_transaction(self, owner_id: str, transaction_id: str) -> Dict[str, Any]:
        owner_col = await self.owner_column()
        transaction = await self.store.select_one(TRANSACTIONS, {"id": transaction_id, owner_col: owner_id})
        if transaction is None:
            raise NotFoundError("Transaction", transaction_id)
        return transaction

    async def _items(self, transaction_ids: List[str]) -> List[Dict[str, Any]]:
        return await self.store.select(ITEMS, filters={"transaction_id": transaction_ids})

    async def _next_invoice_number(self, owner_col: str, owner_id: str, on: date) -> str:
        issued = await self.store.count(TRANSACTIONS, {owner_col: owner_id, "transaction_date": on})
        return f"INV-{on:%Y%m%d}-{issued + 1:04d}"

    def _stock_step(self, coordinator: CompensatingWriteCoordinator, movement: StockMovement) -> None:
        async def action(results):
            return await self.stock.apply(movement.product_id, movement.quantity_delta, movement.reason)

        async def compensate(adjustment):
            # Put back exactly what the forward write changed (it may have clamped at zero)
            await self.stock.apply(
                adjustment.product_id, adjustment.previous - adjustment.current, f"Undo: {movement.reason}"
            )

        coordinator.step(f"stock:{movement.product_id}", action, compensate)

    async def _check_availability(self, movements: List[StockMovement]) -> None:
        short = await self.stock.shortages(movements)
        if short:
            raise InsufficientStockError(short)

    async def create_transaction(self, owner_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Record a sale and deduct its stock.

        Flow:
        1. Validate items and check stock on hand (nothing written yet)
        2. Insert the header
        3. Insert the items
        4. Deduct stock, one step per product
        5. Flag the items as stock_deducted

        Raises:
            ValidationError / InsufficientStockError: Before any write
            PersistenceError / DependentWriteError: A write failed; earlier ones were undone
        """
        transaction_date = to_date(data.get("transaction_date"))
        if transaction_date is None:
            raise ValidationError("transaction_date is required", details={"field": "transaction_date"})
        items = _normalize_items(data.get("items"))

        subtotal = sum((item["subtotal"] for item in items), ZERO)
        discount = min(max(to_money(data.get("discount")), ZERO), subtotal)
        owner_col = await self.owner_column()

        transaction_id = new_id()
        invoice_number = data.get("invoice_number") or await self._next_invoice_number(owner_col, owner_id, transaction_date)
        reason = f"Sale {invoice_number} ({transaction_id})"
        movements = movements_for(items, StockDirection.OUT, reason)
        await self._check_availability(movements)

        item_rows = [
            dict(item, id=new_id(), transaction_id=transaction_id, stock_deducted=False)
            for item in items
        ]

        coordinator = CompensatingWriteCoordinator(self.store, "create_transaction")
        coordinator.insert("transaction", TRANSACTIONS, {
            "id": transaction_id,
            owner_col: owner_id,
            "invoice_number": invoice_number,
            "transaction_date": transaction_date,
            "customer_name": data.get("customer_name"),
            "subtotal": subtotal,
            "discount": discount,
            "total_amount": subtotal - discount,
            "payment_method": data.get("payment_method") or "cash",
            "status": TransactionStatus.COMPLETED.value,
            "notes": data.get("notes"),
        })
        coordinator.insert("items", ITEMS, item_rows)
        for movement in movements:
            self._stock_step(coordinator, movement)
        if movements:
            coordinator.update(
                "stock_deducted", ITEMS,
                filters={"transaction_id": transaction_id, "product_id": [m.product_id for m in movements]},
                values={"stock_deducted": True},
            )
        results = await coordinator.execute()

        await log_activity(
            self.store, owner_id, ActivityAction.SALE_CREATED, "transaction", transaction_id,
            {"invoice_number": invoice_number, "total_amount": str(subtotal - discount)}
        )
        return {
            "transaction": results["transaction"],
            "items": await self._items([transaction_id]),
            "stock_adjustments": [results[f"stock:{m.product_id}"] for m in movements],
        }

    async def get_transaction(self, owner_id: str, transaction_id: str) -> Dict[str, Any]:
        transaction = await self._owned_transaction(owner_id, transaction_id)
        transaction["items"] = await self._items([transaction_id])
        return transaction

    async def list_transactions(
        self,
        owner_id: str,
        start_date=None,
        end_date=None,
        limit: int = 50,
        offset: int = 0,
    ) -> Dict[str, Any]:
        owner_col = await self.owner_column()
        filters: Dict[str, Any] = {owner_col: owner_id}
        if start_date or end_date:
            filters["transaction_date"] = Range(gte=to_date(start_date), lte=to_date(end_date))

        total = await self.store.count(TRANSACTIONS, filters)
        transactions = await self.store.select(
            TRANSACTIONS, filters=filters, order_by="transaction_date", descending=True, limit=limit, offset=offset
        )
        return {"transactions": transactions, "total": total, "limit": limit, "offset": offset}

    async def _delete_with_stock_rollback(self, owner_col: str, owner_id: str, transaction_ids: List[str], reason: str):
        items = await self._items(transaction_ids)

        coordinator = CompensatingWriteCoordinator(self.store, "delete_transaction")
        coordinator.delete("items", ITEMS, {"transaction_id": transaction_ids})
        coordinator.delete("transactions", TRANSACTIONS, {"id": transaction_ids, owner_col: owner_id})
        results = await coordinator.execute()

        report = await self.stock.rollback_from_line_items(items, reason, StockDirection.OUT)
        return results, report

    async def delete_transaction(self, owner_id: str, transaction_id: str) -> Dict[str, Any]:
        """
        Delete a sale and restore the stock its items deducted.

        Returns:
            {"deleted": True, "id", "stock_rollback": "complete" | "partial", "warnings"}
        """
        transaction = await self._owned_transaction(owner_id, transaction_id)
        owner_col = await self.owner_column()
        _, report = await self._delete_with_stock_rollback(
            owner_col, owner_id, [transaction_id],
            f"Rollback delete sale {transaction.get('invoice_number')} ({transaction_id})"
        )

        await log_activity(
            self.store, owner_id, ActivityAction.SALE_DELETED, "transaction", transaction_id,
            {"invoice_number": transaction.get("invoice_number"), "stock_rollback": report.status}
        )
        return {
            "deleted": True,
            "id": transaction_id,
            "stock_rollback": report.status,
            "stock_adjustments": report.adjustments,
            "warnings": report.warnings,
        }

    async def bulk_delete(self, owner_id: str, transaction_ids: List[str]) -> Dict[str, Any]:
        if not transaction_ids:
            raise ValidationError("No IDs provided", details={"field": "ids"})
        owner_col = await self.owner_column()
        owned = await self.store.select(
            TRANSACTIONS, columns=["id"], filters={"id": list(transaction_ids), owner_col: owner_id}
        )
        ids = [row["id"] for row in owned]
        if not ids:
            return {"deleted": 0, "ids": [], "stock_rollback": "complete", "stock_adjustments": [], "warnings": []}

        _, report = await self._delete_with_stock_rollback(
            owner_col, owner_id, ids, f"Rollback delete sales ({len(ids)} txn)"
        )
        for transaction_id in ids:
            await log_activity(self.store, owner_id, ActivityAction.SALE_DELETED, "transaction", transaction_id)
        return {
            "deleted": len(ids),
            "ids": ids,
            "stock_rollback": report.status,
            "stock_adjustments": report.adjustments,
            "warnings": report.warnings,
        }

    async def update_transaction_items(self, owner_id: str, transaction_id: str, new_items: List[Dict[str, Any]]) -> Dict[str, Any]:
        """
        Replace a sale's line items.

        Stock deducted by the old items is given back and the new items are
        deducted, netted per product so each product is written once. Net
        deductions are compensated steps of the edit; net restorations run
        after it commits and, like a deletion, only warn when a product
        cannot be restored.

        Returns:
            {"transaction", "items", "stock_adjustments", "stock_rollback", "warnings"}
        """
        transaction = await self._owned_transaction(owner_id, transaction_id)
        items = _normalize_items(new_items)
        old_items = await self._items([transaction_id])

        reason = f"Edit sale {transaction.get('invoice_number')} ({transaction_id})"
        restore = [m.inverse() for m in movements_for(old_items, StockDirection.OUT, reason, only_deducted=True)]
        deduct = movements_for(items, StockDirection.OUT, reason)
        net = _net_movements(restore, deduct, reason)
        outgoing = [m for m in net if m.quantity_delta < 0]
        returning = [m for m in net if m.quantity_delta > 0]
        await self._check_availability(outgoing)

        subtotal = sum((item["subtotal"] for item in items), ZERO)
        discount = min(to_money(transaction.get("discount")), subtotal)
        item_rows = [
            dict(item, id=new_id(), transaction_id=transaction_id, stock_deducted=False)
            for item in items
        ]

        coordinator = CompensatingWriteCoordinator(self.store, "update_transaction_items")
        coordinator.delete("old_items", ITEMS, {"transaction_id": transaction_id})
        coordinator.insert("items", ITEMS, item_rows)
        for movement in outgoing:
            self._stock_step(coordinator, movement)
        if deduct:
            coordinator.update(
                "stock_deducted", ITEMS,
                filters={"transaction_id": transaction_id, "product_id": [m.product_id for m in deduct]},
                values={"stock_deducted": True},
            )
        coordinator.update(
            "transaction", TRANSACTIONS,
            filters={"id": transaction_id},
            values={"subtotal": subtotal, "discount": discount, "total_amount": subtotal - discount},
        )
        results = await coordinator.execute()

        report = await self.stock.apply_best_effort(returning)

        await log_activity(
            self.store, owner_id, ActivityAction.SALE_ITEMS_UPDATED, "transaction", transaction_id,
            {"items": len(item_rows), "total_amount": str(subtotal - discount), "stock_rollback": report.status}
        )
        return {
            "transaction": results["transaction"]["after"][0],
            "items": await self._items([transaction_id]),
            "stock_adjustments": [results[f"stock:{m.product_id}"] for m in outgoing] + report.adjustments,
            "stock_rollback": report.status,
            "warnings": report.warnings,
        }
