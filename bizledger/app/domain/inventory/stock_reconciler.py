"""
Stock reconciliation for sales and purchases.

Turns a transaction's line items into per-product stock movements and applies
them to whichever stock column the deployment has, keeping the legacy alias
in sync while both exist. Rolling back a deleted or edited transaction is
best-effort: a product whose stock cannot be restored is reported, never
allowed to block the deletion.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence

from bizledger.app.core.config import settings
from bizledger.app.core.exceptions import AppException, NotFoundError, PartialSideEffectWarning
from bizledger.app.db.row_store import StoreError
from bizledger.app.domain.values import is_truthy, to_int
from bizledger.app.models.enums import StockDirection
from bizledger.app.models.product import Product

logger = logging.getLogger("bizledger.inventory")


@dataclass(frozen=True)
class StockMovement:
    """Intent to change one product's stock; never persisted."""
    product_id: str
    quantity_delta: int
    reason: str

    def inverse(self, reason: Optional[str] = None) -> "StockMovement":
        return StockMovement(self.product_id, -self.quantity_delta, reason or self.reason)


@dataclass
class StockAdjustment:
    product_id: str
    field: str
    previous: int
    current: int
    delta: int
    reason: str
    mirrored_field: Optional[str] = None


@dataclass
class StockReconciliationReport:
    adjustments: List[StockAdjustment] = field(default_factory=list)
    warnings: List[PartialSideEffectWarning] = field(default_factory=list)

    @property
    def status(self) -> str:
        return "partial" if self.warnings else "complete"


def movements_for(
    items: Iterable[Dict[str, Any]],
    direction: StockDirection,
    reason: str,
    only_deducted: bool = False,
) -> List[StockMovement]:
    """
    Aggregate line items into one movement per product.

    Duplicate product references are summed. With ``only_deducted`` the items
    whose ``stock_deducted`` flag is explicitly false are skipped (items from
    tables without the flag count as deducted).
    """
    quantities: Dict[str, int] = {}
    for item in items:
        product_id = item.get("product_id")
        if not product_id:
            continue
        if only_deducted and "stock_deducted" in item and not is_truthy(item["stock_deducted"]):
            continue
        qty = to_int(item.get("qty", item.get("quantity")))
        if not qty:
            continue
        quantities[product_id] = quantities.get(product_id, 0) + qty

    sign = -1 if StockDirection(direction) == StockDirection.OUT else 1
    return [StockMovement(pid, sign * qty, reason) for pid, qty in quantities.items() if qty]


class StockReconciler:

    def __init__(self, store, resolver, table_name: str = Product.__tablename__, candidates: Sequence[str] = None):
        self.store = store
        self.resolver = resolver
        self.table = table_name
        self.candidates = list(candidates or settings.stock_field_candidates)

    async def stock_field(self) -> str:
        return await self.resolver.resolve(self.table, self.candidates)

    async def current_quantity(self, product_id: str) -> int:
        field_name = await self.stock_field()
        row = await self.store.select_one(self.table, {"id": product_id}, columns=["id", field_name])
        if row is None:
            raise NotFoundError("Product", product_id)
        return to_int(row[field_name])

    async def apply(self, product_id: str, quantity_delta: int, reason: str) -> StockAdjustment:
        """
        Move one product's stock by ``quantity_delta``, clamped at zero.

        Raises:
            NotFoundError: Product does not exist
            StoreError: Read or write failed
        """
        field_name = await self.stock_field()
        row = await self.store.select_one(self.table, {"id": product_id}, columns=["id", field_name])
        if row is None:
            raise NotFoundError("Product", product_id)

        previous = to_int(row[field_name])
        current = max(0, previous + int(quantity_delta))
        await self.store.update(self.table, {field_name: current}, {"id": product_id})
        mirrored = await self._mirror(product_id, field_name, current)

        logger.info(
            "Stock %s %s -> %s (%+d): %s",
            product_id, previous, current, quantity_delta, reason,
            extra={"product_id": product_id, "stock_field": field_name}
        )
        return StockAdjustment(
            product_id=product_id,
            field=field_name,
            previous=previous,
            current=current,
            delta=int(quantity_delta),
            reason=reason,
            mirrored_field=mirrored,
        )

    async def _mirror(self, product_id: str, field_name: str, value: int) -> Optional[str]:
        """Copy the new value into the other historical column, if the table has it."""
        for alternate in self.candidates:
            if alternate == field_name:
                continue
            if not await self.resolver.has_column(self.table, alternate):
                continue
            try:
                await self.store.update(self.table, {alternate: value}, {"id": product_id})
                return alternate
            except StoreError as e:
                logger.warning("Mirror write of %s.%s failed: %s", self.table, alternate, e.message)
        return None

    async def shortages(self, movements: Iterable[StockMovement]) -> List[Dict[str, Any]]:
        """Products whose stock on hand cannot cover an outgoing movement."""
        short = []
        for movement in movements:
            if movement.quantity_delta >= 0:
                continue
            available = await self.current_quantity(movement.product_id)
            requested = -movement.quantity_delta
            if available < requested:
                short.append({
                    "product_id": movement.product_id,
                    "available": available,
                    "requested": requested,
                })
        return short

    async def apply_best_effort(self, movements: Iterable[StockMovement]) -> StockReconciliationReport:
        """
        Apply each movement on its own, collecting failures instead of raising.

        Per-product failures become ``PartialSideEffectWarning``s on the report.
        """
        report = StockReconciliationReport()
        for movement in movements:
            try:
                report.adjustments.append(
                    await self.apply(movement.product_id, movement.quantity_delta, movement.reason)
                )
            except (StoreError, AppException) as e:
                logger.warning(
                    "Stock rollback for product %s failed: %s", movement.product_id, e,
                    extra={"product_id": movement.product_id}
                )
                report.warnings.append(PartialSideEffectWarning(
                    code="STOCK_ROLLBACK_FAILED",
                    message=f"Stock for product {movement.product_id} could not be restored",
                    context={
                        "product_id": movement.product_id,
                        "quantity_delta": movement.quantity_delta,
                        "error": str(e),
                    },
                ))
        return report

    async def rollback_from_line_items(
        self,
        items: Iterable[Dict[str, Any]],
        reason: str,
        direction: StockDirection = StockDirection.OUT,
    ) -> StockReconciliationReport:
        """Undo the stock effect of a transaction's items, one product at a time."""
        return await self.apply_best_effort(
            movement.inverse(reason) for movement in movements_for(items, direction, reason, only_deducted=True)
        )
