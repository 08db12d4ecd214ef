"""Stock checks before checkout and stock decrements after it."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Annotated, Any

from fastapi import Depends

from src.errors import ConflictError, NotFoundError, ValidationError
from src.models.product import StockStatus
from src.models.stock import PurchasedItem, StockCheckRequest
from src.services.storage.mongo import to_object_id
from src.services.storage.product_repository import (
    ProductRepository,
    ProductRepositoryDependency,
)

logger = logging.getLogger(__name__)


class StockGuard:
    """Read-only gate run before an order is placed.

    Passing the guard reserves nothing; the decrement in ``StockUpdater`` is
    what actually protects the quantity.
    """

    def __init__(self, repository: ProductRepository) -> None:
        self._repository = repository

    async def check(self, request: StockCheckRequest) -> dict[str, Any]:
        if request.quantity < 1:
            raise ValidationError("Requested quantity must be at least 1")

        oid = to_object_id(request.product_id, "product id")
        product = await self._repository.get(
            oid, {"title": 1, "quantity": 1, "status": 1}
        )

        if product is None:
            raise NotFoundError(f"Product with ID {request.product_id} not found")

        title = product.get("title", request.product_id)
        if product.get("status") == StockStatus.OUT_OF_STOCK:
            raise ConflictError(f"Product {title} is out of stock")

        available = product.get("quantity", 0)
        if available < request.quantity:
            raise ConflictError(f"Only {available} units available for {title}")

        logger.debug(
            "Stock check passed for product %s",
            request.product_id,
            extra={"requested": request.quantity, "available": available},
        )
        return product


class StockUpdater:
    """Apply purchased quantities to product stock, one item at a time."""

    def __init__(self, repository: ProductRepository) -> None:
        self._repository = repository

    async def apply(
        self,
        items: Sequence[PurchasedItem],
        updated: list[dict[str, Any]] | None = None,
    ) -> list[dict[str, Any]]:
        """Decrement every item in order.

        The first failing item aborts the batch; decrements already applied
        to earlier items are kept. Updated products are appended to
        ``updated`` when given, so callers can see how far a failed batch got.
        """

        if updated is None:
            updated = []
        for item in items:
            try:
                updated.append(await self._decrement(item))
            except Exception:
                logger.error(
                    "Stock update aborted at product %s",
                    item.product_id,
                    extra={"applied": len(updated), "remaining": len(items) - len(updated)},
                )
                raise
        return updated

    async def _decrement(self, item: PurchasedItem) -> dict[str, Any]:
        if item.quantity < 1:
            raise ValidationError("Purchased quantity must be at least 1")

        oid = to_object_id(item.product_id, "product id")
        product = await self._repository.decrement_stock(oid, item.quantity)
        if product is None:
            if not await self._repository.exists(oid):
                raise NotFoundError(f"Product with ID {item.product_id} not found")
            raise ConflictError(
                f"Insufficient stock for product {item.product_id} "
                f"to remove {item.quantity} units"
            )

        quantity = product["quantity"]
        synced = await self._repository.sync_stock_status(oid, quantity)
        if synced is not None:
            product = synced

        logger.info(
            "Decremented stock for product %s",
            item.product_id,
            extra={"purchased": item.quantity, "quantity": quantity},
        )
        return product


def get_stock_guard(repository: ProductRepositoryDependency) -> StockGuard:
    return StockGuard(repository)


def get_stock_updater(repository: ProductRepositoryDependency) -> StockUpdater:
    return StockUpdater(repository)


StockGuardDependency = Annotated[StockGuard, Depends(get_stock_guard)]
StockUpdaterDependency = Annotated[StockUpdater, Depends(get_stock_updater)]
