"""Stock fulfillment for orders whose payment has settled."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Annotated, Any

from fastapi import Depends

from src.errors import ConflictError, ForbiddenError
from src.models.stock import PurchasedItem
from src.services.catalog.stock import StockUpdater, StockUpdaterDependency
from src.services.payments.event_store import (
    SettlementStore,
    SettlementStoreDependency,
)

logger = logging.getLogger(__name__)


class FulfillmentService:
    """Decrements stock once per settled payment intent.

    Only the user the intent was created for may fulfill it. A claim is
    released again when the batch fails before any stock was touched, so the
    order can be retried; once an item has been decremented the claim stays.
    """

    def __init__(self, store: SettlementStore, updater: StockUpdater) -> None:
        self._store = store
        self._updater = updater

    async def fulfill(
        self,
        user_id: str,
        intent_id: str,
        items: Sequence[PurchasedItem],
    ) -> list[dict[str, Any]]:
        record = await self._store.fetch(intent_id)
        if record is None or record.status != "succeeded":
            raise ConflictError("Payment has not been settled for this intent")
        if record.user_id != user_id:
            logger.warning(
                "User %s tried to fulfill payment intent %s",
                user_id,
                intent_id,
                extra={"owner": record.user_id},
            )
            raise ForbiddenError("Payment intent belongs to another user")

        if not await self._store.claim_fulfillment(intent_id):
            raise ConflictError("Payment intent has already been fulfilled")

        logger.info(
            "Fulfilling payment intent %s",
            intent_id,
            extra={"items": len(items)},
        )
        updated: list[dict[str, Any]] = []
        try:
            await self._updater.apply(items, updated)
        except Exception:
            if not updated:
                await self._store.release_fulfillment(intent_id)
                logger.info("Released fulfillment claim for payment intent %s", intent_id)
            raise
        return updated


def get_fulfillment_service(
    store: SettlementStoreDependency,
    updater: StockUpdaterDependency,
) -> FulfillmentService:
    return FulfillmentService(store, updater)


FulfillmentServiceDependency = Annotated[
    FulfillmentService, Depends(get_fulfillment_service)
]
