"""Routes gating and completing checkout against product stock."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter

from src.api.auth import IdentityDependency
from src.models.stock import FulfillmentRequest, StockCheckRequest
from src.services.catalog.stock import StockGuardDependency
from src.services.payments.fulfillment import FulfillmentServiceDependency
from src.services.storage.mongo import serialize_doc

router = APIRouter(prefix="/checkout", tags=["checkout"])


@router.post("/stock-check", summary="Confirm a line item can be purchased")
async def check_stock(
    payload: StockCheckRequest,
    guard: StockGuardDependency,
    identity: IdentityDependency,
) -> dict[str, Any]:
    product = await guard.check(payload)
    return {
        "success": True,
        "productId": payload.product_id,
        "available": product.get("quantity", 0),
    }


@router.post("/fulfill", summary="Decrement stock for a settled payment")
async def fulfill_order(
    payload: FulfillmentRequest,
    fulfillment: FulfillmentServiceDependency,
    identity: IdentityDependency,
) -> dict[str, Any]:
    products = await fulfillment.fulfill(
        identity.user_id, payload.payment_intent_id, payload.items
    )
    return {
        "success": True,
        "products": [serialize_doc(product) for product in products],
    }
