"""Schemas for the pre-checkout stock gate and post-checkout fulfillment."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class StockCheckRequest(BaseModel):
    """One line item a shopper intends to purchase."""

    model_config = ConfigDict(populate_by_name=True)

    product_id: str = Field(..., alias="productId")
    quantity: int = Field(..., description="Requested purchase amount")
    color: str | None = None
    price: float | None = None


class PurchasedItem(BaseModel):
    """A purchased line item whose quantity is removed from stock."""

    model_config = ConfigDict(populate_by_name=True)

    product_id: str = Field(..., alias="productId")
    quantity: int


class FulfillmentRequest(BaseModel):
    """Settled payment intent plus the items it paid for."""

    model_config = ConfigDict(populate_by_name=True)

    payment_intent_id: str = Field(..., alias="paymentIntentId", min_length=1)
    items: list[PurchasedItem] = Field(..., min_length=1)
