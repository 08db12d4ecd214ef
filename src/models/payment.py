"""Schemas for payment intents and gateway settlement events."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class PaymentIntentRecord(BaseModel):
    """Gateway-side payment intent as seen by this service."""

    id: str
    client_secret: str | None = None
    amount: int
    currency: str
    status: str
    metadata: dict[str, Any] = Field(default_factory=dict)


class CreateIntentRequest(BaseModel):
    """Amount is expressed in the gateway's minor currency unit."""

    amount: int = Field(..., gt=0)
    currency: str | None = Field(None, min_length=3, max_length=3)


class CreateIntentResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    client_secret: str = Field(..., serialization_alias="clientSecret")


class VerifyIntentRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    payment_intent_id: str = Field(..., alias="paymentIntentId", min_length=1)


class VerifyIntentResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    payment_intent: PaymentIntentRecord = Field(
        ..., serialization_alias="paymentIntent"
    )


class GatewayEvent(BaseModel):
    """Verified webhook event reduced to the fields this service reads."""

    id: str
    type: str
    payment_intent_id: str | None = None
    user_id: str | None = None


class SettlementRecord(BaseModel):
    """Outcome of a payment intent as announced by a signed gateway event."""

    payment_intent_id: str
    status: Literal["succeeded", "failed"]
    event_id: str
    received_at: str
    user_id: str | None = None
