"""Routes for payment intents and gateway webhooks."""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status

from src.api.auth import IdentityDependency
from src.config import settings
from src.models.payment import (
    CreateIntentRequest,
    CreateIntentResponse,
    VerifyIntentRequest,
    VerifyIntentResponse,
)
from src.services.clients.payment_client import PaymentGatewayDependency
from src.services.payments.event_store import SettlementStoreDependency
from src.services.payments.orchestrator import PaymentOrchestrator

router = APIRouter(prefix="/payments", tags=["payments"])
logger = logging.getLogger(__name__)


def _build_orchestrator(
    gateway: PaymentGatewayDependency,
    store: SettlementStoreDependency,
) -> PaymentOrchestrator:
    if gateway is None:
        logger.warning("Payment requested but gateway is not configured")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Payment gateway is not configured in this environment",
        )
    return PaymentOrchestrator(gateway, store)


OrchestratorDependency = Annotated[PaymentOrchestrator, Depends(_build_orchestrator)]


@router.post(
    "/intent",
    response_model=CreateIntentResponse,
    summary="Create a payment intent for client-side confirmation",
)
async def create_payment_intent(
    payload: CreateIntentRequest,
    orchestrator: OrchestratorDependency,
    identity: IdentityDependency,
) -> CreateIntentResponse:
    client_secret = await orchestrator.create_intent(
        payload.amount,
        payload.currency or settings.PAYMENT_CURRENCY,
        metadata={"userId": identity.user_id},
    )
    return CreateIntentResponse(client_secret=client_secret)


@router.post(
    "/verify",
    response_model=VerifyIntentResponse,
    summary="Check whether a payment intent has succeeded",
)
async def verify_payment_intent(
    payload: VerifyIntentRequest,
    orchestrator: OrchestratorDependency,
    identity: IdentityDependency,
) -> VerifyIntentResponse:
    """Read-only status query; fulfillment waits for the signed webhook."""

    intent = await orchestrator.verify_intent(payload.payment_intent_id)
    return VerifyIntentResponse(payment_intent=intent)


@router.post(
    "/webhook",
    summary="Receive signed payment gateway events",
)
async def receive_gateway_event(
    request: Request,
    orchestrator: OrchestratorDependency,
    stripe_signature: Annotated[str | None, Header(alias="Stripe-Signature")] = None,
) -> dict[str, bool]:
    if not stripe_signature:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing Stripe-Signature header",
        )
    payload = await request.body()
    record = await orchestrator.handle_event(payload, stripe_signature)
    return {"received": True, "recorded": record is not None}
