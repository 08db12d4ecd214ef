"""Payment gateway client abstractions and implementations."""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from typing import Annotated, Any

import stripe
from fastapi import Depends

from src.config import settings
from src.errors import ExternalServiceError, ValidationError
from src.models.payment import GatewayEvent, PaymentIntentRecord


class PaymentGateway(ABC):
    """Abstract gateway interface for payment intents and signed events."""

    @abstractmethod
    async def create_intent(
        self,
        *,
        amount: int,
        currency: str,
        metadata: dict[str, str],
    ) -> PaymentIntentRecord:
        """Create a payment intent for ``amount`` minor units."""

    @abstractmethod
    async def retrieve_intent(self, intent_id: str) -> PaymentIntentRecord:
        """Fetch the current state of an intent."""

    @abstractmethod
    def construct_event(self, payload: bytes, signature: str) -> GatewayEvent:
        """Verify a webhook signature and decode the event."""


class StripePaymentGateway(PaymentGateway):
    """Gateway implementation backed by an explicitly constructed Stripe client."""

    def __init__(
        self,
        *,
        api_key: str,
        webhook_secret: str | None = None,
        payment_method_types: list[str] | None = None,
    ) -> None:
        if not api_key:
            raise ValueError("Stripe secret key is required to initialize payment gateway")
        self._client = stripe.StripeClient(api_key)
        self._webhook_secret = webhook_secret
        self._payment_method_types = payment_method_types or ["card"]

    async def create_intent(
        self,
        *,
        amount: int,
        currency: str,
        metadata: dict[str, str],
    ) -> PaymentIntentRecord:
        params = {
            "amount": amount,
            "currency": currency,
            "metadata": metadata,
            "payment_method_types": self._payment_method_types,
        }
        intent = await self._call(self._client.payment_intents.create, params)
        return _to_record(intent)

    async def retrieve_intent(self, intent_id: str) -> PaymentIntentRecord:
        intent = await self._call(self._client.payment_intents.retrieve, intent_id)
        return _to_record(intent)

    def construct_event(self, payload: bytes, signature: str) -> GatewayEvent:
        if not self._webhook_secret:
            raise ValueError("Stripe webhook secret is not configured")
        try:
            event = self._client.construct_event(payload, signature, self._webhook_secret)
        except stripe.SignatureVerificationError as exc:
            raise ValidationError("Invalid webhook signature") from exc
        except ValueError as exc:
            raise ValidationError("Invalid webhook payload") from exc

        data_object = event.data.object
        intent_id = None
        user_id = None
        if getattr(data_object, "object", None) == "payment_intent":
            intent_id = data_object.id
            metadata = getattr(data_object, "metadata", None)
            if metadata:
                user_id = metadata.to_dict().get("userId")
        return GatewayEvent(
            id=event.id,
            type=event.type,
            payment_intent_id=intent_id,
            user_id=user_id,
        )

    @staticmethod
    async def _call(func: Any, *args: Any) -> Any:
        try:
            return await asyncio.to_thread(func, *args)
        except stripe.StripeError as exc:
            message = exc.user_message or str(exc) or exc.__class__.__name__
            raise ExternalServiceError(message) from exc


def _to_record(intent: Any) -> PaymentIntentRecord:
    metadata = intent.metadata.to_dict() if intent.metadata else {}
    return PaymentIntentRecord(
        id=intent.id,
        client_secret=intent.client_secret,
        amount=intent.amount,
        currency=intent.currency,
        status=intent.status,
        metadata=metadata,
    )


_payment_gateway: PaymentGateway | None = None


def _initialize_gateway() -> PaymentGateway | None:
    if not settings.payments_enabled:
        return None
    return StripePaymentGateway(
        api_key=settings.STRIPE_SECRET_KEY,
        webhook_secret=settings.STRIPE_WEBHOOK_SECRET,
    )


_payment_gateway = _initialize_gateway()


def get_payment_gateway() -> PaymentGateway | None:
    """FastAPI dependency to obtain the configured payment gateway if available."""

    return _payment_gateway


PaymentGatewayDependency = Annotated[PaymentGateway | None, Depends(get_payment_gateway)]
