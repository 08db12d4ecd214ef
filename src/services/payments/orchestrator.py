"""Payment intent creation, status checks and settlement events."""

from __future__ import annotations

import logging

from src.errors import ConflictError
from src.models.payment import PaymentIntentRecord, SettlementRecord
from src.services.clients.payment_client import PaymentGateway
from src.services.payments.event_store import SettlementStore

logger = logging.getLogger(__name__)

SUCCEEDED = "succeeded"

# Gateway event type -> settlement status recorded for the intent.
SETTLEMENT_EVENTS = {
    "payment_intent.succeeded": "succeeded",
    "payment_intent.payment_failed": "failed",
}


class PaymentOrchestrator:
    """Coordinates the payment gateway with the settlement store.

    ``verify_intent`` is a synchronous status query for clients. Order
    fulfillment relies on the settlement records written by ``handle_event``
    from signed gateway notifications instead.
    """

    def __init__(self, gateway: PaymentGateway, store: SettlementStore) -> None:
        self._gateway = gateway
        self._store = store

    async def create_intent(
        self,
        amount: int,
        currency: str,
        metadata: dict[str, str] | None = None,
    ) -> str:
        """Create an intent and return its client secret."""

        intent = await self._gateway.create_intent(
            amount=amount,
            currency=currency.lower(),
            metadata=metadata or {},
        )
        logger.info(
            "Created payment intent %s",
            intent.id,
            extra={"amount": amount, "currency": currency, "status": intent.status},
        )
        if not intent.client_secret:
            raise ConflictError("Payment intent has no client secret")
        return intent.client_secret

    async def verify_intent(self, intent_id: str) -> PaymentIntentRecord:
        intent = await self._gateway.retrieve_intent(intent_id)
        if intent.status != SUCCEEDED:
            logger.info(
                "Payment intent %s not settled",
                intent_id,
                extra={"status": intent.status},
            )
            raise ConflictError("Payment unsuccessful")
        return intent

    async def handle_event(
        self,
        payload: bytes,
        signature: str,
    ) -> SettlementRecord | None:
        """Verify a webhook delivery and record the intent outcome it carries."""

        event = self._gateway.construct_event(payload, signature)
        status = SETTLEMENT_EVENTS.get(event.type)
        if status is None or event.payment_intent_id is None:
            logger.debug("Ignoring gateway event %s of type %s", event.id, event.type)
            return None

        record = await self._store.record(
            event.payment_intent_id, status, event.id, user_id=event.user_id
        )
        logger.info(
            "Recorded settlement for payment intent %s",
            event.payment_intent_id,
            extra={"status": status, "event_id": event.id},
        )
        return record
