"""Tests for payment intents, verification and gateway webhooks."""

import hashlib
import hmac
import json
import time
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
import stripe

from src.errors import ExternalServiceError, ValidationError
from src.main import app
from src.services.clients.payment_client import (
    StripePaymentGateway,
    get_payment_gateway,
)

VALID_SIGNATURE = "valid-signature"


def _event(event_type, intent_id="pi_test_1", event_id="evt_1", user_id=None):
    return json.dumps(
        {
            "id": event_id,
            "type": event_type,
            "payment_intent_id": intent_id,
            "userId": user_id,
        }
    )


@pytest.mark.asyncio
async def test_create_intent_returns_client_secret(client, shopper, gateway_stub):
    user_id, headers = shopper

    response = await client.post("/payments/intent", json={"amount": 2500}, headers=headers)

    assert response.status_code == 200
    assert response.json() == {"success": True, "clientSecret": "pi_test_1_secret_abc"}
    intent = gateway_stub.intents["pi_test_1"]
    assert intent.amount == 2500
    assert intent.currency == "pkr"
    assert intent.metadata == {"userId": user_id}


@pytest.mark.asyncio
async def test_create_intent_rejects_non_positive_amount(client, shopper):
    _, headers = shopper

    response = await client.post("/payments/intent", json={"amount": 0}, headers=headers)

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_create_intent_surfaces_gateway_error(client, shopper, gateway_stub):
    _, headers = shopper
    gateway_stub.fail_with = "Amount must be at least 50 cents"

    response = await client.post("/payments/intent", json={"amount": 10}, headers=headers)

    assert response.status_code == 502
    assert response.json() == {
        "success": False,
        "message": "Amount must be at least 50 cents",
    }


@pytest.mark.asyncio
async def test_payment_routes_return_503_without_gateway(client, shopper):
    _, headers = shopper
    app.dependency_overrides[get_payment_gateway] = lambda: None

    response = await client.post("/payments/intent", json={"amount": 100}, headers=headers)

    assert response.status_code == 503


@pytest.mark.asyncio
async def test_verify_succeeded_intent(client, shopper, gateway_stub):
    _, headers = shopper
    await client.post("/payments/intent", json={"amount": 900}, headers=headers)
    gateway_stub.settle("pi_test_1")

    response = await client.post(
        "/payments/verify", json={"paymentIntentId": "pi_test_1"}, headers=headers
    )

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["paymentIntent"]["id"] == "pi_test_1"
    assert body["paymentIntent"]["status"] == "succeeded"


@pytest.mark.asyncio
async def test_verify_unsettled_intent_fails(client, shopper):
    _, headers = shopper
    await client.post("/payments/intent", json={"amount": 900}, headers=headers)

    response = await client.post(
        "/payments/verify", json={"paymentIntentId": "pi_test_1"}, headers=headers
    )

    assert response.status_code == 409
    assert response.json()["message"] == "Payment unsuccessful"


@pytest.mark.asyncio
async def test_verify_unknown_intent_is_gateway_error(client, shopper):
    _, headers = shopper

    response = await client.post(
        "/payments/verify", json={"paymentIntentId": "pi_missing"}, headers=headers
    )

    assert response.status_code == 502


@pytest.mark.asyncio
async def test_webhook_records_settlement(client, redis_client):
    response = await client.post(
        "/payments/webhook",
        content=_event("payment_intent.succeeded", user_id="user-1"),
        headers={"Stripe-Signature": VALID_SIGNATURE},
    )

    assert response.status_code == 200
    assert response.json() == {"received": True, "recorded": True}
    stored = json.loads(await redis_client.get("payments:intent:pi_test_1"))
    assert stored["status"] == "succeeded"
    assert stored["event_id"] == "evt_1"
    assert stored["user_id"] == "user-1"


@pytest.mark.asyncio
async def test_webhook_ignores_unrelated_events(client, redis_client):
    response = await client.post(
        "/payments/webhook",
        content=_event("customer.created", intent_id=None),
        headers={"Stripe-Signature": VALID_SIGNATURE},
    )

    assert response.json() == {"received": True, "recorded": False}


@pytest.mark.asyncio
async def test_webhook_rejects_bad_signature(client):
    response = await client.post(
        "/payments/webhook",
        content=_event("payment_intent.succeeded"),
        headers={"Stripe-Signature": "forged"},
    )

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_webhook_requires_signature_header(client):
    response = await client.post(
        "/payments/webhook", content=_event("payment_intent.succeeded")
    )

    assert response.status_code == 400


@pytest.mark.unit
@pytest.mark.asyncio
async def test_stripe_gateway_maps_intent_and_passes_params():
    gateway = StripePaymentGateway(api_key="sk_test_dummy")
    gateway._client = MagicMock()
    gateway._client.payment_intents.create.return_value = SimpleNamespace(
        id="pi_123",
        client_secret="pi_123_secret",
        amount=1500,
        currency="pkr",
        status="requires_payment_method",
        metadata=SimpleNamespace(to_dict=lambda: {"userId": "u1"}),
    )

    intent = await gateway.create_intent(
        amount=1500, currency="pkr", metadata={"userId": "u1"}
    )

    assert intent.id == "pi_123"
    assert intent.client_secret == "pi_123_secret"
    assert intent.metadata == {"userId": "u1"}
    [params] = gateway._client.payment_intents.create.call_args.args
    assert params["payment_method_types"] == ["card"]
    assert params["amount"] == 1500


@pytest.mark.unit
@pytest.mark.asyncio
async def test_stripe_gateway_wraps_gateway_errors():
    gateway = StripePaymentGateway(api_key="sk_test_dummy")
    gateway._client = MagicMock()
    gateway._client.payment_intents.create.side_effect = stripe.InvalidRequestError(
        "Invalid currency: xyz", param="currency"
    )

    with pytest.raises(ExternalServiceError) as excinfo:
        await gateway.create_intent(amount=100, currency="xyz", metadata={})

    assert "Invalid currency: xyz" in excinfo.value.message


def _sign(payload: str, secret: str) -> str:
    timestamp = int(time.time())
    signed = f"{timestamp}.{payload}".encode()
    signature = hmac.new(secret.encode(), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={signature}"


@pytest.mark.unit
def test_stripe_gateway_verifies_webhook_signature():
    secret = "whsec_test"
    gateway = StripePaymentGateway(api_key="sk_test_dummy", webhook_secret=secret)
    payload = json.dumps(
        {
            "id": "evt_42",
            "object": "event",
            "type": "payment_intent.succeeded",
            "data": {
                "object": {
                    "id": "pi_42",
                    "object": "payment_intent",
                    "status": "succeeded",
                    "metadata": {"userId": "u42"},
                }
            },
        }
    )

    event = gateway.construct_event(payload.encode(), _sign(payload, secret))

    assert event.id == "evt_42"
    assert event.type == "payment_intent.succeeded"
    assert event.payment_intent_id == "pi_42"
    assert event.user_id == "u42"

    with pytest.raises(ValidationError):
        gateway.construct_event(payload.encode(), _sign(payload, "whsec_other"))
