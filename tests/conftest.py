"""Pytest configuration and fixtures for the storefront service."""

import asyncio
import json
from datetime import UTC, datetime, timedelta
from itertools import count

import jwt
import mongomock
import pytest
import pytest_asyncio
from bson import ObjectId
from fakeredis import aioredis as fakeredis
from httpx import ASGITransport, AsyncClient

from src.config import settings
from src.errors import ExternalServiceError, ValidationError
from src.models.payment import GatewayEvent, PaymentIntentRecord
from src.services.clients.payment_client import PaymentGateway, get_payment_gateway
from src.services.payments.event_store import get_redis_client
from src.services.storage.mongo import get_database

VALID_SIGNATURE = "valid-signature"


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "integration: marks tests as integration tests")
    config.addinivalue_line("markers", "unit: marks tests as unit tests")
    config.addinivalue_line("markers", "asyncio: marks tests as async tests")


class StubGateway(PaymentGateway):
    """In-memory payment gateway so tests never call the real one."""

    def __init__(self) -> None:
        self.intents: dict[str, PaymentIntentRecord] = {}
        self.fail_with: str | None = None
        self._ids = count(1)

    async def create_intent(self, *, amount, currency, metadata):
        await asyncio.sleep(0)
        if self.fail_with:
            raise ExternalServiceError(self.fail_with)
        intent_id = f"pi_test_{next(self._ids)}"
        intent = PaymentIntentRecord(
            id=intent_id,
            client_secret=f"{intent_id}_secret_abc",
            amount=amount,
            currency=currency,
            status="requires_payment_method",
            metadata=metadata,
        )
        self.intents[intent_id] = intent
        return intent

    async def retrieve_intent(self, intent_id):
        await asyncio.sleep(0)
        if intent_id not in self.intents:
            raise ExternalServiceError(f"No such payment_intent: '{intent_id}'")
        return self.intents[intent_id]

    def construct_event(self, payload, signature):
        if signature != VALID_SIGNATURE:
            raise ValidationError("Invalid webhook signature")
        data = json.loads(payload)
        return GatewayEvent(
            id=data["id"],
            type=data["type"],
            payment_intent_id=data.get("payment_intent_id"),
            user_id=data.get("userId"),
        )

    def settle(self, intent_id: str, status: str = "succeeded") -> None:
        self.intents[intent_id] = self.intents[intent_id].model_copy(
            update={"status": status}
        )


def make_token(user_id: str, is_admin: bool = False, **claims) -> str:
    payload = {
        "id": user_id,
        "is_admin": is_admin,
        "exp": datetime.now(UTC) + timedelta(hours=1),
        **claims,
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def auth_headers(user_id: str, is_admin: bool = False) -> dict[str, str]:
    return {"Authorization": f"Bearer {make_token(user_id, is_admin)}"}


def insert_product(database, **fields) -> ObjectId:
    """Insert a product document directly, deriving status like the service."""

    now = datetime.now(UTC)
    quantity = fields.get("quantity", 10)
    document = {
        "title": "Test Product",
        "slug": "test-product",
        "category": "Lighting",
        "brand": "Acme",
        "price": 100.0,
        "quantity": quantity,
        "status": "in_stock" if quantity > 0 else "out_of_stock",
        "tags": [],
        "ratings": [],
        "totalrating": None,
        "color": [],
        "images": [],
        "createdAt": now,
        "updatedAt": now,
        "__v": 0,
    }
    document.update(fields)
    return database["products"].insert_one(document).inserted_id


@pytest.fixture()
def mongo_db():
    """Provide an in-memory MongoDB database for each test."""
    from src.main import app

    database = mongomock.MongoClient(tz_aware=True)["storefront-test"]
    app.dependency_overrides[get_database] = lambda: database
    yield database
    app.dependency_overrides.pop(get_database, None)


@pytest_asyncio.fixture()
async def redis_client():
    """Provide a fake Redis client for each test."""
    from src.main import app

    client = fakeredis.FakeRedis(decode_responses=True)
    app.dependency_overrides[get_redis_client] = lambda: client
    try:
        yield client
    finally:
        await client.flushdb()
        await client.aclose()
        app.dependency_overrides.pop(get_redis_client, None)


@pytest.fixture()
def gateway_stub():
    """Replace the payment gateway with an in-memory stub."""
    from src.main import app

    stub = StubGateway()
    app.dependency_overrides[get_payment_gateway] = lambda: stub
    yield stub
    app.dependency_overrides.pop(get_payment_gateway, None)


@pytest.fixture()
def shopper(mongo_db):
    """A provisioned user and the headers that authenticate as them."""
    user_id = mongo_db["users"].insert_one(
        {"firstname": "Ada", "email": "ada@example.com", "wishlist": []}
    ).inserted_id
    return str(user_id), auth_headers(str(user_id))


@pytest.fixture()
def admin_headers(mongo_db):
    admin_id = mongo_db["users"].insert_one(
        {"firstname": "Root", "email": "admin@example.com", "wishlist": []}
    ).inserted_id
    return auth_headers(str(admin_id), is_admin=True)


@pytest_asyncio.fixture()
async def client(mongo_db, redis_client, gateway_stub):
    """Return an HTTPX async client pointing at the FastAPI app."""
    from src.main import app

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://testserver",
    ) as test_client:
        yield test_client


@pytest.fixture()
def product_factory(mongo_db):
    """Insert products straight into the test database."""

    def _create(**fields) -> ObjectId:
        return insert_product(mongo_db, **fields)

    return _create


@pytest.fixture()
def make_headers():
    """Build bearer headers for arbitrary identities."""
    return auth_headers
