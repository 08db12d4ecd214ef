"""Redis-backed persistence for payment settlement records."""

from __future__ import annotations

import json
from datetime import UTC, datetime
from typing import Annotated

import redis.asyncio as redis
from fastapi import Depends

from src.config import settings
from src.models.payment import SettlementRecord

_redis_client: redis.Redis | None = None


def get_redis_client() -> redis.Redis:
    """Return a singleton Redis client for the current process."""

    global _redis_client
    if _redis_client is None:
        _redis_client = redis.from_url(
            settings.REDIS_URL,
            encoding="utf-8",
            decode_responses=True,
        )
    return _redis_client


class SettlementStore:
    """Records what signed gateway events said about each payment intent."""

    def __init__(self, client: redis.Redis):
        self._client = client
        self._prefix = settings.PAYMENT_EVENT_KEY_PREFIX
        self._ttl = settings.PAYMENT_EVENT_TTL_SECONDS

    def _key(self, intent_id: str) -> str:
        return f"{self._prefix}{intent_id}"

    def _fulfilled_key(self, intent_id: str) -> str:
        return f"{self._prefix}{intent_id}:fulfilled"

    async def record(
        self,
        intent_id: str,
        status: str,
        event_id: str,
        user_id: str | None = None,
    ) -> SettlementRecord:
        record = SettlementRecord(
            payment_intent_id=intent_id,
            status=status,
            event_id=event_id,
            received_at=self._timestamp(),
            user_id=user_id,
        )
        await self._client.set(
            self._key(intent_id), json.dumps(record.model_dump()), ex=self._ttl
        )
        return record

    async def fetch(self, intent_id: str) -> SettlementRecord | None:
        raw = await self._client.get(self._key(intent_id))
        if not raw:
            return None
        return SettlementRecord(**json.loads(raw))

    async def claim_fulfillment(self, intent_id: str) -> bool:
        """Mark the intent as fulfilled; False when it already was."""

        claimed = await self._client.set(
            self._fulfilled_key(intent_id), self._timestamp(), nx=True, ex=self._ttl
        )
        return bool(claimed)

    async def release_fulfillment(self, intent_id: str) -> None:
        await self._client.delete(self._fulfilled_key(intent_id))

    @staticmethod
    def _timestamp() -> str:
        return datetime.now(UTC).isoformat()


RedisDependency = Annotated[redis.Redis, Depends(get_redis_client)]


def get_settlement_store(client: RedisDependency) -> SettlementStore:
    return SettlementStore(client)


SettlementStoreDependency = Annotated[SettlementStore, Depends(get_settlement_store)]
