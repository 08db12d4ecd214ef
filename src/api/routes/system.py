"""System-level routes such as health checks."""

from __future__ import annotations

import asyncio

from fastapi import APIRouter

from src.config import settings
from src.services.payments.event_store import RedisDependency
from src.services.storage.mongo import DatabaseDependency

router = APIRouter(tags=["system"])


@router.get("/")
async def read_root() -> dict[str, str]:
    """Hello World endpoint used by smoke tests."""

    return {"message": "Storefront API running"}


@router.get("/health")
async def health_check(
    database: DatabaseDependency,
    redis_client: RedisDependency,
) -> dict[str, str]:
    """Health check endpoint with document store and Redis connectivity."""

    try:
        await asyncio.to_thread(database.command, "ping")
        database_status = "connected"
    except Exception:
        database_status = "disconnected"

    try:
        await redis_client.ping()
        redis_status = "connected"
    except Exception:
        redis_status = "disconnected"

    return {
        "status": "healthy",
        "database": database_status,
        "redis": redis_status,
        "payments": "configured" if settings.payments_enabled else "disabled",
        "environment": settings.ENVIRONMENT,
    }
