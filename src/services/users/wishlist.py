"""Wishlist toggling for authenticated shoppers."""

from __future__ import annotations

import logging
from typing import Annotated, Any

from fastapi import Depends

from src.errors import NotFoundError
from src.services.storage.mongo import to_object_id
from src.services.storage.user_repository import (
    UserRepository,
    UserRepositoryDependency,
)

logger = logging.getLogger(__name__)


class WishlistService:
    def __init__(self, repository: UserRepository) -> None:
        self._repository = repository

    async def toggle(self, user_id: str, product_id: str) -> dict[str, Any]:
        """Remove ``product_id`` when wishlisted, add it otherwise."""

        user_oid = to_object_id(user_id, "user id")
        product_oid = to_object_id(product_id, "product id")

        user = await self._repository.pull_from_wishlist(user_oid, product_oid)
        action = "removed"
        if user is None:
            user = await self._repository.add_to_wishlist(user_oid, product_oid)
            action = "added"
        if user is None:
            raise NotFoundError(f"User with ID {user_id} not found")

        logger.info(
            "Wishlist %s product %s",
            action,
            product_id,
            extra={"user_id": user_id, "wishlist_size": len(user.get("wishlist", []))},
        )
        return user


def get_wishlist_service(repository: UserRepositoryDependency) -> WishlistService:
    return WishlistService(repository)


WishlistServiceDependency = Annotated[WishlistService, Depends(get_wishlist_service)]
