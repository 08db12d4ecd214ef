"""MongoDB persistence for the user fields this service mutates."""

from __future__ import annotations

import asyncio
import logging
from typing import Annotated, Any

from bson import ObjectId
from fastapi import Depends
from pymongo import ReturnDocument
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import PyMongoError

from src.errors import InternalError
from src.services.storage.mongo import DatabaseDependency

logger = logging.getLogger(__name__)

USERS_COLLECTION = "users"


class UserRepository:
    """Wishlist operations on the users collection."""

    def __init__(self, database: Database) -> None:
        self._users: Collection = database[USERS_COLLECTION]

    async def pull_from_wishlist(
        self,
        user_id: ObjectId,
        product_id: ObjectId,
    ) -> dict[str, Any] | None:
        """Remove the product only when it is present; ``None`` otherwise."""

        return await self._find_one_and_update(
            {"_id": user_id, "wishlist": product_id},
            {"$pull": {"wishlist": product_id}},
        )

    async def add_to_wishlist(
        self,
        user_id: ObjectId,
        product_id: ObjectId,
    ) -> dict[str, Any] | None:
        return await self._find_one_and_update(
            {"_id": user_id},
            {"$addToSet": {"wishlist": product_id}},
        )

    async def _find_one_and_update(
        self,
        filter_doc: dict[str, Any],
        update: dict[str, Any],
    ) -> dict[str, Any] | None:
        try:
            return await asyncio.to_thread(
                self._users.find_one_and_update,
                filter_doc,
                update,
                projection={"password": 0, "__v": 0},
                return_document=ReturnDocument.AFTER,
            )
        except PyMongoError as exc:
            logger.exception("User store operation failed")
            raise InternalError(f"User store failure: {exc}") from exc


def get_user_repository(database: DatabaseDependency) -> UserRepository:
    """FastAPI dependency factory."""

    return UserRepository(database)


UserRepositoryDependency = Annotated[UserRepository, Depends(get_user_repository)]
