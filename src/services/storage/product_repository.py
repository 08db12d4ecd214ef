"""MongoDB persistence for products and their color references."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Annotated, Any, TypeVar

from bson import ObjectId
from fastapi import Depends
from pymongo import ASCENDING, ReturnDocument
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError, PyMongoError

from src.errors import ConflictError, InternalError
from src.models.product import StockStatus
from src.services.catalog.query_builder import ProductQuery
from src.services.storage.mongo import DatabaseDependency

logger = logging.getLogger(__name__)

T = TypeVar("T")

PRODUCTS_COLLECTION = "products"
COLORS_COLLECTION = "colors"


class ProductRepository:
    """Thin async facade over the products collection.

    Every write that touches stock or ratings is a single-document atomic
    update; there are no multi-document transactions.
    """

    def __init__(self, database: Database) -> None:
        self._products: Collection = database[PRODUCTS_COLLECTION]
        self._colors: Collection = database[COLORS_COLLECTION]

    async def ensure_indexes(self) -> None:
        await self._run(self._products.create_index, "slug", unique=True)
        await self._run(self._products.create_index, [("category", ASCENDING)])
        logger.info("Ensured product collection indexes")

    async def insert(self, document: dict[str, Any]) -> dict[str, Any]:
        result = await self._run(self._products.insert_one, document)
        return {**document, "_id": result.inserted_id}

    async def get(
        self,
        product_id: ObjectId,
        projection: dict[str, int] | None = None,
    ) -> dict[str, Any] | None:
        return await self._run(self._products.find_one, {"_id": product_id}, projection)

    async def exists(self, product_id: ObjectId) -> bool:
        found = await self._run(
            self._products.find_one, {"_id": product_id}, {"_id": 1}
        )
        return found is not None

    async def find(self, query: ProductQuery) -> list[dict[str, Any]]:
        def _execute() -> list[dict[str, Any]]:
            cursor = self._products.find(query.to_filter(), query.projection)
            if query.sort:
                cursor = cursor.sort(query.sort)
            if query.limit is not None:
                cursor = cursor.skip(query.skip).limit(query.limit)
            return list(cursor)

        return await self._run(_execute)

    async def find_candidates(
        self,
        filter_doc: dict[str, Any],
        limit: int,
    ) -> list[dict[str, Any]]:
        """Fetch candidates in ascending ``_id`` (insertion) order."""

        def _execute() -> list[dict[str, Any]]:
            cursor = (
                self._products.find(filter_doc, {"__v": 0})
                .sort([("_id", ASCENDING)])
                .limit(limit)
            )
            return list(cursor)

        return await self._run(_execute)

    async def count(self, filter_doc: dict[str, Any]) -> int:
        return await self._run(self._products.count_documents, filter_doc)

    async def update_fields(
        self,
        product_id: ObjectId,
        fields: dict[str, Any],
    ) -> dict[str, Any] | None:
        fields = {**fields, "updatedAt": _now()}
        return await self._run(
            self._products.find_one_and_update,
            {"_id": product_id},
            {"$set": fields, "$inc": {"__v": 1}},
            return_document=ReturnDocument.AFTER,
        )

    async def delete(self, product_id: ObjectId) -> dict[str, Any] | None:
        return await self._run(self._products.find_one_and_delete, {"_id": product_id})

    async def find_colors(self, color_ids: list[ObjectId]) -> list[dict[str, Any]]:
        if not color_ids:
            return []

        def _execute() -> list[dict[str, Any]]:
            return list(self._colors.find({"_id": {"$in": color_ids}}))

        return await self._run(_execute)

    async def push_rating(self, product_id: ObjectId, rating: dict[str, Any]) -> bool:
        result = await self._run(
            self._products.update_one,
            {"_id": product_id},
            {"$push": {"ratings": rating}},
        )
        return result.matched_count > 0

    async def update_rating(
        self,
        product_id: ObjectId,
        user_id: ObjectId,
        star: int,
        comment: str | None,
    ) -> bool:
        """Overwrite the first rating posted by ``user_id`` on the product."""

        result = await self._run(
            self._products.update_one,
            {"_id": product_id, "ratings.postedby": user_id},
            {"$set": {"ratings.$.star": star, "ratings.$.comment": comment}},
        )
        return result.matched_count > 0

    async def set_total_rating(
        self,
        product_id: ObjectId,
        total_rating: int | None,
    ) -> dict[str, Any] | None:
        return await self._run(
            self._products.find_one_and_update,
            {"_id": product_id},
            {"$set": {"totalrating": total_rating}},
            return_document=ReturnDocument.AFTER,
        )

    async def decrement_stock(
        self,
        product_id: ObjectId,
        amount: int,
    ) -> dict[str, Any] | None:
        """Atomically remove ``amount`` units when at least that many remain.

        Returns the updated document, or ``None`` when the product is missing
        or holds fewer than ``amount`` units.
        """

        return await self._run(
            self._products.find_one_and_update,
            {"_id": product_id, "quantity": {"$gte": amount}},
            {"$inc": {"quantity": -amount}, "$set": {"updatedAt": _now()}},
            return_document=ReturnDocument.AFTER,
        )

    async def sync_stock_status(
        self,
        product_id: ObjectId,
        quantity: int,
    ) -> dict[str, Any] | None:
        """Write the status matching ``quantity`` if the quantity is unchanged."""

        return await self._run(
            self._products.find_one_and_update,
            {"_id": product_id, "quantity": quantity},
            {"$set": {"status": StockStatus.for_quantity(quantity).value}},
            return_document=ReturnDocument.AFTER,
        )

    async def _run(self, func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        try:
            return await asyncio.to_thread(func, *args, **kwargs)
        except DuplicateKeyError as exc:
            raise ConflictError("A product with this slug already exists") from exc
        except PyMongoError as exc:
            logger.exception("Product store operation failed")
            raise InternalError(f"Product store failure: {exc}") from exc


def _now() -> datetime:
    return datetime.now(UTC)


def get_product_repository(database: DatabaseDependency) -> ProductRepository:
    """FastAPI dependency factory."""

    return ProductRepository(database)


ProductRepositoryDependency = Annotated[
    ProductRepository, Depends(get_product_repository)
]
