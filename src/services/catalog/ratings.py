"""Per-user product ratings and the aggregate ``totalrating``."""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable
from typing import Annotated, Any

from fastapi import Depends

from src.errors import NotFoundError, ValidationError
from src.services.storage.mongo import to_object_id
from src.services.storage.product_repository import (
    ProductRepository,
    ProductRepositoryDependency,
)

logger = logging.getLogger(__name__)


def aggregate_rating(stars: Iterable[int]) -> int | None:
    """Half-up rounded mean of ``stars``; ``None`` when there are none."""
    values = list(stars)
    if not values:
        return None
    return math.floor(sum(values) / len(values) + 0.5)


class RatingAggregator:
    """Insert or update one user's rating, then recompute the aggregate.

    The read, the rating write and the aggregate write are separate
    operations, so concurrent raters may briefly leave ``totalrating``
    stale until the next submission.
    """

    def __init__(self, repository: ProductRepository) -> None:
        self._repository = repository

    async def rate(
        self,
        *,
        user_id: str,
        product_id: str,
        star: int,
        comment: str | None = None,
    ) -> dict[str, Any]:
        if not 1 <= star <= 5:
            raise ValidationError("Star rating must be between 1 and 5")

        product_oid = to_object_id(product_id, "product id")
        user_oid = to_object_id(user_id, "user id")

        product = await self._repository.get(product_oid, {"ratings": 1})
        if product is None:
            raise NotFoundError(f"Product with ID {product_id} not found")

        already_rated = any(
            entry.get("postedby") == user_oid for entry in product.get("ratings") or []
        )
        if already_rated:
            # The positional update touches the first matching entry only.
            applied = await self._repository.update_rating(
                product_oid, user_oid, star, comment
            )
        else:
            applied = await self._repository.push_rating(
                product_oid,
                {"star": star, "comment": comment, "postedby": user_oid},
            )
        if not applied:
            raise NotFoundError(f"Product with ID {product_id} not found")

        refreshed = await self._repository.get(product_oid, {"ratings": 1})
        if refreshed is None:
            raise NotFoundError(f"Product with ID {product_id} not found")

        total = aggregate_rating(entry["star"] for entry in refreshed.get("ratings") or [])
        updated = await self._repository.set_total_rating(product_oid, total)
        if updated is None:
            raise NotFoundError(f"Product with ID {product_id} not found")

        logger.info(
            "Recorded rating for product %s",
            product_id,
            extra={
                "user_id": user_id,
                "star": star,
                "updated_existing": already_rated,
                "totalrating": total,
            },
        )
        updated.pop("__v", None)
        return updated


def get_rating_aggregator(repository: ProductRepositoryDependency) -> RatingAggregator:
    return RatingAggregator(repository)


RatingAggregatorDependency = Annotated[RatingAggregator, Depends(get_rating_aggregator)]
