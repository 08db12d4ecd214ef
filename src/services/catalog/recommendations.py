"""Product recommendations: category listings and weighted similarity."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from typing import Annotated, Any

from fastapi import Depends

from src.config import settings
from src.errors import ValidationError
from src.models.recommendation import SimilarProductsRequest
from src.services.catalog.products import fetch_page
from src.services.catalog.query_builder import (
    Equals,
    FilterExpression,
    NotEquals,
    compile_filters,
    parse_controls,
)
from src.services.storage.mongo import to_object_id
from src.services.storage.product_repository import (
    ProductRepository,
    ProductRepositoryDependency,
)

logger = logging.getLogger(__name__)

TAG_WEIGHT = 0.5
BRAND_WEIGHT = 1.0
PRICE_WEIGHT = 1.0
RATING_WEIGHT = 0.5
PRICE_TOLERANCE = 0.20
RATING_THRESHOLD = 4


def score_candidate(
    candidate: Mapping[str, Any],
    *,
    tags: Iterable[str] = (),
    brand: str | None = None,
    price: float | None = None,
) -> float:
    """Relevance of ``candidate`` to the reference attributes."""
    score = TAG_WEIGHT * len(set(tags) & set(candidate.get("tags") or []))

    if brand is not None and candidate.get("brand") == brand:
        score += BRAND_WEIGHT

    candidate_price = candidate.get("price")
    if price and price > 0 and candidate_price is not None:
        if abs(candidate_price - price) / price <= PRICE_TOLERANCE:
            score += PRICE_WEIGHT

    total_rating = candidate.get("totalrating")
    if total_rating is not None and total_rating >= RATING_THRESHOLD:
        score += RATING_WEIGHT

    return score


def rank_candidates(
    candidates: Sequence[Mapping[str, Any]],
    *,
    tags: Iterable[str] = (),
    brand: str | None = None,
    price: float | None = None,
    limit: int = 8,
) -> list[dict[str, Any]]:
    """Score, sort descending and truncate.

    ``sorted`` is stable, so candidates with equal scores keep fetch order.
    """
    tag_set = set(tags)
    scored = [
        {
            **candidate,
            "relevanceScore": score_candidate(
                candidate, tags=tag_set, brand=brand, price=price
            ),
        }
        for candidate in candidates
    ]
    scored = sorted(scored, key=lambda item: item["relevanceScore"], reverse=True)
    return scored[:limit]


class RecommendationService:
    """Both recommendation entry points share the product repository."""

    def __init__(self, repository: ProductRepository) -> None:
        self._repository = repository

    async def by_category(
        self,
        params: Mapping[str, str | Sequence[str]],
    ) -> list[dict[str, Any]]:
        """Flat, unscored list of products sharing a category."""

        category = _text(params, "category")
        if not category:
            raise ValidationError("Missing required parameter: category")

        filters: list[FilterExpression] = [Equals("category", category)]
        brand = _text(params, "brand")
        if brand:
            filters.append(Equals("brand", brand))
        exclude_id = _text(params, "excludeId")
        if exclude_id:
            filters.append(NotEquals("_id", to_object_id(exclude_id, "excludeId")))

        query = parse_controls(
            params,
            default_limit=settings.CATALOG_PAGE_LIMIT,
            default_page=1,
        )
        query.filters = filters
        return await fetch_page(self._repository, query)

    async def similar(self, request: SimilarProductsRequest) -> list[dict[str, Any]]:
        """Rank same-category candidates by weighted similarity."""

        if not request.category or not request.exclude_id:
            raise ValidationError(
                "Missing required parameters: category and excludeId are required"
            )

        filter_doc = compile_filters(
            [
                NotEquals("_id", to_object_id(request.exclude_id, "excludeId")),
                Equals("category", request.category),
            ]
        )
        candidates = await self._repository.find_candidates(
            filter_doc, settings.RECOMMENDATION_CANDIDATE_LIMIT
        )
        ranked = rank_candidates(
            candidates,
            tags=request.tags,
            brand=request.brand,
            price=request.price,
            limit=settings.RECOMMENDATION_RESULT_LIMIT,
        )

        logger.info(
            "Ranked recommendations",
            extra={
                "category": request.category,
                "candidates": len(candidates),
                "returned": len(ranked),
            },
        )
        return ranked


def _text(params: Mapping[str, str | Sequence[str]], key: str) -> str | None:
    raw = params.get(key)
    if raw is None or isinstance(raw, str):
        return raw
    return raw[-1] if raw else None


def get_recommendation_service(
    repository: ProductRepositoryDependency,
) -> RecommendationService:
    return RecommendationService(repository)


RecommendationServiceDependency = Annotated[
    RecommendationService, Depends(get_recommendation_service)
]
