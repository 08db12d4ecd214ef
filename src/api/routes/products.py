"""Routes for the product catalog, ratings, wishlists and recommendations."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Request

from src.api.auth import AdminDependency, IdentityDependency
from src.config import settings
from src.models.product import (
    ProductCreate,
    ProductUpdate,
    RatingRequest,
    WishlistRequest,
)
from src.models.recommendation import SimilarProductsRequest, SimilarProductsResponse
from src.services.catalog.products import ProductServiceDependency
from src.services.catalog.query_builder import build_product_query
from src.services.catalog.ratings import RatingAggregatorDependency
from src.services.catalog.recommendations import RecommendationServiceDependency
from src.services.storage.mongo import serialize_doc
from src.services.users.wishlist import WishlistServiceDependency

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/products", tags=["products"])


def _query_params(request: Request) -> dict[str, list[str]]:
    params = request.query_params
    return {key: params.getlist(key) for key in params.keys()}


@router.post(
    "/recommendations",
    summary="List products from the same category",
)
async def list_category_recommendations(
    request: Request,
    recommendations: RecommendationServiceDependency,
) -> list[dict[str, Any]]:
    """Flat category listing driven by ``category``, ``brand`` and ``excludeId``."""

    products = await recommendations.by_category(_query_params(request))
    return [serialize_doc(product) for product in products]


@router.post(
    "/recommendations/similar",
    response_model=SimilarProductsResponse,
    summary="Rank products by similarity to a reference product",
)
async def list_similar_products(
    payload: SimilarProductsRequest,
    recommendations: RecommendationServiceDependency,
) -> SimilarProductsResponse:
    ranked = await recommendations.similar(payload)
    return SimilarProductsResponse(
        count=len(ranked),
        data=[serialize_doc(product) for product in ranked],
    )


@router.post("", summary="Create a product")
async def create_product(
    payload: ProductCreate,
    products: ProductServiceDependency,
    admin: AdminDependency,
) -> dict[str, Any]:
    logger.debug("Product creation requested by %s", admin.user_id)
    return serialize_doc(await products.create(payload))


@router.get("", summary="List products with filtering, sorting and pagination")
async def list_products(
    request: Request,
    products: ProductServiceDependency,
) -> list[dict[str, Any]]:
    query = build_product_query(
        _query_params(request), default_limit=settings.CATALOG_PAGE_LIMIT
    )
    return [serialize_doc(product) for product in await products.list_products(query)]


@router.put("/wishlist", summary="Toggle a product in the caller's wishlist")
async def toggle_wishlist(
    payload: WishlistRequest,
    wishlist: WishlistServiceDependency,
    identity: IdentityDependency,
) -> dict[str, Any]:
    user = await wishlist.toggle(identity.user_id, payload.product_id)
    return serialize_doc(user)


@router.put("/rating", summary="Submit or update the caller's rating")
async def rate_product(
    payload: RatingRequest,
    ratings: RatingAggregatorDependency,
    identity: IdentityDependency,
) -> dict[str, Any]:
    product = await ratings.rate(
        user_id=identity.user_id,
        product_id=payload.product_id,
        star=payload.star,
        comment=payload.comment,
    )
    return serialize_doc(product)


@router.get("/{product_id}", summary="Fetch a product with its colors populated")
async def get_product(
    product_id: str,
    products: ProductServiceDependency,
) -> dict[str, Any]:
    return serialize_doc(await products.get(product_id))


@router.put("/{product_id}", summary="Update a product")
async def update_product(
    product_id: str,
    payload: ProductUpdate,
    products: ProductServiceDependency,
    admin: AdminDependency,
) -> dict[str, Any]:
    return serialize_doc(await products.update(product_id, payload))


@router.delete("/{product_id}", summary="Delete a product")
async def delete_product(
    product_id: str,
    products: ProductServiceDependency,
    admin: AdminDependency,
) -> dict[str, Any]:
    return serialize_doc(await products.delete(product_id))
