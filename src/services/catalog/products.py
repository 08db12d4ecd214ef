"""Administrative product lifecycle and catalog listing."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Annotated, Any

from fastapi import Depends
from slugify import slugify

from src.errors import NotFoundError, ValidationError
from src.models.product import ProductCreate, ProductUpdate, StockStatus
from src.services.catalog.query_builder import ProductQuery
from src.services.storage.mongo import to_object_id
from src.services.storage.product_repository import (
    ProductRepository,
    ProductRepositoryDependency,
)

logger = logging.getLogger(__name__)


class ProductService:
    """Create, update, delete and read products."""

    def __init__(self, repository: ProductRepository) -> None:
        self._repository = repository

    async def create(self, payload: ProductCreate) -> dict[str, Any]:
        _check_quantity(payload.quantity)

        now = datetime.now(UTC)
        document = payload.model_dump()
        document.update(
            slug=slugify(payload.title),
            status=StockStatus.for_quantity(payload.quantity).value,
            color=[to_object_id(c, "color id") for c in payload.color],
            tags=_unique(payload.tags),
            ratings=[],
            totalrating=None,
            createdAt=now,
            updatedAt=now,
        )
        document["__v"] = 0

        created = await self._repository.insert(document)
        logger.info(
            "Created product %s",
            created["_id"],
            extra={"slug": document["slug"], "quantity": payload.quantity},
        )
        return created

    async def update(self, product_id: str, payload: ProductUpdate) -> dict[str, Any]:
        oid = to_object_id(product_id, "product id")
        fields = payload.model_dump(exclude_unset=True)
        if not fields:
            raise ValidationError("No fields supplied for update")

        if fields.get("title") is not None:
            fields["slug"] = slugify(fields["title"])
        if "quantity" in fields:
            quantity = fields["quantity"]
            if quantity is None:
                raise ValidationError("Product quantity cannot be null")
            _check_quantity(quantity)
            fields["status"] = StockStatus.for_quantity(quantity).value
        if fields.get("color") is not None:
            fields["color"] = [to_object_id(c, "color id") for c in fields["color"]]
        if fields.get("tags") is not None:
            fields["tags"] = _unique(fields["tags"])

        updated = await self._repository.update_fields(oid, fields)
        if updated is None:
            raise NotFoundError(f"Product with ID {product_id} not found")
        logger.info("Updated product %s", product_id, extra={"fields": sorted(fields)})
        return updated

    async def delete(self, product_id: str) -> dict[str, Any]:
        oid = to_object_id(product_id, "product id")
        deleted = await self._repository.delete(oid)
        if deleted is None:
            raise NotFoundError(f"Product with ID {product_id} not found")
        logger.info("Deleted product %s", product_id)
        return deleted

    async def get(self, product_id: str) -> dict[str, Any]:
        """Return one product with its color references populated."""

        oid = to_object_id(product_id, "product id")
        product = await self._repository.get(oid, {"__v": 0})
        if product is None:
            raise NotFoundError(f"Product with ID {product_id} not found")

        color_ids = product.get("color") or []
        colors = await self._repository.find_colors(color_ids)
        by_id = {color["_id"]: color for color in colors}
        product["color"] = [by_id[cid] for cid in color_ids if cid in by_id]
        return product

    async def list_products(self, query: ProductQuery) -> list[dict[str, Any]]:
        return await fetch_page(self._repository, query)


async def fetch_page(
    repository: ProductRepository,
    query: ProductQuery,
) -> list[dict[str, Any]]:
    """Run ``query``, rejecting a requested page that lies past the results."""

    if query.page_requested:
        total = await repository.count(query.to_filter())
        if query.skip >= total:
            raise NotFoundError("This page does not exist")
    return await repository.find(query)


def _check_quantity(quantity: int) -> None:
    if quantity < 0:
        raise ValidationError("Product quantity cannot be negative")


def _unique(values: list[str]) -> list[str]:
    return list(dict.fromkeys(values))


def get_product_service(repository: ProductRepositoryDependency) -> ProductService:
    return ProductService(repository)


ProductServiceDependency = Annotated[ProductService, Depends(get_product_service)]
