"""Schemas used by the recommendation endpoints."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class SimilarProductsRequest(BaseModel):
    """Reference attributes of the product recommendations are built for."""

    model_config = ConfigDict(populate_by_name=True)

    category: str | None = None
    brand: str | None = None
    exclude_id: str | None = Field(None, alias="excludeId")
    tags: list[str] = Field(default_factory=list)
    price: float | None = None


class SimilarProductsResponse(BaseModel):
    """Ranked candidates, each carrying its ``relevanceScore``."""

    success: bool = True
    count: int
    data: list[dict[str, Any]]
