"""Product domain models and API schemas."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field


class StockStatus(StrEnum):
    """Availability flag derived from a product's quantity."""

    IN_STOCK = "in_stock"
    OUT_OF_STOCK = "out_of_stock"

    @classmethod
    def for_quantity(cls, quantity: int) -> StockStatus:
        return cls.IN_STOCK if quantity > 0 else cls.OUT_OF_STOCK


class ProductImage(BaseModel):
    """Image reference stored alongside a product."""

    public_id: str | None = None
    url: str


class ProductCreate(BaseModel):
    """Payload sent by an administrator to create a product."""

    title: str = Field(..., min_length=1, description="Display title of the product")
    description: str | None = None
    category: str = Field(..., min_length=1)
    brand: str | None = None
    price: float = Field(..., ge=0)
    quantity: int = Field(0, description="Units in stock, must not be negative")
    tags: list[str] = Field(default_factory=list)
    color: list[str] = Field(
        default_factory=list,
        description="Identifiers of documents in the colors collection",
    )
    images: list[ProductImage] = Field(default_factory=list)


class ProductUpdate(BaseModel):
    """Partial update sent by an administrator. Status is always derived."""

    title: str | None = Field(None, min_length=1)
    description: str | None = None
    category: str | None = Field(None, min_length=1)
    brand: str | None = None
    price: float | None = Field(None, ge=0)
    quantity: int | None = None
    tags: list[str] | None = None
    color: list[str] | None = None
    images: list[ProductImage] | None = None


class RatingRequest(BaseModel):
    """A shopper's star rating for a product."""

    model_config = ConfigDict(populate_by_name=True)

    product_id: str = Field(..., alias="prodId")
    star: int = Field(..., ge=1, le=5)
    comment: str | None = None


class WishlistRequest(BaseModel):
    """Toggle a product in the caller's wishlist."""

    model_config = ConfigDict(populate_by_name=True)

    product_id: str = Field(..., alias="prodId")
