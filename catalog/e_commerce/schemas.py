# Schemas for the public catalog API: product filters, reviews, cart and wishlist

from pydantic import BaseModel, Field, field_validator
from typing import Optional, Dict, Any, Literal
from datetime import datetime

ProductSort = Literal["name", "price", "date", "stock", "rating"]
ReviewSort = Literal["date", "rating", "helpful"]
SortOrder = Literal["asc", "desc"]


class ProductFilters(BaseModel):
    """Query options accepted by the product listing."""
    page: int = 1
    limit: int = 25
    search: Optional[str] = None
    category: Optional[str] = None
    status: Optional[str] = "active"
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    in_stock: Optional[bool] = None
    featured: Optional[bool] = None
    sort: ProductSort = "name"
    order: SortOrder = "asc"


class ReviewCreate(BaseModel):
    author_name: str = Field(..., alias="authorName", min_length=1, max_length=100)
    rating: int = Field(..., ge=1, le=5)
    title: Optional[str] = Field(None, max_length=200)
    content: str = Field(..., min_length=10, max_length=2000)

    class Config:
        populate_by_name = True

    @field_validator("author_name", "content")
    @classmethod
    def strip_text(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value


class ReviewResponse(BaseModel):
    id: str
    product_id: str
    author_name: str
    author_verified: bool = False
    rating: int
    title: Optional[str] = None
    content: str
    helpful_count: int = 0
    created_at: datetime

    class Config:
        from_attributes = True


class CartItemCreate(BaseModel):
    product_id: str = Field(..., alias="productId", min_length=1)
    quantity: int = Field(1, ge=1)
    variants: Optional[Dict[str, Any]] = None

    class Config:
        populate_by_name = True


class CartItemUpdate(BaseModel):
    # zero or negative removes the line
    quantity: int


class WishlistItemCreate(BaseModel):
    product_id: str = Field(..., alias="productId", min_length=1)

    class Config:
        populate_by_name = True
