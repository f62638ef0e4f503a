"""
Pydantic models for products as they leave the API.
"""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class Schema(BaseModel):
    """Base for response models: camelCase aliases on the wire, snake_case in Python."""
    model_config = ConfigDict(populate_by_name=True)


class SellerInfo(Schema):
    id: int
    username: str
    contacts: Optional[str] = None


class Review(Schema):
    """A rating that carries a written comment."""
    id: int
    username: str
    comment: str
    stars: int
    timestamp: Optional[datetime] = None


class ProductOut(Schema):
    id: int
    user_id: int
    category_id: int
    subcategory_id: Optional[int] = None
    name: str
    price: float
    description: str = ""
    amount_in_stock: int = 0
    image_url: Optional[str] = None
    created_at: Optional[datetime] = None
    # Sort/filter key for "date"; mirrors created_at.
    timestamp: Optional[datetime] = None

    @classmethod
    def fields_of(cls, product) -> dict:
        """Copy the persisted product columns off an ORM row."""
        return {
            "id": product.id,
            "user_id": product.user_id,
            "category_id": product.category_id,
            "subcategory_id": product.subcategory_id,
            "name": product.name,
            "price": float(product.price) if product.price is not None else 0.0,
            "description": product.description or "",
            "amount_in_stock": product.amount_in_stock or 0,
            "image_url": product.image_url,
            "created_at": product.created_at,
            "timestamp": product.created_at,
        }


class EnrichedProduct(ProductOut):
    """Product plus its rating aggregate, computed at read time."""
    rating_count: int = Field(0, alias="ratingCount", ge=0)
    avg_rating: float = Field(0.0, alias="avgRating", ge=0, le=5)


class ProfileProduct(EnrichedProduct):
    comments: List[Review] = []
    user_data: Optional[SellerInfo] = Field(None, alias="userData")


class ProductDetail(EnrichedProduct):
    seller: Optional[SellerInfo] = None


class RatedProduct(ProductOut):
    """A product seen through one user's rating of it."""
    user_rating: int = Field(alias="userRating")
    user_comment: Optional[str] = Field(None, alias="userComment")


class UserRating(Schema):
    """One of a user's own ratings, as stored."""
    id: int
    user_id: int
    product_id: int
    stars: int
    comment: Optional[str] = None
    created_at: Optional[datetime] = None
