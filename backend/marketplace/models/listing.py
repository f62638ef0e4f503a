"""
Request and response envelopes for product listings.
"""
from dataclasses import dataclass
from typing import List, Optional, Union

from pydantic import Field

from marketplace.models.product import EnrichedProduct, ProfileProduct, Review, Schema, UserRating

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 8
DEFAULT_SORT = "timestamp"
DEFAULT_ORDER = "DESC"

RawParam = Optional[Union[int, float, str]]


@dataclass
class ListingQuery:
    """Raw listing parameters; coercion happens in the pipeline, not here."""
    page: RawParam = DEFAULT_PAGE
    limit: RawParam = DEFAULT_LIMIT
    min_price: RawParam = None
    max_price: RawParam = None
    min_date: RawParam = None
    max_date: RawParam = None
    sort: Optional[str] = DEFAULT_SORT
    order: Optional[str] = DEFAULT_ORDER


class Pagination(Schema):
    current_page: int = Field(alias="currentPage")
    total_pages: int = Field(alias="totalPages")
    total_products: int = Field(alias="totalProducts")


class SearchPagination(Pagination):
    per_page: int = Field(alias="perPage")


class ProductListing(Schema):
    products: List[EnrichedProduct]
    pagination: Pagination


class SearchListing(Schema):
    data: List[EnrichedProduct]
    pagination: SearchPagination


class SellerProfile(Schema):
    avg_user_rating: float = Field(alias="avgUserRating")
    total_ratings: int = Field(alias="totalRatings")
    data: List[ProfileProduct]
    pagination: Pagination


class ProductReviews(Schema):
    avg_rating: float = Field(alias="avgRating")
    total_ratings: int = Field(alias="totalRatings")
    data: List[Review]
    message: Optional[str] = None


class UserRatings(Schema):
    data: List[UserRating]
    message: Optional[str] = None


class Spotlight(Schema):
    """A short showcase list (hot products, a highlighted seller's best products)."""
    status: Optional[str] = None
    message: Optional[str] = None
    user_id: Optional[int] = None
    user_rating: Optional[str] = Field(None, alias="userRating")
    total_ratings: Optional[int] = Field(None, alias="totalRatings")
    data: List[EnrichedProduct] = []
