"""
Product listing pipeline.

Every listing endpoint runs the same single pass:

    LOAD → ENRICH → FILTER(price) → FILTER(date) → SORT → PAGINATE → RESPOND

The filter, sort and paginate steps are plain functions over enriched
products; ListingService wires them to the catalog store for each call site
(global listing, seller listing, name search, seller profile) plus the
smaller read endpoints that reuse the aggregation step.
"""
import asyncio
import logging
import math
import re
import sys
import unicodedata
from datetime import date, datetime, timezone
from typing import List, NamedTuple, Optional, Sequence

from marketplace.models.listing import (
    DEFAULT_LIMIT,
    DEFAULT_PAGE,
    ListingQuery,
    Pagination,
    ProductListing,
    ProductReviews,
    SearchListing,
    SearchPagination,
    SellerProfile,
    Spotlight,
    UserRatings,
)
from marketplace.models.product import (
    EnrichedProduct,
    ProductDetail,
    ProfileProduct,
    RatedProduct,
    SellerInfo,
    UserRating,
)
from marketplace.services import ratings as rating_agg
from marketplace.services.catalog import CatalogStore

log = logging.getLogger("listing")

SORT_FIELDS = ("timestamp", "price", "name", "avgRating")
RANGE_FIELDS = ("price", "date")

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_LEADING_INT = re.compile(r"\s*([+-]?\d+)")
_LEADING_FLOAT = re.compile(r"\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?|[+-]?Infinity)")


class NotFound(Exception):
    """The requested seller, user or product does not exist."""


class EmptySearch(Exception):
    """A name search produced no products on its first page."""

    def __init__(self, listing: SearchListing):
        super().__init__("No products found")
        self.listing = listing


# ── Range Filter ──

def _is_absent(bound) -> bool:
    return bound is None or bound == ""


def _to_float(value) -> float:
    """Numbers pass through; strings yield their leading decimal prefix or NaN."""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    if not isinstance(value, str):
        return math.nan
    match = _LEADING_FLOAT.match(value)
    return float(match.group(1)) if match else math.nan


def _to_millis(value) -> float:
    """Milliseconds since the epoch; naive datetimes and dates are read as UTC."""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return math.nan
    if isinstance(value, date) and not isinstance(value, datetime):
        value = datetime(value.year, value.month, value.day)
    if not isinstance(value, datetime):
        return math.nan
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.timestamp() * 1000


def filter_by_range(
    min_value,
    max_value,
    items: Sequence[EnrichedProduct],
    field: str = "price",
    limit: Optional[int] = None,
    offset: Optional[int] = None,
) -> List[EnrichedProduct]:
    """Keep items whose field lies within [min_value, max_value], both inclusive.

    An absent bound leaves that side open. A bound that does not parse is NaN
    and NaN never satisfies a comparison, so a malformed bound keeps nothing.
    The limit/offset slice is applied only when both are given.
    """
    if field not in RANGE_FIELDS:
        raise ValueError(f"Unsupported range field: {field!r}")

    if field == "date":
        parse, read = _to_millis, (lambda item: item.timestamp)
    else:
        parse, read = _to_float, (lambda item: item.price)

    low = None if _is_absent(min_value) else parse(min_value)
    high = None if _is_absent(max_value) else parse(max_value)

    kept = []
    for item in items:
        value = parse(read(item))
        if low is not None and not value >= low:
            continue
        if high is not None and not value <= high:
            continue
        kept.append(item)

    if limit is not None and offset is not None:
        return kept[offset:offset + limit]
    return kept


# ── Sort Resolver ──

def _name_key(item: EnrichedProduct):
    name = item.name or ""
    folded = unicodedata.normalize("NFKD", name)
    base = "".join(ch for ch in folded if not unicodedata.combining(ch)).casefold()
    return (base, name.casefold(), name)


def _timestamp_key(item: EnrichedProduct) -> float:
    return _to_millis(item.timestamp or _EPOCH)


def _price_key(item: EnrichedProduct) -> float:
    price = _to_float(item.price if item.price is not None else 0)
    return 0.0 if math.isnan(price) else price


_SORT_KEYS = {
    "timestamp": _timestamp_key,
    "price": _price_key,
    "name": _name_key,
    "avgRating": lambda item: item.avg_rating,
}


def resolve_sort(field: Optional[str], order: Optional[str]) -> tuple:
    """Validated (field, direction); unknown fields fall back to timestamp, anything but DESC is ASC."""
    field = field if field in SORT_FIELDS else "timestamp"
    direction = "DESC" if isinstance(order, str) and order.upper() == "DESC" else "ASC"
    return field, direction


def sort_items(items: Sequence[EnrichedProduct], field: Optional[str], order: Optional[str]) -> List[EnrichedProduct]:
    """Return a new, stably sorted list; equal keys keep their input order."""
    field, direction = resolve_sort(field, order)
    return sorted(items, key=_SORT_KEYS[field], reverse=direction == "DESC")


# ── Pagination Slicer ──

class Page(NamedTuple):
    items: List[EnrichedProduct]
    current_page: int
    total_pages: int
    total_products: int

    def pagination(self) -> Pagination:
        return Pagination(
            current_page=self.current_page,
            total_pages=self.total_pages,
            total_products=self.total_products,
        )


def coerce_positive(value) -> int:
    """Parse the leading integer of value, floored at 1 and capped at sys.maxsize.

    Unparseable input is 1. Digit strings too long for int() count as sys.maxsize.
    """
    if isinstance(value, bool):
        number = None
    elif isinstance(value, int):
        number = value
    elif isinstance(value, float):
        number = None if math.isnan(value) or math.isinf(value) else int(value)
    elif isinstance(value, str):
        match = _LEADING_INT.match(value)
        try:
            number = int(match.group(1)) if match else None
        except ValueError:
            number = -sys.maxsize if match.group(1).startswith("-") else sys.maxsize
    else:
        number = None
    if not number:
        return 1
    return min(max(number, 1), sys.maxsize)


def paginate(items: Sequence[EnrichedProduct], page=DEFAULT_PAGE, limit=DEFAULT_LIMIT) -> Page:
    page = coerce_positive(page)
    limit = coerce_positive(limit)
    offset = (page - 1) * limit
    total = len(items)
    return Page(
        items=list(items[offset:offset + limit]),
        current_page=page,
        total_pages=math.ceil(total / limit),
        total_products=total,
    )


def run_pipeline(products: Sequence[EnrichedProduct], query: ListingQuery) -> Page:
    """FILTER(price) → FILTER(date) → SORT → PAGINATE over enriched products."""
    selected = list(products)
    if not _is_absent(query.min_price) or not _is_absent(query.max_price):
        selected = filter_by_range(query.min_price, query.max_price, selected, "price")
    if not _is_absent(query.min_date) or not _is_absent(query.max_date):
        selected = filter_by_range(query.min_date, query.max_date, selected, "date")
    selected = sort_items(selected, query.sort, query.order)
    return paginate(selected, query.page, query.limit)


# ── Listing Orchestrator ──

class ListingService:
    """Runs the listing pipeline against an injected catalog store."""

    def __init__(self, store: CatalogStore):
        self.store = store

    async def _load_enriched(self, **scope) -> List[EnrichedProduct]:
        products = await self.store.load_products(**scope)
        ratings = await self.store.load_ratings([p.id for p in products])
        return rating_agg.aggregate(products, ratings)

    async def listing(self, query: ListingQuery) -> ProductListing:
        enriched = await self._load_enriched()
        page = run_pipeline(enriched, query)
        log.info(
            f"listing: {len(enriched)} products, {page.total_products} after filters, "
            f"page {page.current_page}/{page.total_pages}"
        )
        return ProductListing(products=page.items, pagination=page.pagination())

    async def seller_listing(self, seller_id: int, query: ListingQuery) -> ProductListing:
        seller = await self.store.find_user(seller_id)
        if seller is None:
            raise NotFound(f"User #{seller_id} not found")
        enriched = await self._load_enriched(seller_id=seller_id)
        page = run_pipeline(enriched, query)
        log.info(f"seller_listing: seller #{seller_id}, {page.total_products} products")
        return ProductListing(products=page.items, pagination=page.pagination())

    async def search(self, q: Optional[str], query: ListingQuery) -> SearchListing:
        enriched = await self._load_enriched(name_query=q or None)
        page = run_pipeline(enriched, query)
        listing = SearchListing(
            data=page.items,
            pagination=SearchPagination(
                current_page=page.current_page,
                total_pages=page.total_pages,
                total_products=page.total_products,
                per_page=coerce_positive(query.limit),
            ),
        )
        log.info(f"search: q={q!r}, {page.total_products} matches")
        if not page.items and page.current_page == 1:
            raise EmptySearch(listing)
        return listing

    async def seller_profile(self, username: str, query: ListingQuery) -> SellerProfile:
        seller = await self.store.find_user_by_username(username)
        if seller is None:
            raise NotFound(f"User {username!r} not found")

        products = await self.store.load_products(seller_id=seller.id)
        product_ids = [p.id for p in products]
        ratings, reviewers = await asyncio.gather(
            self.store.load_ratings(product_ids),
            self.store.load_reviewers(product_ids),
        )

        users_by_id = {user.id: user for user in reviewers}
        summaries = rating_agg.summarize(ratings)
        seller_info = SellerInfo(id=seller.id, username=seller.username, contacts=seller.contacts)
        enriched = [
            rating_agg.enrich(
                product,
                summaries.get(product.id),
                model=ProfileProduct,
                comments=rating_agg.collect_reviews(
                    (r for r in ratings if r.product_id == product.id), users_by_id
                ),
                user_data=seller_info,
            )
            for product in products
        ]
        avg_user_rating, rated_count = rating_agg.seller_average(enriched)

        page = run_pipeline(enriched, query)
        log.info(f"seller_profile: {username!r}, {len(products)} products, avg={avg_user_rating}")
        return SellerProfile(
            avg_user_rating=avg_user_rating,
            total_ratings=rated_count,
            data=page.items,
            pagination=page.pagination(),
        )

    # ── Single products and reviews ──

    async def product_details(self, product_id: int) -> ProductDetail:
        product = await self.store.load_product(product_id)
        if product is None:
            raise NotFound(f"Product #{product_id} not found")
        ratings, seller = await asyncio.gather(
            self.store.load_ratings([product_id]),
            self.store.find_user(product.user_id),
        )
        summary = rating_agg.summarize(ratings).get(product_id)
        seller_info = None
        if seller is not None:
            seller_info = SellerInfo(id=seller.id, username=seller.username, contacts=seller.contacts)
        return rating_agg.enrich(product, summary, model=ProductDetail, seller=seller_info)

    async def product_reviews(self, product_id: int) -> ProductReviews:
        product = await self.store.load_product(product_id)
        if product is None:
            raise NotFound(f"Product #{product_id} not found")
        ratings, reviewers = await asyncio.gather(
            self.store.load_ratings([product_id]),
            self.store.load_reviewers([product_id]),
        )
        if not ratings:
            return ProductReviews(avg_rating=0, total_ratings=0, data=[], message="No reviews yet")
        summary = rating_agg.summarize(ratings)[product_id]
        users_by_id = {user.id: user for user in reviewers}
        return ProductReviews(
            avg_rating=round(summary.average, 2),
            total_ratings=summary.count,
            data=rating_agg.collect_reviews(ratings, users_by_id),
        )

    async def rated_by(self, username: str) -> List[RatedProduct]:
        user = await self.store.find_user_by_username(username)
        if user is None:
            raise NotFound(f"User {username!r} not found")
        user_ratings = await self.store.load_ratings_by_user(user.id)
        if not user_ratings:
            return []
        product_ids = list(dict.fromkeys(r.product_id for r in user_ratings))
        products = {p.id: p for p in await self.store.load_products(product_ids=product_ids)}
        rated = []
        for rating in user_ratings:
            product = products.get(rating.product_id)
            if product is None:
                continue
            rated.append(
                RatedProduct(
                    **RatedProduct.fields_of(product),
                    user_rating=rating.stars,
                    user_comment=rating.comment,
                )
            )
        return rated

    async def user_ratings(self, user_id: int) -> UserRatings:
        user = await self.store.find_user(user_id)
        if user is None:
            raise NotFound(f"User #{user_id} not found")
        ratings = await self.store.load_ratings_by_user(user_id)
        if not ratings:
            return UserRatings(data=[], message="No comments found for the user")
        return UserRatings(data=[UserRating.model_validate(r, from_attributes=True) for r in ratings])

    # ── Spotlights ──

    async def hot(self) -> Spotlight:
        hot = rating_agg.hot_products(await self._load_enriched())
        if not hot:
            return Spotlight(message="No hot products found", data=[])
        return Spotlight(status="success", data=hot)

    async def _seller_spotlight(self, pick) -> Spotlight:
        sellers = rating_agg.rank_sellers(await self._load_enriched())
        chosen = pick(sellers)
        best = rating_agg.showcase(chosen) if chosen is not None else []
        if not best:
            return Spotlight(message="No suitable user found", data=[])
        return Spotlight(
            status="success",
            user_id=chosen.user_id,
            user_rating=f"{chosen.average:.2f}",
            total_ratings=len(chosen.rated_products),
            data=best,
        )

    async def top_seller(self) -> Spotlight:
        return await self._seller_spotlight(rating_agg.top_seller)

    async def trending_seller(self) -> Spotlight:
        return await self._seller_spotlight(rating_agg.trending_seller)

    async def product_count(self) -> int:
        return await self.store.count_products()
