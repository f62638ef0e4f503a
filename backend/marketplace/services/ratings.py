"""
Rating aggregation.

Pure transforms over already-loaded rows: group ratings by product, attach
{ratingCount, avgRating} to products, and derive seller-level averages used
by the profile and spotlight endpoints. No I/O happens here.
"""
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from marketplace.models.product import EnrichedProduct, Review

UNKNOWN_USERNAME = "Unknown"

HOT_THRESHOLD = 4.5
SPOTLIGHT_SIZE = 4


@dataclass
class RatingSummary:
    count: int = 0
    total: int = 0

    @property
    def average(self) -> float:
        return self.total / self.count if self.count else 0.0


@dataclass
class SellerStats:
    user_id: int
    products: List[EnrichedProduct] = field(default_factory=list)

    @property
    def rated_products(self) -> List[EnrichedProduct]:
        return [p for p in self.products if p.rating_count > 0]

    @property
    def average(self) -> float:
        """Mean of the per-product averages over rated products only."""
        rated = self.rated_products
        if not rated:
            return 0.0
        return sum(p.avg_rating for p in rated) / len(rated)


def summarize(ratings: Iterable) -> Dict[int, RatingSummary]:
    summaries: Dict[int, RatingSummary] = defaultdict(RatingSummary)
    for rating in ratings:
        summary = summaries[rating.product_id]
        summary.count += 1
        summary.total += rating.stars
    return dict(summaries)


def enrich(product, summary: Optional[RatingSummary] = None, model=EnrichedProduct, **extra):
    """Build one enriched product from an ORM row and its rating summary."""
    summary = summary or RatingSummary()
    return model(
        **model.fields_of(product),
        rating_count=summary.count,
        avg_rating=summary.average,
        **extra,
    )


def aggregate(products: Sequence, ratings: Iterable) -> List[EnrichedProduct]:
    """Attach ratingCount/avgRating to every product, keeping input order."""
    summaries = summarize(ratings)
    return [enrich(product, summaries.get(product.id)) for product in products]


def collect_reviews(ratings: Iterable, users_by_id: Mapping[int, object]) -> List[Review]:
    """Ratings with a non-empty comment, resolved to their author's username."""
    reviews = []
    for rating in ratings:
        if not rating.comment:
            continue
        author = users_by_id.get(rating.user_id)
        reviews.append(
            Review(
                id=rating.id,
                username=author.username if author is not None else UNKNOWN_USERNAME,
                comment=rating.comment,
                stars=rating.stars,
                timestamp=rating.created_at,
            )
        )
    return reviews


def seller_average(products: Sequence[EnrichedProduct]) -> tuple:
    """(avgUserRating rounded to 2 places, number of rated products)."""
    rated = [p for p in products if p.rating_count > 0]
    if not rated:
        return 0, 0
    return round(sum(p.avg_rating for p in rated) / len(rated), 2), len(rated)


def hot_products(
    products: Sequence[EnrichedProduct],
    threshold: float = HOT_THRESHOLD,
    limit: int = SPOTLIGHT_SIZE,
) -> List[EnrichedProduct]:
    """Highly rated products, most-rated first."""
    hot = [p for p in products if p.rating_count > 0 and p.avg_rating >= threshold]
    hot.sort(key=lambda p: p.rating_count, reverse=True)
    return hot[:limit]


def rank_sellers(products: Sequence[EnrichedProduct]) -> List[SellerStats]:
    """Group enriched products by seller, in order of each seller's first listing."""
    by_seller: Dict[int, SellerStats] = {}
    for product in products:
        stats = by_seller.get(product.user_id)
        if stats is None:
            stats = by_seller[product.user_id] = SellerStats(user_id=product.user_id)
        stats.products.append(product)
    return list(by_seller.values())


def top_seller(
    sellers: Sequence[SellerStats],
    min_products: int = SPOTLIGHT_SIZE,
    threshold: float = HOT_THRESHOLD,
) -> Optional[SellerStats]:
    """Seller with the most rated products among well-stocked, highly rated sellers."""
    best = None
    for stats in sellers:
        if len(stats.products) < min_products or stats.average < threshold:
            continue
        if best is None or len(stats.rated_products) > len(best.rated_products):
            best = stats
    return best


def trending_seller(
    sellers: Sequence[SellerStats],
    min_rated: int = SPOTLIGHT_SIZE,
    threshold: float = 4.0,
) -> Optional[SellerStats]:
    """Seller with the highest average among sellers with enough rated products."""
    best = None
    for stats in sellers:
        if len(stats.rated_products) < min_rated or stats.average < threshold:
            continue
        if best is None or stats.average > best.average:
            best = stats
    return best


def showcase(stats: SellerStats, limit: int = SPOTLIGHT_SIZE) -> List[EnrichedProduct]:
    """A seller's best rated products; empty unless there are `limit` of them."""
    best = sorted(stats.rated_products, key=lambda p: p.avg_rating, reverse=True)[:limit]
    return best if len(best) == limit else []
