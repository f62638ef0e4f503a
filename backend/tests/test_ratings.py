"""
Unit tests for rating aggregation and the seller spotlights.
"""
from types import SimpleNamespace

from conftest import product_row, rating_row
from marketplace.models.product import EnrichedProduct
from marketplace.services.ratings import (
    UNKNOWN_USERNAME,
    aggregate,
    collect_reviews,
    hot_products,
    rank_sellers,
    seller_average,
    showcase,
    summarize,
    top_seller,
    trending_seller,
)


def _enriched(pid, user_id=1, count=0, avg=0.0):
    return EnrichedProduct(
        id=pid, user_id=user_id, category_id=1, name=f"P{pid}", price=1.0,
        rating_count=count, avg_rating=avg,
    )


class TestAggregate:

    def test_average_and_count(self):
        products = [product_row(id=1), product_row(id=2), product_row(id=3)]
        ratings = [rating_row(1, 5), rating_row(1, 3), rating_row(2, 4)]
        enriched = aggregate(products, ratings)

        assert [(p.id, p.rating_count, p.avg_rating) for p in enriched] == [
            (1, 2, 4.0),
            (2, 1, 4.0),
            (3, 0, 0.0),
        ]

    def test_keeps_input_order(self):
        products = [product_row(id=9), product_row(id=2), product_row(id=5)]
        assert [p.id for p in aggregate(products, [])] == [9, 2, 5]

    def test_no_ratings_is_zero_not_nan(self):
        (only,) = aggregate([product_row(id=1)], [])
        assert only.rating_count == 0
        assert only.avg_rating == 0

    def test_ignores_ratings_for_other_products(self):
        (only,) = aggregate([product_row(id=1)], [rating_row(2, 1), rating_row(1, 2)])
        assert only.rating_count == 1
        assert only.avg_rating == 2

    def test_duplicate_ratings_from_one_user_all_count(self):
        ratings = [rating_row(1, 5, user_id=7), rating_row(1, 1, user_id=7)]
        (only,) = aggregate([product_row(id=1)], ratings)
        assert only.rating_count == 2
        assert only.avg_rating == 3

    def test_copies_product_fields(self):
        row = product_row(id=4, name="Lamp", price=12.5, image_url="/img/lamp.png")
        (only,) = aggregate([row], [])
        assert only.name == "Lamp"
        assert only.price == 12.5
        assert only.image_url == "/img/lamp.png"
        assert only.timestamp == row.created_at

    def test_camel_case_on_the_wire(self):
        (only,) = aggregate([product_row(id=1)], [rating_row(1, 4)])
        dumped = only.model_dump(by_alias=True)
        assert dumped["ratingCount"] == 1
        assert dumped["avgRating"] == 4.0

    def test_summarize(self):
        summaries = summarize([rating_row(1, 5), rating_row(1, 2), rating_row(3, 4)])
        assert summaries[1].count == 2
        assert summaries[1].total == 7
        assert summaries[1].average == 3.5
        assert 2 not in summaries


class TestCollectReviews:

    def test_only_commented_ratings(self):
        users = {1: SimpleNamespace(id=1, username="carol")}
        ratings = [
            rating_row(1, 5, id=1, user_id=1, comment="Great"),
            rating_row(1, 3, id=2, user_id=1, comment=None),
            rating_row(1, 2, id=3, user_id=1, comment=""),
        ]
        reviews = collect_reviews(ratings, users)
        assert [(r.id, r.username, r.comment, r.stars) for r in reviews] == [(1, "carol", "Great", 5)]

    def test_unknown_author(self):
        reviews = collect_reviews([rating_row(1, 4, user_id=99, comment="Hm")], {})
        assert reviews[0].username == UNKNOWN_USERNAME


class TestSellerAverage:

    def test_mean_of_rated_products(self):
        products = [_enriched(1, count=2, avg=4.0), _enriched(2, count=1, avg=4.5), _enriched(3)]
        assert seller_average(products) == (4.25, 2)

    def test_rounds_to_two_places(self):
        products = [_enriched(1, count=1, avg=5.0), _enriched(2, count=1, avg=4.0), _enriched(3, count=1, avg=4.0)]
        assert seller_average(products) == (4.33, 3)

    def test_nothing_rated(self):
        assert seller_average([_enriched(1)]) == (0, 0)


class TestHotProducts:

    def test_threshold_order_and_limit(self):
        products = [
            _enriched(1, count=3, avg=4.5),
            _enriched(2, count=10, avg=4.9),
            _enriched(3, count=50, avg=4.4),
            _enriched(4, count=1, avg=5.0),
            _enriched(5, count=7, avg=4.6),
            _enriched(6, count=3, avg=4.7),
        ]
        assert [p.id for p in hot_products(products)] == [2, 5, 1, 6]

    def test_none_hot(self):
        assert hot_products([_enriched(1, count=2, avg=3.0), _enriched(2)]) == []


class TestSellerSpotlights:

    def _catalog(self):
        # seller 1: five products, four rated at 5.0
        # seller 2: four products, all rated, average 4.25
        # seller 3: four products, all rated, average 4.75
        products = [_enriched(i, user_id=1, count=2, avg=5.0) for i in range(1, 5)]
        products.append(_enriched(5, user_id=1))
        products += [_enriched(10 + i, user_id=2, count=1, avg=a) for i, a in enumerate([4.0, 4.0, 4.5, 4.5])]
        products += [_enriched(20 + i, user_id=3, count=1, avg=a) for i, a in enumerate([5.0, 4.5, 5.0, 4.5])]
        return products

    def test_rank_sellers_groups_by_user(self):
        sellers = rank_sellers(self._catalog())
        assert [s.user_id for s in sellers] == [1, 2, 3]
        assert len(sellers[0].products) == 5
        assert len(sellers[0].rated_products) == 4
        assert sellers[1].average == 4.25

    def test_top_seller_prefers_most_rated_products(self):
        best = top_seller(rank_sellers(self._catalog()))
        # sellers 1 and 3 both qualify with four rated products; first wins
        assert best.user_id == 1

    def test_top_seller_needs_enough_listings(self):
        few = [_enriched(1, user_id=1, count=1, avg=5.0)]
        assert top_seller(rank_sellers(few)) is None

    def test_trending_seller_prefers_highest_average(self):
        sellers = rank_sellers(self._catalog())
        assert trending_seller(sellers).user_id == 1
        assert trending_seller(sellers[1:]).user_id == 3

    def test_trending_seller_threshold(self):
        low = [_enriched(i, user_id=1, count=1, avg=3.5) for i in range(4)]
        assert trending_seller(rank_sellers(low)) is None

    def test_showcase_orders_best_first(self):
        sellers = rank_sellers(self._catalog())
        assert [p.id for p in showcase(sellers[2])] == [20, 22, 21, 23]

    def test_showcase_needs_full_set(self):
        sellers = rank_sellers([_enriched(i, user_id=1, count=1, avg=5.0) for i in range(3)])
        assert showcase(sellers[0]) == []
