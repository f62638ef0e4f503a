"""
Product review (comment) read routes.
"""
from fastapi import APIRouter, Depends, HTTPException

from marketplace.models.listing import ProductReviews, UserRatings
from marketplace.routes.deps import call_service, get_listing_service
from marketplace.services.listing import ListingService

router = APIRouter(prefix="/comments")


@router.get("/{product_id}/comments", response_model=ProductReviews, response_model_exclude_none=True)
async def product_comments(product_id: int, service: ListingService = Depends(get_listing_service)):
    """Written reviews for a product plus its average over all ratings."""
    return await call_service(service.product_reviews(product_id), f"fetching comments of product #{product_id}")


@router.get("/{user_id}", response_model=UserRatings, response_model_exclude_none=True)
async def user_comments(user_id: int, service: ListingService = Depends(get_listing_service)):
    """Every rating the user has left, as stored."""
    if user_id < 1:
        raise HTTPException(status_code=400, detail="Invalid user ID")
    return await call_service(service.user_ratings(user_id), f"fetching comments of user #{user_id}")
