"""
Product listing API routes.
"""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse

from marketplace.models.listing import ListingQuery, ProductListing, SearchListing, SellerProfile, Spotlight
from marketplace.models.product import ProductDetail
from marketplace.routes.deps import call_service, get_listing_service, listing_query
from marketplace.services.listing import EmptySearch, ListingService

router = APIRouter(prefix="/products")


@router.get("", response_model=ProductListing)
async def list_products(
    query: ListingQuery = Depends(listing_query),
    service: ListingService = Depends(get_listing_service),
):
    """All products, filtered by price/date, sorted and paginated."""
    return await call_service(service.listing(query), "fetching products")


@router.get("/search", response_model=SearchListing)
async def search_products(
    q: Optional[str] = Query(None),
    query: ListingQuery = Depends(listing_query),
    service: ListingService = Depends(get_listing_service),
):
    """Case-insensitive name search."""
    try:
        return await call_service(service.search(q, query), "searching products")
    except EmptySearch as e:
        content = e.listing.model_dump(by_alias=True, mode="json")
        content["message"] = "No products found"
        return JSONResponse(status_code=404, content=content)


@router.get("/count")
async def count_products(service: ListingService = Depends(get_listing_service)):
    total = await call_service(service.product_count(), "counting products")
    return {"status": "success", "data": total}


@router.get("/hot", response_model=Spotlight, response_model_exclude_none=True)
async def hot_products(service: ListingService = Depends(get_listing_service)):
    """Up to four products rated 4.5+, most-rated first."""
    return await call_service(service.hot(), "fetching hot products")


@router.get("/top-seller", response_model=Spotlight, response_model_exclude_none=True)
async def top_seller(service: ListingService = Depends(get_listing_service)):
    return await call_service(service.top_seller(), "fetching top seller")


@router.get("/trending-seller", response_model=Spotlight, response_model_exclude_none=True)
async def trending_seller(service: ListingService = Depends(get_listing_service)):
    return await call_service(service.trending_seller(), "fetching trending seller")


@router.get("/u/{username}", response_model=SellerProfile)
async def seller_profile(
    username: str,
    query: ListingQuery = Depends(listing_query),
    service: ListingService = Depends(get_listing_service),
):
    """A seller's products with their reviews and the seller's overall rating."""
    return await call_service(service.seller_profile(username, query), f"fetching profile of {username!r}")


@router.get("/rated/{username}")
async def rated_products(username: str, service: ListingService = Depends(get_listing_service)):
    """Products the user has rated, with the user's own stars and comment."""
    rated = await call_service(service.rated_by(username), f"fetching products rated by {username!r}")
    if not rated:
        return {"message": "No ratings found for the user", "data": []}
    return {"status": "success", "data": rated}


@router.get("/selected/{product_id}", response_model=ProductDetail)
async def product_details(product_id: int, service: ListingService = Depends(get_listing_service)):
    return await call_service(service.product_details(product_id), f"fetching product #{product_id}")


@router.get("/user/{seller_id}", response_model=ProductListing)
async def seller_products(
    seller_id: int,
    query: ListingQuery = Depends(listing_query),
    service: ListingService = Depends(get_listing_service),
):
    """One seller's products through the listing pipeline."""
    if seller_id < 1:
        raise HTTPException(status_code=400, detail="Invalid user ID")
    return await call_service(service.seller_listing(seller_id, query), f"fetching products of user #{seller_id}")
