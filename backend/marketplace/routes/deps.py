"""
Request dependencies shared by the API routers.
"""
import logging
from typing import Optional

from fastapi import Depends, HTTPException, Query, Request

from marketplace.models.listing import (
    DEFAULT_LIMIT,
    DEFAULT_ORDER,
    DEFAULT_PAGE,
    DEFAULT_SORT,
    ListingQuery,
)
from marketplace.services.catalog import CatalogStore
from marketplace.services.listing import EmptySearch, ListingService, NotFound

log = logging.getLogger("routes")


def get_store(request: Request) -> CatalogStore:
    """The catalog store built during app start-up."""
    return request.app.state.store


def get_listing_service(store: CatalogStore = Depends(get_store)) -> ListingService:
    return ListingService(store)


def listing_query(
    page: Optional[str] = Query(str(DEFAULT_PAGE)),
    limit: Optional[str] = Query(str(DEFAULT_LIMIT)),
    min_price: Optional[str] = Query(None, alias="minPrice"),
    max_price: Optional[str] = Query(None, alias="maxPrice"),
    min_date: Optional[str] = Query(None, alias="minDate"),
    max_date: Optional[str] = Query(None, alias="maxDate"),
    sort: Optional[str] = Query(DEFAULT_SORT),
    order: Optional[str] = Query(DEFAULT_ORDER),
) -> ListingQuery:
    # Kept as raw strings: page/limit coercion and bound parsing are part of the pipeline.
    return ListingQuery(
        page=page,
        limit=limit,
        min_price=min_price,
        max_price=max_price,
        min_date=min_date,
        max_date=max_date,
        sort=sort,
        order=order,
    )


INTERNAL_ERROR = "Internal server error"


async def call_service(awaitable, what: str):
    """Await a service call, mapping NotFound to 404 and anything else to a logged 500."""
    try:
        return await awaitable
    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except EmptySearch:
        raise
    except Exception:
        log.exception(f"Error {what}")
        raise HTTPException(status_code=500, detail=INTERNAL_ERROR)
