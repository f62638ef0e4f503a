"""
Catalog read-model client.
"""
import logging
from typing import List, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker

from marketplace.services import database as db
from marketplace.services.database import Product, Rating, User

log = logging.getLogger("database")


class StoreError(Exception):
    """A read against the relational store failed."""


class CatalogStore:
    """Async read client over the marketplace tables.

    Every call opens its own short-lived session, so independent loads can be
    awaited together with asyncio.gather.
    """

    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory

    async def _read(self, query, *args, **kwargs):
        try:
            async with self.session_factory() as session:
                return await query(session, *args, **kwargs)
        except SQLAlchemyError as e:
            log.error(f"{query.__name__} failed (args={args!r}, kwargs={kwargs!r}): {e}")
            raise StoreError(f"Store error in {query.__name__}: {e}") from e

    # ── Products ──

    async def load_products(
        self,
        seller_id: Optional[int] = None,
        name_query: Optional[str] = None,
        product_ids: Optional[Sequence[int]] = None,
    ) -> List[Product]:
        return await self._read(
            db.get_products, seller_id=seller_id, name_query=name_query, product_ids=product_ids
        )

    async def load_product(self, product_id: int) -> Optional[Product]:
        return await self._read(db.get_product, product_id)

    async def count_products(self) -> int:
        return await self._read(db.count_products)

    # ── Ratings ──

    async def load_ratings(self, product_ids: Sequence[int]) -> List[Rating]:
        return await self._read(db.get_ratings_for_products, product_ids)

    async def load_ratings_by_user(self, user_id: int) -> List[Rating]:
        return await self._read(db.get_ratings_by_user, user_id)

    # ── Users ──

    async def find_user(self, user_id: int) -> Optional[User]:
        return await self._read(db.get_user, user_id)

    async def find_user_by_username(self, username: str) -> Optional[User]:
        return await self._read(db.get_user_by_username, username)

    async def load_reviewers(self, product_ids: Sequence[int]) -> List[User]:
        return await self._read(db.get_reviewers_for_products, product_ids)
