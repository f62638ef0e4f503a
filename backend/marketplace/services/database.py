"""
Relational persistence layer using SQLAlchemy async.

Provides:
- Engine + session factory constructors (no module-level engine)
- SQLAlchemy ORM models (User, Category, Subcategory, Product, Rating)
- Read helpers used by the catalog store
"""
import os
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Sequence

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    func,
    select,
)
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase, relationship

log = logging.getLogger("database")

# ── Database URL ──
# Default: backend/data/marketplace.db

_backend_dir = Path(__file__).resolve().parent.parent.parent
_data_dir = _backend_dir / "data"

DATABASE_URL = os.getenv(
    "DATABASE_URL",
    f"sqlite+aiosqlite:///{_data_dir / 'marketplace.db'}",
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ── Base ──

class Base(DeclarativeBase):
    pass


# ── ORM Models ──

class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(64), nullable=False, unique=True, index=True)
    email = Column(String(255), nullable=False, unique=True)
    contacts = Column(String(255), nullable=True)
    role = Column(String(16), nullable=False, default="user")  # "user" | "admin"
    created_at = Column(DateTime, default=_utcnow)

    products = relationship("Product", back_populates="seller")


class Category(Base):
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(128), nullable=False, unique=True)

    subcategories = relationship("Subcategory", back_populates="category", cascade="all, delete-orphan")


class Subcategory(Base):
    __tablename__ = "subcategories"

    id = Column(Integer, primary_key=True, autoincrement=True)
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=False, index=True)
    name = Column(String(128), nullable=False)

    category = relationship("Category", back_populates="subcategories")


class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=False)
    subcategory_id = Column(Integer, ForeignKey("subcategories.id"), nullable=True)
    name = Column(String(255), nullable=False)
    price = Column(Numeric(10, 2, asdecimal=False), nullable=False)
    description = Column(Text, nullable=False, default="")
    amount_in_stock = Column(Integer, nullable=False, default=0)
    image_url = Column(String(512), nullable=True)
    created_at = Column(DateTime, default=_utcnow)

    __table_args__ = (CheckConstraint("amount_in_stock >= 0", name="ck_products_stock"),)

    seller = relationship("User", back_populates="products")
    ratings = relationship("Rating", back_populates="product", cascade="all, delete-orphan")


class Rating(Base):
    """A star rating; one with a non-empty comment doubles as a review.

    (user_id, product_id) is not unique; every row counts towards the average.
    """
    __tablename__ = "ratings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)
    stars = Column(Integer, nullable=False)
    comment = Column(Text, nullable=True)
    created_at = Column(DateTime, default=_utcnow)

    __table_args__ = (CheckConstraint("stars BETWEEN 1 AND 5", name="ck_ratings_stars"),)

    product = relationship("Product", back_populates="ratings")


# ── Lifecycle ──

def create_engine(url: Optional[str] = None, echo: bool = False) -> AsyncEngine:
    """Build an async engine; sqlite file URLs get their parent directory created."""
    url = url or DATABASE_URL
    if url.startswith("sqlite") and ":///" in url:
        Path(url.split(":///", 1)[1]).parent.mkdir(parents=True, exist_ok=True)
    return create_async_engine(url, echo=echo)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def init_db(engine: AsyncEngine):
    """Create all tables (idempotent)."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    log.info(f"Database ready: {engine.url.render_as_string(hide_password=True)}")


async def close_db(engine: AsyncEngine):
    """Dispose engine on shutdown."""
    await engine.dispose()


# ── Reads: Products ──

async def get_products(
    session: AsyncSession,
    *,
    seller_id: Optional[int] = None,
    name_query: Optional[str] = None,
    product_ids: Optional[Sequence[int]] = None,
) -> List[Product]:
    """Return all products, optionally scoped to a seller, a name substring or a set of ids."""
    stmt = select(Product)
    if product_ids is not None:
        stmt = stmt.where(Product.id.in_(list(product_ids)))
    if seller_id is not None:
        stmt = stmt.where(Product.user_id == seller_id)
    if name_query:
        stmt = stmt.where(Product.name.ilike(f"%{name_query}%"))
    result = await session.execute(stmt.order_by(Product.id))
    return list(result.scalars().all())


async def get_product(session: AsyncSession, product_id: int) -> Optional[Product]:
    return await session.get(Product, product_id)


async def count_products(session: AsyncSession) -> int:
    result = await session.execute(select(func.count(Product.id)))
    return result.scalar_one()


# ── Reads: Ratings ──

async def get_ratings_for_products(session: AsyncSession, product_ids: Sequence[int]) -> List[Rating]:
    """Return every rating whose product_id is in product_ids."""
    if not product_ids:
        return []
    result = await session.execute(
        select(Rating).where(Rating.product_id.in_(list(product_ids))).order_by(Rating.id)
    )
    return list(result.scalars().all())


async def get_ratings_by_user(session: AsyncSession, user_id: int) -> List[Rating]:
    result = await session.execute(
        select(Rating).where(Rating.user_id == user_id).order_by(Rating.id)
    )
    return list(result.scalars().all())


# ── Reads: Users ──

async def get_user(session: AsyncSession, user_id: int) -> Optional[User]:
    return await session.get(User, user_id)


async def get_user_by_username(session: AsyncSession, username: str) -> Optional[User]:
    result = await session.execute(select(User).where(User.username == username))
    return result.scalar_one_or_none()


async def get_reviewers_for_products(session: AsyncSession, product_ids: Sequence[int]) -> List[User]:
    """Users who rated any of the given products.

    Resolved with a sub-select on ratings so it does not need the ratings
    rows themselves and can run alongside get_ratings_for_products.
    """
    if not product_ids:
        return []
    authors = select(Rating.user_id).where(Rating.product_id.in_(list(product_ids)))
    result = await session.execute(select(User).where(User.id.in_(authors)))
    return list(result.scalars().all())
