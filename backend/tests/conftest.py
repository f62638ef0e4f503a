"""
Shared fixtures for the test suite.

Key design decisions:
- Each test gets a fresh SQLite file DB (several sessions may be open at
  once, which an in-memory DB would not share).
- The app's catalog store dependency is overridden, so no lifespan runs.
- Route tests talk to the app through httpx's ASGI transport (no real HTTP).
"""
from datetime import datetime
from types import SimpleNamespace

import httpx
import pytest
import pytest_asyncio

from marketplace.services.catalog import CatalogStore
from marketplace.services.database import (
    Category,
    Product,
    Rating,
    Subcategory,
    User,
    close_db,
    create_engine,
    create_session_factory,
    init_db,
)

# ── Canned catalog ──

FAKE_USERS = [
    {"id": 1, "username": "alice", "email": "alice@example.com", "contacts": "+370 600 00001"},
    {"id": 2, "username": "bob", "email": "bob@example.com", "contacts": None},
    {"id": 3, "username": "carol", "email": "carol@example.com", "contacts": None},
    {"id": 4, "username": "dave", "email": "dave@example.com", "contacts": None},
]

FAKE_PRODUCTS = [
    {"id": 1, "user_id": 1, "name": "Apple Phone", "price": 10.0, "created_at": datetime(2024, 1, 1)},
    {"id": 2, "user_id": 1, "name": "banana Case", "price": 30.0, "created_at": datetime(2024, 2, 1)},
    {"id": 3, "user_id": 1, "name": "Cherry Charger", "price": 20.0, "created_at": datetime(2024, 3, 1)},
    {"id": 4, "user_id": 2, "name": "Éclair Headphones", "price": 50.0, "created_at": datetime(2024, 4, 1)},
    {"id": 5, "user_id": 2, "name": "Desk Lamp", "price": 5.5, "created_at": datetime(2024, 5, 1)},
]

# product 1: avg 4 over 2, product 2: 4 over 1, product 4: 5 over 2, products 3/5 unrated
FAKE_RATINGS = [
    {"id": 1, "user_id": 3, "product_id": 1, "stars": 5, "comment": "Great phone"},
    {"id": 2, "user_id": 4, "product_id": 1, "stars": 3, "comment": None},
    {"id": 3, "user_id": 3, "product_id": 2, "stars": 4, "comment": "Solid"},
    {"id": 4, "user_id": 3, "product_id": 4, "stars": 5, "comment": ""},
    {"id": 5, "user_id": 4, "product_id": 4, "stars": 5, "comment": "Love it"},
]


def product_row(**overrides):
    """A stand-in for an ORM Product row."""
    row = {
        "id": 1,
        "user_id": 1,
        "category_id": 1,
        "subcategory_id": None,
        "name": "Thing",
        "price": 1.0,
        "description": "",
        "amount_in_stock": 1,
        "image_url": None,
        "created_at": datetime(2024, 1, 1),
    }
    row.update(overrides)
    return SimpleNamespace(**row)


def rating_row(product_id, stars, **overrides):
    row = {"id": 0, "user_id": 1, "product_id": product_id, "stars": stars, "comment": None,
           "created_at": datetime(2024, 6, 1)}
    row.update(overrides)
    return SimpleNamespace(**row)


# ── Database ──


@pytest_asyncio.fixture
async def engine(tmp_path):
    test_engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    await init_db(test_engine)
    yield test_engine
    await close_db(test_engine)


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture
def store(session_factory):
    return CatalogStore(session_factory)


@pytest_asyncio.fixture
async def seeded(session_factory):
    """Load the canned catalog into the test DB."""
    async with session_factory() as session:
        async with session.begin():
            category = Category(id=1, name="Electronics")
            session.add(category)
            session.add(Subcategory(id=1, category_id=1, name="Smartphones & Accessories"))
            session.add_all(User(**u) for u in FAKE_USERS)
            await session.flush()
            session.add_all(
                Product(category_id=1, subcategory_id=1, description=f"{p['name']} description",
                        amount_in_stock=3, **p)
                for p in FAKE_PRODUCTS
            )
            await session.flush()
            session.add_all(Rating(created_at=datetime(2024, 6, 1), **r) for r in FAKE_RATINGS)
    return session_factory


# ── App client ──


@pytest_asyncio.fixture
async def client(store):
    from marketplace.main import app
    from marketplace.routes.deps import get_store

    app.dependency_overrides[get_store] = lambda: store
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as ac:
        yield ac
    app.dependency_overrides.clear()
