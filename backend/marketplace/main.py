"""
FastAPI application entry point
"""
import os
import logging
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables FIRST, before any other imports
# Explicitly look for .env in the backend directory (parent of marketplace/)
backend_dir = Path(__file__).parent.parent
env_path = backend_dir / ".env"
load_dotenv(dotenv_path=env_path)

logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO").upper())

from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from marketplace.routes import comments, products
from marketplace.services.catalog import CatalogStore
from marketplace.services.database import close_db, create_engine, create_session_factory, init_db

DEFAULT_CORS_ORIGINS = "http://localhost:3000,http://localhost:5173"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup / shutdown lifecycle: build the engine and the catalog store."""
    engine = create_engine(echo=os.getenv("SQL_ECHO") == "1")
    await init_db(engine)
    app.state.store = CatalogStore(create_session_factory(engine))
    yield
    await close_db(engine)


app = FastAPI(
    title="Marketplace API",
    description="Product listings, ratings and seller profiles",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS middleware - allow frontend to communicate
app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in os.getenv("CORS_ORIGINS", DEFAULT_CORS_ORIGINS).split(",") if o.strip()],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(products.router, prefix="/api", tags=["products"])
app.include_router(comments.router, prefix="/api", tags=["comments"])


@app.get("/")
async def root():
    """Root endpoint - API information"""
    return {
        "service": "Marketplace API",
        "version": "1.0.0",
        "endpoints": {
            "health": "/health",
            "products": "/api/products (GET)",
            "search": "/api/products/search (GET)",
            "docs": "/docs",
        },
    }


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "ok", "service": "marketplace-api"}
