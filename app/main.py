"""
Tour CRM Manual Quotes API - Main application entry point.

Back-office service for hand-built tour quotations: itinerary days,
priced expense lines and a pax-bracket pricing table.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

from app.config import get_settings
from app.database import engine
from app.api import manual_quotes

settings = get_settings()

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    logger.info(f"Starting {settings.app_name}...")

    yield

    await engine.dispose()
    logger.info(f"Shutting down {settings.app_name}...")


app = FastAPI(
    title=settings.app_name,
    description="""
    ## Manual Quotes API

    - **Manual quotes**: header, dated days and priced expense lines
    - **Pricing table**: cost, markup, tax and price per person for 2, 4, 6, 8 and 10 pax
    - **Explicit recalculation**: edits mark the table stale, `/calculate` refreshes it

    ### Authentication
    All endpoints require a bearer JWT carrying a `tenant_id` claim.
    """,
    version="1.0.0",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(manual_quotes.router, prefix="/manual-quotes", tags=["Manual Quotes"])


@app.get("/", tags=["Health"])
async def root():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "app": settings.app_name,
        "version": "1.0.0",
    }


@app.get("/health", tags=["Health"])
async def health_check():
    """Detailed health check."""
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        database = "connected"
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        database = "unavailable"

    return {
        "status": "healthy" if database == "connected" else "degraded",
        "database": database,
    }
