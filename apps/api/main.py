"""
Creator Analytics API - FastAPI Backend
Main application entry point with health check and API routing.
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager

from config import settings, validate_security_settings
from database import engine, Base
import models  # noqa: F401
from routers import creators, health, scrape


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown."""
    # Startup
    print("🚀 Starting Creator Analytics API...")
    validate_security_settings()
    if settings.AUTO_CREATE_DB_SCHEMA:
        try:
            async with engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
            print("🗄️ Database schema verified.")
        except Exception as e:
            print(f"⚠️ Database bootstrap skipped: {e}")
    if not settings.APIFY_API_TOKEN:
        print("⚠️ APIFY_API_TOKEN is not set. New scrapes will be rejected until it is configured.")
    yield
    # Shutdown
    await engine.dispose()
    print("👋 Shutting down API...")


app = FastAPI(
    title="Creator Analytics API",
    description="Scrape TikTok, Instagram and YouTube creators and analyze their engagement",
    version="0.1.0",
    lifespan=lifespan,
)
app.state.disable_rate_limits = settings.DISABLE_RATE_LIMITS

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(health.router, tags=["Health"])
app.include_router(scrape.router, prefix="/scrape", tags=["Scrape"])
app.include_router(creators.router, prefix="/creators", tags=["Creators"])


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": "Creator Analytics API",
        "version": "0.1.0",
        "status": "running"
    }
