# src/inkognito/main.py
"""Main entry point for the Inkognito backing API."""

from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware

from inkognito.api.v1 import comments_router, confessions_router, moderation_router
from inkognito.core.settings import settings
from inkognito.db.session import create_tables

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="Inkognito API",
    description="Anonymous confessions: feed queries, posting and moderation",
    version=settings.app_version,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)

# Add GZip middleware for compression
app.add_middleware(GZipMiddleware)

# Include API routers
app.include_router(confessions_router, prefix="/api/v1")
app.include_router(comments_router, prefix="/api/v1")
app.include_router(moderation_router, prefix="/api/v1")


@app.on_event("startup")
async def on_startup() -> None:
    create_tables()
    logger.info("%s %s ready", settings.app_name, settings.app_version)


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint to verify the service is running."""
    return {"status": "ok"}


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint with basic information about the API."""
    return {
        "name": "Inkognito API",
        "version": settings.app_version,
        "docs": "/docs",
        "redoc": "/redoc",
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("inkognito.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
