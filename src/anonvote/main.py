# src/anonvote/main.py
"""Main entry point for the anonvote ledger API."""

from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware

from anonvote.api.v1 import items_router, visitors_router, votes_router
from anonvote.core.settings import settings

# Initialize FastAPI app
app = FastAPI(
    title="anonvote API",
    description="Anonymous one-vote-per-visitor content rating ledger",
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
app.include_router(votes_router, prefix="/api/v1")
app.include_router(visitors_router, prefix="/api/v1")
app.include_router(items_router, prefix="/api/v1")


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint to verify the service is running."""
    return {"status": "ok"}


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint with basic information about the API."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "description": "Anonymous one-vote-per-visitor content rating ledger",
        "docs": "/docs",
        "redoc": "/redoc",
    }


if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(level=logging.DEBUG if settings.debug else logging.INFO)
    uvicorn.run("anonvote.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
