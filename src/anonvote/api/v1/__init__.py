"""Version 1 API endpoints."""

from .endpoints import items_router, visitors_router, votes_router

__all__ = [
    "items_router",
    "visitors_router",
    "votes_router",
]
