"""API endpoint modules for version 1."""

from .items import router as items_router
from .visitors import router as visitors_router
from .votes import router as votes_router

__all__ = [
    "items_router",
    "visitors_router",
    "votes_router",
]
