# src/inkognito/api/v1/endpoints/__init__.py
"""API endpoint modules for version 1."""

from .comments import router as comments_router
from .confessions import router as confessions_router
from .moderation import router as moderation_router

__all__ = [
    "confessions_router",
    "comments_router",
    "moderation_router",
]
