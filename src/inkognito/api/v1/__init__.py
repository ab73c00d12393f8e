# src/inkognito/api/v1/__init__.py
"""Version 1 API endpoints."""

from .endpoints import comments_router, confessions_router, moderation_router

__all__ = [
    "confessions_router",
    "comments_router",
    "moderation_router",
]
