# src/inkognito/schemas/__init__.py
"""
Pydantic schemas for API request/response models.

These schemas define the structure of API data for serialization and validation,
and are shared by the feed engine when it validates records it receives.
"""

from .comment import CommentCreate, CommentResponse
from .common import Category, CommentGender, Gender
from .confession import ConfessionCreate, ConfessionResponse, ConfessionUpdate

__all__ = [
    "Category", "CommentGender", "Gender",
    "CommentCreate", "CommentResponse",
    "ConfessionCreate", "ConfessionResponse", "ConfessionUpdate",
]
