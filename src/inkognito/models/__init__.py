# src/inkognito/models/__init__.py
"""SQLAlchemy models for the Inkognito application."""

from .comment import Comment
from .confession import Confession

__all__ = ["Comment", "Confession"]
