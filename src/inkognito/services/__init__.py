# src/inkognito/services/__init__.py
"""Business logic services for the Inkognito backing API."""

from .change_feed import ChangeEvent, ChangeFeed, ChangeSubscription, get_change_feed
from .slug import slugify

__all__ = [
    "ChangeEvent",
    "ChangeFeed",
    "ChangeSubscription",
    "get_change_feed",
    "slugify",
]
