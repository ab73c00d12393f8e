"""Data access layer."""

from .confession_repo import ConfessionRepository

__all__ = ["ConfessionRepository"]
