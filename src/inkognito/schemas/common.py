# src/inkognito/schemas/common.py
"""Closed vocabularies shared by confessions and comments."""

from __future__ import annotations

from enum import Enum


class Gender(str, Enum):
    """Self-reported gender tag of an anonymous author."""

    MALE = "male"
    FEMALE = "female"
    INCOGNITO = "incognito"


class CommentGender(str, Enum):
    """Gender tag of a comment author; `ai` marks generated comments."""

    MALE = "male"
    FEMALE = "female"
    INCOGNITO = "incognito"
    AI = "ai"


class Category(str, Enum):
    """Confession categories. `ALL` is a filter sentinel, never stored."""

    ALL = "Всички"
    LOVE = "Любов и Секс"
    EDUCATION = "Образование"
    FAMILY = "Семейство"
    HEALTH = "Спорт и Здраве"
    TEEN = "Тийн"
    OTHER = "Други"

    @classmethod
    def storable(cls) -> list[Category]:
        return [category for category in cls if category is not cls.ALL]

    def matches(self, category: str | Category) -> bool:
        """Return True if a confession in `category` belongs under this filter."""
        if self is Category.ALL:
            return True
        try:
            return Category(category) is self
        except ValueError:
            return False
