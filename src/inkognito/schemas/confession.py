# src/inkognito/schemas/confession.py
"""Confession-related Pydantic schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .common import Category, Gender


class ConfessionCreate(BaseModel):
    """Schema for posting a new confession."""

    title: str = Field(..., min_length=1, max_length=200)
    content: str = Field(..., min_length=1, max_length=5000)
    gender: Gender = Gender.INCOGNITO
    category: Category = Category.OTHER
    author_email: str | None = Field(
        None,
        max_length=320,
        description="Optional address notified about new comments",
    )

    @field_validator("title", "content")
    @classmethod
    def check_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be blank")
        return value

    @field_validator("category")
    @classmethod
    def reject_all_sentinel(cls, value: Category) -> Category:
        if value is Category.ALL:
            raise ValueError("a confession needs a concrete category")
        return value


class ConfessionUpdate(BaseModel):
    """Moderator edit of a confession; omitted fields stay unchanged."""

    title: str | None = Field(None, min_length=1, max_length=200)
    content: str | None = Field(None, min_length=1, max_length=5000)
    category: Category | None = None

    @field_validator("category")
    @classmethod
    def reject_all_sentinel(cls, value: Category | None) -> Category | None:
        if value is Category.ALL:
            raise ValueError("a confession needs a concrete category")
        return value


class ConfessionResponse(BaseModel):
    """Schema for confession information returned by the API."""

    id: str
    title: str
    content: str
    gender: Gender
    category: Category
    likes: int = Field(ge=0)
    created_at: datetime
    slug: str
    comment_count: int = Field(default=0, ge=0)

    model_config = ConfigDict(from_attributes=True)
