# src/inkognito/schemas/comment.py
"""Comment-related Pydantic schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .common import CommentGender, Gender


class CommentCreate(BaseModel):
    """Schema for posting a comment. Only humans post through the API."""

    content: str = Field(..., min_length=1, max_length=2000)
    gender: Gender = Gender.INCOGNITO

    @field_validator("content")
    @classmethod
    def check_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be blank")
        return value


class CommentResponse(BaseModel):
    """Schema for comment information returned by the API."""

    id: str
    confession_id: str
    content: str
    gender: CommentGender
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
