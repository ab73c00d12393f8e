# src/inkognito/models/confession.py
"""SQLAlchemy model for anonymous confessions."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, DateTime, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from inkognito.db.session import Base
from inkognito.db.time import utcnow

if TYPE_CHECKING:
    from .comment import Comment


def _new_id() -> str:
    return str(uuid.uuid4())


class Confession(Base):
    """An anonymous confession posted to the public feed.

    `created_at` is the sole ordering key of the feed; `id` breaks ties so
    pagination over equal timestamps stays deterministic.
    """

    __tablename__ = "confession"
    __table_args__ = (
        CheckConstraint("likes >= 0", name="ck_confession_likes_non_negative"),
        Index("ix_confession_created_at_id", "created_at", "id"),
        Index("ix_confession_category_created_at", "category", "created_at"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    gender: Mapped[str] = mapped_column(String(16), nullable=False)
    category: Mapped[str] = mapped_column(String(64), nullable=False)
    likes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Derived from the title once on insert; stable for the lifetime of the id.
    slug: Mapped[str] = mapped_column(String(96), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )

    # Optional subscriber for comment notifications; never exposed by the API.
    author_email: Mapped[str | None] = mapped_column(String(320), nullable=True)

    comments: Mapped[list[Comment]] = relationship(
        back_populates="confession",
        cascade="all, delete-orphan",
    )
