# src/inkognito/models/comment.py
"""SQLAlchemy model for comments on confessions."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from inkognito.db.session import Base
from inkognito.db.time import utcnow

if TYPE_CHECKING:
    from .confession import Confession


class Comment(Base):
    """Anonymous comment attached to exactly one confession."""

    __tablename__ = "comment"
    __table_args__ = (
        Index("ix_comment_confession_created_at", "confession_id", "created_at"),
    )

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )
    confession_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("confession.id", ondelete="CASCADE"),
        nullable=False,
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    # "ai" marks comments written by the generation function.
    gender: Mapped[str] = mapped_column(String(16), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )

    confession: Mapped[Confession] = relationship(back_populates="comments")
