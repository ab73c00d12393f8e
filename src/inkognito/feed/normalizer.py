"""Entity normalizer: raw records in, feed entries out.

Records come from the query collaborator (API JSON) or from real-time
payloads, which carry the bare row without aggregates.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from inkognito.feed.entities import CommentsState, FeedComment, FeedConfession
from inkognito.feed.errors import NormalizationError
from inkognito.schemas import Category, CommentGender, Gender
from inkognito.services.slug import slugify

logger = logging.getLogger(__name__)


class _ConfessionRecord(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    title: str
    content: str
    gender: Gender
    category: Category
    likes: int = Field(default=0, ge=0)
    created_at: datetime
    slug: str | None = None
    comment_count: int | None = Field(default=None, ge=0)
    # PostgREST-style aggregate: [{"count": n}]
    comments: list[dict[str, Any]] | None = None


class _CommentRecord(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    confession_id: str
    content: str
    gender: CommentGender
    created_at: datetime


def _utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def _comment_count(record: _ConfessionRecord) -> int | None:
    if record.comment_count is not None:
        return record.comment_count
    if record.comments:
        count = record.comments[0].get("count")
        if isinstance(count, int) and count >= 0:
            return count
    return None


def normalize_confession(record: Mapping[str, Any]) -> FeedConfession:
    """Shape one raw confession record into a feed entry without comments.

    Raises:
        NormalizationError: If required fields are missing or invalid.
    """
    try:
        parsed = _ConfessionRecord.model_validate(dict(record))
    except ValidationError as exc:
        raise NormalizationError(f"Invalid confession record: {exc}") from exc

    if parsed.category is Category.ALL:
        raise NormalizationError(f"Confession {parsed.id} has no concrete category")

    comment_count = _comment_count(parsed)
    return FeedConfession(
        id=parsed.id,
        title=parsed.title,
        content=parsed.content,
        gender=parsed.gender,
        category=parsed.category,
        likes=parsed.likes,
        created_at=_utc(parsed.created_at),
        slug=parsed.slug or slugify(parsed.title),
        comment_count=comment_count or 0,
        comment_count_reported=comment_count is not None,
        comments=[],
        comments_state=CommentsState.NOT_LOADED,
    )


def normalize_comment(record: Mapping[str, Any]) -> FeedComment:
    """Shape one raw comment record.

    Raises:
        NormalizationError: If required fields are missing or invalid.
    """
    try:
        parsed = _CommentRecord.model_validate(dict(record))
    except ValidationError as exc:
        raise NormalizationError(f"Invalid comment record: {exc}") from exc

    return FeedComment(
        id=parsed.id,
        confession_id=parsed.confession_id,
        content=parsed.content,
        gender=parsed.gender,
        created_at=_utc(parsed.created_at),
    )


def normalize_batch(records: Iterable[Mapping[str, Any]]) -> list[FeedConfession]:
    """Normalize a fetched page, dropping records that cannot be shaped.

    Records that fail validation are logged and skipped.
    """
    entries: list[FeedConfession] = []
    for record in records:
        try:
            entries.append(normalize_confession(record))
        except NormalizationError as exc:
            logger.error("Skipping confession record: %s", exc, exc_info=True)
    return entries


def normalize_comments(records: Iterable[Mapping[str, Any]]) -> list[FeedComment]:
    """Normalize a comment list, dropping records that cannot be shaped."""
    comments: list[FeedComment] = []
    for record in records:
        try:
            comments.append(normalize_comment(record))
        except NormalizationError as exc:
            logger.error("Skipping comment record: %s", exc, exc_info=True)
    return comments
