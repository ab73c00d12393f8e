"""In-memory shapes of feed entries."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from inkognito.schemas import Category, CommentGender, Gender


class CommentsState(Enum):
    """Whether a confession's comment list has been fetched."""

    NOT_LOADED = "not_loaded"
    LOADING = "loading"
    LOADED = "loaded"


@dataclass
class FeedComment:
    id: str
    confession_id: str
    content: str
    gender: CommentGender
    created_at: datetime

    @property
    def sort_key(self) -> tuple[datetime, str]:
        return (self.created_at, self.id)


@dataclass
class FeedConfession:
    """A confession as held by the feed window.

    `comment_count` is the server's count; `comments` is only meaningful once
    `comments_state` is LOADED, and is then the complete list, newest first.
    """

    id: str
    title: str
    content: str
    gender: Gender
    category: Category
    likes: int
    created_at: datetime
    slug: str
    comment_count: int = 0
    # False when the source record carried no count (bare real-time rows).
    comment_count_reported: bool = field(default=True, repr=False, compare=False)
    comments: list[FeedComment] = field(default_factory=list)
    comments_state: CommentsState = CommentsState.NOT_LOADED
    # Comments delivered while a load is in flight, merged when it lands.
    pending_comments: list[FeedComment] = field(default_factory=list, repr=False)
    # Ids already reflected in comment_count by local adds or pushes.
    counted_comment_ids: set[str] = field(default_factory=set, repr=False)
    # Ids already discarded, so an echoed delete is not subtracted twice.
    discarded_comment_ids: set[str] = field(default_factory=set, repr=False)

    @property
    def sort_key(self) -> tuple[datetime, str]:
        return (self.created_at, self.id)

    @property
    def comments_loaded(self) -> bool:
        return self.comments_state is CommentsState.LOADED
