"""Dedup-merge store: the authoritative in-memory feed window.

Every batch, whatever its source (initial load, pagination, optimistic insert,
real-time push), enters the window through `merge`. After any merge the window
is sorted strictly descending by (created_at, id) and holds each id once.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from datetime import datetime
from enum import Enum

from inkognito.feed.entities import CommentsState, FeedComment, FeedConfession

logger = logging.getLogger(__name__)


class MergeMode(Enum):
    REPLACE = "replace"
    PREPEND_NEWER = "prepend_newer"
    APPEND_OLDER = "append_older"
    UPSERT_ONE = "upsert_one"


def _descending(entries: Iterable[FeedConfession]) -> list[FeedConfession]:
    return sorted(entries, key=lambda entry: entry.sort_key, reverse=True)


def merge(
    existing: Sequence[FeedConfession],
    incoming: Iterable[FeedConfession],
    mode: MergeMode,
) -> list[FeedConfession]:
    """Combine `incoming` into `existing` and return the new ordered window.

    Args:
        existing: The current window; assumed valid but not relied upon.
        incoming: Entries in any order, possibly duplicated.
        mode: REPLACE discards `existing`. The other modes keep the entry
            already in the window when an id collides, so a shallow page
            re-delivering an expanded confession cannot wipe its comments.

    Raises:
        ValueError: If UPSERT_ONE is given anything but exactly one entry.
    """
    batch = list(incoming)
    if mode is MergeMode.UPSERT_ONE and len(batch) != 1:
        raise ValueError(f"UPSERT_ONE merges exactly one entry, got {len(batch)}")

    pool: dict[str, FeedConfession] = {}
    if mode is not MergeMode.REPLACE:
        for entry in existing:
            pool.setdefault(entry.id, entry)
    for entry in batch:
        pool.setdefault(entry.id, entry)
    return _descending(pool.values())


class FeedStore:
    """Owns the feed window for one session.

    Lifecycle: created when a session starts, `reset()` on every filter
    change, `dispose()` when the session ends. `generation` grows on each
    reset so async work begun against an earlier window can tell.
    """

    def __init__(self) -> None:
        self._entries: list[FeedConfession] = []
        self._index: dict[str, FeedConfession] = {}
        self.generation = 0
        self.disposed = False

    # -- queries -----------------------------------------------------------

    @property
    def entries(self) -> tuple[FeedConfession, ...]:
        return tuple(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, confession_id: object) -> bool:
        return confession_id in self._index

    def get(self, confession_id: str) -> FeedConfession | None:
        return self._index.get(confession_id)

    @property
    def newest(self) -> datetime | None:
        return self._entries[0].created_at if self._entries else None

    @property
    def oldest(self) -> datetime | None:
        return self._entries[-1].created_at if self._entries else None

    # -- lifecycle ---------------------------------------------------------

    def reset(self) -> int:
        """Empty the window and start a new generation."""
        self._set([])
        self.generation += 1
        return self.generation

    def dispose(self) -> None:
        self._set([])
        self.generation += 1
        self.disposed = True

    # -- window mutations --------------------------------------------------

    def _set(self, entries: list[FeedConfession]) -> None:
        self._entries = entries
        self._index = {entry.id: entry for entry in entries}

    def apply(self, batch: Iterable[FeedConfession], mode: MergeMode) -> int:
        """Merge a batch into the window; returns how many ids were added."""
        before = 0 if mode is MergeMode.REPLACE else len(self._entries)
        self._set(merge(self._entries, batch, mode))
        return len(self._entries) - before

    def upsert(self, entry: FeedConfession) -> bool:
        """Insert `entry` unless its id is already present. Returns True if inserted."""
        if entry.id in self._index:
            return False
        self.apply([entry], MergeMode.UPSERT_ONE)
        return True

    def refresh(self, entry: FeedConfession) -> bool:
        """Adopt server-side scalar fields for an id already in the window.

        Comment state is kept. A record without a comment count (a bare
        real-time row) leaves the current count alone; the count never drops
        below the number of loaded comments.
        """
        current = self._index.get(entry.id)
        if current is None:
            return False
        current.title = entry.title
        current.content = entry.content
        current.gender = entry.gender
        current.category = entry.category
        current.likes = entry.likes
        if entry.comment_count_reported:
            current.comment_count = max(entry.comment_count, len(current.comments))
        if entry.created_at != current.created_at:
            current.created_at = entry.created_at
            self._set(_descending(self._entries))
        return True

    def remove(self, confession_id: str) -> FeedConfession | None:
        entry = self._index.get(confession_id)
        if entry is None:
            return None
        self._set([item for item in self._entries if item.id != confession_id])
        return entry

    def adjust_likes(self, confession_id: str, delta: int) -> int | None:
        """Apply a like delta; returns the new count or None if the id is gone."""
        entry = self._index.get(confession_id)
        if entry is None:
            return None
        entry.likes = max(0, entry.likes + delta)
        return entry.likes

    # -- comment list mutations ---------------------------------------------

    def begin_comment_load(self, confession_id: str) -> bool:
        entry = self._index.get(confession_id)
        if entry is None or entry.comments_state is not CommentsState.NOT_LOADED:
            return False
        entry.comments_state = CommentsState.LOADING
        return True

    def abort_comment_load(self, confession_id: str) -> None:
        entry = self._index.get(confession_id)
        if entry is not None and entry.comments_state is CommentsState.LOADING:
            entry.comments_state = CommentsState.NOT_LOADED
            entry.pending_comments.clear()

    def install_comments(self, confession_id: str, comments: Iterable[FeedComment]) -> bool:
        """Install a complete fetched comment list, folding in pending arrivals.

        The installed list is complete, so its length becomes the count. This
        drops any push that was already part of the page snapshot's count.
        """
        entry = self._index.get(confession_id)
        if entry is None:
            return False
        by_id: dict[str, FeedComment] = {}
        for comment in list(comments) + entry.pending_comments:
            if (
                comment.confession_id == confession_id
                and comment.id not in entry.discarded_comment_ids
            ):
                by_id.setdefault(comment.id, comment)
        entry.comments = sorted(by_id.values(), key=lambda c: c.sort_key, reverse=True)
        entry.pending_comments.clear()
        entry.comments_state = CommentsState.LOADED
        entry.counted_comment_ids.update(by_id)
        entry.comment_count = len(entry.comments)
        return True

    def mark_comments_empty(self, confession_id: str) -> None:
        """Record that a confession is known to have no comments yet."""
        entry = self._index.get(confession_id)
        if entry is not None and entry.comments_state is CommentsState.NOT_LOADED:
            entry.comments = []
            entry.comments_state = CommentsState.LOADED

    def add_comment(self, comment: FeedComment) -> bool:
        """Record a new comment on its confession (local post or push).

        Returns True when the comment was new. A comment id is counted at
        most once, whichever path delivers it first.
        """
        entry = self._index.get(comment.confession_id)
        if entry is None:
            return False
        if comment.id in entry.counted_comment_ids or comment.id in entry.discarded_comment_ids:
            return False
        if any(existing.id == comment.id for existing in entry.comments):
            entry.counted_comment_ids.add(comment.id)
            return False

        entry.counted_comment_ids.add(comment.id)
        entry.comment_count += 1
        if entry.comments_state is CommentsState.LOADED:
            entry.comments = sorted(
                [comment, *entry.comments], key=lambda c: c.sort_key, reverse=True
            )
        elif entry.comments_state is CommentsState.LOADING:
            entry.pending_comments.append(comment)
        return True

    def discard_comment(self, confession_id: str, comment_id: str) -> bool:
        entry = self._index.get(confession_id)
        if entry is None:
            return False
        if comment_id in entry.discarded_comment_ids:
            return False
        entry.discarded_comment_ids.add(comment_id)
        remaining = [comment for comment in entry.comments if comment.id != comment_id]
        removed = len(remaining) != len(entry.comments)
        entry.comments = remaining
        entry.pending_comments = [c for c in entry.pending_comments if c.id != comment_id]
        if not removed and entry.comments_state is CommentsState.LOADED:
            return False
        entry.comment_count = max(len(entry.comments), entry.comment_count - 1)
        return True
