"""Lazy loading of comment lists, at most one fetch per confession."""

from __future__ import annotations

import asyncio
import logging

from inkognito.feed.errors import QueryError
from inkognito.feed.normalizer import normalize_comments
from inkognito.feed.query import ConfessionQuery
from inkognito.feed.store import FeedStore

logger = logging.getLogger(__name__)


class CommentLoader:
    """Fetches a confession's comments the first time they are needed.

    Concurrent callers for the same confession share one in-flight fetch.
    Results that land after the store moved to a new generation are dropped.
    """

    def __init__(self, query: ConfessionQuery, store: FeedStore) -> None:
        self.query = query
        self.store = store
        self._inflight: dict[tuple[int, str], asyncio.Task[bool]] = {}

    def is_loading(self, confession_id: str) -> bool:
        return (self.store.generation, confession_id) in self._inflight

    async def ensure_loaded(self, confession_id: str) -> bool:
        """Make sure the comment list of `confession_id` is loaded.

        Returns True when the list is loaded afterwards, False when the entry
        is not in the window or the result went stale.

        Raises:
            QueryError: If the fetch failed. The entry falls back to
                not-loaded so a later call retries.
        """
        entry = self.store.get(confession_id)
        if entry is None:
            return False
        if entry.comments_loaded:
            return True

        key = (self.store.generation, confession_id)
        task = self._inflight.get(key)
        if task is None:
            self.store.begin_comment_load(confession_id)
            task = asyncio.create_task(self._load(confession_id, key[0]))
            self._inflight[key] = task

            def _forget(done: asyncio.Task[bool], key: tuple[int, str] = key) -> None:
                if self._inflight.get(key) is done:
                    del self._inflight[key]

            task.add_done_callback(_forget)
        return await asyncio.shield(task)

    async def _load(self, confession_id: str, generation: int) -> bool:
        try:
            records = await self.query.fetch_comments(confession_id)
        except Exception as exc:
            logger.warning("Loading comments for %s failed: %s", confession_id, exc)
            if self.store.generation == generation:
                self.store.abort_comment_load(confession_id)
            if isinstance(exc, QueryError):
                raise
            raise QueryError(f"Loading comments failed: {exc}") from exc

        if self.store.generation != generation:
            logger.debug("Dropping stale comments for %s", confession_id)
            return False
        return self.store.install_comments(confession_id, normalize_comments(records))
