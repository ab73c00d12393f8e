"""Mutation coordinator: likes, posts, comments and moderator edits.

Every write goes to the server first or is compensated on failure, so the
window never keeps an effect the server rejected.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import Any

from pydantic import ValidationError

from inkognito.core.settings import settings
from inkognito.feed.comments import CommentLoader
from inkognito.feed.entities import FeedComment, FeedConfession
from inkognito.feed.errors import (
    FeedError,
    ModeratorRequiredError,
    MutationError,
    QueryError,
)
from inkognito.feed.functions import FunctionInvoker
from inkognito.feed.normalizer import normalize_comment, normalize_confession
from inkognito.feed.notices import NoticeBus
from inkognito.feed.query import ConfessionQuery
from inkognito.feed.store import FeedStore
from inkognito.schemas import CommentCreate, ConfessionCreate, ConfessionUpdate

logger = logging.getLogger(__name__)

Draft = Mapping[str, Any] | ConfessionCreate
CommentDraft = Mapping[str, Any] | CommentCreate
ChangeDraft = Mapping[str, Any] | ConfessionUpdate


class MutationCoordinator:
    """Applies user and moderator writes against the server and the store."""

    def __init__(
        self,
        query: ConfessionQuery,
        store: FeedStore,
        comments: CommentLoader,
        notices: NoticeBus,
        *,
        functions: FunctionInvoker | None = None,
        is_moderator: bool = False,
        accepts: Callable[[FeedConfession], bool] | None = None,
        on_change: Callable[[], None] | None = None,
    ) -> None:
        self.query = query
        self.store = store
        self.comments = comments
        self.notices = notices
        self.functions = functions
        self.is_moderator = is_moderator
        self._accepts = accepts
        self._on_change = on_change

    def _changed(self) -> None:
        if self._on_change is not None:
            self._on_change()

    def _fire(self, function_name: str, payload: Mapping[str, Any]) -> None:
        if self.functions is not None:
            self.functions.fire(function_name, payload)

    def _require_moderator(self) -> None:
        if not self.is_moderator:
            raise ModeratorRequiredError("This action requires a moderator session")

    # -- likes --------------------------------------------------------------

    async def like(self, confession_id: str) -> bool:
        """Optimistically add a like; roll it back if the server refuses.

        Returns True when the server accepted the like.
        """
        entry = self.store.get(confession_id)
        if entry is None:
            return False
        self.store.adjust_likes(confession_id, +1)
        self._changed()
        try:
            await self.query.increment_like(confession_id)
        except (MutationError, QueryError) as exc:
            logger.warning("Like on %s failed: %s", confession_id, exc)
            # Only compensate the entry we incremented, not a reloaded copy.
            if self.store.get(confession_id) is entry:
                self.store.adjust_likes(confession_id, -1)
                self._changed()
            self.notices.error("Your like could not be saved.")
            return False
        return True

    # -- posting ------------------------------------------------------------

    async def post_confession(self, draft: Draft) -> FeedConfession | None:
        """Insert a confession and merge the server's copy into the window.

        Nothing is shown before the server confirms. Returns the confirmed
        entry whenever the server accepted the insert, even when it does not
        belong under the active filter and is left out of the window. Returns
        None only when validation or the insert failed.
        """
        try:
            payload = ConfessionCreate.model_validate(draft)
        except ValidationError as exc:
            logger.info("Rejected confession draft: %s", exc)
            self.notices.warning("Please fill in a title, the text and a category.")
            return None

        try:
            record = await self.query.insert_confession(payload.model_dump(mode="json"))
            entry = normalize_confession(record)
        except FeedError as exc:
            logger.warning("Posting confession failed: %s", exc)
            self.notices.error("Your confession could not be published.")
            return None

        self.notices.info("Your confession was published.")
        self._fire(
            settings.ai_comment_function,
            {"confessionId": entry.id, "confessionContent": entry.content},
        )
        if self._accepts is not None and not self._accepts(entry):
            return entry

        self.store.upsert(entry)
        if entry.comment_count == 0:
            self.store.mark_comments_empty(entry.id)
        self._changed()
        return self.store.get(entry.id)

    async def post_comment(
        self, confession_id: str, draft: CommentDraft
    ) -> FeedComment | None:
        """Insert a comment and count it exactly once in the window."""
        try:
            payload = CommentCreate.model_validate(draft)
        except ValidationError as exc:
            logger.info("Rejected comment draft: %s", exc)
            self.notices.warning("A comment cannot be empty.")
            return None

        try:
            await self.comments.ensure_loaded(confession_id)
        except QueryError as exc:
            logger.warning("Posting without loaded comments for %s: %s", confession_id, exc)

        try:
            record = await self.query.insert_comment(
                confession_id, payload.model_dump(mode="json")
            )
            comment = normalize_comment(record)
        except FeedError as exc:
            logger.warning("Posting comment on %s failed: %s", confession_id, exc)
            self.notices.error("Your comment could not be published.")
            return None

        if self.store.add_comment(comment):
            self._changed()
        self._fire(
            settings.comment_notification_function,
            {"confession_id": confession_id, "comment_content": comment.content},
        )
        return comment

    # -- moderator operations -------------------------------------------------

    async def edit_confession(
        self, confession_id: str, changes: ChangeDraft
    ) -> FeedConfession | None:
        """Apply a moderator edit and adopt the server's copy.

        Raises:
            ModeratorRequiredError: If the session has no moderator capability.
        """
        self._require_moderator()
        try:
            payload = ConfessionUpdate.model_validate(changes)
        except ValidationError as exc:
            logger.info("Rejected moderator edit: %s", exc)
            self.notices.warning("The edit is not valid.")
            return None

        try:
            record = await self.query.update_confession(
                confession_id, payload.model_dump(mode="json", exclude_none=True)
            )
            entry = normalize_confession(record)
        except FeedError as exc:
            logger.warning("Editing confession %s failed: %s", confession_id, exc)
            self.notices.error("The confession could not be updated.")
            return None

        if self._accepts is not None and not self._accepts(entry):
            self.store.remove(entry.id)
        else:
            self.store.refresh(entry)
        self._changed()
        return entry

    async def delete_confession(self, confession_id: str) -> bool:
        """Delete a confession (its comments go with it) and drop it locally.

        Raises:
            ModeratorRequiredError: If the session has no moderator capability.
        """
        self._require_moderator()
        try:
            await self.query.delete_confession(confession_id)
        except (MutationError, QueryError) as exc:
            logger.warning("Deleting confession %s failed: %s", confession_id, exc)
            self.notices.error("The confession could not be deleted.")
            return False
        if self.store.remove(confession_id) is not None:
            self._changed()
        return True

    async def delete_comment(self, confession_id: str, comment_id: str) -> bool:
        """Delete one comment and drop it from its confession's list.

        Raises:
            ModeratorRequiredError: If the session has no moderator capability.
        """
        self._require_moderator()
        try:
            await self.query.delete_comment(comment_id)
        except (MutationError, QueryError) as exc:
            logger.warning("Deleting comment %s failed: %s", comment_id, exc)
            self.notices.error("The comment could not be deleted.")
            return False
        if self.store.discard_comment(confession_id, comment_id):
            self._changed()
        return True
