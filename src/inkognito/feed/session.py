"""The feed session: one object a presentation shell drives.

`FeedSession` composes the store, pagination controller, comment loader and
mutation coordinator, converts their failures into notices, and publishes an
immutable `FeedWindow` snapshot to subscribers after every change.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from types import TracebackType

from inkognito.feed.comments import CommentLoader
from inkognito.feed.entities import FeedComment, FeedConfession
from inkognito.feed.errors import QueryError
from inkognito.feed.functions import FunctionInvoker
from inkognito.feed.mutations import ChangeDraft, CommentDraft, Draft, MutationCoordinator
from inkognito.feed.notices import NoticeBus
from inkognito.feed.pagination import PageOutcome, PaginationController
from inkognito.feed.query import ConfessionQuery
from inkognito.feed.realtime import RealtimeEvent, RealtimeSource
from inkognito.feed.store import FeedStore
from inkognito.schemas import Category

logger = logging.getLogger(__name__)

WindowListener = Callable[["FeedWindow"], None]


@dataclass(frozen=True)
class FeedWindow:
    """Read-only snapshot of what the feed currently shows."""

    entries: tuple[FeedConfession, ...]
    category: Category | None
    search: str | None
    loading_initial: bool
    loading_older: bool
    loading_newer: bool
    exhausted_older: bool
    exhausted_newer: bool
    expanded_id: str | None

    @property
    def ids(self) -> list[str]:
        return [entry.id for entry in self.entries]


class FeedSession:
    """Async facade over the feed engine."""

    def __init__(
        self,
        query: ConfessionQuery,
        *,
        realtime: RealtimeSource | None = None,
        functions: FunctionInvoker | None = None,
        notices: NoticeBus | None = None,
        page_size: int | None = None,
        is_moderator: bool = False,
    ) -> None:
        self.store = FeedStore()
        self.notices = notices or NoticeBus()
        self.pagination = PaginationController(
            query,
            self.store,
            self.notices,
            page_size=page_size,
            realtime=realtime,
            on_change=self._emit,
        )
        self.comments = CommentLoader(query, self.store)
        self.mutations = MutationCoordinator(
            query,
            self.store,
            self.comments,
            self.notices,
            functions=functions if functions is not None else FunctionInvoker(),
            is_moderator=is_moderator,
            accepts=self.pagination.matches_filter,
            on_change=self._emit,
        )
        self.expanded_id: str | None = None
        self._listeners: list[WindowListener] = []

    # -- reactive surface ------------------------------------------------------

    @property
    def window(self) -> FeedWindow:
        state = self.pagination.state
        return FeedWindow(
            entries=self.store.entries,
            category=state.category if state else None,
            search=state.search if state else None,
            loading_initial=bool(state and state.loading_initial),
            loading_older=bool(state and state.older.loading),
            loading_newer=bool(state and state.newer.loading),
            exhausted_older=bool(state and state.older.exhausted),
            exhausted_newer=bool(state and state.newer.exhausted),
            expanded_id=self.expanded_id,
        )

    def subscribe(self, listener: WindowListener) -> Callable[[], None]:
        """Register `listener` for window snapshots; returns an unsubscribe callable."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _emit(self) -> None:
        if self.expanded_id is not None and self.expanded_id not in self.store:
            self.expanded_id = None
        if not self._listeners:
            return
        snapshot = self.window
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("Window listener %r failed", listener)

    # -- sessions ----------------------------------------------------------------

    async def start(
        self, category: Category | str = Category.ALL, search: str | None = None
    ) -> PageOutcome:
        self.expanded_id = None
        return await self.pagination.start(Category(category), _clean(search))

    async def select_category(self, category: Category | str) -> PageOutcome:
        """Switch the category filter; selecting the active one is a no-op."""
        category = Category(category)
        state = self.pagination.state
        if state is not None and not state.anchored and state.category is category:
            return PageOutcome.SUPPRESSED
        return await self.start(category, state.search if state else None)

    async def search(self, text: str | None) -> PageOutcome:
        state = self.pagination.state
        category = state.category if state else Category.ALL
        return await self.start(category, text)

    async def open_at(self, confession_id: str) -> FeedConfession | None:
        """Open the feed around one confession and expand it."""
        self.expanded_id = None
        entry = await self.pagination.open_at(confession_id)
        if entry is not None:
            await self.expand(entry.id)
        return entry

    async def load_older(self) -> PageOutcome:
        return await self.pagination.load_older()

    async def load_newer(self) -> PageOutcome:
        return await self.pagination.load_newer()

    def apply_event(self, event: RealtimeEvent) -> bool:
        """Feed one real-time event in directly (shells with their own transport)."""
        changed = self.pagination.apply_event(event)
        if changed:
            self._emit()
        return changed

    # -- expansion -----------------------------------------------------------------

    async def expand(self, confession_id: str) -> bool:
        """Toggle the expanded entry; expanding lazy-loads its comments.

        Returns True when `confession_id` is expanded afterwards.
        """
        if self.expanded_id == confession_id:
            self.expanded_id = None
            self._emit()
            return False
        if confession_id not in self.store:
            return False
        self.expanded_id = confession_id
        self._emit()
        try:
            loaded = await self.comments.ensure_loaded(confession_id)
        except QueryError:
            self.notices.error("Could not load comments.")
            self._emit()
            return True
        if loaded:
            self._emit()
        return True

    # -- mutations -------------------------------------------------------------------

    async def like(self, confession_id: str) -> bool:
        return await self.mutations.like(confession_id)

    async def post_confession(self, draft: Draft) -> FeedConfession | None:
        """Publish a confession; once merged it becomes the expanded entry."""
        entry = await self.mutations.post_confession(draft)
        if entry is not None and entry.id in self.store:
            self.expanded_id = entry.id
            self._emit()
        return entry

    async def post_comment(
        self, confession_id: str, draft: CommentDraft
    ) -> FeedComment | None:
        return await self.mutations.post_comment(confession_id, draft)

    async def edit_confession(
        self, confession_id: str, changes: ChangeDraft
    ) -> FeedConfession | None:
        return await self.mutations.edit_confession(confession_id, changes)

    async def delete_confession(self, confession_id: str) -> bool:
        return await self.mutations.delete_confession(confession_id)

    async def delete_comment(self, confession_id: str, comment_id: str) -> bool:
        return await self.mutations.delete_comment(confession_id, comment_id)

    # -- lifecycle ---------------------------------------------------------------------

    async def close(self) -> None:
        await self.pagination.close()
        self.store.dispose()
        self.expanded_id = None
        self._listeners.clear()

    async def __aenter__(self) -> FeedSession:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()


def _clean(search: str | None) -> str | None:
    if search is None:
        return None
    text = search.strip()
    return text or None
