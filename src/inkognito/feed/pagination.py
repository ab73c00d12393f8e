"""Pagination controller for one category session of the feed.

Tracks the oldest/newest cursors, per-direction loading and exhaustion flags,
and the session token that lets late results from a previous filter be
recognised and dropped. It also owns the real-time channel of the session.
"""

from __future__ import annotations

import asyncio
import contextlib
import itertools
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from inkognito.core.settings import settings
from inkognito.feed import realtime as rt
from inkognito.feed.entities import FeedConfession
from inkognito.feed.errors import NormalizationError
from inkognito.feed.normalizer import (
    normalize_batch,
    normalize_comment,
    normalize_confession,
)
from inkognito.feed.notices import NoticeBus
from inkognito.feed.query import ConfessionQuery
from inkognito.feed.realtime import RealtimeChannel, RealtimeEvent, RealtimeSource
from inkognito.feed.store import FeedStore, MergeMode
from inkognito.schemas import Category

logger = logging.getLogger(__name__)


class Direction(Enum):
    OLDER = "older"
    NEWER = "newer"


class PageOutcome(Enum):
    """Result of a load request."""

    LOADED = "loaded"
    EXHAUSTED = "exhausted"
    SUPPRESSED = "suppressed"
    STALE = "stale"
    FAILED = "failed"


@dataclass
class DirectionState:
    cursor: datetime | None = None
    loading: bool = False
    exhausted: bool = False


@dataclass
class SessionState:
    """Everything that belongs to one (category, search) session."""

    token: int
    category: Category
    search: str | None = None
    anchored: bool = False
    loading_initial: bool = False
    older: DirectionState = field(default_factory=DirectionState)
    newer: DirectionState = field(default_factory=DirectionState)
    buffered_events: list[RealtimeEvent] = field(default_factory=list)

    def side(self, direction: Direction) -> DirectionState:
        return self.older if direction is Direction.OLDER else self.newer

    @property
    def at_head(self) -> bool:
        """True when nothing newer than the window is known to exist."""
        return not self.anchored or self.newer.exhausted


class PaginationController:
    """Loads pages into a `FeedStore` and keeps the session's bookkeeping."""

    def __init__(
        self,
        query: ConfessionQuery,
        store: FeedStore,
        notices: NoticeBus,
        *,
        page_size: int | None = None,
        realtime: RealtimeSource | None = None,
        on_change: Callable[[], None] | None = None,
    ) -> None:
        self.query = query
        self.store = store
        self.notices = notices
        self.page_size = page_size or settings.feed_page_size
        self.realtime = realtime
        self._on_change = on_change
        self._tokens = itertools.count(1)
        self.state: SessionState | None = None
        self._channel: RealtimeChannel | None = None
        self._listener: asyncio.Task[None] | None = None

    # -- session bookkeeping -------------------------------------------------

    def _changed(self) -> None:
        if self._on_change is not None:
            self._on_change()

    def is_current(self, state: SessionState) -> bool:
        return self.state is not None and self.state.token == state.token

    def _begin_session(
        self, category: Category, search: str | None, *, anchored: bool
    ) -> SessionState:
        self._close_channel()
        state = SessionState(
            token=next(self._tokens),
            category=category,
            search=search,
            anchored=anchored,
            loading_initial=True,
        )
        self.state = state
        self.store.reset()
        self._open_channel(state)
        self._changed()
        return state

    def _finish_initial(self, state: SessionState) -> None:
        state.loading_initial = False
        state.older.cursor = self.store.oldest
        state.newer.cursor = self.store.newest
        buffered, state.buffered_events = state.buffered_events, []
        for event in buffered:
            self._dispatch(event)

    def _fail_initial(self, state: SessionState, exc: Exception) -> PageOutcome:
        state.loading_initial = False
        state.older.exhausted = True
        state.newer.exhausted = True
        logger.warning("Initial feed load failed: %s", exc)
        self.notices.error("Could not load confessions. Please try again later.")
        self._changed()
        return PageOutcome.FAILED

    async def _fetch(
        self,
        state: SessionState,
        *,
        limit: int,
        before: datetime | None = None,
        after: datetime | None = None,
    ) -> Sequence[Any]:
        return await self.query.fetch_confessions(
            limit=limit,
            category=state.category,
            before=before,
            after=after,
            search=state.search,
        )

    # -- loads ----------------------------------------------------------------

    async def start(self, category: Category, search: str | None = None) -> PageOutcome:
        """Begin a head-of-feed session and load its first page."""
        state = self._begin_session(category, search, anchored=False)
        try:
            records = await self._fetch(state, limit=self.page_size)
        except Exception as exc:  # collaborator failures of any kind end the load
            if not self.is_current(state):
                return PageOutcome.STALE
            return self._fail_initial(state, exc)

        if not self.is_current(state):
            logger.debug("Discarding initial page for stale session %d", state.token)
            return PageOutcome.STALE

        self.store.apply(normalize_batch(records), MergeMode.REPLACE)
        shortfall = len(records) < self.page_size
        state.older.exhausted = shortfall
        state.newer.exhausted = shortfall
        self._finish_initial(state)
        self._changed()
        return PageOutcome.EXHAUSTED if shortfall else PageOutcome.LOADED

    async def open_at(
        self, confession_id: str, category: Category = Category.ALL
    ) -> FeedConfession | None:
        """Begin a session centred on one confession.

        Loads the target plus one page strictly older and half a page strictly
        newer. Returns the target entry, or None when it does not exist, the
        load failed or the session was superseded meanwhile.
        """
        state = self._begin_session(category, None, anchored=True)
        newer_limit = max(1, self.page_size // 2)
        try:
            record = await self.query.fetch_confession(confession_id)
            if record is None:
                if self.is_current(state):
                    state.loading_initial = False
                    state.older.exhausted = True
                    state.newer.exhausted = True
                    self.notices.warning("That confession no longer exists.")
                    self._changed()
                return None
            target = normalize_confession(record)
            older, newer = await asyncio.gather(
                self._fetch(state, limit=self.page_size, before=target.created_at),
                self._fetch(state, limit=newer_limit, after=target.created_at),
            )
        except Exception as exc:  # collaborator failures of any kind end the load
            if self.is_current(state):
                self._fail_initial(state, exc)
            return None

        if not self.is_current(state):
            logger.debug("Discarding anchored load for stale session %d", state.token)
            return None

        batch = [target, *normalize_batch(older), *normalize_batch(newer)]
        self.store.apply(batch, MergeMode.REPLACE)
        state.older.exhausted = len(older) < self.page_size
        state.newer.exhausted = len(newer) < newer_limit
        self._finish_initial(state)
        self._changed()
        return self.store.get(target.id)

    async def load_older(self) -> PageOutcome:
        return await self._load(Direction.OLDER)

    async def load_newer(self) -> PageOutcome:
        return await self._load(Direction.NEWER)

    async def _load(self, direction: Direction) -> PageOutcome:
        state = self.state
        if state is None or state.loading_initial:
            return PageOutcome.SUPPRESSED
        side = state.side(direction)
        if side.loading or side.exhausted:
            return PageOutcome.SUPPRESSED

        side.loading = True
        self._changed()
        try:
            if direction is Direction.OLDER:
                records = await self._fetch(state, limit=self.page_size, before=side.cursor)
            else:
                records = await self._fetch(state, limit=self.page_size, after=side.cursor)
        except Exception as exc:  # collaborator failures of any kind end the load
            side.loading = False
            if not self.is_current(state):
                return PageOutcome.STALE
            side.exhausted = True
            logger.warning("Loading %s confessions failed: %s", direction.value, exc)
            self.notices.error("Could not load more confessions.")
            self._changed()
            return PageOutcome.FAILED
        finally:
            side.loading = False

        if not self.is_current(state):
            logger.debug(
                "Discarding %s page for stale session %d", direction.value, state.token
            )
            return PageOutcome.STALE

        mode = MergeMode.APPEND_OLDER if direction is Direction.OLDER else MergeMode.PREPEND_NEWER
        self.store.apply(normalize_batch(records), mode)
        # Cursors follow the extremes of everything loaded, not just this batch.
        if direction is Direction.OLDER:
            side.cursor = _earliest(side.cursor, self.store.oldest)
        else:
            side.cursor = _latest(side.cursor, self.store.newest)

        shortfall = len(records) < self.page_size
        if shortfall:
            side.exhausted = True
        self._changed()
        return PageOutcome.EXHAUSTED if shortfall else PageOutcome.LOADED

    # -- filter checks ----------------------------------------------------------

    def matches_filter(self, entry: FeedConfession) -> bool:
        """True if `entry` belongs under the active category."""
        return self.state is not None and self.state.category.matches(entry.category)

    def _accepts_pushed_insert(self, state: SessionState, entry: FeedConfession) -> bool:
        if state.search or not state.category.matches(entry.category):
            return False
        if not state.at_head and (
            state.newer.cursor is None or entry.created_at > state.newer.cursor
        ):
            return False
        if (
            not state.older.exhausted
            and state.older.cursor is not None
            and entry.created_at < state.older.cursor
        ):
            return False
        return True

    # -- real-time ------------------------------------------------------------

    def _open_channel(self, state: SessionState) -> None:
        if self.realtime is None:
            return
        channel = self.realtime.subscribe()
        self._channel = channel
        self._listener = asyncio.create_task(self._consume(channel, state))

    def _close_channel(self) -> asyncio.Task[None] | None:
        channel, listener = self._channel, self._listener
        self._channel = None
        self._listener = None
        if channel is not None:
            channel.close()
        if listener is not None and not listener.done():
            listener.cancel()
        return listener

    async def _consume(self, channel: RealtimeChannel, state: SessionState) -> None:
        async for event in channel:
            if not self.is_current(state):
                break
            if state.loading_initial:
                state.buffered_events.append(event)
                continue
            self._dispatch(event)

    def _dispatch(self, event: RealtimeEvent) -> None:
        try:
            changed = self.apply_event(event)
        except NormalizationError as exc:
            logger.error("Ignoring malformed %s event: %s", event.table, exc, exc_info=True)
            return
        if changed:
            self._changed()

    def apply_event(self, event: RealtimeEvent) -> bool:
        """Fold one real-time row event into the window.

        Returns True if the window changed. Duplicate deliveries are no-ops.

        Raises:
            NormalizationError: If the payload cannot be shaped.
        """
        state = self.state
        if state is None:
            return False
        payload = event.payload

        if event.table == rt.CONFESSIONS:
            if event.event == rt.INSERT:
                entry = normalize_confession(payload)
                if not self._accepts_pushed_insert(state, entry):
                    return False
                return self.store.upsert(entry)
            if event.event == rt.UPDATE:
                entry = normalize_confession(payload)
                if entry.id not in self.store:
                    return False
                if not state.category.matches(entry.category):
                    return self.store.remove(entry.id) is not None
                return self.store.refresh(entry)
            if event.event == rt.DELETE:
                return self.store.remove(str(payload.get("id"))) is not None

        elif event.table == rt.COMMENTS:
            if event.event == rt.INSERT:
                return self.store.add_comment(normalize_comment(payload))
            if event.event == rt.DELETE:
                return self.store.discard_comment(
                    str(payload.get("confession_id")), str(payload.get("id"))
                )

        return False

    async def close(self) -> None:
        """End the session: drop the state and close its channel."""
        self.state = None
        listener = self._close_channel()
        if listener is not None:
            with contextlib.suppress(asyncio.CancelledError):
                await listener


def _earliest(current: datetime | None, candidate: datetime | None) -> datetime | None:
    if current is None:
        return candidate
    if candidate is None:
        return current
    return min(current, candidate)


def _latest(current: datetime | None, candidate: datetime | None) -> datetime | None:
    if current is None:
        return candidate
    if candidate is None:
        return current
    return max(current, candidate)
