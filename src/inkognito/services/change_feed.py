"""In-process change hub for confession and comment row events.

The backing API publishes one event per committed write. Subscribers (feed
sessions running in the same process, tests) each get their own unbounded
queue; no filtering happens here, relevance is decided by the consumer.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Literal

logger = logging.getLogger(__name__)

Table = Literal["confessions", "comments"]
EventType = Literal["insert", "update", "delete"]


@dataclass(frozen=True)
class ChangeEvent:
    """A single row change, shaped like a Postgres change notification."""

    table: Table
    event: EventType
    payload: Mapping[str, Any] = field(default_factory=dict)


class ChangeSubscription:
    """Async iterator over events published after the subscription was opened."""

    def __init__(self, hub: ChangeFeed) -> None:
        self._hub = hub
        self._queue: asyncio.Queue[ChangeEvent | None] = asyncio.Queue()
        self.closed = False

    def _deliver(self, event: ChangeEvent) -> None:
        if not self.closed:
            self._queue.put_nowait(event)

    def close(self) -> None:
        """Stop delivery and wake any pending consumer."""
        if self.closed:
            return
        self.closed = True
        self._hub._detach(self)
        self._queue.put_nowait(None)

    def __aiter__(self) -> ChangeSubscription:
        return self

    async def __anext__(self) -> ChangeEvent:
        if self.closed and self._queue.empty():
            raise StopAsyncIteration
        event = await self._queue.get()
        if event is None:
            raise StopAsyncIteration
        return event


class ChangeFeed:
    """Fan-out hub: every subscriber sees every event."""

    def __init__(self) -> None:
        self._subscriptions: list[ChangeSubscription] = []

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    def subscribe(self) -> ChangeSubscription:
        subscription = ChangeSubscription(self)
        self._subscriptions.append(subscription)
        logger.debug("Change feed subscriber attached (%d total)", self.subscriber_count)
        return subscription

    def _detach(self, subscription: ChangeSubscription) -> None:
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)

    def publish(self, table: Table, event: EventType, payload: Mapping[str, Any]) -> ChangeEvent:
        change = ChangeEvent(table=table, event=event, payload=dict(payload))
        for subscription in list(self._subscriptions):
            subscription._deliver(change)
        return change


_change_feed: ChangeFeed | None = None


def get_change_feed() -> ChangeFeed:
    """Return the process-wide change hub."""
    global _change_feed
    if _change_feed is None:
        _change_feed = ChangeFeed()
    return _change_feed
