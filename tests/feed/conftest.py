# tests/feed/conftest.py
from __future__ import annotations

from collections.abc import AsyncIterator

import pytest
import pytest_asyncio

from inkognito.feed import FeedSession
from inkognito.services.change_feed import ChangeFeed

from tests.feed.fakes import FakeConfessionQuery


@pytest.fixture()
def hub() -> ChangeFeed:
    return ChangeFeed()


@pytest.fixture()
def fake_query(hub: ChangeFeed) -> FakeConfessionQuery:
    return FakeConfessionQuery(changes=hub)


@pytest_asyncio.fixture()
async def feed(fake_query: FakeConfessionQuery) -> AsyncIterator[FeedSession]:
    """A session without real-time delivery and a page size of 10."""
    session = FeedSession(fake_query, page_size=10)
    try:
        yield session
    finally:
        await session.close()


@pytest_asyncio.fixture()
async def live_feed(fake_query: FakeConfessionQuery, hub: ChangeFeed) -> AsyncIterator[FeedSession]:
    """A session subscribed to the in-process change hub."""
    session = FeedSession(fake_query, realtime=hub, page_size=10)
    try:
        yield session
    finally:
        await session.close()


@pytest_asyncio.fixture()
async def moderator_feed(
    fake_query: FakeConfessionQuery, hub: ChangeFeed
) -> AsyncIterator[FeedSession]:
    session = FeedSession(fake_query, realtime=hub, page_size=10, is_moderator=True)
    try:
        yield session
    finally:
        await session.close()
