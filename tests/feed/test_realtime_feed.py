# tests/feed/test_realtime_feed.py
from __future__ import annotations

import asyncio

import pytest

from inkognito.feed import FeedSession
from inkognito.schemas import Category
from inkognito.services.change_feed import ChangeFeed

from tests.conftest import at
from tests.feed.fakes import FakeConfessionQuery, settle


def pushed_confession(confession_id: str, minutes: float, category: Category) -> dict:
    return {
        "id": confession_id,
        "title": f"Pushed {confession_id}",
        "content": "live",
        "gender": "male",
        "category": category.value,
        "likes": 0,
        "created_at": at(minutes).isoformat(),
    }


@pytest.mark.asyncio
async def test_matching_insert_appears_at_the_top(
    live_feed: FeedSession, fake_query: FakeConfessionQuery, hub: ChangeFeed
) -> None:
    for minute in range(3):
        fake_query.add_confession(created_at=at(minute), category=Category.LOVE)
    await live_feed.start(Category.LOVE)

    hub.publish("confessions", "insert", pushed_confession("love-1", 100, Category.LOVE))
    hub.publish("confessions", "insert", pushed_confession("edu-1", 101, Category.EDUCATION))
    await settle()

    ids = live_feed.window.ids
    assert ids[0] == "love-1"
    assert "edu-1" not in ids
    assert len(ids) == 4


@pytest.mark.asyncio
async def test_all_filter_accepts_every_category(
    live_feed: FeedSession, hub: ChangeFeed
) -> None:
    await live_feed.start(Category.ALL)

    hub.publish("confessions", "insert", pushed_confession("love-1", 100, Category.LOVE))
    hub.publish("confessions", "insert", pushed_confession("edu-1", 101, Category.EDUCATION))
    await settle()

    assert live_feed.window.ids == ["edu-1", "love-1"]


@pytest.mark.asyncio
async def test_duplicate_delivery_is_absorbed(live_feed: FeedSession, hub: ChangeFeed) -> None:
    await live_feed.start(Category.ALL)
    payload = pushed_confession("dup", 100, Category.TEEN)

    hub.publish("confessions", "insert", payload)
    hub.publish("confessions", "insert", payload)
    await settle()

    assert live_feed.window.ids == ["dup"]


@pytest.mark.asyncio
async def test_update_and_delete_events_follow_the_server(
    live_feed: FeedSession, fake_query: FakeConfessionQuery, hub: ChangeFeed
) -> None:
    row = fake_query.add_confession(created_at=at(1), category=Category.HEALTH, likes=1)
    await live_feed.start(Category.HEALTH)

    hub.publish("confessions", "update", {**row, "likes": 5})
    await settle()
    assert live_feed.store.get(row["id"]).likes == 5

    hub.publish("confessions", "update", {**row, "category": Category.FAMILY.value})
    await settle()
    assert row["id"] not in live_feed.store

    other = fake_query.add_confession(created_at=at(2), category=Category.HEALTH)
    await live_feed.start(Category.HEALTH)
    hub.publish("confessions", "delete", {"id": other["id"]})
    await settle()
    assert other["id"] not in live_feed.window.ids


@pytest.mark.asyncio
async def test_bare_row_update_keeps_the_comment_count(
    live_feed: FeedSession, fake_query: FakeConfessionQuery, hub: ChangeFeed
) -> None:
    row = fake_query.add_confession(created_at=at(1), likes=5)
    for minute in range(3):
        fake_query.add_comment(row["id"], created_at=at(2 + minute))
    await live_feed.start(Category.ALL)
    assert live_feed.store.get(row["id"]).comment_count == 3

    hub.publish("confessions", "update", {**row, "likes": 6})
    await settle()

    entry = live_feed.store.get(row["id"])
    assert entry.likes == 6
    assert entry.comment_count == 3


@pytest.mark.asyncio
async def test_comment_events_update_the_owning_entry(
    live_feed: FeedSession, fake_query: FakeConfessionQuery, hub: ChangeFeed
) -> None:
    row = fake_query.add_confession(created_at=at(1))
    await live_feed.start(Category.ALL)
    comment = {
        "id": "k-live",
        "confession_id": row["id"],
        "content": "same here",
        "gender": "incognito",
        "created_at": at(5).isoformat(),
    }

    hub.publish("comments", "insert", comment)
    hub.publish("comments", "insert", comment)
    await settle()
    assert live_feed.store.get(row["id"]).comment_count == 1

    hub.publish("comments", "delete", {"id": "k-live", "confession_id": row["id"]})
    await settle()
    assert live_feed.store.get(row["id"]).comment_count == 0


@pytest.mark.asyncio
async def test_events_during_initial_load_are_replayed(
    live_feed: FeedSession, fake_query: FakeConfessionQuery, hub: ChangeFeed
) -> None:
    fake_query.add_confession(created_at=at(1))
    gate = fake_query.hold("fetch_confessions")

    loading = asyncio.create_task(live_feed.start(Category.ALL))
    await asyncio.sleep(0)
    hub.publish("confessions", "insert", pushed_confession("early", 50, Category.OTHER))
    await settle()
    gate.set()
    await loading
    await settle()

    assert live_feed.window.ids[0] == "early"
    assert len(live_feed.window.ids) == 2


@pytest.mark.asyncio
async def test_anchored_window_ignores_inserts_until_it_reaches_the_head(
    live_feed: FeedSession, fake_query: FakeConfessionQuery, hub: ChangeFeed
) -> None:
    rows = [fake_query.add_confession(created_at=at(minute)) for minute in range(30)]
    await live_feed.open_at(rows[10]["id"])

    hub.publish("confessions", "insert", pushed_confession("fresh", 500, Category.OTHER))
    await settle()
    assert "fresh" not in live_feed.window.ids

    while not live_feed.window.exhausted_newer:
        await live_feed.load_newer()
    hub.publish("confessions", "insert", pushed_confession("fresher", 501, Category.OTHER))
    await settle()
    assert live_feed.window.ids[0] == "fresher"


@pytest.mark.asyncio
async def test_channel_is_replaced_on_filter_change_and_closed_on_close(
    fake_query: FakeConfessionQuery, hub: ChangeFeed
) -> None:
    session = FeedSession(fake_query, realtime=hub, page_size=10)
    await session.start(Category.ALL)
    assert hub.subscriber_count == 1

    await session.select_category(Category.TEEN)
    assert hub.subscriber_count == 1

    await session.close()
    assert hub.subscriber_count == 0


@pytest.mark.asyncio
async def test_malformed_event_is_ignored(live_feed: FeedSession, hub: ChangeFeed) -> None:
    await live_feed.start(Category.ALL)

    hub.publish("confessions", "insert", {"id": "broken"})
    hub.publish("confessions", "insert", pushed_confession("ok", 10, Category.OTHER))
    await settle()

    assert live_feed.window.ids == ["ok"]
