# tests/feed/test_comment_loader.py
from __future__ import annotations

import asyncio

import pytest

from inkognito.feed import CommentsState, FeedSession, NoticeLevel, QueryError
from inkognito.schemas import Category
from inkognito.services.change_feed import ChangeEvent

from tests.conftest import at
from tests.feed.fakes import FakeConfessionQuery


@pytest.mark.asyncio
async def test_concurrent_callers_share_one_fetch(
    feed: FeedSession, fake_query: FakeConfessionQuery
) -> None:
    row = fake_query.add_confession(created_at=at(1))
    fake_query.add_comment(row["id"], created_at=at(2))
    await feed.start(Category.ALL)

    results = await asyncio.gather(
        feed.comments.ensure_loaded(row["id"]),
        feed.comments.ensure_loaded(row["id"]),
        feed.comments.ensure_loaded(row["id"]),
    )

    assert results == [True, True, True]
    assert fake_query.calls["fetch_comments"] == 1


@pytest.mark.asyncio
async def test_expanding_again_does_not_refetch(
    feed: FeedSession, fake_query: FakeConfessionQuery
) -> None:
    row = fake_query.add_confession(created_at=at(1))
    fake_query.add_comment(row["id"], created_at=at(2), content="first")
    fake_query.add_comment(row["id"], created_at=at(3), content="second")
    await feed.start(Category.ALL)

    assert await feed.expand(row["id"]) is True
    assert await feed.expand(row["id"]) is False
    assert await feed.expand(row["id"]) is True

    entry = feed.store.get(row["id"])
    assert [comment.content for comment in entry.comments] == ["second", "first"]
    assert fake_query.calls["fetch_comments"] == 1


@pytest.mark.asyncio
async def test_zero_comment_list_counts_as_loaded(
    feed: FeedSession, fake_query: FakeConfessionQuery
) -> None:
    row = fake_query.add_confession(created_at=at(1))
    await feed.start(Category.ALL)

    await feed.expand(row["id"])
    await feed.comments.ensure_loaded(row["id"])

    entry = feed.store.get(row["id"])
    assert entry.comments_state is CommentsState.LOADED
    assert entry.comments == []
    assert fake_query.calls["fetch_comments"] == 1


@pytest.mark.asyncio
async def test_failed_load_can_be_retried(
    feed: FeedSession, fake_query: FakeConfessionQuery
) -> None:
    row = fake_query.add_confession(created_at=at(1))
    fake_query.add_comment(row["id"], created_at=at(2))
    await feed.start(Category.ALL)
    fake_query.fail["fetch_comments"] = QueryError("timeout")

    assert await feed.expand(row["id"]) is True
    assert feed.store.get(row["id"]).comments_state is CommentsState.NOT_LOADED
    assert feed.notices.recent[-1].level is NoticeLevel.ERROR

    fake_query.fail["fetch_comments"] = QueryError("timeout again")
    with pytest.raises(QueryError):
        await feed.comments.ensure_loaded(row["id"])

    assert await feed.comments.ensure_loaded(row["id"]) is True
    assert len(feed.store.get(row["id"]).comments) == 1


@pytest.mark.asyncio
async def test_unexpected_fetch_error_resets_comment_state(
    feed: FeedSession, fake_query: FakeConfessionQuery
) -> None:
    row = fake_query.add_confession(created_at=at(1))
    await feed.start(Category.ALL)
    fake_query.fail["fetch_comments"] = ConnectionError("socket closed")

    with pytest.raises(QueryError):
        await feed.comments.ensure_loaded(row["id"])

    assert feed.store.get(row["id"]).comments_state is CommentsState.NOT_LOADED
    assert not feed.comments.is_loading(row["id"])


@pytest.mark.asyncio
async def test_comments_for_a_previous_window_are_dropped(
    feed: FeedSession, fake_query: FakeConfessionQuery
) -> None:
    row = fake_query.add_confession(created_at=at(1), category=Category.TEEN)
    fake_query.add_comment(row["id"], created_at=at(2))
    await feed.start(Category.TEEN)
    gate = fake_query.hold("fetch_comments")

    pending = asyncio.create_task(feed.comments.ensure_loaded(row["id"]))
    await asyncio.sleep(0)
    await feed.select_category(Category.ALL)
    gate.set()

    assert await pending is False
    assert feed.store.get(row["id"]).comments_state is CommentsState.NOT_LOADED


@pytest.mark.asyncio
async def test_comment_arriving_mid_load_is_kept(
    feed: FeedSession, fake_query: FakeConfessionQuery
) -> None:
    row = fake_query.add_confession(created_at=at(1))
    fake_query.add_comment(row["id"], created_at=at(2))
    fake_query.add_comment(row["id"], created_at=at(3))
    await feed.start(Category.ALL)
    gate = fake_query.hold("fetch_comments")

    pending = asyncio.create_task(feed.comments.ensure_loaded(row["id"]))
    await asyncio.sleep(0)
    assert feed.store.get(row["id"]).comments_state is CommentsState.LOADING
    feed.apply_event(
        _comment_event(
            {
                "id": "k-late",
                "confession_id": row["id"],
                "content": "late",
                "gender": "ai",
                "created_at": at(9).isoformat(),
            }
        )
    )
    gate.set()
    await pending

    entry = feed.store.get(row["id"])
    assert [comment.id for comment in entry.comments][0] == "k-late"
    assert len(entry.comments) == 3
    assert entry.comment_count == 3


def _comment_event(payload: dict) -> ChangeEvent:
    return ChangeEvent(table="comments", event="insert", payload=payload)
