# tests/feed/test_normalizer.py
from __future__ import annotations

from datetime import UTC

import pytest

from inkognito.feed import NormalizationError, normalize_batch, normalize_comment, normalize_confession
from inkognito.schemas import Category, CommentGender


def raw_confession(**overrides):
    record = {
        "id": "c1",
        "title": "Първа любов",
        "content": "Никога не казах.",
        "gender": "female",
        "category": "Любов и Секс",
        "likes": 3,
        "created_at": "2026-03-01T10:00:00+02:00",
    }
    record.update(overrides)
    return record


def test_normalize_confession_converts_to_utc_and_derives_slug() -> None:
    entry = normalize_confession(raw_confession())

    assert entry.created_at.tzinfo is UTC
    assert entry.created_at.hour == 8
    assert entry.slug == "parva-lyubov"
    assert entry.category is Category.LOVE
    assert entry.comment_count == 0


def test_normalize_confession_reads_aggregate_comment_count() -> None:
    entry = normalize_confession(raw_confession(comments=[{"count": 4}]))

    assert entry.comment_count == 4


def test_explicit_comment_count_wins_over_aggregate() -> None:
    entry = normalize_confession(raw_confession(comment_count=2, comments=[{"count": 9}]))

    assert entry.comment_count == 2


def test_bare_row_marks_comment_count_as_unreported() -> None:
    bare = normalize_confession(raw_confession())
    counted = normalize_confession(raw_confession(comment_count=0))

    assert bare.comment_count_reported is False
    assert counted.comment_count_reported is True


def test_naive_timestamps_are_treated_as_utc() -> None:
    entry = normalize_confession(raw_confession(created_at="2026-03-01T10:00:00"))

    assert entry.created_at.tzinfo is UTC
    assert entry.created_at.hour == 10


def test_missing_fields_raise_normalization_error() -> None:
    record = raw_confession()
    del record["title"]

    with pytest.raises(NormalizationError):
        normalize_confession(record)


def test_all_sentinel_is_not_a_stored_category() -> None:
    with pytest.raises(NormalizationError):
        normalize_confession(raw_confession(category="Всички"))


def test_normalize_batch_skips_bad_records() -> None:
    batch = normalize_batch([raw_confession(), {"id": "broken"}, raw_confession(id="c2")])

    assert [entry.id for entry in batch] == ["c1", "c2"]


def test_normalize_comment_accepts_ai_gender() -> None:
    comment = normalize_comment(
        {
            "id": "k1",
            "confession_id": "c1",
            "content": "Всичко ще бъде наред.",
            "gender": "ai",
            "created_at": "2026-03-01T10:05:00Z",
        }
    )

    assert comment.gender is CommentGender.AI
    assert comment.created_at.tzinfo is UTC
