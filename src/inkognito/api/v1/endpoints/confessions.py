# src/inkognito/api/v1/endpoints/confessions.py
"""Confession listing, posting and liking endpoints."""

from datetime import datetime

from fastapi import APIRouter, HTTPException, Query, status

from inkognito.api.v1.dependencies import (
    ChangeFeedDep,
    SessionDep,
    confession_response,
    not_found,
)
from inkognito.core.settings import settings
from inkognito.db.time import as_utc
from inkognito.repositories import ConfessionRepository
from inkognito.schemas import Category, ConfessionCreate, ConfessionResponse

router = APIRouter(prefix="/confessions", tags=["confessions"])


@router.get("/", response_model=list[ConfessionResponse])
async def list_confessions(
    db: SessionDep,
    limit: int = Query(
        settings.feed_page_size,
        ge=1,
        le=settings.feed_max_page_size,
        description="Maximum number of confessions to return",
    ),
    category: Category | None = Query(None, description="Category filter"),
    before: datetime | None = Query(None, description="Only confessions created before this"),
    after: datetime | None = Query(None, description="Only confessions created after this"),
    q: str | None = Query(None, max_length=200, description="Text search in title and content"),
) -> list[ConfessionResponse]:
    """List one page of confessions.

    Args:
        db: Database session
        limit: Page size
        category: Category filter; the ALL sentinel means no filter
        before: Exclusive upper time bound (older page)
        after: Exclusive lower time bound (newer page)
        q: Optional case-insensitive text search

    Returns:
        Confessions newest first, or oldest first when only `after` is given,
        each annotated with its comment count.

    Raises:
        HTTPException: If `after` is not earlier than `before`
    """
    if before is not None and after is not None and as_utc(after) >= as_utc(before):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="'after' must be earlier than 'before'",
        )

    repo = ConfessionRepository(db)
    rows = repo.list_page(
        limit=limit,
        category=category,
        before=as_utc(before) if before is not None else None,
        after=as_utc(after) if after is not None else None,
        search=q.strip() if q and q.strip() else None,
    )
    return [confession_response(confession, count) for confession, count in rows]


@router.get("/{confession_id}", response_model=ConfessionResponse)
async def get_confession(confession_id: str, db: SessionDep) -> ConfessionResponse:
    """Get a single confession with its comment count.

    Raises:
        HTTPException: If the confession does not exist
    """
    row = ConfessionRepository(db).get_with_count(confession_id)
    if row is None:
        raise not_found("Confession")
    return confession_response(*row)


@router.post(
    "/",
    response_model=ConfessionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_confession(
    payload: ConfessionCreate,
    db: SessionDep,
    changes: ChangeFeedDep,
) -> ConfessionResponse:
    """Post a new anonymous confession.

    The server assigns id, timestamp and slug. The insert is published to the
    change feed once committed.
    """
    repo = ConfessionRepository(db)
    confession = repo.create(
        title=payload.title.strip(),
        content=payload.content,
        gender=payload.gender.value,
        category=payload.category.value,
        author_email=payload.author_email,
    )
    db.commit()
    db.refresh(confession)

    response = confession_response(confession, 0)
    changes.publish("confessions", "insert", response.model_dump(mode="json"))
    return response


@router.post("/{confession_id}/like", status_code=status.HTTP_204_NO_CONTENT)
async def like_confession(
    confession_id: str,
    db: SessionDep,
    changes: ChangeFeedDep,
) -> None:
    """Increment the like counter of a confession.

    Raises:
        HTTPException: If the confession does not exist
    """
    repo = ConfessionRepository(db)
    confession = repo.increment_likes(confession_id)
    if confession is None:
        raise not_found("Confession")
    db.commit()

    response = confession_response(confession, repo.count_comments(confession_id))
    changes.publish("confessions", "update", response.model_dump(mode="json"))
