# src/inkognito/api/v1/endpoints/moderation.py
"""Moderator-only edit and delete endpoints."""

from fastapi import APIRouter, status

from inkognito.api.v1.dependencies import (
    ChangeFeedDep,
    ModeratorDep,
    SessionDep,
    confession_response,
    not_found,
)
from inkognito.repositories import ConfessionRepository
from inkognito.schemas import ConfessionResponse, ConfessionUpdate

router = APIRouter(
    prefix="/moderation",
    tags=["moderation"],
    dependencies=[ModeratorDep],
)


@router.patch("/confessions/{confession_id}", response_model=ConfessionResponse)
async def update_confession(
    confession_id: str,
    payload: ConfessionUpdate,
    db: SessionDep,
    changes: ChangeFeedDep,
) -> ConfessionResponse:
    """Edit the title, content or category of a confession.

    Raises:
        HTTPException: If the confession does not exist
    """
    repo = ConfessionRepository(db)
    confession = repo.get_by_id(confession_id)
    if confession is None:
        raise not_found("Confession")

    values = payload.model_dump(exclude_none=True, mode="json")
    repo.update(confession, values)
    db.commit()
    db.refresh(confession)

    response = confession_response(confession, repo.count_comments(confession_id))
    changes.publish("confessions", "update", response.model_dump(mode="json"))
    return response


@router.delete("/confessions/{confession_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_confession(
    confession_id: str,
    db: SessionDep,
    changes: ChangeFeedDep,
) -> None:
    """Delete a confession together with all of its comments.

    Raises:
        HTTPException: If the confession does not exist
    """
    repo = ConfessionRepository(db)
    confession = repo.get_by_id(confession_id)
    if confession is None:
        raise not_found("Confession")

    repo.delete(confession)
    db.commit()
    changes.publish("confessions", "delete", {"id": confession_id})


@router.delete("/comments/{comment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_comment(
    comment_id: str,
    db: SessionDep,
    changes: ChangeFeedDep,
) -> None:
    """Delete a single comment.

    Raises:
        HTTPException: If the comment does not exist
    """
    repo = ConfessionRepository(db)
    comment = repo.get_comment(comment_id)
    if comment is None:
        raise not_found("Comment")

    confession_id = comment.confession_id
    repo.delete_comment(comment)
    db.commit()
    changes.publish(
        "comments",
        "delete",
        {"id": comment_id, "confession_id": confession_id},
    )
