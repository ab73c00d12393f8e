# src/inkognito/api/v1/endpoints/comments.py
"""Comment endpoints nested under a confession."""

from fastapi import APIRouter, status

from inkognito.api.v1.dependencies import (
    ChangeFeedDep,
    SessionDep,
    comment_response,
    not_found,
)
from inkognito.repositories import ConfessionRepository
from inkognito.schemas import CommentCreate, CommentResponse

router = APIRouter(prefix="/confessions/{confession_id}/comments", tags=["comments"])


@router.get("/", response_model=list[CommentResponse])
async def list_comments(confession_id: str, db: SessionDep) -> list[CommentResponse]:
    """Return the complete comment list of a confession, newest first.

    Raises:
        HTTPException: If the confession does not exist
    """
    repo = ConfessionRepository(db)
    if repo.get_by_id(confession_id) is None:
        raise not_found("Confession")
    return [comment_response(comment) for comment in repo.list_comments(confession_id)]


@router.post("/", response_model=CommentResponse, status_code=status.HTTP_201_CREATED)
async def create_comment(
    confession_id: str,
    payload: CommentCreate,
    db: SessionDep,
    changes: ChangeFeedDep,
) -> CommentResponse:
    """Post an anonymous comment.

    Raises:
        HTTPException: If the confession does not exist
    """
    repo = ConfessionRepository(db)
    if repo.get_by_id(confession_id) is None:
        raise not_found("Confession")

    comment = repo.create_comment(
        confession_id=confession_id,
        content=payload.content,
        gender=payload.gender.value,
    )
    db.commit()
    db.refresh(comment)

    response = comment_response(comment)
    changes.publish("comments", "insert", response.model_dump(mode="json"))
    return response
