"""Shared API dependencies and response helpers."""

from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from inkognito.core.security import is_moderator_token
from inkognito.db.session import get_db
from inkognito.db.time import as_utc
from inkognito.models import Comment, Confession
from inkognito.schemas import CommentResponse, ConfessionResponse
from inkognito.services.change_feed import ChangeFeed, get_change_feed

# HTTP Bearer scheme for the moderator capability; anonymous routes never use it.
bearer_scheme = HTTPBearer(auto_error=False)

# Type alias for database session dependency
SessionDep = Annotated[Session, Depends(get_db)]


def get_change_feed_dep() -> ChangeFeed:
    """Return the change hub writes are published to."""
    return get_change_feed()


ChangeFeedDep = Annotated[ChangeFeed, Depends(get_change_feed_dep)]


def require_moderator(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
) -> None:
    """Reject the request unless it carries a moderator token.

    Raises:
        HTTPException: 401 without credentials, 403 when the token is not a
            valid moderator token.
    """
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Moderator credentials required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if not is_moderator_token(credentials.credentials):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Moderator role required",
        )


ModeratorDep = Depends(require_moderator)


def confession_response(confession: Confession, comment_count: int) -> ConfessionResponse:
    """Convert a Confession ORM instance to an API schema."""
    return ConfessionResponse(
        id=confession.id,
        title=confession.title,
        content=confession.content,
        gender=confession.gender,
        category=confession.category,
        likes=confession.likes,
        created_at=as_utc(confession.created_at),
        slug=confession.slug,
        comment_count=comment_count,
    )


def comment_response(comment: Comment) -> CommentResponse:
    """Convert a Comment ORM instance to an API schema."""
    return CommentResponse(
        id=comment.id,
        confession_id=comment.confession_id,
        content=comment.content,
        gender=comment.gender,
        created_at=as_utc(comment.created_at),
    )


def not_found(entity: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"{entity} not found",
    )
