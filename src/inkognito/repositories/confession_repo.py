"""Data access helpers for confessions and their comments."""
from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import Select, func, or_, select, update
from sqlalchemy.orm import Session

from inkognito.db.time import utcnow
from inkognito.models import Comment, Confession
from inkognito.schemas import Category
from inkognito.services.slug import slugify

__all__ = ["ConfessionRepository", "ConfessionRow"]

# (confession, comment_count) pairs as returned by the listing queries.
ConfessionRow = tuple[Confession, int]


class ConfessionRepository:
    """Thin wrapper around database access for confession entities."""

    def __init__(self, session: Session) -> None:
        """Initialize the repository with a SQLAlchemy session."""
        self.session = session

    def _with_comment_count(self) -> Select[Any]:
        counts = (
            select(Comment.confession_id, func.count(Comment.id).label("comment_count"))
            .group_by(Comment.confession_id)
            .subquery()
        )
        return select(
            Confession,
            func.coalesce(counts.c.comment_count, 0),
        ).outerjoin(counts, counts.c.confession_id == Confession.id)

    def get_by_id(self, confession_id: str) -> Confession | None:
        """Return a confession by identifier."""
        return self.session.get(Confession, confession_id)

    def get_with_count(self, confession_id: str) -> ConfessionRow | None:
        """Return a confession together with its authoritative comment count."""
        row = self.session.execute(
            self._with_comment_count().where(Confession.id == confession_id)
        ).first()
        if row is None:
            return None
        return row[0], int(row[1])

    def list_page(
        self,
        *,
        limit: int,
        category: Category | None = None,
        before: datetime | None = None,
        after: datetime | None = None,
        search: str | None = None,
    ) -> list[ConfessionRow]:
        """Return one page of confessions around the given time bounds.

        Rows are ordered newest first, except when only `after` is given: then
        the page holds the rows immediately newer than `after`, oldest first,
        so the limit keeps the ones adjacent to the cursor.
        """
        stmt = self._with_comment_count()
        if category is not None and category is not Category.ALL:
            stmt = stmt.where(Confession.category == category.value)
        if before is not None:
            stmt = stmt.where(Confession.created_at < before)
        if after is not None:
            stmt = stmt.where(Confession.created_at > after)
        if search:
            pattern = f"%{search}%"
            stmt = stmt.where(
                or_(Confession.title.ilike(pattern), Confession.content.ilike(pattern))
            )

        if after is not None and before is None:
            stmt = stmt.order_by(Confession.created_at.asc(), Confession.id.asc())
        else:
            stmt = stmt.order_by(Confession.created_at.desc(), Confession.id.desc())

        rows = self.session.execute(stmt.limit(limit)).all()
        return [(confession, int(count)) for confession, count in rows]

    def list_comments(self, confession_id: str) -> list[Comment]:
        """Return every comment of a confession, newest first."""
        result = self.session.execute(
            select(Comment)
            .where(Comment.confession_id == confession_id)
            .order_by(Comment.created_at.desc(), Comment.id.desc())
        )
        return list(result.scalars())

    def create(
        self,
        *,
        title: str,
        content: str,
        gender: str,
        category: str,
        author_email: str | None = None,
    ) -> Confession:
        """Insert a new confession and return the persisted ORM instance."""
        confession = Confession(
            title=title,
            content=content,
            gender=gender,
            category=category,
            likes=0,
            slug=slugify(title),
            created_at=utcnow(),
            author_email=author_email,
        )
        self.session.add(confession)
        self.session.flush()
        return confession

    def create_comment(self, *, confession_id: str, content: str, gender: str) -> Comment:
        """Insert a comment for an existing confession."""
        comment = Comment(
            confession_id=confession_id,
            content=content,
            gender=gender,
            created_at=utcnow(),
        )
        self.session.add(comment)
        self.session.flush()
        return comment

    def increment_likes(self, confession_id: str) -> Confession | None:
        """Atomically bump the like counter and return the refreshed row."""
        result = self.session.execute(
            update(Confession)
            .where(Confession.id == confession_id)
            .values(likes=Confession.likes + 1)
        )
        if result.rowcount == 0:
            return None
        self.session.flush()
        confession = self.get_by_id(confession_id)
        if confession is not None:
            self.session.refresh(confession)
        return confession

    def update(self, confession: Confession, changes: dict[str, Any]) -> Confession:
        """Apply moderator edits. The slug never changes after insert."""
        for field_name in ("title", "content", "category"):
            if changes.get(field_name) is not None:
                setattr(confession, field_name, changes[field_name])
        self.session.flush()
        return confession

    def delete(self, confession: Confession) -> None:
        """Remove a confession and, through the cascade, its comments."""
        self.session.delete(confession)
        self.session.flush()

    def get_comment(self, comment_id: str) -> Comment | None:
        """Return a comment by identifier."""
        return self.session.get(Comment, comment_id)

    def delete_comment(self, comment: Comment) -> None:
        """Remove a single comment."""
        self.session.delete(comment)
        self.session.flush()

    def count_comments(self, confession_id: str) -> int:
        """Return the authoritative comment count of a confession."""
        return int(
            self.session.execute(
                select(func.count(Comment.id)).where(Comment.confession_id == confession_id)
            ).scalar_one()
        )
