"""Exceptions raised by the feed engine.

External failures are converted into these at the collaborator boundary and
handled by the component that issued the call; none of them escapes into the
store.
"""


class FeedError(RuntimeError):
    """Base exception for feed engine failures."""


class QueryError(FeedError):
    """A read against the confession store failed (network or storage)."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class MutationError(FeedError):
    """A write (insert, like, moderator edit) was rejected or did not complete."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class NormalizationError(FeedError):
    """A fetched or pushed record could not be shaped into a feed entry."""


class ModeratorRequiredError(FeedError, PermissionError):
    """A moderator-only operation was attempted without the capability."""
