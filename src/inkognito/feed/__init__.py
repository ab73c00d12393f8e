"""Feed engine: paginated, deduplicated, real-time aware confession feed."""

from .comments import CommentLoader
from .entities import CommentsState, FeedComment, FeedConfession
from .errors import (
    FeedError,
    ModeratorRequiredError,
    MutationError,
    NormalizationError,
    QueryError,
)
from .functions import FunctionInvoker
from .mutations import MutationCoordinator
from .normalizer import normalize_batch, normalize_comment, normalize_comments, normalize_confession
from .notices import Notice, NoticeBus, NoticeLevel
from .pagination import Direction, PageOutcome, PaginationController
from .query import ConfessionQuery, HttpConfessionQuery, QueryConfig, load_query_config
from .realtime import RealtimeChannel, RealtimeEvent, RealtimeSource
from .session import FeedSession, FeedWindow
from .store import FeedStore, MergeMode, merge

__all__ = [
    "CommentLoader",
    "CommentsState",
    "ConfessionQuery",
    "Direction",
    "FeedComment",
    "FeedConfession",
    "FeedError",
    "FeedSession",
    "FeedStore",
    "FeedWindow",
    "FunctionInvoker",
    "HttpConfessionQuery",
    "MergeMode",
    "ModeratorRequiredError",
    "MutationCoordinator",
    "MutationError",
    "NormalizationError",
    "Notice",
    "NoticeBus",
    "NoticeLevel",
    "PageOutcome",
    "PaginationController",
    "QueryConfig",
    "QueryError",
    "RealtimeChannel",
    "RealtimeEvent",
    "RealtimeSource",
    "load_query_config",
    "merge",
    "normalize_batch",
    "normalize_comment",
    "normalize_comments",
    "normalize_confession",
]
