"""Real-time collaborator contract.

A source hands out one channel per subscription; the channel yields row
events until closed. The transport does not filter by category, so the
consumer decides what is relevant.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Mapping
from typing import Any, Protocol

CONFESSIONS = "confessions"
COMMENTS = "comments"

INSERT = "insert"
UPDATE = "update"
DELETE = "delete"


class RealtimeEvent(Protocol):
    table: str
    event: str
    payload: Mapping[str, Any]


class RealtimeChannel(Protocol):
    def __aiter__(self) -> AsyncIterator[RealtimeEvent]: ...

    def close(self) -> None: ...


class RealtimeSource(Protocol):
    def subscribe(self) -> RealtimeChannel: ...
