"""Query collaborator: how the feed engine reads and writes confessions.

`ConfessionQuery` is the contract; `HttpConfessionQuery` implements it over
the backing API with httpx. Records cross this boundary as plain mappings and
are shaped by the normalizer.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Protocol

import httpx

from inkognito.core.settings import settings
from inkognito.feed.errors import MutationError, QueryError
from inkognito.schemas import Category

logger = logging.getLogger(__name__)

Record = Mapping[str, Any]

HTTP_NOT_FOUND = 404
HTTP_BAD_REQUEST = 400


class ConfessionQuery(Protocol):
    """Read/write interface of the external confession store.

    Implementations report failures as `QueryError` (reads) or
    `MutationError` (writes). The engine still treats any other exception
    from a page or comment load as a failed load.
    """

    async def fetch_confessions(
        self,
        *,
        limit: int,
        category: Category | None = None,
        after: datetime | None = None,
        before: datetime | None = None,
        search: str | None = None,
    ) -> Sequence[Record]: ...

    async def fetch_confession(self, confession_id: str) -> Record | None: ...

    async def fetch_comments(self, confession_id: str) -> Sequence[Record]: ...

    async def insert_confession(self, draft: Mapping[str, Any]) -> Record: ...

    async def insert_comment(self, confession_id: str, draft: Mapping[str, Any]) -> Record: ...

    async def increment_like(self, confession_id: str) -> None: ...

    async def update_confession(
        self, confession_id: str, changes: Mapping[str, Any]
    ) -> Record: ...

    async def delete_confession(self, confession_id: str) -> None: ...

    async def delete_comment(self, comment_id: str) -> None: ...


@dataclass(frozen=True)
class QueryConfig:
    """Immutable configuration for the HTTP collaborator."""

    base_url: str
    api_key: str | None
    timeout_seconds: float
    moderator_token: str | None = None


def load_query_config(moderator_token: str | None = None) -> QueryConfig:
    """Build configuration object from global settings."""
    return QueryConfig(
        base_url=settings.api_base_url,
        api_key=settings.api_key,
        timeout_seconds=float(settings.http_timeout_seconds),
        moderator_token=moderator_token,
    )


class HttpConfessionQuery:
    """httpx-backed `ConfessionQuery` for the Inkognito API."""

    def __init__(
        self,
        config: QueryConfig | None = None,
        *,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.config = config or load_query_config()
        self._client = client
        self._owns_client = client is None
        self._client_lock = asyncio.Lock()

    async def _ensure_client(self) -> httpx.AsyncClient:
        async with self._client_lock:
            if self._client is None:
                base_url = self.config.base_url.rstrip("/") + "/"
                self._client = httpx.AsyncClient(
                    base_url=base_url,
                    timeout=httpx.Timeout(self.config.timeout_seconds),
                )
        return self._client

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    def _headers(self, *, moderator: bool = False) -> dict[str, str]:
        headers: dict[str, str] = {}
        if self.config.api_key:
            headers["apikey"] = self.config.api_key
        if moderator and self.config.moderator_token:
            headers["Authorization"] = f"Bearer {self.config.moderator_token}"
        return headers

    async def _request(
        self,
        method: str,
        path: str,
        *,
        error: type[QueryError] | type[MutationError],
        params: Mapping[str, Any] | None = None,
        json_data: Any | None = None,
        moderator: bool = False,
    ) -> httpx.Response:
        client = await self._ensure_client()
        try:
            response = await client.request(
                method,
                path,
                params=params,
                json=json_data,
                headers=self._headers(moderator=moderator),
            )
        except httpx.HTTPError as exc:
            raise error(f"{method} {path} failed: {exc}") from exc

        if response.status_code >= HTTP_BAD_REQUEST:
            raise error(
                f"{method} {path} responded with {response.status_code}",
                status_code=response.status_code,
            )
        return response

    @staticmethod
    def _json(
        response: httpx.Response, error: type[QueryError] | type[MutationError]
    ) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            raise error(f"Malformed JSON from {response.request.url}: {exc}") from exc

    async def fetch_confessions(
        self,
        *,
        limit: int,
        category: Category | None = None,
        after: datetime | None = None,
        before: datetime | None = None,
        search: str | None = None,
    ) -> list[Record]:
        params: dict[str, Any] = {"limit": limit}
        if category is not None and category is not Category.ALL:
            params["category"] = category.value
        if after is not None:
            params["after"] = after.isoformat()
        if before is not None:
            params["before"] = before.isoformat()
        if search:
            params["q"] = search
        response = await self._request("GET", "confessions/", params=params, error=QueryError)
        return list(self._json(response, QueryError))

    async def fetch_confession(self, confession_id: str) -> Record | None:
        try:
            response = await self._request(
                "GET", f"confessions/{confession_id}", error=QueryError
            )
        except QueryError as exc:
            if exc.status_code == HTTP_NOT_FOUND:
                return None
            raise
        return self._json(response, QueryError)

    async def fetch_comments(self, confession_id: str) -> list[Record]:
        response = await self._request(
            "GET", f"confessions/{confession_id}/comments/", error=QueryError
        )
        return list(self._json(response, QueryError))

    async def insert_confession(self, draft: Mapping[str, Any]) -> Record:
        response = await self._request(
            "POST", "confessions/", json_data=dict(draft), error=MutationError
        )
        return self._json(response, MutationError)

    async def insert_comment(self, confession_id: str, draft: Mapping[str, Any]) -> Record:
        response = await self._request(
            "POST",
            f"confessions/{confession_id}/comments/",
            json_data=dict(draft),
            error=MutationError,
        )
        return self._json(response, MutationError)

    async def increment_like(self, confession_id: str) -> None:
        await self._request("POST", f"confessions/{confession_id}/like", error=MutationError)

    async def update_confession(
        self, confession_id: str, changes: Mapping[str, Any]
    ) -> Record:
        response = await self._request(
            "PATCH",
            f"moderation/confessions/{confession_id}",
            json_data=dict(changes),
            error=MutationError,
            moderator=True,
        )
        return self._json(response, MutationError)

    async def delete_confession(self, confession_id: str) -> None:
        await self._request(
            "DELETE",
            f"moderation/confessions/{confession_id}",
            error=MutationError,
            moderator=True,
        )

    async def delete_comment(self, comment_id: str) -> None:
        await self._request(
            "DELETE",
            f"moderation/comments/{comment_id}",
            error=MutationError,
            moderator=True,
        )
