"""Fire-and-forget invocation of external edge functions.

Used for AI comment generation after a confession is posted and for e-mail
notification after a comment is posted. Nothing waits on the outcome; a
failure is only logged.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from typing import Any

import httpx

from inkognito.core.settings import settings

logger = logging.getLogger(__name__)


class FunctionInvoker:
    """POSTs JSON payloads to `{base_url}/{function_name}` in the background."""

    def __init__(
        self,
        base_url: str | None = None,
        *,
        api_key: str | None = None,
        timeout_seconds: float | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.base_url = base_url if base_url is not None else settings.functions_base_url
        self.api_key = api_key if api_key is not None else settings.api_key
        self.timeout_seconds = timeout_seconds or float(settings.http_timeout_seconds)
        self._client = client
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def enabled(self) -> bool:
        return bool(self.base_url)

    def fire(self, function_name: str, payload: Mapping[str, Any]) -> asyncio.Task[None] | None:
        """Schedule an invocation and return immediately."""
        if not self.enabled:
            logger.debug("Edge functions disabled; skipping %s", function_name)
            return None
        task = asyncio.create_task(self._invoke(function_name, dict(payload)))
        # Keep a reference so the task is not garbage collected mid-flight.
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _invoke(self, function_name: str, payload: dict[str, Any]) -> None:
        url = f"{(self.base_url or '').rstrip('/')}/{function_name}"
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        try:
            if self._client is not None:
                response = await self._client.post(url, json=payload, headers=headers)
            else:
                async with httpx.AsyncClient(
                    timeout=httpx.Timeout(self.timeout_seconds)
                ) as client:
                    response = await client.post(url, json=payload, headers=headers)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.warning("Edge function %s failed: %s", function_name, exc)
            return
        logger.debug("Edge function %s accepted (%d)", function_name, response.status_code)

    async def drain(self) -> None:
        """Wait for outstanding invocations (used on shutdown and in tests)."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
