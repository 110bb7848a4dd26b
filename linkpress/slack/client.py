"""
Slack Web API client for reading channel history.

Authenticates with a browser session token (xoxc-...) plus the "d"
cookie, the pair captured when a workspace is added. Only the calls the
sync pipeline needs are implemented.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
import asyncio
from typing import Any

import httpx

from ..config import SlackConfig, SlackSourceConfig
from ..core.types import ChatMessage


class SlackAPIError(Exception):
    """Slack answered with ok=false."""

    def __init__(self, method: str, error: str):
        super().__init__(f"Slack API error in {method}: {error}")
        self.method = method
        self.error = error


class HistorySource(ABC):
    """Provides recent messages for a channel."""

    @abstractmethod
    async def fetch_history(self, channel_id: str, limit: int = 200) -> list[ChatMessage]:
        """Return up to limit most recent messages of a channel."""
        raise NotImplementedError

    async def aclose(self) -> None:
        return None


class SlackClient(HistorySource):
    """HistorySource backed by conversations.history."""

    def __init__(
        self,
        token: str,
        cookie: str,
        cfg: SlackConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.cfg = cfg or SlackConfig()
        headers = {"Authorization": f"Bearer {token}"}
        if cookie:
            headers["Cookie"] = f"d={cookie}"
        self._client = httpx.AsyncClient(
            base_url=self.cfg.base_url.rstrip("/") + "/",
            headers=headers,
            timeout=self.cfg.timeout_seconds,
            trust_env=self.cfg.trust_env,
            transport=transport,
        )

    @classmethod
    def from_source(cls, source: SlackSourceConfig, cfg: SlackConfig) -> "SlackClient":
        return cls(token=source.token, cookie=source.cookie, cfg=cfg)

    async def fetch_history(
        self,
        channel_id: str,
        limit: int = 200,
        oldest: str | None = None,
        latest: str | None = None,
    ) -> list[ChatMessage]:
        """Fetch up to limit messages, newest first, following cursors.

        Args:
            channel_id: Slack conversation id
            limit: Maximum number of messages to return
            oldest: Only messages after this Slack ts
            latest: Only messages before this Slack ts

        Raises:
            SlackAPIError: If Slack rejects the request
            httpx.HTTPError: If the request fails after retries
        """
        messages: list[ChatMessage] = []
        cursor: str | None = None

        while len(messages) < limit:
            params: dict[str, str] = {
                "channel": channel_id,
                "limit": str(min(limit - len(messages), self.cfg.page_size)),
            }
            if cursor:
                params["cursor"] = cursor
            if oldest:
                params["oldest"] = oldest
            if latest:
                params["latest"] = latest

            data = await self._request("conversations.history", params)
            for payload in data.get("messages") or []:
                messages.append(ChatMessage.from_slack(payload))

            cursor = (data.get("response_metadata") or {}).get("next_cursor") or None
            if not cursor:
                break

        return messages[:limit]

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, params: dict[str, str] | None = None) -> dict[str, Any]:
        retries = max(0, self.cfg.retries)
        attempt = 0

        while True:
            try:
                resp = await self._client.post(method, data=params or {})
            except httpx.TransportError:
                if attempt >= retries:
                    raise
                attempt += 1
                await asyncio.sleep(0.5 * attempt)
                continue

            if resp.status_code == 429 and attempt < retries:
                await asyncio.sleep(_retry_after(resp, attempt))
                attempt += 1
                continue
            resp.raise_for_status()

            data = resp.json()
            if not data.get("ok"):
                raise SlackAPIError(method, str(data.get("error") or "unknown_error"))
            return data


def _retry_after(resp: httpx.Response, attempt: int) -> float:
    try:
        return max(0.0, float(resp.headers.get("Retry-After", "")))
    except ValueError:
        return 0.5 * (attempt + 1)
