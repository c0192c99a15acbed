"""Minimal Slack Web API client for reading channel history.

Only the two read calls the channel adapter needs are wrapped. Errors are
mapped onto the prinbox taxonomy: throttling becomes RateLimitError, missing
or rejected credentials become SourceError so the poll cycle can report them
softly.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import requests

from prinbox_core.errors import ChannelNotFoundError, RateLimitError, SlackAPIError, SourceError
from prinbox_core.utils.time import parse_iso

logger = logging.getLogger(__name__)

SLACK_API_BASE = "https://slack.com/api"
DEFAULT_LOOKBACK_DAYS = 7
_PAGE_SIZE = 200
_MAX_PAGES = 20
_AUTH_ERRORS = {"not_authed", "invalid_auth", "account_inactive", "token_revoked", "missing_scope"}


@dataclass(frozen=True)
class Message:
    text: str
    timestamp: str  # Slack "ts", seconds since epoch as a decimal string


class SlackClient:
    def __init__(self, token: str | None, timeout: float = 10.0, session: requests.Session | None = None):
        self._token = token
        self._timeout = timeout
        self._session = session or requests.Session()

    def _call(self, method: str, params: dict) -> dict:
        if not self._token:
            raise SourceError("Slack token not configured. Set SLACK_TOKEN to poll channel sources.")

        response = self._session.get(
            f"{SLACK_API_BASE}/{method}",
            headers={"Authorization": f"Bearer {self._token}"},
            params=params,
            timeout=self._timeout,
        )
        if response.status_code == 429:
            retry_after = response.headers.get("Retry-After")
            raise RateLimitError(
                f"Slack rate limit hit on {method}",
                retry_after=int(retry_after) if retry_after and retry_after.isdigit() else None,
            )
        response.raise_for_status()

        data = response.json()
        if data.get("ok"):
            return data

        error = data.get("error", "unknown_error")
        if error == "ratelimited":
            raise RateLimitError(f"Slack rate limit hit on {method}")
        if error in _AUTH_ERRORS:
            raise SourceError(f"Slack authentication failed ({error}). Check SLACK_TOKEN.")
        raise SlackAPIError(method, error)

    def resolve_channel_id(self, name: str) -> str:
        """Find the id of a channel by its human-readable name (``#`` optional)."""
        wanted = name.lstrip("#").lower()
        cursor = None
        for _ in range(_MAX_PAGES):
            params = {"types": "public_channel,private_channel", "exclude_archived": "true", "limit": _PAGE_SIZE}
            if cursor:
                params["cursor"] = cursor
            data = self._call("conversations.list", params)
            for channel in data.get("channels", []):
                if channel.get("name", "").lower() == wanted:
                    return channel["id"]
            cursor = (data.get("response_metadata") or {}).get("next_cursor")
            if not cursor:
                break
        raise ChannelNotFoundError(name)

    def fetch_messages_since(
        self,
        channel_id: str,
        since: str | None = None,
        lookback_days: int = DEFAULT_LOOKBACK_DAYS,
    ) -> list[Message]:
        """Return messages posted after ``since`` (ISO-8601).

        Without ``since`` the last ``lookback_days`` days are returned.
        """
        if since:
            oldest = parse_iso(since)
        else:
            oldest = datetime.now(timezone.utc) - timedelta(days=lookback_days)

        messages: list[Message] = []
        cursor = None
        for _ in range(_MAX_PAGES):
            params = {"channel": channel_id, "oldest": f"{oldest.timestamp():.6f}", "limit": _PAGE_SIZE}
            if cursor:
                params["cursor"] = cursor
            data = self._call("conversations.history", params)
            for msg in data.get("messages", []):
                messages.append(Message(text=msg.get("text", ""), timestamp=msg.get("ts", "")))
            cursor = (data.get("response_metadata") or {}).get("next_cursor")
            if not data.get("has_more") or not cursor:
                break
        logger.debug("Fetched %d message(s) from %s", len(messages), channel_id)
        return messages
