"""Exception taxonomy for the inbox engine.

Soft errors (SourceError and friends) are isolated per source or per PR and
reported as strings on the poll cycle. RateLimitError is the subset that puts
the scheduler into backoff instead of being reported and forgotten.
"""

from __future__ import annotations

from github import GithubException, RateLimitExceededException

_RATE_LIMIT_MARKERS = ("rate limit", "ratelimited", "too many requests")


class PrinboxError(Exception):
    """Base class for all prinbox errors."""


class SourceError(PrinboxError):
    """A source could not be polled (bad configuration, missing auth, ...)."""


class ChannelNotFoundError(SourceError):
    def __init__(self, channel_name: str):
        super().__init__(f"Cannot access channel: {channel_name}")
        self.channel_name = channel_name


class SlackAPIError(PrinboxError):
    def __init__(self, method: str, error: str):
        super().__init__(f"Slack API {method} failed: {error}")
        self.method = method
        self.error = error


class RateLimitError(PrinboxError):
    def __init__(self, message: str = "rate limit exceeded", retry_after: int | None = None):
        super().__init__(message)
        self.retry_after = retry_after


def is_rate_limit_error(exc: BaseException) -> bool:
    """Return True if ``exc`` signals upstream rate limiting."""
    if isinstance(exc, (RateLimitError, RateLimitExceededException)):
        return True
    if isinstance(exc, GithubException) and exc.status in (403, 429):
        return True
    # requests.HTTPError and friends carry the response.
    response = getattr(exc, "response", None)
    if getattr(response, "status_code", None) == 429:
        return True
    message = str(exc).lower()
    return any(marker in message for marker in _RATE_LIMIT_MARKERS)
