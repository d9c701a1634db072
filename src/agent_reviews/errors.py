from __future__ import annotations


class AgentReviewsError(Exception):
    """Base class for errors reported to the user."""


class ConfigurationError(AgentReviewsError):
    pass


class NetworkError(AgentReviewsError):
    pass


class FetchError(AgentReviewsError):
    def __init__(self, status: int, url: str) -> None:
        super().__init__(f"API request failed: HTTP {status} for {url}")
        self.status = status
        self.url = url


class ReplyError(AgentReviewsError):
    """Raised when both the thread reply and the fallback comment were rejected."""

    def __init__(self, status: int, body: str, first_status: int | None = None) -> None:
        detail = f"Failed to reply: {status} - {body}"
        if first_status is not None:
            detail += f" (thread reply returned {first_status})"
        super().__init__(detail)
        self.status = status
        self.body = body
        self.first_status = first_status


class CommentNotFoundError(AgentReviewsError):
    pass
