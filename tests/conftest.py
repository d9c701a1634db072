"""Shared factories and fixtures for the test suite."""
from __future__ import annotations

import pytest

from agent_reviews.models import CommentKind, RawComments, Reply, ReviewComment

# ---------------------------------------------------------------------------
# REST node factories — return raw dicts that mirror API responses
# ---------------------------------------------------------------------------


def review_comment_node(
    id: int = 1,
    user: str | None = "cursor[bot]",
    body: str = "A finding",
    path: str = "src/index.py",
    line: int | None = 10,
    original_line: int | None = 10,
    diff_hunk: str = "@@ -1,3 +1,4 @@",
    in_reply_to_id: int | None = None,
    created_at: str = "2025-01-01T00:00:00Z",
    updated_at: str = "2025-01-01T00:00:00Z",
) -> dict:
    node = {
        "id": id,
        "user": {"login": user} if user else None,
        "body": body,
        "path": path,
        "line": line,
        "original_line": original_line,
        "diff_hunk": diff_hunk,
        "created_at": created_at,
        "updated_at": updated_at,
        "html_url": f"https://github.com/owner/repo/pull/1#discussion_r{id}",
    }
    if in_reply_to_id is not None:
        node["in_reply_to_id"] = in_reply_to_id
    return node


def issue_comment_node(
    id: int = 100,
    user: str | None = "alice",
    body: str = "Looks good",
    created_at: str = "2025-01-01T00:00:00Z",
    updated_at: str = "2025-01-01T00:00:00Z",
) -> dict:
    return {
        "id": id,
        "user": {"login": user} if user else None,
        "body": body,
        "created_at": created_at,
        "updated_at": updated_at,
        "html_url": f"https://github.com/owner/repo/pull/1#issuecomment-{id}",
    }


def review_node(
    id: int = 200,
    user: str | None = "bob",
    body: str | None = "Please address the comments",
    state: str = "CHANGES_REQUESTED",
    submitted_at: str = "2025-01-01T00:00:00Z",
) -> dict:
    return {
        "id": id,
        "user": {"login": user} if user else None,
        "body": body,
        "state": state,
        "submitted_at": submitted_at,
        "html_url": f"https://github.com/owner/repo/pull/1#pullrequestreview-{id}",
    }


def raw_comments(
    review_comments: list[dict] | None = None,
    issue_comments: list[dict] | None = None,
    reviews: list[dict] | None = None,
) -> RawComments:
    return RawComments(
        review_comments=review_comments or [],
        issue_comments=issue_comments or [],
        reviews=reviews or [],
    )


# ---------------------------------------------------------------------------
# Model object factories — construct typed model instances
# ---------------------------------------------------------------------------


def make_reply(
    id: int = 2,
    author: str | None = "alice",
    body: str = "Fixed",
    created_at: str = "2025-01-01T01:00:00Z",
    is_bot: bool = False,
) -> Reply:
    return Reply(id=id, author=author, body=body, created_at=created_at, is_bot=is_bot)


def make_comment(
    id: int = 1,
    kind: CommentKind = CommentKind.REVIEW_COMMENT,
    author: str | None = "cursor[bot]",
    is_bot: bool = True,
    body: str | None = "A finding",
    created_at: str = "2025-01-01T00:00:00Z",
    url: str = "https://github.com/owner/repo/pull/1#discussion_r1",
    path: str | None = "src/index.py",
    line: int | None = 10,
    diff_hunk: str | None = "@@ -1,3 +1,4 @@",
    state: str | None = None,
    replies: tuple[Reply, ...] = (),
    is_resolved: bool = False,
) -> ReviewComment:
    return ReviewComment(
        id=id,
        kind=kind,
        author=author,
        is_bot=is_bot,
        body=body,
        created_at=created_at,
        updated_at=created_at,
        url=url,
        path=path,
        line=line,
        diff_hunk=diff_hunk,
        state=state,
        replies=replies,
        has_human_reply=any(not r.is_bot for r in replies),
        has_any_reply=bool(replies),
        is_resolved=is_resolved,
    )


# ---------------------------------------------------------------------------
# Autouse fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def no_dotenv(mocker):
    """Prevent CLI invocations from loading a real .env file."""
    return mocker.patch("agent_reviews.cli.load_dotenv")
