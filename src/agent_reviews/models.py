from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any


class CommentKind(str, enum.Enum):
    REVIEW_COMMENT = "review_comment"
    ISSUE_COMMENT = "issue_comment"
    REVIEW = "review"


@dataclass(frozen=True)
class RawComments:
    review_comments: list[dict[str, Any]] = field(default_factory=list)
    issue_comments: list[dict[str, Any]] = field(default_factory=list)
    reviews: list[dict[str, Any]] = field(default_factory=list)


@dataclass(frozen=True)
class Reply:
    id: int
    author: str | None
    body: str | None
    created_at: str | None
    is_bot: bool


@dataclass(frozen=True)
class ReviewComment:
    id: int
    kind: CommentKind
    author: str | None
    is_bot: bool
    body: str | None
    created_at: str | None
    updated_at: str | None
    url: str | None
    path: str | None = None
    line: int | None = None
    diff_hunk: str | None = None
    state: str | None = None
    replies: tuple[Reply, ...] = ()
    has_human_reply: bool = False
    has_any_reply: bool = False
    is_resolved: bool = False


@dataclass(frozen=True)
class FilterOptions:
    bots_only: bool = False
    humans_only: bool = False
    state: str = "all"


@dataclass(frozen=True)
class PostedReply:
    id: int
    url: str
    fallback: bool
