"""Turn the three raw comment streams of a pull request into one reviewable list."""
from __future__ import annotations

from collections.abc import Callable, Sequence
from datetime import datetime, timezone
from typing import Any

from .models import CommentKind, FilterOptions, RawComments, Reply, ReviewComment
from .sanitize import clean_body

MetaFilter = Callable[[str | None, str], bool]

# Automated status posts that carry no review finding.
DEFAULT_META_FILTERS: tuple[MetaFilter, ...] = (
    # Vercel deployment status
    lambda user, body: user == "vercel[bot]" and body.startswith("[vc]:"),
    # Supabase branch status
    lambda user, body: user == "supabase[bot]" and body.startswith("[supa]:"),
    # Bugbot summary, not the findings themselves
    lambda user, body: user == "cursor[bot]"
    and body.startswith("Cursor Bugbot has reviewed your changes"),
)

_KNOWN_BOTS = frozenset({"Copilot", "github-actions"})
_RESOLVED_REVIEW_STATES = frozenset({"APPROVED", "DISMISSED"})
_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def is_bot(username: str | None) -> bool:
    """Guess whether ``username`` belongs to an automated account.

    Deliberately loose: any login containing "bot" counts, so a human called
    "abbott" is reported as a bot.
    """
    if not username:
        return False
    return (
        username.endswith("[bot]")
        or username in _KNOWN_BOTS
        or "bot" in username
    )


def is_meta_comment(
    user: str | None,
    body: str | None,
    meta_filters: Sequence[MetaFilter] = DEFAULT_META_FILTERS,
) -> bool:
    if not body:
        return False
    return any(meta_filter(user, body) for meta_filter in meta_filters)


def _login(node: dict[str, Any]) -> str | None:
    return node["user"]["login"] if node.get("user") else None


def _created_key(comment: ReviewComment) -> datetime:
    if not comment.created_at:
        return _EPOCH
    try:
        parsed = datetime.fromisoformat(comment.created_at.replace("Z", "+00:00"))
    except ValueError:
        return _EPOCH
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _build_reply_index(review_comments: list[dict[str, Any]]) -> dict[int, list[Reply]]:
    replies: dict[int, list[Reply]] = {}
    for node in review_comments:
        parent_id = node.get("in_reply_to_id")
        if not parent_id:
            continue
        author = _login(node)
        replies.setdefault(parent_id, []).append(
            Reply(
                id=node["id"],
                author=author,
                body=clean_body(node.get("body")),
                created_at=node.get("created_at"),
                is_bot=is_bot(author),
            )
        )
    return replies


def process_comments(
    raw: RawComments,
    meta_filters: Sequence[MetaFilter] | None = None,
) -> list[ReviewComment]:
    """Merge inline comments, issue comments and reviews, newest first.

    Replies are folded into their thread root; replies to a comment that is
    not a thread root in ``raw`` are dropped. ``meta_filters`` replaces
    DEFAULT_META_FILTERS rather than extending it. Ties on ``created_at`` keep
    insertion order, so inline comments come before issue comments, which
    come before reviews.
    """
    filters = DEFAULT_META_FILTERS if meta_filters is None else meta_filters
    replies_by_parent = _build_reply_index(raw.review_comments)
    processed: list[ReviewComment] = []

    for node in raw.review_comments:
        if node.get("in_reply_to_id"):
            continue
        author = _login(node)
        if is_meta_comment(author, node.get("body"), filters):
            continue

        replies = tuple(replies_by_parent.get(node["id"], ()))
        processed.append(
            ReviewComment(
                id=node["id"],
                kind=CommentKind.REVIEW_COMMENT,
                author=author,
                is_bot=is_bot(author),
                body=clean_body(node.get("body")),
                created_at=node.get("created_at"),
                updated_at=node.get("updated_at"),
                url=node.get("html_url"),
                path=node.get("path"),
                line=node.get("line") or node.get("original_line"),
                diff_hunk=node.get("diff_hunk") or None,
                replies=replies,
                has_human_reply=any(not reply.is_bot for reply in replies),
                has_any_reply=bool(replies),
            )
        )

    for node in raw.issue_comments:
        author = _login(node)
        if is_meta_comment(author, node.get("body"), filters):
            continue
        processed.append(
            ReviewComment(
                id=node["id"],
                kind=CommentKind.ISSUE_COMMENT,
                author=author,
                is_bot=is_bot(author),
                body=clean_body(node.get("body")),
                created_at=node.get("created_at"),
                updated_at=node.get("updated_at"),
                url=node.get("html_url"),
            )
        )

    for node in raw.reviews:
        author = _login(node)
        body = node.get("body")
        if is_meta_comment(author, body, filters):
            continue
        # Bare approvals and "changes requested" clicks have nothing to act on.
        if not body or not body.strip():
            continue
        state = node.get("state")
        processed.append(
            ReviewComment(
                id=node["id"],
                kind=CommentKind.REVIEW,
                author=author,
                is_bot=is_bot(author),
                body=clean_body(body),
                created_at=node.get("submitted_at"),
                updated_at=node.get("submitted_at"),
                url=node.get("html_url"),
                state=state,
                is_resolved=state in _RESOLVED_REVIEW_STATES,
            )
        )

    return sorted(processed, key=_created_key, reverse=True)


def filter_comments(comments: list[ReviewComment], options: FilterOptions) -> list[ReviewComment]:
    filtered = list(comments)

    if options.bots_only:
        filtered = [c for c in filtered if c.is_bot]
    elif options.humans_only:
        filtered = [c for c in filtered if not c.is_bot]

    if options.state == "unresolved":
        filtered = [c for c in filtered if not (c.is_resolved or c.has_human_reply)]
    elif options.state == "unanswered":
        filtered = [c for c in filtered if not c.has_any_reply]

    return filtered
