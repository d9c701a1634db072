"""Terminal rendering of review comments as rich markup."""
from __future__ import annotations

from datetime import datetime

from rich.markup import escape

from ..models import CommentKind, ReviewComment

_TYPE_LABELS = {
    CommentKind.REVIEW_COMMENT: "CODE",
    CommentKind.ISSUE_COMMENT: "COMMENT",
    CommentKind.REVIEW: "REVIEW",
}
_TYPE_STYLES = {
    CommentKind.REVIEW_COMMENT: "cyan",
    CommentKind.ISSUE_COMMENT: "blue",
    CommentKind.REVIEW: "magenta",
}
_DETAIL_SEPARATOR = "\n\n" + "=" * 60 + "\n\n"


def truncate(text: str | None, max_length: int) -> str:
    if not text:
        return ""
    one_line = text.replace("\n", " ").strip()
    if len(one_line) <= max_length:
        return one_line
    return f"{one_line[: max_length - 3]}..."


def reply_status(comment: ReviewComment) -> str:
    if not comment.has_any_reply:
        return "○ no reply"
    if comment.has_human_reply:
        return "✓ replied"
    return "⚡ bot replied"


def _styled_reply_status(comment: ReviewComment) -> str:
    status = reply_status(comment)
    if not comment.has_any_reply:
        return f"[red]{status}[/red]"
    if comment.has_human_reply:
        return f"[green]{status}[/green]"
    return f"[yellow]{status}[/yellow]"


def _location(comment: ReviewComment) -> str:
    if not comment.path:
        return ""
    return f"{comment.path}:{comment.line}" if comment.line else comment.path


def _format_date(value: str | None) -> str:
    if not value:
        return "unknown"
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return value
    return parsed.strftime("%Y-%m-%d %H:%M")


def format_comment(comment: ReviewComment) -> str:
    type_style = _TYPE_STYLES[comment.kind]
    user_style = "yellow" if comment.is_bot else "green"
    lines = [
        f"[bold]\\[{comment.id}][/bold] [{type_style}]{_TYPE_LABELS[comment.kind]}[/{type_style}] "
        f"by [{user_style}]{escape(comment.author or 'ghost')}[/{user_style}] {_styled_reply_status(comment)}"
    ]

    if location := _location(comment):
        lines.append(f"  [dim]{escape(location)}[/dim]")

    lines.append(f"  [dim]{escape(truncate(comment.body, 100))}[/dim]")

    if comment.replies:
        noun = "reply" if len(comment.replies) == 1 else "replies"
        lines.append(f"  [dim]└ {len(comment.replies)} {noun}[/dim]")

    return "\n".join(lines)


def format_detailed_comment(comment: ReviewComment) -> str:
    lines = [
        f"=== Comment \\[{comment.id}] ===",
        f"Type: {_TYPE_LABELS[comment.kind]} | By: {escape(comment.author or 'ghost')} "
        f"| Status: {reply_status(comment)}",
    ]

    if location := _location(comment):
        lines.append(f"File: {escape(location)}")

    lines.append(f"URL: {escape(comment.url or '')}")

    if comment.diff_hunk:
        lines.append("")
        lines.append("--- Code Context ---")
        lines.append(escape(comment.diff_hunk))
        lines.append("--- End Code Context ---")

    lines.append("")
    lines.append(escape(comment.body or "(no body)"))

    if comment.replies:
        lines.append("")
        lines.append(f"--- Replies ({len(comment.replies)}) ---")
        for reply in comment.replies:
            lines.append(
                f"\\[{reply.id}] {escape(reply.author or 'ghost')} ({_format_date(reply.created_at)}):"
            )
            lines.append(escape(reply.body or "(no body)"))
            lines.append("")
        lines.append("--- End Replies ---")

    return "\n".join(lines)


def format_output(comments: list[ReviewComment], state: str = "all", expanded: bool = False) -> str:
    if not comments:
        qualifier = f"{state} " if state in ("unresolved", "unanswered") else ""
        return f"[green]No {qualifier}comments found.[/green]"

    noun = "comment" if len(comments) == 1 else "comments"
    header = f"[bold]Found {len(comments)} {noun}[/bold]\n"
    formatter = format_detailed_comment if expanded else format_comment
    separator = _DETAIL_SEPARATOR if expanded else "\n\n"
    return f"{header}\n" + separator.join(formatter(c) for c in comments)
