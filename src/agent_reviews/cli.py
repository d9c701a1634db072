from __future__ import annotations

import logging
import sys
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import Any

import click
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler

from . import __version__
from .auth import resolve_github_token
from .client import GitHubClient
from .comments import filter_comments, process_comments
from .errors import AgentReviewsError, CommentNotFoundError, ConfigurationError
from .formatters import get_formatter
from .formatters.json_fmt import format_json, format_json_item
from .formatters.text_fmt import format_comment, format_detailed_comment
from .git import RepoInfo, get_current_branch, get_repo_info, get_repo_root
from .models import FilterOptions
from .watch import (
    DEFAULT_INTERVAL,
    DEFAULT_TIMEOUT,
    GRACE_PERIOD,
    WatchEvent,
    WatchEventKind,
    WatchOutcome,
    watch_comments,
)

_stdout = Console(highlight=False, soft_wrap=True)
_stderr = Console(stderr=True, highlight=False, soft_wrap=True)


@dataclass(frozen=True)
class PullRequestContext:
    token: str
    repo: RepoInfo
    number: int
    url: str


@contextmanager
def _report_errors() -> Iterator[None]:
    try:
        yield
    except AgentReviewsError as exc:
        _stderr.print(f"[red]Error:[/red] {exc}")
        sys.exit(1)


def _resolve_context(pr_number: int | None) -> PullRequestContext:
    token = resolve_github_token(get_repo_root())
    if not token:
        raise ConfigurationError(
            "GitHub token not found. Set GITHUB_TOKEN env var, or authenticate with: gh auth login"
        )

    repo = get_repo_info()
    if repo is None:
        raise ConfigurationError("Could not determine repository from git remote.")

    if pr_number is not None:
        url = f"https://github.com/{repo.owner}/{repo.repo}/pull/{pr_number}"
        return PullRequestContext(token=token, repo=repo, number=pr_number, url=url)

    branch = get_current_branch()
    if not branch:
        raise ConfigurationError("Could not determine current branch.")

    with GitHubClient(token) as client:
        pr = client.find_pr_for_branch(repo.owner, repo.repo, branch)
    if pr is None:
        raise ConfigurationError(f"No open PR found for branch '{branch}'.")
    return PullRequestContext(token=token, repo=repo, number=pr["number"], url=pr["html_url"])


def _filter_flags(func: Callable[..., Any]) -> Callable[..., Any]:
    func = click.option("--humans-only", "-H", is_flag=True, help="Only show comments from humans.")(func)
    func = click.option("--bots-only", "-b", is_flag=True, help="Only show comments from bots.")(func)
    func = click.option(
        "--unanswered", "-a", is_flag=True, help="Show only comments without any replies."
    )(func)
    func = click.option(
        "--unresolved", "-u", is_flag=True, help="Show only unresolved/pending comments."
    )(func)
    return func


def _filter_options(
    ctx: click.Context, unresolved: bool, unanswered: bool, bots_only: bool, humans_only: bool
) -> FilterOptions:
    """Combine a command's filter flags with those given before the subcommand name."""
    group = ctx.obj["filters"]
    unresolved = unresolved or group["unresolved"]
    unanswered = unanswered or group["unanswered"]
    bots_only = bots_only or group["bots_only"]
    humans_only = humans_only or group["humans_only"]
    if unresolved:
        state = "unresolved"
    elif unanswered:
        state = "unanswered"
    else:
        state = "all"
    return FilterOptions(bots_only=bots_only, humans_only=humans_only, state=state)


def _timestamp() -> str:
    return datetime.now().strftime("%Y-%m-%d %H:%M:%S")


def _plural(count: int, noun: str) -> str:
    return f"{count} {noun}" if count == 1 else f"{count} {noun}s"


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="agent-reviews")
@click.option("--pr", "-p", "pr_number", type=click.IntRange(min=1), default=None,
              help="Target PR number (auto-detected from the current branch).")
@click.option("--verbose", is_flag=True, help="Log API requests to stderr.")
@_filter_flags
@click.option("--json", "-j", "as_json", is_flag=True, help="Output as JSON.")
@click.option("--expanded", "-e", is_flag=True, help="Show body, diff hunk and replies for each comment.")
@click.pass_context
def cli(
    ctx: click.Context,
    pr_number: int | None,
    verbose: bool,
    unresolved: bool,
    unanswered: bool,
    bots_only: bool,
    humans_only: bool,
    as_json: bool,
    expanded: bool,
) -> None:
    """agent-reviews — list, reply to and watch PR review comments."""
    load_dotenv()
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            handlers=[RichHandler(console=_stderr, show_path=False)],
        )
    ctx.ensure_object(dict)
    ctx.obj["pr_number"] = pr_number
    ctx.obj["as_json"] = as_json
    ctx.obj["filters"] = {
        "unresolved": unresolved,
        "unanswered": unanswered,
        "bots_only": bots_only,
        "humans_only": humans_only,
    }
    if ctx.invoked_subcommand is None:
        ctx.invoke(list_comments, as_json=as_json, expanded=expanded)


@cli.command("list")
@_filter_flags
@click.option("--json", "-j", "as_json", is_flag=True, help="Output as JSON.")
@click.option("--expanded", "-e", is_flag=True, help="Show body, diff hunk and replies for each comment.")
@click.pass_context
def list_comments(
    ctx: click.Context,
    unresolved: bool = False,
    unanswered: bool = False,
    bots_only: bool = False,
    humans_only: bool = False,
    as_json: bool = False,
    expanded: bool = False,
) -> None:
    """List review comments on the pull request."""
    options = _filter_options(ctx, unresolved, unanswered, bots_only, humans_only)
    as_json = as_json or ctx.obj["as_json"]
    with _report_errors():
        pr = _resolve_context(ctx.obj["pr_number"])
        with GitHubClient(pr.token) as client:
            raw = client.fetch_pr_comments(pr.repo.owner, pr.repo.repo, pr.number)
        comments = filter_comments(process_comments(raw), options)

    if as_json:
        click.echo(get_formatter("json")(comments))
    else:
        _stdout.print(get_formatter("text", state=options.state, expanded=expanded)(comments))


@cli.command()
@click.argument("comment_id", type=int)
@click.option("--json", "-j", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def detail(ctx: click.Context, comment_id: int, as_json: bool) -> None:
    """Show full detail for one comment."""
    as_json = as_json or ctx.obj["as_json"]
    with _report_errors():
        pr = _resolve_context(ctx.obj["pr_number"])
        with GitHubClient(pr.token) as client:
            raw = client.fetch_pr_comments(pr.repo.owner, pr.repo.repo, pr.number)
        comment = next((c for c in process_comments(raw) if c.id == comment_id), None)
        if comment is None:
            raise CommentNotFoundError(f"Comment {comment_id} not found in PR #{pr.number}.")

    if as_json:
        click.echo(format_json_item(comment))
    else:
        _stdout.print(format_detailed_comment(comment))


@cli.command()
@click.argument("comment_id", type=int)
@click.argument("message")
@click.option("--json", "-j", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def reply(ctx: click.Context, comment_id: int, message: str, as_json: bool) -> None:
    """Reply to comment COMMENT_ID with MESSAGE."""
    if not message.strip():
        raise click.BadParameter("Reply message must not be empty.", param_hint="MESSAGE")

    as_json = as_json or ctx.obj["as_json"]
    with _report_errors():
        pr = _resolve_context(ctx.obj["pr_number"])
        with GitHubClient(pr.token) as client:
            posted = client.reply_to_comment(pr.repo.owner, pr.repo.repo, pr.number, comment_id, message)

    if as_json:
        click.echo(format_json_item(posted))
        return
    suffix = " (as PR comment)" if posted.fallback else ""
    _stdout.print(f"[green]✓ Reply posted successfully{suffix}[/green]")
    _stdout.print(f"  [dim]{posted.url}[/dim]")


def _watch_reporter(timeout: float, as_json: bool) -> Callable[[WatchEvent], None]:
    def report(event: WatchEvent) -> None:
        if event.kind is WatchEventKind.PRIMED:
            _stderr.print(
                f"[dim]\\[{_timestamp()}] Initial state: {len(event.comments)} existing comments tracked[/dim]"
            )
            if event.comments and not as_json:
                _stderr.print("\n[yellow]=== EXISTING COMMENTS ===[/yellow]")
                for comment in event.comments:
                    _stderr.print(format_comment(comment) + "\n")
        elif event.kind is WatchEventKind.POLL:
            _stderr.print(
                f"[dim]\\[{_timestamp()}] Poll #{event.poll_count}: No new comments "
                f"({event.idle_seconds}s/{timeout:g}s idle)[/dim]"
            )
        elif event.kind is WatchEventKind.DETECTED:
            _stderr.print(f"\n[green]=== NEW COMMENTS DETECTED \\[{_timestamp()}] ===[/green]")
            _stderr.print(f"[bold]Found {_plural(len(event.comments), 'new comment')}[/bold]")
            _stderr.print(f"[dim]Waiting {GRACE_PERIOD}s for additional comments...[/dim]")
        elif event.kind is WatchEventKind.LATE_ARRIVALS:
            _stderr.print(f"[bold]Caught {_plural(len(event.comments), 'additional comment')}[/bold]")
        elif event.kind is WatchEventKind.NEW_COMMENTS:
            if as_json:
                click.echo(format_json(event.comments))
                return
            _stdout.print("")
            for comment in event.comments:
                _stdout.print(format_comment(comment) + "\n")
            _stdout.print("[dim]--- JSON for processing ---[/dim]")
            click.echo(format_json(event.comments))
            _stdout.print("[dim]--- end JSON ---[/dim]")
            _stderr.print("\n[green]=== WATCH: EXITING WITH NEW COMMENTS ===[/green]")
            _stderr.print("[dim]Restart watcher after processing to catch further comments.[/dim]")
        elif event.kind is WatchEventKind.TIMEOUT:
            _stderr.print("\n[green]=== WATCH COMPLETE ===[/green]")
            _stderr.print(f"[dim]No new comments after {timeout:g}s of inactivity.[/dim]")
            _stderr.print(f"[dim]Total comments tracked: {event.tracked}[/dim]")
            _stderr.print(f"[dim]Exiting at {_timestamp()}[/dim]")

    return report


@cli.command()
@_filter_flags
@click.option("--interval", "-i", type=click.IntRange(min=1), default=DEFAULT_INTERVAL, show_default=True,
              help="Poll interval in seconds.")
@click.option("--timeout", "--exit-after", "timeout", type=click.IntRange(min=0), default=DEFAULT_TIMEOUT,
              show_default=True, help="Exit after this many seconds of inactivity.")
@click.option("--json", "-j", "as_json", is_flag=True, help="Print only the new comments as JSON.")
@click.pass_context
def watch(
    ctx: click.Context,
    unresolved: bool,
    unanswered: bool,
    bots_only: bool,
    humans_only: bool,
    interval: int,
    timeout: int,
    as_json: bool,
) -> None:
    """Poll for new comments and exit as soon as some appear."""
    options = _filter_options(ctx, unresolved, unanswered, bots_only, humans_only)
    actor = "bots-only" if options.bots_only else "humans-only" if options.humans_only else "all"
    as_json = as_json or ctx.obj["as_json"]
    state = options.state if options.state != "all" else "all comments"

    with _report_errors():
        pr = _resolve_context(ctx.obj["pr_number"])

        _stderr.print("\n[bold]=== PR Comments Watch Mode ===[/bold]")
        _stderr.print(f"[dim]PR #{pr.number}: {pr.url}[/dim]")
        _stderr.print(f"[dim]Polling every {interval}s, exit after {timeout}s of inactivity[/dim]")
        _stderr.print(f"[dim]Filters: {actor}, {state}[/dim]")
        _stderr.print(f"[dim]Started at {_timestamp()}[/dim]\n")

        with GitHubClient(pr.token) as client:
            result = watch_comments(
                lambda: client.fetch_pr_comments(pr.repo.owner, pr.repo.repo, pr.number),
                options,
                interval=interval,
                timeout=timeout,
                on_event=_watch_reporter(timeout, as_json),
            )

    if as_json and result.outcome is WatchOutcome.TIMEOUT:
        click.echo("[]")
