"""Poll a pull request until new review comments show up or it goes quiet.

The watcher stops at the first batch of new comments instead of streaming
them: the caller handles the batch (fixes code, replies) and starts a new
watch afterwards.
"""
from __future__ import annotations

import enum
import math
import time
from collections.abc import Callable
from dataclasses import dataclass, field

from .comments import filter_comments, process_comments
from .models import FilterOptions, RawComments, ReviewComment

DEFAULT_INTERVAL = 30
DEFAULT_TIMEOUT = 600
GRACE_PERIOD = 5


class WatchOutcome(str, enum.Enum):
    NEW_COMMENTS = "new_comments"
    TIMEOUT = "timeout"


class WatchEventKind(str, enum.Enum):
    PRIMED = "primed"
    POLL = "poll"
    DETECTED = "detected"
    LATE_ARRIVALS = "late_arrivals"
    NEW_COMMENTS = "new_comments"
    TIMEOUT = "timeout"


@dataclass(frozen=True)
class WatchEvent:
    kind: WatchEventKind
    poll_count: int
    tracked: int
    comments: list[ReviewComment] = field(default_factory=list)
    idle_seconds: int = 0


@dataclass(frozen=True)
class WatchResult:
    outcome: WatchOutcome
    comments: list[ReviewComment]
    poll_count: int
    tracked: int


@dataclass
class WatchState:
    seen_ids: set[int] = field(default_factory=set)
    last_activity: float = 0.0
    poll_count: int = 0

    def unseen(self, comments: list[ReviewComment]) -> list[ReviewComment]:
        return [c for c in comments if c.id not in self.seen_ids]

    def mark_seen(self, comments: list[ReviewComment]) -> None:
        self.seen_ids.update(c.id for c in comments)


def watch_comments(
    fetch: Callable[[], RawComments],
    options: FilterOptions,
    interval: float = DEFAULT_INTERVAL,
    timeout: float = DEFAULT_TIMEOUT,
    *,
    grace_period: float = GRACE_PERIOD,
    on_event: Callable[[WatchEvent], None] | None = None,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> WatchResult:
    """Run the prime, poll, grace-check loop and return how it ended.

    ``fetch`` is called once to prime the seen set, once per poll, and once
    more after ``grace_period`` seconds when a poll finds something new so
    that comments posted in the same burst are reported together. Errors
    raised by ``fetch`` are not caught.
    """

    def emit(kind: WatchEventKind, comments: list[ReviewComment] | None = None, idle: int = 0) -> None:
        if on_event is not None:
            on_event(
                WatchEvent(
                    kind=kind,
                    poll_count=state.poll_count,
                    tracked=len(state.seen_ids),
                    comments=list(comments or []),
                    idle_seconds=idle,
                )
            )

    def snapshot() -> list[ReviewComment]:
        return filter_comments(process_comments(fetch()), options)

    state = WatchState(last_activity=clock())

    initial = snapshot()
    state.mark_seen(initial)
    emit(WatchEventKind.PRIMED, initial)

    while True:
        sleep(interval)
        state.poll_count += 1

        new_comments = state.unseen(snapshot())
        if new_comments:
            state.mark_seen(new_comments)
            emit(WatchEventKind.DETECTED, new_comments)

            sleep(grace_period)
            late = state.unseen(snapshot())
            state.mark_seen(late)
            if late:
                emit(WatchEventKind.LATE_ARRIVALS, late)
            new_comments.extend(late)

            emit(WatchEventKind.NEW_COMMENTS, new_comments)
            return WatchResult(
                outcome=WatchOutcome.NEW_COMMENTS,
                comments=new_comments,
                poll_count=state.poll_count,
                tracked=len(state.seen_ids),
            )

        idle = math.floor(clock() - state.last_activity + 0.5)
        emit(WatchEventKind.POLL, idle=idle)
        if idle >= timeout:
            emit(WatchEventKind.TIMEOUT, idle=idle)
            return WatchResult(
                outcome=WatchOutcome.TIMEOUT,
                comments=[],
                poll_count=state.poll_count,
                tracked=len(state.seen_ids),
            )
