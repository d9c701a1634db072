"""Tests for watch_comments(): priming, polling, grace re-fetch and idle timeout."""
from __future__ import annotations

import pytest

from agent_reviews.errors import FetchError
from agent_reviews.models import FilterOptions
from agent_reviews.watch import WatchEventKind, WatchOutcome, watch_comments

from .conftest import issue_comment_node, raw_comments, review_comment_node


class FakeClock:
    """Clock whose time only moves when the watcher sleeps."""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class ScriptedFetch:
    """Return one scripted snapshot per call, repeating the last one."""

    def __init__(self, *snapshots) -> None:
        self.snapshots = list(snapshots)
        self.calls = 0

    def __call__(self):
        snapshot = self.snapshots[min(self.calls, len(self.snapshots) - 1)]
        self.calls += 1
        if isinstance(snapshot, Exception):
            raise snapshot
        return snapshot


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def events():
    return []


def _watch(fetch, clock, events, options=None, interval=1, timeout=2):
    return watch_comments(
        fetch,
        options or FilterOptions(),
        interval=interval,
        timeout=timeout,
        on_event=events.append,
        sleep=clock.sleep,
        clock=clock,
    )


EMPTY = raw_comments()
ONE_NEW = raw_comments(issue_comments=[issue_comment_node(id=10, created_at="2025-01-02T00:00:00Z")])
TWO_NEW = raw_comments(issue_comments=[
    issue_comment_node(id=11, created_at="2025-01-03T00:00:00Z"),
    issue_comment_node(id=10, created_at="2025-01-02T00:00:00Z"),
])


class TestDetection:
    def test_new_comment_on_second_poll(self, clock, events):
        # priming, poll 1, poll 2 (new), grace re-fetch
        fetch = ScriptedFetch(EMPTY, EMPTY, ONE_NEW, ONE_NEW)
        result = _watch(fetch, clock, events)

        assert result.outcome is WatchOutcome.NEW_COMMENTS
        assert [c.id for c in result.comments] == [10]
        assert result.poll_count == 2
        assert result.tracked == 1
        assert fetch.calls == 4
        assert clock.sleeps == [1, 1, 5]

        kinds = [e.kind for e in events]
        assert kinds == [
            WatchEventKind.PRIMED,
            WatchEventKind.POLL,
            WatchEventKind.DETECTED,
            WatchEventKind.NEW_COMMENTS,
        ]
        assert kinds.count(WatchEventKind.DETECTED) == 1

    def test_grace_refetch_merges_late_arrivals(self, clock, events):
        fetch = ScriptedFetch(EMPTY, ONE_NEW, TWO_NEW)
        result = _watch(fetch, clock, events)

        assert [c.id for c in result.comments] == [10, 11]
        assert result.tracked == 2
        late = [e for e in events if e.kind is WatchEventKind.LATE_ARRIVALS]
        assert len(late) == 1
        assert [c.id for c in late[0].comments] == [11]

    def test_existing_comments_are_not_reported(self, clock, events):
        existing = raw_comments(review_comments=[review_comment_node(id=1)])
        both = raw_comments(
            review_comments=[review_comment_node(id=1)],
            issue_comments=[issue_comment_node(id=10, created_at="2025-01-02T00:00:00Z")],
        )
        fetch = ScriptedFetch(existing, both)
        result = _watch(fetch, clock, events)

        assert [c.id for c in result.comments] == [10]
        assert events[0].kind is WatchEventKind.PRIMED
        assert [c.id for c in events[0].comments] == [1]
        assert result.tracked == 2

    def test_filters_apply_to_detection(self, clock, events):
        human_only_new = raw_comments(issue_comments=[issue_comment_node(id=10, user="alice")])
        bot_and_human = raw_comments(issue_comments=[
            issue_comment_node(id=10, user="alice"),
            issue_comment_node(id=20, user="coderabbitai[bot]", created_at="2025-01-05T00:00:00Z"),
        ])
        fetch = ScriptedFetch(EMPTY, human_only_new, bot_and_human)
        result = _watch(fetch, clock, events, options=FilterOptions(bots_only=True), timeout=10)

        assert [c.id for c in result.comments] == [20]
        assert result.poll_count == 2

    def test_default_grace_period(self, clock, events):
        fetch = ScriptedFetch(EMPTY, ONE_NEW)
        _watch(fetch, clock, events, interval=30, timeout=600)
        assert clock.sleeps == [30, 5]


class TestIdleTimeout:
    def test_unchanged_snapshots_time_out(self, clock, events):
        existing = raw_comments(review_comments=[review_comment_node(id=1)])
        fetch = ScriptedFetch(existing)
        result = _watch(fetch, clock, events)

        assert result.outcome is WatchOutcome.TIMEOUT
        assert result.comments == []
        assert result.poll_count == 2
        assert result.tracked == 1
        assert fetch.calls == 3
        assert events[-1].kind is WatchEventKind.TIMEOUT
        assert [e.idle_seconds for e in events if e.kind is WatchEventKind.POLL] == [1, 2]

    def test_timeout_counts_whole_intervals(self, clock, events):
        result = _watch(ScriptedFetch(EMPTY), clock, events, interval=15, timeout=300)
        assert result.poll_count == 20

    def test_half_second_idle_rounds_up(self, clock, events):
        result = _watch(ScriptedFetch(EMPTY), clock, events, interval=2.5, timeout=3)
        assert result.outcome is WatchOutcome.TIMEOUT
        assert result.poll_count == 1
        assert events[-1].idle_seconds == 3

    def test_zero_timeout_exits_after_first_poll(self, clock, events):
        result = _watch(ScriptedFetch(EMPTY), clock, events, timeout=0)
        assert result.outcome is WatchOutcome.TIMEOUT
        assert result.poll_count == 1


class TestErrors:
    def test_priming_failure_propagates(self, clock, events):
        with pytest.raises(FetchError):
            _watch(ScriptedFetch(FetchError(500, "https://api.github.com/x")), clock, events)
        assert events == []

    def test_poll_failure_aborts_loop(self, clock, events):
        fetch = ScriptedFetch(EMPTY, EMPTY, FetchError(502, "https://api.github.com/x"))
        with pytest.raises(FetchError):
            _watch(fetch, clock, events, timeout=100)
        assert fetch.calls == 3

    def test_grace_failure_aborts_loop(self, clock, events):
        fetch = ScriptedFetch(EMPTY, ONE_NEW, FetchError(502, "https://api.github.com/x"))
        with pytest.raises(FetchError):
            _watch(fetch, clock, events)
        assert WatchEventKind.NEW_COMMENTS not in [e.kind for e in events]

    def test_runs_without_event_callback(self, clock):
        result = watch_comments(
            ScriptedFetch(EMPTY, ONE_NEW),
            FilterOptions(),
            interval=1,
            timeout=2,
            sleep=clock.sleep,
            clock=clock,
        )
        assert result.outcome is WatchOutcome.NEW_COMMENTS
