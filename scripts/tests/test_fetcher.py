"""Category E: Rate-Limited Fetching Tests

Pacing, exponential backoff and per-item failure isolation. Time is faked
everywhere except one short real-clock check of the pool ceiling.
"""

import time

import pytest
from helpers import FakeClock, FakeClient, no_sleep, make_battles

from arena_meta.errors import ThrottledError, UnavailableError
from arena_meta.fetcher import (
    RatePacer,
    fetch_with_backoff,
    map_with_rate_limit,
    fetch_battle_logs,
)


class Flaky:
    """Raises the queued errors in order, then returns value."""

    def __init__(self, errors, value="ok"):
        self.errors = list(errors)
        self.value = value
        self.calls = 0

    def __call__(self):
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)
        return self.value


# ─── E1: Pacer ──────────────────────────────────────────────────

class TestE1_Pacer:

    def test_spaces_dispatches(self):
        clock = FakeClock()
        pacer = RatePacer(10, clock=clock, sleep=clock.sleep)
        for _ in range(5):
            pacer.wait()
        assert pacer.dispatched == 5
        assert clock.now == pytest.approx(0.4)
        assert clock.sleeps == [pytest.approx(0.1)] * 4

    def test_no_wait_when_idle(self):
        clock = FakeClock()
        pacer = RatePacer(10, clock=clock, sleep=clock.sleep)
        pacer.wait()
        clock.advance(5)
        pacer.wait()
        assert clock.sleeps == []

    def test_rate_must_be_positive(self):
        with pytest.raises(ValueError):
            RatePacer(0)

    def test_pool_respects_ceiling(self):
        clock = FakeClock()
        map_with_rate_limit(range(10), lambda x: x, concurrency=1, rate_per_second=5,
                            clock=clock, sleep=clock.sleep)
        # 10 dispatches at 5/s need at least 9 intervals of 0.2s
        assert clock.now >= 1.8 - 1e-9

    def test_concurrent_waiters_get_distinct_slots(self):
        # Frozen clock: every worker sees t=0, so any shared delay would
        # show up as repeated sleep lengths.
        sleeps = []
        pacer = RatePacer(100, clock=lambda: 0.0, sleep=sleeps.append)
        map_with_rate_limit(range(30), lambda x: x, concurrency=5, pacer=pacer)
        assert pacer.dispatched == 30
        assert sorted(sleeps) == [pytest.approx(i * 0.01) for i in range(1, 30)]

    def test_concurrent_pool_stays_under_ceiling(self):
        rate, concurrency, n = 100, 5, 30
        start = time.monotonic()
        map_with_rate_limit(range(n), lambda x: time.sleep(0.001),
                            concurrency=concurrency, rate_per_second=rate)
        elapsed = time.monotonic() - start
        assert n <= rate * elapsed + (concurrency - 1)


# ─── E2: Backoff ────────────────────────────────────────────────

class TestE2_Backoff:

    def test_doubles(self):
        clock = FakeClock()
        fn = Flaky([ThrottledError("429"), ThrottledError("429")])
        assert fetch_with_backoff(fn, base_delay=0.5, max_retries=3, sleep=clock.sleep) == "ok"
        assert clock.sleeps == [0.5, 1.0]

    def test_gives_up_after_max_retries(self):
        clock = FakeClock()
        fn = Flaky([ThrottledError("429")] * 10)
        with pytest.raises(ThrottledError):
            fetch_with_backoff(fn, base_delay=0.5, max_retries=3, sleep=clock.sleep)
        assert clock.sleeps == [0.5, 1.0, 2.0]
        assert fn.calls == 4

    def test_retry_after_honoured(self):
        clock = FakeClock()
        fn = Flaky([ThrottledError("429", retry_after=5)])
        fetch_with_backoff(fn, base_delay=0.5, max_retries=3, sleep=clock.sleep)
        assert clock.sleeps == [5]

    def test_unavailable_not_retried(self):
        clock = FakeClock()
        fn = Flaky([UnavailableError("500", status=500)])
        with pytest.raises(UnavailableError):
            fetch_with_backoff(fn, sleep=clock.sleep)
        assert clock.sleeps == []
        assert fn.calls == 1


# ─── E3: Worker pool ────────────────────────────────────────────

class TestE3_Pool:

    def test_input_order_kept(self):
        outcomes = map_with_rate_limit(range(20), lambda x: x * 2, concurrency=4,
                                       rate_per_second=1000, sleep=no_sleep)
        assert [o.value for o in outcomes] == [x * 2 for x in range(20)]
        assert [o.item for o in outcomes] == list(range(20))

    def test_failure_isolated(self):
        def fn(x):
            if x == 3:
                raise UnavailableError("gone")
            return x

        outcomes = map_with_rate_limit(range(6), fn, concurrency=3, rate_per_second=1000, sleep=no_sleep)
        assert isinstance(outcomes[3].error, UnavailableError)
        assert outcomes[3].value is None
        assert [o.value for i, o in enumerate(outcomes) if i != 3] == [0, 1, 2, 4, 5]

    def test_programming_errors_propagate(self):
        def fn(x):
            raise KeyError(x)

        with pytest.raises(KeyError):
            map_with_rate_limit([1], fn, sleep=no_sleep)

    def test_empty(self):
        assert map_with_rate_limit([], lambda x: x) == []


# ─── E4: Battle logs ────────────────────────────────────────────

class TestE4_BattleLogs:

    def test_statuses(self):
        client = FakeClient(battles={
            "#A": make_battles(2, team_tag="#A"),
            "#B": UnavailableError("not found", status=404),
            "#C": ThrottledError("slow"),
        })
        results = fetch_battle_logs(client, ["#A", "#B", "#C"], concurrency=2,
                                    rate_per_second=1000, max_retries=1, sleep=no_sleep)
        assert [(r["tag"], r["status"], len(r["battles"])) for r in results] == [
            ("#A", "ok", 2), ("#B", "unavailable", 0), ("#C", "throttled", 0),
        ]

    def test_throttled_tag_retried(self):
        client = FakeClient(battles={"#C": ThrottledError("slow")})
        fetch_battle_logs(client, ["#C"], rate_per_second=1000, max_retries=2, sleep=no_sleep)
        assert client.calls.count(("get_battles", "#C")) == 3
