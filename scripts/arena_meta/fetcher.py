"""Rate-limited batch fetching — pacing, backoff, bounded worker pool.

Pacing is cooperative: every dispatch reserves the next slot on a shared
schedule spaced 1/rate apart, and the worker sleeps until its slot. A worker
that sends the moment its slot opens can overlap with ones already in
flight, so at most (concurrency - 1) requests beyond the ceiling are
outstanding at any time.
"""

import threading
import time
from collections import namedtuple
from concurrent.futures import ThreadPoolExecutor

from arena_meta.constants import (
    FETCH_CONCURRENCY, REQUESTS_PER_SECOND, BACKOFF_BASE_SECONDS, MAX_RETRIES,
)
from arena_meta.errors import ArenaMetaError, ThrottledError, UnavailableError

# One per input item, in input order. error is None on success.
FetchOutcome = namedtuple("FetchOutcome", ["item", "value", "error"])


class RatePacer:
    """Shared gate enforcing a requests-per-second ceiling across workers.

    Each caller reserves the next free slot under the lock and sleeps until
    it outside the lock, so concurrent waiters are spaced one interval apart.
    """

    def __init__(self, rate_per_second=REQUESTS_PER_SECOND, clock=time.monotonic, sleep=time.sleep):
        if rate_per_second <= 0:
            raise ValueError("rate_per_second must be positive")
        self.min_interval = 1.0 / rate_per_second
        self._clock = clock
        self._sleep = sleep
        self._lock = threading.Lock()
        self._next_slot = None
        self.dispatched = 0

    def wait(self):
        """Block until this caller's reserved slot, then return."""
        with self._lock:
            now = self._clock()
            slot = now if self._next_slot is None else max(now, self._next_slot)
            self._next_slot = slot + self.min_interval
            self.dispatched += 1
        delay = slot - now
        if delay > 0:
            self._sleep(delay)


def fetch_with_backoff(fn, base_delay=BACKOFF_BASE_SECONDS, max_retries=MAX_RETRIES, sleep=time.sleep):
    """Call fn(), retrying on ThrottledError with exponential backoff.

    Delay is base_delay * 2**attempt (or the server's Retry-After if longer).
    The last ThrottledError is re-raised once max_retries is exhausted.
    Other errors propagate immediately.
    """
    attempt = 0
    while True:
        try:
            return fn()
        except ThrottledError as e:
            if attempt >= max_retries:
                raise
            delay = base_delay * (2 ** attempt)
            if e.retry_after is not None and e.retry_after > delay:
                delay = e.retry_after
            print(f"    Throttled, waiting {delay:.1f}s (retry {attempt + 1}/{max_retries})...")
            sleep(delay)
            attempt += 1


def map_with_rate_limit(items, fn, concurrency=FETCH_CONCURRENCY, rate_per_second=REQUESTS_PER_SECOND,
                        pacer=None, clock=time.monotonic, sleep=time.sleep):
    """Apply fn to every item on a bounded worker pool under a shared pacer.

    Returns one FetchOutcome per item, in input order. Provider errors
    (ArenaMetaError) are captured per item; anything else propagates.
    """
    items = list(items)
    if not items:
        return []

    pacer = pacer or RatePacer(rate_per_second, clock=clock, sleep=sleep)
    outcomes = [None] * len(items)
    cursor = {"next": 0}
    cursor_lock = threading.Lock()

    def worker():
        while True:
            with cursor_lock:
                idx = cursor["next"]
                if idx >= len(items):
                    return
                cursor["next"] += 1
            pacer.wait()
            try:
                outcomes[idx] = FetchOutcome(items[idx], fn(items[idx]), None)
            except ArenaMetaError as e:
                outcomes[idx] = FetchOutcome(items[idx], None, e)

    workers = max(1, min(int(concurrency), len(items)))
    with ThreadPoolExecutor(max_workers=workers) as pool:
        futures = [pool.submit(worker) for _ in range(workers)]
        for future in futures:
            future.result()

    return outcomes


def fetch_battle_logs(client, tags, concurrency=FETCH_CONCURRENCY, rate_per_second=REQUESTS_PER_SECOND,
                      base_delay=BACKOFF_BASE_SECONDS, max_retries=MAX_RETRIES,
                      clock=time.monotonic, sleep=time.sleep):
    """Fetch battle logs for every tag. One failing tag never blocks the others.

    Returns [{"tag", "battles", "status"}] with status "ok", "throttled"
    (retries exhausted) or "unavailable"; failed tags carry no battles.
    """
    def fetch_one(tag):
        return fetch_with_backoff(lambda: client.get_battles(tag),
                                  base_delay=base_delay, max_retries=max_retries, sleep=sleep)

    outcomes = map_with_rate_limit(tags, fetch_one, concurrency=concurrency,
                                   rate_per_second=rate_per_second, clock=clock, sleep=sleep)

    results = []
    for outcome in outcomes:
        if outcome.error is None:
            battles = outcome.value if isinstance(outcome.value, list) else []
            results.append({"tag": outcome.item, "battles": battles, "status": "ok"})
        elif isinstance(outcome.error, ThrottledError):
            results.append({"tag": outcome.item, "battles": [], "status": "throttled"})
        elif isinstance(outcome.error, UnavailableError):
            results.append({"tag": outcome.item, "battles": [], "status": "unavailable"})
        else:
            raise outcome.error

    failed = sum(1 for r in results if r["status"] != "ok")
    if failed:
        print(f"  Warning: {failed}/{len(results)} battle logs could not be fetched")
    return results
