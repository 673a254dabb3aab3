"""Error taxonomy for provider calls and pipeline-level failures.

Malformed battles and thin samples are not errors: the first are tagged
parse rejections, the second a normal fallback in the counter query.
"""


class ArenaMetaError(Exception):
    """Base class for everything the pipeline raises on purpose."""


class ThrottledError(ArenaMetaError):
    """The provider answered 429. Retryable with backoff."""

    def __init__(self, message="rate limited", retry_after=None):
        super().__init__(message)
        self.retry_after = retry_after


class UnavailableError(ArenaMetaError):
    """The provider call failed for a non-retryable reason (404, 5xx, network)."""

    def __init__(self, message="provider unavailable", status=None):
        super().__init__(message)
        self.status = status


class NoSeedsAvailableError(ArenaMetaError):
    """Seed discovery found no players at all; the run must not publish."""


class ProviderOutageError(ArenaMetaError):
    """Every battle-log fetch failed; the run must not publish."""
