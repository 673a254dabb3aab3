"""Small TTL cache used for query responses and the card catalog."""

import threading
import time


class TTLCache:
    """Key/value cache where every entry expires ttl_seconds after it is set.

    The clock is injectable so expiry can be tested without sleeping.
    """

    def __init__(self, ttl_seconds, clock=time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries = {}
        self._lock = threading.Lock()

    def get(self, key, default=None):
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return default
            value, expires_at = entry
            if self._clock() >= expires_at:
                del self._entries[key]
                return default
            return value

    def set(self, key, value, ttl_seconds=None):
        ttl = self.ttl_seconds if ttl_seconds is None else ttl_seconds
        with self._lock:
            self._entries[key] = (value, self._clock() + ttl)

    def invalidate(self, key):
        with self._lock:
            self._entries.pop(key, None)

    def __len__(self):
        with self._lock:
            return len(self._entries)
