"""
Per-source debouncing of alert handling.

While a source (log group) is being handled, further events from the same
source are dropped. The mark is cleared after a cool-down once handling
succeeds, or straight away when handling fails so a redelivery is not blocked.

The default store lives in process memory, so it only spans one warm Lambda
execution environment. Cold starts and concurrent environments do not share
it; a shared store (e.g. DynamoDB) can be plugged in through the same
add_if_absent / discard interface if cross-instance debouncing is needed.
"""
import threading

from constants import DEFAULT_ALERT_COOLDOWN_SECONDS


class InMemoryDebounceStore:

    def __init__(self):
        self._keys = set()
        self._lock = threading.Lock()

    def add_if_absent(self, key):
        """Mark key as in-flight; False if it already was."""
        with self._lock:
            if key in self._keys:
                return False
            self._keys.add(key)
            return True

    def discard(self, key):
        with self._lock:
            self._keys.discard(key)

    def __contains__(self, key):
        with self._lock:
            return key in self._keys


class SourceDebouncer:

    def __init__(self, store=None, cooldown_seconds=DEFAULT_ALERT_COOLDOWN_SECONDS,
                 timer_factory=threading.Timer):
        self.store = store if store is not None else InMemoryDebounceStore()
        self.cooldown_seconds = cooldown_seconds
        self.timer_factory = timer_factory
        self._timers = {}
        self._tokens = {}
        self._timers_lock = threading.Lock()

    def try_acquire(self, key):
        """Check-and-set in one step, before any slow work starts."""
        return self.store.add_if_absent(key)

    def is_handling(self, key):
        return key in self.store

    def release_later(self, key):
        """Clear the mark once the cool-down elapses, without blocking."""
        token = object()
        timer = self.timer_factory(self.cooldown_seconds, self._expire, args=(key, token))
        timer.daemon = True
        with self._timers_lock:
            previous = self._timers.pop(key, None)
            self._timers[key] = timer
            self._tokens[key] = token
        if previous is not None:
            previous.cancel()
        timer.start()
        return timer

    def release(self, key):
        """Clear the mark now and cancel any pending cool-down."""
        with self._timers_lock:
            timer = self._timers.pop(key, None)
            self._tokens.pop(key, None)
        if timer is not None:
            timer.cancel()
        self.store.discard(key)

    def _expire(self, key, token):
        # A timer that fired after being replaced or cancelled must not
        # clear a mark that belongs to a newer acquisition
        with self._timers_lock:
            if self._tokens.get(key) is not token:
                return
            self._timers.pop(key, None)
            self._tokens.pop(key, None)
        self.store.discard(key)
