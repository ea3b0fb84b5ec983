"""
Thread-safe request throttling shared by the HTTP loaders.

Loader calls run in worker threads while an analysis fans out, so the
interval bookkeeping is guarded by a lock. Concurrent callers asking for
the same resource share one request through `SingleFlight`.
"""

import threading
import time
from concurrent.futures import Future
from typing import Callable, Dict, Hashable

from tenacity import RetryCallState

REQUEST_ATTEMPTS = 3


class RateLimiter:
    """Enforce a minimum interval between consecutive requests."""

    def __init__(self, min_interval: float):
        self.min_interval = min_interval
        self._last_request_time = 0.0
        self._lock = threading.Lock()

    def wait(self) -> None:
        with self._lock:
            elapsed = time.monotonic() - self._last_request_time
            if elapsed < self.min_interval:
                time.sleep(self.min_interval - elapsed)
            self._last_request_time = time.monotonic()


class SingleFlight:
    """
    Collapse concurrent calls for the same key into one.

    The first caller runs the function; callers arriving while it is in
    flight wait for and share its result or exception.

    Usage:
        flight = SingleFlight()
        data = flight.do(key, fetch, lat, lon)
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._calls: Dict[Hashable, Future] = {}

    def do(self, key: Hashable, fn: Callable, *args):
        with self._lock:
            future = self._calls.get(key)
            leader = future is None
            if leader:
                future = Future()
                self._calls[key] = future

        if not leader:
            return future.result()

        try:
            result = fn(*args)
        except BaseException as e:
            future.set_exception(e)
            raise
        else:
            future.set_result(result)
            return result
        finally:
            with self._lock:
                del self._calls[key]


def stop_within_budget(retry_state: RetryCallState) -> bool:
    """
    tenacity stop condition for loader methods.

    Gives up after REQUEST_ATTEMPTS, or earlier when the next backoff plus
    another request timeout would overrun the loader's `retry_budget`
    seconds. A loader without a budget only has the attempt limit.
    """
    if retry_state.attempt_number >= REQUEST_ATTEMPTS:
        return True
    loader = retry_state.args[0]
    budget = getattr(loader, "retry_budget", None)
    if budget is None:
        return False
    next_wait = retry_state.retry_object.wait(retry_state)
    return retry_state.seconds_since_start + next_wait + loader.timeout > budget
