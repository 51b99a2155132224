"""
Per-tenant submission rate limiter.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Protocol

from clinic_import.exceptions import RateLimitedError

# Submissions without a tenant share one window.
ANONYMOUS_TENANT_KEY = "__anonymous__"


class LastImportStore(Protocol):
    """
    Keyed storage for the last accepted import time (epoch seconds).
    """

    def get(self, key: str) -> float | None:
        ...

    def set(self, key: str, timestamp: float) -> None:
        ...


class InMemoryLastImportStore:
    """
    Process-local store; grows with the number of tenants, never evicts.
    """

    def __init__(self) -> None:
        self._last_import_by_key: dict[str, float] = {}

    def get(self, key: str) -> float | None:
        return self._last_import_by_key.get(key)

    def set(self, key: str, timestamp: float) -> None:
        self._last_import_by_key[key] = timestamp


class TenantRateLimiter:
    """
    Enforces a minimum interval between accepted imports per tenant.
    """

    def __init__(
        self,
        *,
        interval_seconds: float,
        store: LastImportStore | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._interval_seconds = max(0.0, interval_seconds)
        self._store = store or InMemoryLastImportStore()
        self._clock = clock
        self._locks_by_key: dict[str, threading.Lock] = {}
        self._registry_lock = threading.Lock()

    @contextmanager
    def reserve(self, tenant_id: str | None) -> Iterator[None]:
        """
        Hold the tenant's slot while the caller validates a submission.

        Raises RateLimitedError on entry when the window is still open. The
        timestamp is recorded only if the block exits without an exception,
        and concurrent submissions from one tenant are serialized.
        """

        key = tenant_id or ANONYMOUS_TENANT_KEY
        with self._lock_for(key):
            remaining = self._remaining_seconds(key)
            if remaining > 0:
                raise RateLimitedError(retry_after_seconds=remaining)
            yield
            self._store.set(key, self._clock())

    def remaining_seconds(self, tenant_id: str | None) -> float:
        key = tenant_id or ANONYMOUS_TENANT_KEY
        with self._lock_for(key):
            return self._remaining_seconds(key)

    def _remaining_seconds(self, key: str) -> float:
        last_time = self._store.get(key)
        if last_time is None:
            return 0.0
        elapsed = self._clock() - last_time
        return max(0.0, self._interval_seconds - elapsed)

    def _lock_for(self, key: str) -> threading.Lock:
        with self._registry_lock:
            lock = self._locks_by_key.get(key)
            if lock is None:
                lock = threading.Lock()
                self._locks_by_key[key] = lock
            return lock
