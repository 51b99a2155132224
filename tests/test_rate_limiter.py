from __future__ import annotations

import threading
import unittest

from clinic_import.exceptions import RateLimitedError
from clinic_import.services.rate_limiter import (
    ANONYMOUS_TENANT_KEY,
    InMemoryLastImportStore,
    TenantRateLimiter,
)


class _Clock:
    def __init__(self) -> None:
        self.now = 1_000.0

    def __call__(self) -> float:
        return self.now


class TestTenantRateLimiter(unittest.TestCase):
    def setUp(self) -> None:
        self.clock = _Clock()
        self.store = InMemoryLastImportStore()
        self.limiter = TenantRateLimiter(interval_seconds=300, store=self.store, clock=self.clock)

    def test_successful_block_records_timestamp(self) -> None:
        with self.limiter.reserve("t-1"):
            pass

        self.assertEqual(self.store.get("t-1"), 1_000.0)
        self.assertEqual(self.limiter.remaining_seconds("t-1"), 300)

    def test_failed_block_does_not_record_timestamp(self) -> None:
        with self.assertRaises(ValueError):
            with self.limiter.reserve("t-1"):
                raise ValueError("invalid upload")

        self.assertIsNone(self.store.get("t-1"))

    def test_window_rejects_then_reopens(self) -> None:
        with self.limiter.reserve("t-1"):
            pass

        self.clock.now += 299.5
        with self.assertRaises(RateLimitedError) as ctx:
            with self.limiter.reserve("t-1"):
                self.fail("block must not run inside the window")
        self.assertEqual(ctx.exception.retry_after_seconds, 1)
        self.assertEqual(ctx.exception.to_dict()["code"], "rate_limited")

        self.clock.now += 0.5
        with self.limiter.reserve("t-1"):
            pass

    def test_missing_tenant_shares_anonymous_window(self) -> None:
        with self.limiter.reserve(None):
            pass

        self.assertIsNotNone(self.store.get(ANONYMOUS_TENANT_KEY))
        with self.assertRaises(RateLimitedError):
            with self.limiter.reserve(""):
                pass

    def test_zero_interval_never_limits(self) -> None:
        limiter = TenantRateLimiter(interval_seconds=0, clock=self.clock)
        for _ in range(3):
            with limiter.reserve("t-1"):
                pass

    def test_concurrent_submissions_admit_exactly_one(self) -> None:
        workers = 16
        barrier = threading.Barrier(workers)
        outcomes_lock = threading.Lock()
        outcomes = {"accepted": 0, "rejected": 0}

        def submit() -> None:
            barrier.wait()
            try:
                with self.limiter.reserve("t-1"):
                    outcome = "accepted"
            except RateLimitedError:
                outcome = "rejected"
            with outcomes_lock:
                outcomes[outcome] += 1

        threads = [threading.Thread(target=submit) for _ in range(workers)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=10)

        self.assertEqual(outcomes, {"accepted": 1, "rejected": 15})
        self.assertEqual(self.store.get("t-1"), 1_000.0)


if __name__ == "__main__":
    unittest.main()
