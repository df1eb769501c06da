"""Unit tests for RateLimiter."""
import sys
import threading
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

from services.rate_limiter import RateLimiter


class FakeClock:
    def __init__(self, now=1_700_000_000.0):
        self.now = now

    def __call__(self):
        return self.now


class TestRateLimiter:
    """Test suite for RateLimiter."""

    def test_twenty_allowed_then_denied(self):
        """Test the 21st request inside one minute is denied."""
        clock = FakeClock()
        limiter = RateLimiter(max_requests=20, window=60, clock=clock)

        statuses = [limiter.check("1.2.3.4") for _ in range(20)]
        denied = limiter.check("1.2.3.4")

        assert all(s.allowed for s in statuses)
        assert statuses[0].remaining == 19
        assert statuses[-1].remaining == 0
        assert denied.allowed is False
        assert denied.remaining == 0
        assert denied.limit == 20
        assert denied.reset_time == clock.now + 60
        assert 0 < denied.retry_after <= 60

    def test_retry_after_shrinks_over_time(self):
        clock = FakeClock()
        limiter = RateLimiter(max_requests=1, window=60, clock=clock)

        limiter.check("ip")
        clock.now += 45
        denied = limiter.check("ip")

        assert denied.retry_after == 15

    def test_window_resets(self):
        clock = FakeClock()
        limiter = RateLimiter(max_requests=2, window=60, clock=clock)

        limiter.check("ip")
        limiter.check("ip")
        assert limiter.check("ip").allowed is False

        clock.now += 61
        status = limiter.check("ip")

        assert status.allowed is True
        assert status.remaining == 1

    def test_identifiers_are_independent(self):
        limiter = RateLimiter(max_requests=1, window=60, clock=FakeClock())

        assert limiter.check("a").allowed is True
        assert limiter.check("b").allowed is True
        assert limiter.check("a").allowed is False

    def test_cleanup_removes_expired_windows(self):
        clock = FakeClock()
        limiter = RateLimiter(max_requests=5, window=60, clock=clock)

        limiter.check("old")
        clock.now += 30
        limiter.check("new")
        clock.now += 31

        assert limiter.cleanup() == 1
        assert len(limiter) == 1

    def test_concurrent_checks_never_exceed_limit(self):
        limiter = RateLimiter(max_requests=20, window=60)
        results = []
        lock = threading.Lock()

        def worker():
            for _ in range(10):
                status = limiter.check("shared")
                with lock:
                    results.append(status.allowed)

        threads = [threading.Thread(target=worker) for _ in range(5)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert results.count(True) == 20
        assert results.count(False) == 30
