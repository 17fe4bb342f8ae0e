from streamdesk.services.guards import RateLimiter

from tests.conftest import FakeClock


class TestRateLimiter:
    def test_allows_up_to_max_in_window(self):
        limiter = RateLimiter(window_ms=15_000, max_messages=5, clock=FakeClock())
        assert all(limiter.allow("a") for _ in range(5))
        assert limiter.allow("a") is False

    def test_window_slides(self):
        clock = FakeClock()
        limiter = RateLimiter(window_ms=1_000, max_messages=2, clock=clock)
        assert limiter.allow("a")
        clock.advance(600)
        assert limiter.allow("a")
        assert limiter.allow("a") is False
        clock.advance(500)
        # first message left the window, the rejected one did not
        assert limiter.bucket_size("a") == 2
        assert limiter.allow("a") is False

    def test_rejected_messages_keep_sender_blocked(self):
        clock = FakeClock()
        limiter = RateLimiter(window_ms=1_000, max_messages=1, clock=clock)
        assert limiter.allow("a")
        clock.advance(900)
        assert limiter.allow("a") is False
        clock.advance(200)
        assert limiter.allow("a") is False

    def test_conversations_are_independent(self):
        limiter = RateLimiter(window_ms=1_000, max_messages=1, clock=FakeClock())
        assert limiter.allow("a")
        assert limiter.allow("b")
        assert limiter.allow("a") is False

    def test_reset(self):
        limiter = RateLimiter(window_ms=1_000, max_messages=1, clock=FakeClock())
        limiter.allow("a")
        limiter.reset("a")
        assert limiter.allow("a")
        assert len(limiter) == 1

    def test_sweep_drops_idle_buckets(self):
        clock = FakeClock()
        limiter = RateLimiter(window_ms=1_000, max_messages=2, clock=clock)
        limiter.allow("a")
        clock.advance(600)
        limiter.allow("b")
        clock.advance(500)

        assert limiter.sweep() == 1
        assert len(limiter) == 1
        assert limiter.bucket_size("b") == 1
