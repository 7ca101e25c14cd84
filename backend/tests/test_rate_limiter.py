"""Tests for the per-model sliding window rate limiter.

Run with: pytest tests/test_rate_limiter.py -v
"""

from app.llm.rate_limiter import RateLimiter


class TestRateLimiter:
    """Test admission decisions over a simulated clock."""

    def test_admits_exactly_quota_within_window(self, fake_clock):
        """N calls pass, the (N+1)th is rejected."""
        limiter = RateLimiter(limits={"test-model": 3}, clock=fake_clock)

        results = [limiter.can_make_request("test-model") for _ in range(4)]

        assert results == [True, True, True, False]

    def test_window_slides_after_sixty_seconds(self, fake_clock):
        limiter = RateLimiter(limits={"test-model": 2}, clock=fake_clock)
        assert limiter.can_make_request("test-model")
        assert limiter.can_make_request("test-model")
        assert not limiter.can_make_request("test-model")

        fake_clock.advance(59)
        assert not limiter.can_make_request("test-model")

        fake_clock.advance(1)
        assert limiter.can_make_request("test-model")

    def test_rejection_is_not_recorded(self, fake_clock):
        """Rejected calls do not extend the window."""
        limiter = RateLimiter(limits={"test-model": 1}, clock=fake_clock)
        assert limiter.can_make_request("test-model")

        fake_clock.advance(30)
        assert not limiter.can_make_request("test-model")

        fake_clock.advance(30)
        assert limiter.can_make_request("test-model")

    def test_models_have_independent_windows(self, fake_clock):
        limiter = RateLimiter(limits={"a-model": 1, "b-model": 1}, clock=fake_clock)

        assert limiter.can_make_request("a-model")
        assert not limiter.can_make_request("a-model")
        assert limiter.can_make_request("b-model")

    def test_tiers_and_default(self):
        """Premium, standard and alternate vendor tiers plus a default."""
        limiter = RateLimiter()

        assert limiter.get_limit("gpt-4-turbo") == 60
        assert limiter.get_limit("gpt-3.5-turbo") == 100
        assert limiter.get_limit("claude-3-sonnet-20240229") == 50
        assert limiter.get_limit("llama3.1:8b") == 100

    def test_reset_clears_windows(self, fake_clock):
        limiter = RateLimiter(limits={"test-model": 1}, clock=fake_clock)
        assert limiter.can_make_request("test-model") is True
        assert limiter.can_make_request("test-model") is False

        limiter.reset()
        assert limiter.can_make_request("test-model") is True
