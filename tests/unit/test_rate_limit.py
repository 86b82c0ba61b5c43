"""Tests for fetching/rate_limit.py - per-client request limiting."""


class TestClientIdentifier:
    """Tests for deriving the rate-limit key."""

    def test_first_forwarded_hop_wins(self):
        """Test the first X-Forwarded-For entry is used."""
        from rsvp_reader.fetching.rate_limit import client_identifier

        headers = {"X-Forwarded-For": "203.0.113.7, 10.0.0.1", "X-Real-IP": "198.51.100.2"}
        assert client_identifier(headers, "127.0.0.1") == "203.0.113.7"

    def test_real_ip_used_without_forwarded_for(self):
        """Test X-Real-IP is the second choice."""
        from rsvp_reader.fetching.rate_limit import client_identifier

        assert client_identifier({"X-Real-IP": "198.51.100.2"}, "127.0.0.1") == "198.51.100.2"

    def test_remote_addr_then_unknown(self):
        """Test the socket address, then a shared unknown bucket."""
        from rsvp_reader.fetching.rate_limit import client_identifier

        assert client_identifier({}, "192.0.2.1") == "192.0.2.1"
        assert client_identifier({}) == "unknown"


class TestRateLimiterCheck:
    """Tests for RateLimiter.check."""

    def test_requests_within_limit_allowed(self, clock):
        """Test remaining counts down while requests are allowed."""
        from rsvp_reader.fetching.rate_limit import RateLimiter

        limiter = RateLimiter(max_requests=3, window=60, clock=clock)

        remaining = [limiter.check("a").remaining for _ in range(3)]
        assert remaining == [2, 1, 0]

    def test_request_over_limit_rejected(self, clock):
        """Test the request after the cap is rejected with retry_after."""
        from rsvp_reader.fetching.rate_limit import RateLimiter

        limiter = RateLimiter(max_requests=2, window=60, clock=clock)
        limiter.check("a")
        limiter.check("a")
        clock.advance(15.5)

        decision = limiter.check("a")
        assert decision.allowed is False
        assert decision.remaining == 0
        assert decision.limit == 2
        assert decision.retry_after == 45

    def test_rejections_do_not_extend_window(self, clock):
        """Test rejected requests are not counted and the window still ends."""
        from rsvp_reader.fetching.rate_limit import RateLimiter

        limiter = RateLimiter(max_requests=1, window=60, clock=clock)
        limiter.check("a")
        for _ in range(5):
            assert limiter.check("a").allowed is False

        clock.advance(60.5)
        decision = limiter.check("a")
        assert decision.allowed is True
        assert decision.remaining == 0

    def test_identifiers_limited_independently(self, clock):
        """Test one client's usage does not affect another."""
        from rsvp_reader.fetching.rate_limit import RateLimiter

        limiter = RateLimiter(max_requests=1, window=60, clock=clock)
        limiter.check("a")

        assert limiter.check("a").allowed is False
        assert limiter.check("b").allowed is True

    def test_retry_after_is_at_least_one(self, clock):
        """Test retry_after never drops to zero while rejected."""
        from rsvp_reader.fetching.rate_limit import RateLimiter

        limiter = RateLimiter(max_requests=1, window=60, clock=clock)
        limiter.check("a")
        clock.advance(60)  # exactly at reset, still inside the window

        decision = limiter.check("a")
        assert decision.allowed is False
        assert decision.retry_after == 1


class TestRateLimiterSweep:
    """Tests for RateLimiter.sweep."""

    def test_sweep_purges_long_expired_records(self, clock):
        """Test records are dropped one full window after their reset."""
        from rsvp_reader.fetching.rate_limit import RateLimiter

        limiter = RateLimiter(max_requests=5, window=60, clock=clock)
        limiter.check("old")
        clock.advance(100)
        limiter.check("new")

        assert limiter.sweep() == 0
        clock.advance(21)

        assert limiter.sweep() == 1
        assert len(limiter) == 1

    def test_background_sweep_starts_and_stops(self, clock):
        """Test the sweep thread lifecycle."""
        from rsvp_reader.fetching.rate_limit import RateLimiter

        limiter = RateLimiter(sweep_interval=30, clock=clock)
        limiter.start()
        try:
            assert limiter.running is True
        finally:
            limiter.stop()
        assert limiter.running is False
