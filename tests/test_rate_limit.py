from ewaiter.services.rate_limit import RateLimiter


def test_blocks_after_max_failures():
    limiter = RateLimiter(max_requests=3, window_seconds=60)
    for offset in range(3):
        assert limiter.blocked("1.2.3.4:7", now=1000.0 + offset) is False
        limiter.record("1.2.3.4:7", now=1000.0 + offset)

    assert limiter.blocked("1.2.3.4:7", now=1010.0) is True
    assert limiter.blocked("1.2.3.4:42", now=1010.0) is False


def test_window_expires_old_failures():
    limiter = RateLimiter(max_requests=2, window_seconds=60)
    limiter.record("key", now=1000.0)
    limiter.record("key", now=1001.0)

    assert limiter.blocked("key", now=1030.0) is True
    assert limiter.blocked("key", now=1061.0) is False


def test_reset_clears_key():
    limiter = RateLimiter(max_requests=1, window_seconds=60)
    limiter.record("key", now=1000.0)

    limiter.reset("key")

    assert limiter.blocked("key", now=1001.0) is False


def test_checking_keys_does_not_keep_state():
    limiter = RateLimiter(max_requests=2, window_seconds=60)

    for index in range(100):
        assert limiter.blocked(f"1.2.3.4:tenant-{index}", now=1000.0) is False

    assert limiter._requests == {}


def test_expired_keys_are_dropped():
    limiter = RateLimiter(max_requests=2, window_seconds=60)
    limiter.record("key", now=1000.0)

    assert limiter.blocked("key", now=1061.0) is False
    assert "key" not in limiter._requests
