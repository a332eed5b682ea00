# =============================================================================
# tests/test_rate_limit.py - Rate Limiter Tests
# =============================================================================
# Uses an injectable clock so window expiry is deterministic.
#
# Run with: pytest tests/test_rate_limit.py -v
# =============================================================================

import pytest
from starlette.requests import Request

from app.exceptions import RateLimitExceededError
from app.rate_limit import RateLimiter, client_ip, llm_limiter
from tests.conftest import USER_ID


class FakeClock:
    def __init__(self, now=1_000.0):
        self.now = now

    def __call__(self):
        return self.now


def make_request(headers=None, client=("10.0.0.1", 1234)):
    scope = {
        "type": "http",
        "method": "GET",
        "path": "/",
        "headers": [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()],
        "client": client,
    }
    return Request(scope)


class TestRateLimiter:

    def test_counts_down_remaining(self):
        limiter = RateLimiter("test", max_requests=3, window_seconds=60, clock=FakeClock())

        results = [limiter.hit("alice") for _ in range(3)]

        assert [r.remaining for r in results] == [2, 1, 0]
        assert all(r.allowed for r in results)

    def test_blocks_after_limit(self):
        clock = FakeClock()
        limiter = RateLimiter("test", max_requests=2, window_seconds=60, clock=clock)
        limiter.hit("alice")
        limiter.hit("alice")

        clock.now += 15
        result = limiter.hit("alice")

        assert not result.allowed
        assert result.remaining == 0
        assert result.retry_after == 45

    def test_window_resets(self):
        clock = FakeClock()
        limiter = RateLimiter("test", max_requests=1, window_seconds=60, clock=clock)
        limiter.hit("alice")
        assert not limiter.hit("alice").allowed

        clock.now += 60

        assert limiter.hit("alice").allowed

    def test_keys_are_independent(self):
        limiter = RateLimiter("test", max_requests=1, window_seconds=60, clock=FakeClock())
        limiter.hit("alice")

        assert limiter.hit("bob").allowed
        assert limiter.key_for("bob") == "test:bob"

    def test_check_raises_with_headers(self):
        limiter = RateLimiter("test", max_requests=1, window_seconds=60, clock=FakeClock())
        limiter.check("alice")

        with pytest.raises(RateLimitExceededError) as exc_info:
            limiter.check("alice")

        error = exc_info.value
        assert error.status_code == 429
        assert error.headers["Retry-After"] == "60"
        assert error.headers["X-RateLimit-Limit"] == "1"
        assert error.headers["X-RateLimit-Remaining"] == "0"
        assert error.headers["X-RateLimit-Reset"] == "1060"

    def test_reset_clears_windows(self):
        limiter = RateLimiter("test", max_requests=1, window_seconds=60, clock=FakeClock())
        limiter.hit("alice")
        limiter.reset()
        assert limiter.hit("alice").allowed


class TestClientIp:

    def test_forwarded_for_first_hop(self):
        request = make_request({"X-Forwarded-For": "203.0.113.7, 10.0.0.2"})
        assert client_ip(request) == "203.0.113.7"

    def test_real_ip(self):
        assert client_ip(make_request({"X-Real-IP": "198.51.100.4"})) == "198.51.100.4"

    def test_socket_address(self):
        assert client_ip(make_request()) == "10.0.0.1"

    def test_unknown(self):
        assert client_ip(make_request(client=None)) == "unknown"


class TestLimitDependencies:

    def test_llm_limit_applies_to_generation(self, client, make_project):
        project = make_project(github_token=None)
        for _ in range(llm_limiter.max_requests):
            # Token check fails after the limiter has counted the request
            response = client.post(f"/api/v1/projects/{project['id']}/generate")
            assert response.status_code == 400

        response = client.post(f"/api/v1/projects/{project['id']}/generate")

        assert response.status_code == 429
        assert response.headers["X-RateLimit-Limit"] == str(llm_limiter.max_requests)

    def test_llm_limit_is_per_user(self):
        llm_limiter.hit(str(USER_ID))
        assert llm_limiter.hit("someone-else").remaining == llm_limiter.max_requests - 1
