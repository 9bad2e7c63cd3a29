"""
Unit tests for ServiceRateLimiter.
"""

import pytest

from scholar_matcher.utils.rate_limiter import ServiceRateLimiter


class TestServiceRateLimiter:
    """Test cases for per-service limiters."""

    def test_service_key_uses_url_host(self):
        assert ServiceRateLimiter.service_key("https://serpapi.com/search.json") == "serpapi.com"
        assert ServiceRateLimiter.service_key("llm") == "llm"

    def test_same_host_shares_limiter(self):
        # Arrange
        limiter = ServiceRateLimiter()

        # Act
        first = limiter.limiter_for("https://serpapi.com/search.json")
        second = limiter.limiter_for("https://serpapi.com/account")

        # Assert
        assert first is second
        assert limiter.limiter_for("https://example.com") is not first

    def test_per_service_rate_override(self):
        # Arrange
        limiter = ServiceRateLimiter(default_rate=1, time_period=1.0, rates={"serpapi.com": 5})

        # Act
        serp = limiter.limiter_for("https://serpapi.com/search.json")
        other = limiter.limiter_for("https://example.com")

        # Assert
        assert serp.max_rate == 5
        assert other.max_rate == 1

    @pytest.mark.asyncio
    async def test_acquire_within_capacity_does_not_block(self):
        # Arrange
        limiter = ServiceRateLimiter(default_rate=3, time_period=60.0)

        # Act
        for _ in range(3):
            await limiter.acquire("serpapi")

        # Assert
        assert not limiter.limiter_for("serpapi").has_capacity()
