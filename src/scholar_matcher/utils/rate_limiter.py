"""Per-service rate limiting for third-party API calls."""

from urllib.parse import urlparse

from aiolimiter import AsyncLimiter


class ServiceRateLimiter:
    """Throttle requests per remote service.

    Uses aiolimiter AsyncLimiter; each service key (an explicit name or the
    host of a URL) gets its own limiter so a slow publication source does not
    block calls to other services.
    """

    def __init__(
        self,
        default_rate: float = 1.0,
        time_period: float = 1.0,
        rates: dict[str, float] | None = None,
    ):
        """Initialize the service rate limiter.

        Args:
            default_rate: Maximum requests per time_period for unknown services
            time_period: Time period in seconds
            rates: Per-service overrides of default_rate, keyed by service name or host
        """
        self.limiters: dict[str, AsyncLimiter] = {}
        self.default_rate = default_rate
        self.time_period = time_period
        self.rates = dict(rates or {})

    @staticmethod
    def service_key(target: str) -> str:
        """Map a URL to its host; leave plain service names untouched."""
        if "://" in target:
            return urlparse(target).netloc
        return target

    def limiter_for(self, target: str) -> AsyncLimiter:
        key = self.service_key(target)
        if key not in self.limiters:
            self.limiters[key] = AsyncLimiter(
                max_rate=self.rates.get(key, self.default_rate),
                time_period=self.time_period,
            )
        return self.limiters[key]

    async def acquire(self, target: str) -> None:
        """Wait for a request slot for the target's service."""
        await self.limiter_for(target).acquire()
