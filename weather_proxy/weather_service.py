"""
Weather gateway: caller checks followed by upstream dispatch.
"""

import logging
from typing import Optional

from weather_proxy.access_guard import AccessGuard, mask_key
from weather_proxy.credential_pool import CredentialPool
from weather_proxy.errors import (
    GatewayError,
    InvalidInput,
    TooManyRequests,
    Unauthorized,
    UpstreamUnavailable,
)
from weather_proxy.external_api import OpenWeatherMapClient
from weather_proxy.models import WeatherRecord
from weather_proxy.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)


class WeatherGateway:
    """
    Weather gateway that authorizes callers and dispatches to OpenWeatherMap.

    Checks run in order and stop at the first failure: input, caller key,
    rate limit, upstream fetch.
    """

    def __init__(
        self,
        access_guard: AccessGuard,
        rate_limiter: RateLimiter,
        api_client: OpenWeatherMapClient,
    ):
        self.access_guard = access_guard
        self.rate_limiter = rate_limiter
        self.api_client = api_client

    @property
    def credential_pool(self) -> CredentialPool:
        return self.api_client.credential_pool

    async def handle(
        self, city: Optional[str], country: Optional[str], caller_key: Optional[str]
    ) -> WeatherRecord:
        """
        Get weather information for a city on behalf of a caller.

        Args:
            city: Name of the city
            country: Country code
            caller_key: API key presented by the caller

        Returns:
            WeatherRecord: Weather information for the city

        Raises:
            GatewayError: The typed failure that stopped the request
        """
        if not city or not city.strip() or not country or not country.strip():
            logger.warning(
                "Rejected request from %s: city and country are required",
                mask_key(caller_key),
            )
            raise InvalidInput("City and country are required.")

        city, country = city.strip(), country.strip()

        if not self.access_guard.validate(caller_key):
            logger.warning("Unauthorized API key: %s", mask_key(caller_key))
            raise Unauthorized("Invalid API key.")

        decision = self.rate_limiter.check_and_record(caller_key)
        if not decision.allowed:
            raise TooManyRequests(
                f"Rate limit exceeded. You can make up to {decision.limit} "
                "requests per hour.",
                retry_after=decision.retry_after,
                limit=decision.limit,
                reset_at=decision.reset_at,
            )

        # Upstream credentials are independent of the caller's key
        credential = self.credential_pool.current()
        try:
            record = await self.api_client.fetch(city, country, credential)
        except GatewayError as e:
            logger.warning(
                "Weather request from %s for %s, %s failed: %s",
                mask_key(caller_key),
                city,
                country,
                e.error,
            )
            raise
        except Exception as e:  # pylint: disable=broad-exception-caught
            logger.error(
                "Unexpected error fetching weather for %s, %s (caller %s): %s",
                city,
                country,
                mask_key(caller_key),
                str(e),
            )
            raise UpstreamUnavailable(f"Service error for {city}") from e

        logger.info(
            "Served weather for %s, %s to %s", city, country, mask_key(caller_key)
        )
        return record
