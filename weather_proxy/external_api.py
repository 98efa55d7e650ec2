"""
External API client for OpenWeatherMap service.
"""

import asyncio
import logging
from typing import Dict, List, Optional, Tuple, Union

import aiohttp
from pydantic import BaseModel, Field, StrictFloat, StrictInt, StrictStr, ValidationError

from weather_proxy.access_guard import mask_key
from weather_proxy.config import ExternalAPIConfig
from weather_proxy.credential_pool import CredentialPool
from weather_proxy.errors import (
    UpstreamAuthError,
    UpstreamMalformedResponse,
    UpstreamUnavailable,
)
from weather_proxy.models import WeatherRecord

logger = logging.getLogger(__name__)

# Upper bound on how much of an unexpected body ends up in a log line
MAX_LOGGED_BODY = 500

Number = Union[StrictInt, StrictFloat]


class WeatherCondition(BaseModel):
    """Single entry of the OpenWeatherMap "weather" list."""

    description: StrictStr


class MainData(BaseModel):
    """OpenWeatherMap "main" block."""

    temp: Number
    humidity: Number


class OpenWeatherMapResponse(BaseModel):
    """Fields of the OpenWeatherMap current weather response we rely on."""

    weather: List[WeatherCondition] = Field(..., min_length=1)
    main: MainData

    @property
    def description(self) -> str:
        return self.weather[0].description


class OpenWeatherMapClient:
    """
    Asynchronous client for the OpenWeatherMap current weather endpoint.

    On an upstream 429 the shared credential pool is rotated and the request
    is sent once more with the new credential; the second response is final.
    """

    def __init__(
        self,
        credential_pool: CredentialPool,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        """
        Initialize the OpenWeatherMap client.

        Args:
            credential_pool: Upstream credentials shared across requests
            base_url: Endpoint URL (defaults to config value)
            timeout: Request timeout in seconds (defaults to config value)
        """
        self.credential_pool = credential_pool
        self.base_url = base_url or ExternalAPIConfig.OPENWEATHER_BASE_URL
        self.timeout = aiohttp.ClientTimeout(
            total=timeout or ExternalAPIConfig.OPENWEATHER_TIMEOUT
        )

    @staticmethod
    def build_params(city: str, country: str, credential: str) -> Dict[str, str]:
        """Query parameters for a lookup of city in country."""
        return {
            "q": f"{city},{country}",
            "appid": credential,
            "units": ExternalAPIConfig.OPENWEATHER_UNITS,
        }

    async def fetch(
        self, city: str, country: str, credential: Optional[str] = None
    ) -> WeatherRecord:
        """
        Get current weather for a city.

        Args:
            city: City name
            country: Country code (e.g. "us")
            credential: Upstream key to start with (defaults to the pool's current)

        Returns:
            WeatherRecord: Normalized weather data

        Raises:
            UpstreamAuthError: If the provider rejects the credential
            UpstreamUnavailable: If the provider fails or cannot be reached
            UpstreamMalformedResponse: If the body is not the expected shape
        """
        credential = credential or self.credential_pool.current()
        status, body = await self._send(city, country, credential)

        if status == 429:
            logger.warning(
                "Upstream rate limit for key %s. Switching API key...",
                mask_key(credential),
            )
            credential = self.credential_pool.rotate(expected=credential)
            status, body = await self._send(city, country, credential)

        if status == 401:
            logger.critical(
                "OpenWeatherMap rejected API key %s while fetching %s, %s",
                mask_key(credential),
                city,
                country,
            )
            raise UpstreamAuthError("Upstream API key rejected")

        if not 200 <= status < 300:
            logger.error(
                "Failed to fetch weather for %s, %s. Status Code: %d",
                city,
                country,
                status,
            )
            raise UpstreamUnavailable(
                f"Weather provider returned status {status}", upstream_status=status
            )

        payload = self._parse(city, country, body)
        logger.debug("Successfully fetched weather for %s, %s", city, country)

        return WeatherRecord(
            city=city,
            country=country,
            description=payload.description,
            temperature_celsius=float(payload.main.temp),
            humidity_percent=float(payload.main.humidity),
        )

    async def _send(self, city: str, country: str, credential: str) -> Tuple[int, str]:
        """Issue one GET and return (status, body text)."""
        params = self.build_params(city, country, credential)
        logger.debug(
            "Requesting weather for %s, %s using API key %s",
            city,
            country,
            mask_key(credential),
        )

        try:
            async with aiohttp.ClientSession(timeout=self.timeout) as session:
                async with session.get(self.base_url, params=params) as response:
                    return response.status, await response.text(errors="replace")

        except asyncio.TimeoutError as e:
            logger.error(
                "Timed out after %.1fs fetching weather for %s, %s",
                self.timeout.total,
                city,
                country,
            )
            raise UpstreamUnavailable(
                "Weather provider timed out", timed_out=True
            ) from e

        except aiohttp.ClientError as e:
            logger.error(
                "HTTP request failed for %s, %s: %s", city, country, str(e)
            )
            raise UpstreamUnavailable("Weather provider unreachable") from e

    @staticmethod
    def _parse(city: str, country: str, body: str) -> OpenWeatherMapResponse:
        """Validate the upstream body before any field is read."""
        if not body or not body.strip():
            logger.error("Empty response body for %s, %s", city, country)
            raise UpstreamMalformedResponse("Weather provider returned an empty body")

        try:
            return OpenWeatherMapResponse.model_validate_json(body)
        except ValidationError as e:
            logger.error(
                "Malformed weather response for %s, %s: %s. Body: %s",
                city,
                country,
                e,
                body[:MAX_LOGGED_BODY],
            )
            raise UpstreamMalformedResponse(
                "Weather provider returned an unexpected response"
            ) from e
