"""
Configuration constants for the weather proxy.
"""

import os
from typing import List


def parse_key_list(raw: str) -> List[str]:
    """Split a comma separated key list, dropping blanks and keeping order."""
    return [key.strip() for key in (raw or "").split(",") if key.strip()]


class ExternalAPIConfig:
    """External API configuration"""

    OPENWEATHER_BASE_URL = os.getenv(
        "OPENWEATHER_BASE_URL", "https://api.openweathermap.org/data/2.5/weather"
    )
    OPENWEATHER_TIMEOUT = float(os.getenv("OPENWEATHER_TIMEOUT", "10"))
    OPENWEATHER_UNITS = "metric"


class RateLimitConfig:
    """Per caller key rate limit configuration"""

    MAX_REQUESTS = int(os.getenv("RATE_LIMIT_MAX_REQUESTS", "5"))
    WINDOW_SECONDS = 3600

    # Tracked key count above which expired usage entries are purged
    CLEANUP_THRESHOLD = int(os.getenv("RATE_LIMIT_CLEANUP_THRESHOLD", "10000"))


class ProxyConfig:
    """Service-level configuration"""

    # Environment variables
    ENV = os.getenv("ENV", "dev")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # Key lists are read at call time so a restarted worker picks up changes
    @staticmethod
    def allowed_api_keys() -> List[str]:
        """Caller keys permitted to use the proxy."""
        return parse_key_list(os.getenv("ALLOWED_API_KEYS", ""))

    @staticmethod
    def openweather_api_keys() -> List[str]:
        """Ordered upstream OpenWeatherMap credentials."""
        keys = parse_key_list(os.getenv("OPENWEATHER_API_KEYS", ""))
        if not keys:
            keys = parse_key_list(os.getenv("OPENWEATHER_API_KEY", ""))
        return keys
