"""
Local development server for the weather proxy.
Run this from the root directory: python -m weather_proxy.local_dev
"""

from pathlib import Path

import uvicorn
from dotenv import load_dotenv

from weather_proxy.config import ExternalAPIConfig, ProxyConfig, RateLimitConfig

root_dir = Path(__file__).parent.parent


def main() -> None:
    # Load environment variables from .env file before the app reads them
    env_file = root_dir / ".env"
    if env_file.exists():
        load_dotenv(env_file)
        print(f"Loaded environment variables from {env_file}")
    else:
        print("No .env file found. Copy .env.example to .env and fill in the keys.")

    upstream_keys = ProxyConfig.openweather_api_keys()
    allowed_keys = ProxyConfig.allowed_api_keys()
    if not upstream_keys:
        print("WARNING: OPENWEATHER_API_KEYS is not set; the server will refuse to start.")
    if not allowed_keys:
        print("WARNING: ALLOWED_API_KEYS is not set; every weather request will get 401.")

    print("Starting OpenWeather Proxy API...")
    print(f"Upstream: {ExternalAPIConfig.OPENWEATHER_BASE_URL} ({len(upstream_keys)} key(s))")
    print(
        f"Callers: {len(allowed_keys)} allowed key(s), "
        f"{RateLimitConfig.MAX_REQUESTS} requests per hour each"
    )
    print("Try: curl -H 'X-API-Key: <key>' 'http://localhost:8000/api/weather?city=Paris&country=fr'")
    print("API Documentation: http://localhost:8000/docs")

    uvicorn.run(
        "weather_proxy.lambda_function:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level="info",
    )


if __name__ == "__main__":
    main()
