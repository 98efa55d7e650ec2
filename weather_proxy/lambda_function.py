"""
FastAPI application for the weather proxy, with an AWS Lambda handler.
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from functools import lru_cache
from typing import Dict, Optional

from fastapi import Depends, FastAPI, Query, Request, Security
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.security import APIKeyHeader, APIKeyQuery
from mangum import Mangum

from weather_proxy import __version__
from weather_proxy.access_guard import AccessGuard
from weather_proxy.config import ExternalAPIConfig, ProxyConfig, RateLimitConfig
from weather_proxy.credential_pool import CredentialPool
from weather_proxy.errors import GatewayError, TooManyRequests
from weather_proxy.external_api import OpenWeatherMapClient
from weather_proxy.models import ErrorResponse, HealthResponse, WeatherRecord
from weather_proxy.rate_limiter import RateLimiter
from weather_proxy.weather_service import WeatherGateway

# Configure logging
logging.basicConfig(
    level=ProxyConfig.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Define caller key security schemes
api_key_query = APIKeyQuery(name="apiKey", auto_error=False)
api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)


def get_caller_key(
    query_key: Optional[str] = Security(api_key_query),
    header_key: Optional[str] = Security(api_key_header),
) -> str:
    """
    Extract the caller key from the header, falling back to the query string.

    The value is passed through untouched; the allow-list match is exact.
    """
    return header_key or query_key or ""


@lru_cache(maxsize=1)
def get_gateway() -> WeatherGateway:
    """
    Build the process-wide gateway from configuration.

    Raises:
        ConfigurationError: If no upstream credential is configured
    """
    pool = CredentialPool(ProxyConfig.openweather_api_keys())
    gateway = WeatherGateway(
        access_guard=AccessGuard(ProxyConfig.allowed_api_keys()),
        rate_limiter=RateLimiter(
            max_requests=RateLimitConfig.MAX_REQUESTS,
            window_seconds=RateLimitConfig.WINDOW_SECONDS,
            cleanup_threshold=RateLimitConfig.CLEANUP_THRESHOLD,
        ),
        api_client=OpenWeatherMapClient(
            pool,
            base_url=ExternalAPIConfig.OPENWEATHER_BASE_URL,
            timeout=ExternalAPIConfig.OPENWEATHER_TIMEOUT,
        ),
    )
    logger.info("Weather gateway initialized (env=%s)", ProxyConfig.ENV)
    return gateway


def rate_limit_headers(limit: int, remaining: int, reset_at: int) -> Dict[str, str]:
    return {
        "X-RateLimit-Limit": str(limit),
        "X-RateLimit-Remaining": str(max(0, remaining)),
        "X-RateLimit-Reset": str(reset_at),
    }


@asynccontextmanager
async def lifespan(_app: FastAPI):
    """Build the gateway at startup so missing configuration fails fast."""
    get_gateway()
    yield


# Initialize FastAPI app
app = FastAPI(
    lifespan=lifespan,
    title="OpenWeather Proxy API",
    description="A proxy service for fetching weather data from OpenWeather API.",
    version=__version__,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


# Root endpoint
@app.get("/")
async def root():
    """Root endpoint providing API information."""
    return {
        "service": "OpenWeather Proxy API",
        "version": __version__,
        "status": "active",
        "endpoints": {
            "weather": "/api/weather?city={city}&country={country}",
            "health_check": "/health",
            "documentation": "/docs",
        },
    }


# Health check endpoint
@app.get("/health", response_model=HealthResponse)
async def health_check():
    """Liveness check. Does not call the weather provider."""
    timestamp = datetime.now(timezone.utc).isoformat()
    try:
        gateway = get_gateway()
    except Exception as e:  # pylint: disable=broad-exception-caught
        logger.error("Health check failed: %s", str(e))
        return HealthResponse(
            status="unhealthy", timestamp=timestamp, checks={}, error=str(e)
        )

    return HealthResponse(
        status="healthy",
        timestamp=timestamp,
        checks={
            "upstream_credentials": gateway.credential_pool.size,
            "allowed_api_keys": len(gateway.access_guard),
            "tracked_callers": len(gateway.rate_limiter),
        },
    )


@app.get(
    "/api/weather",
    response_model=WeatherRecord,
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        429: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
        504: {"model": ErrorResponse},
    },
)
async def get_weather(
    city: Optional[str] = Query(None),
    country: Optional[str] = Query(None),
    caller_key: str = Depends(get_caller_key),
    gateway: WeatherGateway = Depends(get_gateway),
):
    """
    Get weather information for a city and country.

    Args:
        city: City name
        country: Country code
        caller_key: Proxy API key (X-API-Key header or apiKey query parameter)

    Returns:
        WeatherRecord: Weather details
    """
    record = await gateway.handle(city, country, caller_key)
    limiter = gateway.rate_limiter
    return JSONResponse(
        content=record.model_dump(),
        headers=rate_limit_headers(
            limiter.max_requests, limiter.remaining(caller_key), limiter.reset_at()
        ),
    )


@app.exception_handler(GatewayError)
async def gateway_exception_handler(request: Request, exc: GatewayError):  # pylint: disable=unused-argument
    """Map typed gateway failures to JSON error responses."""
    headers = None
    if isinstance(exc, TooManyRequests):
        headers = rate_limit_headers(exc.limit, 0, exc.reset_at)
        headers["Retry-After"] = str(exc.retry_after)
    body = ErrorResponse(error=exc.error, message=exc.message, status_code=exc.status_code)
    return JSONResponse(
        status_code=exc.status_code, content=body.model_dump(), headers=headers
    )


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request, exc):  # pylint: disable=unused-argument
    """Global exception handler for unhandled errors."""
    logger.error("Unhandled exception: %s", str(exc))
    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal Server Error",
            "message": "An unexpected error occurred",
            "status_code": 500,
        },
    )


# AWS Lambda handler using Mangum
handler = Mangum(app, lifespan="off")
