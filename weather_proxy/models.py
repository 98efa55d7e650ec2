"""
Pydantic models for request/response validation.
"""

from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict


class WeatherRecord(BaseModel):
    """Normalized weather data for a single city."""

    model_config = ConfigDict(frozen=True)

    city: str
    country: str
    description: str
    temperature_celsius: float
    humidity_percent: float


class ErrorResponse(BaseModel):
    """Response model for error cases."""

    error: str
    message: str
    status_code: int


class HealthResponse(BaseModel):
    """Response model for the liveness endpoint."""

    status: str
    timestamp: str
    checks: Dict[str, int]
    error: Optional[str] = None
