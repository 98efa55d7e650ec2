"""
Weather proxy service: caller authentication, rate limiting and
OpenWeatherMap dispatch with upstream credential rotation.
"""

__version__ = "1.0.0"
