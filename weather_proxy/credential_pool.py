"""
Rotating pool of upstream OpenWeatherMap credentials.
"""

import logging
import threading
from typing import Iterable, Optional

from weather_proxy.access_guard import mask_key
from weather_proxy.errors import ConfigurationError

logger = logging.getLogger(__name__)


class CredentialPool:
    """
    Ordered upstream credentials with a shared rotation cursor.

    The pool is shared by every in-flight request, so rotation is serialized
    with a lock. Membership never changes after construction.
    """

    def __init__(self, credentials: Iterable[str]):
        """
        Initialize the pool.

        Args:
            credentials: Upstream API keys in rotation order

        Raises:
            ConfigurationError: If no usable credential is supplied
        """
        self._credentials = tuple(c for c in credentials if c and c.strip())
        if not self._credentials:
            raise ConfigurationError("At least one OpenWeatherMap API key is required")

        self._cursor = 0
        self._lock = threading.Lock()
        logger.info("Initialized credential pool with %d key(s)", len(self._credentials))

    @property
    def size(self) -> int:
        return len(self._credentials)

    @property
    def cursor(self) -> int:
        return self._cursor

    def current(self) -> str:
        """Return the credential requests should currently use."""
        with self._lock:
            return self._credentials[self._cursor]

    def rotate(self, expected: Optional[str] = None) -> str:
        """
        Advance to the next credential and return it.

        Args:
            expected: Credential the caller saw fail. If another request has
                already rotated away from it, the cursor is left alone.

        Returns:
            The credential that is current after the call
        """
        with self._lock:
            current = self._credentials[self._cursor]
            if expected is not None and expected != current:
                logger.debug("Credential already rotated by a concurrent request")
                return current

            self._cursor = (self._cursor + 1) % len(self._credentials)
            rotated = self._credentials[self._cursor]

        logger.warning(
            "Rotated upstream credential %s -> %s",
            mask_key(current),
            mask_key(rotated),
        )
        return rotated
