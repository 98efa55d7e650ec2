"""
Caller API key validation.
"""

import logging
from typing import Iterable, Optional

logger = logging.getLogger(__name__)


def mask_key(key: Optional[str]) -> str:
    """Render a key for log lines without exposing it."""
    if not key:
        return "<none>"
    return f"***{key[-4:]}" if len(key) > 4 else "***"


class AccessGuard:
    """Allow-list check for keys presented by proxy clients."""

    def __init__(self, allowed_keys: Iterable[str]):
        self._allowed_keys = frozenset(k for k in allowed_keys if k)
        if not self._allowed_keys:
            logger.warning("No allowed API keys configured; every request will be rejected")

    def __len__(self) -> int:
        return len(self._allowed_keys)

    def validate(self, caller_key: Optional[str]) -> bool:
        """Return True iff caller_key is a non-empty, exactly allowed key."""
        if not isinstance(caller_key, str) or not caller_key.strip():
            return False
        return caller_key in self._allowed_keys
