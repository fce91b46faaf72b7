"""Shared inbound rate limiter.

Keyed by client IP. Uses in-memory storage unless RATE_LIMIT_STORAGE_URI
points at a shared backend (limits are per-process otherwise).
"""

from loguru import logger
from slowapi import Limiter
from slowapi.util import get_remote_address

from .config import settings


def _resolve_storage() -> str | None:
    """Return the configured storage URI, or None for in-memory."""
    if not settings.rate_limit_storage_uri:
        return None
    logger.info("Rate limiter using shared storage", uri=settings.rate_limit_storage_uri)
    return settings.rate_limit_storage_uri


limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[settings.rate_limit_default],
    enabled=settings.rate_limit_enabled,
    storage_uri=_resolve_storage(),
)
