"""
Rate Limiting Configuration

This module sets up the slowapi Limiter. Counters live in Redis unless
RATE_LIMIT_STORAGE_URI points somewhere else (e.g. "memory://").
"""

from slowapi import Limiter
from slowapi.util import get_remote_address
from dispatch_api.config import settings

# key_func=get_remote_address: Uses the client's IP address as the unique identifier
limiter = Limiter(
    key_func=get_remote_address,
    storage_uri=settings.rate_limit_storage,
    strategy="fixed-window",
    enabled=settings.RATE_LIMIT_ENABLED,
)
