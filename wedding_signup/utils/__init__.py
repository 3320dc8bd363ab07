# wedding_signup/utils/__init__.py

"""
Shared utilities: credential sealing, transport retries and rate limiting.
"""

from .security import FernetEncryptor, generate_fernet_key
from .retry import retry, TRANSIENT_HTTP_ERRORS
from .rate_limit import (
    RateLimitConfig,
    RateLimitResult,
    RateLimits,
    AbstractRateLimiter,
    InMemoryRateLimiter,
    RedisRateLimiter,
    get_client_ip,
    get_rate_limiter,
    close_rate_limiter,
)

__all__ = [
    "FernetEncryptor",
    "generate_fernet_key",
    "retry",
    "TRANSIENT_HTTP_ERRORS",
    "RateLimitConfig",
    "RateLimitResult",
    "RateLimits",
    "AbstractRateLimiter",
    "InMemoryRateLimiter",
    "RedisRateLimiter",
    "get_client_ip",
    "get_rate_limiter",
    "close_rate_limiter",
]
