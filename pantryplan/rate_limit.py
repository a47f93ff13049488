from slowapi import Limiter
from slowapi.util import get_remote_address

from .settings import settings

# Per-IP; routes can tighten with @limiter.limit(...)
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=["100/minute"],
    enabled=settings.rate_limit_enabled,
)
