"""Request rate limiting for the write endpoints."""

from slowapi import Limiter
from slowapi.util import get_remote_address

from campus_incidents.config import get_settings

settings = get_settings()

limiter = Limiter(key_func=get_remote_address)

# Applied to endpoints that write to the store
WRITE_LIMIT = f"{settings.rate_limit_per_minute}/minute"
