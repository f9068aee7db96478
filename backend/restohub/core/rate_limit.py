"""Request rate limiting shared by the route modules."""

from fastapi import Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from restohub.core.config import settings
from restohub.core.security import decode_access_token

READ_LIMIT = f"{settings.rate_limit_requests}/{settings.rate_limit_window} seconds"
WRITE_LIMIT = f"{settings.rate_limit_write_requests}/{settings.rate_limit_window} seconds"


def principal_or_ip(request: Request) -> str:
    """Key by token subject when a valid bearer token is present, else by client IP."""
    auth = request.headers.get("Authorization", "")
    if auth.startswith("Bearer "):
        payload = decode_access_token(auth.split(" ", 1)[1])
        if payload and payload.get("sub"):
            return f"user:{payload['sub']}"
    return get_remote_address(request)


limiter = Limiter(key_func=principal_or_ip, enabled=settings.rate_limit_enabled)
