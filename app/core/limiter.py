"""
Shared slowapi limiter.

Requests carrying an Authorization header are bucketed by it; anonymous
requests are bucketed by client address.
"""
from slowapi import Limiter
from slowapi.util import get_remote_address
from starlette.requests import Request

from app.core import config


def get_rate_limit_key(request: Request) -> str:
    """
    Extract the rate limit bucket for a request.
    Used with slowapi Limiter.
    """
    return request.headers.get("Authorization") or get_remote_address(request)


def role_write_limit() -> str:
    """Limit applied to role writes, read from config on every request."""
    return config.ROLE_WRITE_RATE_LIMIT


limiter = Limiter(key_func=get_rate_limit_key)
