"""Rate limiting for the classification route using slowapi.

A classification can cost two model calls, so POST /api/classify carries its
own limit (CLASSIFY_RATE_LIMIT, default 20/minute) on top of the service-wide
default. The limit is read from Settings each time a request is checked.
"""

import json

from fastapi import Request, Response
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from dealgate.config import get_settings


DEFAULT_LIMIT = "200/minute"
DEFAULT_RETRY_AFTER_SECONDS = 60


def get_client_ip(request: Request) -> str:
    """
    Rate-limit key: the client IP address.

    X-Forwarded-For is honoured only when the direct peer is one of
    TRUSTED_PROXIES; otherwise clients could choose their own key.
    """
    direct_ip: str = get_remote_address(request)

    if direct_ip not in get_settings().trusted_proxy_list:
        return direct_ip

    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()
    return direct_ip


# In-memory storage, keyed by client IP
limiter = Limiter(key_func=get_client_ip, default_limits=[DEFAULT_LIMIT])


def classify_rate_limit() -> str:
    """Limit applied to POST /api/classify."""
    return get_settings().classify_rate_limit


def retry_after_seconds(exc: RateLimitExceeded) -> int:
    """Length of the exceeded limit's window, which bounds the wait."""
    item = getattr(getattr(exc, "limit", None), "limit", None)
    if item is None:
        return DEFAULT_RETRY_AFTER_SECONDS
    return int(item.get_expiry())


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> Response:
    """
    Return 429 Too Many Requests with Retry-After and X-RateLimit-* headers.
    """
    retry_after = retry_after_seconds(exc)

    error_body = {
        "detail": "Rate limit exceeded",
        "message": f"Too many requests. Please retry after {retry_after} seconds.",
        "retry_after": retry_after,
    }

    response = Response(
        content=json.dumps(error_body),
        status_code=429,
        media_type="application/json",
    )
    response.headers["Retry-After"] = str(retry_after)
    response.headers["X-RateLimit-Remaining"] = "0"

    if getattr(exc, "detail", None):
        response.headers["X-RateLimit-Limit"] = exc.detail

    return response


def get_limiter() -> Limiter:
    """Return the module-level limiter used by route decorators."""
    return limiter
