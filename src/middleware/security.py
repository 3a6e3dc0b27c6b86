"""Security middleware and rate limits."""

from collections.abc import Awaitable, Callable

from fastapi import Request
from fastapi.responses import Response
from slowapi import Limiter
from slowapi.util import get_remote_address
from starlette.middleware.base import BaseHTTPMiddleware

from src.config.settings import get_settings


# In-memory limiter keyed on client address; off under the test environment
limiter = Limiter(key_func=get_remote_address, enabled=get_settings().ENVIRONMENT != "test")


class SimpleSecurityMiddleware(BaseHTTPMiddleware):
    """Add essential security headers to every response."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["X-XSS-Protection"] = "1; mode=block"
        response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"

        return response


upload_rate_limit = limiter.limit("20/minute")
api_rate_limit = limiter.limit("100/minute")


def create_rate_limit_dependency(
    limit_decorator: Callable[[Callable], Callable],
) -> Callable[[Request], Awaitable[None]]:
    """Turn a limiter decorator into a router dependency."""

    @limit_decorator
    async def rate_limited_dependency(request: Request) -> None:
        """Apply the wrapped rate limit."""

    return rate_limited_dependency


upload_route_limit = create_rate_limit_dependency(upload_rate_limit)
quiz_submit_limit = create_rate_limit_dependency(api_rate_limit)
