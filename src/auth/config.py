"""Core authentication logic: resolve the caller's user id for a request."""

import logging
from uuid import UUID

import jwt
from fastapi import Request
from fastapi.concurrency import run_in_threadpool
from supabase import create_client

from src.auth.exceptions import (
    InvalidTokenError,
    MissingTokenError,
    SupabaseConfigError,
    TokenExpiredError,
    UnknownAuthProviderError,
)
from src.config.settings import get_settings


logger = logging.getLogger(__name__)
settings = get_settings()

# Single-user development identity
DEFAULT_USER_ID = UUID("00000000-0000-0000-0000-000000000001")

# Supabase access tokens carry this audience
JWT_AUDIENCE = "authenticated"

supabase = (
    create_client(settings.SUPABASE_URL, settings.SUPABASE_PUBLISHABLE_KEY)
    if settings.AUTH_PROVIDER == "supabase" and settings.SUPABASE_URL and settings.SUPABASE_PUBLISHABLE_KEY
    else None
)


def _extract_token_from_request(request: Request) -> str | None:
    """Extract JWT token from request headers or cookies."""
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        return auth_header.removeprefix("Bearer ").strip() or None

    cookie_token = request.cookies.get("access_token")
    if cookie_token:
        return cookie_token.removeprefix("Bearer ")

    return None


def decode_access_token(token: str, secret: str) -> UUID:
    """Verify a Supabase access token locally and return its subject.

    Raises
    ------
        TokenExpiredError: When the ``exp`` claim is in the past
        InvalidTokenError: For any other signature or claim problem
    """
    try:
        payload = jwt.decode(token, secret, algorithms=["HS256"], audience=JWT_AUDIENCE)
    except jwt.ExpiredSignatureError as e:
        raise TokenExpiredError from e
    except jwt.PyJWTError as e:
        logger.debug("Rejected access token: %s", e)
        raise InvalidTokenError from e

    try:
        return UUID(payload["sub"])
    except (KeyError, TypeError, ValueError) as e:
        raise InvalidTokenError from e


async def _validate_supabase_token(token: str) -> UUID:
    """Validate a token against the Supabase auth API."""
    if not supabase:
        logger.error("Supabase client not initialized")
        raise SupabaseConfigError

    try:
        response = await run_in_threadpool(supabase.auth.get_user, token)
    except Exception as e:
        error_msg = str(e).lower()
        if "expired" in error_msg:
            raise TokenExpiredError from e
        logger.warning("Supabase token validation failed: %s", e)
        raise InvalidTokenError from e

    if response and response.user and response.user.id:
        return UUID(response.user.id)

    logger.warning("Token validation returned no user")
    raise InvalidTokenError


async def get_user_id(request: Request) -> UUID:
    """Resolve the authenticated user id.

    Single-user mode always returns DEFAULT_USER_ID. Supabase mode verifies
    the bearer token (locally when SUPABASE_JWT_SECRET is set) or rejects the
    request.
    """
    if settings.AUTH_PROVIDER == "none":
        if settings.ENVIRONMENT == "production":
            logger.error("AUTH_PROVIDER='none' is not allowed in production!")
            error_msg = "Single-user mode (AUTH_PROVIDER='none') is not allowed in production. Use Supabase authentication."
            raise ValueError(error_msg)
        return DEFAULT_USER_ID

    if settings.AUTH_PROVIDER == "supabase":
        token = _extract_token_from_request(request)
        if not token:
            logger.warning("Missing Authorization header and no access_token cookie")
            raise MissingTokenError

        if settings.SUPABASE_JWT_SECRET:
            return decode_access_token(token, settings.SUPABASE_JWT_SECRET)
        return await _validate_supabase_token(token)

    logger.error("Unknown auth provider: %s", settings.AUTH_PROVIDER)
    raise UnknownAuthProviderError(settings.AUTH_PROVIDER)
