"""Authentication module exports."""

from src.auth.context import (
    AUTH_SKIP_PATHS,
    AuthContext,
    CurrentAuth,
    ManagerAuth,
    require_roles,
)


__all__ = [
    "AUTH_SKIP_PATHS",
    "AuthContext",
    "CurrentAuth",
    "ManagerAuth",
    "require_roles",
]
