"""Authentication-specific exceptions."""

from fastapi import HTTPException, status


class AuthenticationError(HTTPException):
    """Base authentication error."""

    def __init__(self, detail: str = "Authentication failed") -> None:
        super().__init__(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


class MissingTokenError(AuthenticationError):
    """No bearer token in the Authorization header or access_token cookie."""

    def __init__(self) -> None:
        super().__init__(detail="Authentication token is missing")


class TokenExpiredError(AuthenticationError):
    """Token has expired."""

    def __init__(self) -> None:
        super().__init__(detail="Token has expired")


class InvalidTokenError(AuthenticationError):
    """Invalid token provided."""

    def __init__(self) -> None:
        super().__init__(detail="Invalid token")


class NotOrganizationMemberError(HTTPException):
    """Authenticated user has no usable organization membership."""

    def __init__(self, detail: str = "User does not belong to an organization") -> None:
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


class SupabaseConfigError(HTTPException):
    """Supabase auth selected but the client could not be built."""

    def __init__(self) -> None:
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Supabase authentication is not configured",
        )


class UnknownAuthProviderError(HTTPException):
    """AUTH_PROVIDER holds a value this service does not understand."""

    def __init__(self, provider: str) -> None:
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Authentication provider '{provider}' is not supported",
        )
