class DomainError(Exception):
    """Base exception class for all domain-specific exceptions."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(self.message)


class ResourceNotFoundError(DomainError):
    """Exception raised when a requested resource is not found."""

    def __init__(self, resource_type: str, resource_id: object) -> None:
        self.resource_type = resource_type
        self.resource_id = resource_id
        message = f"{resource_type} with ID {resource_id} not found"
        super().__init__(message)


class ValidationError(DomainError):
    """Exception raised when validation fails."""

    def __init__(self, message: str, errors: list[dict] | None = None) -> None:
        self.errors = errors or []
        super().__init__(message)


class PermissionDeniedError(DomainError):
    """Exception raised when the caller's role is not allowed on a route."""

    def __init__(self, message: str = "Insufficient permissions") -> None:
        super().__init__(message)


class OperationFailedError(DomainError):
    """A persistence or storage call failed; carries the underlying message."""

    def __init__(self, action: str, cause: Exception | str) -> None:
        self.action = action
        super().__init__(f"{action} failed: {cause}")
