from fastapi import status


class ServiceError(Exception):
    """Base exception for service layer errors."""

    def __init__(self, message: str, status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class ValidationError(ServiceError):
    """Malformed or rule-violating input. Never retried."""

    def __init__(self, message: str) -> None:
        super().__init__(message, status.HTTP_400_BAD_REQUEST)


class NotFoundError(ServiceError):
    def __init__(self, message: str) -> None:
        super().__init__(message, status.HTTP_404_NOT_FOUND)


class AuthorizationError(ServiceError):
    """Actor's role does not permit the operation. Raised before any store access."""

    def __init__(self, message: str = "Insufficient permissions") -> None:
        super().__init__(message, status.HTTP_403_FORBIDDEN)


class IntegrityViolationError(ServiceError):
    """The store rejected a write (uniqueness, conflict) or stored data breaks an invariant."""

    def __init__(self, message: str, status_code: int = status.HTTP_409_CONFLICT) -> None:
        super().__init__(message, status_code)
