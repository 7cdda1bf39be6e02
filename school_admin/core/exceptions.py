from fastapi import status


class ServiceError(Exception):
    """Base exception for service layer errors."""

    kind = "ServiceError"

    def __init__(self, message: str, status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class ValidationError(ServiceError):
    """Malformed or missing required input."""

    kind = "ValidationError"

    def __init__(self, message: str) -> None:
        super().__init__(message, status.HTTP_400_BAD_REQUEST)


class NotFoundError(ServiceError):
    kind = "NotFoundError"

    def __init__(self, message: str) -> None:
        super().__init__(message, status.HTTP_404_NOT_FOUND)


class ConflictError(ServiceError):
    """Uniqueness violation (roll number, billing period, class assignment...)."""

    kind = "ConflictError"

    def __init__(self, message: str) -> None:
        super().__init__(message, status.HTTP_409_CONFLICT)


class UnauthorizedError(ServiceError):
    kind = "UnauthorizedError"

    def __init__(self, message: str = "Could not validate credentials") -> None:
        super().__init__(message, status.HTTP_401_UNAUTHORIZED)


class ForbiddenError(ServiceError):
    kind = "ForbiddenError"

    def __init__(self, message: str = "Insufficient permissions") -> None:
        super().__init__(message, status.HTTP_403_FORBIDDEN)


class StorageError(ServiceError):
    """Database failure. Not retried at this layer."""

    kind = "StorageError"

    def __init__(self, message: str = "Storage failure") -> None:
        super().__init__(message, status.HTTP_500_INTERNAL_SERVER_ERROR)
