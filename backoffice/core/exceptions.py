"""Custom exception classes for the back office."""

from fastapi import HTTPException, status


class BackofficeError(Exception):
    """Base exception for the back office."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str = "An error occurred"):
        self.message = message
        super().__init__(self.message)


class AuthenticationError(BackofficeError):
    """Raised when authentication fails."""
    status_code = status.HTTP_401_UNAUTHORIZED


class AuthorizationError(BackofficeError):
    """Raised when user lacks permission."""
    status_code = status.HTTP_403_FORBIDDEN


class ResourceNotFoundError(BackofficeError):
    """Raised when a requested resource is not found."""
    status_code = status.HTTP_404_NOT_FOUND


class ResourceConflictError(BackofficeError):
    """Raised when a resource already exists."""
    status_code = status.HTTP_409_CONFLICT


class ValidationError(BackofficeError):
    """Raised when input validation fails."""
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY


class PersistenceError(BackofficeError):
    """Raised when the database rejects or cannot serve an administrative write."""
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


# HTTP exception shortcuts
def forbidden(detail: str = "Insufficient permissions") -> HTTPException:
    return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


def unauthorized(detail: str = "Not authenticated") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def payment_required(detail: str = "Active subscription required") -> HTTPException:
    return HTTPException(status_code=status.HTTP_402_PAYMENT_REQUIRED, detail=detail)
