from dataclasses import dataclass

from fastapi import status


@dataclass(frozen=True)
class ErrorDefinition:
    code: str
    message: str
    status_code: int
    retryable: bool = False


def _define(code: str, message: str, status_code: int, retryable: bool = False) -> ErrorDefinition:
    return ErrorDefinition(code, message, status_code, retryable)


class ErrorCatalog:
    # authentication
    INVALID_TOKEN = _define("INVALID_TOKEN", "Invalid token", status.HTTP_401_UNAUTHORIZED)
    INVALID_CREDENTIALS = _define("INVALID_CREDENTIALS", "Invalid credentials", status.HTTP_401_UNAUTHORIZED)
    USER_INACTIVE = _define("USER_INACTIVE", "User is inactive or suspended", status.HTTP_403_FORBIDDEN)

    # shop context and permission matrix
    ACCESS_DENIED = _define("ACCESS_DENIED", "Access to this shop is denied", status.HTTP_403_FORBIDDEN)
    NO_ACCESSIBLE_TENANT = _define(
        "NO_ACCESSIBLE_TENANT", "No accessible shop found for user", status.HTTP_403_FORBIDDEN
    )
    INSUFFICIENT_PERMISSION = _define(
        "INSUFFICIENT_PERMISSION", "Insufficient permission for this module", status.HTTP_403_FORBIDDEN
    )

    # approval workflow and status transitions
    NOT_ELIGIBLE_FOR_APPROVAL = _define(
        "NOT_ELIGIBLE_FOR_APPROVAL",
        "Change can be applied directly and does not need approval",
        status.HTTP_409_CONFLICT,
    )
    STALE_APPROVAL_TARGET = _define(
        "STALE_APPROVAL_TARGET",
        "Approved change could not be applied because its target changed",
        status.HTTP_409_CONFLICT,
    )
    INVALID_STATE_TRANSITION = _define("INVALID_STATE_TRANSITION", "Invalid state transition", status.HTTP_409_CONFLICT)

    # storage
    TRANSACTION_CONFLICT = _define(
        "TRANSACTION_CONFLICT", "Concurrent update conflict", status.HTTP_409_CONFLICT, retryable=True
    )
    LOCK_TIMEOUT = _define("LOCK_TIMEOUT", "Lock wait timeout", status.HTTP_409_CONFLICT, retryable=True)
    DB_UNAVAILABLE = _define("DB_UNAVAILABLE", "Database unavailable", status.HTTP_503_SERVICE_UNAVAILABLE)

    # generic
    NOT_FOUND = _define("NOT_FOUND", "Resource not found", status.HTTP_404_NOT_FOUND)
    VALIDATION_ERROR = _define("VALIDATION_ERROR", "Validation error", status.HTTP_422_UNPROCESSABLE_ENTITY)
    INTERNAL_ERROR = _define("INTERNAL_ERROR", "Internal server error", status.HTTP_500_INTERNAL_SERVER_ERROR)


class AppError(Exception):
    """Raised by services; the API layer renders it as {code, message, details, trace_id}."""

    def __init__(self, error: ErrorDefinition, details: object | None = None):
        self.error = error
        self.details = details
        super().__init__(error.message)

    @property
    def code(self) -> str:
        return self.error.code

    @property
    def retryable(self) -> bool:
        return self.error.retryable
