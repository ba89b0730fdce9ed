from dataclasses import dataclass
from fastapi import status


@dataclass(frozen=True)
class ErrorDefinition:
    code: str
    message: str
    status_code: int


class ErrorCatalog:
    INVALID_TOKEN = ErrorDefinition("INVALID_TOKEN", "Invalid token", status.HTTP_401_UNAUTHORIZED)
    PERMISSION_DENIED = ErrorDefinition(
        "PERMISSION_DENIED",
        "Stock opname is restricted to authorized personnel",
        status.HTTP_403_FORBIDDEN,
    )
    DB_UNAVAILABLE = ErrorDefinition(
        "DB_UNAVAILABLE",
        "Database unavailable",
        status.HTTP_503_SERVICE_UNAVAILABLE,
    )
    LOCK_TIMEOUT = ErrorDefinition(
        "LOCK_TIMEOUT",
        "Lock wait timeout",
        status.HTTP_409_CONFLICT,
    )
    VALIDATION_ERROR = ErrorDefinition(
        "VALIDATION_ERROR",
        "Validation error",
        status.HTTP_422_UNPROCESSABLE_ENTITY,
    )
    INTERNAL_ERROR = ErrorDefinition(
        "INTERNAL_ERROR",
        "Internal server error",
        status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
    OPNAME_SESSION_NOT_FOUND = ErrorDefinition(
        "OPNAME_SESSION_NOT_FOUND",
        "Stock opname session not found",
        status.HTTP_404_NOT_FOUND,
    )
    OPNAME_LINE_NOT_FOUND = ErrorDefinition(
        "OPNAME_LINE_NOT_FOUND",
        "Stock opname line not found",
        status.HTTP_404_NOT_FOUND,
    )
    OPNAME_SESSION_ALREADY_OPEN = ErrorDefinition(
        "OPNAME_SESSION_ALREADY_OPEN",
        "Cannot create new session. An OPEN session already exists.",
        status.HTTP_409_CONFLICT,
    )
    OPNAME_SESSION_NOT_OPEN = ErrorDefinition(
        "OPNAME_SESSION_NOT_OPEN",
        "Stock opname session is not open",
        status.HTTP_409_CONFLICT,
    )
    NOTHING_TO_EXPORT = ErrorDefinition(
        "NOTHING_TO_EXPORT",
        "No data to export",
        status.HTTP_404_NOT_FOUND,
    )
    IDEMPOTENCY_KEY_REQUIRED = ErrorDefinition(
        "IDEMPOTENCY_KEY_REQUIRED",
        "Idempotency key required",
        status.HTTP_400_BAD_REQUEST,
    )
    IDEMPOTENCY_KEY_REUSED_WITH_DIFFERENT_PAYLOAD = ErrorDefinition(
        "IDEMPOTENCY_KEY_REUSED_WITH_DIFFERENT_PAYLOAD",
        "Idempotency key reused with different payload",
        status.HTTP_409_CONFLICT,
    )
    IDEMPOTENCY_REQUEST_IN_PROGRESS = ErrorDefinition(
        "IDEMPOTENCY_REQUEST_IN_PROGRESS",
        "Idempotency request already in progress",
        status.HTTP_409_CONFLICT,
    )
    IDEMPOTENCY_REPLAY = ErrorDefinition(
        "IDEMPOTENCY_REPLAY",
        "Idempotent replay",
        status.HTTP_200_OK,
    )


class AppError(Exception):
    def __init__(self, error: ErrorDefinition, details: object | None = None):
        self.error = error
        self.details = details
        super().__init__(error.message)
