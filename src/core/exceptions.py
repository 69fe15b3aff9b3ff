"""Custom exceptions and error codes."""

from enum import StrEnum
from typing import Any


class ErrorCode(StrEnum):
    """Standardized error codes for the API."""

    # Authentication errors (401)
    UNAUTHORIZED = "UNAUTHORIZED"
    INVALID_TOKEN = "INVALID_TOKEN"

    # Authorization errors (403)
    FORBIDDEN = "FORBIDDEN"
    MATCH_NOT_ACTIVE = "MATCH_NOT_ACTIVE"

    # Not found errors (404)
    USER_NOT_FOUND = "USER_NOT_FOUND"
    MATCH_NOT_FOUND = "MATCH_NOT_FOUND"
    SCENT_PROFILE_NOT_FOUND = "SCENT_PROFILE_NOT_FOUND"

    # Validation errors (400)
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_ARGUMENT = "INVALID_ARGUMENT"

    # Conflict errors (409)
    INVALID_TRANSITION = "INVALID_TRANSITION"
    CONFLICT_RETRYABLE = "CONFLICT_RETRYABLE"

    # Unprocessable (422)
    DECRYPTION_FAILED = "DECRYPTION_FAILED"

    # Rate limiting (429)
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"

    # Server errors (500)
    INTERNAL_ERROR = "INTERNAL_ERROR"


class AppException(Exception):
    """Base application exception."""

    def __init__(
        self,
        error_code: ErrorCode,
        message: str,
        status_code: int = 400,
        details: Any | None = None,
    ) -> None:
        self.error_code = error_code
        self.message = message
        self.status_code = status_code
        self.details = details
        super().__init__(self.message)


class AuthenticationError(AppException):
    """Authentication failed."""

    def __init__(
        self,
        message: str = "Authentication required",
        error_code: ErrorCode = ErrorCode.UNAUTHORIZED,
    ) -> None:
        super().__init__(
            error_code=error_code,
            message=message,
            status_code=401,
        )


class AuthorizationError(AppException):
    """Authorization failed."""

    def __init__(self, message: str = "Access denied") -> None:
        super().__init__(
            error_code=ErrorCode.FORBIDDEN,
            message=message,
            status_code=403,
        )


class InvalidArgumentError(AppException):
    """Malformed or self-referential input."""

    def __init__(self, message: str, details: Any | None = None) -> None:
        super().__init__(
            error_code=ErrorCode.INVALID_ARGUMENT,
            message=message,
            status_code=400,
            details=details,
        )


class UserNotFoundError(AppException):
    """User not found or no longer active."""

    def __init__(self, user_id: str) -> None:
        super().__init__(
            error_code=ErrorCode.USER_NOT_FOUND,
            message=f"User not found: {user_id}",
            status_code=404,
            details={"user_id": user_id},
        )


class MatchNotFoundError(AppException):
    """Match not found, or the caller is not one of its participants."""

    def __init__(self, match_id: str) -> None:
        super().__init__(
            error_code=ErrorCode.MATCH_NOT_FOUND,
            message=f"Match not found: {match_id}",
            status_code=404,
            details={"match_id": match_id},
        )


class MatchNotActiveError(AppException):
    """Messaging requires a mutual match."""

    def __init__(self, match_id: str, status: str) -> None:
        super().__init__(
            error_code=ErrorCode.MATCH_NOT_ACTIVE,
            message="Messaging is only available for mutual matches",
            status_code=403,
            details={"match_id": match_id, "status": status},
        )


class ScentProfileNotFoundError(AppException):
    """Scent profile not found for a user."""

    def __init__(self, user_id: str) -> None:
        super().__init__(
            error_code=ErrorCode.SCENT_PROFILE_NOT_FOUND,
            message=f"Scent profile not found for user: {user_id}",
            status_code=404,
            details={"user_id": user_id},
        )


class InvalidTransitionError(AppException):
    """Match state machine rule violation."""

    def __init__(self, status: str, event: str) -> None:
        super().__init__(
            error_code=ErrorCode.INVALID_TRANSITION,
            message=f"Cannot {event} a match that is {status}",
            status_code=409,
            details={"status": status, "event": event},
        )


class ConflictRetryableError(AppException):
    """Lost a race on a user pair. The whole operation may be retried."""

    def __init__(self, message: str = "Concurrent update on this pair, please retry") -> None:
        super().__init__(
            error_code=ErrorCode.CONFLICT_RETRYABLE,
            message=message,
            status_code=409,
            details={"retryable": True},
        )


class DecryptionError(AppException):
    """Encrypted payload failed authentication or could not be parsed."""

    def __init__(self, message: str = "Message could not be decrypted") -> None:
        super().__init__(
            error_code=ErrorCode.DECRYPTION_FAILED,
            message=message,
            status_code=422,
        )
