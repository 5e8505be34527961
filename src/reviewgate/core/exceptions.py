"""
Custom Exceptions for reviewgate
================================

Structured error handling lets hook handlers tell infrastructure failures
(which fail open) apart from domain decisions (which may block).

Error Codes:
- 1xxx: Client errors (bad decision token, unknown session)
- 3xxx: Storage errors (I/O, malformed records)
- 5xxx: System errors (configuration, unexpected)
"""

from enum import IntEnum
from typing import Any


class ErrorCode(IntEnum):
    """Structured error codes for user-friendly messages"""

    # 1xxx: Client Errors
    INVALID_DECISION = 1001
    SESSION_NOT_FOUND = 1002

    # 3xxx: Storage Errors
    STORAGE_ERROR = 3001
    SERIALIZATION_ERROR = 3002

    # 5xxx: System Errors
    INTERNAL_ERROR = 5001
    CONFIGURATION_ERROR = 5002


class ReviewGateError(Exception):
    """Base exception for all reviewgate errors"""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        details: dict[str, Any] | None = None
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for structured logging"""
        return {
            'error_type': self.__class__.__name__,
            'error_code': int(self.error_code),
            'message': self.message,
            'details': self.details
        }


class StorageError(ReviewGateError):
    """Raised when reading or writing a session record fails at the I/O level"""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message, ErrorCode.STORAGE_ERROR, details)


class SerializationError(ReviewGateError):
    """Raised when a stored record cannot be decoded into a SessionState"""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message, ErrorCode.SERIALIZATION_ERROR, details)


class SessionNotFoundError(ReviewGateError):
    """Raised by commands that require a pre-existing session"""

    def __init__(self, session_id: str, details: dict[str, Any] | None = None):
        super().__init__(f"Session not found: {session_id}", ErrorCode.SESSION_NOT_FOUND, details)
        self.session_id = session_id


class InvalidDecisionError(ReviewGateError):
    """Raised when a review outcome token is not recognised"""

    def __init__(self, token: str, details: dict[str, Any] | None = None):
        super().__init__(f"Invalid decision: {token}", ErrorCode.INVALID_DECISION, details)
        self.token = token


class ConfigurationError(ReviewGateError):
    """Raised when the configuration file or environment is invalid"""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message, ErrorCode.CONFIGURATION_ERROR, details)
