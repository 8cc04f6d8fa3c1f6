"""Custom exceptions for the Noteboard MCP server.

Provides a structured exception hierarchy with error codes and
machine-readable error information. None of these are fatal: every
failure ends the attempt that raised it and nothing is retried.
"""
from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(Enum):
    """Error codes for machine-readable error identification."""

    # Note errors (1xxx)
    NOTE_NOT_FOUND = 1001
    NOTE_VALIDATION_FAILED = 1002
    NOTE_FIELDS_REQUIRED = 1003
    NOTE_TOO_LONG = 1004
    NOTE_TOO_SHORT = 1005
    AUTHOR_INVALID = 1006
    CONTENT_FLAGGED = 1007

    # Submission errors (11xx)
    SUBMISSION_COOLDOWN = 1101

    # Store errors (4xxx)
    STORE_CREATE_FAILED = 4001
    STORE_UPDATE_FAILED = 4002
    STORE_DELETE_FAILED = 4003
    STORE_UNREACHABLE = 4004
    STORE_READ_FAILED = 4005
    FEED_FAILED = 4006

    # Configuration errors (6xxx)
    CONFIG_INVALID = 6001

    # Validation errors (7xxx)
    VALIDATION_FAILED = 7001


class NoteboardError(Exception):
    """Base exception for all Noteboard errors.

    Attributes:
        message: Human-readable error message
        code: Machine-readable error code
        details: Additional context about the error
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.VALIDATION_FAILED,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to a dictionary for serialization."""
        return {
            "error": self.__class__.__name__,
            "code": self.code.value,
            "code_name": self.code.name,
            "message": self.message,
            "details": self.details
        }

    def __str__(self) -> str:
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"[{self.code.name}] {self.message} ({detail_str})"
        return f"[{self.code.name}] {self.message}"


class NoteNotFoundError(NoteboardError):
    """Raised when a note is not part of the canonical set or the store."""

    def __init__(self, note_id: str, message: Optional[str] = None):
        super().__init__(
            message or f"Note with ID '{note_id}' not found",
            code=ErrorCode.NOTE_NOT_FOUND,
            details={"note_id": note_id}
        )
        self.note_id = note_id


class ValidationError(NoteboardError):
    """Raised when a submission fails the client-side gate.

    Never reaches the store; the message is meant for the user.
    """

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Optional[Any] = None,
        code: ErrorCode = ErrorCode.VALIDATION_FAILED
    ):
        details = {}
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = str(value)[:100]  # Truncate for safety

        super().__init__(message, code=code, details=details)
        self.field = field
        self.value = value


class CooldownError(ValidationError):
    """Raised when a submission arrives before the cooldown has elapsed."""

    def __init__(self, wait_seconds: int):
        super().__init__(
            f"Please wait {wait_seconds} seconds before submitting another note.",
            code=ErrorCode.SUBMISSION_COOLDOWN,
        )
        self.wait_seconds = wait_seconds
        self.details["wait_seconds"] = wait_seconds


class TransportError(NoteboardError):
    """Raised when a store call fails.

    The local optimistic state is kept; the caller decides whether to
    re-trigger the operation.
    """

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        note_id: Optional[str] = None,
        code: ErrorCode = ErrorCode.STORE_UPDATE_FAILED,
        original_error: Optional[Exception] = None
    ):
        details = {}
        if operation:
            details["operation"] = operation
        if note_id:
            details["note_id"] = note_id
        if original_error:
            details["original_error"] = str(original_error)[:200]

        super().__init__(message, code=code, details=details)
        self.operation = operation
        self.note_id = note_id
        self.original_error = original_error


class ConnectivityError(NoteboardError):
    """Raised when the store is unreachable or the board is disconnected."""

    def __init__(
        self,
        message: str,
        original_error: Optional[Exception] = None,
        code: ErrorCode = ErrorCode.STORE_UNREACHABLE
    ):
        details = {}
        if original_error:
            details["original_error"] = str(original_error)[:200]
        super().__init__(message, code=code, details=details)
        self.original_error = original_error


class ConfigurationError(NoteboardError):
    """Raised for configuration-related errors."""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        code: ErrorCode = ErrorCode.CONFIG_INVALID
    ):
        details = {}
        if config_key:
            details["config_key"] = config_key

        super().__init__(message, code=code, details=details)
        self.config_key = config_key
