"""Centralized error definitions for causeway.

This module provides a unified error hierarchy and user-friendly error handling
for the hierarchy engine and its tool layer.

Usage:
    from causeway.errors import (
        CausewayError,
        InvalidParametersError,
        handle_error,
    )

    try:
        result = run_hierarchy(transcript, mask, actors, params)
    except CausewayError as e:
        print(handle_error(e))
"""

from __future__ import annotations

from causeway.errors.user_messages import (
    get_user_message,
    get_recovery_suggestion,
    format_error_for_user,
)


# =============================================================================
# Base Error
# =============================================================================


class CausewayError(Exception):
    """Base exception for all causeway errors.

    Attributes:
        code: Error code for categorization
        user_message: User-friendly message (optional override)
        recoverable: Whether the error is potentially recoverable
        details: Additional error details for debugging
    """

    code: str = "CAUSEWAY_ERROR"
    default_message: str = "An unexpected error occurred"
    recoverable: bool = True

    def __init__(
        self,
        message: str | None = None,
        *,
        user_message: str | None = None,
        details: dict | None = None,
    ) -> None:
        self.message = message or self.default_message
        self._user_message = user_message
        self.details = details or {}
        super().__init__(self.message)

    @property
    def user_message(self) -> str:
        """Get user-friendly message."""
        if self._user_message:
            return self._user_message
        return get_user_message(self)

    @property
    def recovery_suggestion(self) -> str:
        """Get recovery suggestion."""
        return get_recovery_suggestion(self)

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "code": self.code,
            "message": self.message,
            "user_message": self.user_message,
            "recoverable": self.recoverable,
            "details": self.details,
        }


# =============================================================================
# Input Errors
# =============================================================================


class InputValidationError(CausewayError):
    """Structural problem with transcript, mask or actor input."""

    code = "INPUT_VALIDATION_ERROR"
    default_message = "Input data is malformed"
    recoverable = False


class MalformedTranscriptError(InputValidationError):
    """Transcript lines are not a stable 0-indexed sequence."""

    code = "MALFORMED_TRANSCRIPT"
    default_message = "Transcript is malformed"


class MalformedMaskError(InputValidationError):
    """Eligibility mask does not match the transcript it describes."""

    code = "MALFORMED_MASK"
    default_message = "Eligibility mask is malformed"


class DuplicateActorError(InputValidationError):
    """Two actors share the same id."""

    code = "DUPLICATE_ACTOR"
    default_message = "Duplicate actor id"


# =============================================================================
# Parameter Errors
# =============================================================================


class InvalidParametersError(CausewayError):
    """Run parameters failed validation."""

    code = "INVALID_PARAMETERS"
    default_message = "Invalid hierarchy parameters"
    recoverable = False


# =============================================================================
# Tool Layer Errors
# =============================================================================


class NothingToAnalyzeError(CausewayError):
    """Session has no transcript lines or no eligible lines."""

    code = "NOTHING_TO_ANALYZE"
    default_message = "Nothing to analyze"


class SessionLoadError(CausewayError):
    """Session bundle could not be read or parsed."""

    code = "SESSION_LOAD_ERROR"
    default_message = "Failed to load session"


class ArtifactWriteError(CausewayError):
    """Run artifacts could not be written."""

    code = "ARTIFACT_WRITE_ERROR"
    default_message = "Failed to write artifacts"


# =============================================================================
# Error Handler
# =============================================================================


def handle_error(error: Exception) -> str:
    """Handle an error and return a user-friendly message.

    Args:
        error: The exception to handle

    Returns:
        User-friendly error message with recovery suggestion
    """
    return format_error_for_user(error)


def is_recoverable(error: Exception) -> bool:
    """Check if an error is potentially recoverable."""
    if isinstance(error, CausewayError):
        return error.recoverable
    return False


__all__ = [
    # Base
    "CausewayError",
    # Input
    "InputValidationError",
    "MalformedTranscriptError",
    "MalformedMaskError",
    "DuplicateActorError",
    # Parameters
    "InvalidParametersError",
    # Tool layer
    "NothingToAnalyzeError",
    "SessionLoadError",
    "ArtifactWriteError",
    # Handlers
    "handle_error",
    "is_recoverable",
]
