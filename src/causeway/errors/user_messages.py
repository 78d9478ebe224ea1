"""User-friendly error messages for causeway.

This module provides human-readable error messages and recovery suggestions
for all error types, so CLI users see what to fix rather than a traceback.
"""

from __future__ import annotations

from typing import Any


# =============================================================================
# Error Message Catalog
# =============================================================================

ERROR_MESSAGES: dict[str, str] = {
    # Input errors
    "INPUT_VALIDATION_ERROR": "The session input is malformed.",
    "MALFORMED_TRANSCRIPT": "The transcript lines are not numbered 0..N-1 in order.",
    "MALFORMED_MASK": "The eligibility mask does not match the transcript.",
    "DUPLICATE_ACTOR": "Two actors in the registry share the same id.",
    # Parameter errors
    "INVALID_PARAMETERS": "The hierarchy parameters are invalid.",
    # Tool layer
    "NOTHING_TO_ANALYZE": "Nothing to analyze: the session has no eligible transcript lines.",
    "SESSION_LOAD_ERROR": "The session file couldn't be loaded.",
    "ARTIFACT_WRITE_ERROR": "The run artifacts couldn't be written.",
    # Generic
    "CAUSEWAY_ERROR": "An unexpected error occurred. Please try again.",
    "UNKNOWN_ERROR": "Something went wrong. Please try again.",
}


# =============================================================================
# Recovery Suggestions
# =============================================================================

RECOVERY_SUGGESTIONS: dict[str, str] = {
    "INPUT_VALIDATION_ERROR": "Check the session bundle against the expected format.",
    "MALFORMED_TRANSCRIPT": "Make sure every line_index equals the line's position.",
    "MALFORMED_MASK": "Regenerate the mask so it has one entry per transcript line.",
    "DUPLICATE_ACTOR": "Give every actor a unique id.",
    "INVALID_PARAMETERS": "Windows, radii, tau and steepness must all be positive.",
    "NOTHING_TO_ANALYZE": "Ingest the transcript and build the eligibility mask first.",
    "SESSION_LOAD_ERROR": "Check the file path and that it is valid JSON or YAML.",
    "ARTIFACT_WRITE_ERROR": "Check that the output directory is writable.",
    "CAUSEWAY_ERROR": "Re-run with --verbose for details.",
    "UNKNOWN_ERROR": "Re-run with --verbose for details.",
}


# =============================================================================
# Helper Functions
# =============================================================================


def _error_code(error: Any) -> str:
    if hasattr(error, "code"):
        return error.code
    if isinstance(error, str):
        return error
    return type(error).__name__.upper()


def get_user_message(error: Any) -> str:
    """Get user-friendly message for an error.

    Args:
        error: The error (can be Exception or error code string)

    Returns:
        User-friendly error message
    """
    return ERROR_MESSAGES.get(_error_code(error), ERROR_MESSAGES["UNKNOWN_ERROR"])


def get_recovery_suggestion(error: Any) -> str:
    """Get recovery suggestion for an error."""
    return RECOVERY_SUGGESTIONS.get(_error_code(error), RECOVERY_SUGGESTIONS["UNKNOWN_ERROR"])


def _resolved_message(error: Any) -> str:
    # Errors may carry their own user_message override
    return getattr(error, "user_message", None) or get_user_message(error)


def format_error_for_user(error: Any) -> str:
    """Format a complete user-friendly error message.

    Args:
        error: The error to format

    Returns:
        Complete error message with recovery suggestion
    """
    message = _resolved_message(error)
    suggestion = get_recovery_suggestion(error)

    return f"{message}\n\nSuggestion: {suggestion}"


def format_error_for_cli(error: Any) -> str:
    """Format error for CLI output.

    Args:
        error: The error to format

    Returns:
        CLI-formatted error message including the technical detail
    """
    code = getattr(error, "code", "ERROR")
    lines = [
        f"Error [{code}]: {_resolved_message(error)}",
    ]
    message = getattr(error, "message", None)
    if message:
        lines.append(f"  {message}")
    lines.append("")
    lines.append(f"Suggestion: {get_recovery_suggestion(error)}")

    details = getattr(error, "details", None)
    if details:
        lines.append("")
        lines.append("Details:")
        for key, value in details.items():
            lines.append(f"  {key}: {value}")

    return "\n".join(lines)


__all__ = [
    "ERROR_MESSAGES",
    "RECOVERY_SUGGESTIONS",
    "get_user_message",
    "get_recovery_suggestion",
    "format_error_for_user",
    "format_error_for_cli",
]
