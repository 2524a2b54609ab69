"""
Error kinds raised by the quiz services and rendered by the API layer
"""
from typing import Optional


class QuizAppError(Exception):
    """Base exception for all daily quiz errors."""

    status_code = 500

    def __init__(self, message: str, details: Optional[str] = None):
        self.message = message
        self.details = details
        super().__init__(message)


class ValidationError(QuizAppError):
    """Caller-supplied input violates a precondition (e.g. empty topic)."""
    status_code = 400


class UnauthorizedError(QuizAppError):
    """Cron secret mismatch."""
    status_code = 401


class NotFoundError(QuizAppError):
    """Referenced backlog item or cached quiz does not exist."""
    status_code = 404


class ConflictError(QuizAppError):
    """Optimistic update lost the race too many times."""
    status_code = 409


class RateLimitError(QuizAppError):
    """Too many requests from one client."""
    status_code = 429

    def __init__(self, message: str, retry_after: int, details: Optional[str] = None):
        self.retry_after = retry_after
        super().__init__(message, details)


class StoreError(QuizAppError):
    """Cache store read or write failed."""
    status_code = 500


class GenerationError(QuizAppError):
    """Generation service call failed (network, auth, unparseable output)."""
    status_code = 502


class GenerationValidationError(GenerationError):
    """Generation service returned structurally invalid quiz data."""
