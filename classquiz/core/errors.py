"""Domain error taxonomy raised by the quiz services.

The API layer maps each class to an HTTP status in ``classquiz.main``; the
services never import FastAPI.
"""


class QuizError(Exception):
    """Base class for caller-visible lifecycle failures."""

    error_code = "quiz_error"
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(QuizError):
    """Malformed or inconsistent input (question shape, time ordering, ...)."""

    error_code = "validation_error"
    status_code = 422


class Forbidden(QuizError):
    """Role or ownership mismatch."""

    error_code = "forbidden"
    status_code = 403


class NotFound(QuizError):
    """Referenced quiz, submission, question or class does not exist."""

    error_code = "not_found"
    status_code = 404


class Conflict(QuizError):
    """State conflict: duplicate attempt, published edits, closed window."""

    error_code = "conflict"
    status_code = 409
