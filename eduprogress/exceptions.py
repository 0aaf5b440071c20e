"""
eduprogress/exceptions.py
Domain exceptions for the progress and assignment-audience engine

Every exception carries an HTTP-equivalent status code and a machine-readable
code so the HTTP adapter can render it without knowing the domain.
"""
from typing import Any, Dict, Optional


class EduProgressException(Exception):
    """Base exception for EduProgress"""
    status_code: int = 500
    code: str = "INTERNAL_ERROR"

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        if status_code:
            self.status_code = status_code
        if code:
            self.code = code
        self.details = details
        super().__init__(self.message)


class NotFoundError(EduProgressException):
    """
    Raised when a referenced Student, Lesson, Assignment or Submission
    does not exist. Never silently defaulted.
    """
    status_code = 404
    code = "NOT_FOUND"

    def __init__(self, resource: str, identifier: Any = None):
        message = f"{resource} not found"
        if identifier is not None:
            message = f"{resource} with id '{identifier}' not found"
        self.resource = resource
        self.identifier = identifier
        super().__init__(message, details={"resource": resource, "id": identifier})


class ForbiddenError(EduProgressException):
    """
    Raised when the principal may not act on a resource.

    Examples:
    - Student submitting to an assignment outside their audience
    - Teacher grading another teacher's assignment
    """
    status_code = 403
    code = "FORBIDDEN"

    def __init__(self, message: str = "Access forbidden"):
        super().__init__(message)


class UnauthorizedError(EduProgressException):
    """Raised when no authenticated principal is present."""
    status_code = 401
    code = "AUTH_REQUIRED"

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message)


class ValidationFailedError(EduProgressException):
    """
    Raised before any mutation when input violates a domain bound.

    Examples:
    - Grading score outside [0, max_points]
    - Lesson score outside [0, 100]
    - Negative time-spent delta
    """
    status_code = 400
    code = "VALIDATION_ERROR"

    def __init__(self, message: str, field: Optional[str] = None, value: Any = None):
        details = {"field": field, "value": value} if field else None
        super().__init__(message, details=details)


class ScoreOutOfRangeError(ValidationFailedError):
    """Grading score outside [0, max_points]."""
    code = "SCORE_OUT_OF_RANGE"

    def __init__(self, score: float, max_points: float):
        self.score = score
        self.max_points = max_points
        super().__init__(
            f"Score must be between 0 and {max_points:g}",
            field="score",
            value=score
        )


class InvalidStateTransitionError(EduProgressException):
    """Raised when a submission cannot move from its current status."""
    status_code = 400
    code = "STATE_TRANSITION_INVALID"

    def __init__(self, from_state: str, to_state: str, message: Optional[str] = None):
        self.from_state = from_state
        self.to_state = to_state
        super().__init__(
            message or f"Cannot transition submission from {from_state} to {to_state}",
            details={"from_state": from_state, "to_state": to_state}
        )


class DuplicateSubmissionError(EduProgressException):
    """
    Raised when the storage uniqueness constraint rejects a second
    submission for the same (assignment, student) pair.
    """
    status_code = 409
    code = "DUPLICATE_SUBMISSION"

    def __init__(self, assignment_id: int, student_id: int):
        self.assignment_id = assignment_id
        self.student_id = student_id
        super().__init__(
            f"Submission already exists for assignment {assignment_id}. Use the update endpoint instead.",
            details={"assignment_id": assignment_id, "student_id": student_id}
        )
