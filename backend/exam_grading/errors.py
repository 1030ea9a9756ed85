"""
Domain errors raised by the grading services.

Every error carries a message that is safe to show to the teacher; the
operation boundary turns them into failed ``ActionResult`` values.
"""


class GradingError(Exception):
    """Base class for expected, user-facing grading failures."""


class NotFoundError(GradingError):
    """The requested attempt, answer or grade does not exist."""


class PermissionDeniedError(GradingError):
    """The caller does not own the exam and is not an admin."""


class InvalidMarksError(GradingError):
    """Marks outside [0, max_marks] for the question."""


class InvalidStateError(GradingError):
    """The attempt is not in a status that allows the operation."""


class InvalidTransitionError(GradingError):
    """A status change that the attempt state machine does not allow."""

    def __init__(self, current: str, target: str):
        self.current = current
        self.target = target
        super().__init__(f"Cannot move attempt from {current} to {target}")


class IncompleteGradingError(GradingError):
    """Finalize was requested while answers are still ungraded."""

    def __init__(self, ungraded: int):
        self.ungraded = ungraded
        if ungraded:
            message = f"{ungraded} answer(s) still need a grade before the attempt can be finalized"
        else:
            message = "Attempt has no answers to grade"
        super().__init__(message)


class AiGradingInterruptedError(GradingError):
    """The AI grading loop itself faulted; the attempt was reverted to SUBMITTED."""
