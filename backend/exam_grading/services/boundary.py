"""
Operation boundary shared by every public grading and submission operation.

``action_boundary`` guarantees an operation never raises to its caller:
domain errors become a failed ActionResult carrying their message, and
anything unexpected is logged and reported as a generic, retryable failure.
Either way the session is rolled back first, so uncommitted writes
(including a status change) are discarded.
"""

import functools

from sqlalchemy.orm import Session

from exam_grading.errors import GradingError, NotFoundError, PermissionDeniedError
from exam_grading.logging_config import get_logger, log_with_context
from exam_grading.models.attempt import Attempt
from exam_grading.models.exam import Exam
from exam_grading.models.user import Role
from exam_grading.schemas import ActionResult, Actor

logger = get_logger("grading")

UNEXPECTED_ERROR = "Something went wrong while processing the request. Please try again."


def action_boundary(func):
    """Wrap ``func(db, actor, ...)`` so that it always returns an ActionResult."""

    @functools.wraps(func)
    def wrapper(db: Session, actor: Actor, *args, **kwargs) -> ActionResult:
        try:
            return func(db, actor, *args, **kwargs)
        except GradingError as e:
            db.rollback()
            log_with_context(logger, "WARNING", "{} rejected: {}".format(func.__name__, e),
                             context={"actor_id": actor.user_id},
                             extra_data={"error_type": type(e).__name__})
            return ActionResult.fail(str(e))
        except Exception as e:
            db.rollback()
            log_with_context(logger, "ERROR", "{} failed unexpectedly: {}".format(func.__name__, e),
                             context={"actor_id": actor.user_id}, exc_info=True)
            return ActionResult.fail(UNEXPECTED_ERROR)

    return wrapper


def require_grader(actor: Actor) -> None:
    if actor.role not in (Role.TEACHER, Role.ADMIN):
        raise PermissionDeniedError("Only teachers and admins can grade exams")


def require_exam_owner(actor: Actor, exam: Exam) -> None:
    """Admins may grade anything; teachers only the exams they created."""
    require_grader(actor)
    if actor.role == Role.ADMIN:
        return
    if exam.created_by_id != actor.user_id:
        raise PermissionDeniedError("You can only grade exams you created")


def load_attempt(db: Session, attempt_id: str) -> Attempt:
    attempt = db.query(Attempt).filter(Attempt.id == attempt_id).first()
    if not attempt:
        raise NotFoundError("Attempt not found")
    return attempt
