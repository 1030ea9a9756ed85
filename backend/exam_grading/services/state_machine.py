"""
Attempt state machine - the single writer of ``Attempt.status``.

Every grading operation moves an attempt through ``set_status`` so that
illegal jumps are rejected and each transition is logged. ``settle_status``
resolves the status from actual grading completeness and is what every
grading operation calls on its way out.

Transitions:
    NOT_STARTED -> IN_PROGRESS -> SUBMITTED <-> GRADING -> GRADED
    SUBMITTED -> GRADED            (finalize straight from SUBMITTED)
    GRADED -> GRADING              (reopen only, which also removes the result)
"""

from sqlalchemy.orm import Session

from exam_grading.errors import InvalidStateError, InvalidTransitionError
from exam_grading.logging_config import get_logger, log_with_context
from exam_grading.models.attempt import Attempt, AttemptStatus
from exam_grading.services.grades import is_fully_graded

logger = get_logger("grading")

ALLOWED_TRANSITIONS = {
    AttemptStatus.NOT_STARTED: frozenset({AttemptStatus.IN_PROGRESS}),
    AttemptStatus.IN_PROGRESS: frozenset({AttemptStatus.SUBMITTED}),
    AttemptStatus.SUBMITTED: frozenset({AttemptStatus.GRADING, AttemptStatus.GRADED}),
    AttemptStatus.GRADING: frozenset({AttemptStatus.SUBMITTED, AttemptStatus.GRADED}),
    AttemptStatus.GRADED: frozenset({AttemptStatus.GRADING}),
}

# Statuses in which grades may be written
GRADABLE_STATUSES = frozenset({AttemptStatus.SUBMITTED, AttemptStatus.GRADING})


def current_status(attempt: Attempt) -> AttemptStatus:
    return AttemptStatus(attempt.status)


def can_transition(current: AttemptStatus, target: AttemptStatus) -> bool:
    return current == target or target in ALLOWED_TRANSITIONS[current]


def set_status(attempt: Attempt, target: AttemptStatus, reason: str = "",
               reopen: bool = False) -> AttemptStatus:
    """
    Move ``attempt`` to ``target``. Returns the previous status.

    Setting the status an attempt already has is a no-op. Leaving GRADED
    requires ``reopen``, which only the reopen operation passes because it
    deletes the result in the same transaction. The change is not flushed;
    it commits with the caller's transaction.
    """
    previous = current_status(attempt)
    if previous == target:
        return previous
    if not can_transition(previous, target) or (previous == AttemptStatus.GRADED and not reopen):
        raise InvalidTransitionError(previous.value, target.value)

    attempt.status = target.value
    log_with_context(logger, "INFO",
        "Attempt {} moved {} -> {}".format(attempt.id, previous.value, target.value),
        context={"attempt_id": str(attempt.id)},
        extra_data={"from": previous.value, "to": target.value, "reason": reason})
    return previous


def settle_status(db: Session, attempt: Attempt, reason: str = "") -> AttemptStatus:
    """
    Resolve a gradable attempt to GRADING when it has answers and every one
    has a grade, otherwise to SUBMITTED. Returns the resulting status.

    The status row is re-read under a row lock first, so a finalize that
    committed from another session is seen.

    Raises:
        InvalidStateError: The attempt was finalized in the meantime
    """
    db.flush()
    db.refresh(attempt, attribute_names=["status"], with_for_update=True)
    if current_status(attempt) == AttemptStatus.GRADED:
        raise InvalidStateError("Attempt was finalized while grading. Reopen it to change grades.")
    target = AttemptStatus.GRADING if is_fully_graded(db, attempt.id) else AttemptStatus.SUBMITTED
    set_status(attempt, target, reason=reason)
    return target
