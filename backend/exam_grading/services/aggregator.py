"""
Result Aggregator - computes and stores the result of a fully graded attempt.

Implements the result formula:
1. obtained_marks = sum of marks_awarded over the attempt's grades
2. percentage = obtained_marks / total_marks * 100  (0 if total_marks is 0)
3. is_passed = obtained_marks >= passing_marks
4. grade = the grading-scale band containing the percentage

Everything runs in one SERIALIZABLE transaction so that a concurrent grade
edit cannot leave the result computed from a half-updated set of grades.
"""

import time
from datetime import datetime, timezone

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from exam_grading.config import RESULT_SERIALIZATION_RETRIES
from exam_grading.database import is_serialization_failure, serializable_transaction
from exam_grading.errors import IncompleteGradingError, NotFoundError
from exam_grading.logging_config import get_logger, log_with_context
from exam_grading.models.attempt import Attempt, AttemptStatus
from exam_grading.models.exam_result import ExamResult
from exam_grading.services.grades import count_ungraded, grades_by_answer, is_fully_graded
from exam_grading.services.grading_scale import DEFAULT_GRADING_SCALE, derive_grade
from exam_grading.services.state_machine import set_status

logger = get_logger("grading")


def compute_percentage(obtained_marks: float, total_marks: float) -> float:
    return (obtained_marks / total_marks * 100) if total_marks > 0 else 0.0


def _calculate(db: Session, attempt_id: str, scale) -> ExamResult:
    attempt = db.query(Attempt).filter(Attempt.id == attempt_id).first()
    if not attempt:
        raise NotFoundError("Attempt not found")

    if not is_fully_graded(db, attempt_id):
        raise IncompleteGradingError(count_ungraded(db, attempt_id))

    exam = attempt.exam
    grades = grades_by_answer(db, attempt_id)

    obtained_marks = sum(float(g.marks_awarded) for g in grades.values())
    total_marks = float(exam.total_marks)
    passing_marks = float(exam.passing_marks)
    percentage = compute_percentage(obtained_marks, total_marks)
    is_passed = obtained_marks >= passing_marks
    letter = derive_grade(percentage, scale)

    result = db.query(ExamResult).filter(ExamResult.attempt_id == attempt_id).first()
    if result:
        # Recomputation: published_at is deliberately left as it is
        result.obtained_marks = obtained_marks
        result.total_marks = total_marks
        result.percentage = percentage
        result.is_passed = is_passed
        result.grade = letter
        result.computed_at = datetime.now(timezone.utc)
    else:
        result = ExamResult(
            attempt_id=attempt.id,
            student_id=attempt.student_id,
            exam_id=attempt.exam_id,
            obtained_marks=obtained_marks,
            total_marks=total_marks,
            percentage=percentage,
            is_passed=is_passed,
            grade=letter,
            computed_at=datetime.now(timezone.utc),
        )
        db.add(result)

    set_status(attempt, AttemptStatus.GRADED, reason="result computed")
    db.flush()
    return result


def calculate_result(db: Session, attempt_id: str, scale=DEFAULT_GRADING_SCALE) -> ExamResult:
    """
    Compute, store and return the result for ``attempt_id``, and mark it GRADED.

    Serialization conflicts are retried a bounded number of times; any other
    error propagates with nothing written.

    Raises:
        NotFoundError: Unknown attempt
        IncompleteGradingError: Some answer has no grade
        InvalidTransitionError: The attempt is not SUBMITTED, GRADING or GRADED
    """
    start_time = time.time()
    attempts_left = max(1, RESULT_SERIALIZATION_RETRIES)

    while True:
        attempts_left -= 1
        try:
            with serializable_transaction(db):
                result = _calculate(db, attempt_id, scale)
            break
        except OperationalError as e:
            if not is_serialization_failure(e) or attempts_left <= 0:
                raise
            log_with_context(logger, "WARNING",
                "Serialization conflict computing result for attempt {}, retrying".format(attempt_id),
                context={"attempt_id": str(attempt_id)})

    db.refresh(result)

    duration_ms = (time.time() - start_time) * 1000
    log_with_context(logger, "INFO",
        "Result computed: {:g}/{:g} ({:.2f}%, grade {}, {})".format(
            result.obtained_marks, result.total_marks, result.percentage, result.grade,
            "passed" if result.is_passed else "failed"),
        context={
            "attempt_id": str(attempt_id),
            "student_id": str(result.student_id),
            "exam_id": str(result.exam_id),
        },
        extra_data={
            "duration_ms": round(duration_ms, 2),
            "percentage": round(result.percentage, 4),
        })

    return result
