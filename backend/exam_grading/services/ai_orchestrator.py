"""
AI grading orchestrator - grades every ungraded free-text answer of an attempt.

Processing pipeline:
1. Select non-multiple-choice answers that have no grade
2. Nothing to do: return zero stats without touching the attempt
3. Mark the attempt GRADING (committed, so concurrent readers see it)
4. Grade answers one at a time, committing each grade, and count
   graded / failed / needs review
5. If the loop itself faults, revert to SUBMITTED and raise
6. Any per-answer failure: revert to SUBMITTED so a retry is well defined;
   otherwise grade remaining multiple-choice answers and settle the status

Answers are graded sequentially: the AI service is slow, metered and rate
limited. Separate attempts may be graded concurrently by separate calls.
"""

import time

from sqlalchemy.orm import Session

from exam_grading.errors import AiGradingInterruptedError, NotFoundError
from exam_grading.logging_config import get_logger, log_with_context
from exam_grading.models.answer import Answer
from exam_grading.models.attempt import Attempt, AttemptStatus
from exam_grading.schemas import AiGradeStats
from exam_grading.services.ai_grader import grade_answer_with_ai
from exam_grading.services.deterministic import grade_multiple_choice
from exam_grading.services.grades import grades_by_answer
from exam_grading.services.state_machine import set_status, settle_status

logger = get_logger("ai")


def pending_free_text_answers(db: Session, attempt_id: str) -> list:
    """Free-text answers of the attempt that have no grade yet."""
    answers = db.query(Answer).filter(Answer.attempt_id == attempt_id).all()
    graded = grades_by_answer(db, attempt_id)
    return [a for a in answers if not a.is_multiple_choice and a.id not in graded]


def _revert_to_submitted(db: Session, attempt_id: str, reason: str) -> None:
    attempt = db.query(Attempt).filter(Attempt.id == attempt_id).first()
    set_status(attempt, AttemptStatus.SUBMITTED, reason=reason)
    db.commit()


def grade_attempt_with_ai(db: Session, attempt_id: str, client) -> AiGradeStats:
    """
    Run AI grading over one attempt.

    Args:
        db: Database session
        attempt_id: Attempt to grade (must be SUBMITTED or GRADING)
        client: AI Grading Client

    Returns:
        Counts of answers considered, graded, failed, and flagged for review

    Raises:
        NotFoundError: Unknown attempt
        AiGradingInterruptedError: The loop faulted; the attempt is back in SUBMITTED
    """
    start_time = time.time()

    attempt = db.query(Attempt).filter(Attempt.id == attempt_id).first()
    if not attempt:
        raise NotFoundError("Attempt not found")

    pending = pending_free_text_answers(db, attempt_id)
    stats = AiGradeStats(total=len(pending))
    if not pending:
        return stats

    set_status(attempt, AttemptStatus.GRADING, reason="ai grading started")
    db.commit()

    try:
        for answer in pending:
            outcome = grade_answer_with_ai(db, answer, client)
            if outcome.success:
                stats.graded += 1
                if outcome.needs_review:
                    stats.needs_review += 1
            else:
                stats.failed += 1
            db.commit()
    except Exception as e:
        db.rollback()
        log_with_context(logger, "ERROR",
            "AI grading loop faulted for attempt {}: {}".format(attempt_id, e),
            context={"attempt_id": str(attempt_id)},
            extra_data=stats.model_dump(), exc_info=True)
        _revert_to_submitted(db, attempt_id, reason="ai grading faulted")
        raise AiGradingInterruptedError(
            "AI grading was interrupted. The attempt was returned to SUBMITTED; please retry."
        ) from e

    attempt = db.query(Attempt).filter(Attempt.id == attempt_id).first()
    if stats.failed:
        set_status(attempt, AttemptStatus.SUBMITTED, reason="ai grading had failures")
    else:
        grade_multiple_choice(db, attempt_id)
        settle_status(db, attempt, reason="ai grading complete")
    db.commit()

    duration_ms = (time.time() - start_time) * 1000
    log_with_context(logger, "INFO",
        "AI grading finished for attempt {}: {} graded, {} failed, {} need review".format(
            attempt_id, stats.graded, stats.failed, stats.needs_review),
        context={"attempt_id": str(attempt_id)},
        extra_data={"duration_ms": round(duration_ms, 2), **stats.model_dump()})

    return stats
