"""
Student side of an attempt: start, save answers, submit.

Submitting moves the attempt into the grading pipeline: multiple-choice
answers are graded immediately and the attempt settles to GRADING when
nothing else needs a grade. Submission never finalizes an attempt.
"""

from datetime import datetime, timezone
from typing import Optional

from fastapi import BackgroundTasks
from sqlalchemy import func
from sqlalchemy.orm import Session

from exam_grading.errors import InvalidStateError, NotFoundError, PermissionDeniedError
from exam_grading.logging_config import get_logger, log_with_context
from exam_grading.models.answer import Answer
from exam_grading.models.attempt import Attempt, AttemptStatus
from exam_grading.models.exam import Exam, ExamQuestion, ExamStatus, McqOption
from exam_grading.models.user import Role
from exam_grading.schemas import ActionResult, Actor
from exam_grading.services.boundary import action_boundary, load_attempt
from exam_grading.services.deterministic import grade_multiple_choice
from exam_grading.services.side_effects import dispatch, record_audit
from exam_grading.services.state_machine import current_status, set_status, settle_status

logger = get_logger("grading")

OPEN_EXAM_STATUSES = (ExamStatus.PUBLISHED.value, ExamStatus.ACTIVE.value)
OPEN_ATTEMPT_STATUSES = (AttemptStatus.NOT_STARTED.value, AttemptStatus.IN_PROGRESS.value)


def _require_student(actor: Actor) -> None:
    if actor.role != Role.STUDENT:
        raise PermissionDeniedError("Only students can take exams")


def _load_own_attempt(db: Session, actor: Actor, attempt_id: str) -> Attempt:
    _require_student(actor)
    attempt = load_attempt(db, attempt_id)
    if attempt.student_id != actor.user_id:
        raise PermissionDeniedError("This attempt belongs to another student")
    return attempt


def _require_in_progress(attempt: Attempt) -> None:
    if current_status(attempt) != AttemptStatus.IN_PROGRESS:
        raise InvalidStateError("Attempt is not in progress")


@action_boundary
def start_attempt(db: Session, actor: Actor, exam_id: str,
                  background: Optional[BackgroundTasks] = None) -> ActionResult:
    """Start a new attempt, or resume the student's open one."""
    _require_student(actor)
    exam = db.query(Exam).filter(Exam.id == exam_id).first()
    if not exam:
        raise NotFoundError("Exam not found")
    if exam.status not in OPEN_EXAM_STATUSES:
        raise InvalidStateError("Exam is not open for attempts")

    attempt = db.query(Attempt).filter(
        Attempt.exam_id == exam_id,
        Attempt.student_id == actor.user_id,
        Attempt.status.in_(OPEN_ATTEMPT_STATUSES),
    ).order_by(Attempt.attempt_number.desc()).first()
    resumed = attempt is not None

    if attempt is None:
        previous = db.query(func.count(Attempt.id)).filter(
            Attempt.exam_id == exam_id,
            Attempt.student_id == actor.user_id,
        ).scalar() or 0
        if exam.max_attempts is not None and previous >= exam.max_attempts:
            raise InvalidStateError("Maximum attempts ({}) reached for this exam".format(exam.max_attempts))
        attempt = Attempt(exam_id=exam_id, student_id=actor.user_id,
                          attempt_number=previous + 1,
                          status=AttemptStatus.NOT_STARTED.value)
        db.add(attempt)
        db.flush()

    if current_status(attempt) == AttemptStatus.NOT_STARTED:
        set_status(attempt, AttemptStatus.IN_PROGRESS, reason="student started")
        attempt.started_at = datetime.now(timezone.utc)

    data = {
        "attempt_id": str(attempt.id),
        "attempt_number": attempt.attempt_number,
        "status": attempt.status,
        "resumed": resumed,
        "started_at": attempt.started_at.isoformat() if attempt.started_at else None,
    }
    db.commit()

    log_with_context(logger, "INFO",
        "Attempt {} {} for exam {}".format(data["attempt_id"], "resumed" if resumed else "started", exam_id),
        context={"attempt_id": data["attempt_id"], "student_id": actor.user_id})
    return ActionResult.ok(data)


@action_boundary
def save_answer(db: Session, actor: Actor, attempt_id: str, exam_question_id: str,
                answer_text: Optional[str] = None, selected_option_id: Optional[str] = None,
                background: Optional[BackgroundTasks] = None) -> ActionResult:
    """Create or replace the student's answer to one exam question."""
    attempt = _load_own_attempt(db, actor, attempt_id)
    _require_in_progress(attempt)

    exam_question = db.query(ExamQuestion).filter(
        ExamQuestion.id == exam_question_id,
        ExamQuestion.exam_id == attempt.exam_id,
    ).first()
    if not exam_question:
        raise NotFoundError("Question is not part of this exam")

    question = exam_question.question
    if selected_option_id is not None:
        if not question.is_multiple_choice:
            raise InvalidStateError("Only multiple-choice questions take a selected option")
        option = db.query(McqOption).filter(
            McqOption.id == selected_option_id,
            McqOption.question_id == question.id,
        ).first()
        if not option:
            raise NotFoundError("Option does not belong to this question")

    answer = db.query(Answer).filter(
        Answer.attempt_id == attempt_id,
        Answer.exam_question_id == exam_question_id,
    ).first()
    if answer is None:
        answer = Answer(attempt_id=attempt_id, exam_question_id=exam_question_id)
        db.add(answer)

    if question.is_multiple_choice:
        answer.selected_option_id = selected_option_id
        answer.answer_text = None
    else:
        answer.answer_text = answer_text
        answer.selected_option_id = None
    answer.answered_at = datetime.now(timezone.utc)
    db.flush()

    data = {"answer_id": str(answer.id), "exam_question_id": exam_question_id}
    db.commit()
    return ActionResult.ok(data)


@action_boundary
def submit_attempt(db: Session, actor: Actor, attempt_id: str,
                   background: Optional[BackgroundTasks] = None) -> ActionResult:
    """Submit an in-progress attempt and grade its multiple-choice answers."""
    attempt = _load_own_attempt(db, actor, attempt_id)
    _require_in_progress(attempt)

    set_status(attempt, AttemptStatus.SUBMITTED, reason="student submitted")
    attempt.submitted_at = datetime.now(timezone.utc)
    mcq_marks = grade_multiple_choice(db, attempt_id)
    status = settle_status(db, attempt, reason="submission graded")

    data = {
        "attempt_id": str(attempt.id),
        "status": status.value,
        "submitted_at": attempt.submitted_at.isoformat(),
        "mcq_marks": mcq_marks,
    }
    db.commit()

    dispatch(background, record_audit, db.get_bind(), actor.user_id, "SUBMIT_ATTEMPT",
             "ATTEMPT", attempt_id, {"mcq_marks": mcq_marks})
    return ActionResult.ok(data)
