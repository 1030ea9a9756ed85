"""
Grading operations invoked by teachers and admins.

Every operation:
- takes the session and the calling Actor first
- checks that the caller owns the exam (or is an admin)
- returns an ActionResult and never raises
- leaves the attempt in a status that matches its grading completeness

Notification and audit writes are dispatched fire-and-forget.
"""

from typing import Iterable, Optional

from fastapi import BackgroundTasks
from sqlalchemy.orm import Session

from exam_grading.errors import GradingError, IncompleteGradingError, InvalidStateError, NotFoundError
from exam_grading.logging_config import get_logger, log_with_context
from exam_grading.models.answer import Answer
from exam_grading.models.answer_grade import AnswerGrade, GradeSource
from exam_grading.models.attempt import Attempt, AttemptStatus
from exam_grading.models.exam import Exam
from exam_grading.models.exam_result import ExamResult
from exam_grading.schemas import ActionResult, Actor, ApproveOverrides, GradeEntry
from exam_grading.services.aggregator import calculate_result
from exam_grading.services.ai_grader import grade_answer_with_ai
from exam_grading.services.ai_orchestrator import grade_attempt_with_ai
from exam_grading.services.boundary import action_boundary, load_attempt, require_exam_owner
from exam_grading.services.deterministic import grade_multiple_choice
from exam_grading.services.grades import count_ungraded, is_fully_graded
from exam_grading.services.review import apply_teacher_grade, approve_grade
from exam_grading.services.side_effects import dispatch, notify, record_audit
from exam_grading.services.state_machine import GRADABLE_STATUSES, current_status, set_status, settle_status

logger = get_logger("grading")


# ── Helpers ──────────────────────────────────────────────────

def _require_gradable(attempt: Attempt) -> None:
    status = current_status(attempt)
    if status in GRADABLE_STATUSES:
        return
    if status == AttemptStatus.GRADED:
        raise InvalidStateError("Attempt is already graded. Reopen it to change grades.")
    raise InvalidStateError("Attempt has not been submitted yet")


def _load_answer(db: Session, answer_id: str) -> Answer:
    answer = db.query(Answer).filter(Answer.id == answer_id).first()
    if not answer:
        raise NotFoundError("Answer not found")
    return answer


def _audit(db: Session, background, actor: Actor, action: str, entity_type: str,
           entity_id: str, metadata: Optional[dict] = None) -> None:
    dispatch(background, record_audit, db.get_bind(), actor.user_id, action,
             entity_type, entity_id, metadata)


def serialize_result(result: ExamResult) -> dict:
    return {
        "id": str(result.id),
        "attempt_id": str(result.attempt_id),
        "obtained_marks": float(result.obtained_marks),
        "total_marks": float(result.total_marks),
        "percentage": float(result.percentage),
        "grade": result.grade,
        "is_passed": bool(result.is_passed),
        "published_at": result.published_at.isoformat() if result.published_at else None,
        "computed_at": result.computed_at.isoformat() if result.computed_at else None,
    }


def _finalize(db: Session, actor: Actor, attempt: Attempt, background) -> dict:
    """Grade leftover multiple-choice answers, then compute the result."""
    attempt_id = attempt.id
    grade_multiple_choice(db, attempt_id)
    if not is_fully_graded(db, attempt_id):
        settle_status(db, attempt, reason="finalize found ungraded answers")
        db.commit()
        raise IncompleteGradingError(count_ungraded(db, attempt_id))
    db.commit()

    result = calculate_result(db, attempt_id)
    data = serialize_result(result)
    student_id = result.student_id
    exam_title = attempt.exam.title

    dispatch(background, notify, db.get_bind(), student_id, "RESULT_READY",
             "Exam result available",
             "Your result for \"{}\" is ready: {} ({:.1f}%).".format(exam_title, data["grade"], data["percentage"]),
             "/student/results/{}".format(data["id"]))
    _audit(db, background, actor, "FINALIZE_ATTEMPT", "ATTEMPT", attempt_id,
           {"obtained_marks": data["obtained_marks"], "grade": data["grade"]})
    return data


def _grade_by_teacher(db: Session, actor: Actor, answer: Answer, marks_awarded: float,
                      feedback: Optional[str], background, action: str) -> ActionResult:
    attempt = answer.attempt
    require_exam_owner(actor, attempt.exam)
    _require_gradable(attempt)

    grade = apply_teacher_grade(db, answer, actor.user_id, marks_awarded, feedback)
    grade_multiple_choice(db, attempt.id)
    status = settle_status(db, attempt, reason="teacher grade")

    data = {
        "grade_id": str(grade.id),
        "answer_id": str(answer.id),
        "marks_awarded": float(grade.marks_awarded),
        "max_marks": float(grade.max_marks),
        "attempt_status": status.value,
        "fully_graded": status == AttemptStatus.GRADING,
    }
    db.commit()

    _audit(db, background, actor, action, "ANSWER", data["answer_id"],
           {"marks_awarded": data["marks_awarded"]})
    return ActionResult.ok(data)


# ── Operations ───────────────────────────────────────────────

@action_boundary
def grade_answer(db: Session, actor: Actor, answer_id: str, marks_awarded: float,
                 feedback: Optional[str] = None, background: Optional[BackgroundTasks] = None) -> ActionResult:
    """Grade one answer by hand."""
    answer = _load_answer(db, answer_id)
    return _grade_by_teacher(db, actor, answer, marks_awarded, feedback, background, "GRADE_ANSWER")


@action_boundary
def edit_grade(db: Session, actor: Actor, grade_id: str, marks_awarded: float,
               feedback: Optional[str] = None, background: Optional[BackgroundTasks] = None) -> ActionResult:
    """Overwrite an existing grade of any source; it becomes a teacher grade."""
    grade = db.query(AnswerGrade).filter(AnswerGrade.id == grade_id).first()
    if not grade:
        raise NotFoundError("Grade not found")
    return _grade_by_teacher(db, actor, grade.answer, marks_awarded, feedback, background, "EDIT_GRADE")


@action_boundary
def batch_grade(db: Session, actor: Actor, attempt_id: str, entries: Iterable[GradeEntry],
                auto_finalize: bool = False, background: Optional[BackgroundTasks] = None) -> ActionResult:
    """
    Apply many teacher grades to one attempt.

    Invalid entries are reported individually and do not stop the others.
    With ``auto_finalize``, a fully graded attempt is finalized right away.
    """
    attempt = load_attempt(db, attempt_id)
    require_exam_owner(actor, attempt.exam)
    _require_gradable(attempt)

    entries = list(entries)
    answers = {a.id: a for a in db.query(Answer).filter(Answer.attempt_id == attempt_id).all()}
    applied = []
    errors = []

    for entry in entries:
        answer = answers.get(entry.answer_id)
        if answer is None:
            errors.append({"answer_id": entry.answer_id, "error": "Answer does not belong to this attempt"})
            continue
        try:
            with db.begin_nested():
                apply_teacher_grade(db, answer, actor.user_id, entry.marks_awarded, entry.feedback)
            applied.append(entry.answer_id)
        except GradingError as e:
            errors.append({"answer_id": entry.answer_id, "error": str(e)})

    grade_multiple_choice(db, attempt_id)
    status = settle_status(db, attempt, reason="batch grade")
    db.commit()

    data = {
        "graded": len(applied),
        "failed": len(errors),
        "errors": errors,
        "fully_graded": status == AttemptStatus.GRADING,
        "finalized": False,
        "attempt_status": status.value,
    }
    log_with_context(logger, "INFO",
        "Batch grade on attempt {}: {} applied, {} rejected".format(attempt_id, len(applied), len(errors)),
        context={"attempt_id": str(attempt_id)}, extra_data={"auto_finalize": auto_finalize})
    _audit(db, background, actor, "BATCH_GRADE", "ATTEMPT", attempt_id,
           {"graded": len(applied), "failed": len(errors)})

    if entries and not applied:
        return ActionResult.fail("None of the {} grades could be applied".format(len(entries)), data=data)

    if auto_finalize and data["fully_graded"]:
        try:
            data["result"] = _finalize(db, actor, load_attempt(db, attempt_id), background)
            data["finalized"] = True
            data["attempt_status"] = AttemptStatus.GRADED.value
        except GradingError as e:
            db.rollback()
            data["finalize_error"] = str(e)
            data["attempt_status"] = current_status(load_attempt(db, attempt_id)).value

    return ActionResult.ok(data)


@action_boundary
def auto_grade_session(db: Session, actor: Actor, attempt_id: str,
                       background: Optional[BackgroundTasks] = None) -> ActionResult:
    """Re-run deterministic grading over every multiple-choice answer."""
    attempt = load_attempt(db, attempt_id)
    require_exam_owner(actor, attempt.exam)
    _require_gradable(attempt)

    mcq_marks = grade_multiple_choice(db, attempt_id, overwrite=True)
    status = settle_status(db, attempt, reason="multiple-choice regrade")
    db.commit()

    _audit(db, background, actor, "AUTO_GRADE_ATTEMPT", "ATTEMPT", attempt_id, {"mcq_marks": mcq_marks})
    return ActionResult.ok({
        "mcq_marks": mcq_marks,
        "fully_graded": status == AttemptStatus.GRADING,
        "attempt_status": status.value,
    })


@action_boundary
def auto_grade_exam(db: Session, actor: Actor, exam_id: str,
                    background: Optional[BackgroundTasks] = None) -> ActionResult:
    """
    Grade the multiple-choice answers of every SUBMITTED attempt of an exam.

    Each attempt is settled and committed on its own; none is finalized.
    Returns how many attempts were processed and how many are now fully graded.
    """
    exam = db.query(Exam).filter(Exam.id == exam_id).first()
    if not exam:
        raise NotFoundError("Exam not found")
    require_exam_owner(actor, exam)

    attempt_ids = [a.id for a in db.query(Attempt.id).filter(
        Attempt.exam_id == exam_id,
        Attempt.status == AttemptStatus.SUBMITTED.value,
    ).all()]

    fully_graded = 0
    for attempt_id in attempt_ids:
        attempt = load_attempt(db, attempt_id)
        grade_multiple_choice(db, attempt_id)
        if settle_status(db, attempt, reason="exam multiple-choice grading") == AttemptStatus.GRADING:
            fully_graded += 1
        db.commit()

    log_with_context(logger, "INFO",
        "Auto-graded exam {}: {} attempts, {} fully graded".format(exam_id, len(attempt_ids), fully_graded),
        context={"exam_id": str(exam_id)})
    _audit(db, background, actor, "AUTO_GRADE_EXAM", "EXAM", exam_id,
           {"total_attempts": len(attempt_ids), "fully_graded": fully_graded})
    return ActionResult.ok({"total_attempts": len(attempt_ids), "fully_graded": fully_graded})


@action_boundary
def ai_grade_session(db: Session, actor: Actor, attempt_id: str, client,
                     background: Optional[BackgroundTasks] = None) -> ActionResult:
    """AI-grade every ungraded free-text answer of an attempt."""
    attempt = load_attempt(db, attempt_id)
    require_exam_owner(actor, attempt.exam)
    _require_gradable(attempt)

    stats = grade_attempt_with_ai(db, attempt_id, client)
    _audit(db, background, actor, "AI_GRADE_SESSION", "ATTEMPT", attempt_id, stats.model_dump())
    return ActionResult.ok(stats.model_dump())


@action_boundary
def ai_grade_answer(db: Session, actor: Actor, answer_id: str, client,
                    background: Optional[BackgroundTasks] = None) -> ActionResult:
    """AI-grade (or re-grade) a single free-text answer."""
    answer = _load_answer(db, answer_id)
    attempt = answer.attempt
    require_exam_owner(actor, attempt.exam)
    _require_gradable(attempt)

    if answer.is_multiple_choice:
        raise InvalidStateError("Multiple-choice answers are graded automatically, not by AI")
    if answer.grade is not None and answer.grade.graded_by == GradeSource.TEACHER.value:
        raise InvalidStateError("This answer was graded by a teacher; edit that grade instead")

    outcome = grade_answer_with_ai(db, answer, client)
    if not outcome.success:
        db.rollback()
        return ActionResult.fail(outcome.error or "AI grading failed", data=outcome.model_dump())

    grade_multiple_choice(db, attempt.id)
    status = settle_status(db, attempt, reason="single answer ai grade")
    db.commit()

    _audit(db, background, actor, "AI_GRADE_ANSWER", "ANSWER", answer_id,
           {"confidence": outcome.confidence, "marks_awarded": outcome.marks_awarded})
    return ActionResult.ok({**outcome.model_dump(), "attempt_status": status.value})


@action_boundary
def approve_ai_grade(db: Session, actor: Actor, grade_id: str,
                     overrides: Optional[ApproveOverrides] = None,
                     background: Optional[BackgroundTasks] = None) -> ActionResult:
    """Mark a grade reviewed, optionally correcting its marks and feedback."""
    grade = db.query(AnswerGrade).filter(AnswerGrade.id == grade_id).first()
    if not grade:
        raise NotFoundError("Grade not found")
    attempt = grade.answer.attempt
    require_exam_owner(actor, attempt.exam)

    overrides = overrides or ApproveOverrides()
    changes_grade = overrides.marks_awarded is not None or overrides.feedback is not None
    if changes_grade and current_status(attempt) == AttemptStatus.GRADED:
        raise InvalidStateError("Attempt is already graded. Reopen it to change grades.")

    approve_grade(db, grade, actor.user_id, overrides.marks_awarded, overrides.feedback)
    data = {
        "grade_id": str(grade.id),
        "marks_awarded": float(grade.marks_awarded),
        "feedback": grade.feedback,
        "is_reviewed": True,
    }
    db.commit()

    _audit(db, background, actor, "APPROVE_AI_GRADE", "ANSWER_GRADE", grade_id,
           {"marks_awarded": data["marks_awarded"], "overridden": changes_grade})
    return ActionResult.ok(data)


@action_boundary
def finalize_session(db: Session, actor: Actor, attempt_id: str,
                     background: Optional[BackgroundTasks] = None) -> ActionResult:
    """Compute the result of a fully graded attempt and mark it GRADED."""
    attempt = load_attempt(db, attempt_id)
    require_exam_owner(actor, attempt.exam)
    status = current_status(attempt)
    if status not in GRADABLE_STATUSES:
        raise InvalidStateError("Only submitted attempts can be finalized (current status: {})".format(status.value))

    return ActionResult.ok(_finalize(db, actor, attempt, background))


@action_boundary
def reopen_session(db: Session, actor: Actor, attempt_id: str,
                   background: Optional[BackgroundTasks] = None) -> ActionResult:
    """Remove the result of a GRADED attempt and return it to GRADING."""
    attempt = load_attempt(db, attempt_id)
    require_exam_owner(actor, attempt.exam)
    if current_status(attempt) != AttemptStatus.GRADED:
        raise InvalidStateError("Only graded attempts can be reopened")

    result = db.query(ExamResult).filter(ExamResult.attempt_id == attempt_id).first()
    if result is not None:
        db.delete(result)
    set_status(attempt, AttemptStatus.GRADING, reason="reopened", reopen=True)
    db.commit()

    _audit(db, background, actor, "REOPEN_ATTEMPT", "ATTEMPT", attempt_id)
    return ActionResult.ok({"attempt_id": str(attempt_id), "attempt_status": AttemptStatus.GRADING.value})
