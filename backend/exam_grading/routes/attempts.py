"""
Attempts API routes - the student's side of an attempt and the grading view.

Provides endpoints for:
- Starting (or resuming) an attempt on an exam
- Saving answers while the attempt is in progress
- Submitting the attempt for grading
- Viewing an attempt with its answers, grades and result
"""

import time
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException
from sqlalchemy.orm import Session, joinedload

from exam_grading.database import get_db
from exam_grading.errors import PermissionDeniedError
from exam_grading.models.answer import Answer
from exam_grading.models.attempt import Attempt, AttemptStatus
from exam_grading.models.exam import ExamQuestion
from exam_grading.models.user import Role
from exam_grading.routes.dependencies import get_actor
from exam_grading.schemas import ActionResult, Actor, SaveAnswerRequest
from exam_grading.services import submission
from exam_grading.services.boundary import require_exam_owner
from exam_grading.services.grading_actions import serialize_result
from exam_grading.logging_config import get_logger, log_with_context

router = APIRouter()
logger = get_logger("http")


def serialize_grade(grade) -> dict:
    """Serialize an AnswerGrade, including the derived review flag."""
    return {
        "id": str(grade.id),
        "graded_by": grade.graded_by,
        "grader_id": str(grade.grader_id) if grade.grader_id else None,
        "marks_awarded": float(grade.marks_awarded),
        "max_marks": float(grade.max_marks),
        "feedback": grade.feedback,
        "ai_confidence": float(grade.ai_confidence) if grade.ai_confidence is not None else None,
        "ai_model_used": grade.ai_model_used,
        "is_reviewed": bool(grade.is_reviewed),
        "reviewed_at": grade.reviewed_at.isoformat() if grade.reviewed_at else None,
        "needs_review": grade.needs_review,
    }


def serialize_answer(answer: Answer, reveal_answers: bool = True) -> dict:
    exam_question = answer.exam_question
    question = exam_question.question
    return {
        "id": str(answer.id),
        "exam_question_id": str(exam_question.id),
        "position": exam_question.position,
        "question": {
            "id": str(question.id),
            "type": question.type,
            "title": question.title,
            "marks": float(exam_question.marks),
            "options": [
                {"id": str(o.id), "text": o.text,
                 "is_correct": bool(o.is_correct) if reveal_answers else None}
                for o in question.options
            ] if question.is_multiple_choice else [],
        },
        "answer_text": answer.answer_text,
        "selected_option_id": str(answer.selected_option_id) if answer.selected_option_id else None,
        "answered_at": answer.answered_at.isoformat() if answer.answered_at else None,
        "grade": serialize_grade(answer.grade) if answer.grade and reveal_answers else None,
    }


def serialize_attempt(attempt: Attempt, reveal_answers: bool = True) -> dict:
    """
    Serialize an Attempt ORM object to a dict for the grading view.

    With ``reveal_answers`` off, correct options and grades are withheld:
    multiple-choice feedback names the correct option, and AI marks may
    still change on review.
    """
    answers = sorted(attempt.answers or [], key=lambda a: a.exam_question.position)
    grades = [a.grade for a in answers if a.grade] if reveal_answers else []

    return {
        "id": str(attempt.id),
        "exam_id": str(attempt.exam_id),
        "student_id": str(attempt.student_id),
        "attempt_number": attempt.attempt_number,
        "status": attempt.status,
        "started_at": attempt.started_at.isoformat() if attempt.started_at else None,
        "submitted_at": attempt.submitted_at.isoformat() if attempt.submitted_at else None,
        "proctoring_flags": attempt.proctoring_flags_dict,
        "student": {
            "id": str(attempt.student.id),
            "full_name": attempt.student.full_name,
            "email": attempt.student.email,
        } if attempt.student else None,
        "exam": {
            "id": str(attempt.exam.id),
            "title": attempt.exam.title,
            "subject_name": attempt.exam.subject_name,
            "total_marks": float(attempt.exam.total_marks),
            "passing_marks": float(attempt.exam.passing_marks),
        } if attempt.exam else None,
        "answers": [serialize_answer(a, reveal_answers) for a in answers],
        "summary": {
            "answers": len(answers),
            "graded": len(grades),
            "needs_review": len([g for g in grades if g.needs_review]),
            "marks_awarded": sum(float(g.marks_awarded) for g in grades),
        },
        "result": serialize_result(attempt.result) if attempt.result else None,
    }


@router.get("/api/attempts/{attempt_id}")
def get_attempt(attempt_id: str, db: Session = Depends(get_db), actor: Actor = Depends(get_actor)):
    """Get an attempt with answers, grades and result for the grading view."""
    start_time = time.time()

    attempt = db.query(Attempt).options(
        joinedload(Attempt.student),
        joinedload(Attempt.exam),
        joinedload(Attempt.result),
        joinedload(Attempt.answers).joinedload(Answer.grade),
        joinedload(Attempt.answers).joinedload(Answer.exam_question).joinedload(ExamQuestion.question),
    ).filter(Attempt.id == attempt_id).first()

    if not attempt:
        raise HTTPException(status_code=404, detail="Attempt not found")

    if actor.role == Role.STUDENT:
        if attempt.student_id != actor.user_id:
            raise HTTPException(status_code=403, detail="This attempt belongs to another student")
    else:
        try:
            require_exam_owner(actor, attempt.exam)
        except PermissionDeniedError as e:
            raise HTTPException(status_code=403, detail=str(e))

    reveal = actor.role != Role.STUDENT or attempt.status == AttemptStatus.GRADED.value
    result = serialize_attempt(attempt, reveal_answers=reveal)

    duration_ms = (time.time() - start_time) * 1000
    log_with_context(logger, "INFO",
        "Served attempt {} ({} answers)".format(attempt_id, len(result["answers"])),
        context={"attempt_id": attempt_id},
        extra_data={"duration_ms": round(duration_ms, 2)})
    return result


@router.post("/api/exams/{exam_id}/attempts", response_model=ActionResult)
def start_attempt(exam_id: str, background: BackgroundTasks,
                  db: Session = Depends(get_db), actor: Actor = Depends(get_actor)):
    """Start a new attempt or resume the open one."""
    return submission.start_attempt(db, actor, exam_id, background=background)


@router.put("/api/attempts/{attempt_id}/answers", response_model=ActionResult)
def save_answer(attempt_id: str, request: SaveAnswerRequest, background: BackgroundTasks,
                db: Session = Depends(get_db), actor: Actor = Depends(get_actor)):
    """Save the answer to one question of an in-progress attempt."""
    return submission.save_answer(db, actor, attempt_id, request.exam_question_id,
                                  request.answer_text, request.selected_option_id,
                                  background=background)


@router.post("/api/attempts/{attempt_id}/submit", response_model=ActionResult)
def submit_attempt(attempt_id: str, background: BackgroundTasks,
                   db: Session = Depends(get_db), actor: Actor = Depends(get_actor)):
    """Submit the attempt for grading."""
    return submission.submit_attempt(db, actor, attempt_id, background=background)
