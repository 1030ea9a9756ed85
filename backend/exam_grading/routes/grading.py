"""
Grading API routes - the teacher-facing grading operations.

Every endpoint returns the ActionResult shape ``{success, data, error}``
with HTTP 200; a failed operation is reported in the body, not through
the status code. Notifications and audit entries are written after the
response is sent.
"""

from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends
from sqlalchemy.orm import Session

from exam_grading.database import get_db
from exam_grading.routes.dependencies import get_actor, get_ai_client
from exam_grading.schemas import (
    ActionResult,
    Actor,
    ApproveOverrides,
    BatchGradeRequest,
    GradeRequest,
)
from exam_grading.services import grading_actions

router = APIRouter(prefix="/api/grading")


@router.post("/answers/{answer_id}/grade", response_model=ActionResult)
def grade_answer(answer_id: str, request: GradeRequest, background: BackgroundTasks,
                 db: Session = Depends(get_db), actor: Actor = Depends(get_actor)):
    """Grade one answer by hand."""
    return grading_actions.grade_answer(db, actor, answer_id, request.marks_awarded,
                                        request.feedback, background=background)


@router.post("/answers/{answer_id}/ai-grade", response_model=ActionResult)
def ai_grade_answer(answer_id: str, background: BackgroundTasks,
                    db: Session = Depends(get_db), actor: Actor = Depends(get_actor),
                    client=Depends(get_ai_client)):
    """AI-grade a single free-text answer."""
    return grading_actions.ai_grade_answer(db, actor, answer_id, client, background=background)


@router.post("/attempts/{attempt_id}/batch-grade", response_model=ActionResult)
def batch_grade(attempt_id: str, request: BatchGradeRequest, background: BackgroundTasks,
                db: Session = Depends(get_db), actor: Actor = Depends(get_actor)):
    """Apply many grades at once, optionally finalizing the attempt."""
    return grading_actions.batch_grade(db, actor, attempt_id, request.grades,
                                       auto_finalize=request.auto_finalize, background=background)


@router.post("/attempts/{attempt_id}/auto-grade", response_model=ActionResult)
def auto_grade(attempt_id: str, background: BackgroundTasks,
               db: Session = Depends(get_db), actor: Actor = Depends(get_actor)):
    """Re-run multiple-choice grading."""
    return grading_actions.auto_grade_session(db, actor, attempt_id, background=background)


@router.post("/exams/{exam_id}/auto-grade", response_model=ActionResult)
def auto_grade_exam(exam_id: str, background: BackgroundTasks,
                    db: Session = Depends(get_db), actor: Actor = Depends(get_actor)):
    """Grade multiple-choice answers of every submitted attempt of the exam."""
    return grading_actions.auto_grade_exam(db, actor, exam_id, background=background)


@router.post("/attempts/{attempt_id}/ai-grade", response_model=ActionResult)
def ai_grade_attempt(attempt_id: str, background: BackgroundTasks,
                     db: Session = Depends(get_db), actor: Actor = Depends(get_actor),
                     client=Depends(get_ai_client)):
    """AI-grade every ungraded free-text answer of the attempt."""
    return grading_actions.ai_grade_session(db, actor, attempt_id, client, background=background)


@router.post("/attempts/{attempt_id}/finalize", response_model=ActionResult)
def finalize(attempt_id: str, background: BackgroundTasks,
             db: Session = Depends(get_db), actor: Actor = Depends(get_actor)):
    return grading_actions.finalize_session(db, actor, attempt_id, background=background)


@router.post("/attempts/{attempt_id}/reopen", response_model=ActionResult)
def reopen(attempt_id: str, background: BackgroundTasks,
           db: Session = Depends(get_db), actor: Actor = Depends(get_actor)):
    return grading_actions.reopen_session(db, actor, attempt_id, background=background)


@router.post("/grades/{grade_id}/approve", response_model=ActionResult)
def approve_grade(grade_id: str, background: BackgroundTasks,
                  overrides: Optional[ApproveOverrides] = None,
                  db: Session = Depends(get_db), actor: Actor = Depends(get_actor)):
    """Approve a grade, optionally correcting marks and feedback."""
    return grading_actions.approve_ai_grade(db, actor, grade_id, overrides, background=background)


@router.put("/grades/{grade_id}", response_model=ActionResult)
def edit_grade(grade_id: str, request: GradeRequest, background: BackgroundTasks,
               db: Session = Depends(get_db), actor: Actor = Depends(get_actor)):
    """Overwrite an existing grade."""
    return grading_actions.edit_grade(db, actor, grade_id, request.marks_awarded,
                                      request.feedback, background=background)
