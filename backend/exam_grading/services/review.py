"""
Review and override of grades by a human.

- ``approve_grade`` marks a grade (usually AI-sourced) as reviewed, stamping
  reviewer and time, optionally correcting marks and/or feedback in the
  same step.
- ``apply_teacher_grade`` writes a teacher's marks over whatever grade the
  answer has, whatever its source or review state. The grade becomes
  TEACHER-sourced and loses its AI-only fields.

Validation happens before anything is changed. Neither function commits.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.orm import Session

from exam_grading.logging_config import get_logger, log_with_context
from exam_grading.models.answer import Answer
from exam_grading.models.answer_grade import AnswerGrade, GradeSource
from exam_grading.services.grades import upsert_grade, validate_marks

logger = get_logger("review")


def approve_grade(db: Session, grade: AnswerGrade, reviewer_id: str,
                  marks_awarded: Optional[float] = None,
                  feedback: Optional[str] = None) -> AnswerGrade:
    """
    Mark ``grade`` as reviewed by ``reviewer_id``.

    Raises:
        InvalidMarksError: ``marks_awarded`` outside [0, max_marks]; the
            grade is left untouched.
    """
    if marks_awarded is not None:
        validate_marks(marks_awarded, grade.max_marks)

    previous_marks = grade.marks_awarded
    if marks_awarded is not None:
        grade.marks_awarded = float(marks_awarded)
    if feedback is not None:
        grade.feedback = feedback

    grade.is_reviewed = True
    grade.reviewed_at = datetime.now(timezone.utc)
    grade.reviewed_by_id = reviewer_id
    db.flush()

    log_with_context(logger, "INFO", "Grade {} approved".format(grade.id),
        context={"grade_id": str(grade.id), "answer_id": str(grade.answer_id), "reviewer_id": reviewer_id},
        extra_data={"source": grade.graded_by, "previous_marks": previous_marks,
                    "marks": grade.marks_awarded, "confidence": grade.ai_confidence})
    return grade


def apply_teacher_grade(db: Session, answer: Answer, grader_id: str,
                        marks_awarded: float, feedback: Optional[str]) -> AnswerGrade:
    """
    Create or overwrite the grade of ``answer`` with a teacher's marks.

    Raises:
        InvalidMarksError: ``marks_awarded`` outside [0, question marks]
    """
    max_marks = float(answer.exam_question.marks)
    validate_marks(marks_awarded, max_marks)

    grade = upsert_grade(
        db, answer.id,
        graded_by=GradeSource.TEACHER.value,
        grader_id=grader_id,
        marks_awarded=float(marks_awarded),
        max_marks=max_marks,
        feedback=feedback,
        ai_confidence=None,
        ai_model_used=None,
        ai_prompt_tokens=None,
        ai_response_tokens=None,
        is_reviewed=False,
        reviewed_at=None,
        reviewed_by_id=None,
    )

    log_with_context(logger, "INFO", "Answer {} graded by teacher".format(answer.id),
        context={"answer_id": str(answer.id), "attempt_id": str(answer.attempt_id), "grader_id": grader_id},
        extra_data={"marks": float(marks_awarded), "max_marks": max_marks})
    return grade
