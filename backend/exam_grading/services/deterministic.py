"""
Deterministic grader - grades multiple-choice answers by set membership.

For each multiple-choice answer of an attempt:
1. Build the set of correct option ids for the question
2. The answer is correct iff its selected option is in that set
3. Award the full question marks when correct, otherwise 0
4. Feedback is "Correct" or "Incorrect. Correct: <correct option texts>"

All multiple-choice answers of one attempt are written as a single batch
in the caller's transaction. Answers that already carry a grade are left
alone unless ``overwrite`` is set, and even then teacher grades are kept.
"""

import time
from dataclasses import dataclass

from sqlalchemy.orm import Session

from exam_grading.logging_config import get_logger, log_with_context
from exam_grading.models.answer import Answer
from exam_grading.models.answer_grade import GradeSource
from exam_grading.services.grades import grades_by_answer, upsert_grade

logger = get_logger("grading")


@dataclass(frozen=True)
class ChoiceGrade:
    marks_awarded: float
    max_marks: float
    is_correct: bool
    feedback: str


def grade_choice(answer: Answer) -> ChoiceGrade:
    """Grade one multiple-choice answer without touching the database."""
    question = answer.exam_question.question
    max_marks = float(answer.exam_question.marks)
    correct_options = [o for o in question.options if o.is_correct]
    correct_ids = {o.id for o in correct_options}

    is_correct = answer.selected_option_id is not None and answer.selected_option_id in correct_ids
    if is_correct:
        feedback = "Correct"
    else:
        correct_texts = ", ".join(o.text for o in correct_options) or "N/A"
        feedback = "Incorrect. Correct: {}".format(correct_texts)

    return ChoiceGrade(
        marks_awarded=max_marks if is_correct else 0.0,
        max_marks=max_marks,
        is_correct=is_correct,
        feedback=feedback,
    )


def grade_multiple_choice(db: Session, attempt_id: str, overwrite: bool = False) -> float:
    """
    Grade every multiple-choice answer of an attempt.

    Args:
        db: Database session; changes are flushed, not committed
        attempt_id: Attempt whose answers are graded
        overwrite: Recompute answers that already have a SYSTEM grade

    Returns:
        Marks awarded across the answers graded in this call
    """
    start_time = time.time()

    answers = db.query(Answer).filter(Answer.attempt_id == attempt_id).all()
    existing = grades_by_answer(db, attempt_id)

    graded = 0
    correct = 0
    total_marks = 0.0

    for answer in answers:
        if not answer.is_multiple_choice:
            continue
        current = existing.get(answer.id)
        if current is not None:
            if not overwrite or current.graded_by != GradeSource.SYSTEM.value:
                continue

        result = grade_choice(answer)
        upsert_grade(
            db, answer.id,
            graded_by=GradeSource.SYSTEM.value,
            grader_id=None,
            marks_awarded=result.marks_awarded,
            max_marks=result.max_marks,
            feedback=result.feedback,
            ai_confidence=None,
            ai_model_used=None,
            ai_prompt_tokens=None,
            ai_response_tokens=None,
            is_reviewed=False,
            reviewed_at=None,
            reviewed_by_id=None,
        )
        graded += 1
        correct += int(result.is_correct)
        total_marks += result.marks_awarded

    db.flush()

    duration_ms = (time.time() - start_time) * 1000
    log_with_context(logger, "INFO",
        "Multiple-choice grading: {} graded, {} correct, {:g} marks".format(graded, correct, total_marks),
        context={"attempt_id": str(attempt_id)},
        extra_data={"duration_ms": round(duration_ms, 2), "overwrite": overwrite})

    return total_marks
