"""
AI-assisted grader for short and long free-text answers.

Grades one answer through the AI Grading Client and persists the result
as an AI-sourced grade:
- Empty answers get 0 marks with full confidence, without calling the service
- Answer text is truncated to MAX_ANSWER_LENGTH before it is sent
- Returned marks are clamped into [0, max_marks]
- Confidence below AI_CONFIDENCE_THRESHOLD marks the grade for review

A failure of the AI call is logged and reported in the returned outcome;
it is never raised. Persistence errors do propagate.
"""

import time
from typing import Optional

from pydantic import BaseModel
from sqlalchemy.orm import Session

from exam_grading.ai.schemas import LongAnswerGrade, QuestionContext
from exam_grading.config import AI_CONFIDENCE_THRESHOLD, MAX_ANSWER_LENGTH
from exam_grading.logging_config import get_logger, log_with_context
from exam_grading.models.answer import Answer
from exam_grading.models.answer_grade import GradeSource
from exam_grading.models.exam import QuestionType
from exam_grading.services.grades import upsert_grade

logger = get_logger("ai")

EMPTY_ANSWER_FEEDBACK = "No answer provided."


class AiGradeOutcome(BaseModel):
    """What happened when one answer was sent for AI grading."""
    success: bool
    marks_awarded: float = 0.0
    confidence: float = 0.0
    feedback: str = ""
    needs_review: bool = False
    error: Optional[str] = None


def build_question_context(answer: Answer) -> QuestionContext:
    """Collect the question, subject and marks an AI grader needs for ``answer``."""
    exam_question = answer.exam_question
    question = exam_question.question
    return QuestionContext(
        question_type=QuestionType(question.type),
        question_title=question.title,
        question_description=question.description,
        model_answer=question.model_answer,
        subject_name=exam_question.exam.subject_name,
        difficulty=question.difficulty,
        max_marks=float(exam_question.marks),
    )


def clamp_marks(marks: float, max_marks: float) -> float:
    return max(0.0, min(float(marks), float(max_marks)))


def format_long_answer_feedback(grade: LongAnswerGrade) -> str:
    """Overall comment followed by the criterion breakdown, strengths and improvements."""
    lines = [grade.feedback]

    if grade.criterion_grades:
        lines.append("\nBreakdown:")
        for c in grade.criterion_grades:
            lines.append(f"• {c.criterion}: {c.score:g}/{c.max_score:g} - {c.comment}")

    if grade.strengths:
        lines.append(f"\nStrengths: {', '.join(grade.strengths)}")

    if grade.improvements:
        lines.append(f"\nAreas to improve: {', '.join(grade.improvements)}")

    return "\n".join(lines)


def _save_ai_grade(db: Session, answer_id: str, *, marks_awarded: float, max_marks: float,
                   feedback: str, confidence: float, model: Optional[str],
                   prompt_tokens: int, response_tokens: int) -> None:
    # A fresh AI grade always needs a fresh human review
    upsert_grade(
        db, answer_id,
        graded_by=GradeSource.AI.value,
        grader_id=None,
        marks_awarded=marks_awarded,
        max_marks=max_marks,
        feedback=feedback,
        ai_confidence=confidence,
        ai_model_used=model,
        ai_prompt_tokens=prompt_tokens,
        ai_response_tokens=response_tokens,
        is_reviewed=False,
        reviewed_at=None,
        reviewed_by_id=None,
    )


def grade_answer_with_ai(db: Session, answer: Answer, client) -> AiGradeOutcome:
    """
    AI-grade a single free-text answer and persist the grade.

    Args:
        db: Database session; the grade is flushed, not committed
        answer: A SHORT_ANSWER or LONG_ANSWER answer
        client: Object with ``score(context, student_answer) -> AiScore``

    Returns:
        AiGradeOutcome; ``success`` is False when the AI call failed
    """
    context = build_question_context(answer)
    log_context = {"answer_id": str(answer.id), "attempt_id": str(answer.attempt_id)}
    text = answer.answer_text or ""

    if not text.strip():
        _save_ai_grade(db, answer.id, marks_awarded=0.0, max_marks=context.max_marks,
                       feedback=EMPTY_ANSWER_FEEDBACK, confidence=1.0, model=None,
                       prompt_tokens=0, response_tokens=0)
        return AiGradeOutcome(success=True, marks_awarded=0.0, confidence=1.0,
                              feedback=EMPTY_ANSWER_FEEDBACK, needs_review=False)

    sanitized = text[:MAX_ANSWER_LENGTH].strip()
    start_time = time.time()

    try:
        scored = client.score(context, sanitized)
    except Exception as e:
        log_with_context(logger, "ERROR", "AI grading failed for answer {}: {}".format(answer.id, e),
                         context=log_context,
                         extra_data={"question_type": context.question_type.value,
                                     "retryable": getattr(e, "retryable", False)})
        return AiGradeOutcome(success=False, feedback="AI grading failed. Requires manual review.",
                              needs_review=True, error=str(e) or type(e).__name__)

    grade = scored.grade
    if isinstance(grade, LongAnswerGrade):
        feedback = format_long_answer_feedback(grade)
    else:
        feedback = grade.feedback

    marks = clamp_marks(grade.marks_awarded, context.max_marks)
    needs_review = grade.confidence < AI_CONFIDENCE_THRESHOLD

    _save_ai_grade(db, answer.id, marks_awarded=marks, max_marks=context.max_marks,
                   feedback=feedback, confidence=grade.confidence, model=scored.model,
                   prompt_tokens=scored.prompt_tokens, response_tokens=scored.response_tokens)

    duration_ms = (time.time() - start_time) * 1000
    log_with_context(logger, "INFO",
        "AI graded answer {}: {:g}/{:g} (confidence {:.2f})".format(
            answer.id, marks, context.max_marks, grade.confidence),
        context=log_context,
        extra_data={"duration_ms": round(duration_ms, 2), "needs_review": needs_review,
                    "clamped": marks != grade.marks_awarded,
                    "prompt_tokens": scored.prompt_tokens,
                    "response_tokens": scored.response_tokens})

    return AiGradeOutcome(success=True, marks_awarded=marks, confidence=grade.confidence,
                          feedback=feedback, needs_review=needs_review)
